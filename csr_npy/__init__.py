"""csr-npy (importable package).

Builds sparse matrices row by row in CSR form and writes the indices / indptr / data arrays
as NPY files that numpy and scipy read directly. Optionally merges them into a single
pickled `scipy.sparse.csr_matrix` by running a separate Python interpreter.

SciPy is never imported here; only the recombination interpreter needs it.
"""

from __future__ import annotations

from .builder import CsrMatrixBuilder, sparse_row
from .config import ExportConfig, RecombineConfig
from .core.errors import ArtifactIOError, CollaboratorError, CsrNpyError, UnsupportedTypeError
from .export import CsrArtifacts, artifact_paths, combined_path, export_combined, export_separate
from .npy_format import encode_array, encode_header, write_array
from .recombine import PythonRecombiner

__all__ = [
    # builder
    "CsrMatrixBuilder",
    "sparse_row",
    # encoder
    "encode_array",
    "encode_header",
    "write_array",
    # export
    "CsrArtifacts",
    "artifact_paths",
    "combined_path",
    "export_separate",
    "export_combined",
    "PythonRecombiner",
    # config
    "ExportConfig",
    "RecombineConfig",
    # errors
    "CsrNpyError",
    "ArtifactIOError",
    "UnsupportedTypeError",
    "CollaboratorError",
]
