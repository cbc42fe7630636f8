# ruff: noqa: F401

"""Shared utilities for csr_npy.

Error types, scoped output sinks and run metadata. Nothing here knows about CSR layout.
"""

from __future__ import annotations

from .errors import ArtifactIOError, CollaboratorError, CsrNpyError, UnsupportedTypeError
from .io import SinkGroup, append_suffix, close_all
from .metadata import metadata_sidecar_path, sha256_file, write_run_metadata
