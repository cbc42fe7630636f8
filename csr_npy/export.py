"""Export a CsrMatrixBuilder to disk.

Given a prefix `P`, `export_separate` writes

    P-indices.npy   int32 column indices
    P-indptr.npy    int32 row pointers
    P-data.npy      int16 values

which load straight into `scipy.sparse.csr_matrix((data, indices, indptr))`.
`export_combined` additionally hands those files to a recombiner that writes a single
pickled matrix at `P.pkl`.

Neither operation is atomic: after a failure some artifacts may exist on disk. Callers that
need all-or-nothing behaviour should export to a temporary prefix and rename on success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from csr_npy.config import ExportConfig, RecombineConfig
from csr_npy.core.errors import ArtifactIOError, CollaboratorError
from csr_npy.core.io import SinkGroup, append_suffix
from csr_npy.core.metadata import write_run_metadata
from csr_npy.npy_format import encode_array
from csr_npy.recombine import PythonRecombiner, Recombiner

if TYPE_CHECKING:  # pragma: no cover
    from csr_npy.builder import CsrMatrixBuilder

logger = logging.getLogger(__name__)

INDICES_SUFFIX = "-indices.npy"
INDPTR_SUFFIX = "-indptr.npy"
DATA_SUFFIX = "-data.npy"
COMBINED_SUFFIX = ".pkl"


@dataclass(frozen=True)
class CsrArtifacts:
    indices: Path
    indptr: Path
    data: Path

    def paths(self) -> Tuple[Path, Path, Path]:
        return self.indices, self.indptr, self.data

    def as_dict(self) -> Dict[str, Path]:
        return {"indices": self.indices, "indptr": self.indptr, "data": self.data}


def artifact_paths(prefix: str | Path) -> CsrArtifacts:
    return CsrArtifacts(
        indices=append_suffix(prefix, INDICES_SUFFIX),
        indptr=append_suffix(prefix, INDPTR_SUFFIX),
        data=append_suffix(prefix, DATA_SUFFIX),
    )


def combined_path(prefix: str | Path) -> Path:
    return append_suffix(prefix, COMBINED_SUFFIX)


def export_separate(
    builder: "CsrMatrixBuilder", prefix: str | Path, *, config: Optional[ExportConfig] = None
) -> CsrArtifacts:
    """Write the builder's indices, indptr and data arrays as three NPY files."""

    cfg = config or ExportConfig()
    artifacts = artifact_paths(prefix)

    # Encode everything up front so an unsupported type leaves no files behind.
    payloads = [encode_array(arr, padding=cfg.padding) for arr in builder.to_arrays()]

    with SinkGroup(artifacts.paths()) as sinks:
        for fh, payload, path in zip(sinks, payloads, artifacts.paths()):
            fh.write(payload)
            logger.debug("Wrote %d bytes to %s", len(payload), path)

    n_rows, n_cols = builder.shape
    logger.info(
        "Wrote %dx%d CSR matrix (%d stored entries) to %s*", n_rows, n_cols, builder.nnz, prefix
    )

    if cfg.write_metadata:
        write_run_metadata(
            tool="export_separate",
            prefix=prefix,
            shape=builder.shape,
            nnz=builder.nnz,
            artifacts=artifacts.as_dict(),
            parameters={"padding": cfg.padding},
        )

    return artifacts


def remove_artifacts(artifacts: CsrArtifacts) -> None:
    """Delete the intermediate files, reporting every failure together."""

    err: Optional[BaseException] = None
    for p in artifacts.paths():
        try:
            p.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            err = ArtifactIOError.merge(err, e)

    if err is not None:
        if isinstance(err, ArtifactIOError):
            raise err
        raise ArtifactIOError("Could not remove intermediate artifacts", [err])


def export_combined(
    builder: "CsrMatrixBuilder",
    prefix: str | Path,
    *,
    config: Optional[ExportConfig] = None,
    recombiner: Optional[Recombiner] = None,
    recombine_config: Optional[RecombineConfig] = None,
) -> Path:
    """Export the three arrays, then merge them into a single pickled matrix at P.pkl."""

    rcfg = recombine_config or RecombineConfig()
    run = recombiner if recombiner is not None else PythonRecombiner(rcfg)

    artifacts = export_separate(builder, prefix, config=config)
    destination = combined_path(prefix)

    try:
        run(artifacts, destination, builder.shape)
    except CollaboratorError:
        raise
    except Exception as e:
        raise CollaboratorError(f"Recombination failed: {e}") from e

    if rcfg.remove_intermediates:
        remove_artifacts(artifacts)

    return destination
