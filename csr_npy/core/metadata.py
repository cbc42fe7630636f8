"""Run metadata helpers.

An export can emit a small, machine-readable metadata JSON artifact capturing provenance
(shape, versions, per-artifact checksums).

Convention:
- for an export prefix like `out/matrix`, the sidecar is written next to the arrays as
  `out/matrix.metadata.json`.
"""

from __future__ import annotations

import hashlib
import json
import os
import sys
from datetime import datetime
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import numpy as np

from .io import append_suffix


def get_package_version() -> str:
    """Return installed package version if available, else 'unknown'."""

    try:
        return importlib_metadata.version("csr-npy")
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def metadata_sidecar_path(prefix: str | Path) -> Path:
    return append_suffix(prefix, ".metadata.json")


def describe_artifact(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    return {
        "path": str(p.resolve()),
        "name": p.name,
        "size_bytes": int(p.stat().st_size),
        "sha256": sha256_file(p),
    }


def write_run_metadata(
    *,
    tool: str,
    prefix: str | Path,
    shape: tuple,
    nnz: int,
    artifacts: Mapping[str, str | Path],
    parameters: Optional[Dict[str, Any]] = None,
) -> Path:
    """Write a standardized run metadata JSON sidecar.

    Call after the artifacts are fully written and closed; checksums are taken from disk.
    """

    payload: Dict[str, Any] = {
        "tool": str(tool),
        "created_at": datetime.now().isoformat(timespec="seconds"),
        "cwd": os.getcwd(),
        "versions": {
            "csr_npy": get_package_version(),
            "numpy": np.__version__,
            "python": sys.version.split()[0],
        },
        "matrix": {
            "shape": [int(s) for s in shape],
            "nnz": int(nnz),
        },
        "parameters": parameters or {},
        "artifacts": {k: describe_artifact(v) for k, v in artifacts.items()},
    }

    sidecar = metadata_sidecar_path(prefix)
    sidecar.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return sidecar
