"""Recombination of exported arrays into a single pickled SciPy matrix.

This step happens outside the library: a separate Python interpreter loads the three NPY
files, builds a `scipy.sparse.csr_matrix` and pickles it. SciPy is only needed in that
interpreter, never in the process doing the export.

A recombiner is any callable `(artifacts, destination, shape) -> None` that either
returns normally (destination now holds the combined matrix) or raises CollaboratorError.
`PythonRecombiner` is the default; tests and embedding applications can inject their own.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from csr_npy.config import RecombineConfig
from csr_npy.core.errors import CollaboratorError

if TYPE_CHECKING:  # pragma: no cover
    from csr_npy.export import CsrArtifacts

logger = logging.getLogger(__name__)

Recombiner = Callable[["CsrArtifacts", Path, Tuple[int, int]], None]

COMBINE_SCRIPT = """\
import pickle
import sys

import numpy as np
import scipy.sparse as ssp

indices_path, indptr_path, data_path, dest, n_rows, n_cols = sys.argv[1:7]
indices = np.load(indices_path)
indptr = np.load(indptr_path)
data = np.load(data_path)

mat = ssp.csr_matrix((data, indices, indptr), shape=(int(n_rows), int(n_cols)))
with open(dest, "wb") as f:
    pickle.dump(mat, f)
"""


def resolve_python(python: str) -> Optional[str]:
    """Resolve an interpreter name or path to an executable path, or None if missing."""

    if os.sep in python or (os.altsep and os.altsep in python):
        p = Path(python)
        return str(p) if p.is_file() and os.access(p, os.X_OK) else None
    return shutil.which(python)


@dataclass(frozen=True)
class PythonRecombiner:
    config: RecombineConfig = field(default_factory=RecombineConfig)
    script: str = COMBINE_SCRIPT

    def command(self, artifacts: "CsrArtifacts", destination: Path, shape: Tuple[int, int]) -> List[str]:
        exe = resolve_python(self.config.python)
        if exe is None:
            raise CollaboratorError(
                f"Python interpreter not found: {self.config.python}. "
                "Set CSR_NPY_PYTHON to an interpreter with numpy and scipy installed."
            )
        return [
            exe,
            "-c",
            self.script,
            str(artifacts.indices),
            str(artifacts.indptr),
            str(artifacts.data),
            str(destination),
            str(int(shape[0])),
            str(int(shape[1])),
        ]

    def __call__(self, artifacts: "CsrArtifacts", destination: Path, shape: Tuple[int, int]) -> None:
        cmd = self.command(artifacts, destination, shape)
        logger.info("Launching command %s -c <combine script> %s", cmd[0], " ".join(cmd[3:]))

        try:
            res = subprocess.run(cmd, capture_output=True, text=True, timeout=self.config.timeout)
        except subprocess.TimeoutExpired as e:
            raise CollaboratorError(
                f"Recombination script did not finish within {e.timeout} seconds"
            ) from e
        except OSError as e:
            raise CollaboratorError(f"Could not launch {cmd[0]}: {e}") from e

        err = (res.stderr or "").strip()
        if err:
            raise CollaboratorError(f"Failed to combine arrays into a matrix due to script error: {err}")
        if res.returncode != 0:
            raise CollaboratorError(f"Recombination script exited with status {res.returncode}")
        if not Path(destination).exists():
            raise CollaboratorError(f"Recombination script did not produce {destination}")

        logger.info("Combined matrix written to %s", destination)
