"""Append-only CSR matrix builder.

Produces the three arrays that make up a SciPy CSR matrix (indices, indptr, data) without
requiring SciPy. Data values are stored as 16-bit signed integers for compactness; indices
and row pointers as 32-bit signed integers. Not suitable for arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from csr_npy.config import ExportConfig, RecombineConfig
    from csr_npy.export import CsrArtifacts
    from csr_npy.recombine import Recombiner

INDEX_DTYPE = np.dtype("<i4")
VALUE_DTYPE = np.dtype("<i2")

_VALUE_MIN, _VALUE_MAX = int(np.iinfo(VALUE_DTYPE).min), int(np.iinfo(VALUE_DTYPE).max)
_INDEX_MAX = int(np.iinfo(INDEX_DTYPE).max)


def _readonly(values: List[int], dtype: np.dtype) -> np.ndarray:
    arr = np.asarray(values, dtype=dtype)
    arr.flags.writeable = False
    return arr


def sparse_row(values: Iterable[Any]) -> Dict[int, int]:
    """Turn a dense row into a {column: value} mapping with the zeros removed."""

    return {i: int(v) for i, v in enumerate(values) if int(v) != 0}


@dataclass
class CsrMatrixBuilder:
    n_cols: int
    _indices: List[int] = field(default_factory=list, init=False, repr=False)
    _indptr: List[int] = field(default_factory=lambda: [0], init=False, repr=False)
    _data: List[int] = field(default_factory=list, init=False, repr=False)
    _n_rows: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.n_cols = int(self.n_cols)
        if self.n_cols < 0 or self.n_cols > _INDEX_MAX:
            raise ValueError(f"Column count out of range: {self.n_cols}")

    # ------------------------------------------------------------------ accessors

    @property
    def n_rows(self) -> int:
        return self._n_rows

    @property
    def shape(self) -> Tuple[int, int]:
        return self._n_rows, self.n_cols

    @property
    def nnz(self) -> int:
        return len(self._indices)

    @property
    def indices(self) -> np.ndarray:
        return _readonly(self._indices, INDEX_DTYPE)

    @property
    def indptr(self) -> np.ndarray:
        return _readonly(self._indptr, INDEX_DTYPE)

    @property
    def data(self) -> np.ndarray:
        return _readonly(self._data, VALUE_DTYPE)

    def to_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (indices, indptr, data), the argument order of the export artifacts."""

        return self.indices, self.indptr, self.data

    # ------------------------------------------------------------------ ingestion

    def _check_entry(self, col: Any, value: Any) -> Tuple[int, int]:
        c, v = int(col), int(value)
        if c < 0 or c >= self.n_cols:
            raise ValueError(f"Column index {c} out of range for {self.n_cols} columns")
        if v < _VALUE_MIN or v > _VALUE_MAX:
            raise ValueError(f"Value {v} at column {c} does not fit in a 16-bit signed integer")
        return c, v

    def add_row(self, entries: Mapping[int, int]) -> None:
        """Append one row given as {column: value}.

        Entries are stored in the mapping's iteration order. Zeros are not filtered; pass
        them only if explicit zeros are wanted. The row is validated as a whole, so a
        rejected row leaves the builder unchanged.
        """

        checked = [self._check_entry(c, v) for c, v in entries.items()]
        if len(self._indices) + len(checked) > _INDEX_MAX:
            raise ValueError("Too many stored entries for 32-bit row pointers")

        for c, v in checked:
            self._indices.append(c)
            self._data.append(v)
        self._indptr.append(len(self._indices))
        self._n_rows += 1

    def add_dense_row(self, values: Iterable[Any]) -> None:
        """Append a dense row, dropping zeros."""

        row = sparse_row(values)
        self.add_row(row)

    def extend(self, other: "CsrMatrixBuilder") -> None:
        """Append every row of `other` (which must have the same column count)."""

        if other.n_cols != self.n_cols:
            raise ValueError(f"Column counts differ: {self.n_cols} != {other.n_cols}")
        if len(self._indices) + other.nnz > _INDEX_MAX:
            raise ValueError("Too many stored entries for 32-bit row pointers")

        offset = len(self._indices)
        self._indices.extend(other._indices)
        self._data.extend(other._data)
        self._indptr.extend(p + offset for p in other._indptr[1:])
        self._n_rows += other._n_rows

    @classmethod
    def from_dense(cls, rows: Any, n_cols: Optional[int] = None) -> "CsrMatrixBuilder":
        """Build from a 2-D array-like (nested lists, ndarray, DataFrame values)."""

        arr = np.asarray(rows)
        if arr.ndim != 2:
            if arr.size == 0 and n_cols is not None:
                return cls(n_cols)
            raise ValueError(f"Expected a 2-D array, got shape {arr.shape}")

        bldr = cls(arr.shape[1] if n_cols is None else n_cols)
        for row in arr:
            bldr.add_dense_row(row)
        return bldr

    @classmethod
    def concat(cls, builders: Iterable["CsrMatrixBuilder"]) -> "CsrMatrixBuilder":
        """Stack sharded builders vertically into a new builder."""

        parts = list(builders)
        if not parts:
            raise ValueError("Need at least one builder to concatenate")

        out = cls(parts[0].n_cols)
        for b in parts:
            out.extend(b)
        return out

    # ------------------------------------------------------------------ export

    def write_to_files(
        self, prefix: str | Path, *, config: Optional["ExportConfig"] = None
    ) -> "CsrArtifacts":
        """Write indices, indptr and data as three NPY files next to `prefix`."""

        from csr_npy.export import export_separate

        return export_separate(self, prefix, config=config)

    def write_to_file(
        self,
        prefix: str | Path,
        *,
        config: Optional["ExportConfig"] = None,
        recombiner: Optional["Recombiner"] = None,
        recombine_config: Optional["RecombineConfig"] = None,
    ) -> Path:
        """Write a single pickled scipy.sparse.csr_matrix at `prefix` + ".pkl".

        The three NPY files are written first and then merged by a separate interpreter,
        so peak memory is roughly twice that of `write_to_files`.
        """

        from csr_npy.export import export_combined

        return export_combined(
            self, prefix, config=config, recombiner=recombiner, recombine_config=recombine_config
        )
