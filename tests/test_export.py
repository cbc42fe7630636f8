from __future__ import annotations

import json

import numpy as np
import pytest

from csr_npy.builder import CsrMatrixBuilder, sparse_row
from csr_npy.config import ExportConfig
from csr_npy.core.errors import ArtifactIOError
from csr_npy.core.metadata import metadata_sidecar_path, sha256_file
from csr_npy.export import artifact_paths, combined_path, export_separate

MATRIX = [
    [2, 3, 0, 0, 0, 1234, 0, 1],
    [0, 0, 0, 0, 0, 0, 0, 0],
    [1, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 9],
    [-1, 0, 0, 2, 0, 0, 0, -98],
]


@pytest.fixture
def builder() -> CsrMatrixBuilder:
    bldr = CsrMatrixBuilder(len(MATRIX[0]))
    for row in MATRIX:
        bldr.add_row(sparse_row(row))
    return bldr


def _densify(indices: np.ndarray, indptr: np.ndarray, data: np.ndarray, n_cols: int) -> np.ndarray:
    out = np.zeros((len(indptr) - 1, n_cols), dtype=np.int16)
    for r in range(len(indptr) - 1):
        for k in range(indptr[r], indptr[r + 1]):
            out[r, indices[k]] = data[k]
    return out


def test_artifact_naming(tmp_path) -> None:
    arts = artifact_paths(tmp_path / "matrix")
    assert arts.indices.name == "matrix-indices.npy"
    assert arts.indptr.name == "matrix-indptr.npy"
    assert arts.data.name == "matrix-data.npy"
    assert combined_path(tmp_path / "matrix").name == "matrix.pkl"


def test_suffix_is_appended_not_replaced(tmp_path) -> None:
    arts = artifact_paths(tmp_path / "run.v2")
    assert arts.indices.name == "run.v2-indices.npy"


def test_export_separate_round_trip(tmp_path, builder) -> None:
    arts = export_separate(builder, tmp_path / "matrix")
    for p in arts.paths():
        assert p.exists()

    indices = np.load(arts.indices)
    indptr = np.load(arts.indptr)
    data = np.load(arts.data)

    assert indices.dtype == np.int32
    assert indptr.dtype == np.int32
    assert data.dtype == np.int16
    assert indices.tolist() == [0, 1, 5, 7, 0, 7, 0, 3, 7]
    assert indptr.tolist() == [0, 4, 4, 5, 6, 9]
    assert data.tolist() == [2, 3, 1234, 1, 1, 9, -1, 2, -98]
    assert _densify(indices, indptr, data, 8).tolist() == MATRIX


def test_export_scipy_reconstruction(tmp_path, builder) -> None:
    ssp = pytest.importorskip("scipy.sparse")
    arts = export_separate(builder, tmp_path / "matrix")
    mat = ssp.csr_matrix((np.load(arts.data), np.load(arts.indices), np.load(arts.indptr)), shape=(5, 8))
    assert mat.toarray().tolist() == MATRIX


def test_export_is_deterministic(tmp_path, builder) -> None:
    first = export_separate(builder, tmp_path / "a")
    second = export_separate(builder, tmp_path / "b")
    for p, q in zip(first.paths(), second.paths()):
        assert p.read_bytes() == q.read_bytes()


def test_legacy_padding_is_threaded_through(tmp_path, builder) -> None:
    arts = export_separate(builder, tmp_path / "m", config=ExportConfig(padding="legacy"))
    # 9 entries -> one-digit shape -> 59 header bytes, legacy pads to 59 + 59 % 16
    assert arts.indices.read_bytes()[8:10] == (70).to_bytes(2, "little")
    assert np.load(arts.data).tolist() == [2, 3, 1234, 1, 1, 9, -1, 2, -98]


def test_empty_builder_exports(tmp_path) -> None:
    arts = export_separate(CsrMatrixBuilder(3), tmp_path / "empty")
    assert np.load(arts.indices).shape == (0,)
    assert np.load(arts.indptr).tolist() == [0]
    assert np.load(arts.data).shape == (0,)


def test_parent_directories_are_created(tmp_path, builder) -> None:
    arts = export_separate(builder, tmp_path / "nested" / "dir" / "m")
    assert arts.indices.exists()


def test_unwritable_destination_raises_artifact_error(tmp_path, builder) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ArtifactIOError) as info:
        export_separate(builder, blocker / "sub" / "m")

    assert isinstance(info.value, OSError)
    assert info.value.causes


def test_metadata_sidecar(tmp_path, builder) -> None:
    prefix = tmp_path / "matrix"
    arts = export_separate(builder, prefix, config=ExportConfig(write_metadata=True))

    sidecar = metadata_sidecar_path(prefix)
    assert sidecar.name == "matrix.metadata.json"
    payload = json.loads(sidecar.read_text(encoding="utf-8"))

    assert payload["tool"] == "export_separate"
    assert payload["matrix"] == {"shape": [5, 8], "nnz": 9}
    assert payload["parameters"]["padding"] == "aligned"
    assert payload["artifacts"]["indices"]["sha256"] == sha256_file(arts.indices)
    assert payload["artifacts"]["data"]["size_bytes"] == arts.data.stat().st_size


def test_no_sidecar_by_default(tmp_path, builder) -> None:
    export_separate(builder, tmp_path / "matrix")
    assert not metadata_sidecar_path(tmp_path / "matrix").exists()


def test_builder_write_to_files(tmp_path, builder) -> None:
    arts = builder.write_to_files(tmp_path / "m")
    assert len(arts.paths()) == 3
    assert np.load(arts.indptr).tolist() == [0, 4, 4, 5, 6, 9]
