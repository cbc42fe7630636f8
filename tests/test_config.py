from __future__ import annotations

import sys

import pytest

from csr_npy.config import ExportConfig, RecombineConfig


def test_defaults() -> None:
    cfg = ExportConfig()
    assert cfg.padding == "aligned"
    assert cfg.write_metadata is False

    rcfg = RecombineConfig()
    assert rcfg.python == sys.executable
    assert rcfg.timeout is None
    assert rcfg.remove_intermediates is False


def test_export_config_from_env() -> None:
    cfg = ExportConfig.from_env({"CSR_NPY_PADDING": "Legacy", "CSR_NPY_WRITE_METADATA": "yes"})
    assert cfg.padding == "legacy"
    assert cfg.write_metadata is True


def test_recombine_config_from_env() -> None:
    cfg = RecombineConfig.from_env(
        {
            "CSR_NPY_PYTHON": "/opt/local/bin/python3",
            "CSR_NPY_RECOMBINE_TIMEOUT": "90",
            "CSR_NPY_REMOVE_INTERMEDIATES": "1",
        }
    )
    assert cfg.python == "/opt/local/bin/python3"
    assert cfg.timeout == 90.0
    assert cfg.remove_intermediates is True


def test_empty_env_falls_back_to_defaults() -> None:
    assert RecombineConfig.from_env({}) == RecombineConfig()
    assert ExportConfig.from_env({}) == ExportConfig()


def test_invalid_values() -> None:
    with pytest.raises(ValueError, match="padding"):
        ExportConfig(padding="minimal")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="Timeout"):
        RecombineConfig(timeout=0)
