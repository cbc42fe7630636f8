"""Export and recombination settings.

Both configs are frozen dataclasses with sensible defaults. `from_env()` lets deployments
override them without code changes:

- CSR_NPY_PADDING          "aligned" (default) or "legacy"
- CSR_NPY_WRITE_METADATA   "1"/"true" to emit a `<prefix>.metadata.json` sidecar
- CSR_NPY_PYTHON           interpreter used for recombination (default: sys.executable)
- CSR_NPY_RECOMBINE_TIMEOUT  seconds to wait for the recombination process
- CSR_NPY_REMOVE_INTERMEDIATES  "1"/"true" to delete the three NPY files after merging
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Mapping, Optional

from csr_npy.npy_format import PaddingPolicy

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class ExportConfig:
    padding: PaddingPolicy = "aligned"
    write_metadata: bool = False

    def __post_init__(self) -> None:
        if self.padding not in ("aligned", "legacy"):
            raise ValueError(f"Unknown padding policy: {self.padding}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ExportConfig":
        env = os.environ if env is None else env
        return cls(
            padding=(env.get("CSR_NPY_PADDING") or "aligned").strip().lower(),  # type: ignore[arg-type]
            write_metadata=_env_flag(env, "CSR_NPY_WRITE_METADATA", False),
        )


@dataclass(frozen=True)
class RecombineConfig:
    python: str = field(default_factory=lambda: sys.executable)
    timeout: Optional[float] = None
    remove_intermediates: bool = False

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RecombineConfig":
        env = os.environ if env is None else env
        timeout_raw = (env.get("CSR_NPY_RECOMBINE_TIMEOUT") or "").strip()
        return cls(
            python=(env.get("CSR_NPY_PYTHON") or "").strip() or sys.executable,
            timeout=float(timeout_raw) if timeout_raw else None,
            remove_intermediates=_env_flag(env, "CSR_NPY_REMOVE_INTERMEDIATES", False),
        )
