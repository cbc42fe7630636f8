"""Output sink helpers.

Artifacts are written through `SinkGroup`, which opens a fixed set of binary files and
guarantees that each one is closed on every exit path. Close-time failures are collected
rather than discarded: if two handles fail to close, both errors reach the caller inside a
single `ArtifactIOError`.
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import BinaryIO, List, Optional, Sequence, Type

from .errors import ArtifactIOError


def append_suffix(path: str | Path, suffix: str) -> Path:
    """Append `suffix` to the file name, so "/data/dat" + ".txt" becomes "/data/dat.txt".

    Unlike Path.with_suffix this never replaces an existing extension.
    """

    p = Path(path)
    return p.with_name(p.name + suffix)


def close_all(handles: Sequence[BinaryIO]) -> List[OSError]:
    """Close every handle, returning the errors raised along the way."""

    errors: List[OSError] = []
    for h in handles:
        try:
            h.close()
        except OSError as e:
            errors.append(e)
    return errors


class SinkGroup:
    """Context manager over a group of binary output files.

    Parent directories are created as needed. Any OSError while opening, writing or
    closing is re-raised as an ArtifactIOError listing every cause.
    """

    def __init__(self, paths: Sequence[str | Path]) -> None:
        self.paths = [Path(p) for p in paths]
        self._handles: List[BinaryIO] = []

    def _open(self, path: Path) -> BinaryIO:
        path.parent.mkdir(parents=True, exist_ok=True)
        return path.open("wb")

    def __enter__(self) -> List[BinaryIO]:
        for p in self.paths:
            try:
                self._handles.append(self._open(p))
            except OSError as e:
                errors = [e, *close_all(self._handles)]
                self._handles = []
                raise ArtifactIOError(f"Could not open {p}", errors) from None
        return list(self._handles)

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        errors = close_all(self._handles)
        self._handles = []

        if isinstance(exc, ArtifactIOError):
            if errors:
                raise ArtifactIOError("Failed writing artifacts", [*exc.causes, *errors]) from None
            return False

        if isinstance(exc, OSError):
            raise ArtifactIOError("Failed writing artifacts", [exc, *errors]) from None

        if errors:
            causes: List[BaseException] = [exc, *errors] if exc is not None else list(errors)
            raise ArtifactIOError("Failed closing artifacts", causes) from None

        return False
