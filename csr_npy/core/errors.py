"""Error types shared across csr_npy.

Every failure raised by the export path derives from `CsrNpyError`, and also from the
builtin exception it specialises, so callers can catch either.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class CsrNpyError(Exception):
    """Base class for csr_npy failures."""


class UnsupportedTypeError(CsrNpyError, TypeError):
    """The encoder was asked for an element type or shape it cannot write."""


class CollaboratorError(CsrNpyError, RuntimeError):
    """The external recombination step failed, timed out, or could not be launched."""


class ArtifactIOError(CsrNpyError, OSError):
    """An output artifact could not be opened, written, or closed.

    Carries every underlying error in `causes`, in the order they happened. Closing three
    sinks where two fail yields one ArtifactIOError with both failures listed.
    """

    def __init__(self, message: str, causes: Optional[Sequence[BaseException]] = None) -> None:
        self.message = message
        self.causes: List[BaseException] = list(causes or [])
        super().__init__(message)

    def __str__(self) -> str:
        base = self.message
        if len(self.causes) <= 1:
            return base if not self.causes else f"{base}: {self.causes[0]}"
        lines = [f"{base} ({len(self.causes)} errors)"]
        for i, err in enumerate(self.causes, 1):
            lines.append(f"  {i}) {type(err).__name__}: {err}")
        return "\n".join(lines)

    @classmethod
    def merge(
        cls, lhs: Optional[BaseException], rhs: Optional[BaseException]
    ) -> Optional[BaseException]:
        """Merge two possibly-missing errors into one.

        None on both sides gives None; one side missing gives the other unchanged.
        Otherwise the result is an ArtifactIOError whose causes flatten both sides.
        """

        if lhs is None:
            return rhs
        if rhs is None:
            return lhs

        causes: List[BaseException] = []
        for err in (lhs, rhs):
            if isinstance(err, ArtifactIOError) and err.causes:
                causes.extend(err.causes)
            else:
                causes.append(err)
        return cls(f"Many errors reported. First is {causes[0]}", causes)
