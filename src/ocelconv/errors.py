"""Exception types raised by the codecs, the validator and the merge engine."""

from __future__ import annotations

from dataclasses import dataclass


class OcelError(Exception):
    """Base class for all ocelconv errors."""


class DecodeError(OcelError):
    """Raised when input bytes cannot be turned into a log."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class SchemaMismatch(DecodeError):
    """A literal could not be parsed as the kind its declaration requires."""


class EncodeError(OcelError):
    """Raised when a log cannot be written in the requested format."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(OcelError):
    """Schema or semantic validation failed.

    Carries every violation found, not just the first one.
    """

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        summary = "; ".join(self.violations[:5])
        if len(self.violations) > 5:
            summary += f" (and {len(self.violations) - 5} more)"
        super().__init__(f"{len(self.violations)} validation error(s): {summary}")


@dataclass(frozen=True)
class Conflict:
    """A single fatal merge conflict."""

    kind: str  # "object_type" or "declaration"
    key: str  # object id or attribute name
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.kind} conflict on '{self.key}'"
        return f"{text}: {self.detail}" if self.detail else text


class MergeConflict(OcelError):
    """One or more fatal conflicts aborted a merge."""

    def __init__(self, conflicts: list[Conflict]) -> None:
        self.conflicts = list(conflicts)
        super().__init__("Merge aborted: " + "; ".join(str(c) for c in self.conflicts))

    @property
    def keys(self) -> list[str]:
        return [c.key for c in self.conflicts]
