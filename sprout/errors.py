"""Error taxonomy for Sprout.

Every error is local and recoverable. Callers decide whether to surface a
message; the web API maps these onto HTTP status codes.
"""

from __future__ import annotations


class SproutError(Exception):
    """Base class for all Sprout errors."""


class ValidationError(SproutError, ValueError):
    """Input rejected before any state was mutated."""

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(SproutError, KeyError):
    """Unknown template, goal, occurrence parent or medal id."""

    def __init__(self, kind: str, ident: str):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} not found: {ident}")

    def __str__(self) -> str:
        return self.args[0]


class InvariantViolation(SproutError, RuntimeError):
    """An operation that a valid UI flow should never request."""


class StorageError(SproutError, OSError):
    """A workspace file exists but could not be parsed."""
