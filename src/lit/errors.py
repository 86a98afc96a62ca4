"""Exception types raised by the issue store and its collaborators.

Filesystem failures are not wrapped: they surface as the builtin ``OSError``.
"""

from __future__ import annotations


class LitError(Exception):
    """Base class for all lit errors."""


class NotFoundError(LitError, LookupError):
    """A backing file, issue, attachment, or source file does not exist."""


class ParseError(LitError, ValueError):
    """Outline text could not be parsed."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class ValidationError(LitError, ValueError):
    """A user-supplied value has the wrong shape (e.g. a non-numeric count)."""


class NotLoadedError(LitError):
    """The store was asked to persist before it was loaded or initialized."""


class NoChangeError(LitError):
    """The editor exited without modifying the scratch file."""


class NoUpdateError(LitError):
    """The edited buffer contained none of the selected issues."""


class EditorError(LitError):
    """The editor could not be launched or exited with a failure status."""
