"""Exception types raised by :mod:`safename`.

Decoding has exactly two failure kinds:

``CorruptedError``
    The bytes are malformed for the strategy they claim to use.  The name
    cannot be recovered and should not be trusted.

``UnsupportedError``
    The bytes are structurally plausible but select a table this build has
    no decoder for.  The name was most likely produced by a newer encoder.

Both derive from :class:`FilenameError` (itself a :class:`ValueError`) so a
caller can catch the whole family at once.
"""

from __future__ import annotations

from typing import Optional

__all__ = ["FilenameError", "CorruptedError", "UnsupportedError", "EncodeError"]


class FilenameError(ValueError):
    """Base class for every error raised by the public API."""


class CorruptedError(FilenameError):
    """Raised when an encoded file name cannot be decoded."""

    def __init__(self, reason: str = "") -> None:
        message = "file name corrupt"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.reason = reason


class UnsupportedError(FilenameError):
    """Raised when a name selects a table unknown to this version."""

    def __init__(self, table_id: Optional[int] = None) -> None:
        message = "file name possibly generated by a future version"
        if table_id is not None:
            message = f"{message} (table {table_id})"
        super().__init__(message)
        self.table_id = table_id


class EncodeError(FilenameError):
    """Raised when a name cannot be represented with the requested table."""
