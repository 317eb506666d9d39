"""Exception hierarchy for the retrieval layer."""

from __future__ import annotations


class JournalError(Exception):
    """Base exception for journal retrieval operations."""
    pass


class StoreReadError(JournalError):
    """Raised by a store when a day file exists but cannot be read or parsed."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to read entry {key}: {cause}")


class ConstructionError(JournalError, ValueError):
    """Raised when a cache or filter is built with invalid parameters."""
    pass


class CapacityViolation(JournalError, AssertionError):
    """Raised when the cache holds more entries than its configured maximum.

    This indicates a bug in eviction, not a recoverable condition.
    """
    pass
