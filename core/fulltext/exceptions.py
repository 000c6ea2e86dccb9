# core/fulltext/exceptions.py
"""Errors raised by the fulltext index."""


class SearchIndexError(Exception):
    """Base class for all index failures."""


class IndexAccessError(SearchIndexError):
    """A required identifier table or row could not be read."""


class IndexWriteError(SearchIndexError):
    """An index file could not be persisted."""


class IndexLockError(SearchIndexError):
    """The exclusive index lock was not obtained in time."""
