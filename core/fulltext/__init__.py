# core/fulltext/__init__.py
"""
Fulltext Index Package
"""
from .collection import FulltextCollection
from .exceptions import SearchIndexError, IndexAccessError, IndexWriteError, IndexLockError
from .identifiers import IdentifierIndex
from .locking import IndexLock
from .measure import token_length
from .shard_directory import ShardDirectory, LengthCache
from .wildcard import WildcardMatcher

__all__ = [
    'FulltextCollection',
    'SearchIndexError',
    'IndexAccessError',
    'IndexWriteError',
    'IndexLockError',
    'IdentifierIndex',
    'IndexLock',
    'token_length',
    'ShardDirectory',
    'LengthCache',
    'WildcardMatcher'
]
