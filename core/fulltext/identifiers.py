# core/fulltext/identifiers.py
"""
Manage the mapping between names and dense numeric ids.

Entity names live in entities.idx and the tokens of each length shard live
in tokens-<length>.idx. Both are append-only: a name's id is its line number
and is never reused or renumbered. New ids are assigned under the index lock
after re-reading the file, so when two writers race for the same new name
the first one wins and the second gets the id just assigned.
"""
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import marisa_trie

from .exceptions import IndexAccessError
from .locking import IndexLock
from .row_file import RowFile

logger = logging.getLogger(__name__)


class IdentifierIndex:
    """Append-only name table with an in-memory name → id cache."""

    def __init__(self, path: Path, lock: IndexLock):
        """
        Args:
            path: The identifier table (entities.idx or tokens-<length>.idx)
            lock: Index lock serializing id assignment
        """
        self.table = RowFile(path)
        self.lock = lock
        self._ids: Dict[str, int] = {}
        self._cached_rows = 0
        self._trie: Optional[marisa_trie.RecordTrie] = None
        self._trie_rows = -1

    @property
    def path(self) -> Path:
        return self.table.path

    def __len__(self):
        self.refresh()
        return len(self.table)

    def refresh(self):
        """Pick up ids appended by other writers since the last read."""
        if self.table.refresh():
            self._ids.clear()
            self._cached_rows = 0
            self._trie = None
            self._trie_rows = -1

    def _sync_cache(self):
        rows = self.table.rows
        # Rows are only ever appended, so extend the cache from where it stopped
        for row_id in range(self._cached_rows, len(rows)):
            if rows[row_id]:
                self._ids.setdefault(rows[row_id], row_id)
        self._cached_rows = len(rows)

    def lookup(self, name: str) -> Optional[int]:
        """Return the id of `name`, or None if it was never assigned."""
        self.refresh()
        self._sync_cache()
        return self._ids.get(name)

    def get_id(self, name: str) -> int:
        """
        Return the id of `name`, assigning the next free id if it is new.

        Raises:
            ValueError: name is empty or contains a newline
            IndexAccessError: the table cannot be read
            IndexWriteError: the new id cannot be persisted
        """
        if not name or "\n" in name:
            raise ValueError(f"Invalid identifier name: {name!r}")

        row_id = self.lookup(name)
        if row_id is not None:
            return row_id

        with self.lock:
            # Another writer may have added it while we waited for the lock
            row_id = self.lookup(name)
            if row_id is not None:
                return row_id
            row_id = self.table.append(name)
            self._sync_cache()
            logger.debug(f"Assigned id {row_id} to {name!r} in {self.path.name}")
            return row_id

    def get_name(self, row_id: int) -> Optional[str]:
        """Return the name stored for an id, or None for unknown ids."""
        self.refresh()
        if row_id < 0 or row_id >= len(self.table):
            return None
        name = self.table.get(row_id)
        return name or None

    def names(self) -> List[str]:
        self.refresh()
        return list(self.table.rows)

    def items(self) -> Iterator[Tuple[str, int]]:
        """Yield (name, id) for every stored name, in id order."""
        for row_id, name in enumerate(self.names()):
            if name:
                yield name, row_id

    @property
    def trie(self) -> marisa_trie.RecordTrie:
        """
        MARISA RecordTrie view of the table for read-side lookups.

        Each key stores its id as a single '<I' record. The trie is rebuilt
        only after the table grew or was replaced on disk.
        """
        self.refresh()
        if self._trie is None or self._trie_rows != len(self.table):
            self._sync_cache()
            try:
                self._trie = marisa_trie.RecordTrie(
                    '<I', ((name, (row_id,)) for name, row_id in self._ids.items())
                )
            except (TypeError, ValueError) as e:
                raise IndexAccessError(f"Cannot build token trie for {self.path}: {e}") from e
            self._trie_rows = len(self.table)
        return self._trie

    def find(self, token: str) -> Optional[int]:
        """Exact trie lookup used by searches."""
        trie = self.trie
        if token not in trie:
            return None
        records = trie[token]
        if not records:
            return None
        return records[0][0]

    def prefix_items(self, prefix: str) -> List[Tuple[str, int]]:
        """All (token, id) pairs whose token starts with `prefix`."""
        return [(key, record[0]) for key, record in self.trie.items(prefix)]

    def delete(self):
        """Remove the table file and forget every cached id."""
        self.table.delete()
        self._ids.clear()
        self._cached_rows = 0
        self._trie = None
        self._trie_rows = -1
