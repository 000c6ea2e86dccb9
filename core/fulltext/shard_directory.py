# core/fulltext/shard_directory.py
"""
Discover which token length shards exist in the index directory.

The sorted list of lengths can be kept in lengths.cache together with the
time it was taken. The cache is trusted for `ttl` seconds. Shards are only
ever added during normal operation (clear() removes the cache file together
with them), so a cached list can miss a brand new length for at most one ttl
window but never reports a length that is gone.
"""
import json
import logging
import re
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from config import INDEX_SUFFIX, LENGTHS_CACHE, POSTINGS_PREFIX, TOKEN_TABLE_PREFIX

logger = logging.getLogger(__name__)

_SHARD_FILE = re.compile(rf"^{re.escape(POSTINGS_PREFIX)}(\d+){re.escape(INDEX_SUFFIX)}$")
_TOKEN_FILE = re.compile(rf"^{re.escape(TOKEN_TABLE_PREFIX)}(\d+){re.escape(INDEX_SUFFIX)}$")


class LengthCache:
    """Sorted shard length list persisted with a wall-clock freshness window."""

    def __init__(self, path: Path, ttl: float = 0, clock: Callable[[], float] = time.time):
        """
        Args:
            path: Cache file (lengths.cache)
            ttl: Seconds a stored list stays valid; 0 disables caching
            clock: Wall clock, injectable for tests
        """
        self.path = Path(path)
        self.ttl = ttl
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def load(self) -> Optional[List[int]]:
        """Return the cached lengths if present and fresh, else None."""
        if not self.enabled or not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            refreshed = float(data["refreshed"])
            lengths = [int(length) for length in data["lengths"]]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable length cache {self.path}: {e}")
            return None

        if self._clock() - refreshed >= self.ttl:
            return None
        return sorted(lengths)

    def store(self, lengths: Iterable[int]):
        if not self.enabled:
            return
        data = {"refreshed": self._clock(), "lengths": sorted(lengths)}
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f)
        except OSError as e:
            logger.warning(f"Could not write length cache {self.path}: {e}")

    def clear(self):
        self.path.unlink(missing_ok=True)


class ShardDirectory:
    """Lists the token lengths that have a posting file on disk."""

    def __init__(self, index_dir: Path, cache_ttl: float = 0,
                 clock: Callable[[], float] = time.time):
        self.index_dir = Path(index_dir)
        self.cache = LengthCache(self.index_dir / LENGTHS_CACHE, cache_ttl, clock)

    def postings_path(self, length: int) -> Path:
        return self.index_dir / f"{POSTINGS_PREFIX}{length}{INDEX_SUFFIX}"

    def existing(self, lengths: Iterable[int]) -> List[int]:
        """Probe only the given lengths; keeps the caller's order."""
        return [length for length in lengths if self.postings_path(length).exists()]

    def scan(self) -> List[int]:
        """Read the directory, bypassing the cache."""
        if not self.index_dir.is_dir():
            return []
        lengths = []
        for entry in self.index_dir.iterdir():
            match = _SHARD_FILE.match(entry.name)
            if match:
                lengths.append(int(match.group(1)))
        return sorted(lengths)

    def shard_files(self) -> List[Path]:
        """Every token table and posting file in the directory, orphans included."""
        if not self.index_dir.is_dir():
            return []
        return sorted(
            entry for entry in self.index_dir.iterdir()
            if _SHARD_FILE.match(entry.name) or _TOKEN_FILE.match(entry.name)
        )

    def list_lengths(self) -> List[int]:
        """Sorted list of all shard lengths, from the cache when fresh."""
        lengths = self.cache.load()
        if lengths is not None:
            return lengths
        lengths = self.scan()
        self.cache.store(lengths)
        logger.debug(f"Scanned {len(lengths)} shard lengths in {self.index_dir}")
        return lengths

    def lengths_at_least(self, minimum: int) -> List[int]:
        return [length for length in self.list_lengths() if length >= minimum]
