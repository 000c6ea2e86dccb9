# core/fulltext/collection.py
"""
Fulltext Collection
===================
The fulltext index: which entities (documents) contain which tokens, and
how often.

Index files, all inside one directory:
- entities.idx          entity names, line number = entity id
- tokens-<length>.idx   tokens of one length shard, line number = token id
- postings-<length>.idx posting row per token id ("entity_id*freq:...")
- reverse.idx           per entity id, the "length*token_id:..." pairs posted for it
- lengths.cache         cached list of shard lengths

Updates are diffs: the reverse index tells which rows currently hold the
entity, those rows are zeroed, and the fresh frequency table overwrites the
zeros for every token the entity still contains. Rows left at zero lose the
entity. The reverse record is written last, so a failed shard write leaves
the entity diffable against its previous state on the next attempt.

Writers take the exclusive index lock. Readers take no lock and accept that
rows read from different shards may come from different moments; postings
for entities that have since disappeared are filtered out by name.
"""
import logging
from collections import Counter, defaultdict
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from config import (
    ENTITY_TABLE,
    INDEX_SUFFIX,
    REVERSE_TABLE,
    TOKEN_TABLE_PREFIX,
    PathConfig
)
from core.utilities.config_manager import config_manager
from .exceptions import IndexWriteError
from .frequency_index import FrequencyIndex
from .identifiers import IdentifierIndex
from .locking import IndexLock, locked
from .measure import token_length
from .reverse_index import ReverseIndex
from .shard_directory import ShardDirectory
from .tuple_ops import group_by_length, merge_frequencies
from .wildcard import WildcardMatcher

logger = logging.getLogger(__name__)

TokenKey = Tuple[int, int]  # (token length, token id)


def _always_exists(name: str) -> bool:
    return True


class FulltextCollection:
    """Frequency-weighted inverted index over flat files."""

    def __init__(self, index_dir: Optional[Path] = None,
                 entity_exists: Optional[Callable[[str], bool]] = None,
                 min_word_length: Optional[int] = None,
                 length_cache_ttl: Optional[float] = None,
                 lock_timeout: Optional[float] = None,
                 lock_stale_after: Optional[float] = None):
        """
        Args:
            index_dir: Index directory. Defaults to PathConfig.get_index_dir()
            entity_exists: Callback telling whether an entity name is still a live
                           document; postings of dead entities are skipped in searches
            min_word_length: Exact search terms measuring less are ignored (numbers excepted)
            length_cache_ttl: Freshness window of lengths.cache in seconds (0 = rescan)
            lock_timeout: Seconds to wait for the index lock
            lock_stale_after: Age after which a lock directory is considered abandoned
        """
        self.index_dir = Path(index_dir) if index_dir else PathConfig.get_index_dir()
        self.entity_exists = entity_exists or _always_exists
        self.min_word_length = (
            min_word_length if min_word_length is not None
            else config_manager.get_min_word_length()
        )

        self.lock = IndexLock(
            self.index_dir,
            timeout=lock_timeout if lock_timeout is not None else config_manager.get_lock_timeout(),
            stale_after=(
                lock_stale_after if lock_stale_after is not None
                else config_manager.get_lock_stale_after()
            )
        )
        self.shards = ShardDirectory(
            self.index_dir,
            length_cache_ttl if length_cache_ttl is not None
            else config_manager.get_length_cache_ttl()
        )
        self.entities = IdentifierIndex(self.index_dir / ENTITY_TABLE, self.lock)
        self.reverse = ReverseIndex(self.index_dir / REVERSE_TABLE)
        self._token_tables: Dict[int, IdentifierIndex] = {}

    @staticmethod
    def token_length(token: str) -> int:
        """Shard length of a token (multi-byte wide characters count extra)."""
        return token_length(token)

    def token_table(self, length: int) -> IdentifierIndex:
        if length not in self._token_tables:
            path = self.index_dir / f"{TOKEN_TABLE_PREFIX}{length}{INDEX_SUFFIX}"
            self._token_tables[length] = IdentifierIndex(path, self.lock)
        return self._token_tables[length]

    def frequency_index(self, length: int) -> FrequencyIndex:
        """A freshly loaded posting shard; callers save() it themselves."""
        return FrequencyIndex(self.shards.postings_path(length), length)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def add_entity(self, entity: str, tokens: Iterable[str], require_lock: bool = True):
        """
        Add or update the tokens of an entity.

        The given tokens replace whatever was stored for the entity before;
        an empty list removes the entity from the index.

        Args:
            entity: Entity name
            tokens: Tokens of the entity, repeated as often as they occur
            require_lock: False only when the caller already holds self.lock

        Raises:
            IndexAccessError: An identifier table or row could not be read
            IndexWriteError: A shard could not be written; the reverse record is left as it was
            IndexLockError: The index lock was not obtained in time
            ValueError: The entity name or a token cannot be stored
        """
        with locked(self.lock, require_lock):
            entity_id = self.entities.get_id(entity)

            old = self.reverse.get_assignments(entity_id)
            new = self.get_token_frequency(tokens)
            frequencies = merge_frequencies(old, new)

            for length, updates in group_by_length(frequencies).items():
                shard = self.frequency_index(length)
                shard.update_many(entity_id, updates)
                shard.save()

            self.reverse.save_assignments(entity_id, frequencies)

        removed = sum(1 for key in old if key not in new)
        logger.info(f"Indexed {entity!r} (id {entity_id}): {len(new)} tokens, {removed} removed")

    def delete_entity(self, entity: str, require_lock: bool = True) -> bool:
        """
        Remove every posting of an entity.

        Returns:
            False if the entity was never indexed (no id is created for it)
        """
        with locked(self.lock, require_lock):
            if self.entities.lookup(entity) is None:
                return False
            self.add_entity(entity, [], require_lock=False)
        return True

    def get_reverse_assignments(self, entity: str) -> Dict[TokenKey, int]:
        """
        Token keys currently posted for an entity, each mapped to 0.

        The zeros make the result mergeable with get_token_frequency(): keys
        that the new table does not override are removed from their rows.
        """
        entity_id = self.entities.lookup(entity)
        if entity_id is None:
            return {}
        return self.reverse.get_assignments(entity_id)

    def get_token_frequency(self, tokens: Iterable[str]) -> Dict[TokenKey, int]:
        """
        Count tokens and resolve them to ids, assigning ids to new tokens.

        Returns:
            {(length, token_id): frequency}
        """
        counts = Counter(str(token) for token in tokens if token)

        by_length: Dict[int, Dict[str, int]] = defaultdict(dict)
        for token, count in counts.items():
            by_length[token_length(token)][token] = count

        result = {}
        for length in sorted(by_length):
            table = self.token_table(length)
            for token, freq in by_length[length].items():
                result[(length, table.get_id(token))] = freq
        return result

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def lookup_words(self, tokens: Iterable[str]) -> Dict[str, Dict[str, int]]:
        """
        Find the entities containing the query terms.

        Terms must be pre-tokenized: letters and digits with an optional '*'
        at the start and/or end.

        Returns:
            {term: {entity_name: hits}} where hits sums the frequencies of all
            tokens the term matched. Empty if no term matched any token.
        """
        terms, term_keys = self._resolve_terms(tokens)
        if not any(term_keys.values()):
            return {}

        postings = self._read_postings(
            {key for keys in term_keys.values() for key in keys}
        )

        names: Dict[int, Optional[str]] = {}
        final: Dict[str, Dict[str, int]] = {term: {} for term in terms}
        for term, keys in term_keys.items():
            hits = final[term]
            for key in keys:
                for entity_id, freq in postings.get(key, []):
                    if entity_id not in names:
                        names[entity_id] = self._live_entity_name(entity_id)
                    name = names[entity_id]
                    if name is None:
                        continue
                    hits[name] = hits.get(name, 0) + freq
        return final

    def _resolve_terms(self, tokens: Iterable[str]) -> Tuple[List[str], Dict[str, List[TokenKey]]]:
        """Map every query term to the (length, token_id) keys it matches."""
        terms: List[str] = []
        matchers: List[WildcardMatcher] = []
        for term in tokens:
            if term in terms:
                continue
            terms.append(term)
            try:
                matcher = WildcardMatcher.parse(term, token_length)
            except ValueError as e:
                logger.debug(f"Ignoring query term: {e}")
                continue
            if matcher.is_searchable(self.min_word_length):
                matchers.append(matcher)

        term_keys: Dict[str, List[TokenKey]] = {term: [] for term in terms}
        if not matchers:
            return terms, term_keys

        # Every term is looked up exactly in the shard of its own length; a
        # wildcard term also matches its bare base token that way
        exact_lengths = sorted({m.length for m in matchers})
        wildcards = sorted((m for m in matchers if m.is_wildcard), key=lambda m: m.length)
        if wildcards:
            candidates = self.shards.lengths_at_least(exact_lengths[0])
        else:
            candidates = self.shards.existing(exact_lengths)

        for length in candidates:
            table = self.token_table(length)
            for matcher in matchers:
                if matcher.length != length:
                    continue
                token_id = table.find(matcher.base)
                if token_id is not None:
                    term_keys[matcher.term].append((length, token_id))

            # Wildcards can only make a token longer, so they are scanned in
            # shards strictly longer than their base
            for matcher in wildcards:
                if matcher.length >= length:
                    break
                if matcher.prefix:
                    pairs = table.prefix_items(matcher.prefix)
                else:
                    pairs = table.items()
                for token_id in matcher.scan(pairs):
                    term_keys[matcher.term].append((length, token_id))

        return terms, term_keys

    def _read_postings(self, keys: Iterable[TokenKey]) -> Dict[TokenKey, List[Tuple[int, int]]]:
        by_length: Dict[int, List[int]] = defaultdict(list)
        for length, token_id in keys:
            by_length[length].append(token_id)

        postings = {}
        for length in sorted(by_length):
            shard = self.frequency_index(length)
            for token_id in sorted(set(by_length[length])):
                postings[(length, token_id)] = shard.postings(token_id)
        return postings

    def _live_entity_name(self, entity_id: int) -> Optional[str]:
        name = self.entities.get_name(entity_id)
        if name is None or not self.entity_exists(name):
            logger.debug(f"Skipping stale posting for entity {entity_id} ({name!r})")
            return None
        return name

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def histogram(self, min_freq: int = 1, max_freq: int = 0, min_length: int = 3) -> Dict[str, int]:
        """
        Total frequency of every token over all entities.

        Args:
            min_freq: Bottom frequency threshold
            max_freq: Upper frequency limit; no limit if max_freq <= min_freq
            min_length: Only shards of at least this length are counted

        Returns:
            {token: total} ordered by descending total, then by token
        """
        if max_freq <= min_freq:
            max_freq = 0

        totals: Dict[str, int] = {}
        for length in self.shards.lengths_at_least(min_length):
            table = self.token_table(length)
            for token_id, total in self.frequency_index(length).totals():
                if total < min_freq or (max_freq and total > max_freq):
                    continue
                token = table.get_name(token_id)
                if token is None:
                    continue
                totals[token] = totals.get(token, 0) + total
        return dict(sorted(totals.items(), key=lambda item: (-item[1], item[0])))

    def clear(self, require_lock: bool = True):
        """
        Delete every index file: token tables, postings, entity table,
        reverse index and the length cache. Missing files are fine.
        """
        with locked(self.lock, require_lock):
            for path in self.shards.shard_files():
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    raise IndexWriteError(f"Cannot delete {path}: {e}") from e
            self.entities.delete()
            self.reverse.delete()
            try:
                self.shards.cache.clear()
            except OSError as e:
                raise IndexWriteError(f"Cannot delete {self.shards.cache.path}: {e}") from e
            self._token_tables.clear()
        logger.info(f"Cleared fulltext index in {self.index_dir}")

    def entity_count(self) -> int:
        return len(self.entities)

    def shard_lengths(self) -> List[int]:
        return self.shards.list_lengths()
