# core/fulltext/frequency_index.py
"""Posting rows of one token length shard (postings-<length>.idx)."""
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from .exceptions import IndexAccessError
from .row_file import RowFile
from .tuple_ops import parse_tuples, update_tuple

logger = logging.getLogger(__name__)


class FrequencyIndex:
    """
    One posting row per token id of a shard.

    Row N holds the (entity_id, frequency) pairs of token N from the
    matching tokens-<length>.idx table.
    """

    def __init__(self, path: Path, length: int):
        self.length = length
        self.rows = RowFile(path)

    def __repr__(self):
        return f"FrequencyIndex(length={self.length})"

    def _parse(self, token_id: int, row: str) -> List[Tuple[int, int]]:
        try:
            return parse_tuples(row)
        except ValueError as e:
            raise IndexAccessError(f"Corrupt row {token_id} in {self.rows.path}: {e}") from e

    def postings(self, token_id: int) -> List[Tuple[int, int]]:
        """Return the (entity_id, frequency) pairs posted for a token."""
        return self._parse(token_id, self.rows.get(token_id))

    def update(self, token_id: int, entity_id: int, freq: int):
        """Set one entity's frequency in a token's row (0 removes it). Call save() after."""
        row = self.rows.get(token_id)
        self._parse(token_id, row)
        new_row = update_tuple(row, entity_id, freq)
        if new_row != row:
            self.rows.set(token_id, new_row)

    def update_many(self, entity_id: int, frequencies: Dict[int, int]):
        for token_id, freq in frequencies.items():
            self.update(token_id, entity_id, freq)

    def save(self):
        self.rows.save()

    def totals(self) -> Iterator[Tuple[int, int]]:
        """Yield (token_id, summed frequency over all entities) for non-empty rows."""
        for token_id, row in enumerate(self.rows.rows):
            if not row:
                continue
            total = sum(freq for _, freq in self._parse(token_id, row))
            if total:
                yield token_id, total
