# core/fulltext/reverse_index.py
"""Per-entity record of the (length, token_id) pairs currently posted (reverse.idx)."""
from pathlib import Path
from typing import Dict, Tuple

from .exceptions import IndexAccessError
from .row_file import RowFile
from .tuple_ops import format_assignments, parse_assignments


class ReverseIndex:
    """Reverse assignments, one row per entity id."""

    def __init__(self, path: Path):
        self.rows = RowFile(path)

    def get_assignments(self, entity_id: int) -> Dict[Tuple[int, int], int]:
        """Return {(length, token_id): 0} for everything posted for the entity."""
        self.rows.refresh()
        try:
            return parse_assignments(self.rows.get(entity_id))
        except ValueError as e:
            raise IndexAccessError(f"Corrupt row {entity_id} in {self.rows.path}: {e}") from e

    def save_assignments(self, entity_id: int, frequencies: Dict[Tuple[int, int], int]):
        """Persist the non-zero keys of `frequencies` as the entity's record."""
        self.rows.refresh()
        self.rows.set(entity_id, format_assignments(frequencies))
        self.rows.save()

    def delete(self):
        self.rows.delete()
