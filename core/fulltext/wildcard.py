# core/fulltext/wildcard.py
"""
Query term parsing and wildcard matching.

A query term is a pre-tokenized word with an optional '*' at its start,
its end, or both. The matcher knows nothing about index files: it is handed
(token, id) pairs and returns the ids that match.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Pattern, Tuple

WILDCARD = "*"
_NUMERIC = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

def is_numeric(text: str) -> bool:
    """True for plain numbers such as '42', '3.14' or '1e6'."""
    return bool(_NUMERIC.fullmatch(text))


@dataclass
class WildcardMatcher:
    """A parsed query term."""
    term: str
    base: str
    length: int
    leading: bool = False
    trailing: bool = False
    pattern: Optional[Pattern] = field(default=None, repr=False)

    @classmethod
    def parse(cls, term: str, measure: Callable[[str], int]) -> "WildcardMatcher":
        """
        Strip wildcard markers from a term.

        Args:
            term: Query term, eg. "test*", "*ing" or "*tes*"
            measure: Token length function used for shard assignment
        """
        base = term
        leading = trailing = False
        if base.startswith(WILDCARD):
            base = base[1:]
            leading = True
        if base.endswith(WILDCARD):
            base = base[:-1]
            trailing = True

        pattern = None
        if leading or trailing:
            caret = "" if leading else "^"
            dollar = "" if trailing else "$"
            pattern = re.compile(caret + re.escape(base) + dollar)
        return cls(term, base, measure(base), leading, trailing, pattern)

    @property
    def is_wildcard(self) -> bool:
        return self.leading or self.trailing

    @property
    def prefix(self) -> Optional[str]:
        """Literal prefix every match starts with, when the term is anchored at the start."""
        if self.leading or not self.base:
            return None
        return self.base

    def is_searchable(self, min_length: int) -> bool:
        """Exact terms shorter than the minimum are ignored unless numeric."""
        if self.is_wildcard:
            return bool(self.base)
        return bool(self.base) and (self.length >= min_length or is_numeric(self.base))

    def matches(self, token: str) -> bool:
        if self.pattern is None:
            return token == self.base
        return self.pattern.search(token) is not None

    def scan(self, candidates: Iterable[Tuple[str, int]]) -> List[int]:
        """Return the ids of all candidate (token, id) pairs that match."""
        return [token_id for token, token_id in candidates if self.matches(token)]
