# core/preprocessing/tokenizer.py
"""
Tokenizer
=========
Deterministic tokenization shared by the indexer and by search queries.
Documents go through tokenize(); search input goes through tokenize_query(),
which keeps a leading and/or trailing '*' on each term.
"""
import re
from typing import Iterable, List, Optional

import unidecode

from core.fulltext.measure import token_length
from core.fulltext.wildcard import WILDCARD, is_numeric
from core.utilities.config_manager import config_manager

# CJK ideographs, kana and hangul are indexed one character at a time
_ASIAN = re.compile(
    r"([\u1100-\u11ff\u2e80-\u2fdf\u3040-\u30ff\u3100-\u31ff\u3400-\u4dbf"
    r"\u4e00-\u9fff\uac00-\ud7af\uf900-\ufaff])"
)
# Latin letters up to the IPA block are folded to ASCII, everything else is kept
_LATIN_LIMIT = 0x0250


def fold_latin(text: str) -> str:
    """Fold accented Latin letters to ASCII (eg. "Café" → "Cafe"), leaving other scripts intact."""
    return "".join(
        unidecode.unidecode(ch) if 0x80 <= ord(ch) < _LATIN_LIMIT else ch
        for ch in text
    )


class Tokenizer:
    """Split text into index tokens."""

    def __init__(self, min_word_length: Optional[int] = None, ascii_fold: Optional[bool] = None,
                 stopwords: Optional[Iterable[str]] = None):
        """
        Args:
            min_word_length: Tokens measuring less are dropped (numbers excepted)
            ascii_fold: Fold accented Latin letters to ASCII
            stopwords: Words that are never indexed
        """
        self.min_word_length = (
            min_word_length if min_word_length is not None
            else config_manager.get_min_word_length()
        )
        self.ascii_fold = ascii_fold if ascii_fold is not None else config_manager.get_ascii_fold()
        words = stopwords if stopwords is not None else config_manager.get_stopwords()
        self.stopwords = {w.lower() for w in words}

    def normalize(self, text: str, keep_wildcards: bool = False) -> str:
        """
        Normalize text before splitting:
        - Lowercase
        - Fold accented Latin letters to ASCII (optional)
        - Put spaces around CJK characters so each one is its own token
        - Replace punctuation with spaces (keeping '*' for queries)
        - Collapse whitespace
        """
        if not text:
            return ""
        text = text.lower()
        if self.ascii_fold:
            text = fold_latin(text)
        text = _ASIAN.sub(r" \1 ", text)
        if keep_wildcards:
            text = re.sub(r"[^\w*]+", " ", text)
        else:
            text = re.sub(r"[^\w]+", " ", text)
        text = text.replace("_", " ")
        return re.sub(r"\s+", " ", text).strip()

    def is_indexable(self, token: str) -> bool:
        if not token or token in self.stopwords:
            return False
        return token_length(token) >= self.min_word_length or is_numeric(token)

    def tokenize(self, text: str) -> List[str]:
        """Tokenize document text; repeated tokens are kept so they can be counted."""
        return [t for t in self.normalize(text).split() if self.is_indexable(t)]

    def tokenize_query(self, text: str) -> List[str]:
        """
        Tokenize search input, keeping one '*' at either end of a term.

        Inner '*' characters split the term. Length filtering is left to the
        index lookup, which knows how wildcards change the rules.
        """
        terms = []
        for raw in self.normalize(text, keep_wildcards=True).split():
            leading = raw.startswith(WILDCARD)
            trailing = raw.endswith(WILDCARD) and len(raw) > 1
            parts = [p for p in raw.split(WILDCARD) if p]
            for i, part in enumerate(parts):
                if part in self.stopwords:
                    continue
                term = part
                if leading and i == 0:
                    term = WILDCARD + term
                if trailing and i == len(parts) - 1:
                    term = term + WILDCARD
                if term not in terms:
                    terms.append(term)
        return terms
