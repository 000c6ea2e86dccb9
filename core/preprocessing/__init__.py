# core/preprocessing/__init__.py
"""
Preprocessing Package
"""
from .content_store import ContentStore
from .page_indexer import PageIndexer, IndexStats
from .tokenizer import Tokenizer

__all__ = [
    'ContentStore',
    'PageIndexer',
    'IndexStats',
    'Tokenizer'
]
