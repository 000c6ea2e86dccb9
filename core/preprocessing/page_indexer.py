# core/preprocessing/page_indexer.py
"""
Page Indexer
============
Feeds entity text from the content store through the tokenizer into the
fulltext index. index_entity() keeps one entity current after it changed;
rebuild_index() clears the index and indexes the whole store.
"""
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

import psutil
from tqdm import tqdm

from core.fulltext.collection import FulltextCollection
from core.fulltext.exceptions import IndexAccessError, IndexWriteError
from .content_store import ContentStore
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)


def get_memory_usage() -> str:
    """Get current memory usage in human-readable format"""
    process = psutil.Process()
    mem_info = process.memory_info()
    return f"{mem_info.rss / (1024**2):.1f} MB"


@dataclass
class IndexStats:
    """Outcome of an indexing run."""
    indexed: int = 0
    removed: int = 0
    failed: int = 0
    elapsed: float = 0.0


class PageIndexer:
    """Connects a ContentStore, a Tokenizer and a FulltextCollection."""

    def __init__(self, collection: FulltextCollection, store: ContentStore,
                 tokenizer: Optional[Tokenizer] = None):
        self.collection = collection
        self.store = store
        self.tokenizer = tokenizer or Tokenizer(min_word_length=collection.min_word_length)

    @classmethod
    def from_paths(cls, index_dir=None, content_dir=None) -> "PageIndexer":
        """Build an indexer whose searches skip entities missing from the store."""
        store = ContentStore(content_dir)
        collection = FulltextCollection(index_dir, entity_exists=store.entity_exists)
        return cls(collection, store)

    def index_entity(self, name: str, require_lock: bool = True) -> bool:
        """
        Bring one entity's postings up to date with the store.

        Returns:
            True if the entity was indexed, False if it no longer exists and
            its postings were removed instead
        """
        if not self.store.entity_exists(name):
            self.collection.delete_entity(name, require_lock=require_lock)
            logger.info(f"Removed {name!r} from the index (no longer in the store)")
            return False

        text = self.store.fetch_entity_content(name)
        tokens = self.tokenizer.tokenize(text)
        self.collection.add_entity(name, tokens, require_lock=require_lock)
        return True

    def index_entities(self, names: Iterable[str], show_progress: bool = False) -> IndexStats:
        """Index several entities, each under its own lock; failures are counted and logged."""
        names = list(names)
        stats = IndexStats()
        start_time = time.time()
        progress_bar = tqdm(total=len(names), unit='pages', disable=not show_progress)

        for name in names:
            try:
                if self.index_entity(name):
                    stats.indexed += 1
                else:
                    stats.removed += 1
            except (IndexAccessError, IndexWriteError, OSError, ValueError) as e:
                # A lock timeout aborts the whole batch, anything else only this entity
                logger.error(f"Failed to index {name!r}: {e}")
                stats.failed += 1
            progress_bar.update(1)

        progress_bar.close()
        stats.elapsed = time.time() - start_time
        return stats

    def rebuild_index(self, show_progress: bool = True) -> IndexStats:
        """Clear the index and index every entity in the store."""
        logger.info(f"Rebuilding index in {self.collection.index_dir} (memory: {get_memory_usage()})")
        self.collection.clear()
        stats = self.index_entities(self.store.iter_entities(), show_progress=show_progress)
        logger.info(
            f"Rebuild finished: {stats.indexed:,} indexed, {stats.failed:,} failed "
            f"in {stats.elapsed:.1f}s (memory: {get_memory_usage()})"
        )
        return stats
