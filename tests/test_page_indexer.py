"""
Tests for the content store, the page indexer and the command line.
"""

import pytest

from core.fulltext.collection import FulltextCollection
from core.preprocessing.content_store import ContentStore
from core.preprocessing.page_indexer import PageIndexer
from core.preprocessing.tokenizer import Tokenizer
import main


def write_page(content_dir, name, text):
    path = content_dir / f"{name}.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def pages(content_dir):
    write_page(content_dir, "wiki/start", "Hello world, hello again")
    write_page(content_dir, "other", "World peace")
    return content_dir


@pytest.fixture
def indexer(index_dir, pages):
    store = ContentStore(pages)
    collection = FulltextCollection(
        index_dir, entity_exists=store.entity_exists, min_word_length=2, lock_timeout=1.0
    )
    tokenizer = Tokenizer(min_word_length=2, ascii_fold=True, stopwords=[])
    return PageIndexer(collection, store, tokenizer)


class TestContentStore:

    def test_iter_entities_skips_attic(self, pages):
        write_page(pages, ".attic/other.1", "Old text")
        assert list(ContentStore(pages).iter_entities()) == ["other", "wiki/start"]

    def test_fetch_current_and_revision(self, pages):
        write_page(pages, ".attic/other.1", "Old text")
        store = ContentStore(pages)

        assert store.fetch_entity_content("other") == "World peace"
        assert store.fetch_entity_content("other", revision=1) == "Old text"
        with pytest.raises(FileNotFoundError):
            store.fetch_entity_content("missing")

    def test_entity_exists(self, pages):
        store = ContentStore(pages)
        assert store.entity_exists("wiki/start")
        assert not store.entity_exists("wiki/nope")
        assert not store.entity_exists("../secret")

    def test_missing_directory(self, tmp_path):
        assert list(ContentStore(tmp_path / "nope").iter_entities()) == []


class TestPageIndexer:

    def test_rebuild_indexes_every_page(self, indexer):
        stats = indexer.rebuild_index(show_progress=False)

        assert stats.indexed == 2
        assert stats.failed == 0
        lookup = indexer.collection.lookup_words
        assert lookup(["hello"]) == {"hello": {"wiki/start": 2}}
        assert lookup(["world"]) == {"world": {"wiki/start": 1, "other": 1}}

    def test_changed_page_is_reindexed(self, indexer, pages):
        indexer.rebuild_index(show_progress=False)
        write_page(pages, "other", "Peace and quiet")

        assert indexer.index_entity("other") is True
        lookup = indexer.collection.lookup_words
        assert lookup(["world"]) == {"world": {"wiki/start": 1}}
        assert lookup(["quiet"]) == {"quiet": {"other": 1}}

    def test_removed_page_is_dropped(self, indexer, pages):
        indexer.rebuild_index(show_progress=False)
        (pages / "other.txt").unlink()

        assert indexer.index_entity("other") is False
        assert indexer.collection.get_reverse_assignments("other") == {}
        assert indexer.collection.lookup_words(["peace"]) == {"peace": {}}

    def test_searches_skip_pages_missing_from_the_store(self, indexer, pages):
        indexer.rebuild_index(show_progress=False)
        (pages / "other.txt").unlink()

        # not reindexed yet, the posting is filtered at read time
        assert indexer.collection.lookup_words(["world"]) == {"world": {"wiki/start": 1}}

    def test_index_entities_counts_outcomes(self, indexer):
        stats = indexer.index_entities(["other", "ghost", "wiki/start"])
        assert (stats.indexed, stats.removed, stats.failed) == (2, 1, 0)

    def test_unreadable_page_counts_as_failure(self, indexer, pages, monkeypatch):
        (pages / "broken.txt").mkdir()
        monkeypatch.setattr(indexer.store, "entity_exists", lambda name: True)

        stats = indexer.index_entities(["broken", "other"])
        assert (stats.indexed, stats.failed) == (1, 1)

    def test_from_paths(self, index_dir, pages):
        indexer = PageIndexer.from_paths(index_dir, pages)
        assert indexer.collection.index_dir == index_dir
        assert indexer.store.content_dir == pages


class TestCommandLine:

    def run(self, index_dir, pages, *args):
        return main.main(["--index-dir", str(index_dir), "--content-dir", str(pages), *args])

    def test_rebuild_then_search(self, index_dir, pages, capsys):
        assert self.run(index_dir, pages, "rebuild", "--quiet") == 0
        assert self.run(index_dir, pages, "search", "hel*") == 0

        out = capsys.readouterr().out
        assert "Indexed 2 pages" in out
        assert "hel* (1 pages)" in out
        assert "wiki/start" in out

    def test_search_without_matches(self, index_dir, pages, capsys):
        self.run(index_dir, pages, "rebuild", "--quiet")
        assert self.run(index_dir, pages, "search", "nothing") == 0
        assert "No matches for: nothing" in capsys.readouterr().out

    def test_histogram_and_clear(self, index_dir, pages, capsys):
        self.run(index_dir, pages, "rebuild", "--quiet")
        capsys.readouterr()

        assert self.run(index_dir, pages, "histogram", "--min", "2") == 0
        out = capsys.readouterr().out
        assert "hello" in out
        assert "world" in out
        assert "peace" not in out

        assert self.run(index_dir, pages, "clear") == 0
        assert not (index_dir / "entities.idx").exists()

    def test_lock_error_exit_code(self, index_dir, pages, monkeypatch, capsys):
        index_dir.mkdir()
        (index_dir / "index.lock").mkdir()
        monkeypatch.setattr(
            "core.utilities.config_manager.config_manager.get_lock_timeout", lambda: 0
        )

        assert self.run(index_dir, pages, "clear") == 2
        assert "IndexLockError" in capsys.readouterr().out
