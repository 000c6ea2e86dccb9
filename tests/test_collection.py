"""
Tests for FulltextCollection: incremental updates, lookups and maintenance.
"""

import os

import pytest

from conftest import snapshot
from core.fulltext.collection import FulltextCollection
from core.fulltext.exceptions import IndexAccessError, IndexLockError, IndexWriteError
from core.fulltext.frequency_index import FrequencyIndex


class TestAddEntity:

    def test_round_trip(self, collection):
        collection.add_entity("page1", ["testing", "tester", "tester", "cat"])

        result = collection.lookup_words(["testing", "tester", "cat"])

        assert result == {
            "testing": {"page1": 1},
            "tester": {"page1": 2},
            "cat": {"page1": 1},
        }

    def test_on_disk_layout(self, collection, index_dir):
        collection.add_entity("a", ["dog"])
        collection.add_entity("b", ["dog", "dog", "cats"])

        assert (index_dir / "entities.idx").read_text() == "a\nb\n"
        assert (index_dir / "tokens-3.idx").read_text() == "dog\n"
        assert (index_dir / "tokens-4.idx").read_text() == "cats\n"
        assert (index_dir / "postings-3.idx").read_text() == "0*1:1*2\n"
        assert (index_dir / "postings-4.idx").read_text() == "1*1\n"
        assert (index_dir / "reverse.idx").read_text() == "3*0\n3*0:4*0\n"

    def test_idempotent(self, collection, index_dir):
        tokens = ["alpha", "beta", "beta", "中文"]
        collection.add_entity("page", tokens)
        first = snapshot(index_dir)

        collection.add_entity("page", tokens)

        assert snapshot(index_dir) == first

    def test_removal(self, collection, index_dir):
        collection.add_entity("page", ["alpha", "beta"])
        collection.add_entity("other", ["beta"])

        collection.add_entity("page", [])

        assert collection.get_reverse_assignments("page") == {}
        assert collection.lookup_words(["alpha", "beta"]) == {
            "alpha": {},
            "beta": {"other": 1},
        }
        assert (index_dir / "postings-5.idx").read_text() == "\n"
        assert (index_dir / "postings-4.idx").read_text() == "1*1\n"

    def test_update_removes_tokens_no_longer_present(self, collection):
        collection.add_entity("page", ["alpha", "beta", "beta"])

        collection.add_entity("page", ["beta", "gamma"])

        assert collection.lookup_words(["alpha", "beta", "gamma"]) == {
            "alpha": {},
            "beta": {"page": 1},
            "gamma": {"page": 1},
        }
        beta = collection.token_table(4).lookup("beta")
        gamma = collection.token_table(5).lookup("gamma")
        assert collection.get_reverse_assignments("page") == {(4, beta): 0, (5, gamma): 0}

    def test_reverse_assignments_are_zeroed(self, collection):
        collection.add_entity("page", ["cat", "dog", "cat"])
        assert collection.get_reverse_assignments("page") == {(3, 0): 0, (3, 1): 0}
        assert collection.get_reverse_assignments("unknown") == {}

    def test_write_failure_keeps_reverse_record(self, collection, index_dir, monkeypatch):
        collection.add_entity("page", ["alpha"])
        before = (index_dir / "reverse.idx").read_bytes()

        def failing_save(self):
            raise IndexWriteError("disk full")

        monkeypatch.setattr(FrequencyIndex, "save", failing_save)
        with pytest.raises(IndexWriteError):
            collection.add_entity("page", ["bravo"])

        assert (index_dir / "reverse.idx").read_bytes() == before
        assert not collection.lock.held
        assert not (index_dir / "index.lock").exists()

    def test_failed_reverse_write_does_not_clobber_other_writers(self, index_dir, monkeypatch):
        first = FulltextCollection(index_dir, min_word_length=2)
        second = FulltextCollection(index_dir, min_word_length=2)
        first.add_entity("pa", ["alpha"])

        real_replace = os.replace

        def replace(src, dst):
            if os.path.basename(dst) == "reverse.idx":
                raise OSError("disk full")
            return real_replace(src, dst)

        monkeypatch.setattr(os, "replace", replace)
        with pytest.raises(IndexWriteError):
            first.add_entity("pa", ["bravo"])
        monkeypatch.undo()

        second.add_entity("pb", ["charlie"])
        first.add_entity("pc", ["alpha", "alpha"])

        assert second.get_reverse_assignments("pb") == {(7, 0): 0}
        second.delete_entity("pb")
        assert second.lookup_words(["charlie"]) == {"charlie": {}}

        # retrying brings the failed entity's reverse record up to date
        first.add_entity("pa", ["bravo"])
        assert first.lookup_words(["alpha", "bravo"]) == {
            "alpha": {"pc": 2},
            "bravo": {"pa": 1},
        }

    def test_corrupt_posting_row(self, collection, index_dir):
        collection.add_entity("page", ["alpha"])
        (index_dir / "postings-5.idx").write_text("garbage\n")

        with pytest.raises(IndexAccessError):
            collection.lookup_words(["alpha"])
        with pytest.raises(IndexAccessError):
            collection.add_entity("page", ["alpha"])
        assert not collection.lock.held

    def test_corrupt_reverse_record(self, collection, index_dir):
        collection.add_entity("page", ["alpha"])
        (index_dir / "reverse.idx").write_text("junk\n")

        with pytest.raises(IndexAccessError):
            collection.get_reverse_assignments("page")

    def test_unencodable_tokens(self, collection):
        with pytest.raises(ValueError):
            collection.add_entity("page", ["\ud800"])
        assert not collection.lock.held
        assert collection.lookup_words(["\ud800"]) == {}

    def test_lock_timeout(self, index_dir):
        index_dir.mkdir()
        (index_dir / "index.lock").mkdir()
        collection = FulltextCollection(index_dir, min_word_length=2, lock_timeout=0)

        with pytest.raises(IndexLockError):
            collection.add_entity("page", ["alpha"])
        assert not (index_dir / "entities.idx").exists()

    def test_entity_names_must_be_single_line(self, collection):
        with pytest.raises(ValueError):
            collection.add_entity("bad\nname", ["alpha"])


class TestDeleteEntity:

    def test_delete_known_entity(self, collection):
        collection.add_entity("page", ["alpha"])
        assert collection.delete_entity("page") is True
        assert collection.lookup_words(["alpha"]) == {"alpha": {}}

    def test_delete_unknown_entity_creates_nothing(self, collection, index_dir):
        assert collection.delete_entity("ghost") is False
        assert not (index_dir / "entities.idx").exists()


class TestLookupWords:

    def test_wildcards(self, collection):
        collection.add_entity("e", ["testing", "tester", "tester", "cat"])

        assert collection.lookup_words(["test*"]) == {"test*": {"e": 3}}
        assert collection.lookup_words(["*ing"]) == {"*ing": {"e": 1}}
        assert collection.lookup_words(["*est*"]) == {"*est*": {"e": 3}}

    def test_wildcard_matches_its_bare_base(self, collection):
        collection.add_entity("e", ["test", "testing"])
        assert collection.lookup_words(["test*"]) == {"test*": {"e": 2}}
        assert collection.lookup_words(["*test"]) == {"*test": {"e": 1}}

    def test_hits_aggregate_per_term_and_entity(self, collection):
        collection.add_entity("a", ["dog", "dogs"])
        collection.add_entity("b", ["dogs", "dogs"])

        result = collection.lookup_words(["dog*", "dogs"])

        assert result == {
            "dog*": {"a": 2, "b": 2},
            "dogs": {"a": 1, "b": 2},
        }

    def test_short_terms_are_dropped(self, collection):
        collection.add_entity("e", ["a", "7", "ok"])

        assert collection.lookup_words(["a"]) == {}
        assert collection.lookup_words(["7"]) == {"7": {"e": 1}}
        assert collection.lookup_words(["a", "ok"]) == {"a": {}, "ok": {"e": 1}}

    def test_no_match_returns_empty(self, collection):
        assert collection.lookup_words(["nothing"]) == {}
        collection.add_entity("e", ["something"])
        assert collection.lookup_words(["nothing", "none*"]) == {}

    def test_wide_characters_use_their_own_shard(self, collection):
        collection.add_entity("e", ["中", "abc"])

        assert collection.shard_lengths() == [3, 6]
        assert collection.lookup_words(["中"]) == {"中": {"e": 1}}

    def test_stale_entities_are_skipped(self, index_dir):
        collection = FulltextCollection(
            index_dir, entity_exists=lambda name: name != "gone", min_word_length=2
        )
        collection.add_entity("gone", ["apple"])
        collection.add_entity("kept", ["apple"])

        assert collection.lookup_words(["apple"]) == {"apple": {"kept": 1}}

    def test_readers_see_other_writers(self, index_dir):
        writer = FulltextCollection(index_dir, min_word_length=2)
        reader = FulltextCollection(index_dir, min_word_length=2)

        writer.add_entity("one", ["shared"])
        assert reader.lookup_words(["shared"]) == {"shared": {"one": 1}}

        writer.add_entity("two", ["shared", "shared"])
        assert reader.lookup_words(["shared"]) == {"shared": {"one": 1, "two": 2}}


class TestMaintenance:

    def test_histogram(self, collection):
        collection.add_entity("a", ["cat", "cat", "dog"])
        collection.add_entity("b", ["dog"])

        assert collection.histogram(1, 0, 3) == {"cat": 2, "dog": 2}

    def test_histogram_bounds(self, collection):
        collection.add_entity("a", ["cat", "cat", "dog", "cow", "horse"])
        collection.add_entity("b", ["dog", "dog"])

        assert list(collection.histogram(1, 0, 3)) == ["dog", "cat", "cow", "horse"]
        assert collection.histogram(2, 0, 3) == {"dog": 3, "cat": 2}
        # max <= min disables the upper bound
        assert collection.histogram(2, 2, 3) == {"dog": 3, "cat": 2}
        assert collection.histogram(0, 1, 3) == {"cow": 1, "horse": 1}
        assert collection.histogram(1, 0, 4) == {"horse": 1}

    def test_clear(self, collection, index_dir):
        collection.add_entity("page", ["alpha", "beta"])
        (index_dir / "lengths.cache").write_text("{}")

        collection.clear()

        assert list(index_dir.iterdir()) == []
        assert collection.lookup_words(["alpha"]) == {}
        collection.add_entity("fresh", ["alpha"])
        assert collection.entities.lookup("fresh") == 0

    def test_clear_empty_index(self, collection, index_dir):
        collection.clear()
        assert not (index_dir / "entities.idx").exists()

    def test_token_length_is_exposed(self, collection):
        assert collection.token_length("abc") == 3
        assert collection.token_length("中") == 6
