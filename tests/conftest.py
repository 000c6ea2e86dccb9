"""
Test configuration and fixtures.

Puts the project root on sys.path and provides index/content directories
under pytest's tmp_path.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from core.fulltext.collection import FulltextCollection


@pytest.fixture
def index_dir(tmp_path):
    return tmp_path / "index"


@pytest.fixture
def content_dir(tmp_path):
    path = tmp_path / "pages"
    path.mkdir()
    return path


@pytest.fixture
def collection(index_dir):
    return FulltextCollection(
        index_dir,
        min_word_length=2,
        length_cache_ttl=0,
        lock_timeout=1.0
    )


def snapshot(directory):
    """Map file name -> bytes for every file in an index directory."""
    return {
        path.name: path.read_bytes()
        for path in sorted(Path(directory).iterdir())
        if path.is_file()
    }
