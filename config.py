# config.py
import os
import tomllib
from pathlib import Path

def _get_version():
    """Read flatsearch's version from pyproject.toml"""
    try:
        pyproject_path = Path(__file__).parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "unknown"  # Fallback if pyproject.toml is missing

VERSION = _get_version()
MIN_WORD_LENGTH = 2         # Shorter tokens are not indexed (numbers excepted)
LENGTH_CACHE_TTL = 0        # Seconds the shard length list stays fresh; 0 = always rescan
LOCK_TIMEOUT = 5.0          # Seconds to wait for the index lock
LOCK_STALE_AFTER = 300      # A lock older than this is considered abandoned
LOCK_RETRY_INTERVAL = 0.1
FRAME_WIDTH = 70 # For CLI UI headings

# File names inside the index directory
ENTITY_TABLE = "entities.idx"
REVERSE_TABLE = "reverse.idx"
LENGTHS_CACHE = "lengths.cache"
LOCK_DIR = "index.lock"
TOKEN_TABLE_PREFIX = "tokens-"
POSTINGS_PREFIX = "postings-"
INDEX_SUFFIX = ".idx"

class PathConfig:
    BASE_DIR = Path(__file__).parent
    DATA = BASE_DIR / "data"

    @classmethod
    def get_index_dir(cls):
        """Directory holding all index files (FLATSEARCH_INDEX_DIR overrides)"""
        override = os.environ.get("FLATSEARCH_INDEX_DIR")
        return Path(override) if override else cls.DATA / "index"

    @classmethod
    def get_content_dir(cls):
        """Directory of raw entity text files (FLATSEARCH_CONTENT_DIR overrides)"""
        override = os.environ.get("FLATSEARCH_CONTENT_DIR")
        return Path(override) if override else cls.DATA / "pages"

    @classmethod
    def get_config_path(cls):
        return cls.BASE_DIR / "config.json"
