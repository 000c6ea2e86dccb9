# core/utilities/config_manager.py
import json
import logging
from config import (
    PathConfig,
    MIN_WORD_LENGTH,
    LENGTH_CACHE_TTL,
    LOCK_TIMEOUT,
    LOCK_STALE_AFTER
)

logger = logging.getLogger(__name__)

class ConfigManager:
    DEFAULT_SETTINGS = {
        'min_word_length': MIN_WORD_LENGTH,
        'length_cache_ttl': LENGTH_CACHE_TTL,
        'lock_timeout': LOCK_TIMEOUT,
        'lock_stale_after': LOCK_STALE_AFTER,
        'ascii_fold': True,
        'stopwords': []
    }

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.load()
        return cls._instance

    def load(self):
        self.config_path = PathConfig.get_config_path()
        try:
            if self.config_path.exists():
                with open(self.config_path, 'r') as f:
                    self.settings = json.load(f)

                # Ensure new settings exist
                for key, default in self.DEFAULT_SETTINGS.items():
                    if key not in self.settings:
                        self.settings[key] = default
            else:
                self.settings = self.DEFAULT_SETTINGS.copy()
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {self.config_path}, using defaults: {e}")
            self.settings = self.DEFAULT_SETTINGS.copy()

    def save(self):
        with open(self.config_path, 'w') as f:
            json.dump(self.settings, f, indent=2)

    def get(self, key, default=None):
        return self.settings.get(key, default)

    def set(self, key, value):
        self.settings[key] = value
        self.save()

    def get_min_word_length(self) -> int:
        return int(self.get('min_word_length', MIN_WORD_LENGTH))

    def set_min_word_length(self, value: int):
        value = int(value)
        if value < 1:
            raise ValueError("Minimum word length must be at least 1")
        self.set('min_word_length', value)

    def get_length_cache_ttl(self) -> float:
        """Seconds the cached shard length list stays fresh (0 disables the cache)."""
        return float(self.get('length_cache_ttl', LENGTH_CACHE_TTL))

    def set_length_cache_ttl(self, value: float):
        self.set('length_cache_ttl', max(0.0, float(value)))

    def get_lock_timeout(self) -> float:
        return float(self.get('lock_timeout', LOCK_TIMEOUT))

    def set_lock_timeout(self, value: float):
        value = float(value)
        if value < 0:
            raise ValueError("Lock timeout cannot be negative")
        self.set('lock_timeout', value)

    def get_lock_stale_after(self) -> float:
        return float(self.get('lock_stale_after', LOCK_STALE_AFTER))

    def get_ascii_fold(self) -> bool:
        return bool(self.get('ascii_fold', True))

    def set_ascii_fold(self, value):
        self.set('ascii_fold', bool(value))

    def get_stopwords(self):
        return list(self.get('stopwords', []))

    def set_stopwords(self, words):
        """Replace the stopword list (stored lowercased, deduplicated)."""
        self.set('stopwords', sorted({str(w).lower() for w in words}))

# Singleton access
config_manager = ConfigManager()
