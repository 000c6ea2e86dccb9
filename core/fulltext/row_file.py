# core/fulltext/row_file.py
"""
Line-oriented index files.

Every index file is plain UTF-8 text with one record per line; the line
number (0-based) is the record id. A RowFile loads the whole file, lets the
caller change rows in memory and writes everything back in one atomic
replace, so readers never observe a half-written file.
"""
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from .exceptions import IndexAccessError, IndexWriteError

logger = logging.getLogger(__name__)


class RowFile:
    """One index file held in memory between load() and save()."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._rows: Optional[List[str]] = None
        self._signature: Optional[Tuple[int, int, int]] = None
        self._dirty = False

    def __repr__(self):
        return f"RowFile({self.path.name})"

    @property
    def rows(self) -> List[str]:
        if self._rows is None:
            self.load()
        return self._rows

    def _stat_signature(self) -> Optional[Tuple[int, int, int]]:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise IndexAccessError(f"Cannot stat {self.path}: {e}") from e
        return stat.st_mtime_ns, stat.st_size, stat.st_ino

    def load(self) -> List[str]:
        """Read the file from disk. A missing file is an empty table."""
        signature = self._stat_signature()
        try:
            with open(self.path, "r", encoding="utf-8", newline="\n") as f:
                content = f.read()
        except FileNotFoundError:
            content = ""
        except (OSError, UnicodeDecodeError) as e:
            raise IndexAccessError(f"Cannot read {self.path}: {e}") from e

        rows = content.split("\n")
        if rows and rows[-1] == "":
            rows.pop()
        self._rows = rows
        self._signature = signature
        self._dirty = False
        return self._rows

    def is_stale(self) -> bool:
        """True when the file on disk changed since it was loaded."""
        return self._rows is None or self._stat_signature() != self._signature

    def refresh(self) -> bool:
        """Reload if another writer changed the file. Returns True on reload."""
        if self._dirty or not self.is_stale():
            return False
        self.load()
        return True

    def __len__(self):
        return len(self.rows)

    def get(self, row_id: int) -> str:
        """Return a row, or an empty string past the end of the file."""
        rows = self.rows
        if 0 <= row_id < len(rows):
            return rows[row_id]
        return ""

    def set(self, row_id: int, value: str):
        """Change a row in memory, padding with empty rows as needed."""
        if "\n" in value:
            raise ValueError(f"Index rows cannot contain newlines: {value!r}")
        rows = self.rows
        if row_id >= len(rows):
            rows.extend([""] * (row_id + 1 - len(rows)))
        if rows[row_id] != value:
            rows[row_id] = value
            self._dirty = True

    def append(self, value: str) -> int:
        """
        Append a row directly to the file and return its id.

        Appending does not rewrite the file, which keeps identifier tables
        append-only on disk.
        """
        if "\n" in value:
            raise ValueError(f"Index rows cannot contain newlines: {value!r}")
        rows = self.rows
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="\n") as f:
                f.write(value + "\n")
        except OSError as e:
            raise IndexWriteError(f"Cannot append to {self.path}: {e}") from e
        rows.append(value)
        self._signature = self._stat_signature()
        return len(rows) - 1

    def save(self):
        """Write all rows back atomically (temp file + rename)."""
        if not self._dirty:
            return
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8", newline="\n") as f:
                f.write("".join(row + "\n" for row in self._rows))
            os.replace(temp_path, self.path)
        except OSError as e:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove {temp_path}")
            # Forget the unsaved rows; the next access reloads from disk
            self._rows = None
            self._signature = None
            self._dirty = False
            raise IndexWriteError(f"Cannot write {self.path}: {e}") from e
        self._signature = self._stat_signature()
        self._dirty = False
        logger.debug(f"Saved {len(self._rows)} rows to {self.path.name}")

    def delete(self):
        """Remove the file from disk; a missing file is not an error."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise IndexWriteError(f"Cannot delete {self.path}: {e}") from e
        self._rows = None
        self._signature = None
        self._dirty = False
