# core/preprocessing/content_store.py
"""
Directory-backed raw content store.

Each entity is a UTF-8 text file; its name is the path relative to the
content directory without the .txt suffix, using '/' as separator
(eg. pages/wiki/start.txt → "wiki/start"). Older revisions live in
<content_dir>/.attic/<name>.<revision>.txt.
"""
from pathlib import Path
from typing import Iterator, Optional

from config import PathConfig

CONTENT_SUFFIX = ".txt"
ATTIC_DIR = ".attic"


class ContentStore:
    """Supplies entity text and answers whether an entity still exists."""

    def __init__(self, content_dir: Optional[Path] = None):
        self.content_dir = Path(content_dir) if content_dir else PathConfig.get_content_dir()

    def _path(self, name: str, revision: Optional[int] = None) -> Path:
        if not name or name.startswith("/") or ".." in name.split("/"):
            raise ValueError(f"Invalid entity name: {name!r}")
        if revision is None:
            return self.content_dir / f"{name}{CONTENT_SUFFIX}"
        return self.content_dir / ATTIC_DIR / f"{name}.{int(revision)}{CONTENT_SUFFIX}"

    def entity_exists(self, name: str) -> bool:
        try:
            return self._path(name).is_file()
        except ValueError:
            return False

    def fetch_entity_content(self, name: str, revision: Optional[int] = None) -> str:
        """
        Return the text of an entity.

        Raises:
            FileNotFoundError: entity (or the requested revision) does not exist
        """
        return self._path(name, revision).read_text(encoding="utf-8", errors="replace")

    def iter_entities(self) -> Iterator[str]:
        """Yield every current entity name in sorted order."""
        if not self.content_dir.is_dir():
            return
        for path in sorted(self.content_dir.rglob(f"*{CONTENT_SUFFIX}")):
            relative = path.relative_to(self.content_dir)
            if relative.parts[0] == ATTIC_DIR:
                continue
            yield relative.with_suffix("").as_posix()
