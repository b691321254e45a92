"""The media folder used as a FIFO queue between the sync and dispatch loops.

The directory listing ordered by modification time *is* the queue; there is
no index file. Contract: only the sync loop creates files, only the dispatch
loop deletes them, and a single daemon instance owns the folder.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Downloads are written under this prefix and renamed into place when complete
PARTIAL_PREFIX = ".partial-"


class MediaQueue:
    def __init__(self, folder: str | Path):
        self.folder = Path(folder)

    def ensure_exists(self) -> None:
        if not self.folder.is_dir():
            logger.info("Cannot find folder '%s', creating it", self.folder)
            self.folder.mkdir(parents=True, exist_ok=True)

    def files(self) -> list[Path]:
        """Regular files in the folder, oldest modification time first."""
        if not self.folder.is_dir():
            return []
        entries = [
            p for p in self.folder.iterdir()
            if p.is_file() and not p.name.startswith(PARTIAL_PREFIX)
        ]
        return sorted(entries, key=lambda p: (p.stat().st_mtime, p.name))

    def oldest(self) -> Path | None:
        files = self.files()
        return files[0] if files else None

    def __len__(self) -> int:
        return len(self.files())

    def put(self, filename: str, data: bytes, fallback: str = "download") -> Path:
        """Write *data* as ``folder/filename``, replacing any same-named file.

        The bytes go to a hidden partial file first and are renamed over the
        final name, so the queue never lists a half-written file.
        """
        path = self.folder / safe_name(filename, fallback)
        partial = path.with_name(PARTIAL_PREFIX + path.name)
        try:
            partial.write_bytes(data)
            os.replace(partial, path)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        return path

    def remove(self, path: Path) -> None:
        path.unlink(missing_ok=True)


def safe_name(filename: str, fallback: str) -> str:
    """Basename of *filename*, or of *fallback* when that is empty or ``.``/``..``."""
    # Keep only the basename so a remote filename cannot escape the folder
    for candidate in (filename, fallback):
        name = Path(candidate).name
        if name not in ("", ".", ".."):
            return name
    return "download"
