"""Append-only ledger of Google Photos item IDs that were already downloaded."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class SyncedIdLedger:
    """In-memory set of synced IDs backed by a one-ID-per-line text file.

    Only the sync loop writes the file. IDs are never removed, so the file
    on disk is the source of truth across restarts.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._ids: set[str] = set()
        self._loaded = False

    def load(self) -> None:
        """Create the file if missing, then read every ID it holds."""
        if not self.path.exists():
            logger.info("Ledger %s not found, creating it", self.path)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch()
        with open(self.path, encoding="utf-8") as fh:
            self._ids = {line.strip() for line in fh if line.strip()}
        self._loaded = True
        logger.debug("Loaded %d synced id(s) from %s", len(self._ids), self.path)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def record(self, item_id: str) -> None:
        """Add *item_id* to the set, then append it to the file."""
        if item_id in self._ids:
            return
        self._ids.add(item_id)
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(item_id + "\n")
