"""Sync loop – downloads new album items from Google Photos into the media folder."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta

import requests
from google.auth.exceptions import GoogleAuthError

from postcard_sync.clients.gphotos import Album, GooglePhotosClient
from postcard_sync.config import SyncSettings
from postcard_sync.ledger import SyncedIdLedger
from postcard_sync.loop import PollingLoop
from postcard_sync.media_queue import MediaQueue

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counters for one pass over all configured albums."""

    downloaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    failed_albums: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"{len(self.downloaded)} downloaded, {len(self.skipped)} already synced, "
            f"{len(self.failed)} failed, {len(self.failed_albums)} album(s) skipped"
        )


class SyncLoop(PollingLoop):
    name = "SyncPhotos"

    def __init__(
        self,
        settings: SyncSettings,
        client: GooglePhotosClient,
        ledger: SyncedIdLedger | None = None,
        queue: MediaQueue | None = None,
        shutdown: threading.Event | None = None,
    ):
        super().__init__(shutdown)
        self._settings = settings
        self._client = client
        self.ledger = ledger or SyncedIdLedger(settings.synced_ids_file)
        self.queue = queue or MediaQueue(settings.media_folder)
        self.last_result: SyncResult | None = None

    def run_once(self) -> timedelta:
        if not self.ledger.loaded:
            self.ledger.load()
            self.queue.ensure_exists()

        self._client.authenticate()

        result = SyncResult()
        for title in self._settings.albums:
            if self.shutdown.is_set():
                break
            try:
                self._sync_album(title, result)
            except (requests.RequestException, GoogleAuthError) as exc:
                logger.error("Syncing album %s failed: %s", title, exc)
                result.failed_albums.append(title)
        self.last_result = result

        logger.info("Sync pass done: %s", result.summary())
        logger.info(
            "Waiting for %d minutes until next sync", self._settings.minutes_between_syncs
        )
        return self._settings.sync_interval

    def _resolve_album(self, title: str) -> Album | None:
        album = self._client.find_album_by_title(title)
        if album is None:
            logger.warning("Album %s not found, creating it", title)
            album = self._client.create_album(title)
        return album

    def _sync_album(self, title: str, result: SyncResult) -> None:
        album = self._resolve_album(title)
        if album is None:
            result.failed_albums.append(title)
            return

        for item in self._client.iter_album_items(album.id):
            if item.id in self.ledger:
                logger.warning("Item already synced %s", item.filename)
                result.skipped.append(item.id)
                continue

            logger.info("Downloading %s", item.filename)
            data = self._client.download_bytes(item)
            if not data:
                # Not recorded, so the next pass retries it
                logger.error("Downloaded item %s has 0 bytes, skip saving it", item.filename)
                result.failed.append(item.id)
                continue

            self.queue.put(item.filename, data, fallback=item.id)
            self.ledger.record(item.id)
            result.downloaded.append(item.id)
