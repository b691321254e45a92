import os
from pathlib import Path

import pytest
import requests

from postcard_sync.clients.gphotos import Album, AuthenticationError, MediaItem
from postcard_sync.clients.postcards import PostcardSender
from postcard_sync.config import SyncSettings


class FakePhotosClient:
    """In-memory stand-in for GooglePhotosClient."""

    def __init__(self, albums=None, payloads=None):
        # title -> list[MediaItem]
        self.albums = dict(albums or {})
        # item id -> bytes (missing id means a failed download)
        self.payloads = dict(payloads or {})
        self.created = []
        self.downloads = []
        self.auth_calls = 0
        self.fail_auth = False
        self.refuse_create = False
        self.broken_albums = set()

    def authenticate(self):
        self.auth_calls += 1
        if self.fail_auth:
            raise AuthenticationError("login failed!")

    def find_album_by_title(self, title):
        if title in self.broken_albums:
            raise requests.ConnectionError("connection reset")
        if title in self.albums:
            return Album(id=f"album-{title}", title=title)
        return None

    def create_album(self, title):
        if self.refuse_create:
            return None
        self.created.append(title)
        self.albums[title] = []
        return Album(id=f"album-{title}", title=title)

    def iter_album_items(self, album_id):
        title = album_id[len("album-"):]
        yield from self.albums[title]

    def download_bytes(self, item):
        self.downloads.append(item.id)
        return self.payloads.get(item.id)


class FakeSender(PostcardSender):
    """Returns canned outcomes instead of running a process."""

    def __init__(self, outcome):
        super().__init__()
        self.outcome = outcome
        self.sent = []

    def send(self, picture):
        self.sent.append(picture)
        return self.outcome


def make_item(item_id, filename=None):
    return MediaItem(
        id=item_id,
        filename=filename or f"{item_id}.jpg",
        base_url=f"https://lh3.googleusercontent.com/{item_id}",
        mime_type="image/jpeg",
    )


def touch(path: Path, data: bytes = b"x", mtime: float | None = None) -> Path:
    path.write_bytes(data)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def media_dir(tmp_path):
    folder = tmp_path / "media"
    folder.mkdir()
    return folder


@pytest.fixture
def sync_env(tmp_path):
    return {
        "GPSC_USER": "someone@example.com",
        "GPSC_CLIENTID": "client-id.apps.googleusercontent.com",
        "GPSC_CLIENTSECRET": "s3cr3t",
        "GPSC_MEDIAFOLDERPATH": str(tmp_path / "media"),
        "GPSC_ALBUMSTOSYNC": "Postcards,Holidays",
        "GPSC_SYNCEDIDSFILEPATH": str(tmp_path / "state" / "synced_ids.txt"),
        "GPSC_TIMEBETWEENMINUTES": "30",
        "GPSC_CONFIGPATH": str(tmp_path / "tokens"),
    }


@pytest.fixture
def sync_settings(tmp_path):
    return SyncSettings(
        user="someone@example.com",
        client_id="client-id",
        client_secret="s3cr3t",
        media_folder=tmp_path / "media",
        albums=("Postcards",),
        synced_ids_file=tmp_path / "synced_ids.txt",
        minutes_between_syncs=30,
        config_path=tmp_path / "tokens",
    )

