"""Google Photos client – authenticates via OAuth 2.0, resolves albums, lists and downloads album media."""

from __future__ import annotations

import logging
import time
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from postcard_sync.loop import FatalLoopError

logger = logging.getLogger(__name__)

# Album creation needs the full library scope; appendonly cannot read albums
# it did not create.
SCOPES = ["https://www.googleapis.com/auth/photoslibrary"]

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Google Photos API endpoints
PHOTOS_ALBUMS_URL = "https://photoslibrary.googleapis.com/v1/albums"
PHOTOS_SEARCH_URL = "https://photoslibrary.googleapis.com/v1/mediaItems:search"

ALBUMS_PAGE_SIZE = 50
ITEMS_PAGE_SIZE = 100
REQUEST_TIMEOUT = 60  # seconds

# Retry config for rate limits (HTTP 429)
MAX_RETRIES = 3
RETRY_BASE_DELAY = 2.0  # seconds; doubled on each attempt


class AuthenticationError(FatalLoopError):
    """Google Photos credentials could not be loaded, refreshed or obtained."""


@dataclass(frozen=True)
class Album:
    id: str
    title: str


@dataclass(frozen=True)
class MediaItem:
    """One entry of an album as returned by ``mediaItems:search``."""

    id: str
    filename: str
    base_url: str = ""
    mime_type: str = ""

    @classmethod
    def from_api(cls, item: dict) -> "MediaItem":
        return cls(
            id=item["id"],
            filename=item.get("filename", item["id"]),
            base_url=item.get("baseUrl", ""),
            mime_type=item.get("mimeType", ""),
        )

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    @property
    def download_url(self) -> str:
        # "=d" returns the original image bytes, "=dv" the original video
        return self.base_url + ("=dv" if self.is_video else "=d")


class GooglePhotosClient:
    """Wraps the Google Photos Library API for album lookup, listing and download.

    Tokens are cached per user under *config_path* so the consent flow only
    runs once; afterwards they are refreshed silently.
    """

    def __init__(
        self,
        user: str,
        client_id: str,
        client_secret: str,
        config_path: str | Path,
        session: requests.Session | None = None,
    ):
        self._user = user
        self._client_id = client_id
        self._client_secret = client_secret
        self._config_path = Path(config_path)
        self._session = session or requests.Session()
        self._creds: Credentials | None = None

    @property
    def token_file(self) -> Path:
        return self._config_path / f"{self._user}.json"

    # ── authentication ──────────────────────────────────────────────

    def authenticate(self) -> None:
        """Load, refresh or obtain credentials. Raises AuthenticationError on failure."""
        try:
            creds = self._load_credentials()
        except (GoogleAuthError, OSError, ValueError) as exc:
            raise AuthenticationError(f"Login failed for {self._user}: {exc}") from exc
        if not creds or not creds.valid:
            raise AuthenticationError(f"Login failed for {self._user}: no valid credentials")
        self._creds = creds
        logger.debug("Authenticated as %s", self._user)

    def _load_credentials(self) -> Credentials:
        creds = None
        if self.token_file.exists():
            creds = Credentials.from_authorized_user_file(str(self.token_file), SCOPES)
        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                flow = InstalledAppFlow.from_client_config(self._client_config(), SCOPES)
                creds = flow.run_local_server(port=0, open_browser=False)
            self._config_path.mkdir(parents=True, exist_ok=True)
            with open(self.token_file, "w") as token:
                token.write(creds.to_json())
        return creds

    def _client_config(self) -> dict:
        return {
            "installed": {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }

    def _get_token(self) -> str:
        if self._creds is None:
            raise AuthenticationError("authenticate() must be called first")
        if not self._creds.valid:
            self._creds.refresh(Request())
        return self._creds.token

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send an authorized request, backing off on rate-limit responses."""
        headers = {"Authorization": f"Bearer {self._get_token()}"}
        for attempt in range(MAX_RETRIES):
            resp = self._session.request(
                method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
            )
            if resp.status_code != 429:
                return resp
            wait = RETRY_BASE_DELAY * (2 ** attempt)
            logger.warning("Rate-limited by Photos API, retrying in %.0f s", wait)
            time.sleep(wait)
        return resp

    # ── albums ──────────────────────────────────────────────────────

    def list_albums(self) -> Generator[Album, None, None]:
        """Yield every album in the library, following page tokens."""
        page_token = None
        while True:
            params: dict = {"pageSize": ALBUMS_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            resp = self._request("GET", PHOTOS_ALBUMS_URL, params=params)
            resp.raise_for_status()

            body = resp.json()
            for album in body.get("albums", []):
                if album.get("id") and album.get("title") is not None:
                    yield Album(id=album["id"], title=album["title"])

            page_token = body.get("nextPageToken")
            if not page_token:
                break

    def find_album_by_title(self, title: str) -> Album | None:
        """Return the first album whose title matches exactly, or None."""
        for album in self.list_albums():
            if album.title == title:
                return album
        return None

    def create_album(self, title: str) -> Album | None:
        """Create an album. Returns None when the API refuses."""
        resp = self._request("POST", PHOTOS_ALBUMS_URL, json={"album": {"title": title}})
        if resp.status_code != 200:
            logger.error(
                "Failed to create album %s (HTTP %s): %s",
                title, resp.status_code, resp.text[:120],
            )
            return None
        body = resp.json()
        logger.info("Created Google Photos album: %s", title)
        return Album(id=body["id"], title=body.get("title", title))

    # ── media ───────────────────────────────────────────────────────

    def iter_album_items(self, album_id: str) -> Generator[MediaItem, None, None]:
        """Lazily yield the media items of *album_id*, page by page."""
        body: dict = {"albumId": album_id, "pageSize": ITEMS_PAGE_SIZE}
        while True:
            resp = self._request("POST", PHOTOS_SEARCH_URL, json=body)
            resp.raise_for_status()

            data = resp.json()
            for item in data.get("mediaItems", []):
                yield MediaItem.from_api(item)

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            body = {**body, "pageToken": page_token}

    def download_bytes(self, item: MediaItem) -> bytes | None:
        """Download the original bytes of *item*. Returns None on failure."""
        if not item.base_url:
            logger.error("No baseUrl for item %s, can't download.", item.filename)
            return None
        resp = self._request("GET", item.download_url)
        if resp.status_code != 200:
            logger.error("Download failed for %s: HTTP %s", item.filename, resp.status_code)
            return None
        return resp.content
