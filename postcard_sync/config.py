"""Environment-variable configuration for the two loops."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from postcard_sync.clients.postcards import DEFAULT_COMMAND, DEFAULT_CONFIG
from postcard_sync.loop import FatalLoopError

ENV_USER = "GPSC_USER"
ENV_CLIENT_ID = "GPSC_CLIENTID"
ENV_CLIENT_SECRET = "GPSC_CLIENTSECRET"
ENV_MEDIA_FOLDER = "GPSC_MEDIAFOLDERPATH"
ENV_ALBUMS = "GPSC_ALBUMSTOSYNC"
ENV_SYNCED_IDS_FILE = "GPSC_SYNCEDIDSFILEPATH"
ENV_MINUTES_BETWEEN_SYNCS = "GPSC_TIMEBETWEENMINUTES"
ENV_CONFIG_PATH = "GPSC_CONFIGPATH"

ENV_POSTCARDS_COMMAND = "GPSC_POSTCARDSCOMMAND"
ENV_POSTCARDS_CONFIG = "GPSC_POSTCARDSCONFIG"
ENV_SEND_TIMEOUT_MINUTES = "GPSC_SENDTIMEOUTMINUTES"
ENV_IDLE_POLL_MINUTES = "GPSC_IDLEPOLLMINUTES"

SYNC_VARS = (
    ENV_USER,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_MEDIA_FOLDER,
    ENV_ALBUMS,
    ENV_SYNCED_IDS_FILE,
    ENV_MINUTES_BETWEEN_SYNCS,
    ENV_CONFIG_PATH,
)
SECRET_VARS = (ENV_CLIENT_SECRET,)

DEFAULT_SEND_TIMEOUT_MINUTES = 10
DEFAULT_IDLE_POLL_MINUTES = 10


class ConfigError(FatalLoopError):
    """Required environment variables are missing, blank or malformed."""


def _describe(env: Mapping[str, str], names: tuple[str, ...]) -> str:
    parts = []
    for name in names:
        value = env.get(name)
        if name in SECRET_VARS and value:
            value = "***"
        parts.append(f"{name}/{value!r}")
    return ", ".join(parts)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _minutes(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if _blank(raw):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer number of minutes, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class SyncSettings:
    user: str
    client_id: str
    client_secret: str
    media_folder: Path
    albums: tuple[str, ...]
    synced_ids_file: Path
    minutes_between_syncs: int
    config_path: Path

    @property
    def sync_interval(self) -> timedelta:
        return timedelta(minutes=self.minutes_between_syncs)


@dataclass(frozen=True)
class DispatchSettings:
    media_folder: Path
    postcards_command: str = DEFAULT_COMMAND
    postcards_config: str = DEFAULT_CONFIG
    send_timeout: timedelta = timedelta(minutes=DEFAULT_SEND_TIMEOUT_MINUTES)
    idle_poll: timedelta = timedelta(minutes=DEFAULT_IDLE_POLL_MINUTES)


def load_sync_settings(environ: Mapping[str, str] | None = None) -> SyncSettings:
    """Read every sync variable; raise ConfigError unless all are usable."""
    env = os.environ if environ is None else environ

    missing = [name for name in SYNC_VARS if _blank(env.get(name))]
    minutes = None
    if ENV_MINUTES_BETWEEN_SYNCS not in missing:
        try:
            minutes = int(env[ENV_MINUTES_BETWEEN_SYNCS])
        except ValueError:
            missing.append(ENV_MINUTES_BETWEEN_SYNCS)

    albums = tuple(t.strip() for t in env.get(ENV_ALBUMS, "").split(",") if t.strip())
    if not albums and ENV_ALBUMS not in missing:
        missing.append(ENV_ALBUMS)

    if missing:
        raise ConfigError(
            "Not all GPSC environment variables are present "
            f"(missing or invalid: {', '.join(missing)}): {_describe(env, SYNC_VARS)}"
        )

    return SyncSettings(
        user=env[ENV_USER].strip(),
        client_id=env[ENV_CLIENT_ID].strip(),
        client_secret=env[ENV_CLIENT_SECRET].strip(),
        media_folder=Path(env[ENV_MEDIA_FOLDER].strip()),
        albums=albums,
        synced_ids_file=Path(env[ENV_SYNCED_IDS_FILE].strip()),
        minutes_between_syncs=minutes,
        config_path=Path(env[ENV_CONFIG_PATH].strip()),
    )


def load_dispatch_settings(environ: Mapping[str, str] | None = None) -> DispatchSettings:
    """Only the media folder is required; the rest falls back to defaults."""
    env = os.environ if environ is None else environ

    if _blank(env.get(ENV_MEDIA_FOLDER)):
        raise ConfigError(
            "Not all GPSC environment variables are present: "
            f"{_describe(env, (ENV_MEDIA_FOLDER,))}"
        )

    command = env.get(ENV_POSTCARDS_COMMAND)
    config_file = env.get(ENV_POSTCARDS_CONFIG)
    timeout = _minutes(env, ENV_SEND_TIMEOUT_MINUTES, DEFAULT_SEND_TIMEOUT_MINUTES)
    idle = _minutes(env, ENV_IDLE_POLL_MINUTES, DEFAULT_IDLE_POLL_MINUTES)
    return DispatchSettings(
        media_folder=Path(env[ENV_MEDIA_FOLDER].strip()),
        postcards_command=DEFAULT_COMMAND if _blank(command) else command.strip(),
        postcards_config=DEFAULT_CONFIG if _blank(config_file) else config_file.strip(),
        send_timeout=timedelta(minutes=timeout),
        idle_poll=timedelta(minutes=idle),
    )
