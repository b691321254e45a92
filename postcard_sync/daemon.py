"""Daemon – builds the configured loops and runs each on its own thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping

from postcard_sync.clients.gphotos import GooglePhotosClient
from postcard_sync.config import ConfigError, load_dispatch_settings, load_sync_settings
from postcard_sync.dispatch_loop import DispatchLoop
from postcard_sync.loop import LoopState, PollingLoop
from postcard_sync.sync_loop import SyncLoop

logger = logging.getLogger(__name__)

LOOP_NAMES = ("sync", "dispatch")


def build_loops(
    environ: Mapping[str, str] | None = None,
    shutdown: threading.Event | None = None,
    client_factory: Callable[..., GooglePhotosClient] = GooglePhotosClient,
    only: str | None = None,
) -> list[PollingLoop]:
    """Create every loop whose configuration is complete.

    A loop with incomplete configuration is logged and left out; nothing is
    created on disk or over the network for it.
    """
    shutdown = shutdown or threading.Event()
    loops: list[PollingLoop] = []

    if only in (None, "sync"):
        try:
            settings = load_sync_settings(environ)
        except ConfigError as exc:
            logger.error("Photo sync disabled: %s", exc)
        else:
            client = client_factory(
                user=settings.user,
                client_id=settings.client_id,
                client_secret=settings.client_secret,
                config_path=settings.config_path,
            )
            loops.append(SyncLoop(settings, client, shutdown=shutdown))

    if only in (None, "dispatch"):
        try:
            dispatch_settings = load_dispatch_settings(environ)
        except ConfigError as exc:
            logger.error("Postcard sending disabled: %s", exc)
        else:
            loops.append(DispatchLoop(dispatch_settings, shutdown=shutdown))

    return loops


class Daemon:
    """Runs independent polling loops concurrently until all have finished."""

    def __init__(self, loops: list[PollingLoop], shutdown: threading.Event | None = None):
        self.loops = loops
        self.shutdown = shutdown or threading.Event()
        for loop in loops:
            loop.shutdown = self.shutdown
        self._threads: list[threading.Thread] = []

    def start(self, once: bool = False) -> None:
        """Start one thread per loop; with *once*, each runs a single iteration."""
        for loop in self.loops:
            thread = threading.Thread(
                target=loop.step if once else loop.run,
                name=loop.name,
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()
            logger.info("Started %s", loop.name)

    def join(self, poll_interval: float = 1.0) -> None:
        # Short joins keep the main thread responsive to signals
        while any(t.is_alive() for t in self._threads):
            for thread in self._threads:
                thread.join(timeout=poll_interval)

    def stop(self) -> None:
        if not self.shutdown.is_set():
            logger.info("Shutdown requested, stopping loops at their next wait")
            self.shutdown.set()

    def run(self, once: bool = False) -> bool:
        """Start, wait for every loop, and report whether none ended fatally."""
        self.start(once=once)
        self.join()
        return all(loop.state is not LoopState.FATAL for loop in self.loops)
