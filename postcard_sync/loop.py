"""Polling loop state machine shared by the sync and dispatch loops.

A loop moves ``IDLE -> RUNNING -> SLEEPING -> RUNNING ...`` until either the
shared shutdown event is set (``STOPPED``) or an iteration raises
(``FATAL``). ``step()`` runs exactly one iteration, so tests never need to
drive the infinite ``run()``.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from datetime import timedelta

logger = logging.getLogger(__name__)

# Longest single Event.wait; longer delays are waited out in chunks
MAX_WAIT = timedelta(days=1)


class FatalLoopError(RuntimeError):
    """Raised from an iteration to end the loop permanently."""


class LoopState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SLEEPING = "sleeping"
    FATAL = "fatal"
    STOPPED = "stopped"


class PollingLoop:
    """Base class: subclasses implement ``run_once()`` returning the next delay."""

    name = "loop"

    def __init__(self, shutdown: threading.Event | None = None):
        self.shutdown = shutdown or threading.Event()
        self.state = LoopState.IDLE
        self.error: BaseException | None = None

    @property
    def finished(self) -> bool:
        return self.state in (LoopState.FATAL, LoopState.STOPPED)

    def run_once(self) -> timedelta:
        raise NotImplementedError

    def step(self) -> timedelta | None:
        """Run one iteration. Returns the delay to sleep, or None once finished."""
        if self.finished:
            return None
        if self.shutdown.is_set():
            self.state = LoopState.STOPPED
            return None

        self.state = LoopState.RUNNING
        try:
            delay = self.run_once()
        except FatalLoopError as exc:
            logger.error("%s stopped: %s", self.name, exc)
            self._fail(exc)
            return None
        except Exception as exc:
            logger.exception("%s crashed, not retrying", self.name)
            self._fail(exc)
            return None

        self.state = LoopState.SLEEPING
        return max(delay, timedelta(0))

    def sleep(self, delay: timedelta) -> None:
        """Wait for *delay*, returning early when shutdown is requested."""
        deadline = time.monotonic() + delay.total_seconds()
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            if self.shutdown.wait(min(remaining, MAX_WAIT.total_seconds())):
                self.state = LoopState.STOPPED
                return

    def run(self) -> None:
        """Iterate until stopped or a fatal error occurs."""
        while True:
            delay = self.step()
            if delay is None:
                break
            self.sleep(delay)
        logger.info("%s finished (%s)", self.name, self.state.value)

    def stop(self) -> None:
        self.shutdown.set()

    def _fail(self, exc: BaseException) -> None:
        self.error = exc
        self.state = LoopState.FATAL
