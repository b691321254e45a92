"""Dispatch loop – sends the oldest queued picture as a postcard, one per attempt."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from postcard_sync.clients.postcards import PostcardSender
from postcard_sync.config import DispatchSettings
from postcard_sync.loop import PollingLoop
from postcard_sync.media_queue import MediaQueue
from postcard_sync.outcome import DispatchOutcome, OutcomeKind, compute_next_delay

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DispatchLoop(PollingLoop):
    name = "SendPostcard"

    def __init__(
        self,
        settings: DispatchSettings,
        sender: PostcardSender | None = None,
        queue: MediaQueue | None = None,
        clock: Callable[[], datetime] = _utcnow,
        shutdown: threading.Event | None = None,
    ):
        super().__init__(shutdown)
        self._settings = settings
        self._sender = sender or PostcardSender(
            command=settings.postcards_command,
            config_file=settings.postcards_config,
            timeout=settings.send_timeout,
        )
        self.queue = queue or MediaQueue(settings.media_folder)
        self._clock = clock
        self.last_outcome: DispatchOutcome | None = None

    def run_once(self) -> timedelta:
        picture = self.queue.oldest()
        if picture is None:
            logger.info(
                "No picture in %s to send, checking again in %s",
                self.queue.folder, self._settings.idle_poll,
            )
            self.last_outcome = None
            return self._settings.idle_poll

        outcome = self._sender.send(picture)
        self.last_outcome = outcome
        self._report(picture.name, outcome)

        if outcome.sent:
            self.queue.remove(picture)

        delay = compute_next_delay(outcome, now=self._clock())
        logger.info("Next send attempt in %s", delay)
        return delay

    def _report(self, filename: str, outcome: DispatchOutcome) -> None:
        if outcome.kind is OutcomeKind.LAUNCH_FAILED:
            logger.error("Send card failed with error: %s", outcome.error)
            return

        logger.info("Sent card with image %s and output: %s", filename, outcome.output.strip())
        if outcome.sent:
            logger.info("Card was sent successfully")
        elif outcome.deadline is not None:
            logger.warning(
                "Send card failed, next allowed send date is %s", outcome.deadline.isoformat()
            )
        else:
            logger.error("Send card failed with unknown error (exit code %s)", outcome.returncode)
