"""Postcards client – sends one picture through the external ``postcards`` CLI."""

from __future__ import annotations

import logging
import subprocess
from datetime import timedelta
from pathlib import Path

from postcard_sync.outcome import DispatchOutcome, parse_tool_result

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "postcards"
DEFAULT_CONFIG = "/config.json"
DEFAULT_TIMEOUT = timedelta(minutes=10)


class PostcardSender:
    """Runs ``<command> send --config <config> --picture <file>``.

    stdout and stderr are both captured and drained together by
    ``subprocess.run``, so a chatty tool cannot fill a pipe and hang.
    """

    def __init__(
        self,
        command: str = DEFAULT_COMMAND,
        config_file: str = DEFAULT_CONFIG,
        timeout: timedelta | None = DEFAULT_TIMEOUT,
    ):
        self._command = command
        self._config_file = config_file
        self._timeout = timeout

    def build_args(self, picture: Path) -> list[str]:
        return [
            self._command, "send",
            "--config", self._config_file,
            "--picture", str(picture),
        ]

    def send(self, picture: Path) -> DispatchOutcome:
        """Send *picture*; launch problems are returned as LAUNCH_FAILED, never raised."""
        args = self.build_args(picture)
        logger.debug("Running: %s", " ".join(args))
        try:
            proc = subprocess.run(
                args,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._timeout.total_seconds() if self._timeout else None,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            return DispatchOutcome.launch_failed(exc)

        if proc.stderr:
            logger.debug("postcards stderr: %s", proc.stderr.strip())
        return parse_tool_result(proc.returncode, proc.stdout or "")
