"""Interpretation of a ``postcards send`` run and the retry delay it implies.

The tool reports its rate limit only as free text on stdout, e.g.
``... next allowed at 2024-03-01T14:30:00.000+01:00``. Everything here is a
pure function of the exit code, the captured output and the current time.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

DEADLINE_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}[+-]\d{2}:\d{2}"
)

# One card per day is allowed; the extra minute keeps us past the limit.
SENT_DELAY = timedelta(hours=24, minutes=1)
UNKNOWN_FAILURE_DELAY = timedelta(hours=1)
LAUNCH_FAILURE_DELAY = timedelta(minutes=10)


class OutcomeKind(enum.Enum):
    SENT = "sent"
    REJECTED = "rejected"
    LAUNCH_FAILED = "launch_failed"


@dataclass(frozen=True)
class DispatchOutcome:
    kind: OutcomeKind
    output: str = ""
    returncode: int | None = None
    deadline: datetime | None = None
    error: BaseException | None = None

    @property
    def sent(self) -> bool:
        return self.kind is OutcomeKind.SENT

    @classmethod
    def launch_failed(cls, error: BaseException) -> "DispatchOutcome":
        return cls(OutcomeKind.LAUNCH_FAILED, error=error)


def extract_deadline(output: str) -> datetime | None:
    """Return the first ISO-8601 timestamp with millis and offset in *output*."""
    match = DEADLINE_PATTERN.search(output or "")
    if not match:
        return None
    try:
        return datetime.fromisoformat(match.group(0))
    except ValueError:
        logger.debug("Unparseable deadline %r", match.group(0))
        return None


def parse_tool_result(returncode: int, output: str) -> DispatchOutcome:
    if returncode == 0:
        return DispatchOutcome(OutcomeKind.SENT, output=output, returncode=returncode)
    return DispatchOutcome(
        OutcomeKind.REJECTED,
        output=output,
        returncode=returncode,
        deadline=extract_deadline(output),
    )


def compute_next_delay(outcome: DispatchOutcome, now: datetime | None = None) -> timedelta:
    """How long to wait before the next dispatch attempt.

    A deadline in the past yields zero rather than a negative wait.
    """
    if outcome.kind is OutcomeKind.SENT:
        return SENT_DELAY
    if outcome.kind is OutcomeKind.LAUNCH_FAILED:
        return LAUNCH_FAILURE_DELAY
    if outcome.deadline is None:
        return UNKNOWN_FAILURE_DELAY

    now = now or datetime.now(timezone.utc)
    return max(outcome.deadline - now, timedelta(0))
