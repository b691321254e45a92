"""Tests for parsing postcards output and computing the next retry delay."""

from datetime import datetime, timedelta, timezone

import pytest

from postcard_sync.outcome import (
    LAUNCH_FAILURE_DELAY,
    SENT_DELAY,
    UNKNOWN_FAILURE_DELAY,
    DispatchOutcome,
    OutcomeKind,
    compute_next_delay,
    extract_deadline,
    parse_tool_result,
)

NOW = datetime(2029, 12, 31, 12, 0, tzinfo=timezone.utc)


def test_exit_code_zero_is_sent():
    outcome = parse_tool_result(0, "Postcard sent 2030-01-01T00:00:00.000+00:00")

    assert outcome.kind is OutcomeKind.SENT
    assert outcome.sent
    assert compute_next_delay(outcome, now=NOW) == timedelta(hours=24, minutes=1)


def test_deadline_in_output_sets_delay():
    output = "Error: quota exceeded. Next possible at 2030-01-01T00:00:00.000+00:00\n"
    outcome = parse_tool_result(1, output)

    expected = datetime(2030, 1, 1, tzinfo=timezone.utc) - NOW
    assert outcome.kind is OutcomeKind.REJECTED
    assert outcome.deadline == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert compute_next_delay(outcome, now=NOW) == expected
    assert compute_next_delay(outcome, now=NOW) != UNKNOWN_FAILURE_DELAY


def test_deadline_with_offset_is_absolute():
    outcome = parse_tool_result(2, "wait until 2030-01-01T01:30:00.250+01:00")

    assert compute_next_delay(outcome, now=NOW) == timedelta(hours=12, minutes=30, milliseconds=250)


@pytest.mark.parametrize(
    "output",
    [
        "",
        "Traceback (most recent call last): boom",
        "next try 2030-01-01 00:00:00",
        "next try 2030-01-01T00:00:00+00:00",
        "next try 2030-01-01T00:00:00.000Z",
    ],
)
def test_missing_deadline_falls_back_to_one_hour(output):
    outcome = parse_tool_result(1, output)

    assert outcome.deadline is None
    assert compute_next_delay(outcome, now=NOW) == timedelta(hours=1)


def test_unparseable_deadline_falls_back_to_one_hour():
    outcome = parse_tool_result(1, "next try 2030-13-45T99:00:00.000+00:00")

    assert outcome.deadline is None
    assert compute_next_delay(outcome, now=NOW) == UNKNOWN_FAILURE_DELAY


def test_past_deadline_clamps_to_zero():
    outcome = parse_tool_result(1, "allowed since 2020-01-01T00:00:00.000+00:00")

    assert compute_next_delay(outcome, now=NOW) == timedelta(0)


def test_launch_failure_waits_ten_minutes():
    outcome = DispatchOutcome.launch_failed(FileNotFoundError("postcards"))

    assert outcome.kind is OutcomeKind.LAUNCH_FAILED
    assert not outcome.sent
    assert compute_next_delay(outcome, now=NOW) == LAUNCH_FAILURE_DELAY == timedelta(minutes=10)


def test_extract_deadline_takes_first_match():
    output = "a 2030-01-01T00:00:00.000+00:00 b 2031-01-01T00:00:00.000+00:00"

    assert extract_deadline(output) == datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_sent_delay_constant():
    assert SENT_DELAY.total_seconds() == 24 * 3600 + 60
