"""Tests for running the postcards command line tool."""

import stat
import subprocess
import sys
from datetime import datetime, timedelta, timezone

import pytest

from postcard_sync.clients.postcards import PostcardSender
from postcard_sync.outcome import OutcomeKind


def _fake_tool(tmp_path, body):
    script = tmp_path / "postcards"
    script.write_text(f"#!{sys.executable}\nimport sys\n{body}\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return script


@pytest.fixture
def picture(tmp_path):
    path = tmp_path / "IMG_0001.jpg"
    path.write_bytes(b"jpeg")
    return path


def test_build_args(picture):
    sender = PostcardSender(command="postcards", config_file="/config.json")

    assert sender.build_args(picture) == [
        "postcards", "send", "--config", "/config.json", "--picture", str(picture),
    ]


@pytest.mark.skipif(sys.platform == "win32", reason="needs a shebang script")
def test_success_exit_code(tmp_path, picture):
    tool = _fake_tool(tmp_path, "print('sent', sys.argv[1:])")

    outcome = PostcardSender(command=str(tool)).send(picture)

    assert outcome.kind is OutcomeKind.SENT
    assert "--picture" in outcome.output
    assert outcome.returncode == 0


@pytest.mark.skipif(sys.platform == "win32", reason="needs a shebang script")
def test_failure_with_deadline_and_large_stderr(tmp_path, picture):
    # Enough stderr to fill an OS pipe buffer if it were not drained
    tool = _fake_tool(
        tmp_path,
        "sys.stderr.write('x' * 1_000_000)\n"
        "print('Too many cards, retry at 2030-01-01T00:00:00.000+00:00')\n"
        "sys.exit(1)",
    )

    outcome = PostcardSender(command=str(tool), timeout=timedelta(seconds=30)).send(picture)

    assert outcome.kind is OutcomeKind.REJECTED
    assert outcome.returncode == 1
    assert outcome.deadline == datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_missing_executable_is_launch_failure(tmp_path, picture):
    outcome = PostcardSender(command=str(tmp_path / "no-such-tool")).send(picture)

    assert outcome.kind is OutcomeKind.LAUNCH_FAILED
    assert isinstance(outcome.error, OSError)


def test_timeout_is_launch_failure(picture, mocker):
    mocker.patch(
        "postcard_sync.clients.postcards.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="postcards", timeout=600),
    )

    outcome = PostcardSender().send(picture)

    assert outcome.kind is OutcomeKind.LAUNCH_FAILED
    assert isinstance(outcome.error, subprocess.TimeoutExpired)


def test_timeout_is_passed_in_seconds(picture, mocker):
    run = mocker.patch(
        "postcard_sync.clients.postcards.subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="ok", stderr=""),
    )

    PostcardSender(timeout=timedelta(minutes=2)).send(picture)

    kwargs = run.call_args.kwargs
    assert kwargs["timeout"] == 120
    assert kwargs["capture_output"] is True
    assert kwargs["text"] is True


def test_zero_timeout_disables_limit(picture, mocker):
    run = mocker.patch(
        "postcard_sync.clients.postcards.subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=3, stdout=None, stderr=None),
    )

    outcome = PostcardSender(timeout=timedelta(0)).send(picture)

    assert run.call_args.kwargs["timeout"] is None
    assert outcome.kind is OutcomeKind.REJECTED
    assert outcome.output == ""
