from __future__ import annotations

import pytest

from logor_release.errors import RemoteCommandError, RunNotFound
from logor_release.events import EventKind, RecordingListener
from logor_release.locator import LocatorStrategy, RunLocator, find_by_title
from logor_release.models import RunJob
from logor_release.retry import RetryPolicy

from fakes import FakeRemote, SleepRecorder, summary

TOKEN = "trigger-1700000000000-ab12cd3"


def test_find_by_title_returns_first_match() -> None:
    runs = [summary(50, "Release manual"), summary(42, f"Release {TOKEN}"), summary(41, f"Release {TOKEN}")]
    assert find_by_title(runs, TOKEN) == 42
    assert find_by_title(runs[:1], TOKEN) is None


def test_locate_by_title_retries_until_run_registered() -> None:
    remote = FakeRemote(
        runs=[
            [summary(40, "Release older")],
            RemoteCommandError("HTTP 502"),
            [summary(42, f"Release {TOKEN}"), summary(40, "Release older")],
        ]
    )
    sleep = SleepRecorder()
    listener = RecordingListener()
    locator = RunLocator(
        remote,
        "release.yml",
        policy=RetryPolicy.bounded(11, 0.5),
        sleep=sleep,
        listener=listener,
    )

    assert locator.locate(TOKEN) == 42
    assert remote.count("list_runs") == 3
    assert remote.calls[0] == ("list_runs", "release.yml", 10)
    assert sleep.delays == [0.5, 0.5]
    kinds = [event.kind for event in listener.for_step("locate")]
    assert kinds == [EventKind.STARTED, EventKind.RETRY, EventKind.RETRY, EventKind.SUCCEEDED]


def test_locate_exhaustion_raises_run_not_found() -> None:
    remote = FakeRemote(runs=[[summary(40, "Release older")]])
    locator = RunLocator(remote, "release.yml", policy=RetryPolicy.bounded(3, 0.5), sleep=SleepRecorder())

    with pytest.raises(RunNotFound) as excinfo:
        locator.locate(TOKEN)

    assert excinfo.value.attempts == 3
    assert remote.count("list_runs") == 3


def test_locate_by_steps_skips_runs_that_fail_to_load() -> None:
    remote = FakeRemote(
        runs=[[summary(43, "Release"), summary(42, "Release")]],
        jobs={
            43: RemoteCommandError("HTTP 404"),
            42: [RunJob.model_validate({"name": "release", "steps": [{"name": "Set up job"}, {"name": TOKEN}]})],
        },
    )
    locator = RunLocator(
        remote,
        "release.yml",
        policy=RetryPolicy.unbounded(5.0),
        strategy=LocatorStrategy.STEPS,
        sleep=SleepRecorder(),
    )

    assert locator.locate(TOKEN) == 42
    assert ("run_jobs", 43) in remote.calls


def test_locate_by_steps_ignores_titles() -> None:
    remote = FakeRemote(runs=[[summary(42, f"Release {TOKEN}")]], jobs={42: []})
    locator = RunLocator(
        remote,
        "release.yml",
        policy=RetryPolicy.bounded(2, 0.1),
        strategy="steps",
        sleep=SleepRecorder(),
    )

    with pytest.raises(RunNotFound):
        locator.locate(TOKEN)


def test_search_window_is_forwarded() -> None:
    remote = FakeRemote(runs=[[summary(1, TOKEN)]])
    RunLocator(remote, "release.yml", policy=RetryPolicy.bounded(1, 0), search_window=25).locate(TOKEN)
    assert remote.calls[0] == ("list_runs", "release.yml", 25)
