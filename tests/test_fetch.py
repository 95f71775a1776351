from __future__ import annotations

from pathlib import Path

import pytest

from logor_release.errors import DownloadFailed, RemoteCommandError, RemoteToolMissing
from logor_release.fetch import ArtifactFetcher
from logor_release.retry import RetryPolicy

from fakes import FakeRemote, SleepRecorder, tgz_bytes

FILENAME = "LogorFileServer-v1.4.0-all-platforms.tgz"


def test_download_returns_local_path(tmp_path: Path) -> None:
    remote = FakeRemote(downloads=[tgz_bytes(["a"])])
    fetcher = ArtifactFetcher(remote, tmp_path / "downloads", policy=RetryPolicy.bounded(6, 3.0), sleep=SleepRecorder())

    path = fetcher.download("v1.4.0", FILENAME)

    assert path == tmp_path / "downloads" / FILENAME
    assert path.is_file()
    assert remote.calls == [("download_release_asset", "v1.4.0", FILENAME)]


def test_missing_file_after_clean_call_counts_as_failure(tmp_path: Path) -> None:
    remote = FakeRemote(downloads=[None, RemoteCommandError("connection reset"), tgz_bytes(["a"])])
    sleep = SleepRecorder()
    fetcher = ArtifactFetcher(remote, tmp_path, policy=RetryPolicy.bounded(6, 3.0), sleep=sleep)

    fetcher.download("v1.4.0", FILENAME)

    assert remote.count("download_release_asset") == 3
    assert sleep.delays == [3.0, 3.0]


def test_exhaustion_raises_download_failed(tmp_path: Path) -> None:
    remote = FakeRemote(downloads=[None])
    fetcher = ArtifactFetcher(remote, tmp_path, policy=RetryPolicy.bounded(6, 3.0), sleep=SleepRecorder())

    with pytest.raises(DownloadFailed) as excinfo:
        fetcher.download("v1.4.0", FILENAME)

    assert excinfo.value.attempts == 6
    assert excinfo.value.filename == FILENAME
    assert remote.count("download_release_asset") == 6


def test_missing_cli_aborts_without_retry(tmp_path: Path) -> None:
    remote = FakeRemote(downloads=[RemoteToolMissing("gh not found")])
    fetcher = ArtifactFetcher(remote, tmp_path, policy=RetryPolicy.bounded(6, 3.0), sleep=SleepRecorder())

    with pytest.raises(RemoteToolMissing):
        fetcher.download("v1.4.0", FILENAME)
    assert remote.count("download_release_asset") == 1
