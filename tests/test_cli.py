from __future__ import annotations

import json
from pathlib import Path

import pytest

from logor_release import cli

from fakes import REQUIRED, FakeRemote, state, summary, tgz_bytes


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


def _factory(remote: FakeRemote):
    return lambda config: remote


def _output(capsys: pytest.CaptureFixture[str]) -> dict:
    return json.loads(capsys.readouterr().out)


def test_token_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["token"]) == 0
    assert _output(capsys)["token"].startswith("trigger-")


def test_run_dry_run_prints_report(capsys: pytest.CaptureFixture[str]) -> None:
    remote = FakeRemote()

    exit_code = cli.main(["run", "--dry-run", "--bump", "minor"], client_factory=_factory(remote))

    payload = _output(capsys)
    assert exit_code == 0
    assert payload["dispatch"]["status"] == "skipped"
    assert payload["dispatch"]["inputs"]["bump"] == "minor"
    assert payload["dispatch"]["inputs"]["configuration"] == "Release"
    assert remote.triggered == []


def test_locate_command(capsys: pytest.CaptureFixture[str]) -> None:
    remote = FakeRemote(runs=[[summary(42, "Release trigger-1-abcdefghi")]])

    exit_code = cli.main(["locate", "--token", "trigger-1-abcdefghi"], client_factory=_factory(remote))

    assert exit_code == 0
    assert _output(capsys) == {"token": "trigger-1-abcdefghi", "run_id": 42}


def test_watch_command_reports_final_state(capsys: pytest.CaptureFixture[str]) -> None:
    remote = FakeRemote(states=[state("completed", "success")])

    assert cli.main(["watch", "--run-id", "42"], client_factory=_factory(remote)) == 0
    assert _output(capsys) == {"run_id": 42, "status": "completed", "conclusion": "success"}


def test_watch_command_failure_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    remote = FakeRemote(states=[state("completed", "cancelled")])

    assert cli.main(["watch", "--run-id", "42"], client_factory=_factory(remote)) == 1
    assert "cancelled" in capsys.readouterr().err


def test_tag_command(capsys: pytest.CaptureFixture[str]) -> None:
    remote = FakeRemote(logs=["Version: v3.0.1"])

    assert cli.main(["tag", "--run-id", "7"], client_factory=_factory(remote)) == 0
    assert _output(capsys)["tag"] == "v3.0.1"


def test_fetch_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    remote = FakeRemote(downloads=[tgz_bytes(REQUIRED)])

    exit_code = cli.main(
        ["fetch", "--tag", "v1.4.0", "--download-dir", str(tmp_path / "dl")],
        client_factory=_factory(remote),
    )

    assert exit_code == 0
    path = Path(_output(capsys)["path"])
    assert path == tmp_path / "dl" / "LogorFileServer-v1.4.0-all-platforms.tgz"
    assert path.is_file()


def test_verify_command_keeps_archive_by_default(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    archive = tmp_path / "bundle.tgz"
    archive.write_bytes(tgz_bytes(REQUIRED[:2]))

    exit_code = cli.main(["verify", "--archive", str(archive)], client_factory=_factory(FakeRemote()))

    payload = _output(capsys)
    assert exit_code == 0
    assert payload["verification"]["missing"] == ["osx-x64/LogorFileServer.Api"]
    assert archive.exists()


def test_verify_command_fail_on_missing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    archive = tmp_path / "bundle.tgz"
    archive.write_bytes(tgz_bytes(REQUIRED[:2]))

    exit_code = cli.main(
        ["verify", "--archive", str(archive), "--fail-on-missing", "--no-keep-archive"],
        client_factory=_factory(FakeRemote()),
    )

    assert exit_code == 3
    assert _output(capsys)["verification"]["ok"] is False
    assert not archive.exists()


def test_invalid_config_is_usage_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = tmp_path / "release.yaml"
    config.write_text("search_window: 0\n", encoding="utf-8")

    exit_code = cli.main(["locate", "--token", "t", "--config", str(config)], client_factory=_factory(FakeRemote()))

    assert exit_code == 2
    assert "Invalid pipeline configuration" in capsys.readouterr().err


def test_env_file_is_loaded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("LOGOR_RELEASE_WORKFLOW", raising=False)
    (tmp_path / ".env").write_text("LOGOR_RELEASE_WORKFLOW=nightly.yml\n", encoding="utf-8")
    seen = {}

    def _capture(config):
        seen["workflow"] = config.workflow
        return FakeRemote(runs=[[summary(1, "t-token")]])

    assert cli.main(["locate", "--token", "t-token"], client_factory=_capture) == 0
    monkeypatch.delenv("LOGOR_RELEASE_WORKFLOW", raising=False)
    assert seen["workflow"] == "nightly.yml"


def test_keyboard_interrupt_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    class _Interrupting(FakeRemote):
        def run_state(self, run_id: int):
            raise KeyboardInterrupt

    assert cli.main(["watch", "--run-id", "1"], client_factory=_factory(_Interrupting())) == 130
    assert "Interrupted." in capsys.readouterr().err


def test_verify_extract_of_tar_gz_named_archive(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    archive = tmp_path / "bundle.tar.gz"
    archive.write_bytes(tgz_bytes(REQUIRED))

    exit_code = cli.main(
        ["verify", "--archive", str(archive), "--inspection", "extract"],
        client_factory=_factory(FakeRemote()),
    )

    payload = _output(capsys)
    assert exit_code == 0
    assert payload["verification"]["ok"] is True
    assert payload["archive"]["extracted_root"] == str(tmp_path / "bundle")
    assert archive.is_file()
