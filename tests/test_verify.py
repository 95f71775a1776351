from __future__ import annotations

from pathlib import Path

from logor_release.verify import VerificationGap, verify_entries, verify_tree

from fakes import REQUIRED


def test_missing_mac_binary_is_reported_not_raised() -> None:
    entries = ["win-x64/LogorFileServer.Api.exe", "linux-x64/LogorFileServer.Api", "README.md"]

    report = verify_entries(entries, REQUIRED)

    assert report.results == {
        "win-x64/LogorFileServer.Api.exe": True,
        "linux-x64/LogorFileServer.Api": True,
        "osx-x64/LogorFileServer.Api": False,
    }
    assert report.missing == ["osx-x64/LogorFileServer.Api"]
    assert report.gaps == [VerificationGap("osx-x64/LogorFileServer.Api")]
    assert not report.ok


def test_match_is_exact() -> None:
    report = verify_entries(["win-x64/logorfileserver.api.exe", "bundle/linux-x64/LogorFileServer.Api"], REQUIRED)
    assert report.present == []


def test_all_present() -> None:
    report = verify_entries(REQUIRED, REQUIRED)
    assert report.ok
    assert report.to_dict() == {"ok": True, "results": {path: True for path in REQUIRED}, "missing": []}


def test_verify_tree_checks_filesystem(tmp_path: Path) -> None:
    for path in REQUIRED[:2]:
        target = tmp_path / path
        target.parent.mkdir(parents=True)
        target.write_text("x")

    report = verify_tree(tmp_path, REQUIRED)

    assert report.missing == [REQUIRED[2]]
