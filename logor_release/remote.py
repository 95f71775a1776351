"""GitHub CLI access to workflow runs and release assets.

Every remote interaction is a single ``gh`` invocation. The CLI is assumed to
be authenticated already; this module never handles credentials.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Protocol, Sequence

from pydantic import ValidationError

from .errors import RemoteCommandError, RemoteToolMissing
from .models import RunJob, RunState, RunSummary

logger = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]

RUN_LIST_FIELDS = "databaseId,displayTitle,status,createdAt"


class RemoteClient(Protocol):
    """Request/response calls the pipeline makes against the workflow runner."""

    def trigger_workflow(self, workflow: str, inputs: Mapping[str, str]) -> None:
        ...

    def list_runs(self, workflow: str, limit: int) -> List[RunSummary]:
        ...

    def run_jobs(self, run_id: int) -> List[RunJob]:
        ...

    def run_state(self, run_id: int) -> RunState:
        ...

    def run_summary(self, run_id: int) -> str:
        ...

    def run_log(self, run_id: int) -> str:
        ...

    def download_release_asset(self, tag: str, pattern: str, directory: Path) -> None:
        ...


class GhCli:
    """:class:`RemoteClient` backed by the ``gh`` executable."""

    def __init__(
        self,
        *,
        executable: str = "gh",
        repo: Optional[str] = None,
        runner: Optional[Runner] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.executable = executable
        self.repo = repo
        self.timeout = timeout
        self._runner = runner or subprocess.run

    def trigger_workflow(self, workflow: str, inputs: Mapping[str, str]) -> None:
        args = ["workflow", "run", workflow]
        for name, value in inputs.items():
            args += ["-f", f"{name}={value}"]
        self._run(args)

    def list_runs(self, workflow: str, limit: int) -> List[RunSummary]:
        payload = self._run_json(
            ["run", "list", f"--workflow={workflow}", "--limit", str(limit), "--json", RUN_LIST_FIELDS]
        )
        if not isinstance(payload, list):
            raise RemoteCommandError("gh run list returned a non-list payload.")
        try:
            return [RunSummary.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise RemoteCommandError(f"Unexpected run listing payload: {exc}") from exc

    def run_jobs(self, run_id: int) -> List[RunJob]:
        payload = self._run_json(["run", "view", str(run_id), "--json", "jobs"])
        jobs = payload.get("jobs") if isinstance(payload, dict) else None
        try:
            return [RunJob.model_validate(item) for item in jobs or []]
        except ValidationError as exc:
            raise RemoteCommandError(f"Unexpected jobs payload for run {run_id}: {exc}") from exc

    def run_state(self, run_id: int) -> RunState:
        payload = self._run_json(["run", "view", str(run_id), "--json", "status,conclusion"])
        try:
            return RunState.model_validate(payload)
        except ValidationError as exc:
            raise RemoteCommandError(f"Unexpected status payload for run {run_id}: {exc}") from exc

    def run_summary(self, run_id: int) -> str:
        return self._run(["run", "view", str(run_id)])

    def run_log(self, run_id: int) -> str:
        return self._run(["run", "view", str(run_id), "--log"])

    def download_release_asset(self, tag: str, pattern: str, directory: Path) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self._run(
            [
                "release",
                "download",
                tag,
                "--pattern",
                pattern,
                "--dir",
                str(directory),
                "--clobber",
            ]
        )

    def _command(self, args: Sequence[str]) -> List[str]:
        command = [self.executable, *args]
        if self.repo:
            command += ["--repo", self.repo]
        return command

    def _run(self, args: Sequence[str]) -> str:
        command = self._command(args)
        logger.debug("Running %s", " ".join(command))
        try:
            proc = self._runner(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise RemoteToolMissing(f"Remote CLI executable not found: {self.executable}") from exc
        except subprocess.TimeoutExpired as exc:
            raise RemoteCommandError(
                f"{' '.join(command)} timed out after {self.timeout}s",
                command=command,
            ) from exc
        except OSError as exc:
            raise RemoteCommandError(f"Failed to start {self.executable}: {exc}", command=command) from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise RemoteCommandError(
                f"{' '.join(command)} exited with status {proc.returncode}: {stderr}",
                command=command,
                returncode=proc.returncode,
                stderr=stderr,
            )
        return proc.stdout or ""

    def _run_json(self, args: Sequence[str]) -> object:
        output = self._run(args)
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise RemoteCommandError(f"gh {' '.join(args[:2])} returned invalid JSON: {exc}") from exc


__all__ = ["GhCli", "RemoteClient", "RUN_LIST_FIELDS"]
