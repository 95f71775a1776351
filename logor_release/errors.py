"""Error taxonomy for the dispatch/locate/await/verify pipeline."""

from __future__ import annotations

from typing import Optional, Sequence


class ReleasePipelineError(RuntimeError):
    """Base class for every pipeline failure."""


class ConfigError(ReleasePipelineError):
    """Raised when pipeline configuration cannot be loaded or validated."""


class WorkflowTriggerError(ReleasePipelineError):
    """Raised when a workflow dispatch cannot be completed."""


class TransientRemoteError(ReleasePipelineError):
    """Retry-worthy failure: network blips or a not-yet-ready remote state."""


class RemoteCommandError(TransientRemoteError):
    """The remote CLI exited non-zero or printed unusable output."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr


class NotReady(TransientRemoteError):
    """The call succeeded but the awaited condition does not hold yet."""


class UnrecoverableError(ReleasePipelineError):
    """Stops a retry loop immediately without consuming further attempts."""


class RemoteToolMissing(UnrecoverableError):
    """The remote CLI executable is not installed or not on PATH."""


class TerminalRemoteFailure(UnrecoverableError):
    """The remote system reached a final state that will never turn successful."""


class WorkflowFailed(TerminalRemoteFailure):
    def __init__(self, run_id: int, conclusion: Optional[str]) -> None:
        super().__init__(f"Workflow run {run_id} completed with conclusion: {conclusion or 'unknown'}")
        self.run_id = run_id
        self.conclusion = conclusion


class RetryExhausted(ReleasePipelineError):
    """A bounded retry policy ran out of attempts."""

    def __init__(self, name: str, last_error: Optional[BaseException], attempts: int) -> None:
        super().__init__(f"{name} failed after {attempts} attempt(s): {last_error}")
        self.name = name
        self.last_error = last_error
        self.attempts = attempts


class NotFound(ReleasePipelineError):
    """A remote object was never located within its retry policy."""


class RunNotFound(NotFound):
    def __init__(self, token: str, attempts: int) -> None:
        super().__init__(f"No workflow run carrying dispatch token '{token}' found after {attempts} attempt(s).")
        self.token = token
        self.attempts = attempts


class TagNotFound(NotFound):
    def __init__(self, run_id: int, attempts: int) -> None:
        super().__init__(f"No release tag found in logs of run {run_id} after {attempts} attempt(s).")
        self.run_id = run_id
        self.attempts = attempts


class LocalIOError(ReleasePipelineError):
    """Download or local archive handling failed."""


class DownloadFailed(LocalIOError):
    def __init__(self, tag: str, filename: str, attempts: int, last_error: Optional[BaseException] = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Download of '{filename}' for {tag} failed after {attempts} attempt(s){detail}")
        self.tag = tag
        self.filename = filename
        self.attempts = attempts
        self.last_error = last_error


class ArchiveOpenError(LocalIOError):
    """The downloaded archive could not be decoded or extracted."""


__all__ = [
    "ArchiveOpenError",
    "ConfigError",
    "DownloadFailed",
    "LocalIOError",
    "NotFound",
    "NotReady",
    "ReleasePipelineError",
    "RemoteCommandError",
    "RemoteToolMissing",
    "RetryExhausted",
    "RunNotFound",
    "TagNotFound",
    "TerminalRemoteFailure",
    "TransientRemoteError",
    "UnrecoverableError",
    "WorkflowFailed",
    "WorkflowTriggerError",
]
