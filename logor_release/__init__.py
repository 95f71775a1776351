"""Trigger the release workflow, correlate its run, wait for it and verify the bundle."""

__version__ = "0.1.0"

from .archive import ArchiveFormat, ArchiveInspector, extract_archive, iter_entries
from .config import PipelineConfig, RetryPolicies, load_config
from .correlation import generate_dispatch_token, token_matches
from .errors import (
    ArchiveOpenError,
    ConfigError,
    DownloadFailed,
    LocalIOError,
    NotFound,
    NotReady,
    ReleasePipelineError,
    RemoteCommandError,
    RemoteToolMissing,
    RetryExhausted,
    RunNotFound,
    TagNotFound,
    TerminalRemoteFailure,
    TransientRemoteError,
    UnrecoverableError,
    WorkflowFailed,
    WorkflowTriggerError,
)
from .events import EventKind, LoggingListener, ProgressListener, RecordingListener, StepEvent
from .fetch import ArtifactFetcher
from .locator import LocatorStrategy, RunLocator
from .models import ArchiveHandle, RunConclusion, RunJob, RunState, RunStatus, RunStep, RunSummary, StepOutcome
from .pipeline import PipelineReport, ReleasePipeline
from .remote import GhCli, RemoteClient
from .retry import BackoffStrategy, RetryPolicy, execute
from .tags import TagExtractor, find_release_tag
from .verify import VerificationGap, VerificationReport, verify_entries, verify_tree
from .watcher import RunWatcher
from .workflows import WorkflowDispatchResult, WorkflowInputSpec, WorkflowSpec, dispatch_workflow

__all__ = [
    "__version__",
    "ArchiveFormat",
    "ArchiveHandle",
    "ArchiveInspector",
    "ArchiveOpenError",
    "ArtifactFetcher",
    "BackoffStrategy",
    "ConfigError",
    "DownloadFailed",
    "EventKind",
    "GhCli",
    "LocalIOError",
    "LocatorStrategy",
    "LoggingListener",
    "NotFound",
    "NotReady",
    "PipelineConfig",
    "PipelineReport",
    "ProgressListener",
    "RecordingListener",
    "ReleasePipeline",
    "ReleasePipelineError",
    "RemoteClient",
    "RemoteCommandError",
    "RemoteToolMissing",
    "RetryExhausted",
    "RetryPolicies",
    "RetryPolicy",
    "RunConclusion",
    "RunJob",
    "RunLocator",
    "RunNotFound",
    "RunState",
    "RunStatus",
    "RunStep",
    "RunSummary",
    "RunWatcher",
    "StepEvent",
    "StepOutcome",
    "TagExtractor",
    "TagNotFound",
    "TerminalRemoteFailure",
    "TransientRemoteError",
    "UnrecoverableError",
    "VerificationGap",
    "VerificationReport",
    "WorkflowDispatchResult",
    "WorkflowFailed",
    "WorkflowInputSpec",
    "WorkflowSpec",
    "WorkflowTriggerError",
    "dispatch_workflow",
    "execute",
    "extract_archive",
    "find_release_tag",
    "generate_dispatch_token",
    "iter_entries",
    "load_config",
    "token_matches",
    "verify_entries",
    "verify_tree",
]
