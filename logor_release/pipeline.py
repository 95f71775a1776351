"""Sequential orchestration of dispatch, locate, await, fetch and verify."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from .archive import ArchiveInspector, extraction_dir
from .config import PipelineConfig
from .correlation import generate_dispatch_token
from .errors import ReleasePipelineError, TransientRemoteError
from .events import LoggingListener, ProgressListener, StepReporter
from .fetch import ArtifactFetcher
from .locator import RunLocator
from .models import ArchiveHandle, RunState, StepOutcome
from .remote import RemoteClient
from .tags import TagExtractor
from .verify import VerificationReport, verify_entries, verify_tree
from .watcher import RunWatcher
from .workflows import DISPATCH_INPUT, WorkflowDispatchResult, dispatch_workflow, release_workflow_spec

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_VERIFICATION_GAP = 3
EXIT_INTERRUPTED = 130


@dataclass
class PipelineReport:
    token: Optional[str] = None
    dispatch: Optional[WorkflowDispatchResult] = None
    run_id: Optional[int] = None
    tag: Optional[str] = None
    archive: Optional[ArchiveHandle] = None
    verification: Optional[VerificationReport] = None
    steps: List[StepOutcome] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    exit_code: int = EXIT_OK

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK

    def to_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "exit_code": self.exit_code,
            "token": self.token,
            "dispatch": self.dispatch.model_dump(mode="json") if self.dispatch else None,
            "run_id": self.run_id,
            "tag": self.tag,
            "archive": self.archive.to_dict() if self.archive else None,
            "verification": self.verification.to_dict() if self.verification else None,
            "steps": [step.to_dict() for step in self.steps],
            "error": self.error,
            "error_type": self.error_type,
        }


class ReleasePipeline:
    """Run the release pipeline end to end, or any single step of it.

    Each step only consumes the value produced by the step before it (token,
    run id, tag, archive path), so the single-step methods can resume a
    pipeline from any point.
    """

    def __init__(
        self,
        config: PipelineConfig,
        client: RemoteClient,
        *,
        listener: Optional[ProgressListener] = None,
        sleep: Optional[Callable[[float], None]] = None,
        token_factory: Callable[[], str] = generate_dispatch_token,
    ) -> None:
        self.config = config
        self.client = client
        self.listener = listener or LoggingListener()
        self.sleep = sleep
        self.token_factory = token_factory

    def run(self, *, dry_run: bool = False) -> PipelineReport:
        """Execute every step in order and return the report.

        Fatal pipeline errors end the run and are recorded on the report;
        ``KeyboardInterrupt`` propagates after scoped cleanup has run.
        """

        report = PipelineReport()
        reporter = StepReporter(self.listener, "pipeline")
        try:
            report.token = self._step(report, "token", self.token_factory, key="token")
            reporter.progress(f"Generated dispatch ID: {report.token}")

            report.dispatch = self._step(report, "dispatch", lambda: self.dispatch(report.token, dry_run=dry_run))
            if dry_run:
                reporter.succeeded("Dry run: workflow not dispatched.")
                return report

            report.run_id = self._step(report, "locate", lambda: self.locate(report.token), key="run_id")
            self._echo_run(report.run_id)
            self._step(report, "watch", lambda: self.watch(report.run_id))
            report.tag = self._step(report, "tag", lambda: self.extract_tag(report.run_id), key="tag")
            archive_path = self._step(report, "fetch", lambda: self.fetch(report.tag), key="path")
            report.archive, report.verification = self._step(
                report, "verify", lambda: self.inspect_and_verify(archive_path)
            )
        except ReleasePipelineError as exc:
            report.error = str(exc)
            report.error_type = type(exc).__name__
            report.exit_code = EXIT_FAILED
            reporter.failed(f"Pipeline failed: {exc}")
            return report

        report.exit_code = self.exit_code_for(report.verification)
        if report.exit_code == EXIT_OK:
            reporter.succeeded("File verification complete.")
        else:
            reporter.failed(f"Verification gaps: {', '.join(report.verification.missing)}")
        return report

    def exit_code_for(self, verification: Optional[VerificationReport]) -> int:
        if verification is not None and not verification.ok and self.config.fail_on_missing:
            return EXIT_VERIFICATION_GAP
        return EXIT_OK

    def dispatch(self, token: str, *, dry_run: bool = False) -> WorkflowDispatchResult:
        reporter = StepReporter(self.listener, "dispatch")
        spec = release_workflow_spec(
            self.config.workflow,
            repo=self.config.repo,
            configuration=self.config.configuration,
            bump=self.config.bump,
        )
        inputs = {**self.config.extra_inputs, DISPATCH_INPUT: token}
        reporter.started(f"Triggering {spec.workflow}...")
        result = dispatch_workflow(self.client, spec, inputs=inputs, dry_run=dry_run)
        reporter.succeeded("Workflow triggered." if not dry_run else "Dispatch skipped (dry run).", inputs=result.inputs)
        return result

    def locate(self, token: str) -> int:
        locator = RunLocator(
            self.client,
            self.config.workflow,
            policy=self.config.locate_policy(),
            strategy=self.config.locator_strategy,
            search_window=self.config.search_window,
            sleep=self.sleep,
            listener=self.listener,
        )
        return locator.locate(token)

    def watch(self, run_id: int) -> RunState:
        watcher = RunWatcher(self.client, policy=self.config.retry.watch, sleep=self.sleep, listener=self.listener)
        return watcher.await_completion(run_id)

    def extract_tag(self, run_id: int) -> str:
        extractor = TagExtractor(self.client, policy=self.config.retry.tag, sleep=self.sleep, listener=self.listener)
        return extractor.extract(run_id)

    def fetch(self, tag: str) -> Path:
        fetcher = ArtifactFetcher(
            self.client,
            self.config.download_dir,
            policy=self.config.retry.download,
            sleep=self.sleep,
            listener=self.listener,
        )
        return fetcher.download(tag, self.config.artifact_name(tag))

    def inspect_and_verify(self, archive_path: Path) -> tuple[ArchiveHandle, VerificationReport]:
        inspector = ArchiveInspector(
            self.config.archive_format,
            keep_archive=self.config.keep_archive,
            listener=self.listener,
        )
        reporter = StepReporter(self.listener, "verify")
        reporter.started("Verifying files...")
        with self._archive_scope(archive_path):
            if self.config.inspection == "extract":
                with self._extraction_root(archive_path) as root:
                    handle = inspector.extract(archive_path, root)
                    verification = verify_tree(root, self.config.required_files)
            else:
                handle = inspector.open_and_list(archive_path)
                verification = verify_entries(handle.entries, self.config.required_files)

        for path, present in verification.results.items():
            reporter.progress(f"{'Found' if present else 'Missing'} {path}", path=path, present=present)
        reporter.succeeded(
            f"{len(verification.present)}/{len(verification.results)} required files present",
            missing=verification.missing,
        )
        return handle, verification

    @contextmanager
    def _archive_scope(self, archive_path: Path) -> Iterator[None]:
        # The downloaded archive never outlives inspection unless asked to.
        try:
            yield
        finally:
            if not self.config.keep_archive:
                archive_path.unlink(missing_ok=True)

    @contextmanager
    def _extraction_root(self, archive_path: Path) -> Iterator[Path]:
        if self.config.keep_archive:
            root = extraction_dir(archive_path)
            # A kept tree from an earlier run must not count towards this one.
            shutil.rmtree(root, ignore_errors=True)
            yield root
            return
        with tempfile.TemporaryDirectory(prefix="logor-release-") as tmp_dir:
            yield Path(tmp_dir)

    def _echo_run(self, run_id: int) -> None:
        try:
            summary = self.client.run_summary(run_id)
        except TransientRemoteError as exc:
            logger.warning("Could not fetch summary for run %s: %s", run_id, exc)
            return
        logger.info("gh run view %s:\n%s", run_id, summary.rstrip())

    def _step(
        self,
        report: PipelineReport,
        name: str,
        action: Callable[[], T],
        *,
        key: Optional[str] = None,
    ) -> T:
        try:
            value = action()
        except ReleasePipelineError as exc:
            report.steps.append(StepOutcome(step=name, status="failed", detail=str(exc)))
            raise
        data: Dict[str, object] = {}
        if key is not None:
            data[key] = str(value) if isinstance(value, Path) else value
        report.steps.append(StepOutcome(step=name, status="ok", detail=_describe(value), data=data))
        return value


def _describe(value: object) -> str:
    if isinstance(value, tuple):
        return ", ".join(_describe(item) for item in value)
    if isinstance(value, WorkflowDispatchResult):
        return value.status
    if isinstance(value, ArchiveHandle):
        return f"{len(value.entries)} entries"
    if isinstance(value, VerificationReport):
        return "all present" if value.ok else f"missing {len(value.missing)}"
    if isinstance(value, RunState):
        return value.conclusion.value if value.conclusion else value.status.value
    if value is None:
        return ""
    return str(value)
