"""Find the run a dispatch created by looking for its token in run metadata."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, Optional

from .correlation import token_matches
from .errors import NotReady, RetryExhausted, RunNotFound, TransientRemoteError
from .events import NullListener, ProgressListener, StepReporter
from .models import RunSummary
from .remote import RemoteClient
from .retry import RetryPolicy, execute

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_WINDOW = 10


class LocatorStrategy(str, Enum):
    # Match the token against the run's display title (one query per attempt).
    TITLE = "title"
    # Match against step names of each candidate run (one extra query per run).
    STEPS = "steps"


def find_by_title(runs: Iterable[RunSummary], token: str) -> Optional[int]:
    for run in runs:
        if token_matches(token, run.title):
            return run.id
    return None


class RunLocator:
    def __init__(
        self,
        client: RemoteClient,
        workflow: str,
        *,
        policy: RetryPolicy,
        strategy: LocatorStrategy = LocatorStrategy.TITLE,
        search_window: int = DEFAULT_SEARCH_WINDOW,
        sleep: Optional[Callable[[float], None]] = None,
        listener: Optional[ProgressListener] = None,
    ) -> None:
        self.client = client
        self.workflow = workflow
        self.policy = policy
        self.strategy = LocatorStrategy(strategy)
        self.search_window = search_window
        self.sleep = sleep
        self.reporter = StepReporter(listener or NullListener(), "locate")

    def locate(self, token: str) -> int:
        self.reporter.started(
            f"Finding run for dispatch token {token} ({self.strategy.value} match, last {self.search_window} runs)"
        )
        try:
            run_id = execute(
                self.policy,
                lambda: self._scan(token),
                name="Find run",
                sleep=self.sleep,
                on_retry=self.reporter.retry,
            )
        except RetryExhausted as exc:
            self.reporter.failed(f"Run not found after {exc.attempts} attempt(s)")
            raise RunNotFound(token, exc.attempts) from exc
        self.reporter.succeeded(f"Found run ID: {run_id}", run_id=run_id)
        return run_id

    def _scan(self, token: str) -> int:
        runs = self.client.list_runs(self.workflow, self.search_window)
        if self.strategy is LocatorStrategy.TITLE:
            match = find_by_title(runs, token)
        else:
            match = self._find_by_steps(runs, token)
        if match is None:
            raise NotReady(f"run not found among {len(runs)} recent run(s)")
        return match

    def _find_by_steps(self, runs: Iterable[RunSummary], token: str) -> Optional[int]:
        for run in runs:
            try:
                jobs = self.client.run_jobs(run.id)
            except TransientRemoteError as exc:
                logger.warning("Error checking run %s: %s", run.id, exc)
                continue
            for job in jobs:
                if any(token_matches(token, step.name) for step in job.steps):
                    return run.id
        return None
