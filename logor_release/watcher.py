"""Poll a run until it reaches a terminal state."""

from __future__ import annotations

from typing import Callable, Optional

from .errors import NotReady, WorkflowFailed
from .events import NullListener, ProgressListener, StepReporter
from .models import RunState
from .remote import RemoteClient
from .retry import RetryPolicy, execute


class RunWatcher:
    def __init__(
        self,
        client: RemoteClient,
        *,
        policy: RetryPolicy,
        sleep: Optional[Callable[[float], None]] = None,
        listener: Optional[ProgressListener] = None,
    ) -> None:
        self.client = client
        self.policy = policy
        self.sleep = sleep
        self.reporter = StepReporter(listener or NullListener(), "watch")
        self.polls = 0

    def await_completion(self, run_id: int) -> RunState:
        """Return the final state of a successful run.

        Raises :class:`WorkflowFailed` as soon as a completed run reports any
        conclusion other than success; completed runs are never polled again.
        """

        self.polls = 0
        self.reporter.started(f"Waiting for run {run_id} to complete")
        try:
            state = execute(
                self.policy,
                lambda: self._poll(run_id),
                name="Wait run completion",
                sleep=self.sleep,
                on_retry=self.reporter.retry,
            )
        except WorkflowFailed as exc:
            self.reporter.failed(str(exc), conclusion=exc.conclusion, polls=self.polls)
            raise
        self.reporter.succeeded("Workflow completed successfully.", polls=self.polls)
        return state

    def _poll(self, run_id: int) -> RunState:
        self.polls += 1
        state = self.client.run_state(run_id)
        conclusion = state.conclusion.value if state.conclusion else "pending"
        self.reporter.progress(f"Status: {state.status.value}, Conclusion: {conclusion}")
        if not state.completed:
            raise NotReady(f"run {run_id} still {state.status.value}")
        if not state.succeeded:
            raise WorkflowFailed(run_id, state.conclusion.value if state.conclusion else None)
        return state
