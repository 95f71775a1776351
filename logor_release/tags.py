"""Scrape the release tag a run printed into its log."""

from __future__ import annotations

import re
from typing import Callable, Optional

from .errors import NotReady, RetryExhausted, TagNotFound
from .events import NullListener, ProgressListener, StepReporter
from .remote import RemoteClient
from .retry import RetryPolicy, execute

TAG_PATTERN = re.compile(r"Version:\s*(v[\w.-]+)")


def find_release_tag(text: str, pattern: re.Pattern[str] = TAG_PATTERN) -> Optional[str]:
    match = pattern.search(text or "")
    return match.group(1) if match else None


class TagExtractor:
    def __init__(
        self,
        client: RemoteClient,
        *,
        policy: RetryPolicy,
        pattern: re.Pattern[str] = TAG_PATTERN,
        sleep: Optional[Callable[[float], None]] = None,
        listener: Optional[ProgressListener] = None,
    ) -> None:
        self.client = client
        self.policy = policy
        self.pattern = pattern
        self.sleep = sleep
        self.reporter = StepReporter(listener or NullListener(), "tag")

    def extract(self, run_id: int) -> str:
        self.reporter.started("Extracting tag from logs...")
        try:
            tag = execute(
                self.policy,
                lambda: self._scan(run_id),
                name="Extract tag",
                sleep=self.sleep,
                on_retry=self.reporter.retry,
            )
        except RetryExhausted as exc:
            self.reporter.failed(f"No tag in logs after {exc.attempts} attempt(s)")
            raise TagNotFound(run_id, exc.attempts) from exc
        self.reporter.succeeded(f"Release tag: {tag}", tag=tag)
        return tag

    def _scan(self, run_id: int) -> str:
        tag = find_release_tag(self.client.run_log(run_id), self.pattern)
        if tag is None:
            raise NotReady("tag not in logs")
        return tag
