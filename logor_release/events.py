"""Progress events emitted by the pipeline for an injected observer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Protocol

from .retry import RetryNotice

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    RETRY = "retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class StepEvent:
    step: str
    kind: EventKind
    message: str
    data: Dict[str, object] = field(default_factory=dict)
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, object]:
        return {
            "step": self.step,
            "kind": self.kind.value,
            "message": self.message,
            "data": self.data,
            "ts": self.ts.isoformat(),
        }


class ProgressListener(Protocol):
    def on_event(self, event: StepEvent) -> None:
        ...


class LoggingListener:
    """Forward events to the module logger."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def on_event(self, event: StepEvent) -> None:
        level = logging.ERROR if event.kind is EventKind.FAILED else logging.INFO
        self.log.log(level, "[%s] %s", event.step, event.message)


class RecordingListener:
    """Keep every event in memory, optionally forwarding to another listener."""

    def __init__(self, forward: Optional[ProgressListener] = None) -> None:
        self.events: List[StepEvent] = []
        self.forward = forward

    def on_event(self, event: StepEvent) -> None:
        self.events.append(event)
        if self.forward is not None:
            self.forward.on_event(event)

    def for_step(self, step: str) -> List[StepEvent]:
        return [event for event in self.events if event.step == step]


class StepReporter:
    """Binds a listener to one step name."""

    def __init__(self, listener: ProgressListener, step: str) -> None:
        self.listener = listener
        self.step = step

    def emit(self, kind: EventKind, message: str, **data: object) -> None:
        self.listener.on_event(StepEvent(step=self.step, kind=kind, message=message, data=dict(data)))

    def started(self, message: str, **data: object) -> None:
        self.emit(EventKind.STARTED, message, **data)

    def progress(self, message: str, **data: object) -> None:
        self.emit(EventKind.PROGRESS, message, **data)

    def succeeded(self, message: str, **data: object) -> None:
        self.emit(EventKind.SUCCEEDED, message, **data)

    def failed(self, message: str, **data: object) -> None:
        self.emit(EventKind.FAILED, message, **data)

    def retry(self, notice: RetryNotice) -> None:
        budget = "unbounded" if notice.max_attempts is None else str(notice.max_attempts)
        self.emit(
            EventKind.RETRY,
            f"attempt {notice.attempt}/{budget}: {notice.error}; next try in {notice.delay:.1f}s",
            attempt=notice.attempt,
            delay=notice.delay,
            error=str(notice.error) if notice.error else None,
        )


class NullListener:
    def on_event(self, event: StepEvent) -> None:
        return None
