"""Bounded and unbounded retry-with-backoff executor built on tenacity."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    stop_never,
    wait_exponential,
    wait_fixed,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from .errors import RetryExhausted, UnrecoverableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffStrategy(str, Enum):
    CONSTANT = "constant"
    EXPONENTIAL = "exponential"


class RetryPolicy(BaseModel):
    """Per-step retry configuration.

    ``max_attempts`` of ``None`` means unbounded: the operation is retried until
    it succeeds, raises an :class:`UnrecoverableError`, or the process is
    interrupted. Delays start at ``min_delay`` and never exceed ``max_delay``.
    """

    max_attempts: Optional[int] = Field(default=None, ge=1)
    min_delay: float = Field(default=1.0, ge=0)
    max_delay: Optional[float] = Field(default=None, ge=0)
    backoff: BackoffStrategy = BackoffStrategy.CONSTANT

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_delays(self) -> "RetryPolicy":
        if self.max_delay is not None and self.max_delay < self.min_delay:
            raise ValueError("max_delay must be greater than or equal to min_delay")
        return self

    @classmethod
    def bounded(cls, attempts: int, delay: float, **kwargs: object) -> "RetryPolicy":
        return cls(max_attempts=attempts, min_delay=delay, **kwargs)

    @classmethod
    def unbounded(cls, delay: float, **kwargs: object) -> "RetryPolicy":
        return cls(max_attempts=None, min_delay=delay, **kwargs)

    @property
    def is_unbounded(self) -> bool:
        return self.max_attempts is None

    def delay_after(self, attempt: int) -> float:
        """Delay slept after failed attempt number ``attempt`` (1-based)."""

        if self.backoff is BackoffStrategy.EXPONENTIAL:
            delay = self.min_delay * (2 ** max(attempt - 1, 0))
        else:
            delay = self.min_delay
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def stop_condition(self) -> stop_base:
        if self.max_attempts is None:
            return stop_never
        return stop_after_attempt(self.max_attempts)

    def wait_strategy(self) -> wait_base:
        if self.backoff is BackoffStrategy.EXPONENTIAL:
            ceiling = self.max_delay if self.max_delay is not None else float("inf")
            return wait_exponential(multiplier=self.min_delay, min=self.min_delay, max=ceiling)
        return wait_fixed(self.delay_after(1))


@dataclass(frozen=True, slots=True)
class RetryNotice:
    """Reported before every inter-attempt sleep."""

    name: str
    attempt: int
    delay: float
    error: Optional[BaseException]
    max_attempts: Optional[int]


def is_retry_worthy(exc: BaseException) -> bool:
    # KeyboardInterrupt and SystemExit are not Exceptions and end the loop.
    return isinstance(exc, Exception) and not isinstance(exc, UnrecoverableError)


def execute(
    policy: RetryPolicy,
    operation: Callable[[], T],
    *,
    name: str = "operation",
    sleep: Optional[Callable[[float], None]] = None,
    on_retry: Optional[Callable[[RetryNotice], None]] = None,
) -> T:
    """Run ``operation`` under ``policy`` and return its first successful result.

    Raises :class:`RetryExhausted` when a bounded policy runs out of attempts.
    An :class:`UnrecoverableError` raised by ``operation`` propagates at once.
    """

    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        budget = "unbounded" if policy.max_attempts is None else str(policy.max_attempts)
        logger.info(
            "%s: attempt %d/%s failed (%s); retrying in %.1fs",
            name,
            retry_state.attempt_number,
            budget,
            exc,
            delay,
        )
        if on_retry is not None:
            on_retry(
                RetryNotice(
                    name=name,
                    attempt=retry_state.attempt_number,
                    delay=delay,
                    error=exc,
                    max_attempts=policy.max_attempts,
                )
            )

    retrying = Retrying(
        stop=policy.stop_condition(),
        wait=policy.wait_strategy(),
        retry=retry_if_exception(is_retry_worthy),
        before_sleep=_before_sleep,
        sleep=sleep or time.sleep,
        reraise=False,
    )

    try:
        for attempt in retrying:
            with attempt:
                return operation()
    except RetryError as exc:
        last = exc.last_attempt.exception()
        attempts = exc.last_attempt.attempt_number
        logger.error("%s failed with %d attempt(s).", name, attempts)
        logger.error("The last error: %s", last)
        raise RetryExhausted(name, last, attempts) from last

    raise RuntimeError("unreachable")


__all__ = [
    "BackoffStrategy",
    "RetryNotice",
    "RetryPolicy",
    "execute",
    "is_retry_worthy",
]
