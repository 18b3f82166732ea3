"""Retry policy for external calls (storage reads, OCR batches, LLM invocations).

The policy is an explicit collaborator passed to every service adapter, so the
attempt bound, backoff schedule and retryable-error predicate can be tested
without any network access. Built on tenacity.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import structlog
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from docstage.config import RetryCfg
from docstage.errors import TransientServiceError

log = structlog.get_logger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Default predicate: only timeouts, rate limits, 5xx and dropped connections retry."""
    return isinstance(exc, (TransientServiceError, TimeoutError, ConnectionError))


@dataclass
class RetryPolicy:
    """Bounded retry with exponential backoff.

    Attributes:
        max_attempts: Total attempts including the first call.
        backoff_multiplier: First delay in seconds; doubles on each retry.
        backoff_max: Upper bound on a single delay.
        is_retryable: Predicate deciding whether an exception is retried.
        sleep: Sleep function (replaced in tests).
    """

    max_attempts: int = 3
    backoff_multiplier: float = 1.0
    backoff_max: float = 30.0
    is_retryable: Callable[[BaseException], bool] = is_transient
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_config(cls, cfg: RetryCfg) -> RetryPolicy:
        return cls(
            max_attempts=cfg.max_attempts,
            backoff_multiplier=cfg.backoff_multiplier,
            backoff_max=cfg.backoff_max,
        )

    def backoff_schedule(self) -> list[float]:
        """Delays slept between consecutive attempts (length ``max_attempts - 1``)."""
        return [
            min(self.backoff_max, self.backoff_multiplier * 2**i)
            for i in range(self.max_attempts - 1)
        ]

    def call(self, fn: Callable[..., T], *args: Any, operation: str = "call", **kwargs: Any) -> T:
        """Invoke *fn* under this policy; the last exception is re-raised unchanged."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_multiplier, max=self.backoff_max),
            retry=retry_if_exception(self.is_retryable),
            sleep=self.sleep,
            reraise=True,
            before_sleep=_log_retry(operation),
        )
        return retrying(fn, *args, **kwargs)


def _log_retry(operation: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            "retrying external call",
            operation=operation,
            attempt=state.attempt_number,
            delay=state.next_action.sleep if state.next_action else None,
            error=str(exc),
        )

    return _before_sleep
