"""Tests for the retry policy."""

from __future__ import annotations

import pytest

from docstage.config import RetryCfg
from docstage.errors import AuthenticationError, ServiceError, TransientServiceError
from docstage.retry import RetryPolicy, is_transient


def _policy(**kw) -> tuple[RetryPolicy, list[float]]:
    sleeps: list[float] = []
    return RetryPolicy(sleep=sleeps.append, **kw), sleeps


class _Flaky:
    def __init__(self, failures: list[BaseException], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def test_is_transient():
    assert is_transient(TransientServiceError("x"))
    assert is_transient(TimeoutError())
    assert is_transient(ConnectionError())
    assert not is_transient(ServiceError("x"))
    assert not is_transient(AuthenticationError("x"))
    assert not is_transient(ValueError())


def test_success_first_try():
    policy, sleeps = _policy()
    fn = _Flaky([])
    assert policy.call(fn) == "ok"
    assert fn.calls == 1
    assert sleeps == []


def test_retries_transient_then_succeeds():
    policy, sleeps = _policy(max_attempts=3, backoff_multiplier=1.0)
    fn = _Flaky([TransientServiceError("429"), TransientServiceError("503")])
    assert policy.call(fn, operation="llm") == "ok"
    assert fn.calls == 3
    assert len(sleeps) == 2


def test_exhausted_reraises_last_error():
    policy, _ = _policy(max_attempts=2)
    fn = _Flaky([TransientServiceError("first"), TransientServiceError("second")])
    with pytest.raises(TransientServiceError, match="second"):
        policy.call(fn)
    assert fn.calls == 2


def test_non_transient_not_retried():
    policy, sleeps = _policy(max_attempts=5)
    fn = _Flaky([ServiceError("400 bad request")])
    with pytest.raises(ServiceError):
        policy.call(fn)
    assert fn.calls == 1
    assert sleeps == []


def test_auth_error_not_retried():
    policy, _ = _policy(max_attempts=5)
    fn = _Flaky([AuthenticationError("401")])
    with pytest.raises(AuthenticationError):
        policy.call(fn)
    assert fn.calls == 1


def test_custom_predicate():
    policy, _ = _policy(max_attempts=3, is_retryable=lambda exc: isinstance(exc, KeyError))
    fn = _Flaky([KeyError("a")])
    assert policy.call(fn) == "ok"
    assert fn.calls == 2


def test_arguments_forwarded():
    policy, _ = _policy()
    assert policy.call(lambda a, b=0: a + b, 2, b=3) == 5


def test_backoff_schedule_doubles_and_caps():
    policy = RetryPolicy(max_attempts=5, backoff_multiplier=1.0, backoff_max=5.0)
    assert policy.backoff_schedule() == [1.0, 2.0, 4.0, 5.0]


def test_single_attempt_has_no_backoff():
    assert RetryPolicy(max_attempts=1).backoff_schedule() == []


def test_from_config():
    policy = RetryPolicy.from_config(RetryCfg(max_attempts=4, backoff_multiplier=0.5, backoff_max=3))
    assert policy.max_attempts == 4
    assert policy.backoff_multiplier == 0.5
    assert policy.backoff_max == 3
