"""
Pytest tests for the retry/backoff wrapper.

Run from the repository root:
    pytest gitlab_analyze/tests/test_retry.py -v
"""

import pytest

from gitlab_analyze.config import PipelineConfig
from gitlab_analyze.exceptions import GitLabDecodeError, GitLabStatusError, GitLabTransportError
from gitlab_analyze.retry import backoff_delays, call_with_retries


def _flaky(failures, result="ok", exc_factory=None):
    state = {"calls": 0}
    exc_factory = exc_factory or (lambda: GitLabTransportError(endpoint="/x", message="connection reset"))

    def fn():
        state["calls"] += 1
        if state["calls"] <= failures:
            raise exc_factory()
        return result

    return fn, state


def test_backoff_doubles_without_cap_hit():
    cfg = PipelineConfig(max_attempts=5, initial_backoff_s=1.0, max_backoff_s=60.0)
    assert list(backoff_delays(cfg)) == [1.0, 2.0, 4.0, 8.0]


def test_backoff_is_capped():
    cfg = PipelineConfig(max_attempts=6, initial_backoff_s=1.0, max_backoff_s=5.0)
    assert list(backoff_delays(cfg)) == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_single_attempt_has_no_backoff():
    assert list(backoff_delays(PipelineConfig(max_attempts=1))) == []


def test_returns_first_success_after_failures(sleeps):
    fn, state = _flaky(2)
    assert call_with_retries(fn, config=PipelineConfig(), describe="t", sleep=sleeps) == "ok"
    assert state["calls"] == 3
    assert sleeps.delays == [1.0, 2.0]


def test_raises_last_error_after_exhausting_attempts(sleeps):
    errors = []

    def factory():
        errors.append(GitLabStatusError(status_code=502, endpoint="/x", message=f"bad gateway {len(errors)}"))
        return errors[-1]

    fn, state = _flaky(100, exc_factory=factory)
    with pytest.raises(GitLabStatusError) as ei:
        call_with_retries(fn, config=PipelineConfig(max_attempts=5), describe="t", sleep=sleeps)
    assert state["calls"] == 5
    assert ei.value is errors[-1]
    assert sleeps.delays == [1.0, 2.0, 4.0, 8.0]


def test_decode_errors_are_not_retried(sleeps):
    fn, state = _flaky(1, exc_factory=lambda: GitLabDecodeError(endpoint="/x", message="not json"))
    with pytest.raises(GitLabDecodeError):
        call_with_retries(fn, config=PipelineConfig(), describe="t", sleep=sleeps)
    assert state["calls"] == 1
    assert sleeps.delays == []


def test_unrelated_exceptions_propagate_immediately(sleeps):
    def boom():
        raise KeyError("nope")

    with pytest.raises(KeyError):
        call_with_retries(boom, config=PipelineConfig(), describe="t", sleep=sleeps)
    assert sleeps.delays == []
