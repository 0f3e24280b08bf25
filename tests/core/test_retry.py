import pytest

from webex_channel.core.retry import MAX_BACKOFF_MS, RetryPolicy, RetryState
from webex_channel.errors import (
    MessageValidationError,
    WebexApiError,
    WebexNetworkError,
)


def _policy(**kwargs) -> RetryPolicy:
    kwargs.setdefault("rng", lambda: 0.0)
    return RetryPolicy(**kwargs)


@pytest.mark.parametrize("attempt,expected", [(1, 1000), (2, 2000), (3, 4000), (4, 8000)])
def test_backoff_doubles_without_jitter(attempt, expected):
    assert _policy(base_delay_ms=1000).backoff_ms(attempt) == expected


def test_backoff_is_capped():
    assert _policy(base_delay_ms=1000).backoff_ms(10) == MAX_BACKOFF_MS


def test_jitter_stays_within_thirty_percent():
    low = _policy(base_delay_ms=1000, rng=lambda: 0.0).backoff_ms(2)
    high = _policy(base_delay_ms=1000, rng=lambda: 0.999999).backoff_ms(2)
    assert low == 2000
    assert 2000 < high < 2600


def test_zero_base_delay_retries_immediately():
    assert _policy(base_delay_ms=0).backoff_ms(3) == 0


def test_record_failure_schedules_retry_for_transient_errors():
    policy = _policy(max_retries=2, base_delay_ms=500)
    state = RetryState()
    error = WebexApiError("busy", status_code=503)

    assert policy.record_failure(state, error) is True
    assert state.attempt == 1
    assert state.last_error is error
    assert state.next_delay_ms == 500

    assert policy.record_failure(state, error) is True
    assert state.next_delay_ms == 1000

    assert policy.record_failure(state, error) is False
    assert state.attempt == 3


@pytest.mark.parametrize(
    "error",
    [
        WebexApiError("bad request", status_code=400),
        WebexApiError("unauthorized", status_code=401),
        WebexApiError("server error", status_code=500),
        MessageValidationError("no target"),
        RuntimeError("boom"),
    ],
)
def test_record_failure_gives_up_on_terminal_errors(error):
    state = RetryState()
    assert _policy(max_retries=5).record_failure(state, error) is False
    assert state.attempt == 1


def test_network_errors_are_retryable():
    state = RetryState()
    assert _policy().record_failure(state, WebexNetworkError("reset")) is True


def test_max_attempts_counts_the_first_try():
    assert RetryPolicy(max_retries=0).max_attempts == 1
    assert RetryPolicy(max_retries=3).max_attempts == 4
