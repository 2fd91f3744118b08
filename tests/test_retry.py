"""Tests for the retry policy."""

import pytest

from rigger.config.schema import RetryConfig
from rigger.core.retry import RetryPolicy, RetryState


def test_should_retry_bounds():
    """Retries continue while fewer than max_attempts retries were done."""
    policy = RetryPolicy(max_attempts=2)

    assert policy.should_retry(0)
    assert policy.should_retry(1)
    assert not policy.should_retry(2)


def test_zero_disables_retries():
    policy = RetryPolicy(max_attempts=0)

    assert not policy.should_retry(0)


def test_explicit_limit_overrides_config():
    policy = RetryPolicy(max_attempts=0)

    assert policy.should_retry(0, max_attempts=1)


def test_fixed_delay():
    policy = RetryPolicy(delay=2.0)

    assert policy.delay_before_retry(1) == 2.0
    assert policy.delay_before_retry(3) == 2.0


def test_exponential_backoff_with_cap():
    """delay * backoff**(n-1), capped at max_delay."""
    policy = RetryPolicy(delay=1.0, backoff=2.0, max_delay=5.0)

    assert [policy.delay_before_retry(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


def test_wait_uses_injected_sleep():
    slept = []
    policy = RetryPolicy(delay=0.5, sleep=slept.append)

    assert policy.wait(1) == 0.5
    assert slept == [0.5]


def test_wait_skips_sleep_without_delay():
    slept = []
    policy = RetryPolicy(delay=0, sleep=slept.append)

    policy.wait(1)

    assert slept == []


def test_invalid_arguments():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=-1)
    with pytest.raises(ValueError):
        RetryPolicy(delay=-1)


def test_from_config():
    policy = RetryPolicy.from_config(RetryConfig(max_attempts=3, delay=0.25, backoff=1.5))

    assert policy.max_attempts == 3
    assert policy.delay == 0.25
    assert policy.backoff == 1.5


def test_retry_state():
    state = RetryState("s", max_retries=2)
    assert state.retries == 0

    state.begin_attempt()
    assert state.retries == 0
    state.begin_attempt()
    assert state.attempts == 2
    assert state.retries == 1
