"""Property-based tests for retry backoff behaviour.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import asyncio

from hypothesis import given, settings, strategies as st

from src.issue_workflow.errors import ClassifiedError, ErrorCode
from src.issue_workflow.retry import RetryExecutor, RetryPolicy


def run_async(coro):
    return asyncio.run(coro)


policies = st.builds(
    lambda retries, initial, extra, multiplier: RetryPolicy(
        max_retries=retries,
        initial_delay_ms=initial,
        max_delay_ms=initial + extra,
        backoff_multiplier=multiplier,
    ),
    st.integers(min_value=0, max_value=6),
    st.integers(min_value=1, max_value=5000),
    st.integers(min_value=0, max_value=60000),
    st.floats(min_value=1.1, max_value=4.0, allow_nan=False),
)


async def _always_fail():
    raise ClassifiedError("still failing", ErrorCode.STATUS_UPDATE_FAILED)


@settings(max_examples=100, deadline=None)
@given(policy=policies)
def test_attempts_and_delays_follow_policy(policy):
    """For a permanently failing retryable operation, the executor makes
    max_retries + 1 attempts and sleeps max_retries times with a
    non-decreasing, capped delay sequence."""
    delays = []
    calls = []

    async def sleep(seconds):
        delays.append(seconds * 1000)

    async def operation():
        calls.append(1)
        await _always_fail()

    executor = RetryExecutor(sleep=sleep)
    try:
        run_async(executor.execute(operation, policy, "UPDATE_STATUS"))
    except ClassifiedError as e:
        assert e.code == ErrorCode.MAX_RETRIES_EXCEEDED
        assert e.retryable is False
    else:
        raise AssertionError("expected MAX_RETRIES_EXCEEDED")

    assert len(calls) == policy.max_retries + 1
    assert len(delays) == policy.max_retries

    expected = policy.initial_delay_ms
    for delay in delays:
        assert abs(delay - expected) < 1e-6
        assert delay <= policy.max_delay_ms + 1e-6
        expected = min(expected * policy.backoff_multiplier, policy.max_delay_ms)

    assert all(a <= b + 1e-6 for a, b in zip(delays, delays[1:]))


@settings(max_examples=100, deadline=None)
@given(policy=policies, failures=st.integers(min_value=0, max_value=6))
def test_success_within_attempt_limit_returns_result(policy, failures):
    """An operation that recovers within the attempt limit returns its
    result after exactly failures + 1 calls."""
    calls = []

    async def sleep(seconds):
        pass

    async def operation():
        calls.append(1)
        if len(calls) <= failures:
            await _always_fail()
        return "done"

    executor = RetryExecutor(sleep=sleep)
    if failures <= policy.max_retries:
        assert run_async(executor.execute(operation, policy, "CREATE_BRANCH")) == "done"
        assert len(calls) == failures + 1
    else:
        try:
            run_async(executor.execute(operation, policy, "CREATE_BRANCH"))
        except ClassifiedError as e:
            assert e.code == ErrorCode.MAX_RETRIES_EXCEEDED
        assert len(calls) == policy.max_retries + 1
