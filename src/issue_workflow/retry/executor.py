"""Bounded retry with exponential backoff for fallible async operations.

The executor runs a zero-argument coroutine factory up to
``policy.max_retries + 1`` times. Attempts are strictly sequential. After a
failure the error's retryability decides what happens next:

- not retryable: the error is re-raised unchanged, no sleep
- retryable, attempts left: sleep, grow the delay, try again
- retryable, no attempts left: raise MAX_RETRIES_EXCEEDED wrapping the cause

Delay sequence:
    delay_0 = initial_delay_ms
    delay_n = min(delay_{n-1} * backoff_multiplier, max_delay_ms)

The delay is never reset within one ``execute`` call.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from src.issue_workflow.errors import (
    ClassifiedError,
    ErrorCode,
    describe_error,
    is_retryable,
)
from src.issue_workflow.events.emitter import EventEmitter, safe_emit
from src.issue_workflow.events.models import EventType, WorkflowEvent
from src.issue_workflow.retry.policy import RetryPolicy


logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """Generic bounded-retry-with-backoff wrapper.

    The executor holds no per-call state, so one instance can serve
    concurrent workflow runs.

    Attributes:
        event_emitter: Receives RETRY_ATTEMPT / RETRY_SUCCEEDED /
            RETRY_EXHAUSTED events.
        sleep: Coroutine function taking seconds; injectable for tests.

    Example:
        >>> executor = RetryExecutor()
        >>> result = await executor.execute(
        ...     lambda: client.create_branch(item),
        ...     policy,
        ...     "CREATE_BRANCH",
        ... )
    """

    def __init__(
        self,
        event_emitter: Optional[EventEmitter] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.event_emitter = event_emitter
        self.sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        label: str,
        issue_id: Optional[str] = None,
        repository: Optional[str] = None,
        on_retry: Optional[Callable[[int], None]] = None,
    ) -> T:
        """Run ``operation`` with retries according to ``policy``.

        Args:
            operation: Zero-argument callable returning an awaitable.
            policy: Retry configuration.
            label: Step label used in events and error messages.
            issue_id: Optional correlation id for emitted events.
            repository: Optional repository for emitted events.
            on_retry: Optional callback invoked with the attempt number
                before every retry sleep.

        Returns:
            The operation's result.

        Raises:
            ClassifiedError: The original non-retryable error, or a
                MAX_RETRIES_EXCEEDED error once all attempts have failed.
        """
        delay_ms = policy.initial_delay_ms
        max_attempts = policy.max_attempts
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            try:
                result = await operation()
            except Exception as exc:
                last_error = exc

                if not is_retryable(exc):
                    logger.info(
                        "%s failed with non-retryable error on attempt %d",
                        label,
                        attempt,
                        extra={"label": label, "attempt": attempt, "issue_id": issue_id},
                    )
                    raise

                if attempt == max_attempts:
                    break

                logger.warning(
                    "%s failed on attempt %d, retrying in %sms: %s",
                    label,
                    attempt,
                    delay_ms,
                    describe_error(exc),
                )
                await self._emit(
                    EventType.RETRY_ATTEMPT,
                    issue_id,
                    repository,
                    {
                        "label": label,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "delay_ms": delay_ms,
                        "error": describe_error(exc),
                        "code": exc.code.value
                        if isinstance(exc, ClassifiedError)
                        else None,
                    },
                )
                if on_retry is not None:
                    on_retry(attempt)

                await self.sleep(delay_ms / 1000.0)
                delay_ms = policy.next_delay_ms(delay_ms)
                continue

            if attempt > 1:
                logger.info("%s succeeded on attempt %d", label, attempt)
                await self._emit(
                    EventType.RETRY_SUCCEEDED,
                    issue_id,
                    repository,
                    {"label": label, "attempt": attempt},
                )
            return result

        message = (
            f"{label} failed after {max_attempts} attempts: "
            f"{describe_error(last_error)}"
        )
        logger.error(message, extra={"label": label, "issue_id": issue_id})
        await self._emit(
            EventType.RETRY_EXHAUSTED,
            issue_id,
            repository,
            {
                "label": label,
                "attempts": max_attempts,
                "error": describe_error(last_error),
            },
        )
        raise ClassifiedError(
            message,
            ErrorCode.MAX_RETRIES_EXCEEDED,
            retryable=False,
            cause=last_error,
        )

    async def _emit(
        self,
        event_type: EventType,
        issue_id: Optional[str],
        repository: Optional[str],
        details: dict,
    ) -> None:
        await safe_emit(
            self.event_emitter,
            WorkflowEvent(
                event_type=event_type,
                issue_id=issue_id,
                repository=repository,
                details=details,
            ),
        )
