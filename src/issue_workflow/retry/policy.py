"""Immutable retry policy shared by every retried step in a process."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryPolicy(BaseModel):
    """Exponential backoff configuration.

    Constructed once at startup and read-only thereafter.

    Attributes:
        max_retries: Retries after the first attempt; total attempts are
            ``max_retries + 1``.
        initial_delay_ms: Delay before the first retry.
        max_delay_ms: Upper bound for any single delay.
        backoff_multiplier: Factor applied to the delay after each failure.

    Example:
        >>> policy = RetryPolicy(initial_delay_ms=100, max_delay_ms=150)
        >>> policy.next_delay_ms(100)
        150.0
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    initial_delay_ms: float = Field(default=1000, gt=0)
    max_delay_ms: float = Field(default=30000, gt=0)
    backoff_multiplier: float = Field(default=2.0, gt=1)

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryPolicy":
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        return self

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def next_delay_ms(self, delay_ms: float) -> float:
        """Grow a delay by the multiplier, capped at max_delay_ms."""
        return min(delay_ms * self.backoff_multiplier, self.max_delay_ms)
