"""
Retry policy for catalog page fetches.

A page fetch is tried once, then retried up to ``max_retries`` times. The
wait before retry ``n`` (0-based) is ``min(base * 2**n, cap)`` milliseconds.
"""

from dataclasses import dataclass

from pokeshelf.config import settings


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Exponential backoff schedule.

    Attributes:
        max_retries: Additional attempts after the first
        base_delay_ms: Delay before the first retry
        max_delay_ms: Upper bound on any single delay
    """

    max_retries: int = 2
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Retry delays must be non-negative")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_ms(self, attempt: int) -> int:
        """Milliseconds to wait after failed attempt ``attempt`` (0-based)."""
        return min(self.base_delay_ms * 2**attempt, self.max_delay_ms)

    def delay_seconds(self, attempt: int) -> float:
        return self.delay_ms(attempt) / 1000

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
        )
