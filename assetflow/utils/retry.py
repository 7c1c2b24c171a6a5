from __future__ import annotations

import random

from pydantic import BaseModel, Field


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    factor: float = 2.0,
    cap: float = 10.0,
    jitter: float = 0.0,
) -> float:
    """Compute capped exponential backoff with jitter for retry ``attempt`` (1-based)."""
    if base <= 0:
        return 0.0
    delay = min(base * factor ** (attempt - 1), cap)
    return delay + random.uniform(0, jitter) if jitter else delay


class RetryPolicy(BaseModel):
    """Delay applied between attempts of a retryable step.

    Only timing is affected; the number of attempts is set per step.
    """

    base_delay: float = Field(default=0.0, ge=0)
    factor: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=10.0, ge=0)
    jitter: float = Field(default=0.0, ge=0)

    @classmethod
    def none(cls) -> "RetryPolicy":
        return cls()

    @classmethod
    def exponential(cls, base_delay: float = 1.0, max_delay: float = 10.0) -> "RetryPolicy":
        """One second doubling per attempt, capped at ten seconds."""
        return cls(base_delay=base_delay, max_delay=max_delay)

    def delay_for(self, attempt: int) -> float:
        return compute_backoff(
            attempt,
            base=self.base_delay,
            factor=self.factor,
            cap=self.max_delay,
            jitter=self.jitter,
        )
