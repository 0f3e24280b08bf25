"""
Bounded exponential backoff with jitter.

`RetryPolicy` is pure apart from its random source, so tests can pin jitter
and assert exact delays. `RetryState` lives for one send and is discarded.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Optional

from webex_channel.errors import is_transient_error

MAX_BACKOFF_MS = 30_000
JITTER_RATIO = 0.3


@dataclass
class RetryState:
    attempt: int = 0
    last_error: Optional[BaseException] = None
    next_delay_ms: float = 0.0


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = MAX_BACKOFF_MS
    jitter_ratio: float = JITTER_RATIO
    rng: Callable[[], float] = field(default=random.random, compare=False)
    is_retryable: Callable[[BaseException], bool] = field(
        default=is_transient_error, compare=False
    )

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def backoff_ms(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-indexed)."""
        exponential = self.base_delay_ms * (2 ** (attempt - 1))
        jitter = self.rng() * self.jitter_ratio
        return min(exponential * (1 + jitter), self.max_delay_ms)

    def record_failure(self, state: RetryState, error: BaseException) -> bool:
        """
        Advance `state` past a failed attempt.

        Returns True when another attempt should be made; `state.next_delay_ms`
        then holds the delay to wait first.
        """
        state.attempt += 1
        state.last_error = error
        if state.attempt >= self.max_attempts or not self.is_retryable(error):
            state.next_delay_ms = 0.0
            return False
        state.next_delay_ms = self.backoff_ms(state.attempt)
        return True
