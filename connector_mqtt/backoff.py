"""
Publish Backoff Policy
======================

Bounded Context: Failure Recovery

Delay between publish retries grows as ``delay ** exponent`` (1.02 by
default), truncated to whole milliseconds and capped at ``max_delay_ms``.
The curve is gentler than doubling: from 500 ms it takes dozens of failures
to reach a 10 s cap.

The policy is immutable. The current delay is owned by the caller (one
value per publish call), so concurrent publishes never share it.
"""

from dataclasses import dataclass
from typing import Iterator


DEFAULT_INITIAL_DELAY_MS = 500
DEFAULT_MAX_DELAY_MS = 10_000
DEFAULT_EXPONENT = 1.02


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Bounds and growth curve of the publish retry delay.

    Attributes:
        initial_delay_ms: First wait after a failure (>= 1)
        max_delay_ms: Upper bound for any wait (>= initial_delay_ms)
        exponent: Growth exponent (>= 1.0)

    Example:
        >>> policy = BackoffPolicy()
        >>> policy.next_delay(500)
        566
    """
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    exponent: float = DEFAULT_EXPONENT

    def __post_init__(self):
        """Validate bounds."""
        if self.initial_delay_ms < 1:
            raise ValueError(
                f"initial_delay_ms must be >= 1, got {self.initial_delay_ms}"
            )
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError(
                f"max_delay_ms ({self.max_delay_ms}) must be >= "
                f"initial_delay_ms ({self.initial_delay_ms})"
            )
        if self.exponent < 1.0:
            raise ValueError(f"exponent must be >= 1.0, got {self.exponent}")

    def next_delay(self, delay_ms: int) -> int:
        """Delay to use after ``delay_ms``; never decreases, never exceeds the cap."""
        return min(int(delay_ms ** self.exponent), self.max_delay_ms)

    def delays(self) -> Iterator[int]:
        """Infinite sequence of delays for one retry sequence."""
        delay_ms = self.initial_delay_ms
        while True:
            yield delay_ms
            delay_ms = self.next_delay(delay_ms)
