"""
Exponential backoff for the gateway login loop.

Login failures (bad network, gateway outages) are retried after a growing
delay that starts at the configured retry interval.
"""

import random


class ExponentialBackoff:
    """
    Exponential backoff with jitter.

    Computes delays as: min(base * multiplier^attempt, max_delay) + jitter.
    Call reset() after a successful login to zero the attempt counter.

    Usage:
        backoff = ExponentialBackoff(base_delay=5.0, max_delay=60.0)
        while running:
            try:
                await client.start(token)
                backoff.reset()
            except Exception:
                await asyncio.sleep(backoff.next_delay())
    """

    def __init__(
        self,
        base_delay: float = 5.0,
        max_delay: float = 60.0,
        multiplier: float = 2.0,
        jitter_range: float = 0.1,
    ):
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        self.base_delay = base_delay
        self.max_delay = max(max_delay, base_delay)
        self.multiplier = multiplier
        self.jitter_range = jitter_range
        self._attempt = 0

    @property
    def attempt(self) -> int:
        return self._attempt

    def next_delay(self) -> float:
        """Return the next delay and advance the attempt counter."""
        delay = min(
            self.base_delay * (self.multiplier ** self._attempt),
            self.max_delay,
        )
        jitter = delay * random.uniform(-self.jitter_range, self.jitter_range)
        self._attempt += 1
        return max(0.0, delay + jitter)

    def reset(self) -> None:
        self._attempt = 0
