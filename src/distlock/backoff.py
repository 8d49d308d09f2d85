import random
from typing import Optional


class Backoff:
    """
    Wait policy between acquisition attempts.

    Each delay is a fixed base plus random jitter drawn from [0, jitter_ms),
    and jitter_ms is kept below base_ms. Competing clients that collided
    once drift apart on the next retry.
    """

    def __init__(
        self,
        base_ms: int = 30,
        jitter_ms: int = 20,
        rng: Optional[random.Random] = None,
    ):
        if base_ms < 0 or jitter_ms < 0:
            raise ValueError("backoff intervals must not be negative")

        if jitter_ms > 0 and jitter_ms >= base_ms:
            raise ValueError(
                f"jitter_ms must be smaller than base_ms, got {jitter_ms} >= {base_ms}"
            )

        self.base_ms = base_ms
        self.jitter_ms = jitter_ms
        self._rng = rng or random.Random()

    def next_delay(self) -> float:
        """Return the next wait in seconds."""
        jitter = 0.0
        if self.jitter_ms > 0:
            # random() is in [0, 1), keeping the jitter strictly below the bound
            jitter = self._rng.random() * self.jitter_ms
        return (self.base_ms + jitter) / 1000.0
