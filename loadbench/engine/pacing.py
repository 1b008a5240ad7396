"""Think-time pacing between a virtual user's iterations."""

import random
from dataclasses import dataclass

from loadbench.engine.errors import ConfigurationError

# Floor on any computed delay so a VU never busy-loops
MIN_DELAY_SECONDS = 0.01


def compute_delay(base_seconds: float, jitter_percent: float, rng: random.Random) -> float:
    """Return ``base`` shifted by symmetric jitter, floored at ``MIN_DELAY_SECONDS``.

    delay = base + U(-1, 1) * base * jitter_percent / 100
    """
    if base_seconds < 0:
        raise ConfigurationError(f"Base think-time must be non-negative, got {base_seconds}")
    if jitter_percent < 0:
        raise ConfigurationError(f"Jitter percent must be non-negative, got {jitter_percent}")
    if jitter_percent == 0:
        return max(MIN_DELAY_SECONDS, base_seconds)
    spread = base_seconds * jitter_percent / 100.0
    jitter = rng.uniform(-1.0, 1.0) * spread
    return max(MIN_DELAY_SECONDS, base_seconds + jitter)


@dataclass(frozen=True)
class ThinkTime:
    """Base think-time drawn uniformly from [min, max], then jittered."""

    min_seconds: float = 0.5
    max_seconds: float = 2.5
    jitter_percent: float = 10.0

    def __post_init__(self) -> None:
        if self.min_seconds < 0 or self.max_seconds < self.min_seconds:
            raise ConfigurationError(
                f"Invalid think-time range [{self.min_seconds}, {self.max_seconds}]"
            )
        if self.jitter_percent < 0:
            raise ConfigurationError(
                f"Jitter percent must be non-negative, got {self.jitter_percent}"
            )

    @classmethod
    def fixed(cls, seconds: float, jitter_percent: float = 0.0) -> "ThinkTime":
        return cls(min_seconds=seconds, max_seconds=seconds, jitter_percent=jitter_percent)

    def next_delay(self, rng: random.Random) -> float:
        if self.min_seconds == self.max_seconds:
            base = self.min_seconds
        else:
            base = rng.uniform(self.min_seconds, self.max_seconds)
        return compute_delay(base, self.jitter_percent, rng)
