"""Scenario definition: what load to drive and how to judge it."""

from dataclasses import dataclass, field

from loadbench.engine.mix import OperationMix
from loadbench.engine.pacing import ThinkTime
from loadbench.engine.phases import DEFAULT_BASELINE_PHASE
from loadbench.engine.profile import LoadProfile
from loadbench.engine.thresholds import Threshold


@dataclass(frozen=True)
class Scenario:
    name: str
    title: str
    profile: LoadProfile
    mix: OperationMix
    think_time: ThinkTime = field(default_factory=ThinkTime)
    thresholds: tuple[Threshold, ...] = ()
    baseline_phase: str = DEFAULT_BASELINE_PHASE
    latency_ceiling_ms: float | None = None
    description: str = ""

    @property
    def duration_seconds(self) -> float:
        return self.profile.total_duration

    def describe(self) -> dict:
        return {
            "name": self.name,
            "title": self.title,
            "duration_seconds": self.duration_seconds,
            "peak_target": self.profile.peak_target(),
            "mix": self.mix.as_dict(),
            "think_time": {
                "min_seconds": self.think_time.min_seconds,
                "max_seconds": self.think_time.max_seconds,
                "jitter_percent": self.think_time.jitter_percent,
            },
            "thresholds": [f"{t.metric}: {t.expression}" for t in self.thresholds],
            "baseline_phase": self.baseline_phase,
        }


@dataclass(frozen=True)
class ColdStartSettings:
    """Health polling followed by a handful of warm-up reads."""

    timeout_seconds: float = 30.0
    poll_interval_seconds: float = 2.0
    warmup_requests: int = 5
    warmup_interval_seconds: float = 0.5
