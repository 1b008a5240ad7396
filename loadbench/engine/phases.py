"""Phase classification and per-phase metric aggregation.

Phases are named windows of a run (baseline, deploy, recovery, ...). A sample
is placed in a phase by the elapsed time at which its operation started; an
externally supplied label is only consulted when the elapsed time falls in no
window. Samples that match neither land in ``UNCLASSIFIED_PHASE`` rather than
being dropped.
"""

import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from loadbench.engine.errors import ConfigurationError
from loadbench.engine.executor import Outcome
from loadbench.engine.profile import LoadProfile

UNCLASSIFIED_PHASE = "unclassified"
DEFAULT_BASELINE_PHASE = "baseline"


@dataclass(frozen=True)
class PhaseWindow:
    name: str
    start: float
    end: float

    def contains(self, elapsed: float) -> bool:
        return self.start <= elapsed < self.end


class PhaseClassifier:
    def __init__(self, windows: Iterable[PhaseWindow] = ()) -> None:
        self.windows: tuple[PhaseWindow, ...] = tuple(sorted(windows, key=lambda w: w.start))
        for earlier, later in zip(self.windows, self.windows[1:], strict=False):
            if later.start < earlier.end:
                raise ConfigurationError(
                    f"Phase windows overlap: {earlier.name!r} and {later.name!r}"
                )

    @classmethod
    def from_profile(cls, profile: LoadProfile) -> "PhaseClassifier":
        """One window per run of consecutive stages sharing a phase name.

        Stages without a phase name produce no window.
        """
        windows: list[PhaseWindow] = []
        for index, stage in enumerate(profile.stages):
            if stage.phase is None:
                continue
            start, end = profile.stage_bounds(index)
            if end <= start:
                continue
            if windows and windows[-1].name == stage.phase and windows[-1].end == start:
                windows[-1] = PhaseWindow(stage.phase, windows[-1].start, end)
            else:
                windows.append(PhaseWindow(stage.phase, start, end))
        return cls(windows)

    @property
    def phase_names(self) -> list[str]:
        names: list[str] = []
        for window in self.windows:
            if window.name not in names:
                names.append(window.name)
        return names

    def classify(self, elapsed: float | None = None, external_label: str | None = None) -> str:
        if elapsed is not None and self.windows:
            for window in self.windows:
                if window.contains(elapsed):
                    return window.name
            # Completions draining after the last window still belong to it
            last = self.windows[-1]
            if elapsed >= last.end:
                return last.name
        if external_label:
            return external_label
        return UNCLASSIFIED_PHASE


@dataclass
class PhaseMetrics:
    count: int = 0
    error_count: int = 0
    total_latency_ms: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        if self.count == 0:
            return math.nan
        return self.total_latency_ms / self.count

    @property
    def error_rate(self) -> float:
        if self.count == 0:
            return 0.0
        return self.error_count / self.count


@dataclass(frozen=True)
class PhaseSummary:
    phase: str
    count: int
    error_count: int
    avg_latency_ms: float
    error_rate: float
    latency_delta: float
    distance_to_baseline: float

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "error_count": self.error_count,
            "avg_latency_ms": _finite_or_none(self.avg_latency_ms, 2),
            "error_rate": round(self.error_rate, 4),
            "latency_delta": _finite_or_none(self.latency_delta, 4),
            "distance_to_baseline": _finite_or_none(self.distance_to_baseline, 4),
        }


@dataclass(frozen=True)
class MetricsSummary:
    baseline_phase: str
    per_phase: dict[str, PhaseSummary]

    @property
    def total_count(self) -> int:
        return sum(summary.count for summary in self.per_phase.values())

    def to_dict(self) -> dict:
        return {
            "baseline_phase": self.baseline_phase,
            "phases": {name: summary.to_dict() for name, summary in self.per_phase.items()},
        }


def latency_delta(phase_avg: float, baseline_avg: float | None) -> float:
    """Relative change of a phase's average latency against the baseline.

    Returns NaN when either average is undefined or the baseline is zero.
    """
    if baseline_avg is None or math.isnan(baseline_avg) or baseline_avg == 0:
        return math.nan
    if math.isnan(phase_avg):
        return math.nan
    return (phase_avg - baseline_avg) / baseline_avg


class MetricsAggregator:
    """Accumulates count, errors and latency per phase for one run.

    Shared by every virtual-user loop; each ``record`` updates the three
    fields of exactly one phase under a single lock.
    """

    def __init__(self, phases: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._metrics: dict[str, PhaseMetrics] = {name: PhaseMetrics() for name in phases}

    def record(self, phase: str, outcome: Outcome) -> None:
        with self._lock:
            metrics = self._metrics.get(phase)
            if metrics is None:
                metrics = self._metrics[phase] = PhaseMetrics()
            metrics.count += 1
            if outcome.status_code >= 400:
                metrics.error_count += 1
            metrics.total_latency_ms += outcome.duration_ms

    def snapshot(self) -> dict[str, PhaseMetrics]:
        with self._lock:
            return {
                name: PhaseMetrics(m.count, m.error_count, m.total_latency_ms)
                for name, m in self._metrics.items()
            }

    @property
    def total_count(self) -> int:
        with self._lock:
            return sum(m.count for m in self._metrics.values())

    def summarize(self, baseline_phase: str = DEFAULT_BASELINE_PHASE) -> MetricsSummary:
        snapshot = self.snapshot()
        baseline = snapshot.get(baseline_phase)
        baseline_avg = baseline.avg_latency_ms if baseline is not None else None

        per_phase: dict[str, PhaseSummary] = {}
        for name, metrics in snapshot.items():
            delta = latency_delta(metrics.avg_latency_ms, baseline_avg)
            per_phase[name] = PhaseSummary(
                phase=name,
                count=metrics.count,
                error_count=metrics.error_count,
                avg_latency_ms=metrics.avg_latency_ms,
                error_rate=metrics.error_rate,
                latency_delta=delta,
                distance_to_baseline=abs(delta),
            )
        return MetricsSummary(baseline_phase=baseline_phase, per_phase=per_phase)


def _finite_or_none(value: float, digits: int) -> float | None:
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, digits)
