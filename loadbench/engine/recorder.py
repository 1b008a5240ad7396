"""Per-operation latency, status and check recorder.

Complements the phase aggregator: phases answer "how did the service behave
during the deploy window", the recorder answers "what was the p95 of
searches" and feeds threshold evaluation.
"""

import threading
from collections import Counter
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool


@dataclass
class CheckTally:
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        return self.passes / self.total if self.total else 0.0


class LatencyRecorder:
    """Lock-protected latency & error recorder keyed by operation label."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latencies: dict[str, list[float]] = {}
        self._errors: dict[str, int] = {}
        self._status_codes: dict[str, Counter[int]] = {}
        self._checks: dict[str, CheckTally] = {}

    def record(self, operation: str, latency_ms: float, status_code: int) -> None:
        """Record a single request outcome."""
        with self._lock:
            self._latencies.setdefault(operation, []).append(latency_ms)
            self._status_codes.setdefault(operation, Counter())[status_code] += 1
            if status_code >= 400:
                self._errors[operation] = self._errors.get(operation, 0) + 1

    def record_checks(self, checks: tuple[CheckResult, ...] | list[CheckResult]) -> None:
        with self._lock:
            for check in checks:
                tally = self._checks.setdefault(check.name, CheckTally())
                if check.passed:
                    tally.passes += 1
                else:
                    tally.fails += 1

    # ---- aggregation helpers ------------------------------------------------

    def operations(self) -> list[str]:
        with self._lock:
            return list(self._latencies.keys())

    def latencies(self, operation: str | None = None) -> list[float]:
        """Latency samples for one operation, or for all of them."""
        with self._lock:
            if operation is not None:
                return list(self._latencies.get(operation, []))
            return [lat for values in self._latencies.values() for lat in values]

    def percentiles(self, operation: str | None = None) -> dict[str, float]:
        """Return p50 / p90 / p95 / p99 plus mean, min, max and count."""
        data = self.latencies(operation)
        if not data:
            return {
                "p50_ms": 0.0,
                "p90_ms": 0.0,
                "p95_ms": 0.0,
                "p99_ms": 0.0,
                "mean_ms": 0.0,
                "min_ms": 0.0,
                "max_ms": 0.0,
                "count": 0,
            }
        arr = np.array(data)
        return {
            "p50_ms": round(float(np.percentile(arr, 50)), 2),
            "p90_ms": round(float(np.percentile(arr, 90)), 2),
            "p95_ms": round(float(np.percentile(arr, 95)), 2),
            "p99_ms": round(float(np.percentile(arr, 99)), 2),
            "mean_ms": round(float(np.mean(arr)), 2),
            "min_ms": round(float(np.min(arr)), 2),
            "max_ms": round(float(np.max(arr)), 2),
            "count": len(data),
        }

    def percentile(self, pct: float, operation: str | None = None) -> float | None:
        data = self.latencies(operation)
        if not data:
            return None
        return float(np.percentile(np.array(data), pct))

    def error_count(self, operation: str | None = None) -> int:
        with self._lock:
            if operation is not None:
                return self._errors.get(operation, 0)
            return sum(self._errors.values())

    def total_requests(self, operation: str | None = None) -> int:
        with self._lock:
            if operation is not None:
                return len(self._latencies.get(operation, []))
            return sum(len(v) for v in self._latencies.values())

    def error_rate(self, operation: str | None = None) -> float:
        total = self.total_requests(operation)
        if total == 0:
            return 0.0
        return self.error_count(operation) / total

    def status_codes(self, operation: str) -> dict[int, int]:
        with self._lock:
            return dict(self._status_codes.get(operation, {}))

    def checks(self) -> dict[str, CheckTally]:
        with self._lock:
            return {
                name: CheckTally(tally.passes, tally.fails) for name, tally in self._checks.items()
            }

    def failed_check_count(self) -> int:
        with self._lock:
            return sum(tally.fails for tally in self._checks.values())
