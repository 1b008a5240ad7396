"""Run summary model, JSON report writer and human-readable console summary."""

import json
import math
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

import structlog

from loadbench.engine.health import HealthStatus
from loadbench.engine.phases import MetricsSummary
from loadbench.engine.recorder import CheckTally
from loadbench.engine.thresholds import ThresholdResult

logger = structlog.get_logger()


@dataclass
class RunSummary:
    test_name: str
    scenario: str
    start_time: datetime
    end_time: datetime
    total_requests: int
    metrics: MetricsSummary
    iterations: int = 0
    peak_vus: int = 0
    per_operation: dict[str, Any] = field(default_factory=dict)
    checks: dict[str, CheckTally] = field(default_factory=dict)
    thresholds: list[ThresholdResult] = field(default_factory=list)
    pre_run_health: HealthStatus | None = None
    post_run_health: HealthStatus | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def avg_rps(self) -> float:
        return self.total_requests / max(self.duration_seconds, 0.001)

    @property
    def passed(self) -> bool:
        """Threshold verdict; post-run health alone never fails a run."""
        health_ok = self.pre_run_health is None or self.pre_run_health.healthy
        return health_ok and all(result.passed for result in self.thresholds)

    @property
    def degraded_recovery(self) -> bool:
        return self.post_run_health is not None and not self.post_run_health.healthy

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_name": self.test_name,
            "scenario": self.scenario,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "total_requests": self.total_requests,
            "iterations": self.iterations,
            "peak_vus": self.peak_vus,
            "avg_rps": round(self.avg_rps, 2),
            "per_phase": self.metrics.to_dict(),
            "per_operation": self.per_operation,
            "checks": {
                name: {
                    "passes": tally.passes,
                    "fails": tally.fails,
                    "rate": round(tally.pass_rate, 4),
                }
                for name, tally in self.checks.items()
            },
            "thresholds": [result.to_dict() for result in self.thresholds],
            "health": {
                "pre_run": self.pre_run_health.to_dict() if self.pre_run_health else None,
                "post_run": self.post_run_health.to_dict() if self.post_run_health else None,
            },
            "warnings": list(self.warnings),
            "passed": self.passed,
            "generated_at": datetime.now(UTC).isoformat(),
        }


def _json_safe(value: Any) -> Any:
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def to_json(data: dict[str, Any]) -> str:
    return json.dumps(_json_safe(data), indent=2, default=str, allow_nan=False)


def write_report(data: dict[str, Any], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_json(data))
    logger.info("report_written", path=str(path))
    return path


def default_report_path(results_dir: str | Path, scenario: str, started: datetime) -> Path:
    stamp = started.strftime("%Y%m%dT%H%M%SZ")
    return Path(results_dir) / f"{scenario}-{stamp}.json"


def _pct(value: float | None) -> str:
    if value is None or math.isnan(value):
        return "n/a"
    return f"{value * 100:+.1f}%"


def print_summary(summary: RunSummary, stream: TextIO | None = None) -> None:
    """Human-readable summary, printed to stderr by default."""
    out = stream or sys.stderr
    line = "-" * 72

    def emit(text: str = "") -> None:
        print(text, file=out)

    emit(f"\n{line}")
    emit(f"  {summary.test_name.upper()} RESULTS")
    emit(line)
    emit(f"  Start time:     {summary.start_time.isoformat()}")
    emit(f"  End time:       {summary.end_time.isoformat()}")
    emit(f"  Duration:       {summary.duration_seconds:.1f} s")
    emit(f"  Total requests: {summary.total_requests}")
    emit(f"  Avg RPS:        {summary.avg_rps:.2f}")
    emit(f"  Peak VUs:       {summary.peak_vus}")

    phases = summary.metrics.per_phase
    if phases:
        emit(
            f"\n  {'Phase':<16} {'Requests':>9} {'Avg (ms)':>10} {'Errors':>9} "
            f"{'Delta vs ' + summary.metrics.baseline_phase:>22}"
        )
        emit(f"  {'-' * 16} {'-' * 9} {'-' * 10} {'-' * 9} {'-' * 22}")
        for name, phase in phases.items():
            avg = "n/a" if math.isnan(phase.avg_latency_ms) else f"{phase.avg_latency_ms:.0f}"
            emit(
                f"  {name:<16} {phase.count:>9} {avg:>10} "
                f"{phase.error_rate * 100:>8.2f}% {_pct(phase.latency_delta):>22}"
            )

    if summary.per_operation:
        emit(f"\n  {'Operation':<16} {'p95 (ms)':>10} {'p99 (ms)':>10} {'Errors':>8} {'Count':>8}")
        emit(f"  {'-' * 16} {'-' * 10} {'-' * 10} {'-' * 8} {'-' * 8}")
        for op, data in summary.per_operation.items():
            lat = data.get("latency", {})
            emit(
                f"  {op:<16} {lat.get('p95_ms', 0.0):>10} {lat.get('p99_ms', 0.0):>10} "
                f"{data.get('error_count', 0):>8} {lat.get('count', 0):>8}"
            )

    if summary.thresholds:
        emit(f"\n  Thresholds: {'PASS' if summary.passed else 'FAIL'}")
        for result in summary.thresholds:
            mark = "PASS" if result.passed else "FAIL"
            actual = "no data" if result.actual is None else f"{result.actual:.4g}"
            emit(
                f"    [{mark}] {result.threshold.metric}: "
                f"{result.threshold.expression} (actual={actual})"
            )

    if summary.post_run_health is not None:
        if summary.post_run_health.healthy:
            emit("\n  Application successfully recovered to healthy state")
        else:
            emit(
                "\n  Application did NOT recover: health status = "
                f"{summary.post_run_health.http_status}"
            )
    for warning in summary.warnings:
        emit(f"  WARNING: {warning}")

    emit(f"{line}\n")
