"""Pass/fail thresholds on aggregate run metrics.

Thresholds use k6-style expressions keyed by metric::

    {
        "latency_ms": ["p(99)<1000", "p(95)<500", "p(50)<100"],
        "error_rate": ["rate<0.05"],
        "requests": ["count>0"],
    }
"""

import operator
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from loadbench.engine.errors import ConfigurationError
from loadbench.engine.recorder import LatencyRecorder

LATENCY_METRIC = "latency_ms"
ERROR_RATE_METRIC = "error_rate"
REQUESTS_METRIC = "requests"

_EXPRESSION = re.compile(
    r"^\s*(?P<agg>p\(\s*\d+(?:\.\d+)?\s*\)|avg|min|max|med|rate|count)"
    r"\s*(?P<op><=|>=|==|<|>)\s*(?P<limit>-?\d+(?:\.\d+)?)\s*$"
)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
}

_STAT_KEYS = {"avg": "mean_ms", "min": "min_ms", "max": "max_ms"}

_ALLOWED_AGGREGATIONS: dict[str, tuple[str, ...]] = {
    LATENCY_METRIC: ("p", "avg", "min", "max", "med"),
    ERROR_RATE_METRIC: ("rate",),
    REQUESTS_METRIC: ("count",),
}


@dataclass(frozen=True)
class Threshold:
    metric: str
    expression: str
    aggregation: str
    percentile: float | None
    op: str
    limit: float

    @classmethod
    def parse(cls, metric: str, expression: str) -> "Threshold":
        if metric not in _ALLOWED_AGGREGATIONS:
            raise ConfigurationError(f"Unknown threshold metric: {metric!r}")
        match = _EXPRESSION.match(expression)
        if match is None:
            raise ConfigurationError(f"Invalid threshold expression for {metric}: {expression!r}")

        agg = match.group("agg").replace(" ", "")
        percentile: float | None = None
        if agg.startswith("p("):
            percentile = float(agg[2:-1])
            if not 0 <= percentile <= 100:
                raise ConfigurationError(f"Percentile out of range in {expression!r}")
            aggregation = "p"
        else:
            aggregation = agg

        if aggregation not in _ALLOWED_AGGREGATIONS[metric]:
            raise ConfigurationError(
                f"Aggregation {agg!r} is not supported for metric {metric!r}"
            )
        return cls(
            metric=metric,
            expression=expression.strip(),
            aggregation=aggregation,
            percentile=percentile,
            op=match.group("op"),
            limit=float(match.group("limit")),
        )

    def observe(self, recorder: LatencyRecorder) -> float | None:
        """The aggregate this threshold compares, or None with no samples."""
        if self.metric == REQUESTS_METRIC:
            return float(recorder.total_requests())
        if self.metric == ERROR_RATE_METRIC:
            if recorder.total_requests() == 0:
                return None
            return recorder.error_rate()

        if self.aggregation == "p":
            assert self.percentile is not None
            return recorder.percentile(self.percentile)
        if self.aggregation == "med":
            return recorder.percentile(50)
        stats = recorder.percentiles()
        if stats["count"] == 0:
            return None
        return float(stats[_STAT_KEYS[self.aggregation]])

    def evaluate(self, recorder: LatencyRecorder) -> "ThresholdResult":
        actual = self.observe(recorder)
        # No data cannot demonstrate compliance
        passed = actual is not None and _OPERATORS[self.op](actual, self.limit)
        return ThresholdResult(threshold=self, actual=actual, passed=passed)


@dataclass(frozen=True)
class ThresholdResult:
    threshold: Threshold
    actual: float | None
    passed: bool

    def to_dict(self) -> dict:
        return {
            "metric": self.threshold.metric,
            "expression": self.threshold.expression,
            "actual": None if self.actual is None else round(self.actual, 4),
            "pass": self.passed,
        }


def parse_thresholds(definitions: Mapping[str, Sequence[str] | str]) -> tuple[Threshold, ...]:
    thresholds: list[Threshold] = []
    for metric, expressions in definitions.items():
        if isinstance(expressions, str):
            expressions = [expressions]
        for expression in expressions:
            if not isinstance(expression, str):
                raise ConfigurationError(
                    f"Threshold for {metric!r} must be a string, got {expression!r}"
                )
            thresholds.append(Threshold.parse(metric, expression))
    return tuple(thresholds)


def evaluate_thresholds(
    thresholds: Sequence[Threshold], recorder: LatencyRecorder
) -> list[ThresholdResult]:
    return [threshold.evaluate(recorder) for threshold in thresholds]
