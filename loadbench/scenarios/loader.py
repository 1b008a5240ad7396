"""Load custom scenarios from YAML.

Example::

    name: checkout-spike
    title: Checkout spike
    baseline_phase: baseline
    stages:
      - {duration: 1m, target: 20, phase: baseline}
      - {duration: 1s, target: 400, phase: spike}
      - {duration: 2m, target: 400, phase: spike}
      - {duration: 1m, target: 20, phase: recovery}
    mix: {read: 60, search: 20, write: 20}
    think_time: {min: 0.5, max: 2.0, jitter_percent: 10}
    thresholds:
      latency_ms: ["p(95)<500"]
      error_rate: ["rate<0.05"]

Everything is validated here so a malformed file fails before any traffic.
"""

from pathlib import Path
from typing import Any

import yaml

from loadbench.engine.errors import ConfigurationError
from loadbench.engine.mix import OperationMix
from loadbench.engine.pacing import ThinkTime
from loadbench.engine.phases import DEFAULT_BASELINE_PHASE
from loadbench.engine.profile import (
    DEFAULT_STEP_THRESHOLD_SECONDS,
    LoadProfile,
    LoadStage,
    parse_duration,
)
from loadbench.engine.thresholds import parse_thresholds
from loadbench.scenarios.models import Scenario


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ConfigurationError(f"Scenario is missing required key {key!r}")
    return data[key]


def _parse_stage(index: int, raw: Any) -> LoadStage:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Stage {index} must be a mapping, got {raw!r}")
    target = _require(raw, "target")
    if isinstance(target, bool) or not isinstance(target, int):
        raise ConfigurationError(f"Stage {index} target must be an integer, got {target!r}")
    phase = raw.get("phase")
    return LoadStage.of(_require(raw, "duration"), target, phase=str(phase) if phase else None)


def _parse_think_time(raw: Any) -> ThinkTime:
    if raw is None:
        return ThinkTime()
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return ThinkTime.fixed(float(raw))
    if not isinstance(raw, dict):
        raise ConfigurationError(f"think_time must be a number or mapping, got {raw!r}")
    try:
        minimum = float(raw.get("min", raw.get("seconds", 0.5)))
        maximum = float(raw.get("max", raw.get("seconds", minimum)))
        jitter = float(raw.get("jitter_percent", 10.0))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid think_time: {raw!r}") from exc
    return ThinkTime(minimum, maximum, jitter_percent=jitter)


def scenario_from_dict(data: dict[str, Any]) -> Scenario:
    if not isinstance(data, dict):
        raise ConfigurationError("Scenario definition must be a mapping")

    name = str(_require(data, "name"))
    raw_stages = _require(data, "stages")
    if not isinstance(raw_stages, list) or not raw_stages:
        raise ConfigurationError("Scenario 'stages' must be a non-empty list")
    stages = [_parse_stage(i, raw) for i, raw in enumerate(raw_stages)]

    step_threshold = data.get("step_threshold", DEFAULT_STEP_THRESHOLD_SECONDS)
    start_target = data.get("start_target")
    if start_target is not None and (
        isinstance(start_target, bool) or not isinstance(start_target, int)
    ):
        raise ConfigurationError(f"start_target must be an integer, got {start_target!r}")
    profile = LoadProfile(
        stages,
        start_target=start_target,
        step_threshold=parse_duration(step_threshold),
    )

    raw_mix = _require(data, "mix")
    if not isinstance(raw_mix, dict):
        raise ConfigurationError(f"Scenario 'mix' must be a mapping, got {raw_mix!r}")

    raw_thresholds = data.get("thresholds") or {}
    if not isinstance(raw_thresholds, dict):
        raise ConfigurationError("Scenario 'thresholds' must be a mapping")

    ceiling = data.get("latency_ceiling_ms")
    if ceiling is not None:
        if isinstance(ceiling, bool):
            raise ConfigurationError(f"latency_ceiling_ms must be a number, got {ceiling!r}")
        try:
            ceiling = float(ceiling)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"latency_ceiling_ms must be a number, got {ceiling!r}"
            ) from exc
        if ceiling < 0:
            raise ConfigurationError(f"latency_ceiling_ms must be non-negative, got {ceiling}")

    return Scenario(
        name=name,
        title=str(data.get("title", name)),
        profile=profile,
        mix=OperationMix.from_mapping(raw_mix),
        think_time=_parse_think_time(data.get("think_time")),
        thresholds=parse_thresholds(raw_thresholds),
        baseline_phase=str(data.get("baseline_phase", DEFAULT_BASELINE_PHASE)),
        latency_ceiling_ms=ceiling,
        description=str(data.get("description", "")),
    )


def load_scenario_file(path: str | Path) -> Scenario:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    return scenario_from_dict(data or {})
