"""Tests for loading scenarios from YAML."""

import pytest

from loadbench.engine.errors import ConfigurationError
from loadbench.scenarios.loader import load_scenario_file, scenario_from_dict

SPIKE_YAML = """
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
"""


def _minimal(**overrides) -> dict:
    data = {
        "name": "minimal",
        "stages": [{"duration": "10s", "target": 5}],
        "mix": {"read": 100},
    }
    data.update(overrides)
    return data


class TestLoadScenarioFile:
    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "spike.yaml"
        path.write_text(SPIKE_YAML)
        scenario = load_scenario_file(path)

        assert scenario.name == "checkout-spike"
        assert scenario.title == "Checkout spike"
        assert scenario.duration_seconds == 60 + 1 + 120 + 60
        assert scenario.profile.current_target(60) == 400
        assert scenario.think_time.max_seconds == 2.0
        assert len(scenario.thresholds) == 2

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("name: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_scenario_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigurationError, match="missing required key"):
            load_scenario_file(path)


class TestScenarioFromDict:
    def test_defaults(self):
        scenario = scenario_from_dict(_minimal())
        assert scenario.title == "minimal"
        assert scenario.baseline_phase == "baseline"
        assert scenario.thresholds == ()
        assert scenario.latency_ceiling_ms is None
        assert scenario.mix.as_dict() == {"read": 1.0}

    def test_numeric_think_time_is_fixed(self):
        scenario = scenario_from_dict(_minimal(think_time=0.5))
        assert scenario.think_time.min_seconds == scenario.think_time.max_seconds == 0.5
        assert scenario.think_time.jitter_percent == 0.0

    def test_start_target_and_ceiling(self):
        scenario = scenario_from_dict(_minimal(start_target=0, latency_ceiling_ms=250))
        assert scenario.profile.current_target(0) == 0
        assert scenario.latency_ceiling_ms == 250.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stages": []},
            {"stages": ["10s"]},
            {"stages": [{"duration": "10s", "target": "five"}]},
            {"stages": [{"duration": "ten", "target": 5}]},
            {"stages": [{"target": 5}]},
            {"mix": {"read": 50}},
            {"mix": ["read"]},
            {"thresholds": ["p(95)<500"]},
            {"thresholds": {"latency_ms": ["fast"]}},
            {"think_time": "slow"},
            {"think_time": {"min": 2, "max": 1}},
            {"start_target": "zero"},
            {"start_target": True},
            {"latency_ceiling_ms": "fast"},
            {"latency_ceiling_ms": [250]},
            {"latency_ceiling_ms": -1},
            {"stages": [{"duration": [1], "target": 5}]},
            {"stages": [{"duration": None, "target": 5}]},
            {"step_threshold": [1]},
        ],
    )
    def test_rejects_malformed_definitions(self, overrides):
        with pytest.raises(ConfigurationError):
            scenario_from_dict(_minimal(**overrides))

    def test_requires_name(self):
        data = _minimal()
        del data["name"]
        with pytest.raises(ConfigurationError, match="'name'"):
            scenario_from_dict(data)
