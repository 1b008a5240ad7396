"""Tests for the built-in scenario catalog."""

import pytest

from loadbench.engine.errors import ConfigurationError
from loadbench.engine.phases import PhaseClassifier
from loadbench.scenarios.catalog import COLD_START, SCENARIOS, get_scenario


class TestCatalog:
    def test_all_scenarios_build(self):
        assert set(SCENARIOS) == {
            "read-heavy",
            "balanced",
            "write-heavy",
            "ramp-up",
            "burst-spike",
            "warm-start",
        }
        for name in SCENARIOS:
            scenario = get_scenario(name)
            assert scenario.name == name
            assert scenario.baseline_phase in PhaseClassifier.from_profile(
                scenario.profile
            ).phase_names

    def test_read_heavy(self):
        scenario = get_scenario("read-heavy")
        assert scenario.mix.as_dict() == pytest.approx({"read": 0.6, "search": 0.2, "write": 0.2})
        assert scenario.duration_seconds == 14 * 60
        assert scenario.profile.peak_target() == 500
        assert [t.expression for t in scenario.thresholds] == [
            "p(99)<1000",
            "p(95)<500",
            "p(50)<100",
            "rate<0.05",
            "count>0",
        ]

    def test_write_heavy_mix(self):
        scenario = get_scenario("write-heavy")
        assert scenario.mix.as_dict() == pytest.approx({"read": 0.1, "search": 0.1, "write": 0.8})
        assert scenario.think_time.max_seconds == 3.5

    def test_ramp_up_starts_from_zero(self):
        profile = get_scenario("ramp-up").profile
        assert profile.current_target(0) == 0
        assert profile.current_target(300) == 500
        assert profile.current_target(11 * 60) == 1000

    def test_burst_spike_jumps_instantly(self):
        scenario = get_scenario("burst-spike")
        assert scenario.profile.current_target(119) == 50
        assert scenario.profile.current_target(120) == 800
        assert PhaseClassifier.from_profile(scenario.profile).phase_names == [
            "baseline",
            "spike",
            "recovery",
            "post_spike",
        ]

    def test_warm_start_phases_and_think_time(self):
        scenario = get_scenario("warm-start")
        classifier = PhaseClassifier.from_profile(scenario.profile)
        assert classifier.classify(60) == "baseline"
        assert classifier.classify(200) == "deploy"
        assert classifier.classify(400) == "recovery"
        assert scenario.think_time.min_seconds == 0.3
        assert scenario.think_time.max_seconds == 1.3
        assert scenario.think_time.jitter_percent == 0

    def test_describe(self):
        data = get_scenario("balanced").describe()
        assert data["name"] == "balanced"
        assert data["peak_target"] == 300
        assert "latency_ms: p(95)<750" in data["thresholds"]

    def test_unknown_scenario(self):
        with pytest.raises(ConfigurationError, match="Unknown scenario"):
            get_scenario("soak")

    def test_cold_start_settings(self):
        assert COLD_START.timeout_seconds == 30.0
        assert COLD_START.warmup_requests == 5
