"""Built-in benchmark scenarios.

Each scenario pairs a staged VU profile with an operation mix, think-time and
pass/fail thresholds. Stage phase names partition the per-phase metrics.
"""

from collections.abc import Callable

from loadbench.engine.errors import ConfigurationError
from loadbench.engine.mix import OperationMix
from loadbench.engine.pacing import ThinkTime
from loadbench.engine.profile import LoadProfile, LoadStage
from loadbench.engine.thresholds import parse_thresholds
from loadbench.scenarios.models import ColdStartSettings, Scenario


def _steady_state(
    name: str,
    title: str,
    peak: int,
    mix: OperationMix,
    think_time: ThinkTime,
    thresholds: dict[str, list[str]],
    description: str,
) -> Scenario:
    """Warm-up 2m at 50 VUs, 10m at *peak*, 2m ramp down to zero."""
    return Scenario(
        name=name,
        title=title,
        profile=LoadProfile(
            [
                LoadStage.of("2m", 50, phase="warmup"),
                LoadStage.of("10m", peak, phase="main"),
                LoadStage.of("2m", 0, phase="cooldown"),
            ]
        ),
        mix=mix,
        think_time=think_time,
        thresholds=parse_thresholds(thresholds),
        baseline_phase="warmup",
        description=description,
    )


def read_heavy() -> Scenario:
    return _steady_state(
        "read-heavy",
        "Read-Heavy",
        peak=500,
        mix=OperationMix.from_percentages(read=60, search=20, write=20),
        think_time=ThinkTime(0.5, 2.5, jitter_percent=10),
        thresholds={
            "latency_ms": ["p(99)<1000", "p(95)<500", "p(50)<100"],
            "error_rate": ["rate<0.05"],
            "requests": ["count>0"],
        },
        description="60% reads, 20% searches, 20% creates at up to 500 VUs.",
    )


def balanced() -> Scenario:
    return _steady_state(
        "balanced",
        "Balanced CRUD",
        peak=300,
        mix=OperationMix.from_percentages(read=40, search=20, write=40),
        think_time=ThinkTime(0.5, 2.5, jitter_percent=10),
        thresholds={
            "latency_ms": ["p(99)<1500", "p(95)<750", "p(50)<150"],
            "error_rate": ["rate<0.05"],
            "requests": ["count>0"],
        },
        description="40% reads, 20% searches, 40% creates at up to 300 VUs.",
    )


def write_heavy() -> Scenario:
    return _steady_state(
        "write-heavy",
        "Write-Heavy",
        peak=200,
        mix=OperationMix.from_percentages(read=10, search=10, write=80),
        think_time=ThinkTime(1.0, 3.5, jitter_percent=10),
        thresholds={
            "latency_ms": ["p(99)<2000", "p(95)<1000", "p(50)<200"],
            "error_rate": ["rate<0.05"],
            "requests": ["count>0"],
        },
        description="80% creates with longer think-time so the database can keep up.",
    )


def ramp_up() -> Scenario:
    return Scenario(
        name="ramp-up",
        title="Ramp-Up Scalability",
        profile=LoadProfile(
            [
                LoadStage.of("10m", 1000, phase="ramp"),
                LoadStage.of("2m", 1000, phase="hold"),
                LoadStage.of("2m", 0, phase="cooldown"),
            ],
            start_target=0,
        ),
        mix=OperationMix.from_percentages(read=60, search=20, write=20),
        think_time=ThinkTime.fixed(0.5),
        thresholds=parse_thresholds(
            {
                "latency_ms": ["p(99)<3000"],
                "error_rate": ["rate<0.10"],
                "requests": ["count>0"],
            }
        ),
        baseline_phase="ramp",
        description="0 to 1000 VUs over 10 minutes to find the saturation point.",
    )


def burst_spike() -> Scenario:
    return Scenario(
        name="burst-spike",
        title="Burst/Spike",
        profile=LoadProfile(
            [
                LoadStage.of("2m", 50, phase="baseline"),
                LoadStage.of("1s", 800, phase="spike"),
                LoadStage.of("3m", 800, phase="spike"),
                LoadStage.of("2m", 50, phase="recovery"),
                LoadStage.of("2m", 50, phase="post_spike"),
            ]
        ),
        mix=OperationMix.from_percentages(read=60, search=20, write=20),
        think_time=ThinkTime(0.5, 2.0, jitter_percent=10),
        thresholds=parse_thresholds(
            {
                "latency_ms": ["p(99)<2500"],
                "error_rate": ["rate<0.15"],
                "requests": ["count>0"],
            }
        ),
        description="Instant jump from 50 to 800 VUs, held 3 minutes, then recovery.",
    )


def warm_start() -> Scenario:
    return Scenario(
        name="warm-start",
        title="Warm Start / Rolling Deployment",
        profile=LoadProfile(
            [
                LoadStage.of("2m", 100, phase="baseline"),
                LoadStage.of("3m", 200, phase="deploy"),
                LoadStage.of("3m", 100, phase="recovery"),
            ]
        ),
        mix=OperationMix.from_percentages(read=60, search=20, write=20),
        think_time=ThinkTime(0.3, 1.3, jitter_percent=0),
        thresholds=parse_thresholds(
            {
                "latency_ms": ["p(99)<2000"],
                "error_rate": ["rate<0.05"],
            }
        ),
        description=(
            "Restart the target during the deploy window; compares deploy and "
            "recovery latency against the baseline."
        ),
    )


SCENARIOS: dict[str, Callable[[], Scenario]] = {
    "read-heavy": read_heavy,
    "balanced": balanced,
    "write-heavy": write_heavy,
    "ramp-up": ramp_up,
    "burst-spike": burst_spike,
    "warm-start": warm_start,
}

COLD_START = ColdStartSettings()


def get_scenario(name: str) -> Scenario:
    try:
        factory = SCENARIOS[name]
    except KeyError:
        known = ", ".join(sorted(SCENARIOS))
        raise ConfigurationError(f"Unknown scenario {name!r} (known: {known})") from None
    return factory()
