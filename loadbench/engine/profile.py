"""Load profile: staged virtual-user targets over wall-clock time.

A profile is an ordered list of stages. Within a stage the target
concurrency moves linearly from the previous stage's target to the stage's
own target; a stage no longer than ``step_threshold`` jumps straight to its
target, which is how traffic spikes are modelled.

The profile only reports the *target*. Creating and retiring virtual users to
match it is the host runner's job.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from loadbench.engine.errors import ConfigurationError

DEFAULT_STEP_THRESHOLD_SECONDS = 1.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | int | float) -> float:
    """Parse ``"2m"``, ``"1s"``, ``"1m30s"``, ``"500ms"`` or a number of seconds."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip().lower()
        if not text:
            raise ConfigurationError("Duration must not be empty")
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(num + unit for num, unit in parts) != text:
                raise ConfigurationError(f"Invalid duration: {value!r}") from None
            seconds = sum(float(num) * _UNIT_SECONDS[unit] for num, unit in parts)
    if seconds < 0:
        raise ConfigurationError(f"Duration must be non-negative, got {value!r}")
    return seconds


@dataclass(frozen=True)
class LoadStage:
    duration: float
    target: int
    phase: str | None = None

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ConfigurationError(f"Stage duration must be non-negative, got {self.duration}")
        if isinstance(self.target, bool) or not isinstance(self.target, int):
            raise ConfigurationError(f"Stage target must be an integer, got {self.target!r}")
        if self.target < 0:
            raise ConfigurationError(f"Stage target must be non-negative, got {self.target}")

    @classmethod
    def of(cls, duration: str | int | float, target: int, phase: str | None = None) -> "LoadStage":
        return cls(duration=parse_duration(duration), target=target, phase=phase)


class LoadProfile:
    """Piecewise-linear (or step) virtual-user target over elapsed seconds."""

    def __init__(
        self,
        stages: Sequence[LoadStage],
        start_target: int | None = None,
        step_threshold: float = DEFAULT_STEP_THRESHOLD_SECONDS,
    ) -> None:
        if not stages:
            raise ConfigurationError("Load profile must contain at least one stage")
        if start_target is not None and start_target < 0:
            raise ConfigurationError(f"Start target must be non-negative, got {start_target}")
        if step_threshold < 0:
            raise ConfigurationError(f"Step threshold must be non-negative, got {step_threshold}")
        self.stages: tuple[LoadStage, ...] = tuple(stages)
        # With no explicit start, stage 1 holds its own target from t=0
        self.start_target = self.stages[0].target if start_target is None else start_target
        self.step_threshold = step_threshold

        self._boundaries: list[tuple[float, float]] = []
        offset = 0.0
        for stage in self.stages:
            self._boundaries.append((offset, offset + stage.duration))
            offset += stage.duration
        self.total_duration = offset

    def __repr__(self) -> str:
        return f"LoadProfile(stages={list(self.stages)!r}, start_target={self.start_target})"

    def is_step(self, stage: LoadStage) -> bool:
        return stage.duration <= self.step_threshold

    def stage_index_at(self, elapsed: float) -> int | None:
        """Index of the stage active at *elapsed*, or None once the profile is over."""
        if elapsed < 0:
            elapsed = 0.0
        for index, (start, end) in enumerate(self._boundaries):
            if start <= elapsed < end:
                return index
        return None

    def stage_at(self, elapsed: float) -> LoadStage | None:
        index = self.stage_index_at(elapsed)
        return None if index is None else self.stages[index]

    def stage_bounds(self, index: int) -> tuple[float, float]:
        return self._boundaries[index]

    def is_finished(self, elapsed: float) -> bool:
        return elapsed >= self.total_duration

    def current_target(self, elapsed: float) -> int:
        """Target virtual-user concurrency at *elapsed* seconds since run start."""
        index = self.stage_index_at(elapsed)
        if index is None:
            return self.stages[-1].target

        stage = self.stages[index]
        if self.is_step(stage):
            return stage.target

        previous = self.start_target if index == 0 else self.stages[index - 1].target
        start, _ = self._boundaries[index]
        fraction = (max(elapsed, 0.0) - start) / stage.duration
        return round(previous + (stage.target - previous) * fraction)

    def peak_target(self) -> int:
        return max(self.start_target, *(stage.target for stage in self.stages))
