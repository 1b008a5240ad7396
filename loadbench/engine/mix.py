"""Weighted operation mix and cumulative-weight selection."""

import math
import random
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from loadbench.engine.errors import ConfigurationError

# Absolute tolerance on the weight sum of an already-normalized mix
WEIGHT_SUM_TOLERANCE = 1e-6

# Tolerance used when deciding whether raw weights are percentages or fractions
_NORMALIZE_TOLERANCE = 0.01


class OperationKind(StrEnum):
    READ = "read"
    SEARCH = "search"
    WRITE = "write"


DEFAULT_OPERATION = OperationKind.READ


@dataclass(frozen=True)
class OperationWeight:
    kind: OperationKind
    weight: float


@dataclass(frozen=True)
class OperationMix:
    """Ordered operation kinds with weights in [0, 1] summing to 1.0.

    Declaration order matters: selection walks the entries in order, so two
    mixes with the same weights in a different order draw different kinds for
    the same random value (but converge to the same proportions).
    """

    entries: tuple[OperationWeight, ...]

    def __post_init__(self) -> None:
        if not self.entries:
            raise ConfigurationError("Operation mix must contain at least one entry")
        seen: set[OperationKind] = set()
        for entry in self.entries:
            if entry.kind in seen:
                raise ConfigurationError(f"Operation kind listed twice: {entry.kind}")
            seen.add(entry.kind)
            if not 0.0 <= entry.weight <= 1.0:
                raise ConfigurationError(
                    f"Weight for {entry.kind} must be in [0, 1], got {entry.weight}"
                )
        total = sum(entry.weight for entry in self.entries)
        if not math.isclose(total, 1.0, abs_tol=WEIGHT_SUM_TOLERANCE):
            raise ConfigurationError(f"Operation mix weights must sum to 1.0, got {total:.6f}")

    @classmethod
    def from_percentages(
        cls, read: float = 60, search: float = 20, write: float = 20
    ) -> "OperationMix":
        return cls.from_mapping(
            {OperationKind.READ: read, OperationKind.SEARCH: search, OperationKind.WRITE: write}
        )

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> "OperationMix":
        """Build a mix from raw weights, normalizing percentages to fractions.

        Raw weights summing to ~100 are read as percentages, weights summing
        to ~1 as fractions. Any other total, a negative or non-numeric weight,
        or an unknown operation name is rejected.
        """
        if not weights:
            raise ConfigurationError("Operation mix must contain at least one entry")

        parsed: list[tuple[OperationKind, float]] = []
        for name, raw in weights.items():
            try:
                kind = OperationKind(str(name).lower())
            except ValueError as exc:
                raise ConfigurationError(f"Unknown operation kind: {name!r}") from exc
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise ConfigurationError(f"Weight for {name!r} must be numeric, got {raw!r}")
            if raw < 0:
                raise ConfigurationError(f"Weight for {name!r} must be non-negative, got {raw}")
            parsed.append((kind, float(raw)))

        total = sum(weight for _, weight in parsed)
        if math.isclose(total, 100.0, abs_tol=_NORMALIZE_TOLERANCE * 100):
            scale = total
        elif math.isclose(total, 1.0, abs_tol=_NORMALIZE_TOLERANCE):
            scale = total
        else:
            raise ConfigurationError(
                f"Operation mix weights must sum to 100 (percent) or 1.0, got {total:g}"
            )

        return cls(tuple(OperationWeight(kind, weight / scale) for kind, weight in parsed))

    def as_dict(self) -> dict[str, float]:
        return {entry.kind.value: entry.weight for entry in self.entries}


def select(mix: OperationMix, rng: random.Random) -> OperationKind:
    """Pick one operation kind by cumulative-weight sampling.

    Falls back to ``DEFAULT_OPERATION`` when rounding leaves the cumulative
    weight just short of the drawn value.
    """
    r = rng.random()
    cumulative = 0.0
    for entry in mix.entries:
        cumulative += entry.weight
        if entry.weight > 0 and cumulative >= r:
            return entry.kind
    return DEFAULT_OPERATION
