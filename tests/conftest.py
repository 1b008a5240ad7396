"""Shared test fixtures for loadbench tests."""

import random
from collections.abc import Iterable
from typing import Any

import pytest

from loadbench.engine.mix import OperationMix
from loadbench.engine.pacing import ThinkTime
from loadbench.engine.profile import LoadProfile, LoadStage
from loadbench.engine.thresholds import parse_thresholds
from loadbench.scenarios.models import Scenario
from loadbench.transport import TransportResponse


class FakeTransport:
    """Scripted in-memory transport.

    ``statuses`` maps an operation (``read``, ``search``, ``write``) to the
    status it returns; ``health_statuses`` is consumed one per health call,
    repeating the last entry once exhausted.
    """

    def __init__(
        self,
        statuses: dict[str, int] | None = None,
        latency_ms: float = 10.0,
        health_statuses: Iterable[int] = (200,),
    ) -> None:
        self.statuses = {"read": 200, "search": 200, "write": 201, **(statuses or {})}
        self.latency_ms = latency_ms
        self._health = list(health_statuses) or [200]
        self.calls: dict[str, int] = {"read": 0, "search": 0, "write": 0, "health": 0}
        self.created: list[dict[str, Any]] = []
        self.entity_ids: list[int] = []
        self.search_terms: list[str] = []

    @property
    def operation_calls(self) -> int:
        return self.calls["read"] + self.calls["search"] + self.calls["write"]

    def _respond(self, op: str, body: Any = None) -> TransportResponse:
        self.calls[op] += 1
        return TransportResponse(self.statuses[op], self.latency_ms, body)

    async def get_entity(self, entity_id: int) -> TransportResponse:
        self.entity_ids.append(entity_id)
        return self._respond("read", {"id": entity_id})

    async def search(self, term: str) -> TransportResponse:
        self.search_terms.append(term)
        return self._respond("search", [])

    async def create(self, payload: dict[str, Any]) -> TransportResponse:
        self.created.append(payload)
        return self._respond("write", {"id": len(self.created), **payload})

    async def health(self) -> TransportResponse:
        index = min(self.calls["health"], len(self._health) - 1)
        self.calls["health"] += 1
        return TransportResponse(self._health[index], 1.0, None)


class StubRandom(random.Random):
    """``random()`` returns scripted values; everything else is a seeded Random."""

    def __init__(self, values: Iterable[float], seed: int = 0) -> None:
        super().__init__(seed)
        self._values = list(values)

    def random(self) -> float:
        return self._values.pop(0)


def make_scenario(
    stages: list[LoadStage],
    *,
    name: str = "test",
    think_seconds: float = 0.01,
    thresholds: dict[str, list[str]] | None = None,
    baseline_phase: str = "baseline",
    start_target: int | None = None,
) -> Scenario:
    return Scenario(
        name=name,
        title=name.title(),
        profile=LoadProfile(stages, start_target=start_target),
        mix=OperationMix.from_percentages(read=60, search=20, write=20),
        think_time=ThinkTime.fixed(think_seconds),
        thresholds=parse_thresholds(thresholds or {}),
        baseline_phase=baseline_phase,
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def short_scenario() -> Scenario:
    """Sub-second run with a baseline and a spike phase."""
    return make_scenario(
        [
            LoadStage(0.3, 2, phase="baseline"),
            LoadStage(0.3, 4, phase="spike"),
        ],
        thresholds={"requests": ["count>0"], "error_rate": ["rate<0.05"]},
    )
