"""Tests for the cold-start probe."""

import pytest

from loadbench.runner.coldstart import ColdStartProbe
from loadbench.scenarios.models import ColdStartSettings
from tests.conftest import FakeTransport

FAST = ColdStartSettings(
    timeout_seconds=1.0,
    poll_interval_seconds=0.01,
    warmup_requests=3,
    warmup_interval_seconds=0.0,
)


class TestColdStartProbe:
    @pytest.mark.asyncio
    async def test_measures_time_to_healthy_then_warms_up(self):
        transport = FakeTransport(health_statuses=[503, 503, 200])
        result = await ColdStartProbe(transport, FAST).run()

        assert result.became_healthy
        assert result.health_checks == 3
        assert result.time_to_healthy_seconds >= 0
        assert result.warmup_statuses == [200, 200, 200]
        assert transport.entity_ids == [1, 1, 1]
        assert result.warmup_ok
        assert result.passed

    @pytest.mark.asyncio
    async def test_never_healthy(self):
        transport = FakeTransport(health_statuses=[503])
        settings = ColdStartSettings(
            timeout_seconds=0.05, poll_interval_seconds=0.01, warmup_requests=3
        )
        result = await ColdStartProbe(transport, settings).run()

        assert not result.passed
        assert result.last_health_status == 503
        assert transport.operation_calls == 0
        assert result.to_dict()["time_to_healthy_seconds"] is None

    @pytest.mark.asyncio
    async def test_missing_warmup_entity_is_accepted(self):
        transport = FakeTransport(statuses={"read": 404})
        result = await ColdStartProbe(transport, FAST).run()
        assert result.warmup_ok

    @pytest.mark.asyncio
    async def test_to_dict(self):
        result = await ColdStartProbe(FakeTransport(latency_ms=12.5), FAST).run()
        data = result.to_dict()
        assert data["health_checks"] == 1
        assert data["warmup_latencies_ms"] == [12.5, 12.5, 12.5]
        assert data["passed"] is True
