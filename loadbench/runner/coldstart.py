"""Cold-start probe: time from launch to a healthy service and first requests.

Polls the health endpoint until it returns 200 (or the timeout passes), then
issues a few warm-up reads to expose the first-request penalty.
"""

import asyncio
from dataclasses import dataclass, field

import structlog

from loadbench.engine.executor import ACCEPTED_STATUSES
from loadbench.engine.health import HealthGate
from loadbench.engine.mix import OperationKind
from loadbench.scenarios.models import ColdStartSettings
from loadbench.transport import Transport

logger = structlog.get_logger()

WARMUP_ENTITY_ID = 1


@dataclass
class ColdStartResult:
    time_to_healthy_seconds: float | None
    health_checks: int
    last_health_status: int
    warmup_latencies_ms: list[float] = field(default_factory=list)
    warmup_statuses: list[int] = field(default_factory=list)

    @property
    def became_healthy(self) -> bool:
        return self.time_to_healthy_seconds is not None

    @property
    def warmup_ok(self) -> bool:
        accepted = ACCEPTED_STATUSES[OperationKind.READ]
        return all(status in accepted for status in self.warmup_statuses)

    @property
    def passed(self) -> bool:
        return self.became_healthy

    def to_dict(self) -> dict:
        return {
            "time_to_healthy_seconds": (
                None
                if self.time_to_healthy_seconds is None
                else round(self.time_to_healthy_seconds, 3)
            ),
            "health_checks": self.health_checks,
            "last_health_status": self.last_health_status,
            "warmup_latencies_ms": [round(lat, 2) for lat in self.warmup_latencies_ms],
            "warmup_statuses": list(self.warmup_statuses),
            "warmup_ok": self.warmup_ok,
            "passed": self.passed,
        }


class ColdStartProbe:
    def __init__(self, transport: Transport, settings: ColdStartSettings | None = None) -> None:
        self.transport = transport
        self.settings = settings or ColdStartSettings()
        self.health_gate = HealthGate(transport)

    async def run(self) -> ColdStartResult:
        cfg = self.settings
        logger.info("cold_start_waiting", timeout_seconds=cfg.timeout_seconds)
        status, time_to_healthy, checks = await self.health_gate.wait_until_healthy(
            timeout=cfg.timeout_seconds, interval=cfg.poll_interval_seconds
        )
        result = ColdStartResult(
            time_to_healthy_seconds=time_to_healthy,
            health_checks=checks,
            last_health_status=status.http_status,
        )
        if time_to_healthy is None:
            logger.warning(
                "cold_start_never_healthy",
                health_checks=checks,
                last_status=status.http_status,
            )
            return result

        logger.info("cold_start_complete", seconds=round(time_to_healthy, 2), health_checks=checks)

        for i in range(cfg.warmup_requests):
            response = await self.transport.get_entity(WARMUP_ENTITY_ID)
            result.warmup_latencies_ms.append(response.duration_ms)
            result.warmup_statuses.append(response.status_code)
            logger.info(
                "cold_start_warmup_request",
                index=i + 1,
                status_code=response.status_code,
                duration_ms=round(response.duration_ms, 2),
            )
            if i < cfg.warmup_requests - 1 and cfg.warmup_interval_seconds > 0:
                await asyncio.sleep(cfg.warmup_interval_seconds)
        return result
