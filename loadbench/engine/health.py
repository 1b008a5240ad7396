"""Target-service health gate around a run.

Before a run the gate fails closed: an unhealthy target aborts the run with
``SetupFailure`` before any load is generated. After a run an unhealthy target
is only reported as degraded recovery; the data already collected stays
valid.
"""

import asyncio
import time
from dataclasses import dataclass

import structlog

from loadbench.engine.errors import SetupFailure
from loadbench.transport import Transport

logger = structlog.get_logger()

HEALTHY_STATUS = 200


@dataclass(frozen=True)
class HealthStatus:
    http_status: int
    healthy: bool

    @classmethod
    def from_status(cls, http_status: int) -> "HealthStatus":
        return cls(http_status=http_status, healthy=http_status == HEALTHY_STATUS)

    def to_dict(self) -> dict:
        return {"http_status": self.http_status, "healthy": self.healthy}


class HealthGate:
    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def check_health(self) -> HealthStatus:
        response = await self.transport.health()
        return HealthStatus.from_status(response.status_code)

    async def pre_run(self) -> HealthStatus:
        logger.info("health_gate_pre_run")
        status = await self.check_health()
        if not status.healthy:
            logger.error("health_gate_setup_failed", http_status=status.http_status)
            raise SetupFailure(status.http_status)
        return status

    async def post_run(self) -> HealthStatus:
        logger.info("health_gate_post_run")
        status = await self.check_health()
        if status.healthy:
            logger.info("health_gate_recovered", http_status=status.http_status)
        else:
            logger.warning("health_gate_degraded_recovery", http_status=status.http_status)
        return status

    async def wait_until_healthy(
        self, timeout: float, interval: float = 1.0
    ) -> tuple[HealthStatus, float | None, int]:
        """Poll until healthy or *timeout* seconds pass.

        Returns the last status, seconds until the first healthy check (None
        if it never became healthy) and the number of checks made.
        """
        start = time.monotonic()
        checks = 0
        while True:
            status = await self.check_health()
            checks += 1
            elapsed = time.monotonic() - start
            if status.healthy:
                return status, elapsed, checks
            if elapsed + interval > timeout:
                return status, None, checks
            await asyncio.sleep(interval)
