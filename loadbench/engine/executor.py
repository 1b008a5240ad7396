"""Dispatch a selected operation kind to the transport and normalize the outcome."""

from dataclasses import dataclass, field
from typing import Protocol

import structlog

from loadbench.engine.mix import OperationKind
from loadbench.engine.recorder import CheckResult, LatencyRecorder
from loadbench.transport import Transport, TransportResponse

logger = structlog.get_logger()

DEFAULT_LATENCY_CEILING_MS = 500.0

# Statuses that count as a passing status check, per operation kind.
# A read of an id that does not exist (404) is legitimate under load.
ACCEPTED_STATUSES: dict[OperationKind, frozenset[int]] = {
    OperationKind.READ: frozenset({200, 404}),
    OperationKind.SEARCH: frozenset({200}),
    OperationKind.WRITE: frozenset({200, 201}),
}

CHECK_NAMES: dict[OperationKind, str] = {
    OperationKind.READ: "GET /customers/{id}",
    OperationKind.SEARCH: "GET /customers?search",
    OperationKind.WRITE: "POST /customers",
}


class DataFactory(Protocol):
    def random_entity_id(self) -> int: ...

    def random_search_term(self) -> str: ...

    def random_record(self) -> dict: ...


@dataclass(frozen=True)
class Outcome:
    kind: OperationKind
    status_code: int
    duration_ms: float
    body_present: bool
    checks: tuple[CheckResult, ...] = field(default_factory=tuple)

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    @property
    def checks_passed(self) -> bool:
        return all(check.passed for check in self.checks)


class OperationExecutor:
    """Performs one call per ``execute`` and applies the per-call checks.

    Checks (status accepted, latency under the ceiling) are observations:
    a failing check is recorded and logged at debug level, it never raises.
    """

    def __init__(
        self,
        transport: Transport,
        latency_ceiling_ms: float = DEFAULT_LATENCY_CEILING_MS,
        recorder: LatencyRecorder | None = None,
    ) -> None:
        self.transport = transport
        self.latency_ceiling_ms = latency_ceiling_ms
        self.recorder = recorder

    async def _call(self, kind: OperationKind, factory: DataFactory) -> TransportResponse:
        if kind is OperationKind.READ:
            return await self.transport.get_entity(factory.random_entity_id())
        if kind is OperationKind.SEARCH:
            return await self.transport.search(factory.random_search_term())
        return await self.transport.create(factory.random_record())

    def _checks(self, kind: OperationKind, response: TransportResponse) -> tuple[CheckResult, ...]:
        label = CHECK_NAMES[kind]
        accepted = ACCEPTED_STATUSES[kind]
        return (
            CheckResult(f"{label} status is {_describe(accepted)}", response.status_code in accepted),
            CheckResult(
                f"{label} response time < {self.latency_ceiling_ms:g}ms",
                response.duration_ms < self.latency_ceiling_ms,
            ),
        )

    async def execute(self, kind: OperationKind, factory: DataFactory) -> Outcome:
        response = await self._call(kind, factory)
        checks = self._checks(kind, response)
        outcome = Outcome(
            kind=kind,
            status_code=response.status_code,
            duration_ms=response.duration_ms,
            body_present=response.body is not None,
            checks=checks,
        )

        if self.recorder is not None:
            self.recorder.record(kind.value, outcome.duration_ms, outcome.status_code)
            self.recorder.record_checks(checks)

        if not outcome.checks_passed:
            logger.debug(
                "operation_check_failed",
                operation=kind.value,
                status_code=outcome.status_code,
                duration_ms=round(outcome.duration_ms, 2),
                failed=[check.name for check in checks if not check.passed],
            )
        return outcome


def _describe(statuses: frozenset[int]) -> str:
    return " or ".join(str(code) for code in sorted(statuses))
