"""Asyncio host runner: scales virtual users to the profile and runs a scenario.

Lifecycle of one run::

    idle -> setup (pre-run health gate) -> running -> teardown (post-run
    health gate, summarize) -> done

A failed pre-run health check is terminal (``aborted``) and raises
``SetupFailure`` before any load is generated. Once running, the run always
reaches teardown: per-call failures are metrics, not exceptions.
"""

import asyncio
import contextlib
import random
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

import structlog

from generators.customer_generator import CustomerDataFactory
from loadbench.engine.errors import ConfigurationError, SetupFailure
from loadbench.engine.executor import DEFAULT_LATENCY_CEILING_MS, OperationExecutor, Outcome
from loadbench.engine.health import HealthGate, HealthStatus
from loadbench.engine.mix import select
from loadbench.engine.phases import MetricsAggregator, PhaseClassifier
from loadbench.engine.recorder import LatencyRecorder
from loadbench.engine.thresholds import evaluate_thresholds
from loadbench.report import RunSummary
from loadbench.scenarios.models import Scenario
from loadbench.transport import STATUS_TRANSPORT_ERROR, Transport

logger = structlog.get_logger()

# Emit a progress log line every N ticks
PROGRESS_LOG_EVERY = 10


class RunState(StrEnum):
    IDLE = "idle"
    SETUP = "setup"
    RUNNING = "running"
    TEARDOWN = "teardown"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunContext:
    """Created at setup and handed to teardown; owned by the runner only."""

    test_name: str
    start_time: datetime
    end_time: datetime | None = None


@dataclass
class _VirtualUser:
    vu_id: int
    rng: random.Random
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    iterations: int = 0


class ScenarioRunner:
    """Drives one scenario against a transport and returns a ``RunSummary``."""

    def __init__(
        self,
        scenario: Scenario,
        transport: Transport,
        *,
        seed: int | None = None,
        latency_ceiling_ms: float = DEFAULT_LATENCY_CEILING_MS,
        tick_seconds: float = 1.0,
        max_duration_seconds: float | None = None,
        external_phase: str | None = None,
        max_entity_id: int = 1000,
    ) -> None:
        if tick_seconds <= 0:
            raise ConfigurationError(f"tick_seconds must be positive, got {tick_seconds}")
        self.scenario = scenario
        self.transport = transport
        self.seed = seed
        self.tick_seconds = tick_seconds
        self.max_duration_seconds = max_duration_seconds
        self.external_phase = external_phase
        self.max_entity_id = max_entity_id

        self.health_gate = HealthGate(transport)
        self.recorder = LatencyRecorder()
        self.classifier = PhaseClassifier.from_profile(scenario.profile)
        self.aggregator = MetricsAggregator(self.classifier.phase_names)
        self.executor = OperationExecutor(
            transport,
            latency_ceiling_ms=(
                scenario.latency_ceiling_ms
                if scenario.latency_ceiling_ms is not None
                else latency_ceiling_ms
            ),
            recorder=self.recorder,
        )

        self.state = RunState.IDLE
        self.peak_vus = 0
        self._rng = random.Random(seed)
        self._stop: asyncio.Event | None = None
        self._active: list[_VirtualUser] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._next_vu_id = 1
        self._iterations = 0
        self._start: float | None = None
        self._pre_run_health: HealthStatus | None = None

    # ---- introspection ------------------------------------------------------

    @property
    def active_vus(self) -> int:
        return len(self._active)

    @property
    def iterations(self) -> int:
        return self._iterations

    def elapsed(self) -> float:
        if self._start is None:
            return 0.0
        return time.monotonic() - self._start

    def stop(self) -> None:
        """Stop starting new iterations; in-flight calls are allowed to finish."""
        if self._stop is not None:
            self._stop.set()

    @property
    def budget_seconds(self) -> float:
        total = self.scenario.profile.total_duration
        if self.max_duration_seconds is None:
            return total
        return min(total, self.max_duration_seconds)

    # ---- lifecycle ----------------------------------------------------------

    async def setup(self) -> RunContext:
        self.state = RunState.SETUP
        try:
            self._pre_run_health = await self.health_gate.pre_run()
        except SetupFailure:
            self.state = RunState.ABORTED
            raise
        return RunContext(test_name=self.scenario.title, start_time=datetime.now(UTC))

    async def run(self) -> RunSummary:
        context = await self.setup()
        try:
            await self._drive()
        except Exception:
            logger.exception("run_loop_failed", scenario=self.scenario.name)
        return await self.teardown(context)

    async def teardown(self, context: RunContext) -> RunSummary:
        self.state = RunState.TEARDOWN
        post_run_health = await self.health_gate.post_run()
        context.end_time = datetime.now(UTC)

        metrics = self.aggregator.summarize(self.scenario.baseline_phase)
        threshold_results = evaluate_thresholds(self.scenario.thresholds, self.recorder)

        warnings: list[str] = []
        if not post_run_health.healthy:
            warnings.append(
                "degraded_recovery: post-run health check returned "
                f"{post_run_health.http_status}"
            )
        baseline = metrics.per_phase.get(self.scenario.baseline_phase)
        if metrics.total_count and (baseline is None or baseline.count == 0):
            warnings.append(
                f"no samples in baseline phase {self.scenario.baseline_phase!r}; "
                "latency deltas are undefined"
            )

        summary = RunSummary(
            test_name=context.test_name,
            scenario=self.scenario.name,
            start_time=context.start_time,
            end_time=context.end_time,
            total_requests=self.recorder.total_requests(),
            iterations=self._iterations,
            peak_vus=self.peak_vus,
            metrics=metrics,
            per_operation={
                op: {
                    "latency": self.recorder.percentiles(op),
                    "error_count": self.recorder.error_count(op),
                    "error_rate": round(self.recorder.error_rate(op), 4),
                    "status_codes": self.recorder.status_codes(op),
                }
                for op in self.recorder.operations()
            },
            checks=self.recorder.checks(),
            thresholds=threshold_results,
            pre_run_health=self._pre_run_health,
            post_run_health=post_run_health,
            warnings=warnings,
        )
        self.state = RunState.DONE
        logger.info(
            "run_completed",
            scenario=self.scenario.name,
            total_requests=summary.total_requests,
            duration_seconds=round(summary.duration_seconds, 1),
            failed_checks=self.recorder.failed_check_count(),
            passed=summary.passed,
        )
        return summary

    # ---- main execution loop ------------------------------------------------

    async def _drive(self) -> None:
        self.state = RunState.RUNNING
        self._stop = asyncio.Event()
        self._start = start = time.monotonic()
        budget = self.budget_seconds
        ticks = 0

        logger.info(
            "run_started",
            scenario=self.scenario.name,
            duration_seconds=budget,
            peak_target=self.scenario.profile.peak_target(),
            seed=self.seed,
        )

        try:
            while not self._stop.is_set():
                elapsed = time.monotonic() - start
                if elapsed >= budget:
                    break

                target = self.scenario.profile.current_target(elapsed)
                self._scale_to(target)

                ticks += 1
                if ticks % PROGRESS_LOG_EVERY == 0:
                    logger.info(
                        "run_progress",
                        elapsed_seconds=int(elapsed),
                        target_vus=target,
                        active_vus=self.active_vus,
                        iterations=self._iterations,
                    )

                next_tick = min(start + ticks * self.tick_seconds, start + budget)
                sleep_for = next_tick - time.monotonic()
                if sleep_for > 0:
                    with contextlib.suppress(TimeoutError):
                        await asyncio.wait_for(self._stop.wait(), timeout=sleep_for)
        finally:
            await self._drain()

    def _scale_to(self, target: int) -> None:
        current = len(self._active)
        if target > current:
            for _ in range(target - current):
                self._spawn()
        elif target < current:
            # Newest VUs retire first; each finishes its current iteration
            for vu in self._active[target:]:
                vu.stop.set()
            del self._active[target:]
        self.peak_vus = max(self.peak_vus, len(self._active))

    def _spawn(self) -> None:
        vu = _VirtualUser(vu_id=self._next_vu_id, rng=random.Random(self._rng.getrandbits(64)))
        self._next_vu_id += 1
        task = asyncio.create_task(self._vu_loop(vu), name=f"vu-{vu.vu_id}")
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._on_vu_exit(vu, done))
        self._active.append(vu)

    def _on_vu_exit(self, vu: _VirtualUser, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        # An exited VU no longer counts toward the target; the next tick replaces it
        if vu in self._active:
            self._active.remove(vu)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "virtual_user_failed",
                vu_id=vu.vu_id,
                iterations=vu.iterations,
                error=repr(exc),
            )

    async def _drain(self) -> None:
        if self._stop is not None:
            self._stop.set()
        for vu in self._active:
            vu.stop.set()
        self._active.clear()

        pending = list(self._tasks)
        if not pending:
            return
        logger.info("run_draining", in_flight=len(pending))
        await asyncio.gather(*pending, return_exceptions=True)

    async def _vu_loop(self, vu: _VirtualUser) -> None:
        factory = CustomerDataFactory(config={"max_entity_id": self.max_entity_id}, rng=vu.rng)
        while not vu.stop.is_set():
            started_at = self.elapsed()
            kind = select(self.scenario.mix, vu.rng)
            t0 = time.perf_counter()
            try:
                outcome = await self.executor.execute(kind, factory)
            except Exception as exc:
                duration_ms = (time.perf_counter() - t0) * 1000.0
                logger.warning(
                    "virtual_user_iteration_failed",
                    vu_id=vu.vu_id,
                    operation=kind.value,
                    error=repr(exc),
                )
                outcome = Outcome(
                    kind=kind,
                    status_code=STATUS_TRANSPORT_ERROR,
                    duration_ms=duration_ms,
                    body_present=False,
                )
                self.recorder.record(kind.value, duration_ms, STATUS_TRANSPORT_ERROR)
            phase = self.classifier.classify(started_at, self.external_phase)
            self.aggregator.record(phase, outcome)
            vu.iterations += 1
            self._iterations += 1

            delay = self.scenario.think_time.next_delay(vu.rng)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(vu.stop.wait(), timeout=delay)
