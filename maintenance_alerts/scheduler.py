"""
Maintenance Alert Engine - Batch Scheduler.

============================================================
PURPOSE
============================================================
Timer-driven job that evaluates every tenant once per interval
and persists the resulting alerts.

Per cycle:
1. List tenants from the snapshot provider
2. For each tenant, concurrently (bounded by a semaphore):
   a. fetch snapshots            (blocking I/O)
   b. evaluate the batch         (pure CPU)
   c. persist alert by alert     (blocking I/O, one txn each)
3. Collect per-tenant results

Each tenant runs under its own timeout. A hung tenant is
cancelled and reported; the others are unaffected. A timed-out
writer thread stops before its next insert and keeps the
concurrency slot until it does.

============================================================
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from core.clock import ClockProtocol, SystemClock

from .config import SchedulerConfig
from .engine import BatchEvaluator
from .exceptions import PersistenceError
from .providers import SnapshotProvider
from .repository import AlertHistoryStore
from .types import MaintenanceAlert


logger = logging.getLogger(__name__)


# ============================================================
# RESULTS
# ============================================================


@dataclass
class TenantRunResult:
    """Outcome of one tenant's evaluation within a cycle."""

    company_id: str
    evaluated: int = 0
    alerts_generated: int = 0
    alerts_created: int = 0
    failed_components: List[str] = field(default_factory=list)
    persistence_failures: int = 0
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return not self.timed_out and self.error is None


@dataclass
class CycleResult:
    """Outcome of one scheduler cycle across all tenants."""

    cycle_number: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    tenants: List[TenantRunResult] = field(default_factory=list)

    @property
    def alerts_created(self) -> int:
        return sum(t.alerts_created for t in self.tenants)

    @property
    def failed_tenants(self) -> List[str]:
        return [t.company_id for t in self.tenants if not t.succeeded]


# ============================================================
# SCHEDULER
# ============================================================


class AlertScheduler:
    """
    Periodic per-tenant alert generation.

    Usage:
        scheduler = AlertScheduler(provider, store)
        await scheduler.run_forever()
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        store: AlertHistoryStore,
        evaluator: Optional[BatchEvaluator] = None,
        config: Optional[SchedulerConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self._provider = provider
        self._store = store
        self._clock = clock or SystemClock()
        self._evaluator = evaluator or BatchEvaluator(clock=self._clock)
        self._config = config or SchedulerConfig()
        self._semaphore = asyncio.Semaphore(self._config.max_concurrent_tenants)
        self._shutdown_event = asyncio.Event()
        self._cycle_count = 0
        self._last_cycle: Optional[CycleResult] = None

    @property
    def provider(self) -> SnapshotProvider:
        return self._provider

    @property
    def last_cycle(self) -> Optional[CycleResult]:
        return self._last_cycle

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def run_forever(self) -> None:
        """Run cycles until shutdown is requested."""
        logger.info(
            f"Starting alert scheduler | interval={self._config.interval_seconds}s "
            f"tenant_timeout={self._config.tenant_timeout_seconds}s"
        )

        try:
            while not self._shutdown_event.is_set():
                try:
                    await self.run_cycle()
                except asyncio.CancelledError:
                    logger.info("Scheduler loop cancelled")
                    raise
                except Exception as e:
                    logger.error(f"Cycle error: {e}", exc_info=True)

                await self._wait_for_next_tick()
        finally:
            await self._provider.close()
            logger.info("Alert scheduler stopped")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def _wait_for_next_tick(self) -> None:
        try:
            await asyncio.wait_for(
                self._shutdown_event.wait(),
                timeout=self._config.interval_seconds,
            )
        except asyncio.TimeoutError:
            pass

    # --------------------------------------------------------
    # Cycle
    # --------------------------------------------------------

    async def run_cycle(self) -> CycleResult:
        """Evaluate every tenant once."""
        self._cycle_count += 1
        cycle = CycleResult(cycle_number=self._cycle_count, started_at=self._clock.now())

        try:
            tenants = await self._provider.list_tenants()
        except Exception as e:
            logger.error(f"Cycle {cycle.cycle_number}: cannot list tenants: {e}")
            cycle.finished_at = self._clock.now()
            self._last_cycle = cycle
            return cycle

        results = await asyncio.gather(
            *(self._run_tenant_guarded(company_id) for company_id in tenants),
            return_exceptions=True,
        )

        for company_id, result in zip(tenants, results):
            if isinstance(result, BaseException):
                cycle.tenants.append(TenantRunResult(company_id=company_id, error=str(result)))
            else:
                cycle.tenants.append(result)

        cycle.finished_at = self._clock.now()
        self._last_cycle = cycle

        logger.info(
            f"Cycle {cycle.cycle_number} complete: tenants={len(cycle.tenants)} "
            f"created={cycle.alerts_created} failed_tenants={cycle.failed_tenants}"
        )
        return cycle

    async def _run_tenant_guarded(self, company_id: str) -> TenantRunResult:
        result = TenantRunResult(company_id=company_id)
        stop = threading.Event()
        idle = threading.Event()
        idle.set()
        async with self._semaphore:
            try:
                await asyncio.wait_for(
                    self._run_tenant(company_id, result, stop, idle),
                    timeout=self._config.tenant_timeout_seconds,
                )
            except asyncio.TimeoutError:
                result.timed_out = True
                stop.set()
                logger.warning(
                    f"[{company_id}] Evaluation timed out after "
                    f"{self._config.tenant_timeout_seconds}s"
                )
                # Hold the slot until the writer thread sees the stop flag
                drained = await asyncio.to_thread(idle.wait, self._config.tenant_timeout_seconds)
                if not drained:
                    logger.warning(f"[{company_id}] Writer still busy after stop request")
            except Exception as e:
                result.error = str(e)
                logger.error(f"[{company_id}] Evaluation failed: {e}")
        return result

    async def run_tenant(self, company_id: str) -> TenantRunResult:
        """Evaluate one tenant without the cycle timeout."""
        result = TenantRunResult(company_id=company_id)
        await self._run_tenant(company_id, result)
        return result

    async def _run_tenant(
        self,
        company_id: str,
        result: TenantRunResult,
        stop: Optional[threading.Event] = None,
        idle: Optional[threading.Event] = None,
    ) -> None:
        # Step 1: Fetch snapshots
        snapshots = await self._provider.fetch_snapshots(company_id)

        # Step 2: Evaluate
        report = self._evaluator.evaluate_with_report(snapshots, company_id=company_id)
        result.evaluated = report.evaluated
        result.alerts_generated = len(report.alerts)
        result.failed_components = list(report.failed_components)

        # Step 3: Persist
        if report.alerts:
            created, failures = await asyncio.to_thread(
                self._persist, report.alerts, company_id, stop or threading.Event(), idle
            )
            result.alerts_created = created
            result.persistence_failures = failures

    def _persist(
        self,
        alerts: List[MaintenanceAlert],
        company_id: str,
        stop: threading.Event,
        idle: Optional[threading.Event] = None,
    ) -> Tuple[int, int]:
        """Write alerts one by one until done or `stop` is set.

        Returns (created, failures). Runs on a worker thread.
        """
        created_count = 0
        failures = 0
        if idle is not None:
            idle.clear()
        try:
            for alert in alerts:
                if stop.is_set():
                    logger.warning(
                        f"[{company_id}] Stopped persisting after {created_count} "
                        f"of {len(alerts)} alerts"
                    )
                    break
                try:
                    _, created = self._store.create(alert, company_id)
                except PersistenceError as e:
                    failures += 1
                    logger.error(
                        f"[{company_id}] Failed to persist alert for component "
                        f"{alert.component_id}: {e}"
                    )
                    continue
                if created:
                    created_count += 1
        finally:
            if idle is not None:
                idle.set()
        return created_count, failures
