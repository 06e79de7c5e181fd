"""
Maintenance Alert Engine - Batch Evaluator and Summary.

============================================================
PURPOSE
============================================================
Runs the classifier + factory over every monitored component
of one tenant and returns the surviving alerts in a
deterministic order.

It orchestrates:
1. Snapshot validation
2. Per-component classification
3. Alert construction
4. Sorting (priority, then days until maintenance)

A failure on one component is logged with its id and skipped;
it never aborts the batch.

============================================================
USAGE
============================================================
    from maintenance_alerts import BatchEvaluator

    evaluator = BatchEvaluator()
    alerts = evaluator.evaluate_all(snapshots, company_id="acme")
    summary = summarize(alerts)

============================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional
from uuid import uuid4

from core.clock import ClockProtocol

from .config import AlertPolicyConfig
from .factory import AlertFactory
from .types import (
    AlertSeverity,
    AlertSummary,
    AlertType,
    ComponentSnapshot,
    MaintenanceAlert,
)


logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of one batch evaluation."""

    batch_id: str
    company_id: Optional[str]
    evaluated: int = 0
    alerts: List[MaintenanceAlert] = field(default_factory=list)
    failed_components: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_components)


class BatchEvaluator:
    """
    Evaluates a tenant's component snapshots in one pass.

    Stateless between calls: running it twice over the same
    snapshots yields the same alerts (apart from ids/timestamps).
    """

    def __init__(
        self,
        policy: Optional[AlertPolicyConfig] = None,
        clock: Optional[ClockProtocol] = None,
        factory: Optional[AlertFactory] = None,
        base_logger: Optional[logging.Logger] = None,
    ):
        self._factory = factory or AlertFactory(policy=policy, clock=clock)
        self._logger = base_logger or logger

    def evaluate_all(
        self,
        snapshots: Iterable[ComponentSnapshot],
        company_id: Optional[str] = None,
    ) -> List[MaintenanceAlert]:
        """Evaluate all snapshots and return sorted alerts."""
        return self.evaluate_with_report(snapshots, company_id).alerts

    def evaluate_with_report(
        self,
        snapshots: Iterable[ComponentSnapshot],
        company_id: Optional[str] = None,
    ) -> BatchReport:
        """Evaluate all snapshots, also reporting skipped components."""
        report = BatchReport(batch_id=str(uuid4()), company_id=company_id)
        batch_logger = logging.LoggerAdapter(
            self._logger,
            {"batch_id": report.batch_id, "company_id": company_id},
        )

        for snapshot in snapshots:
            report.evaluated += 1
            component_id = _component_id_of(snapshot)
            try:
                alert = self.evaluate_component(snapshot)
            except Exception as e:
                batch_logger.error(
                    f"Skipping component {component_id} in batch {report.batch_id}: {e}"
                )
                report.failed_components.append(str(component_id))
                continue

            if alert is not None:
                report.alerts.append(alert)

        report.alerts.sort(key=lambda a: (a.priority, a.days_until_maintenance))

        batch_logger.info(
            f"Batch {report.batch_id} for {company_id}: evaluated={report.evaluated} "
            f"alerts={len(report.alerts)} failed={report.failed}"
        )
        return report

    def evaluate_component(self, snapshot: ComponentSnapshot) -> Optional[MaintenanceAlert]:
        """Validate and evaluate a single component."""
        snapshot.validate()
        return self._factory.build(snapshot)


def _component_id_of(snapshot: Any) -> Any:
    try:
        return snapshot.component_id
    except AttributeError:
        return "<unknown>"


# ============================================================
# SUMMARY AGGREGATOR
# ============================================================


def summarize(alerts: Iterable[Any]) -> AlertSummary:
    """
    Reduce alerts to counts by severity and type.

    Accepts MaintenanceAlert values or persisted records; enum
    fields may be enum members or their string values.
    """
    by_type = {t: 0 for t in AlertType.all_types()}
    counts = {severity: 0 for severity in AlertSeverity}
    total = 0

    for alert in alerts:
        total += 1
        counts[AlertSeverity(alert.severity)] += 1
        by_type[AlertType(alert.alert_type)] += 1

    return AlertSummary(
        total=total,
        critical=counts[AlertSeverity.CRITICAL],
        warning=counts[AlertSeverity.WARNING],
        info=counts[AlertSeverity.INFO],
        by_type=by_type,
    )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def evaluate_component(
    snapshot: ComponentSnapshot,
    policy: Optional[AlertPolicyConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> Optional[MaintenanceAlert]:
    """Evaluate one component outside of a batch."""
    return BatchEvaluator(policy=policy, clock=clock).evaluate_component(snapshot)


def filter_alerts_by_severity(
    alerts: Iterable[MaintenanceAlert],
    severity: AlertSeverity,
) -> List[MaintenanceAlert]:
    return [a for a in alerts if a.severity == severity]


def get_top_critical_alerts(
    alerts: Iterable[MaintenanceAlert],
    limit: int = 5,
) -> List[MaintenanceAlert]:
    """The most urgent CRITICAL alerts, in batch order."""
    critical = filter_alerts_by_severity(alerts, AlertSeverity.CRITICAL)
    critical.sort(key=lambda a: (a.priority, a.days_until_maintenance))
    return critical[:limit]


def format_alert_summary(summary: AlertSummary) -> str:
    """One-line human-readable summary."""
    return (
        f"{summary.total} alerts "
        f"(critical={summary.critical}, warning={summary.warning}, info={summary.info})"
    )
