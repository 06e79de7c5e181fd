"""
Maintenance Alert Engine - Alert Lifecycle Store.

============================================================
PURPOSE
============================================================
Sole writer of the alert history table.

- create: insert ACTIVE unless one already exists for
  (company_id, component_id, alert_type)
- resolve / dismiss: one atomic conditional UPDATE each
- reads: tenant-scoped get, filtered/paginated list, summary,
  analytics and daily trends

============================================================
CONCURRENCY
============================================================
Transitions are a single

    UPDATE ... WHERE id=? AND company_id=? AND status='ACTIVE'

Zero affected rows means another operator won the race (or
the record is not ours). No lock outlives one call; every
create is its own transaction.

============================================================
TENANT ISOLATION
============================================================
A record belonging to another tenant is reported exactly like
a missing one (NotFoundError).

============================================================
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Generator, Iterable, List, Optional, Tuple

from sqlalchemy import and_, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError
from sqlalchemy.orm import Session, sessionmaker

from core.clock import ClockProtocol, SystemClock
from database.engine import DatabasePersistenceError, get_session_factory, transaction_scope

from .engine import summarize
from .exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from .models import MaintenanceAlertRecord
from .types import (
    AlertAnalytics,
    AlertHistoryFilters,
    AlertPage,
    AlertSeverity,
    AlertStatus,
    AlertSummary,
    ComponentAlertCount,
    Criticality,
    MaintenanceAlert,
    Pagination,
    StockStatus,
    TenantContext,
    TrendPoint,
)


TOP_COMPONENTS_LIMIT = 10


# ============================================================
# STORE INTERFACE
# ============================================================


class AlertHistoryStore(ABC):
    """Repository interface for persisted alerts."""

    @abstractmethod
    def create(self, alert: MaintenanceAlert, company_id: str) -> Tuple[MaintenanceAlertRecord, bool]:
        """Insert an ACTIVE record; returns (record, created)."""

    @abstractmethod
    def resolve(
        self,
        alert_id: str,
        ctx: TenantContext,
        linked_work_order_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> MaintenanceAlertRecord:
        """ACTIVE -> RESOLVED."""

    @abstractmethod
    def dismiss(self, alert_id: str, ctx: TenantContext, reason: str) -> MaintenanceAlertRecord:
        """ACTIVE -> DISMISSED."""

    @abstractmethod
    def get_by_id(self, alert_id: str, company_id: str) -> MaintenanceAlertRecord:
        """Fetch one record of the caller's tenant."""

    @abstractmethod
    def list(
        self,
        company_id: str,
        filters: Optional[AlertHistoryFilters] = None,
        pagination: Optional[Pagination] = None,
    ) -> AlertPage:
        """Filtered, paginated records of the caller's tenant."""

    @abstractmethod
    def summary(self, company_id: str) -> AlertSummary:
        """Counts over the tenant's ACTIVE records."""

    @abstractmethod
    def analytics(
        self,
        company_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> AlertAnalytics:
        """Breakdown of the tenant's alerts over a date window."""

    @abstractmethod
    def trends(self, company_id: str, days: int = 30) -> List[TrendPoint]:
        """Alerts generated per day."""


# ============================================================
# SQLALCHEMY IMPLEMENTATION
# ============================================================


class SqlAlchemyAlertHistoryStore(AlertHistoryStore):
    """
    AlertHistoryStore backed by SQLAlchemy.

    Each public call opens its own transaction through the
    injected session factory.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        self._logger = logging.getLogger("repository.maintenance_alert_history")

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        try:
            with transaction_scope(self._session_factory) as session:
                yield session
        except DatabasePersistenceError as e:
            self._logger.error(f"Database error in {operation}: {e}")
            raise PersistenceError(operation, e.__cause__ or e) from e

    # ---------------------------------------------------------
    # Writes
    # ---------------------------------------------------------

    def create(self, alert: MaintenanceAlert, company_id: str) -> Tuple[MaintenanceAlertRecord, bool]:
        try:
            with self._transaction("create") as session:
                existing = self._find_active(session, company_id, alert)
                if existing is not None:
                    self._logger.debug(
                        f"Active {alert.alert_type.value} alert already exists for "
                        f"component {alert.component_id} ({existing.id})"
                    )
                    return existing, False

                record = MaintenanceAlertRecord.from_alert(alert, company_id)
                session.add(record)
        except PersistenceError as e:
            if not isinstance(e.original_error, SQLAlchemyIntegrityError):
                raise
            # Lost an insert race against a concurrent batch run
            with self._transaction("create") as session:
                existing = self._find_active(session, company_id, alert)
            if existing is None:
                raise
            return existing, False

        self._logger.info(
            f"Created {record.alert_type} alert {record.id} for component "
            f"{record.component_id} (company={company_id})"
        )
        return record, True

    def create_many(self, alerts: Iterable[MaintenanceAlert], company_id: str) -> int:
        """Persist alerts one transaction at a time; returns how many were new."""
        created = 0
        for alert in alerts:
            _, was_created = self.create(alert, company_id)
            if was_created:
                created += 1
        return created

    def resolve(
        self,
        alert_id: str,
        ctx: TenantContext,
        linked_work_order_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> MaintenanceAlertRecord:
        record = self._transition(
            alert_id,
            ctx,
            target=AlertStatus.RESOLVED,
            values={
                "resolved_by": ctx.operator_id,
                "resolved_at": self._clock.now(),
                "linked_work_order_id": linked_work_order_id,
                "resolution_notes": notes,
            },
            operation="resolve",
        )
        self._logger.info(
            f"Alert {alert_id} resolved by {ctx.operator_id}"
            + (f" (work order {linked_work_order_id})" if linked_work_order_id else "")
        )
        return record

    def dismiss(self, alert_id: str, ctx: TenantContext, reason: str) -> MaintenanceAlertRecord:
        if reason is None or not reason.strip():
            raise ValidationError("reason", "a dismiss reason is required", operation="dismiss")

        record = self._transition(
            alert_id,
            ctx,
            target=AlertStatus.DISMISSED,
            values={
                "dismissed_by": ctx.operator_id,
                "dismissed_at": self._clock.now(),
                "dismiss_reason": reason.strip(),
            },
            operation="dismiss",
        )
        self._logger.info(f"Alert {alert_id} dismissed by {ctx.operator_id}: {reason.strip()}")
        return record

    def _transition(
        self,
        alert_id: str,
        ctx: TenantContext,
        target: AlertStatus,
        values: dict,
        operation: str,
    ) -> MaintenanceAlertRecord:
        model = MaintenanceAlertRecord
        with self._transaction(operation) as session:
            result = session.execute(
                update(model)
                .where(
                    model.id == alert_id,
                    model.company_id == ctx.company_id,
                    model.status == AlertStatus.ACTIVE.value,
                )
                .values(status=target.value, **values)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                current = session.get(model, alert_id)
                if current is None or current.company_id != ctx.company_id:
                    raise NotFoundError(alert_id, operation=operation)
                self._logger.warning(
                    f"{operation} rejected for alert {alert_id}: status is {current.status}"
                )
                raise ConflictError(
                    alert_id,
                    current.status,
                    changed_by=current.resolved_by or current.dismissed_by,
                    operation=operation,
                )

            return session.get(model, alert_id)

    # ---------------------------------------------------------
    # Reads
    # ---------------------------------------------------------

    def get_by_id(self, alert_id: str, company_id: str) -> MaintenanceAlertRecord:
        with self._transaction("get") as session:
            record = session.execute(
                select(MaintenanceAlertRecord).where(
                    MaintenanceAlertRecord.id == alert_id,
                    MaintenanceAlertRecord.company_id == company_id,
                )
            ).scalar_one_or_none()

        if record is None:
            raise NotFoundError(alert_id)
        return record

    def list(
        self,
        company_id: str,
        filters: Optional[AlertHistoryFilters] = None,
        pagination: Optional[Pagination] = None,
    ) -> AlertPage:
        pagination = pagination or Pagination()
        conditions = build_filter_conditions(company_id, filters or AlertHistoryFilters())
        model = MaintenanceAlertRecord

        with self._transaction("list") as session:
            total = session.execute(
                select(func.count()).select_from(model).where(*conditions)
            ).scalar_one()

            rows = session.execute(
                select(model)
                .where(*conditions)
                .order_by(desc(model.generated_at), model.priority, model.id)
                .offset(pagination.offset)
                .limit(pagination.limit)
            ).scalars().all()

        return AlertPage(items=list(rows), total=total, page=pagination.page, limit=pagination.limit)

    def summary(self, company_id: str) -> AlertSummary:
        model = MaintenanceAlertRecord
        with self._transaction("summary") as session:
            rows = session.execute(
                select(model.severity, model.alert_type).where(
                    model.company_id == company_id,
                    model.status == AlertStatus.ACTIVE.value,
                )
            ).all()
        return summarize(rows)

    def analytics(
        self,
        company_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> AlertAnalytics:
        """Severity/criticality/status breakdown plus the noisiest components."""
        model = MaintenanceAlertRecord
        window = [model.company_id == company_id]
        if start_date is not None:
            window.append(model.generated_at >= as_utc(start_date))
        if end_date is not None:
            window.append(model.generated_at <= as_utc(end_date))
        active = window + [model.status == AlertStatus.ACTIVE.value]

        with self._transaction("analytics") as session:
            severity_rows = session.execute(
                select(model.severity, func.count()).where(*active).group_by(model.severity)
            ).all()
            criticality_rows = session.execute(
                select(model.criticality, func.count()).where(*active).group_by(model.criticality)
            ).all()
            status_rows = session.execute(
                select(model.status, func.count()).where(*window).group_by(model.status)
            ).all()
            component_count = func.count().label("alert_count")
            top_rows = session.execute(
                select(model.component_id, func.max(model.component_name), component_count)
                .where(*active)
                .group_by(model.component_id)
                .order_by(desc(component_count), model.component_id)
                .limit(TOP_COMPONENTS_LIMIT)
            ).all()

        by_severity = {s: 0 for s in AlertSeverity}
        for severity, count in severity_rows:
            by_severity[AlertSeverity(severity)] += count

        # Missing criticality ranks as C
        by_criticality = {c: 0 for c in Criticality}
        for criticality, count in criticality_rows:
            by_criticality[Criticality(criticality) if criticality else Criticality.C] += count

        by_status = {s: 0 for s in AlertStatus}
        for status, count in status_rows:
            by_status[AlertStatus(status)] += count

        return AlertAnalytics(
            total_active=sum(by_severity.values()),
            by_severity=by_severity,
            by_criticality=by_criticality,
            by_status=by_status,
            top_components=[
                ComponentAlertCount(component_id=cid, component_name=name, count=count)
                for cid, name, count in top_rows
            ],
        )

    def trends(self, company_id: str, days: int = 30) -> List[TrendPoint]:
        """Alerts generated per UTC day over the last `days` days, oldest first."""
        if days < 1:
            raise ValidationError("days", "must be at least 1", operation="trends")

        today = self._clock.now().date()
        first_day = today - timedelta(days=days - 1)
        since = datetime.combine(first_day, datetime.min.time(), tzinfo=self._clock.now().tzinfo)
        model = MaintenanceAlertRecord

        with self._transaction("trends") as session:
            rows = session.execute(
                select(model.generated_at, model.severity).where(
                    model.company_id == company_id,
                    model.generated_at >= as_utc(since),
                )
            ).all()

        buckets = {first_day + timedelta(days=i): {s: 0 for s in AlertSeverity} for i in range(days)}
        for generated_at, severity in rows:
            bucket = buckets.get(generated_at.date())
            if bucket is not None:
                bucket[AlertSeverity(severity)] += 1

        return [
            TrendPoint(
                day=day,
                critical=counts[AlertSeverity.CRITICAL],
                warning=counts[AlertSeverity.WARNING],
                info=counts[AlertSeverity.INFO],
            )
            for day, counts in sorted(buckets.items())
        ]

    def _find_active(
        self,
        session: Session,
        company_id: str,
        alert: MaintenanceAlert,
    ) -> Optional[MaintenanceAlertRecord]:
        return session.execute(
            select(MaintenanceAlertRecord).where(
                MaintenanceAlertRecord.company_id == company_id,
                MaintenanceAlertRecord.component_id == alert.component_id,
                MaintenanceAlertRecord.alert_type == alert.alert_type.value,
                MaintenanceAlertRecord.status == AlertStatus.ACTIVE.value,
            )
        ).scalar_one_or_none()


# ============================================================
# FILTERS
# ============================================================


def as_utc(value: datetime) -> datetime:
    """Normalize a bound to UTC; naive values are taken as UTC already.

    Timestamps are stored as UTC and SQLite drops the offset on bind,
    so an aware bound must be converted before it is compared.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_filter_conditions(company_id: str, filters: AlertHistoryFilters) -> list:
    """Translate list filters into AND-combined SQL conditions."""
    model = MaintenanceAlertRecord
    conditions = [model.company_id == company_id]

    if filters.severities:
        conditions.append(model.severity.in_([s.value for s in filters.severities]))

    if filters.criticalities:
        values = [c.value for c in filters.criticalities]
        if Criticality.C in filters.criticalities:
            conditions.append(or_(model.criticality.in_(values), model.criticality.is_(None)))
        else:
            conditions.append(model.criticality.in_(values))

    if filters.stock_statuses:
        conditions.append(or_(*[_stock_status_condition(s) for s in filters.stock_statuses]))

    if filters.alert_types:
        conditions.append(model.alert_type.in_([t.value for t in filters.alert_types]))

    if filters.statuses:
        conditions.append(model.status.in_([s.value for s in filters.statuses]))

    if filters.component_id:
        conditions.append(model.component_id == filters.component_id)

    if filters.min_days_until_maintenance is not None:
        conditions.append(model.days_until_maintenance >= filters.min_days_until_maintenance)

    if filters.max_days_until_maintenance is not None:
        conditions.append(model.days_until_maintenance <= filters.max_days_until_maintenance)

    if filters.start_date is not None:
        conditions.append(model.generated_at >= as_utc(filters.start_date))

    if filters.end_date is not None:
        conditions.append(model.generated_at <= as_utc(filters.end_date))

    return conditions


def _stock_status_condition(status: StockStatus):
    model = MaintenanceAlertRecord
    if status == StockStatus.CRITICAL:
        return model.current_stock == 0
    if status == StockStatus.LOW:
        return and_(model.current_stock > 0, model.current_stock < model.reorder_point)
    return and_(model.current_stock > 0, model.current_stock >= model.reorder_point)
