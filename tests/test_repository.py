"""
Tests for the Alert Lifecycle Store.

============================================================
PURPOSE
============================================================
Verify the persisted alert lifecycle against SQLite.

TEST PRINCIPLES:
- At most one ACTIVE record per (tenant, component, type)
- ACTIVE -> RESOLVED | DISMISSED exactly once
- Foreign-tenant records look exactly like missing ones
- A rejected call writes nothing

============================================================
"""

import threading
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from maintenance_alerts.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from maintenance_alerts.repository import SqlAlchemyAlertHistoryStore
from maintenance_alerts.types import (
    AlertHistoryFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Criticality,
    Pagination,
    StockStatus,
    TenantContext,
)


PLUS_TWO = timezone(timedelta(hours=2))

ACME = TenantContext(company_id="acme", operator_id="op-alice")
ACME_BOB = TenantContext(company_id="acme", operator_id="op-bob")
GLOBEX = TenantContext(company_id="globex", operator_id="op-eve")


# =============================================================
# TEST: Create / Dedup
# =============================================================

class TestCreate:
    """Idempotent regeneration."""

    def test_create_inserts_active_record(self, store, alert_builder):
        alert = alert_builder(days=3, current_stock=0)

        record, created = store.create(alert, "acme")

        assert created is True
        assert record.id == alert.id
        assert record.status == AlertStatus.ACTIVE.value
        assert record.company_id == "acme"
        assert record.alert_type == AlertType.STOCK_OUT_CRITICAL.value

    def test_duplicate_active_is_noop(self, store, alert_builder):
        first, _ = store.create(alert_builder(days=3, current_stock=0), "acme")

        again, created = store.create(alert_builder(days=2, current_stock=0), "acme")

        assert created is False
        assert again.id == first.id
        assert store.list("acme").total == 1

    def test_different_type_same_component_is_new(self, store, alert_builder):
        store.create(alert_builder(days=3, current_stock=0), "acme")
        _, created = store.create(alert_builder(days=6, current_stock=3), "acme")

        assert created is True
        assert store.list("acme").total == 2

    def test_same_component_other_tenant_is_new(self, store, alert_builder):
        store.create(alert_builder(days=3, current_stock=0), "acme")
        _, created = store.create(alert_builder(days=3, current_stock=0), "globex")
        assert created is True

    def test_regenerated_after_resolution(self, store, alert_builder):
        first, _ = store.create(alert_builder(days=3, current_stock=0), "acme")
        store.resolve(first.id, ACME)

        second, created = store.create(alert_builder(days=3, current_stock=0), "acme")

        assert created is True
        assert second.id != first.id
        active = store.list("acme", AlertHistoryFilters(statuses=[AlertStatus.ACTIVE]))
        assert active.total == 1

    def test_lost_insert_race_returns_existing(self, store, alert_builder, monkeypatch):
        """A concurrent insert that wins the unique index makes ours a no-op."""
        winner, _ = store.create(alert_builder(days=3, current_stock=0), "acme")

        original = store._find_active
        calls = []

        def stale_first_lookup(session, company_id, alert):
            calls.append(alert.id)
            if len(calls) == 1:
                return None
            return original(session, company_id, alert)

        monkeypatch.setattr(store, "_find_active", stale_first_lookup)

        record, created = store.create(alert_builder(days=3, current_stock=0), "acme")

        assert created is False
        assert record.id == winner.id
        assert len(calls) == 2

    def test_create_many_counts_new_records(self, store, alert_builder):
        alerts = [
            alert_builder(component_id="a", days=3, current_stock=0),
            alert_builder(component_id="a", days=2, current_stock=0),
            alert_builder(component_id="b", days=3, current_stock=1),
        ]
        assert store.create_many(alerts, "acme") == 2

    def test_database_failure_is_wrapped(self, clock, alert_builder):
        broken = SqlAlchemyAlertHistoryStore(session_factory=_BrokenSession, clock=clock)

        with pytest.raises(PersistenceError) as exc_info:
            broken.create(alert_builder(days=3, current_stock=0), "acme")

        assert exc_info.value.operation == "create"


class _BrokenSession:
    """Session stand-in whose every statement fails like a dropped connection."""

    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    def rollback(self):
        pass

    def close(self):
        pass


# =============================================================
# TEST: Resolve / Dismiss
# =============================================================

class TestTransitions:
    """ACTIVE -> RESOLVED | DISMISSED."""

    @pytest.fixture
    def active(self, store, alert_builder):
        record, _ = store.create(alert_builder(days=3, current_stock=0), "acme")
        return record

    def test_resolve(self, store, active):
        record = store.resolve(active.id, ACME, linked_work_order_id="WO-42", notes="replaced")

        assert record.status == AlertStatus.RESOLVED.value
        assert record.resolved_by == "op-alice"
        assert record.resolved_at is not None
        assert record.linked_work_order_id == "WO-42"
        assert record.resolution_notes == "replaced"
        assert record.dismissed_by is None

    def test_resolve_without_work_order(self, store, active):
        record = store.resolve(active.id, ACME)

        assert record.status == AlertStatus.RESOLVED.value
        assert record.linked_work_order_id is None

    def test_dismiss(self, store, active):
        record = store.dismiss(active.id, ACME, "  sensor fault  ")

        assert record.status == AlertStatus.DISMISSED.value
        assert record.dismissed_by == "op-alice"
        assert record.dismiss_reason == "sensor fault"
        assert record.resolved_by is None

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_dismiss_requires_reason(self, store, active, reason):
        with pytest.raises(ValidationError):
            store.dismiss(active.id, ACME, reason)

        assert store.get_by_id(active.id, "acme").status == AlertStatus.ACTIVE.value

    def test_second_resolve_conflicts(self, store, active):
        store.resolve(active.id, ACME)

        with pytest.raises(ConflictError) as exc_info:
            store.resolve(active.id, ACME_BOB)

        assert exc_info.value.current_status == "RESOLVED"
        assert exc_info.value.changed_by == "op-alice"
        assert store.get_by_id(active.id, "acme").resolved_by == "op-alice"

    def test_dismiss_after_resolve_conflicts(self, store, active):
        store.resolve(active.id, ACME)

        with pytest.raises(ConflictError) as exc_info:
            store.dismiss(active.id, ACME_BOB, "duplicate")

        assert exc_info.value.current_status == "RESOLVED"
        assert store.get_by_id(active.id, "acme").dismiss_reason is None

    def test_resolve_after_dismiss_conflicts(self, store, active):
        store.dismiss(active.id, ACME, "false positive")

        with pytest.raises(ConflictError) as exc_info:
            store.resolve(active.id, ACME_BOB)

        assert exc_info.value.current_status == "DISMISSED"

    def test_foreign_tenant_looks_missing(self, store, active):
        with pytest.raises(NotFoundError) as foreign:
            store.resolve(active.id, GLOBEX)
        with pytest.raises(NotFoundError) as missing:
            store.resolve("00000000-0000-0000-0000-000000000000", GLOBEX)

        assert str(foreign.value).replace(active.id, "X") == str(missing.value).replace(
            "00000000-0000-0000-0000-000000000000", "X"
        )
        assert store.get_by_id(active.id, "acme").status == AlertStatus.ACTIVE.value

    def test_foreign_tenant_cannot_dismiss(self, store, active):
        with pytest.raises(NotFoundError):
            store.dismiss(active.id, GLOBEX, "not mine")

    def test_get_by_id_is_tenant_scoped(self, store, active):
        assert store.get_by_id(active.id, "acme").id == active.id
        with pytest.raises(NotFoundError):
            store.get_by_id(active.id, "globex")

    def test_concurrent_resolve_and_dismiss(self, file_session_factory, clock, alert_builder):
        """Exactly one of two simultaneous operators wins."""
        store = SqlAlchemyAlertHistoryStore(session_factory=file_session_factory, clock=clock)
        record, _ = store.create(alert_builder(days=3, current_stock=0), "acme")

        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def attempt(action):
            barrier.wait()
            try:
                action()
                result = "ok"
            except ConflictError as e:
                result = e.current_status
            with lock:
                outcomes.append(result)

        threads = [
            threading.Thread(target=attempt, args=(lambda: store.resolve(record.id, ACME),)),
            threading.Thread(target=attempt, args=(lambda: store.dismiss(record.id, ACME_BOB, "dup"),)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert outcomes.count("ok") == 1
        final = store.get_by_id(record.id, "acme")
        assert final.status in ("RESOLVED", "DISMISSED")
        assert (final.resolved_by is None) != (final.dismissed_by is None)


# =============================================================
# TEST: List / Filters
# =============================================================

class TestList:
    """Filtered, paginated, tenant-scoped listing."""

    @pytest.fixture
    def populated(self, store, alert_builder, clock):
        records = {}
        specs = [
            ("stockout-a", dict(days=3, current_stock=0, criticality=Criticality.A)),
            ("urgent-b", dict(days=3, current_stock=1, criticality=Criticality.B)),
            ("warning-none", dict(days=6, current_stock=3, criticality=None)),
            ("reorder-c", dict(days=9, current_stock=2, criticality=Criticality.C)),
        ]
        for component_id, kwargs in specs:
            records[component_id], _ = store.create(
                alert_builder(component_id=component_id, **kwargs), "acme"
            )
            clock.advance(minutes=5)
        store.create(alert_builder(component_id="other", days=3, current_stock=0), "globex")
        return records

    def test_list_is_tenant_scoped(self, store, populated):
        page = store.list("acme")

        assert page.total == 4
        assert {r.company_id for r in page.items} == {"acme"}

    def test_newest_first(self, store, populated):
        ids = [r.component_id for r in store.list("acme").items]
        assert ids == ["reorder-c", "warning-none", "urgent-b", "stockout-a"]

    def test_filter_by_severity(self, store, populated):
        page = store.list("acme", AlertHistoryFilters(severities=[AlertSeverity.CRITICAL]))
        assert {r.component_id for r in page.items} == {"stockout-a", "urgent-b"}

    def test_missing_criticality_filters_as_c(self, store, populated):
        page = store.list("acme", AlertHistoryFilters(criticalities=[Criticality.C]))
        assert {r.component_id for r in page.items} == {"warning-none", "reorder-c"}

    def test_filter_by_stock_status(self, store, populated):
        critical = store.list("acme", AlertHistoryFilters(stock_statuses=[StockStatus.CRITICAL]))
        low = store.list("acme", AlertHistoryFilters(stock_statuses=[StockStatus.LOW]))
        sufficient = store.list("acme", AlertHistoryFilters(stock_statuses=[StockStatus.SUFFICIENT]))

        assert [r.component_id for r in critical.items] == ["stockout-a"]
        assert {r.component_id for r in low.items} == {"urgent-b", "reorder-c"}
        assert [r.component_id for r in sufficient.items] == ["warning-none"]

    def test_filters_are_and_combined(self, store, populated):
        page = store.list(
            "acme",
            AlertHistoryFilters(
                severities=[AlertSeverity.CRITICAL, AlertSeverity.INFO],
                stock_statuses=[StockStatus.LOW],
            ),
        )
        assert {r.component_id for r in page.items} == {"urgent-b", "reorder-c"}

    def test_filter_by_type_and_component(self, store, populated):
        page = store.list(
            "acme",
            AlertHistoryFilters(alert_types=[AlertType.WARNING_MTBF], component_id="warning-none"),
        )
        assert page.total == 1

    def test_filter_by_days_range(self, store, populated):
        page = store.list(
            "acme",
            AlertHistoryFilters(min_days_until_maintenance=4, max_days_until_maintenance=8),
        )
        assert [r.component_id for r in page.items] == ["warning-none"]

    def test_filter_by_status(self, store, populated):
        store.resolve(populated["urgent-b"].id, ACME)

        resolved = store.list("acme", AlertHistoryFilters(statuses=[AlertStatus.RESOLVED]))
        active = store.list("acme", AlertHistoryFilters(statuses=[AlertStatus.ACTIVE]))

        assert [r.component_id for r in resolved.items] == ["urgent-b"]
        assert active.total == 3

    def test_filter_by_date_window(self, store, populated, clock):
        page = store.list("acme", AlertHistoryFilters(start_date=clock.now() - timedelta(minutes=12)))
        assert page.total == 2

    def test_date_window_with_offset_bounds(self, store, populated):
        # 14:07+02:00 is 12:07Z; records were generated at 12:00, 12:05, 12:10, 12:15 UTC
        start = datetime(2024, 6, 1, 14, 7, tzinfo=PLUS_TWO)
        end = datetime(2024, 6, 1, 14, 12, tzinfo=PLUS_TWO)

        assert store.list("acme", AlertHistoryFilters(start_date=start)).total == 2
        assert store.list("acme", AlertHistoryFilters(end_date=end)).total == 3
        assert store.list("acme", AlertHistoryFilters(start_date=start, end_date=end)).total == 1

    def test_analytics_window_with_offset_bounds(self, store, populated):
        start = datetime(2024, 6, 1, 14, 7, tzinfo=PLUS_TWO)
        assert store.analytics("acme", start_date=start).total_active == 2

    def test_pagination(self, store, populated):
        page = store.list("acme", pagination=Pagination(page=2, limit=3))

        assert page.total == 4
        assert page.total_pages == 2
        assert [r.component_id for r in page.items] == ["stockout-a"]

    def test_page_past_end_is_empty(self, store, populated):
        page = store.list("acme", pagination=Pagination(page=5, limit=3))
        assert page.items == []
        assert page.total == 4


# =============================================================
# TEST: Summary / Analytics / Trends
# =============================================================

class TestAggregates:
    """Read-side aggregates."""

    def test_summary_counts_active_only(self, store, alert_builder):
        stockout, _ = store.create(alert_builder(component_id="a", days=3, current_stock=0), "acme")
        store.create(alert_builder(component_id="b", days=6, current_stock=3), "acme")
        store.create(alert_builder(component_id="c", days=9, current_stock=3), "acme")
        store.create(alert_builder(component_id="d", days=3, current_stock=0), "globex")
        store.dismiss(stockout.id, ACME, "already ordered")

        summary = store.summary("acme")

        assert summary.total == 2
        assert summary.critical == 0
        assert summary.warning == 1
        assert summary.info == 1
        assert summary.by_type[AlertType.STOCK_OUT_CRITICAL] == 0

    def test_analytics(self, store, alert_builder):
        first, _ = store.create(alert_builder(component_id="pump", days=3, current_stock=0), "acme")
        store.create(alert_builder(component_id="pump", days=6, current_stock=3), "acme")
        store.create(alert_builder(component_id="fan", days=3, current_stock=1, criticality=None), "acme")
        resolved, _ = store.create(alert_builder(component_id="belt", days=9, current_stock=3), "acme")
        store.resolve(resolved.id, ACME)

        analytics = store.analytics("acme")

        assert analytics.total_active == 3
        assert analytics.by_severity[AlertSeverity.CRITICAL] == 2
        assert analytics.by_severity[AlertSeverity.WARNING] == 1
        assert analytics.by_criticality[Criticality.A] == 2
        assert analytics.by_criticality[Criticality.C] == 1
        assert analytics.by_status[AlertStatus.ACTIVE] == 3
        assert analytics.by_status[AlertStatus.RESOLVED] == 1
        assert analytics.top_components[0].component_id == "pump"
        assert analytics.top_components[0].count == 2
        assert analytics.to_dict()["by_status"]["RESOLVED"] == 1

    def test_analytics_empty_tenant(self, store):
        analytics = store.analytics("nobody")

        assert analytics.total_active == 0
        assert analytics.top_components == []

    def test_trends(self, store, alert_builder, clock):
        clock.advance(days=-2)
        store.create(alert_builder(component_id="old", days=3, current_stock=0), "acme")
        clock.advance(days=2)
        store.create(alert_builder(component_id="a", days=3, current_stock=0), "acme")
        store.create(alert_builder(component_id="b", days=6, current_stock=3), "acme")

        points = store.trends("acme", days=3)

        assert [p.day for p in points] == [date(2024, 5, 30), date(2024, 5, 31), date(2024, 6, 1)]
        assert points[0].critical == 1
        assert points[1].total == 0
        assert points[2].critical == 1
        assert points[2].warning == 1

    def test_trends_excludes_older_days(self, store, alert_builder, clock):
        clock.advance(days=-10)
        store.create(alert_builder(component_id="old", days=3, current_stock=0), "acme")
        clock.advance(days=10)

        assert sum(p.total for p in store.trends("acme", days=3)) == 0

    def test_trends_rejects_non_positive_window(self, store):
        with pytest.raises(ValidationError):
            store.trends("acme", days=0)
