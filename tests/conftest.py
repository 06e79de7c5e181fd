"""
Shared fixtures for the maintenance alert engine tests.
"""

from datetime import datetime, timezone

import pytest

from core.clock import MockClock
from database.engine import Base, create_database_engine, create_session_factory
from maintenance_alerts import models  # noqa: F401  (registers the table)
from maintenance_alerts.factory import AlertFactory
from maintenance_alerts.repository import SqlAlchemyAlertHistoryStore
from maintenance_alerts.types import (
    ComponentSnapshot,
    Criticality,
    InventoryPosition,
    ReliabilitySnapshot,
)


START_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_snapshot(
    component_id="cmp-1",
    component_name="Feed pump bearing",
    days=3.0,
    mtbf=2000.0,
    criticality=Criticality.A,
    current_stock=0,
    minimum_stock=2,
    reorder_point=3,
    lead_time_days=5,
    part_number="6204-2RS",
    operating_hours=None,
):
    """Snapshot whose maintenance falls `days` days out (unless operating_hours is given)."""
    if operating_hours is None:
        operating_hours = (mtbf or 0) - days * 24
    return ComponentSnapshot(
        reliability=ReliabilitySnapshot(
            component_id=component_id,
            component_name=component_name,
            current_operating_hours=operating_hours,
            mtbf=mtbf,
            criticality=criticality,
            part_number=part_number,
        ),
        inventory=InventoryPosition(
            inventory_item_id=f"inv-{component_id}",
            current_stock=current_stock,
            minimum_stock=minimum_stock,
            reorder_point=reorder_point,
            lead_time_days=lead_time_days,
        ),
    )


@pytest.fixture
def snapshot_builder():
    return make_snapshot


@pytest.fixture
def clock():
    return MockClock(START_TIME)


@pytest.fixture
def factory(clock):
    return AlertFactory(clock=clock)


@pytest.fixture
def alert_builder(factory):
    """Build a MaintenanceAlert from snapshot keyword arguments."""

    def _build(**kwargs):
        alert = factory.build(make_snapshot(**kwargs))
        assert alert is not None, f"snapshot {kwargs} produced no alert"
        return alert

    return _build


@pytest.fixture
def session_factory():
    engine = create_database_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """SQLite on disk, so concurrent threads get separate connections."""
    engine = create_database_engine(f"sqlite:///{tmp_path / 'alerts.db'}")
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory, clock):
    return SqlAlchemyAlertHistoryStore(session_factory=session_factory, clock=clock)
