"""
Maintenance Alert Engine - Persistence Models.

============================================================
PURPOSE
============================================================
ORM model for the alert history table.

Each row is one generated alert plus its lifecycle:

    ACTIVE --resolve--> RESOLVED   (terminal)
    ACTIVE --dismiss--> DISMISSED  (terminal)

============================================================
INVARIANTS
============================================================
- At most one ACTIVE row per (company_id, component_id, alert_type),
  enforced by a partial unique index.
- Rows are written only by the lifecycle store.

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base

from .types import AlertStatus, MaintenanceAlert


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MaintenanceAlertRecord(Base):
    """Persisted alert history record."""

    __tablename__ = "maintenance_alert_history"

    # Primary key (uuid4 string, portable across PostgreSQL and SQLite)
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    company_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Owning tenant",
    )

    # Classification
    alert_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="STOCK_OUT_CRITICAL, URGENT_MTBF, WARNING_MTBF, REORDER_RECOMMENDED",
    )
    severity: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="CRITICAL, WARNING, INFO",
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False)

    # Reliability copy
    component_id: Mapped[str] = mapped_column(String(64), nullable=False)
    component_name: Mapped[str] = mapped_column(String(255), nullable=False)
    part_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    criticality: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)
    mtbf: Mapped[float] = mapped_column(Float, nullable=False, comment="Hours")
    current_operating_hours: Mapped[float] = mapped_column(Float, nullable=False)

    # Inventory copy
    inventory_item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    minimum_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False)
    lead_time_days: Mapped[float] = mapped_column(Float, nullable=False)

    # Timing
    hours_until_maintenance: Mapped[float] = mapped_column(Float, nullable=False)
    days_until_maintenance: Mapped[int] = mapped_column(Integer, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recommendation: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=AlertStatus.ACTIVE.value,
        comment="ACTIVE, RESOLVED, DISMISSED",
    )

    resolved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    linked_work_order_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    dismissed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    dismiss_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Audit fields
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index(
            "uq_alert_history_active_component_type",
            "company_id",
            "component_id",
            "alert_type",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_alert_history_company_status", "company_id", "status"),
        Index("ix_alert_history_company_generated", "company_id", "generated_at"),
        Index("ix_alert_history_severity", "severity"),
    )

    @classmethod
    def from_alert(cls, alert: MaintenanceAlert, company_id: str) -> "MaintenanceAlertRecord":
        """New ACTIVE record copied from a generated alert."""
        return cls(
            id=alert.id,
            company_id=company_id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            priority=alert.priority,
            component_id=alert.component_id,
            component_name=alert.component_name,
            part_number=alert.part_number,
            criticality=alert.criticality.value if alert.criticality else None,
            mtbf=alert.mtbf,
            current_operating_hours=alert.current_operating_hours,
            inventory_item_id=alert.inventory_item_id,
            current_stock=alert.current_stock,
            minimum_stock=alert.minimum_stock,
            reorder_point=alert.reorder_point,
            lead_time_days=alert.lead_time_days,
            hours_until_maintenance=alert.hours_until_maintenance,
            days_until_maintenance=alert.days_until_maintenance,
            generated_at=alert.generated_at,
            expires_at=alert.expires_at,
            message=alert.message,
            recommendation=alert.recommendation,
            status=AlertStatus.ACTIVE.value,
        )

    def is_stale_at(self, now: datetime) -> bool:
        """ACTIVE record past its expiry; display logic treats it as stale."""
        if self.status != AlertStatus.ACTIVE.value:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "alert_type": self.alert_type,
            "severity": self.severity,
            "priority": self.priority,
            "component_id": self.component_id,
            "component_name": self.component_name,
            "criticality": self.criticality,
            "current_stock": self.current_stock,
            "reorder_point": self.reorder_point,
            "days_until_maintenance": self.days_until_maintenance,
            "status": self.status,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"MaintenanceAlertRecord("
            f"id={self.id}, "
            f"company={self.company_id}, "
            f"component={self.component_id}, "
            f"type={self.alert_type}, "
            f"status={self.status})"
        )
