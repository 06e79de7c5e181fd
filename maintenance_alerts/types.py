"""
Maintenance Alert Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Predictive Maintenance Alert Engine.

Inputs are per-component snapshots (reliability + inventory
position) supplied by the surrounding system. Outputs are
immutable alerts, batch summaries, and the filter/pagination
values used by the lifecycle store.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable where possible
- Closed enums for type, severity, status, criticality
- Clear separation between input and output types

============================================================
TIERS
============================================================
Four escalating tiers, most urgent first:

1. STOCK_OUT_CRITICAL  - no stock, maintenance inside lead time
2. URGENT_MTBF         - below minimum stock inside lead time
3. WARNING_MTBF        - at/below reorder point inside 1.5x lead time
4. REORDER_RECOMMENDED - at/below reorder point inside 2x lead time

============================================================
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import MalformedSnapshotError


# ============================================================
# ENUMS
# ============================================================


class AlertType(str, Enum):
    """The four alert tiers, in escalation order."""

    STOCK_OUT_CRITICAL = "STOCK_OUT_CRITICAL"
    URGENT_MTBF = "URGENT_MTBF"
    WARNING_MTBF = "WARNING_MTBF"
    REORDER_RECOMMENDED = "REORDER_RECOMMENDED"

    @classmethod
    def all_types(cls) -> List["AlertType"]:
        """Return all tiers, most urgent first."""
        return [
            cls.STOCK_OUT_CRITICAL,
            cls.URGENT_MTBF,
            cls.WARNING_MTBF,
            cls.REORDER_RECOMMENDED,
        ]


class AlertSeverity(str, Enum):
    """Severity attached to each tier."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"


class AlertStatus(str, Enum):
    """
    Lifecycle status of a persisted alert.

    ACTIVE is the initial state. RESOLVED and DISMISSED are
    terminal: a record never leaves them.
    """

    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"

    @property
    def is_terminal(self) -> bool:
        return self is not AlertStatus.ACTIVE


class Criticality(str, Enum):
    """
    ISO-14224-style component importance.

    - A: critical
    - B: important
    - C: minor
    """

    A = "A"
    B = "B"
    C = "C"

    @property
    def rank(self) -> int:
        """Priority base: A=1, B=2, C=3."""
        return {Criticality.A: 1, Criticality.B: 2, Criticality.C: 3}[self]

    @classmethod
    def parse(cls, value: Any) -> Optional["Criticality"]:
        """Parse a raw criticality value, None when absent."""
        if value is None or value == "":
            return None
        if isinstance(value, Criticality):
            return value
        return cls(str(value).strip().upper())


class StockStatus(str, Enum):
    """Stock level relative to the reorder point (list filter)."""

    CRITICAL = "CRITICAL"      # current stock is zero
    LOW = "LOW"                # below reorder point
    SUFFICIENT = "SUFFICIENT"

    @classmethod
    def derive(cls, current_stock: int, reorder_point: int) -> "StockStatus":
        if current_stock == 0:
            return cls.CRITICAL
        if current_stock < reorder_point:
            return cls.LOW
        return cls.SUFFICIENT


# ============================================================
# INPUT TYPES
# ============================================================


@dataclass(frozen=True)
class ReliabilitySnapshot:
    """Reliability data for one monitored component."""

    component_id: str
    component_name: str
    current_operating_hours: float = 0.0
    mtbf: Optional[float] = None
    criticality: Optional[Criticality] = None
    part_number: Optional[str] = None

    @property
    def has_mtbf(self) -> bool:
        return self.mtbf is not None and self.mtbf > 0


@dataclass(frozen=True)
class InventoryPosition:
    """Spare-part inventory position backing one component."""

    inventory_item_id: str
    current_stock: int = 0
    minimum_stock: int = 0
    reorder_point: int = 0
    lead_time_days: float = 7

    @property
    def stock_status(self) -> StockStatus:
        return StockStatus.derive(self.current_stock, self.reorder_point)


@dataclass(frozen=True)
class ComponentSnapshot:
    """
    Complete input for one component: reliability + inventory.

    Produced by a SnapshotProvider, consumed by the classifier.
    """

    reliability: ReliabilitySnapshot
    inventory: InventoryPosition

    @property
    def component_id(self) -> str:
        return self.reliability.component_id

    def validate(self) -> None:
        """
        Reject snapshots the classifier cannot reason about.

        A missing or non-positive MTBF is NOT malformed; it simply
        produces no alert.

        Raises:
            MalformedSnapshotError: On structurally invalid input
        """
        component_id = self.reliability.component_id
        if not component_id:
            raise MalformedSnapshotError(component_id, "component_id is required")

        for name, value in (
            ("current_operating_hours", self.reliability.current_operating_hours),
            ("current_stock", self.inventory.current_stock),
            ("minimum_stock", self.inventory.minimum_stock),
            ("reorder_point", self.inventory.reorder_point),
            ("lead_time_days", self.inventory.lead_time_days),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise MalformedSnapshotError(component_id, f"{name} must be numeric, got {value!r}")
            if isinstance(value, float) and math.isnan(value):
                raise MalformedSnapshotError(component_id, f"{name} is NaN")

        if self.reliability.mtbf is not None and not isinstance(self.reliability.mtbf, (int, float)):
            raise MalformedSnapshotError(component_id, f"mtbf must be numeric, got {self.reliability.mtbf!r}")
        if self.inventory.current_stock < 0:
            raise MalformedSnapshotError(component_id, "current_stock cannot be negative")
        if self.inventory.lead_time_days < 0:
            raise MalformedSnapshotError(component_id, "lead_time_days cannot be negative")


# ============================================================
# OUTPUT TYPES
# ============================================================


@dataclass(frozen=True)
class AlertDecision:
    """
    Classifier output: which tier fired and at what priority.

    days_until_maintenance is the raw (unrounded) value used for
    threshold comparisons.
    """

    alert_type: AlertType
    severity: AlertSeverity
    priority: int
    hours_until_maintenance: float
    days_until_maintenance: float


@dataclass(frozen=True)
class MaintenanceAlert:
    """
    Immutable alert produced by the AlertFactory.

    Carries a copy of every reliability/inventory field at
    generation time so it can be persisted without re-reading
    the snapshot.
    """

    id: str
    alert_type: AlertType
    severity: AlertSeverity
    priority: int

    # Reliability copy
    component_id: str
    component_name: str
    part_number: Optional[str]
    criticality: Optional[Criticality]
    mtbf: float
    current_operating_hours: float

    # Inventory copy
    inventory_item_id: str
    current_stock: int
    minimum_stock: int
    reorder_point: int
    lead_time_days: float

    # Timing
    hours_until_maintenance: float
    days_until_maintenance: int
    generated_at: datetime
    expires_at: datetime

    # Presentation
    message: str = ""
    recommendation: str = ""

    @property
    def message_fields(self) -> Dict[str, Any]:
        """Data carried by the message/recommendation templates."""
        return {
            "component_name": self.component_name,
            "days_until_maintenance": self.days_until_maintenance,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "reorder_point": self.reorder_point,
            "lead_time_days": self.lead_time_days,
        }

    @property
    def stock_status(self) -> StockStatus:
        return StockStatus.derive(self.current_stock, self.reorder_point)

    def needs_immediate_action(self) -> bool:
        """CRITICAL alert with maintenance due inside the lead time."""
        return (
            self.severity == AlertSeverity.CRITICAL
            and self.days_until_maintenance <= self.lead_time_days
        )

    def is_stale_at(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "alert_type": self.alert_type.value,
            "severity": self.severity.value,
            "priority": self.priority,
            "component_id": self.component_id,
            "component_name": self.component_name,
            "part_number": self.part_number,
            "criticality": self.criticality.value if self.criticality else None,
            "mtbf": self.mtbf,
            "current_operating_hours": self.current_operating_hours,
            "inventory_item_id": self.inventory_item_id,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "reorder_point": self.reorder_point,
            "lead_time_days": self.lead_time_days,
            "hours_until_maintenance": self.hours_until_maintenance,
            "days_until_maintenance": self.days_until_maintenance,
            "message": self.message,
            "recommendation": self.recommendation,
            "generated_at": self.generated_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


@dataclass(frozen=True)
class AlertSummary:
    """Counts by severity and by type for a set of alerts."""

    total: int = 0
    critical: int = 0
    warning: int = 0
    info: int = 0
    by_type: Dict[AlertType, int] = field(
        default_factory=lambda: {t: 0 for t in AlertType.all_types()}
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "critical": self.critical,
            "warning": self.warning,
            "info": self.info,
            "by_type": {t.value: count for t, count in self.by_type.items()},
        }


# ============================================================
# CALLER CONTEXT
# ============================================================


@dataclass(frozen=True)
class TenantContext:
    """
    Authenticated, tenant-scoped caller identity.

    Authentication and role checks happen upstream; the store only
    trusts these two values.
    """

    company_id: str
    operator_id: str


# ============================================================
# QUERY TYPES
# ============================================================


@dataclass(frozen=True)
class AlertHistoryFilters:
    """
    Filters for listing persisted alerts.

    Empty collections and None mean "no constraint". All filters
    are AND-combined; multi-valued filters match any listed value.
    """

    severities: List[AlertSeverity] = field(default_factory=list)
    criticalities: List[Criticality] = field(default_factory=list)
    stock_statuses: List[StockStatus] = field(default_factory=list)
    alert_types: List[AlertType] = field(default_factory=list)
    statuses: List[AlertStatus] = field(default_factory=list)
    component_id: Optional[str] = None
    min_days_until_maintenance: Optional[int] = None
    max_days_until_maintenance: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


@dataclass(frozen=True)
class Pagination:
    """1-based page number and page size."""

    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if not 1 <= self.limit <= 100:
            raise ValueError(f"limit must be between 1 and 100, got {self.limit}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class AlertPage:
    """One page of persisted alert records."""

    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


# ============================================================
# ANALYTICS TYPES
# ============================================================


@dataclass(frozen=True)
class ComponentAlertCount:
    """Alert count for one component (analytics ranking)."""

    component_id: str
    component_name: str
    count: int


@dataclass(frozen=True)
class AlertAnalytics:
    """
    Aggregate view of a tenant's alert history.

    by_severity, by_criticality and top_components count ACTIVE
    alerts; by_status counts every record in the window.
    """

    total_active: int
    by_severity: Dict[AlertSeverity, int]
    by_criticality: Dict[Criticality, int]
    by_status: Dict[AlertStatus, int]
    top_components: List[ComponentAlertCount]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_active": self.total_active,
            "by_severity": {k.value: v for k, v in self.by_severity.items()},
            "by_criticality": {k.value: v for k, v in self.by_criticality.items()},
            "by_status": {k.value: v for k, v in self.by_status.items()},
            "top_components": [
                {"component_id": c.component_id, "component_name": c.component_name, "count": c.count}
                for c in self.top_components
            ],
        }


@dataclass(frozen=True)
class TrendPoint:
    """Alerts generated on one calendar day (UTC)."""

    day: date
    critical: int = 0
    warning: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.warning + self.info
