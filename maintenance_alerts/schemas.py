"""
Pydantic Schemas for the Maintenance Alert API.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .types import AlertAnalytics, AlertSummary, TrendPoint


# =============================================================
# REQUESTS
# =============================================================

class ResolveAlertRequest(BaseModel):
    """Resolve an ACTIVE alert, optionally linking a work order."""
    linked_work_order_id: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None


class DismissAlertRequest(BaseModel):
    """Dismiss an ACTIVE alert. The store rejects blank reasons."""
    reason: str = ""


# =============================================================
# RESPONSES
# =============================================================

class AlertRecordResponse(BaseModel):
    """Schema for a persisted alert."""
    id: str
    company_id: str
    alert_type: str
    severity: str
    priority: int
    status: str

    # Component
    component_id: str
    component_name: str
    part_number: Optional[str] = None
    criticality: Optional[str] = None
    mtbf: float
    current_operating_hours: float

    # Inventory
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
    is_stale: bool = False

    message: str
    recommendation: str

    # Lifecycle
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    linked_work_order_id: Optional[str] = None
    resolution_notes: Optional[str] = None
    dismissed_by: Optional[str] = None
    dismissed_at: Optional[datetime] = None
    dismiss_reason: Optional[str] = None

    class Config:
        from_attributes = True


class AlertSummaryResponse(BaseModel):
    """Counts over ACTIVE alerts."""
    total: int
    critical: int
    warning: int
    info: int
    by_type: Dict[str, int]

    @classmethod
    def from_summary(cls, summary: AlertSummary) -> "AlertSummaryResponse":
        return cls(**summary.to_dict())


class AlertListResponse(BaseModel):
    """One page of alerts."""
    items: List[AlertRecordResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ComponentAlertCountResponse(BaseModel):
    component_id: str
    component_name: str
    count: int


class AlertAnalyticsResponse(BaseModel):
    """Breakdown of a tenant's alerts over a date window."""
    total_active: int
    by_severity: Dict[str, int]
    by_criticality: Dict[str, int]
    by_status: Dict[str, int]
    top_components: List[ComponentAlertCountResponse]

    @classmethod
    def from_analytics(cls, analytics: AlertAnalytics) -> "AlertAnalyticsResponse":
        return cls(**analytics.to_dict())


class TrendPointResponse(BaseModel):
    day: date
    critical: int
    warning: int
    info: int
    total: int

    @classmethod
    def from_point(cls, point: TrendPoint) -> "TrendPointResponse":
        return cls(
            day=point.day,
            critical=point.critical,
            warning=point.warning,
            info=point.info,
            total=point.total,
        )
