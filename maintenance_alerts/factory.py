"""
Maintenance Alert Engine - Alert Factory.

Wraps a classifier decision and its originating snapshot into an
immutable MaintenanceAlert: unique id, generation/expiry stamps,
and tier-specific message/recommendation text.
"""

import math
from dataclasses import replace
from datetime import timedelta
from typing import Dict, Optional
from uuid import uuid4

from core.clock import ClockProtocol, SystemClock

from .classifier import SeverityClassifier
from .config import AlertPolicyConfig
from .types import AlertDecision, AlertType, ComponentSnapshot, MaintenanceAlert


# ============================================================
# TEMPLATES
# ============================================================

MESSAGE_TEMPLATES: Dict[AlertType, str] = {
    AlertType.STOCK_OUT_CRITICAL: (
        "{component_name} is due for maintenance in {days_until_maintenance} days "
        "and there is no spare part in stock"
    ),
    AlertType.URGENT_MTBF: (
        "{component_name} is due for maintenance in {days_until_maintenance} days "
        "with stock below minimum ({current_stock}/{minimum_stock})"
    ),
    AlertType.WARNING_MTBF: (
        "{component_name} is due for maintenance in {days_until_maintenance} days; "
        "stock at or below reorder point ({current_stock}/{reorder_point})"
    ),
    AlertType.REORDER_RECOMMENDED: (
        "{component_name} will need maintenance in {days_until_maintenance} days; "
        "plan replenishment ({current_stock} in stock)"
    ),
}

RECOMMENDATION_TEMPLATES: Dict[AlertType, str] = {
    AlertType.STOCK_OUT_CRITICAL: (
        "Order immediately. Supplier lead time is {lead_time_days} days; "
        "consider an expedited purchase or an alternative supplier"
    ),
    AlertType.URGENT_MTBF: (
        "Order at least {minimum_stock} units now. Supplier lead time is {lead_time_days} days"
    ),
    AlertType.WARNING_MTBF: (
        "Place a replenishment order within the next few days. "
        "Supplier lead time is {lead_time_days} days"
    ),
    AlertType.REORDER_RECOMMENDED: (
        "Include this part in the next purchase cycle. "
        "Supplier lead time is {lead_time_days} days"
    ),
}


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ============================================================
# FACTORY
# ============================================================


class AlertFactory:
    """
    Builds immutable alerts.

    Construction is pure apart from reading the injected clock
    and generating a uuid.
    """

    def __init__(
        self,
        policy: Optional[AlertPolicyConfig] = None,
        clock: Optional[ClockProtocol] = None,
        classifier: Optional[SeverityClassifier] = None,
    ):
        self._policy = policy or AlertPolicyConfig()
        self._clock = clock or SystemClock()
        self._classifier = classifier or SeverityClassifier(self._policy)

    def create(self, decision: AlertDecision, snapshot: ComponentSnapshot) -> MaintenanceAlert:
        """Wrap a non-null decision into an alert."""
        reliability = snapshot.reliability
        inventory = snapshot.inventory
        generated_at = self._clock.now()

        alert = MaintenanceAlert(
            id=str(uuid4()),
            alert_type=decision.alert_type,
            severity=decision.severity,
            priority=decision.priority,
            component_id=reliability.component_id,
            component_name=reliability.component_name,
            part_number=reliability.part_number,
            criticality=reliability.criticality,
            mtbf=reliability.mtbf,
            current_operating_hours=reliability.current_operating_hours,
            inventory_item_id=inventory.inventory_item_id,
            current_stock=inventory.current_stock,
            minimum_stock=inventory.minimum_stock,
            reorder_point=inventory.reorder_point,
            lead_time_days=inventory.lead_time_days,
            hours_until_maintenance=decision.hours_until_maintenance,
            days_until_maintenance=math.ceil(decision.days_until_maintenance),
            generated_at=generated_at,
            expires_at=generated_at + timedelta(days=self._policy.alert_ttl_days),
        )

        fields = {k: _format_number(v) for k, v in alert.message_fields.items()}
        return replace(
            alert,
            message=MESSAGE_TEMPLATES[decision.alert_type].format(**fields),
            recommendation=RECOMMENDATION_TEMPLATES[decision.alert_type].format(**fields),
        )

    def build(self, snapshot: ComponentSnapshot) -> Optional[MaintenanceAlert]:
        """Classify and wrap in one step; None when no tier fires."""
        decision = self._classifier.classify(snapshot)
        if decision is None:
            return None
        return self.create(decision, snapshot)
