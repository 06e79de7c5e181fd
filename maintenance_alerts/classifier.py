"""
Maintenance Alert Engine - Severity Classifier.

============================================================
PURPOSE
============================================================
Decides whether one component warrants an alert and at which
tier. Pure and side-effect free apart from debug logging.

============================================================
ALGORITHM (first match wins)
============================================================
    hours = mtbf - current_operating_hours
    days  = hours / 24

    days > lead * 2.0                        -> no alert
    stock == 0        and days <= lead       -> STOCK_OUT_CRITICAL (CRITICAL)
    stock <  minimum  and days <= lead       -> URGENT_MTBF        (CRITICAL)
    stock <= reorder  and days <= lead * 1.5 -> WARNING_MTBF       (WARNING)
    stock <= reorder  and days <= lead * 2.0 -> REORDER_RECOMMENDED (INFO)
    otherwise                                -> no alert

A missing or non-positive MTBF is "no alert", never an error.

============================================================
"""

import logging
from typing import Optional, Tuple

from .config import AlertPolicyConfig
from .types import (
    AlertDecision,
    AlertSeverity,
    AlertType,
    ComponentSnapshot,
)


logger = logging.getLogger(__name__)


class SeverityClassifier:
    """
    Tier classifier for a single component snapshot.

    The multipliers come from AlertPolicyConfig so the same
    classifier can be exercised against different policies.
    """

    def __init__(self, policy: Optional[AlertPolicyConfig] = None):
        self._policy = policy or AlertPolicyConfig()

    @property
    def policy(self) -> AlertPolicyConfig:
        return self._policy

    def classify(self, snapshot: ComponentSnapshot) -> Optional[AlertDecision]:
        """
        Classify one snapshot.

        Returns:
            AlertDecision for the first matching tier, or None
        """
        reliability = snapshot.reliability
        inventory = snapshot.inventory

        if not reliability.has_mtbf:
            logger.debug(f"No alert for {reliability.component_id}: no_mtbf")
            return None

        hours = reliability.mtbf - reliability.current_operating_hours
        days = hours / 24

        matched = self._match_tier(
            days=days,
            stock=inventory.current_stock,
            minimum=inventory.minimum_stock,
            reorder_point=inventory.reorder_point,
            lead=inventory.lead_time_days,
        )
        if matched is None:
            return None

        alert_type, severity = matched
        return AlertDecision(
            alert_type=alert_type,
            severity=severity,
            priority=self._policy.priority_for(alert_type, reliability.criticality),
            hours_until_maintenance=hours,
            days_until_maintenance=days,
        )

    def _match_tier(
        self,
        days: float,
        stock: int,
        minimum: int,
        reorder_point: int,
        lead: float,
    ) -> Optional[Tuple[AlertType, AlertSeverity]]:
        horizon = lead * self._policy.horizon_lead_time_multiplier
        warning_window = lead * self._policy.warning_lead_time_multiplier

        if days > horizon:
            logger.debug(f"No alert: too_far_out ({days:.1f}d > {horizon:.1f}d)")
            return None

        if stock == 0 and days <= lead:
            return AlertType.STOCK_OUT_CRITICAL, AlertSeverity.CRITICAL

        if stock < minimum and days <= lead:
            return AlertType.URGENT_MTBF, AlertSeverity.CRITICAL

        if stock <= reorder_point and days <= warning_window:
            return AlertType.WARNING_MTBF, AlertSeverity.WARNING

        if stock <= reorder_point and days <= horizon:
            return AlertType.REORDER_RECOMMENDED, AlertSeverity.INFO

        logger.debug(f"No alert: below_threshold (stock={stock}, reorder_point={reorder_point})")
        return None


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def classify(
    snapshot: ComponentSnapshot,
    policy: Optional[AlertPolicyConfig] = None,
) -> Optional[AlertDecision]:
    """Classify a snapshot with the given (or default) policy."""
    return SeverityClassifier(policy).classify(snapshot)
