"""
Maintenance Alert Engine - Spare-Part Stock Calculator.

Derives recommended stock levels for a component's spare part
from its MTBF, the supplier lead time and the component's
criticality. Advisory only: the classifier reads the configured
minimum stock and reorder point, never these recommendations.

    monthly consumption = ceil(720 / mtbf)        (1 when mtbf unknown)
    lead time buffer    = max(1, ceil(lead / 30))
    minimum stock       = ceil(factor * monthly * buffer)
    safety stock        = ceil(minimum * 1.5)
    reorder point       = ceil(monthly * lead / 30) + safety
    order quantity      = reorder point + minimum

Criticality factor: A=3, B=2, C=1.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .types import Criticality


HOURS_PER_MONTH = 720          # 30 days * 24h
DAYS_PER_MONTH = 30
SAFETY_STOCK_MULTIPLIER = 1.5
CRITICAL_STOCK_RATIO = 0.25    # below 25% of minimum = CRITICAL

CRITICALITY_FACTORS: Dict[Criticality, int] = {
    Criticality.A: 3,
    Criticality.B: 2,
    Criticality.C: 1,
}


class InventoryHealth(str, Enum):
    """Stock level relative to the minimum."""

    OUT_OF_STOCK = "OUT_OF_STOCK"
    CRITICAL = "CRITICAL"
    LOW = "LOW"
    HEALTHY = "HEALTHY"


@dataclass(frozen=True)
class StockRecommendation:
    """Recommended stock levels for one spare part."""

    minimum_stock: int
    safety_stock: int
    reorder_point: int
    recommended_order_quantity: int
    monthly_consumption: int
    criticality_factor: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minimum_stock": self.minimum_stock,
            "safety_stock": self.safety_stock,
            "reorder_point": self.reorder_point,
            "recommended_order_quantity": self.recommended_order_quantity,
            "monthly_consumption": self.monthly_consumption,
            "criticality_factor": self.criticality_factor,
        }


def calculate_minimum_stock(
    mtbf: Optional[float],
    lead_time_days: float,
    criticality: Optional[Criticality] = None,
) -> StockRecommendation:
    """Compute recommended stock levels for a spare part."""
    factor = CRITICALITY_FACTORS[criticality or Criticality.C]

    if mtbf is not None and mtbf > 0:
        monthly = math.ceil(HOURS_PER_MONTH / mtbf)
    else:
        monthly = 1

    lead_time_buffer = max(1, math.ceil(lead_time_days / DAYS_PER_MONTH))
    minimum = math.ceil(factor * monthly * lead_time_buffer)
    safety = math.ceil(minimum * SAFETY_STOCK_MULTIPLIER)
    reorder_point = math.ceil(monthly * lead_time_days / DAYS_PER_MONTH) + safety

    return StockRecommendation(
        minimum_stock=minimum,
        safety_stock=safety,
        reorder_point=reorder_point,
        recommended_order_quantity=reorder_point + minimum,
        monthly_consumption=monthly,
        criticality_factor=factor,
    )


def get_stock_status(current_stock: int, minimum_stock: int) -> InventoryHealth:
    if current_stock == 0:
        return InventoryHealth.OUT_OF_STOCK
    if current_stock < minimum_stock * CRITICAL_STOCK_RATIO:
        return InventoryHealth.CRITICAL
    if current_stock < minimum_stock:
        return InventoryHealth.LOW
    return InventoryHealth.HEALTHY
