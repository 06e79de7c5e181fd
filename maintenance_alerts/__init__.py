"""
Predictive Maintenance Alert Engine - Package.

============================================================
PURPOSE
============================================================
Turns a component's reliability statistic (MTBF), its operating
hours and its spare-part inventory position into prioritized,
deduplicated, time-bounded alerts, and governs how those alerts
are persisted, surfaced and retired.

============================================================
WHAT IT IS
============================================================
- Deterministic, threshold-based tier classification
- Tenant-scoped alert lifecycle: ACTIVE -> RESOLVED | DISMISSED
- Periodic per-tenant batch job with timeouts
- Read-only query API plus resolve/dismiss mutations

============================================================
WHAT IT IS NOT
============================================================
- NOT an alert delivery channel (no push/email/websocket)
- NOT an MTBF estimator (MTBF is an input)
- NOT a work-order system (it only links a work-order id)

============================================================
TIERS
============================================================
1. STOCK_OUT_CRITICAL  (CRITICAL)  priority = rank
2. URGENT_MTBF         (CRITICAL)  priority = rank
3. WARNING_MTBF        (WARNING)   priority = rank + 1
4. REORDER_RECOMMENDED (INFO)      priority = rank + 2

rank: criticality A=1, B=2, C=3 (missing = C)

============================================================
USAGE
============================================================
    from maintenance_alerts import (
        BatchEvaluator,
        ComponentSnapshot,
        Criticality,
        InventoryPosition,
        ReliabilitySnapshot,
        summarize,
    )

    snapshot = ComponentSnapshot(
        reliability=ReliabilitySnapshot(
            component_id="cmp-1",
            component_name="Feed pump bearing",
            criticality=Criticality.A,
            mtbf=2000,
            current_operating_hours=1928,
        ),
        inventory=InventoryPosition(
            inventory_item_id="inv-1",
            current_stock=0,
            minimum_stock=2,
            reorder_point=3,
            lead_time_days=5,
        ),
    )

    alerts = BatchEvaluator().evaluate_all([snapshot], company_id="acme")
    print(summarize(alerts).to_dict())

============================================================
"""

__version__ = "1.0.0"

# Types
from .types import (
    # Enums
    AlertType,
    AlertSeverity,
    AlertStatus,
    Criticality,
    StockStatus,

    # Input types
    ReliabilitySnapshot,
    InventoryPosition,
    ComponentSnapshot,
    TenantContext,

    # Output types
    AlertDecision,
    MaintenanceAlert,
    AlertSummary,
    AlertAnalytics,
    ComponentAlertCount,
    TrendPoint,

    # Query types
    AlertHistoryFilters,
    Pagination,
    AlertPage,
)

# Exceptions
from .exceptions import (
    AlertEngineError,
    ValidationError,
    NotFoundError,
    ConflictError,
    MalformedSnapshotError,
    PersistenceError,
    SnapshotProviderError,
)

# Configuration
from .config import (
    AlertPolicyConfig,
    SchedulerConfig,
    AlertEngineConfig,
    get_default_config,
    get_conservative_config,
)

# Classification
from .classifier import SeverityClassifier, classify
from .factory import AlertFactory

# Engine
from .engine import (
    BatchEvaluator,
    BatchReport,
    summarize,
    evaluate_component,
    filter_alerts_by_severity,
    get_top_critical_alerts,
    format_alert_summary,
)

# Stock calculator
from .stock import (
    InventoryHealth,
    StockRecommendation,
    calculate_minimum_stock,
    get_stock_status,
)

# Snapshot providers
from .providers import (
    SnapshotProvider,
    InMemorySnapshotProvider,
    YamlFileSnapshotProvider,
    HttpSnapshotProvider,
    build_component_snapshot,
    snapshot_from_dict,
)

# Persistence
from .models import MaintenanceAlertRecord
from .repository import AlertHistoryStore, SqlAlchemyAlertHistoryStore

# Scheduling
from .scheduler import AlertScheduler, CycleResult, TenantRunResult


__all__ = [
    # Enums
    "AlertType",
    "AlertSeverity",
    "AlertStatus",
    "Criticality",
    "StockStatus",

    # Input types
    "ReliabilitySnapshot",
    "InventoryPosition",
    "ComponentSnapshot",
    "TenantContext",

    # Output types
    "AlertDecision",
    "MaintenanceAlert",
    "AlertSummary",
    "AlertAnalytics",
    "ComponentAlertCount",
    "TrendPoint",

    # Query types
    "AlertHistoryFilters",
    "Pagination",
    "AlertPage",

    # Exceptions
    "AlertEngineError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "MalformedSnapshotError",
    "PersistenceError",
    "SnapshotProviderError",

    # Configuration
    "AlertPolicyConfig",
    "SchedulerConfig",
    "AlertEngineConfig",
    "get_default_config",
    "get_conservative_config",

    # Classification
    "SeverityClassifier",
    "classify",
    "AlertFactory",

    # Engine
    "BatchEvaluator",
    "BatchReport",
    "summarize",
    "evaluate_component",
    "filter_alerts_by_severity",
    "get_top_critical_alerts",
    "format_alert_summary",

    # Stock calculator
    "InventoryHealth",
    "StockRecommendation",
    "calculate_minimum_stock",
    "get_stock_status",

    # Snapshot providers
    "SnapshotProvider",
    "InMemorySnapshotProvider",
    "YamlFileSnapshotProvider",
    "HttpSnapshotProvider",
    "build_component_snapshot",
    "snapshot_from_dict",

    # Persistence
    "MaintenanceAlertRecord",
    "AlertHistoryStore",
    "SqlAlchemyAlertHistoryStore",

    # Scheduling
    "AlertScheduler",
    "CycleResult",
    "TenantRunResult",
]
