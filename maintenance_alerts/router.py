"""
FastAPI Router for Maintenance Alert Endpoints.

Provides the tenant-scoped REST API over the alert lifecycle store:
- List / filter / paginate alerts
- Summary, analytics and daily trends
- Resolve (optional work order link) and dismiss (mandatory reason)

Caller identity comes from the X-Company-Id / X-User-Id headers set
by the authenticating gateway.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from core.clock import ClockProtocol, SystemClock

from .exceptions import ConflictError, NotFoundError, ValidationError
from .repository import AlertHistoryStore, SqlAlchemyAlertHistoryStore
from .schemas import (
    AlertAnalyticsResponse,
    AlertListResponse,
    AlertRecordResponse,
    AlertSummaryResponse,
    DismissAlertRequest,
    ResolveAlertRequest,
    TrendPointResponse,
)
from .types import (
    AlertHistoryFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Criticality,
    Pagination,
    StockStatus,
    TenantContext,
)

router = APIRouter(prefix="/maintenance/alerts", tags=["Maintenance Alerts"])


# =============================================================
# HELPER: Dependencies
# =============================================================

_store: Optional[AlertHistoryStore] = None


def get_alert_store() -> AlertHistoryStore:
    global _store
    if _store is None:
        _store = SqlAlchemyAlertHistoryStore()
    return _store


def get_clock() -> ClockProtocol:
    return SystemClock()


def get_tenant_context(
    x_company_id: str = Header(..., alias="X-Company-Id"),
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> TenantContext:
    return TenantContext(company_id=x_company_id, operator_id=x_user_id)


def _parse_enum_list(enum_cls, values: Optional[List[str]], name: str) -> list:
    parsed = []
    for raw in values or []:
        for value in raw.split(","):
            value = value.strip().upper()
            if not value:
                continue
            try:
                parsed.append(enum_cls(value))
            except ValueError:
                valid = ", ".join(m.value for m in enum_cls)
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid {name}: {value}. Valid values: {valid}",
                )
    return parsed


def _to_response(record, now: datetime) -> AlertRecordResponse:
    response = AlertRecordResponse.model_validate(record)
    response.is_stale = record.is_stale_at(now)
    return response


def _raise_http(error: Exception):
    if isinstance(error, NotFoundError):
        raise HTTPException(status_code=404, detail=error.message)
    if isinstance(error, ConflictError):
        raise HTTPException(
            status_code=409,
            detail={"message": error.message, "current_status": error.current_status},
        )
    if isinstance(error, ValidationError):
        raise HTTPException(status_code=422, detail=error.message)
    raise error


# =============================================================
# QUERY ENDPOINTS
# =============================================================

@router.get("", response_model=AlertListResponse)
def list_alerts(
    severity: Optional[List[str]] = Query(None, description="CRITICAL, WARNING, INFO"),
    criticality: Optional[List[str]] = Query(None, description="A, B, C"),
    stock_status: Optional[List[str]] = Query(None, description="CRITICAL, LOW, SUFFICIENT"),
    alert_type: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None, description="ACTIVE, RESOLVED, DISMISSED"),
    component_id: Optional[str] = Query(None),
    min_days: Optional[int] = Query(None),
    max_days: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
    clock: ClockProtocol = Depends(get_clock),
):
    """
    List alerts of the caller's tenant.

    Multi-valued filters accept repeated parameters or comma-separated
    values. All filters are AND-combined. Newest alerts first.
    """
    filters = AlertHistoryFilters(
        severities=_parse_enum_list(AlertSeverity, severity, "severity"),
        criticalities=_parse_enum_list(Criticality, criticality, "criticality"),
        stock_statuses=_parse_enum_list(StockStatus, stock_status, "stock_status"),
        alert_types=_parse_enum_list(AlertType, alert_type, "alert_type"),
        statuses=_parse_enum_list(AlertStatus, status, "status"),
        component_id=component_id,
        min_days_until_maintenance=min_days,
        max_days_until_maintenance=max_days,
        start_date=start_date,
        end_date=end_date,
    )

    result = store.list(ctx.company_id, filters, Pagination(page=page, limit=limit))
    now = clock.now()

    return AlertListResponse(
        items=[_to_response(r, now) for r in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/summary", response_model=AlertSummaryResponse)
def get_alert_summary(
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
):
    """Counts of ACTIVE alerts by severity and type."""
    return AlertSummaryResponse.from_summary(store.summary(ctx.company_id))


@router.get("/analytics", response_model=AlertAnalyticsResponse)
def get_alert_analytics(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
):
    """Severity/criticality/status breakdown and top components."""
    return AlertAnalyticsResponse.from_analytics(
        store.analytics(ctx.company_id, start_date=start_date, end_date=end_date)
    )


@router.get("/trends", response_model=List[TrendPointResponse])
def get_alert_trends(
    days: int = Query(30, ge=1, le=365),
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
):
    """Alerts generated per day, oldest first."""
    return [TrendPointResponse.from_point(p) for p in store.trends(ctx.company_id, days=days)]


@router.get("/{alert_id}", response_model=AlertRecordResponse)
def get_alert(
    alert_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
    clock: ClockProtocol = Depends(get_clock),
):
    """Get one alert of the caller's tenant."""
    try:
        record = store.get_by_id(alert_id, ctx.company_id)
    except NotFoundError as e:
        _raise_http(e)
    return _to_response(record, clock.now())


# =============================================================
# MUTATION ENDPOINTS
# =============================================================

@router.post("/{alert_id}/resolve", response_model=AlertRecordResponse)
def resolve_alert(
    alert_id: str,
    request: ResolveAlertRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
    clock: ClockProtocol = Depends(get_clock),
):
    """ACTIVE -> RESOLVED. 409 if the alert is no longer ACTIVE."""
    try:
        record = store.resolve(
            alert_id,
            ctx,
            linked_work_order_id=request.linked_work_order_id,
            notes=request.notes,
        )
    except (NotFoundError, ConflictError) as e:
        _raise_http(e)
    return _to_response(record, clock.now())


@router.post("/{alert_id}/dismiss", response_model=AlertRecordResponse)
def dismiss_alert(
    alert_id: str,
    request: DismissAlertRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    store: AlertHistoryStore = Depends(get_alert_store),
    clock: ClockProtocol = Depends(get_clock),
):
    """ACTIVE -> DISMISSED. 422 on a blank reason, 409 if no longer ACTIVE."""
    try:
        record = store.dismiss(alert_id, ctx, request.reason)
    except (NotFoundError, ConflictError, ValidationError) as e:
        _raise_http(e)
    return _to_response(record, clock.now())
