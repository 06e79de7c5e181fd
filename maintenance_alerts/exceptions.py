"""
Maintenance Alert Engine - Exceptions.

============================================================
PURPOSE
============================================================
Typed errors raised by the lifecycle store and the batch
pipeline. API layers map them to 4xx responses; the scheduler
logs them and keeps going.

============================================================
TAXONOMY
============================================================
- ValidationError        : rejected input, nothing written
- ConflictError          : transition attempted on a non-ACTIVE record
- NotFoundError          : missing OR foreign-tenant record (indistinguishable)
- MalformedSnapshotError : one component's snapshot is unusable
- PersistenceError       : wrapped database failure
- SnapshotProviderError  : snapshot source failed

"No alert" is not an error and has no exception type.

============================================================
"""

from typing import Any, Optional


class AlertEngineError(Exception):
    """
    Base exception for the alert engine.

    Callers can catch this for generic handling.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        details: Optional[dict] = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return f"[maintenance_alerts] {self.operation}: {self.message}"


class ValidationError(AlertEngineError):
    """Raised when caller input is rejected before any write."""

    def __init__(self, field: str, reason: str, operation: str = "validate") -> None:
        super().__init__(
            message=f"Invalid {field}: {reason}",
            operation=operation,
            details={"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


class NotFoundError(AlertEngineError):
    """
    Raised when an alert does not exist for the caller's tenant.

    Also raised when the alert exists under another tenant; the
    message is identical in both cases.
    """

    def __init__(self, alert_id: Any, operation: str = "get") -> None:
        super().__init__(
            message=f"Alert {alert_id} not found",
            operation=operation,
            details={"alert_id": str(alert_id)},
        )
        self.alert_id = alert_id


class ConflictError(AlertEngineError):
    """
    Raised when resolve/dismiss targets a record that is no longer ACTIVE.

    Carries the record's actual status (and who moved it there) so
    the caller can explain "already resolved by X".
    """

    def __init__(
        self,
        alert_id: Any,
        current_status: str,
        changed_by: Optional[str] = None,
        operation: str = "transition",
    ) -> None:
        status = getattr(current_status, "value", current_status)
        message = f"Alert {alert_id} is already {status}"
        if changed_by:
            message += f" (by {changed_by})"
        super().__init__(
            message=message,
            operation=operation,
            details={
                "alert_id": str(alert_id),
                "current_status": status,
                "changed_by": changed_by,
            },
        )
        self.alert_id = alert_id
        self.current_status = status
        self.changed_by = changed_by


class MalformedSnapshotError(AlertEngineError):
    """Raised when a component snapshot cannot be evaluated."""

    def __init__(self, component_id: Any, reason: str) -> None:
        super().__init__(
            message=f"Malformed snapshot for component {component_id}: {reason}",
            operation="evaluate",
            details={"component_id": component_id, "reason": reason},
        )
        self.component_id = component_id
        self.reason = reason


class PersistenceError(AlertEngineError):
    """Raised when a database operation fails."""

    def __init__(self, operation: str, original_error: Optional[Exception] = None) -> None:
        error_msg = str(original_error) if original_error else "Unknown error"
        super().__init__(
            message=f"Database operation failed: {error_msg}",
            operation=operation,
            details={"original_error": error_msg},
        )
        self.original_error = original_error


class SnapshotProviderError(AlertEngineError):
    """Raised when snapshots cannot be fetched for a tenant."""

    def __init__(self, source: str, reason: str, company_id: Optional[str] = None) -> None:
        super().__init__(
            message=f"{source} failed: {reason}",
            operation="fetch_snapshots",
            details={"source": source, "company_id": company_id},
        )
        self.source = source
        self.company_id = company_id
