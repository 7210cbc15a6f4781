"""
FieldLedger exceptions

Every error the API reports carries a machine-readable code and an HTTP status;
the handler in app.main renders ``to_dict()`` plus a timestamp.

Only hard failures are exceptions. Insufficient stock and catalog names that
don't resolve are soft conditions, returned to the caller as advisories
(StockShortage, UnresolvedReference) while the save goes ahead.

Usage:
    from app.exceptions import NotFoundError

    raise NotFoundError("Ticket", ticket_id)
"""
from typing import Any, Dict, Optional


class FieldLedgerException(Exception):
    """
    Base exception for all FieldLedger errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        status_code: HTTP status code to return
        details: Extra context (ids, attempt counts)
    """

    error_code: str = "FIELDLEDGER_ERROR"
    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {"error": self.error_code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(FieldLedgerException):
    """A ticket, invoice or technician stock record does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        details = {"resource": resource}
        message = f"{resource} not found"
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


class ConcurrencyError(FieldLedgerException):
    """Another writer changed a version-checked row first."""

    error_code = "CONCURRENCY_ERROR"
    status_code = 409


class CommitConflictError(ConcurrencyError):
    """Every save attempt lost its stock write to a concurrent save. Nothing was written."""

    error_code = "COMMIT_CONFLICT"

    def __init__(self, technician_id: str, *, attempts: int):
        super().__init__(
            f"Stock for technician {technician_id} changed during {attempts} save attempts. "
            f"Nothing was saved, please retry.",
            details={"technician_id": technician_id, "attempts": attempts},
        )


class DatabaseError(FieldLedgerException):
    error_code = "DATABASE_ERROR"
    status_code = 500


class CommitFailedError(DatabaseError):
    """The atomic invoice commit failed for a reason other than a conflict."""

    error_code = "COMMIT_FAILED"

    def __init__(
        self,
        message: str = "Invoice could not be saved. Nothing was written, please retry.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class CatalogUnavailableError(FieldLedgerException):
    """No item catalog could be read and no default catalog is configured."""

    error_code = "CATALOG_UNAVAILABLE"
    status_code = 503

    def __init__(self, team_id: Optional[str] = None):
        details = {"service": "Item catalog"}
        if team_id:
            details["team_id"] = team_id
        super().__init__("Item catalog is unavailable", details=details)
