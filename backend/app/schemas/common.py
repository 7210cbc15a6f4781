"""
Common API Response Schemas

Provides standardized error responses and pagination models for consistent API behavior.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400/422)
        - NOT_FOUND: Resource not found (404)
        - CONCURRENCY_ERROR / COMMIT_CONFLICT: Stock changed during save (409)
        - DATABASE_ERROR / COMMIT_FAILED: Nothing was written (500)
        - CATALOG_UNAVAILABLE: No catalog and no default (503)

    Example:
        {
            "error": "COMMIT_CONFLICT",
            "message": "Stock for technician tech-1 changed during 3 save attempts. ...",
            "details": {"technician_id": "tech-1", "attempts": 3},
            "timestamp": "2026-10-19T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context for debugging"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


# ============================================================================
# Pagination Models
# ============================================================================

class PaginationMeta(BaseModel):
    """Pagination metadata included in list responses."""
    total: int = Field(..., description="Total number of records matching the query")
    offset: int = Field(..., description="Current offset (number of records skipped)")
    limit: int = Field(..., description="Maximum records per page")
    returned: int = Field(..., description="Number of records in this response")


T = TypeVar('T')


class ListResponse(BaseModel, Generic[T]):
    """Standardized list response wrapper with pagination."""
    items: List[T]
    pagination: PaginationMeta


class PaginationParams(BaseModel):
    """Validated offset/limit pair for list endpoints."""
    offset: int = Field(0, ge=0)
    limit: int = Field(50, ge=1, le=500)
