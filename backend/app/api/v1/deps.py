"""
API Dependencies

Common dependencies for the v1 endpoints. Technician identity arrives in the
request body from the auth/profile feature, so there is no token dependency here.
"""
from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from app.core.catalog_defaults import DEFAULT_ITEM_CATALOG
from app.core.settings import settings
from app.db.session import get_db
from app.schemas.catalog import ItemCatalog
from app.schemas.common import PaginationParams
from app.services.invoice_service import InvoiceService


def get_default_catalog() -> Optional[ItemCatalog]:
    """Built-in catalog used when a team catalog can't be read, unless disabled."""
    return DEFAULT_ITEM_CATALOG if settings.CATALOG_FALLBACK_ENABLED else None


def get_invoice_service(
    db: Session = Depends(get_db),
    default_catalog: Optional[ItemCatalog] = Depends(get_default_catalog),
) -> InvoiceService:
    return InvoiceService(db, default_catalog=default_catalog)


def get_pagination_params(
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of records to skip (for pagination)"
    ),
    limit: int = Query(
        default=50,
        ge=1,
        le=500,
        description="Maximum number of records to return (1-500)"
    )
) -> PaginationParams:
    """
    Dependency for standardized pagination parameters.

    Args:
        offset: Number of records to skip (default: 0)
        limit: Maximum records to return (default: 50, max: 500)

    Returns:
        PaginationParams object with validated offset and limit
    """
    return PaginationParams(offset=offset, limit=limit)
