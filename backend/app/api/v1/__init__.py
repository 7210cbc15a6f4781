"""
API v1 Router - FieldLedger
"""
from fastapi import APIRouter
from app.api.v1.endpoints import (
    catalog,
    invoices,
    stock,
)

router = APIRouter()

# Invoices (save, preview, detail)
router.include_router(invoices.router, tags=["invoices"])

# Technician stock and stock history
router.include_router(stock.router)

# Effective item catalog per team
router.include_router(catalog.router)
