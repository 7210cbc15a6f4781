"""
Technician Stock Endpoints (read-only)
"""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.v1.deps import get_pagination_params
from app.db.session import get_db
from app.exceptions import NotFoundError
from app.models.inventory import StockTransaction, TechnicianStock
from app.schemas.common import ListResponse, PaginationMeta, PaginationParams
from app.schemas.stock import StockTransactionResponse, TechnicianStockResponse

router = APIRouter(prefix="/stock", tags=["stock"])


@router.get("/{technician_id}", response_model=TechnicianStockResponse)
def get_technician_stock(technician_id: str, db: Session = Depends(get_db)):
    stock = db.query(TechnicianStock).filter(
        TechnicianStock.technician_id == technician_id
    ).first()
    if not stock:
        raise NotFoundError("Technician stock", technician_id)
    return stock


@router.get("/{technician_id}/transactions", response_model=ListResponse[StockTransactionResponse])
def list_stock_transactions(
    technician_id: str,
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    db: Session = Depends(get_db),
):
    """Stock history for a technician, newest first."""
    query = db.query(StockTransaction).filter(StockTransaction.technician_id == technician_id)
    total = query.count()
    rows = (
        query.order_by(desc(StockTransaction.timestamp), desc(StockTransaction.id))
        .offset(pagination.offset)
        .limit(pagination.limit)
        .all()
    )
    return ListResponse[StockTransactionResponse](
        items=[StockTransactionResponse.model_validate(row) for row in rows],
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(rows),
        ),
    )
