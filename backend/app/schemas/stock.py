"""
Technician Stock Pydantic Schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.catalog import Lot, to_naive_utc


class StockItem(BaseModel):
    """
    One item in a technician's stock.

    For lot-tracked types ``quantity`` mirrors the sum of the lot quantities.
    Simple types (subscription packages) use ``quantity`` alone and may go negative.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    item_type: str
    item_id: str
    item_name: str = ""
    quantity: Decimal = Decimal("0")
    purchase_price: Optional[Decimal] = None
    batches: List[Lot] = Field(default_factory=list)
    last_updated: Optional[datetime] = None

    @field_validator("last_updated")
    @classmethod
    def normalize_last_updated(cls, v):
        return to_naive_utc(v)

    @property
    def positive_lot_quantity(self) -> Decimal:
        return sum((lot.quantity for lot in self.batches if lot.quantity > 0), Decimal("0"))


class ConsumptionRecord(BaseModel):
    """What one requirement drew from one lot (``batchesUsed`` on a line item)."""
    model_config = ConfigDict(frozen=True)

    stock_item_id: str
    stock_item_name: str
    batch_id: Optional[str] = None
    quantity: Decimal
    purchase_price_at_time: Decimal
    is_estimated: bool = False


class StockShortage(BaseModel):
    """Advisory: a requirement that current stock cannot fully cover."""
    model_config = ConfigDict(frozen=True)

    item_type: str
    item_id: str
    item_name: str
    required: Decimal
    available: Decimal


class TechnicianStockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    technician_id: str
    technician_name: Optional[str] = None
    team_id: Optional[str] = None
    version: int
    stock_items: List[StockItem]
    updated_at: Optional[datetime] = None


class StockTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    technician_id: str
    technician_name: Optional[str] = None
    item_type: str
    item_id: str
    item_name: Optional[str] = None
    quantity: Decimal
    transaction_type: str
    source_id: Optional[int] = None
    ticket_id: Optional[int] = None
    notes: Optional[str] = None
    timestamp: datetime
