"""
Invoice Pydantic Schemas

Line items are a tagged union on ``type``. Each variant only carries the
attributes that make sense for it; the requirement resolver dispatches on the
variant class.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from app.schemas.stock import ConsumptionRecord, StockItem, StockShortage


# Maintenance sub-kinds that consume stock
CABLE_REPLACEMENT = "cableReplacement"
CONNECTOR_REPLACEMENT = "connectorReplacement"
DEVICE_REPLACEMENT = "deviceReplacement"
CUSTOM_MAINTENANCE = "customMaintenance"


# ============================================================================
# Line Items (request)
# ============================================================================

class LineItemBase(BaseModel):
    """Fields shared by every line item kind"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    description: str = Field(..., max_length=500)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0, description="Defaults to unit_price x quantity")
    additional_notes: Optional[str] = Field(None, max_length=2000)
    subscriber_id: Optional[str] = None

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description is required")
        return v

    @model_validator(mode="after")
    def default_total_price(self):
        if self.total_price is None:
            self.total_price = self.sale_amount
        return self

    @property
    def sale_amount(self) -> Decimal:
        """What the customer is charged for this line, as entered."""
        return self.unit_price * self.quantity


def _names_list(v):
    """Accept a single connector name as well as a list."""
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    return v


def _optional_text(v):
    """Cable lengths sometimes arrive as numbers."""
    if v is None:
        return None
    v = str(v).strip()
    return v or None


NameList = Annotated[List[str], BeforeValidator(_names_list)]
OptionalText = Annotated[Optional[str], BeforeValidator(_optional_text)]


class NewInstallationItem(LineItemBase):
    type: Literal["newCustomerInstallation"]
    package_type: Optional[str] = None
    cable_length: OptionalText = None
    connector_type: NameList = Field(default_factory=list)
    device_model: OptionalText = None
    num_hooks: int = Field(0, ge=0)
    num_bags: int = Field(0, ge=0)


class MaintenanceItem(LineItemBase):
    type: Literal["maintenance"]
    maintenance_type: Optional[str] = None
    cable_length: OptionalText = None
    connector_type: NameList = Field(default_factory=list)
    device_model: OptionalText = None


class SubscriptionRenewalItem(LineItemBase):
    type: Literal["subscriptionRenewal"]
    package_type: Optional[str] = None


class TransportationFeeItem(LineItemBase):
    type: Literal["transportationFee"]


class ExpenseReimbursementItem(LineItemBase):
    type: Literal["expenseReimbursement"]


class CustomItem(LineItemBase):
    type: Literal["customItem"]


InvoiceLineItem = Annotated[
    Union[
        NewInstallationItem,
        MaintenanceItem,
        SubscriptionRenewalItem,
        TransportationFeeItem,
        ExpenseReimbursementItem,
        CustomItem,
    ],
    Field(discriminator="type"),
]


class InvoiceCreate(BaseModel):
    """Save an invoice for a ticket"""
    # Technician identity (from the auth/profile feature)
    technician_id: str = Field(..., min_length=1, max_length=128)
    technician_name: Optional[str] = Field(None, max_length=255)
    team_id: Optional[str] = Field(None, max_length=128)

    items: List[InvoiceLineItem] = Field(..., min_length=1, description="Invoice line items")

    customer_name: Optional[str] = Field(None, max_length=255, description="Defaults to the ticket's customer")
    subscriber_id: Optional[str] = Field(None, max_length=128)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v):
        return v.strip() if v else v


# ============================================================================
# Results
# ============================================================================

class UnresolvedReference(BaseModel):
    """A catalog name on a line item that matched no catalog entry."""
    model_config = ConfigDict(frozen=True)

    line_item_id: str
    item_type: str
    name: str


class ProcessedLineItem(BaseModel):
    """A line item after stock consumption, with its cost basis."""
    line_item: InvoiceLineItem
    purchase_price: Decimal = Decimal("0")
    batches_used: List[ConsumptionRecord] = Field(default_factory=list)
    has_pending_stock: bool = False

    def to_document(self) -> Dict[str, Any]:
        """Flat JSON form stored on the invoice."""
        doc = self.line_item.model_dump(mode="json")
        doc["purchase_price"] = str(self.purchase_price)
        doc["batches_used"] = [record.model_dump(mode="json") for record in self.batches_used]
        doc["has_pending_stock"] = self.has_pending_stock
        return doc


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    linked_ticket_id: int
    team_id: Optional[str] = None
    customer_name: Optional[str] = None
    subscriber_id: Optional[str] = None
    created_by: str
    creator_name: Optional[str] = None
    status: str
    type: str
    items: List[Dict[str, Any]]
    total_amount: Decimal
    purchase_price: Decimal
    needs_stock_assignment: bool
    notes: Optional[str] = None
    created_at: datetime
    last_updated: datetime


class InvoiceSaveResult(BaseModel):
    """Saved invoice plus the advisories the technician should see."""
    invoice: InvoiceResponse
    shortages: List[StockShortage] = Field(default_factory=list)
    unresolved: List[UnresolvedReference] = Field(default_factory=list)


class InvoicePreview(BaseModel):
    """Dry-run result: nothing is written."""
    items: List[Dict[str, Any]]
    total_amount: Decimal
    purchase_price: Decimal
    needs_stock_assignment: bool
    shortages: List[StockShortage] = Field(default_factory=list)
    unresolved: List[UnresolvedReference] = Field(default_factory=list)
    stock_items: List[StockItem] = Field(default_factory=list)
