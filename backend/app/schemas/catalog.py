"""
Item Catalog Pydantic Schemas

Catalog entries describe the consumable item types a team works with.
Lot-tracked entries carry their purchase history as ``batches``; entries
without lots fall back to the legacy scalar price fields.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Item types (shared by catalog entries, stock items and requirements)
PACKAGE_TYPE = "packageType"
CABLE_LENGTH = "cableLength"
CONNECTOR_TYPE = "connectorType"
DEVICE_MODEL = "deviceModel"
HOOK = "hook"
BAG = "bag"

# Item type -> ItemCatalog attribute
CATALOG_SECTIONS = {
    PACKAGE_TYPE: "package_types",
    CABLE_LENGTH: "cable_lengths",
    CONNECTOR_TYPE: "connector_types",
    DEVICE_MODEL: "device_models",
    HOOK: "hooks",
    BAG: "bags",
}

DEFICIT_BATCH_ID = "DEFICIT"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC so lots from any source sort together."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Lot(BaseModel):
    """A dated, priced quantity of one stock item (a.k.a. batch)."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    batch_id: Optional[str] = None
    date_added: Optional[datetime] = None
    quantity: Decimal = Decimal("0")
    purchase_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    notes: Optional[str] = None

    @field_validator("date_added")
    @classmethod
    def normalize_date_added(cls, v):
        return to_naive_utc(v)

    @field_validator("purchase_price", "selling_price", mode="before")
    @classmethod
    def blank_price_is_zero(cls, v):
        if v is None or v == "":
            return Decimal("0")
        return v

    @property
    def is_deficit(self) -> bool:
        return self.batch_id == DEFICIT_BATCH_ID

    @property
    def reference(self) -> Optional[str]:
        """Identifier recorded on consumption records."""
        return self.batch_id or self.id


class CatalogEntry(BaseModel):
    """Definition of one consumable item (connector, cable, device, package, hook, bag)."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    is_active: bool = True
    batches: List[Lot] = Field(default_factory=list)

    # Legacy scalar prices, used only when there are no lots
    price: Optional[Decimal] = None
    purchase_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None

    # Type-specific attributes
    is_custom: bool = False
    length: Optional[Decimal] = None
    device_type: Optional[str] = None


class MaintenanceTypeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    base_price: Decimal = Decimal("0")
    description: Optional[str] = None
    is_active: bool = True


class ItemCatalog(BaseModel):
    """Per-team catalog, read-only to the stock ledger."""
    model_config = ConfigDict(frozen=True)

    team_id: Optional[str] = None
    package_types: List[CatalogEntry] = Field(default_factory=list)
    cable_lengths: List[CatalogEntry] = Field(default_factory=list)
    connector_types: List[CatalogEntry] = Field(default_factory=list)
    device_models: List[CatalogEntry] = Field(default_factory=list)
    maintenance_types: List[MaintenanceTypeEntry] = Field(default_factory=list)
    hooks: List[CatalogEntry] = Field(default_factory=list)
    bags: List[CatalogEntry] = Field(default_factory=list)

    def entries_for(self, item_type: str) -> List[CatalogEntry]:
        section = CATALOG_SECTIONS.get(item_type)
        if section is None:
            return []
        return getattr(self, section)

    def find_by_name(self, item_type: str, name: str) -> Optional[CatalogEntry]:
        return next((e for e in self.entries_for(item_type) if e.name == name), None)

    def first_active(self, item_type: str) -> Optional[CatalogEntry]:
        return next((e for e in self.entries_for(item_type) if e.is_active), None)
