"""
Requirement Resolver

Turns one invoice line item into the stock it consumes. One pure function per
line-item kind, dispatched on the line item's class:

- New installation: connectors, device, cable, hooks and bags
- Maintenance: only the part named by maintenance_type
- Everything else (fees, reimbursements, renewals, custom items): nothing

Names that match no catalog entry produce no requirement. They are returned as
UnresolvedReference so the caller can show them, and logged.
"""
from decimal import Decimal
from functools import singledispatch
from typing import List, NamedTuple, Optional

from app.logging_config import get_logger
from app.schemas.catalog import (
    BAG,
    CABLE_LENGTH,
    CONNECTOR_TYPE,
    DEVICE_MODEL,
    HOOK,
    CatalogEntry,
    ItemCatalog,
)
from app.schemas.invoice import (
    CABLE_REPLACEMENT,
    CONNECTOR_REPLACEMENT,
    DEVICE_REPLACEMENT,
    MaintenanceItem,
    NewInstallationItem,
    UnresolvedReference,
)

logger = get_logger(__name__)

CABLE_NAME_PREFIX = "Cable - "


class Requirement(NamedTuple):
    """Stock demand implied by a line item"""
    type: str
    id: str
    name: str
    quantity: Decimal


class ResolvedLine(NamedTuple):
    requirements: List[Requirement]
    unresolved: List[UnresolvedReference]


class _LineResolution:
    """Collects requirements for one line item, in catalog order of appearance."""

    def __init__(self, line_item, catalog: ItemCatalog, custom_cable_marker: str):
        self.line_item = line_item
        self.catalog = catalog
        self.custom_cable_marker = custom_cable_marker.lower()
        self.quantity = line_item.quantity
        self.requirements: List[Requirement] = []
        self.unresolved: List[UnresolvedReference] = []

    def _add(self, entry: CatalogEntry, item_type: str, quantity: Decimal, name: str = None):
        self.requirements.append(
            Requirement(type=item_type, id=entry.id, name=name or entry.name, quantity=quantity)
        )

    def _miss(self, item_type: str, name: str):
        logger.warning(
            f"No catalog entry for {item_type} '{name}' on line item {self.line_item.id}, skipped",
            extra={"line_item_id": self.line_item.id, "item_type": item_type, "item_name": name},
        )
        self.unresolved.append(
            UnresolvedReference(line_item_id=self.line_item.id, item_type=item_type, name=name)
        )

    def connectors(self, names: List[str]):
        for name in names:
            entry = self.catalog.find_by_name(CONNECTOR_TYPE, name)
            if entry:
                self._add(entry, CONNECTOR_TYPE, self.quantity)
            else:
                self._miss(CONNECTOR_TYPE, name)

    def device(self, name: Optional[str]):
        if not name:
            return
        entry = self.catalog.find_by_name(DEVICE_MODEL, name)
        if entry:
            self._add(entry, DEVICE_MODEL, self.quantity)
        else:
            self._miss(DEVICE_MODEL, name)

    def cable(self, value: Optional[str]):
        if not value:
            return
        if self.custom_cable_marker and self.custom_cable_marker in value.lower():
            entry = next(
                (e for e in self.catalog.cable_lengths if e.is_custom or e.name == value),
                None,
            )
        else:
            entry = self.catalog.find_by_name(CABLE_LENGTH, value)
        if entry:
            self._add(entry, CABLE_LENGTH, self.quantity, name=f"{CABLE_NAME_PREFIX}{entry.name}")
        else:
            self._miss(CABLE_LENGTH, value)

    def per_unit(self, item_type: str, count: int):
        """Hooks and bags: the line's count of the first active entry of the type."""
        if not count:
            return
        entry = self.catalog.first_active(item_type)
        if entry:
            self._add(entry, item_type, self.quantity * count)
        else:
            self._miss(item_type, item_type)

    def result(self) -> ResolvedLine:
        return ResolvedLine(self.requirements, self.unresolved)


@singledispatch
def resolve_line_item(line_item, catalog: ItemCatalog, custom_cable_marker: str = "custom") -> ResolvedLine:
    """Fees, reimbursements, subscription renewals and custom items consume no stock."""
    return ResolvedLine([], [])


@resolve_line_item.register
def _resolve_installation(
    line_item: NewInstallationItem,
    catalog: ItemCatalog,
    custom_cable_marker: str = "custom",
) -> ResolvedLine:
    resolution = _LineResolution(line_item, catalog, custom_cable_marker)
    resolution.connectors(line_item.connector_type)
    resolution.device(line_item.device_model)
    resolution.cable(line_item.cable_length)
    resolution.per_unit(HOOK, line_item.num_hooks)
    resolution.per_unit(BAG, line_item.num_bags)
    return resolution.result()


@resolve_line_item.register
def _resolve_maintenance(
    line_item: MaintenanceItem,
    catalog: ItemCatalog,
    custom_cable_marker: str = "custom",
) -> ResolvedLine:
    resolution = _LineResolution(line_item, catalog, custom_cable_marker)
    if line_item.maintenance_type == CABLE_REPLACEMENT:
        resolution.cable(line_item.cable_length)
    elif line_item.maintenance_type == CONNECTOR_REPLACEMENT:
        resolution.connectors(line_item.connector_type)
    elif line_item.maintenance_type == DEVICE_REPLACEMENT:
        resolution.device(line_item.device_model)
    return resolution.result()
