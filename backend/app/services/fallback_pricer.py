"""
Fallback Pricer

Estimates unit purchase/selling price from the team catalog when a technician's
own lots cannot price a consumption (deficits, simple items without a stored cost).
"""
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple, Optional

from app.schemas.catalog import BAG, HOOK, CatalogEntry, ItemCatalog, Lot

ZERO = Decimal("0")


class FallbackPrice(NamedTuple):
    purchase: Decimal
    selling: Decimal


NO_PRICE = FallbackPrice(ZERO, ZERO)


def lot_date_key(lot: Lot) -> datetime:
    """Sort key: lots without a date sort as the oldest."""
    return lot.date_added or datetime.min


def _find_entry(catalog: ItemCatalog, item_type: str, item_id: str) -> Optional[CatalogEntry]:
    entries = catalog.entries_for(item_type)
    entry = next((e for e in entries if e.id == item_id or e.name == item_id), None)

    # Hooks and bags are often referenced by a generic unit id
    if entry is None and item_type in (HOOK, BAG) and entries:
        entry = next(
            (
                e for e in entries
                if e.is_active and any(lot.purchase_price > 0 for lot in e.batches)
            ),
            entries[0],
        )
    return entry


def price_from_entry(entry: CatalogEntry) -> FallbackPrice:
    """
    Price an entry from its lots.

    1. Oldest lot that still has stock (what would be drawn next)
    2. Most recent lot that ever had a purchase price
    3. Legacy scalar purchase_price / price and selling_price
    """
    if entry.batches:
        available = sorted((lot for lot in entry.batches if lot.quantity > 0), key=lot_date_key)
        if available and available[0].purchase_price > 0:
            return FallbackPrice(available[0].purchase_price, available[0].selling_price)

        priced = sorted(
            (lot for lot in entry.batches if lot.purchase_price > 0),
            key=lot_date_key,
            reverse=True,
        )
        if priced:
            return FallbackPrice(priced[0].purchase_price, priced[0].selling_price)

    return FallbackPrice(
        entry.purchase_price or entry.price or ZERO,
        entry.selling_price or ZERO,
    )


def get_fallback_price(catalog: ItemCatalog, item_type: str, item_id: str) -> FallbackPrice:
    """Catalog estimate for one unit of an item; (0, 0) if the catalog doesn't know it."""
    entry = _find_entry(catalog, item_type, item_id)
    if entry is None:
        return NO_PRICE
    return price_from_entry(entry)
