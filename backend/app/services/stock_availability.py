"""
Stock availability check

Compares what an invoice will consume with what the technician holds, before
anything is written. Shortages are advisory: the technician sees them and the
save still goes ahead (the Deficit Tracker books the difference).
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from app.schemas.stock import StockItem, StockShortage
from app.services.fifo_consumption import MATCH_BY_TYPE_ONLY, find_stock_item
from app.services.requirement_resolver import Requirement

ZERO = Decimal("0")


def _stock_key(requirement: Requirement) -> Tuple[str, str]:
    if requirement.type in MATCH_BY_TYPE_ONLY:
        return requirement.type, ""
    return requirement.type, requirement.id


def available_quantity(stock_item: StockItem, simple_item_types: Iterable[str] = ()) -> Decimal:
    """Usable units: scalar quantity for simple items, positive lots otherwise."""
    if stock_item.item_type in simple_item_types:
        return stock_item.quantity
    return stock_item.positive_lot_quantity


def check_stock(
    stock_items: List[StockItem],
    requirements: Iterable[Requirement],
    simple_item_types: Iterable[str] = (),
) -> List[StockShortage]:
    """
    Aggregate requirements per stock item and report those stock can't cover.

    Returns:
        One StockShortage per stock item (in first-required order) where the
        total required exceeds what is available
    """
    simple_item_types = tuple(simple_item_types)
    totals: Dict[Tuple[str, str], Decimal] = {}
    first: Dict[Tuple[str, str], Requirement] = {}
    for requirement in requirements:
        key = _stock_key(requirement)
        totals[key] = totals.get(key, ZERO) + requirement.quantity
        first.setdefault(key, requirement)

    shortages = []
    for key, required in totals.items():
        requirement = first[key]
        _, stock_item = find_stock_item(stock_items, requirement)
        available = available_quantity(stock_item, simple_item_types) if stock_item else ZERO
        if available < required:
            shortages.append(StockShortage(
                item_type=requirement.type,
                item_id=requirement.id,
                item_name=stock_item.item_name if stock_item and stock_item.item_name else requirement.name,
                required=required,
                available=max(available, ZERO),
            ))
    return shortages
