"""
FIFO Consumption Engine

Consumes a technician's stock for one requirement:

- Simple items (subscription packages): scalar quantity goes down, possibly below zero
- Lot-tracked items: oldest lots first by date_added; anything left over goes
  to the Deficit Tracker

All functions are pure: they return new StockItem/Lot values and never touch
their inputs, so a computation can be thrown away and redone after a write conflict.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Tuple
from uuid import NAMESPACE_URL, uuid5

from app.schemas.catalog import BAG, HOOK
from app.schemas.stock import ConsumptionRecord, StockItem
from app.services.deficit_tracker import record_deficit
from app.services.fallback_pricer import FallbackPrice, lot_date_key
from app.services.requirement_resolver import Requirement

ZERO = Decimal("0")

# Stock for these is matched on type alone; catalogs rename hook/bag entries freely
MATCH_BY_TYPE_ONLY = (HOOK, BAG)


class ConsumptionOutcome(NamedTuple):
    stock_item: StockItem
    records: List[ConsumptionRecord]
    cost: Decimal
    has_pending_stock: bool


def matches_requirement(stock_item: StockItem, requirement: Requirement) -> bool:
    if requirement.type in MATCH_BY_TYPE_ONLY:
        return stock_item.item_type == requirement.type
    return stock_item.item_type == requirement.type and stock_item.item_id == requirement.id


def find_stock_item(
    stock_items: Iterable[StockItem], requirement: Requirement
) -> Tuple[Optional[int], Optional[StockItem]]:
    for index, stock_item in enumerate(stock_items):
        if matches_requirement(stock_item, requirement):
            return index, stock_item
    return None, None


def find_or_create_stock_item(
    stock_items: List[StockItem], requirement: Requirement, now: datetime
) -> Tuple[Optional[int], StockItem]:
    """
    Locate the stock item a requirement draws from.

    Returns (index, item); index is None for a newly created zero-quantity item
    that the caller still has to append.
    """
    index, stock_item = find_stock_item(stock_items, requirement)
    if stock_item is not None:
        return index, stock_item
    return None, StockItem(
        id=str(uuid5(NAMESPACE_URL, f"stock:{requirement.type}:{requirement.id}")),
        item_type=requirement.type,
        item_id=requirement.id,
        item_name=requirement.name,
        quantity=ZERO,
        batches=[],
        last_updated=now,
    )


def consume_requirement(
    stock_item: StockItem,
    requirement: Requirement,
    fallback: FallbackPrice,
    *,
    now: datetime,
    reference: str,
    simple_item_types: Iterable[str] = (),
) -> ConsumptionOutcome:
    """
    Consume ``requirement.quantity`` units from ``stock_item``.

    Args:
        stock_item: The technician's stock item (not modified)
        requirement: What to consume
        fallback: Catalog price for the unpriced part
        now: Operation timestamp
        reference: Invoice reference for deficit notes
        simple_item_types: Item types tracked without lots

    Returns:
        ConsumptionOutcome(updated item, consumption records, cost, pending flag)
    """
    if stock_item.item_type in simple_item_types:
        return _consume_simple(stock_item, requirement, fallback, now)
    return _consume_lots(stock_item, requirement, fallback, now, reference)


def _consume_simple(
    stock_item: StockItem,
    requirement: Requirement,
    fallback: FallbackPrice,
    now: datetime,
) -> ConsumptionOutcome:
    available = stock_item.quantity
    unit_cost = stock_item.purchase_price or fallback.purchase
    updated = stock_item.model_copy(update={
        "quantity": available - requirement.quantity,
        "last_updated": now,
    })
    return ConsumptionOutcome(
        stock_item=updated,
        records=[],
        cost=unit_cost * requirement.quantity,
        has_pending_stock=available < requirement.quantity,
    )


def _consume_lots(
    stock_item: StockItem,
    requirement: Requirement,
    fallback: FallbackPrice,
    now: datetime,
    reference: str,
) -> ConsumptionOutcome:
    remaining = requirement.quantity
    cost = ZERO
    records: List[ConsumptionRecord] = []
    lots = []

    for lot in sorted(stock_item.batches, key=lot_date_key):
        if remaining > 0 and lot.quantity > 0:
            taken = min(lot.quantity, remaining)
            remaining -= taken
            cost += taken * lot.purchase_price
            records.append(ConsumptionRecord(
                stock_item_id=stock_item.item_id,
                stock_item_name=requirement.name,
                batch_id=lot.reference,
                quantity=taken,
                purchase_price_at_time=lot.purchase_price,
            ))
            lot = lot.model_copy(update={"quantity": lot.quantity - taken})
        lots.append(lot)

    pending = remaining > 0
    if pending:
        deficit = record_deficit(
            lots,
            remaining,
            fallback,
            stock_item_id=stock_item.item_id,
            stock_item_name=requirement.name,
            now=now,
            reference=reference,
        )
        lots = deficit.lots
        records.append(deficit.record)
        cost += deficit.cost

    updated = stock_item.model_copy(update={
        "batches": lots,
        "quantity": sum((lot.quantity for lot in lots), ZERO),
        "last_updated": now,
    })
    return ConsumptionOutcome(updated, records, cost, pending)
