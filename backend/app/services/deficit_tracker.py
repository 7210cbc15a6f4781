"""
Deficit Tracker

When a requirement outruns a technician's positive lots, the shortfall is booked
on a single synthetic ``DEFICIT`` lot with negative quantity, priced from the
catalog. The save goes ahead; the deficit stays on the stock item until someone
reconciles it.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, NamedTuple
from uuid import NAMESPACE_URL, uuid5

from app.schemas.catalog import DEFICIT_BATCH_ID, Lot
from app.schemas.stock import ConsumptionRecord
from app.services.fallback_pricer import FallbackPrice

# batch_id recorded on the estimated part of a line item's consumption
PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT"


class DeficitOutcome(NamedTuple):
    lots: List[Lot]
    record: ConsumptionRecord
    cost: Decimal


def record_deficit(
    lots: List[Lot],
    remaining: Decimal,
    fallback: FallbackPrice,
    *,
    stock_item_id: str,
    stock_item_name: str,
    now: datetime,
    reference: str,
) -> DeficitOutcome:
    """
    Book ``remaining`` units on the DEFICIT lot.

    Args:
        lots: Current lots of the stock item (not modified)
        remaining: Unmet quantity, > 0
        fallback: Catalog price used for the estimated cost
        stock_item_id: Item id of the stock item
        stock_item_name: Display name for the consumption record
        now: Operation timestamp
        reference: Invoice reference written into the lot notes

    Returns:
        DeficitOutcome with the new lot list, one estimated ConsumptionRecord and
        the estimated cost (remaining x fallback purchase price)
    """
    new_lots = []
    found = False
    for lot in lots:
        if lot.is_deficit and not found:
            found = True
            lot = lot.model_copy(update={
                "quantity": lot.quantity - remaining,
                "notes": f"Automatic deficit - last updated {now.isoformat()} - {reference}",
            })
        new_lots.append(lot)

    if not found:
        new_lots.append(Lot(
            id=str(uuid5(NAMESPACE_URL, f"deficit:{stock_item_id}")),
            batch_id=DEFICIT_BATCH_ID,
            date_added=now,
            quantity=-remaining,
            purchase_price=fallback.purchase,
            selling_price=fallback.selling,
            notes=f"Automatic deficit - invoice {reference}",
        ))

    record = ConsumptionRecord(
        stock_item_id=stock_item_id,
        stock_item_name=stock_item_name,
        batch_id=PENDING_ASSIGNMENT,
        quantity=remaining,
        purchase_price_at_time=fallback.purchase,
        is_estimated=True,
    )
    return DeficitOutcome(new_lots, record, remaining * fallback.purchase)
