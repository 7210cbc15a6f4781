"""
Stock Ledger Writer

One StockTransaction per processed requirement, carrying the requested quantity
whether or not lots covered it. Entries are built while the invoice is computed
and added to the session only in the attempt that commits, so a retried save
never writes them twice.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from app.models.inventory import StockTransaction
from app.models.invoice import Invoice
from app.services.requirement_resolver import Requirement

TRANSACTION_TYPE_INVOICE = "invoice"


class LedgerEntry(NamedTuple):
    item_type: str
    item_id: str
    item_name: str
    quantity: Decimal
    notes: str


def build_ledger_entry(requirement: Requirement, *, ticket_id: Optional[int], reference: str) -> LedgerEntry:
    return LedgerEntry(
        item_type=requirement.type,
        item_id=requirement.id,
        item_name=requirement.name,
        quantity=requirement.quantity,
        notes=f"Used in invoice {reference} for ticket {ticket_id}",
    )


def write_ledger_entries(
    db: Session,
    entries: Iterable[LedgerEntry],
    *,
    invoice: Invoice,
    technician_id: str,
    technician_name: Optional[str],
    ticket_id: Optional[int],
    timestamp: datetime,
) -> List[StockTransaction]:
    """
    Add ledger rows for ``entries`` to the session.

    ``invoice`` must be flushed so its id can be referenced. Nothing is committed
    here; the rows become visible with the caller's commit or not at all.
    """
    rows = []
    for entry in entries:
        row = StockTransaction(
            technician_id=technician_id,
            technician_name=technician_name,
            item_type=entry.item_type,
            item_id=entry.item_id,
            item_name=entry.item_name,
            quantity=entry.quantity,
            transaction_type=TRANSACTION_TYPE_INVOICE,
            source_id=invoice.id,
            ticket_id=ticket_id,
            notes=entry.notes,
            timestamp=timestamp,
        )
        db.add(row)
        rows.append(row)
    return rows
