"""
Invoice Assembler

Runs every line item through resolution, FIFO consumption and deficit booking
against an immutable stock snapshot and returns the complete draft. Pure: the
same snapshot, catalog, line items and context always give the same draft,
which is what lets the coordinator throw a draft away and recompute it after a
write conflict.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence

from app.schemas.catalog import ItemCatalog
from app.schemas.invoice import ProcessedLineItem, UnresolvedReference
from app.schemas.stock import ConsumptionRecord, StockItem, StockShortage
from app.services.fallback_pricer import get_fallback_price
from app.services.fifo_consumption import consume_requirement, find_or_create_stock_item
from app.services.requirement_resolver import ResolvedLine, resolve_line_item
from app.services.stock_availability import check_stock
from app.services.stock_ledger import LedgerEntry, build_ledger_entry

ZERO = Decimal("0")


class InvoiceContext(NamedTuple):
    technician_id: str
    technician_name: Optional[str]
    ticket_id: Optional[int]
    reference: str
    now: datetime
    simple_item_types: Sequence[str] = ("packageType",)
    custom_cable_marker: str = "custom"


class InvoiceDraft(NamedTuple):
    items: List[ProcessedLineItem]
    stock_items: List[StockItem]
    ledger_entries: List[LedgerEntry]
    total_amount: Decimal
    purchase_price: Decimal
    needs_stock_assignment: bool
    shortages: List[StockShortage]
    unresolved: List[UnresolvedReference]


def assemble_invoice(
    stock_items: Sequence[StockItem],
    catalog: ItemCatalog,
    line_items: Iterable,
    context: InvoiceContext,
) -> InvoiceDraft:
    """
    Price an invoice and compute the technician's stock after it.

    Args:
        stock_items: Technician stock as read (not modified)
        catalog: Team item catalog
        line_items: Invoice line items, processed in order
        context: Technician, ticket and invoice reference plus the operation time

    Returns:
        InvoiceDraft with processed items, totals, the rewritten stock list,
        ledger entries and the advisories (shortages, unresolved names)
    """
    line_items = list(line_items)
    resolved: List[ResolvedLine] = [
        resolve_line_item(line_item, catalog, context.custom_cable_marker)
        for line_item in line_items
    ]

    # Advisory check runs against the stock as read, before any consumption
    shortages = check_stock(
        list(stock_items),
        (requirement for line in resolved for requirement in line.requirements),
        context.simple_item_types,
    )

    working = list(stock_items)
    processed: List[ProcessedLineItem] = []
    ledger_entries: List[LedgerEntry] = []
    unresolved: List[UnresolvedReference] = []

    for line_item, line in zip(line_items, resolved):
        cost = ZERO
        records: List[ConsumptionRecord] = []
        pending = False

        for requirement in line.requirements:
            index, stock_item = find_or_create_stock_item(working, requirement, context.now)
            outcome = consume_requirement(
                stock_item,
                requirement,
                get_fallback_price(catalog, requirement.type, requirement.id),
                now=context.now,
                reference=context.reference,
                simple_item_types=context.simple_item_types,
            )
            if index is None:
                working.append(outcome.stock_item)
            else:
                working[index] = outcome.stock_item

            cost += outcome.cost
            records.extend(outcome.records)
            pending = pending or outcome.has_pending_stock
            ledger_entries.append(
                build_ledger_entry(requirement, ticket_id=context.ticket_id, reference=context.reference)
            )

        processed.append(ProcessedLineItem(
            line_item=line_item,
            purchase_price=cost,
            batches_used=records,
            has_pending_stock=pending,
        ))
        unresolved.extend(line.unresolved)

    return InvoiceDraft(
        items=processed,
        stock_items=working,
        ledger_entries=ledger_entries,
        total_amount=sum((item.line_item.sale_amount for item in processed), ZERO),
        purchase_price=sum((item.purchase_price for item in processed), ZERO),
        needs_stock_assignment=any(item.has_pending_stock for item in processed),
        shortages=shortages,
        unresolved=unresolved,
    )
