"""
Invoice Service - saves invoices and the stock they consume as one commit.

Each attempt:
1. Reads the team catalog, then the ticket and the technician's stock row
2. Assembles the invoice against that snapshot (pure, see invoice_assembler)
3. Rewrites the stock row, inserts the invoice and its ledger rows and appends
   the invoice to the ticket, then commits

The stock and ticket rows are version-checked. If another save committed first
the UPDATE matches no row (StaleDataError); a racing insert of the same stock
row or invoice number fails on its unique key (IntegrityError). Either way the
session is rolled back and the whole attempt is recomputed from a fresh read.
"""
from datetime import datetime
from typing import Optional, Sequence, Tuple
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.catalog_defaults import DEFAULT_ITEM_CATALOG
from app.core.settings import settings
from app.exceptions import CommitConflictError, CommitFailedError, NotFoundError
from app.logging_config import get_logger
from app.models.inventory import TechnicianStock
from app.models.invoice import Invoice
from app.models.ticket import ServiceTicket
from app.schemas.catalog import ItemCatalog
from app.schemas.invoice import InvoiceCreate, InvoicePreview, InvoiceResponse, InvoiceSaveResult
from app.schemas.stock import StockItem
from app.services.catalog_service import load_catalog
from app.services.invoice_assembler import InvoiceContext, InvoiceDraft, assemble_invoice
from app.services.stock_ledger import write_ledger_entries

logger = get_logger(__name__)


class InvoiceService:
    """Persistence coordinator for invoice saves"""

    def __init__(
        self,
        db: Session,
        *,
        default_catalog: Optional[ItemCatalog] = DEFAULT_ITEM_CATALOG,
        max_attempts: Optional[int] = None,
        simple_item_types: Optional[Sequence[str]] = None,
        custom_cable_marker: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.db = db
        self.default_catalog = default_catalog
        self.max_attempts = max_attempts or settings.LEDGER_COMMIT_MAX_ATTEMPTS
        self.simple_item_types = tuple(
            settings.SIMPLE_ITEM_TYPES if simple_item_types is None else simple_item_types
        )
        self.custom_cable_marker = (
            settings.CUSTOM_CABLE_MARKER if custom_cable_marker is None else custom_cable_marker
        )
        self.currency = currency or settings.DEFAULT_CURRENCY

    # =========================================================================
    # Reads
    # =========================================================================

    def _get_ticket(self, ticket_id: int) -> ServiceTicket:
        ticket = self.db.query(ServiceTicket).filter(ServiceTicket.id == ticket_id).first()
        if not ticket:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    def _get_stock_row(self, technician_id: str) -> Optional[TechnicianStock]:
        return self.db.query(TechnicianStock).filter(
            TechnicianStock.technician_id == technician_id
        ).first()

    def _next_invoice_number(self, year: int) -> str:
        """Generate next invoice number: INV-{year}-{seq:06d}"""
        pattern = f"INV-{year}-%"
        result = self.db.query(func.max(Invoice.invoice_number)).filter(
            Invoice.invoice_number.like(pattern)
        ).scalar()

        if result:
            # Extract sequence from "INV-2026-000042"
            seq = int(result.split("-")[2]) + 1
        else:
            seq = 1

        return f"INV-{year}-{seq:06d}"

    def _draft(
        self,
        catalog: ItemCatalog,
        ticket: ServiceTicket,
        stock_row: Optional[TechnicianStock],
        payload: InvoiceCreate,
        now: datetime,
    ) -> Tuple[str, InvoiceDraft]:
        stock_items = [
            StockItem.model_validate(item) for item in (stock_row.stock_items if stock_row else None) or []
        ]
        invoice_number = self._next_invoice_number(now.year)
        context = InvoiceContext(
            technician_id=payload.technician_id,
            technician_name=payload.technician_name,
            ticket_id=ticket.id,
            reference=invoice_number,
            now=now,
            simple_item_types=self.simple_item_types,
            custom_cable_marker=self.custom_cable_marker,
        )
        return invoice_number, assemble_invoice(stock_items, catalog, payload.items, context)

    # =========================================================================
    # Operations
    # =========================================================================

    def preview_invoice(
        self,
        ticket_id: int,
        payload: InvoiceCreate,
        now: Optional[datetime] = None,
    ) -> InvoicePreview:
        """
        Compute an invoice and the resulting stock without writing anything.

        Raises:
            NotFoundError: Ticket does not exist
            CatalogUnavailableError: No catalog and no default
        """
        catalog = load_catalog(self.db, payload.team_id, self.default_catalog)
        ticket = self._get_ticket(ticket_id)
        _, draft = self._draft(
            catalog, ticket, self._get_stock_row(payload.technician_id), payload, now or datetime.utcnow()
        )
        return InvoicePreview(
            items=[item.to_document() for item in draft.items],
            total_amount=draft.total_amount,
            purchase_price=draft.purchase_price,
            needs_stock_assignment=draft.needs_stock_assignment,
            shortages=draft.shortages,
            unresolved=draft.unresolved,
            stock_items=draft.stock_items,
        )

    def save_invoice(
        self,
        ticket_id: int,
        payload: InvoiceCreate,
        now: Optional[datetime] = None,
    ) -> InvoiceSaveResult:
        """
        Save an invoice for a ticket and consume the technician's stock.

        Args:
            ticket_id: Originating service ticket
            payload: Technician identity and line items
            now: Operation time (defaults to utcnow on each attempt)

        Returns:
            InvoiceSaveResult with the saved invoice and the shortage and
            unresolved-name advisories

        Raises:
            NotFoundError: Ticket does not exist
            CatalogUnavailableError: No catalog and no default
            CommitConflictError: Every attempt lost to a concurrent save
            CommitFailedError: The commit failed for any other reason
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                invoice, draft = self._save_attempt(ticket_id, payload, now or datetime.utcnow())
                self.db.commit()
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(
                    f"Invoice save for ticket {ticket_id} conflicted "
                    f"(attempt {attempt}/{self.max_attempts}): {e.__class__.__name__}",
                    extra={
                        "ticket_id": ticket_id,
                        "technician_id": payload.technician_id,
                        "attempt": attempt,
                    },
                )
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    f"Invoice save for ticket {ticket_id} failed: {e}",
                    extra={"ticket_id": ticket_id, "technician_id": payload.technician_id},
                    exc_info=True,
                )
                raise CommitFailedError(
                    details={"ticket_id": ticket_id, "technician_id": payload.technician_id}
                ) from e
            except Exception:
                self.db.rollback()
                raise

            self.db.refresh(invoice)
            logger.info(
                f"Saved invoice {invoice.invoice_number} for ticket {ticket_id}: "
                f"total={draft.total_amount}, cost={draft.purchase_price}, "
                f"pending={draft.needs_stock_assignment}",
                extra={
                    "invoice_id": invoice.id,
                    "ticket_id": ticket_id,
                    "technician_id": payload.technician_id,
                    "attempt": attempt,
                    "ledger_rows": len(draft.ledger_entries),
                },
            )
            return InvoiceSaveResult(
                invoice=InvoiceResponse.model_validate(invoice),
                shortages=draft.shortages,
                unresolved=draft.unresolved,
            )

        logger.error(
            f"Invoice save for ticket {ticket_id} gave up after {self.max_attempts} conflicting attempts",
            extra={"ticket_id": ticket_id, "technician_id": payload.technician_id},
        )
        raise CommitConflictError(payload.technician_id, attempts=self.max_attempts)

    def _save_attempt(
        self,
        ticket_id: int,
        payload: InvoiceCreate,
        now: datetime,
    ) -> Tuple[Invoice, InvoiceDraft]:
        """Stage one attempt in the session. The caller commits or rolls back."""
        # A failed catalog read rolls the session back, so it must come before
        # the reads this attempt writes against.
        catalog = load_catalog(self.db, payload.team_id, self.default_catalog)
        ticket = self._get_ticket(ticket_id)
        stock_row = self._get_stock_row(payload.technician_id)
        invoice_number, draft = self._draft(catalog, ticket, stock_row, payload, now)

        # Stock: always rewritten in full
        if stock_row is None:
            stock_row = TechnicianStock(
                technician_id=payload.technician_id,
                team_id=payload.team_id,
                stock_items=[],
            )
            self.db.add(stock_row)
        if payload.technician_name:
            stock_row.technician_name = payload.technician_name
        stock_row.stock_items = [item.model_dump(mode="json") for item in draft.stock_items]

        invoice = Invoice(
            invoice_number=invoice_number,
            linked_ticket_id=ticket.id,
            team_id=payload.team_id,
            customer_name=payload.customer_name or ticket.customer_name,
            subscriber_id=payload.subscriber_id or ticket.subscriber_id,
            created_by=payload.technician_id,
            creator_name=payload.technician_name,
            status="draft",
            type="invoice",
            items=[item.to_document() for item in draft.items],
            total_amount=draft.total_amount,
            purchase_price=draft.purchase_price,
            needs_stock_assignment=draft.needs_stock_assignment,
            notes=payload.notes,
            created_at=now,
            last_updated=now,
        )
        self.db.add(invoice)
        self.db.flush()  # Get ID for ledger rows and the ticket

        write_ledger_entries(
            self.db,
            draft.ledger_entries,
            invoice=invoice,
            technician_id=payload.technician_id,
            technician_name=payload.technician_name,
            ticket_id=ticket.id,
            timestamp=now,
        )

        # Denormalized ticket update, owned by the ticketing feature
        ticket.invoice_ids = [*(ticket.invoice_ids or []), invoice.id]
        ticket.comments = [
            *(ticket.comments or []),
            {
                "id": str(uuid4()),
                "content": (
                    f"New invoice {invoice_number} created with total "
                    f"{draft.total_amount:,.0f} {self.currency}."
                ),
                "user_id": payload.technician_id,
                "user_name": payload.technician_name,
                "timestamp": now.isoformat(),
                "is_status_change": False,
            },
        ]
        ticket.last_updated = now
        self.db.flush()

        return invoice, draft
