"""
Invoice Endpoints

Saving an invoice consumes the technician's stock (FIFO by lot, deficits for
what is missing) and writes the invoice, the ledger rows and the ticket update
in one commit.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_invoice_service
from app.db.session import get_db
from app.exceptions import NotFoundError
from app.logging_config import get_logger
from app.models.invoice import Invoice
from app.schemas.common import ErrorResponse
from app.schemas.invoice import InvoiceCreate, InvoicePreview, InvoiceResponse, InvoiceSaveResult
from app.services.invoice_service import InvoiceService

router = APIRouter()
logger = get_logger(__name__)

SAVE_ERRORS = {
    404: {"model": ErrorResponse, "description": "Ticket not found"},
    409: {"model": ErrorResponse, "description": "Stock kept changing, nothing saved"},
    500: {"model": ErrorResponse, "description": "Commit failed, nothing saved"},
    503: {"model": ErrorResponse, "description": "No item catalog available"},
}


@router.post(
    "/tickets/{ticket_id}/invoices",
    response_model=InvoiceSaveResult,
    status_code=status.HTTP_201_CREATED,
    responses=SAVE_ERRORS,
)
def create_invoice(
    ticket_id: int,
    payload: InvoiceCreate,
    service: InvoiceService = Depends(get_invoice_service),
):
    """
    Save an invoice for a ticket.

    Insufficient stock never blocks the save: the response lists the shortages
    and any catalog names that could not be resolved.
    """
    logger.info(
        f"Saving invoice for ticket {ticket_id} with {len(payload.items)} line items",
        extra={"ticket_id": ticket_id, "technician_id": payload.technician_id},
    )
    return service.save_invoice(ticket_id, payload)


@router.post(
    "/tickets/{ticket_id}/invoices/preview",
    response_model=InvoicePreview,
    responses={k: v for k, v in SAVE_ERRORS.items() if k in (404, 503)},
)
def preview_invoice(
    ticket_id: int,
    payload: InvoiceCreate,
    service: InvoiceService = Depends(get_invoice_service),
):
    """Price an invoice and show the resulting stock without saving anything."""
    return service.preview_invoice(ticket_id, payload)


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    return invoice
