"""
Invoice model
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, Boolean, JSON
from datetime import datetime

from app.db.base import Base


class Invoice(Base):
    """
    Priced invoice for a service ticket.

    ``items`` holds the processed line items including their cost basis and the
    lots they consumed (see app.schemas.invoice.ProcessedLineItem).
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)  # INV-2026-000001

    linked_ticket_id = Column(Integer, nullable=False, index=True)
    team_id = Column(String(128), nullable=True)
    customer_name = Column(String(255), nullable=True)
    subscriber_id = Column(String(128), nullable=True)

    created_by = Column(String(128), nullable=False)
    creator_name = Column(String(255), nullable=True)

    # draft -> (payment workflows, out of scope)
    status = Column(String(50), nullable=False, default="draft")
    type = Column(String(50), nullable=False, default="invoice")

    items = Column(JSON, nullable=False, default=list)

    total_amount = Column(Numeric(18, 4), nullable=False, default=0)  # sum of sale prices
    purchase_price = Column(Numeric(18, 4), nullable=False, default=0)  # sum of cost bases
    needs_stock_assignment = Column(Boolean, nullable=False, default=False)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Invoice {self.invoice_number}: {self.total_amount} ({self.status})>"
