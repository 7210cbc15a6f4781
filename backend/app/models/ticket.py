"""
Service ticket model

Only the fields the invoice save touches. The ticket workflow itself
(accept/arrive/complete, comments UI, attachments) belongs to the ticketing feature.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime

from app.db.base import Base


class ServiceTicket(Base):
    __tablename__ = "service_tickets"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    customer_id = Column(String(128), nullable=True)
    subscriber_id = Column(String(128), nullable=True)
    status = Column(String(50), nullable=True)

    # Denormalized: ids of invoices created for this ticket
    invoice_ids = Column(JSON, nullable=False, default=list)
    # [{id, content, user_id, user_name, timestamp, is_status_change}]
    comments = Column(JSON, nullable=False, default=list)

    # Invoice saves append to invoice_ids; concurrent appends must not drop one
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<ServiceTicket {self.id}: {self.customer_name}>"
