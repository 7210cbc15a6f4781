"""
Technician stock models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, JSON, Index
from datetime import datetime

from app.db.base import Base


class TechnicianStock(Base):
    """
    Per-technician stock record.

    The whole list of stock items (with their lots) lives in ``stock_items`` and is
    always rewritten in full. ``version`` is checked on every UPDATE so a save that
    read an older copy fails with StaleDataError instead of overwriting newer lots.
    """
    __tablename__ = "technician_stocks"

    id = Column(Integer, primary_key=True, index=True)

    # Identity from the auth/profile feature
    technician_id = Column(String(128), unique=True, nullable=False, index=True)
    technician_name = Column(String(255), nullable=True)
    team_id = Column(String(128), nullable=True, index=True)

    # List of StockItem dicts (see app.schemas.stock.StockItem)
    stock_items = Column(JSON, nullable=False, default=list)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<TechnicianStock {self.technician_id}: {len(self.stock_items or [])} items v{self.version}>"


class StockTransaction(Base):
    """
    Stock ledger row - one per consumed requirement.

    Append-only: rows are inserted in the same commit as the stock rewrite and
    never updated or deleted afterwards.
    """
    __tablename__ = "stock_transactions"

    id = Column(Integer, primary_key=True, index=True)

    technician_id = Column(String(128), nullable=False, index=True)
    technician_name = Column(String(255), nullable=True)

    # Item identity
    item_type = Column(String(50), nullable=False)
    item_id = Column(String(128), nullable=False)
    item_name = Column(String(255), nullable=True)

    # Requested quantity, whether or not lots covered it
    quantity = Column(Numeric(18, 4), nullable=False)

    transaction_type = Column(String(50), nullable=False, default="invoice")

    # source_id -> invoices.id
    source_id = Column(Integer, nullable=True, index=True)
    ticket_id = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_stock_transactions_technician_timestamp", "technician_id", "timestamp"),
    )

    def __repr__(self):
        return f"<StockTransaction {self.transaction_type}: {self.item_name} x{self.quantity}>"
