"""Database models"""
from app.models.catalog import ItemCatalogRecord
from app.models.inventory import TechnicianStock, StockTransaction
from app.models.invoice import Invoice
from app.models.ticket import ServiceTicket

__all__ = [
    # Catalog (read-only)
    "ItemCatalogRecord",
    # Stock
    "TechnicianStock",
    "StockTransaction",
    # Billing
    "Invoice",
    # Ticketing (external collaborator)
    "ServiceTicket",
]
