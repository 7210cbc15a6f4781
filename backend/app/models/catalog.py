"""
Item catalog model

Owned by the settings-management feature; the ledger only reads it.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime

from app.db.base import Base


class ItemCatalogRecord(Base):
    """Per-team catalog document (see app.schemas.catalog.ItemCatalog)"""
    __tablename__ = "item_catalogs"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(String(128), unique=True, nullable=False, index=True)

    # package_types, cable_lengths, connector_types, device_models,
    # maintenance_types, hooks, bags
    catalog = Column(JSON, nullable=False, default=dict)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ItemCatalogRecord team={self.team_id}>"
