"""
Item Catalog Endpoint

Shows the catalog invoices for a team are priced against: the team's own
catalog, or the default one when it can't be read.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_default_catalog
from app.db.session import get_db
from app.schemas.catalog import ItemCatalog
from app.services.catalog_service import load_catalog

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/{team_id}", response_model=ItemCatalog)
def get_effective_catalog(
    team_id: str,
    db: Session = Depends(get_db),
    default_catalog: Optional[ItemCatalog] = Depends(get_default_catalog),
):
    return load_catalog(db, team_id, default_catalog)
