"""
Item Catalog Service

Reads a team's item catalog. The catalog belongs to the settings feature and is
never written from here. When it is missing or unreadable the caller-supplied
default catalog keeps invoicing usable.
"""
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import CatalogUnavailableError
from app.logging_config import get_logger
from app.models.catalog import ItemCatalogRecord
from app.schemas.catalog import ItemCatalog

logger = get_logger(__name__)


def load_catalog(
    db: Session,
    team_id: Optional[str],
    default: Optional[ItemCatalog] = None,
) -> ItemCatalog:
    """
    Load the catalog for a team.

    A failed read rolls the session back, expiring everything loaded in the
    current transaction. Call this before reading rows you intend to write.

    Args:
        db: Database session
        team_id: Team whose catalog to read (None reads nothing)
        default: Catalog to use when the team catalog is absent or unreadable

    Returns:
        The team catalog, or ``default`` tagged with the team id

    Raises:
        CatalogUnavailableError: No team catalog could be read and no default given
    """
    reason = "no catalog configured"
    if team_id:
        try:
            record = db.query(ItemCatalogRecord).filter(
                ItemCatalogRecord.team_id == team_id
            ).first()
        except SQLAlchemyError as e:
            db.rollback()
            record = None
            reason = f"catalog read failed: {e}"
        if record is not None:
            try:
                return ItemCatalog.model_validate({**(record.catalog or {}), "team_id": team_id})
            except PydanticValidationError as e:
                reason = f"catalog is malformed: {e.error_count()} errors"

    if default is None:
        logger.error(
            f"Item catalog unavailable for team {team_id}: {reason}",
            extra={"team_id": team_id},
        )
        raise CatalogUnavailableError(team_id)

    logger.warning(
        f"Using default item catalog for team {team_id}: {reason}",
        extra={"team_id": team_id},
    )
    return default.model_copy(update={"team_id": team_id})
