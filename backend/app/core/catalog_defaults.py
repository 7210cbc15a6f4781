"""
Built-in item catalog

Used when a team has no catalog configured (or it cannot be read). It is passed
explicitly to the catalog loader so tests and deployments can swap it.
Prices are in the default currency (IQD).
"""
from decimal import Decimal

from app.schemas.catalog import CatalogEntry, ItemCatalog, MaintenanceTypeEntry
from app.schemas.invoice import (
    CABLE_REPLACEMENT,
    CONNECTOR_REPLACEMENT,
    CUSTOM_MAINTENANCE,
    DEVICE_REPLACEMENT,
)


DEFAULT_ITEM_CATALOG = ItemCatalog(
    team_id=None,
    package_types=[
        CatalogEntry(id="pkg1", name="National Fiber 35", price=Decimal("35000")),
        CatalogEntry(id="pkg2", name="National Fiber 50", price=Decimal("45000")),
    ],
    cable_lengths=[
        CatalogEntry(id="cl1", name="Cable 30m", length=Decimal("30"), price=Decimal("10000")),
        CatalogEntry(id="cl2", name="Cable 50m", length=Decimal("50"), price=Decimal("10000")),
        CatalogEntry(id="cl14", name="Custom cable", length=Decimal("0"), price=Decimal("16000"), is_custom=True),
    ],
    connector_types=[
        CatalogEntry(id="ct1", name="Green", price=Decimal("3000")),
        CatalogEntry(id="ct2", name="Blue", price=Decimal("3000")),
    ],
    device_models=[
        CatalogEntry(id="dm1", name="ONU Model A", price=Decimal("15000"), device_type="ONU"),
        CatalogEntry(id="dm3", name="ONT Model C", price=Decimal("25000"), device_type="ONT"),
    ],
    maintenance_types=[
        MaintenanceTypeEntry(
            id=CABLE_REPLACEMENT,
            name="Cable replacement",
            base_price=Decimal("10000"),
            description="Replace the subscriber's cable",
        ),
        MaintenanceTypeEntry(
            id=CONNECTOR_REPLACEMENT,
            name="Connector replacement",
            description="Replace the subscriber's connector",
        ),
        MaintenanceTypeEntry(
            id=DEVICE_REPLACEMENT,
            name="Device replacement",
            description="Replace the receiving device",
        ),
        MaintenanceTypeEntry(
            id=CUSTOM_MAINTENANCE,
            name="Other maintenance",
            description="Other maintenance on request",
        ),
    ],
    hooks=[
        CatalogEntry(id="STANDARD_HOOK_UNIT", name="Hook", price=Decimal("250")),
    ],
    bags=[
        CatalogEntry(id="BAG_ITEM_UNIT", name="Bag", price=Decimal("500")),
    ],
)
