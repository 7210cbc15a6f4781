"""
Unit Tests for invoice request validation

Malformed line items are rejected before they reach the ledger.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.schemas.catalog import Lot
from app.schemas.invoice import MaintenanceItem, NewInstallationItem

from tests.factories import installation_item, make_invoice_payload


def test_line_item_kind_is_selected_by_type():
    payload = make_invoice_payload([
        installation_item(),
        {"type": "maintenance", "description": "Fix cable", "maintenance_type": "cableReplacement"},
    ])

    assert isinstance(payload.items[0], NewInstallationItem)
    assert isinstance(payload.items[1], MaintenanceItem)


def test_total_price_defaults_to_sale_amount():
    payload = make_invoice_payload([installation_item(unit_price="2500", quantity=3)])

    assert payload.items[0].total_price == Decimal("7500")


def test_description_is_stripped():
    payload = make_invoice_payload([installation_item(description="  Install  ")])

    assert payload.items[0].description == "Install"


@pytest.mark.parametrize("bad_item", [
    {"description": "   "},
    {"type": "teleportation"},
    {"quantity": 0},
    {"quantity": -2},
    {"unit_price": "-1"},
])
def test_malformed_line_items_are_rejected(bad_item):
    with pytest.raises(ValidationError):
        make_invoice_payload([installation_item(**bad_item)])


def test_missing_type_is_rejected():
    item = installation_item()
    del item["type"]

    with pytest.raises(ValidationError):
        make_invoice_payload([item])


def test_empty_invoice_is_rejected():
    with pytest.raises(ValidationError):
        make_invoice_payload([])


def test_cable_length_number_becomes_text():
    payload = make_invoice_payload([installation_item(cable_length=30)])

    assert payload.items[0].cable_length == "30"


def test_lot_dates_are_stored_as_naive_utc():
    lot = Lot(date_added=datetime(2026, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=3))), purchase_price="")

    assert lot.date_added == datetime(2026, 1, 1, 0, 0)
    assert lot.purchase_price == Decimal("0")
