"""
Integration Tests for InvoiceService

Exercises the full save against SQLite:
1. Stock, invoice, ledger and ticket written together
2. Deficits carried across invoices
3. Nothing written when the commit fails
4. Conflicting concurrent saves retried from a fresh read
"""
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

import app.services.invoice_service as invoice_service_module
from app.exceptions import CatalogUnavailableError, CommitConflictError, CommitFailedError, NotFoundError
from app.models.catalog import ItemCatalogRecord
from app.models.inventory import StockTransaction, TechnicianStock
from app.models.invoice import Invoice
from app.models.ticket import ServiceTicket
from app.schemas.catalog import CONNECTOR_TYPE, DEFICIT_BATCH_ID, DEVICE_MODEL
from app.services.invoice_service import InvoiceService

from tests.factories import (
    FEB_1,
    JAN_1,
    NOW,
    create_test_catalog,
    create_test_stock,
    create_test_ticket,
    installation_item,
    load_stock_items,
    make_catalog,
    make_invoice_payload,
    make_lot,
    make_stock_item,
)


def green_stock():
    return [make_stock_item("ct1", item_name="Green", lots=[make_lot(5, 100, JAN_1), make_lot(10, 120, FEB_1)])]


def lot_quantities(stock_items, item_id="ct1"):
    item = next(i for i in stock_items if i.item_id == item_id)
    return [(lot.batch_id, lot.quantity) for lot in item.batches]


@pytest.fixture
def seeded(db_session):
    ticket = create_test_ticket(db_session, customer_name="Zainab Karim", subscriber_id="SUB-77")
    create_test_stock(db_session, "tech-1", green_stock())
    create_test_catalog(db_session, "team-1")
    return ticket


class TestSaveInvoice:

    def test_save_writes_everything(self, db_session, seeded):
        payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=7)])

        result = InvoiceService(db_session).save_invoice(seeded.id, payload, now=NOW)

        invoice = result.invoice
        assert invoice.invoice_number == "INV-2026-000001"
        assert invoice.status == "draft"
        assert invoice.type == "invoice"
        assert invoice.total_amount == Decimal("350000")
        assert invoice.purchase_price == Decimal("740")
        assert invoice.needs_stock_assignment is False
        assert invoice.customer_name == "Zainab Karim"
        assert invoice.subscriber_id == "SUB-77"
        assert invoice.created_by == "tech-1"
        assert result.shortages == []

        assert [q for _, q in lot_quantities(load_stock_items(db_session))] == [Decimal("0"), Decimal("8")]

        rows = db_session.query(StockTransaction).all()
        assert len(rows) == 1
        assert (rows[0].item_type, rows[0].item_id, rows[0].quantity) == (CONNECTOR_TYPE, "ct1", Decimal("7"))
        assert rows[0].transaction_type == "invoice"
        assert rows[0].source_id == invoice.id
        assert rows[0].ticket_id == seeded.id

        ticket = db_session.get(ServiceTicket, seeded.id)
        assert ticket.invoice_ids == [invoice.id]
        assert ticket.comments[-1]["content"] == "New invoice INV-2026-000001 created with total 350,000 IQD."
        assert ticket.comments[-1]["user_id"] == "tech-1"

    def test_stock_row_version_advances(self, db_session, seeded):
        before = db_session.query(TechnicianStock).filter_by(technician_id="tech-1").one().version

        InvoiceService(db_session).save_invoice(
            seeded.id, make_invoice_payload([installation_item()]), now=NOW
        )

        db_session.expire_all()
        after = db_session.query(TechnicianStock).filter_by(technician_id="tech-1").one().version
        assert after == before + 1

    def test_deficit_accumulates_across_invoices(self, db_session, seeded):
        service = InvoiceService(db_session)

        first = service.save_invoice(
            seeded.id, make_invoice_payload([installation_item(quantity=20)]), now=NOW
        )
        second = service.save_invoice(
            seeded.id, make_invoice_payload([installation_item(quantity=2)]), now=NOW
        )

        assert first.invoice.needs_stock_assignment is True
        # 5 x 100 + 10 x 120 + 5 x 130 (team catalog lot)
        assert first.invoice.purchase_price == Decimal("2350")
        assert [(s.required, s.available) for s in first.shortages] == [(Decimal("20"), Decimal("15"))]
        assert second.invoice.invoice_number == "INV-2026-000002"
        assert second.invoice.purchase_price == Decimal("260")

        deficit = [q for b, q in lot_quantities(load_stock_items(db_session)) if b == DEFICIT_BATCH_ID]
        assert deficit == [Decimal("-7")]

        estimated = first.invoice.items[0]["batches_used"][-1]
        assert estimated["batch_id"] == "PENDING_ASSIGNMENT"
        assert estimated["is_estimated"] is True

        ticket = db_session.get(ServiceTicket, seeded.id)
        assert ticket.invoice_ids == [first.invoice.id, second.invoice.id]

    def test_first_save_creates_stock_row(self, db_session, seeded):
        payload = make_invoice_payload(
            [installation_item(connector_type=[], device_model="ONU Model A")],
            technician_id="tech-new",
            technician_name="Omar Saleh",
        )

        result = InvoiceService(db_session).save_invoice(seeded.id, payload, now=NOW)

        row = db_session.query(TechnicianStock).filter_by(technician_id="tech-new").one()
        assert row.technician_name == "Omar Saleh"
        (device,) = load_stock_items(db_session, "tech-new")
        assert (device.item_type, device.item_id) == (DEVICE_MODEL, "dm1")
        assert [(lot.batch_id, lot.quantity) for lot in device.batches] == [(DEFICIT_BATCH_ID, Decimal("-1"))]
        assert result.invoice.purchase_price == Decimal("15000")

    def test_unresolved_names_are_returned(self, db_session, seeded):
        payload = make_invoice_payload([installation_item(connector_type=["Purple"])])

        result = InvoiceService(db_session).save_invoice(seeded.id, payload, now=NOW)

        assert [(u.item_type, u.name) for u in result.unresolved] == [(CONNECTOR_TYPE, "Purple")]
        assert db_session.query(StockTransaction).count() == 0

    def test_default_catalog_when_team_has_none(self, db_session):
        ticket = create_test_ticket(db_session)
        payload = make_invoice_payload([installation_item(connector_type=["Blue"])], team_id="team-9")

        result = InvoiceService(db_session).save_invoice(ticket.id, payload, now=NOW)

        # Default catalog prices Blue at 3000
        assert result.invoice.purchase_price == Decimal("3000")

    def test_no_catalog_without_default_raises(self, db_session):
        ticket = create_test_ticket(db_session)
        payload = make_invoice_payload([installation_item()], team_id="team-9")

        with pytest.raises(CatalogUnavailableError):
            InvoiceService(db_session, default_catalog=None).save_invoice(ticket.id, payload, now=NOW)

        assert db_session.query(Invoice).count() == 0

    def test_unknown_ticket(self, db_session):
        with pytest.raises(NotFoundError):
            InvoiceService(db_session).save_invoice(999, make_invoice_payload([installation_item()]), now=NOW)

        assert db_session.query(Invoice).count() == 0
        assert db_session.query(TechnicianStock).count() == 0


class TestPreviewInvoice:

    def test_preview_writes_nothing(self, db_session, seeded):
        payload = make_invoice_payload([installation_item(quantity=20)])

        preview = InvoiceService(db_session).preview_invoice(seeded.id, payload, now=NOW)

        assert preview.needs_stock_assignment is True
        assert preview.purchase_price == Decimal("2350")
        assert DEFICIT_BATCH_ID in [b for b, _ in lot_quantities(preview.stock_items)]

        db_session.expire_all()
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(StockTransaction).count() == 0
        assert [q for _, q in lot_quantities(load_stock_items(db_session))] == [Decimal("5"), Decimal("10")]

    def test_preview_is_repeatable(self, db_session, seeded):
        payload = make_invoice_payload([installation_item(quantity=12, device_model="ONU Model A")])
        service = InvoiceService(db_session)

        assert service.preview_invoice(seeded.id, payload, now=NOW) == service.preview_invoice(
            seeded.id, payload, now=NOW
        )


class TestAtomicity:

    def test_failed_commit_leaves_no_trace(self, db_session, seeded, monkeypatch):
        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        payload = make_invoice_payload([installation_item(quantity=20)])

        with pytest.raises(CommitFailedError) as exc_info:
            InvoiceService(db_session).save_invoice(seeded.id, payload, now=NOW)
        monkeypatch.undo()

        assert exc_info.value.status_code == 500
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(StockTransaction).count() == 0
        assert [q for _, q in lot_quantities(load_stock_items(db_session))] == [Decimal("5"), Decimal("10")]
        ticket = db_session.get(ServiceTicket, seeded.id)
        assert ticket.invoice_ids == []
        assert ticket.comments == []


class TestConcurrentSaves:
    """Two sessions on a file-backed database, one committing under the other."""

    @pytest.fixture
    def setup_ids(self, file_session_factory):
        db = file_session_factory()
        try:
            stock = green_stock() + [
                make_stock_item("dm1", item_type=DEVICE_MODEL, item_name="ONU Model A", lots=[make_lot(3, 15000, JAN_1)]),
            ]
            first = create_test_ticket(db)
            second = create_test_ticket(db)
            create_test_stock(db, "tech-1", stock)
            create_test_catalog(db, "team-1")
            return first.id, second.id
        finally:
            db.close()

    def _interleave(self, monkeypatch, competing_save, times=1):
        """Run ``competing_save`` right after the service reads stock, ``times`` times."""
        original = invoice_service_module.assemble_invoice
        state = {"remaining": times, "busy": False}

        def assemble_then_compete(*args, **kwargs):
            draft = original(*args, **kwargs)
            if state["remaining"] and not state["busy"]:
                state["remaining"] -= 1
                state["busy"] = True
                try:
                    competing_save()
                finally:
                    state["busy"] = False
            return draft

        monkeypatch.setattr(invoice_service_module, "assemble_invoice", assemble_then_compete)

    def test_disjoint_items_both_applied(self, file_session_factory, setup_ids, monkeypatch):
        first_ticket, second_ticket = setup_ids
        other = file_session_factory()

        def competing_save():
            payload = make_invoice_payload([installation_item(connector_type=[], device_model="ONU Model A")])
            InvoiceService(other).save_invoice(second_ticket, payload, now=NOW)

        self._interleave(monkeypatch, competing_save)
        db = file_session_factory()
        try:
            payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=7)])
            result = InvoiceService(db, max_attempts=3).save_invoice(first_ticket, payload, now=NOW)

            assert result.invoice.invoice_number == "INV-2026-000002"
            stock = load_stock_items(db)
            assert [q for _, q in lot_quantities(stock, "ct1")] == [Decimal("0"), Decimal("8")]
            assert [q for _, q in lot_quantities(stock, "dm1")] == [Decimal("2")]
            # Ledger rows only from the attempt that committed
            assert db.query(StockTransaction).count() == 2
            assert db.query(Invoice).count() == 2
        finally:
            db.close()
            other.close()

    def test_same_item_is_not_double_spent(self, file_session_factory, setup_ids, monkeypatch):
        first_ticket, second_ticket = setup_ids
        other = file_session_factory()

        def competing_save():
            payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=5)])
            InvoiceService(other).save_invoice(second_ticket, payload, now=NOW)

        self._interleave(monkeypatch, competing_save)
        db = file_session_factory()
        try:
            payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=5)])
            result = InvoiceService(db).save_invoice(first_ticket, payload, now=NOW)

            # The January lot went to the competing save; this one pays February prices
            assert result.invoice.purchase_price == Decimal("600")
            assert [q for _, q in lot_quantities(load_stock_items(db))] == [Decimal("0"), Decimal("5")]
        finally:
            db.close()
            other.close()

    def test_gives_up_after_max_attempts(self, file_session_factory, setup_ids, monkeypatch):
        first_ticket, second_ticket = setup_ids
        other = file_session_factory()

        def competing_save():
            payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=1)])
            InvoiceService(other).save_invoice(second_ticket, payload, now=NOW)

        self._interleave(monkeypatch, competing_save, times=2)
        db = file_session_factory()
        try:
            payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=1)])
            with pytest.raises(CommitConflictError) as exc_info:
                InvoiceService(db, max_attempts=2).save_invoice(first_ticket, payload, now=NOW)

            assert exc_info.value.status_code == 409
            assert exc_info.value.details["attempts"] == 2
            invoices = db.query(Invoice).all()
            assert [i.linked_ticket_id for i in invoices] == [second_ticket, second_ticket]
            assert db.query(StockTransaction).count() == 2
        finally:
            db.close()
            other.close()

    def test_catalog_read_failure_does_not_lose_concurrent_save(self, file_session_factory, setup_ids, monkeypatch):
        first_ticket, second_ticket = setup_ids
        other = file_session_factory()
        db = file_session_factory()
        original_query = db.query
        state = {"failed": False}

        def query_with_failing_catalog(*entities, **kwargs):
            if entities and entities[0] is ItemCatalogRecord and not state["failed"]:
                state["failed"] = True
                payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=5)])
                InvoiceService(other).save_invoice(second_ticket, payload, now=NOW)
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return original_query(*entities, **kwargs)

        monkeypatch.setattr(db, "query", query_with_failing_catalog)
        try:
            payload = make_invoice_payload([installation_item(connector_type=["Green"], quantity=5)])
            result = InvoiceService(db, default_catalog=make_catalog()).save_invoice(first_ticket, payload, now=NOW)

            # Default catalog used, stock read after the competing commit
            assert result.invoice.purchase_price == Decimal("600")
            assert [q for _, q in lot_quantities(load_stock_items(db))] == [Decimal("0"), Decimal("5")]
            assert db.query(TechnicianStock).one().version == 3
            assert db.query(Invoice).count() == 2
        finally:
            db.close()
            other.close()
