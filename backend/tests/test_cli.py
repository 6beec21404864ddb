import json

from quickpos.models import Customer, DocumentSequence, Product, Transaction
from quickpos.services.checkout_service import CartLine, checkout


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


def test_seed_is_idempotent(app, db_session):
    first = _invoke(app, "system", "seed")
    second = _invoke(app, "system", "seed")

    assert first.exit_code == 0
    assert "Seeded 8 products" in first.output
    assert "SKIP  OFF-001 already exists" in second.output
    assert db_session.query(Product).count() == 8
    assert db_session.query(Customer).count() == 4
    seq = db_session.query(DocumentSequence).filter_by(document_type="INVOICE").one()
    assert seq.next_number == 1001


def test_wipe_keeps_invoice_numbering(app, db_session, catalog):
    pen = catalog["OFF-001"]
    checkout([CartLine(pen.id, 1)], payment_method="card")

    result = _invoke(app, "system", "wipe", "--yes")

    assert result.exit_code == 0
    assert db_session.query(Transaction).count() == 0
    assert db_session.get(Product, pen.id).stock == 149
    assert "next invoice number 1002" in result.output
    tx = checkout([CartLine(pen.id, 1)], payment_method="card")
    assert tx.invoice_number == "INV-01002"
    assert db_session.query(DocumentSequence).filter_by(document_type="INVOICE").one().next_number == 1003


def test_low_stock_listing(app, db_session, catalog):
    result = _invoke(app, "catalog", "low-stock")
    assert "ELC-003" in result.output
    assert "OFF-001" not in result.output


def test_dashboard_command_prints_json(app, db_session, catalog):
    result = _invoke(app, "sales", "dashboard")
    data = json.loads(result.output)
    assert data["allTime"]["transactions"] == 0
