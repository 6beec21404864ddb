import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from quickpos.errors import (
    InsufficientPayment,
    InsufficientStock,
    NotFoundError,
    PersistenceError,
    ProductNotFound,
    ValidationError,
)
from quickpos.models import DocumentSequence, Product, Transaction
from quickpos.services import checkout_service
from quickpos.services.checkout_service import CartLine


def _stock(session, product_id):
    return session.get(Product, product_id).stock


def _ledger_size(session):
    return session.query(Transaction).count()


class TestCheckoutTotals:
    def test_single_line_card_checkout(self, db_session, catalog):
        pen = catalog["OFF-001"]

        tx = checkout_service.checkout(
            [CartLine(product_id=pen.id, quantity=2)],
            payment_method="card",
        )

        data = tx.to_dict()
        assert data["subtotal"] == 25.98
        assert data["taxTotal"] == 3.90
        assert data["grandTotal"] == 29.88
        assert data["amountPaid"] == 29.88
        assert data["change"] == 0
        assert data["status"] == "completed"
        assert data["items"][0]["lineTotal"] == 25.98
        assert data["items"][0]["taxAmount"] == 3.90
        assert data["items"][0]["lineGrand"] == 29.88
        assert _stock(db_session, pen.id) == 148

    def test_mixed_rates_round_tax_per_line(self, db_session, make_product):
        a = make_product(sku="TINY-A", name="Tiny A", price_cents=5, tax_rate_bps=1000)
        b = make_product(sku="TINY-B", name="Tiny B", price_cents=15, tax_rate_bps=500)

        tx = checkout_service.checkout(
            [{"product_id": a.id, "quantity": 1}, {"product_id": b.id, "quantity": 1}],
            payment_method="card",
        )

        assert tx.subtotal_cents == 20
        assert tx.tax_cents == 2
        assert tx.grand_total_cents == 22

    def test_lines_keep_cart_order_and_snapshot(self, db_session, catalog):
        calc, pen = catalog["ELC-001"], catalog["OFF-001"]

        tx = checkout_service.checkout(
            [CartLine(calc.id, 1), CartLine(pen.id, 3)],
            payment_method="bank_transfer",
        )

        # Later catalog edits must not rewrite the sale
        product = db_session.get(Product, pen.id)
        product.price_cents = 9999
        product.name = "Renamed Pen"
        db_session.commit()

        items = checkout_service.get_transaction(tx.id).to_dict()["items"]
        assert [item["sku"] for item in items] == ["ELC-001", "OFF-001"]
        assert items[1]["name"] == "Ballpoint Pen (Box)"
        assert items[1]["unitPrice"] == 12.99
        assert items[1]["taxRatePercent"] == 15


class TestCheckoutFailures:
    def test_insufficient_stock_leaves_everything_unchanged(self, db_session, catalog):
        pen, mouse = catalog["OFF-001"], catalog["ELC-003"]

        with pytest.raises(InsufficientStock) as exc:
            checkout_service.checkout(
                [CartLine(pen.id, 5), CartLine(mouse.id, 13)],
                payment_method="card",
            )

        assert "Wireless Mouse" in str(exc.value)
        assert exc.value.details["on_hand"] == 12
        assert _stock(db_session, pen.id) == 150
        assert _stock(db_session, mouse.id) == 12
        assert _ledger_size(db_session) == 0

    def test_repeated_product_lines_are_checked_together(self, db_session, catalog):
        mouse = catalog["ELC-003"]

        with pytest.raises(InsufficientStock):
            checkout_service.checkout(
                [CartLine(mouse.id, 7), CartLine(mouse.id, 6)],
                payment_method="card",
            )
        assert _stock(db_session, mouse.id) == 12

    def test_unknown_product(self, db_session, catalog):
        pen = catalog["OFF-001"]

        with pytest.raises(ProductNotFound) as exc:
            checkout_service.checkout(
                [CartLine(pen.id, 1), CartLine(987654, 1)],
                payment_method="card",
            )

        assert exc.value.product_id == 987654
        assert _stock(db_session, pen.id) == 150
        assert _ledger_size(db_session) == 0

    def test_empty_cart_is_rejected(self, db_session, catalog):
        with pytest.raises(ValidationError):
            checkout_service.checkout([], payment_method="cash", amount_paid_cents=100)
        assert _ledger_size(db_session) == 0

    def test_non_positive_quantity_is_rejected(self, db_session, catalog):
        with pytest.raises(ValidationError):
            checkout_service.checkout([CartLine(catalog["OFF-001"].id, 0)], payment_method="card")

    def test_unknown_payment_method(self, db_session, catalog):
        with pytest.raises(ValidationError):
            checkout_service.checkout([CartLine(catalog["OFF-001"].id, 1)], payment_method="cheque")

    def test_failed_checkout_does_not_consume_invoice_number(self, db_session, catalog):
        pen = catalog["OFF-001"]
        first = checkout_service.checkout([CartLine(pen.id, 1)], payment_method="card")

        with pytest.raises(InsufficientPayment):
            checkout_service.checkout([CartLine(pen.id, 1)], payment_method="cash", amount_paid_cents=1)

        second = checkout_service.checkout([CartLine(pen.id, 1)], payment_method="card")
        assert first.invoice_number == "INV-01001"
        assert second.invoice_number == "INV-01002"
        assert _stock(db_session, pen.id) == 148

    @pytest.mark.parametrize("error", [
        OperationalError("UPDATE document_sequences", {}, Exception("database is locked")),
        IntegrityError("INSERT INTO transactions", {}, Exception("UNIQUE constraint failed")),
    ])
    def test_database_failure_after_stock_decrement_rolls_back(self, db_session, catalog, monkeypatch, error):
        pen = catalog["OFF-001"]
        checkout_service.checkout([CartLine(pen.id, 1)], payment_method="card")

        def failing_invoice_number():
            raise error

        monkeypatch.setattr(checkout_service, "next_invoice_number", failing_invoice_number)

        with pytest.raises(PersistenceError):
            checkout_service.checkout([CartLine(pen.id, 3)], payment_method="card")

        db_session.expire_all()
        assert _stock(db_session, pen.id) == 149
        assert _ledger_size(db_session) == 1
        seq = db_session.query(DocumentSequence).filter_by(document_type="INVOICE").one()
        assert seq.next_number == 1002


class TestPayment:
    def test_cash_underpayment(self, db_session, catalog):
        pen = catalog["OFF-001"]

        with pytest.raises(InsufficientPayment):
            checkout_service.checkout([CartLine(pen.id, 2)], payment_method="cash", amount_paid_cents=2987)

        assert _stock(db_session, pen.id) == 150
        assert _ledger_size(db_session) == 0

    def test_cash_exact_payment(self, db_session, catalog):
        tx = checkout_service.checkout(
            [CartLine(catalog["OFF-001"].id, 2)], payment_method="cash", amount_paid_cents=2988,
        )
        assert tx.change_cents == 0
        assert tx.amount_paid_cents == 2988

    def test_cash_overpayment_returns_change(self, db_session, catalog):
        tx = checkout_service.checkout(
            [CartLine(catalog["OFF-001"].id, 2)], payment_method="cash", amount_paid_cents=5000,
        )
        assert tx.to_dict()["change"] == 20.12

    def test_card_ignores_amount_paid(self, db_session, catalog):
        tx = checkout_service.checkout(
            [CartLine(catalog["OFF-001"].id, 2)], payment_method="card", amount_paid_cents=100000,
        )
        assert tx.amount_paid_cents == tx.grand_total_cents == 2988
        assert tx.change_cents == 0


class TestCustomerAndNumbering:
    def test_unknown_customer_falls_back_to_walk_in(self, db_session, catalog, customers):
        tx = checkout_service.checkout(
            [CartLine(catalog["OFF-001"].id, 1)], payment_method="card", customer_id=4242,
        )
        assert tx.to_dict()["customer"] == {"id": 1, "name": "Walk-in Customer"}

    def test_known_customer_is_snapshotted(self, db_session, catalog, customers):
        tx = checkout_service.checkout(
            [CartLine(catalog["OFF-001"].id, 1)], payment_method="card", customer_id=2,
        )
        assert tx.customer_name == "Gulf Trading Co."

    def test_walk_in_created_when_directory_is_empty(self, db_session, catalog):
        tx = checkout_service.checkout([CartLine(catalog["OFF-001"].id, 1)], payment_method="card")
        assert tx.customer_id == 1
        assert tx.customer_name == "Walk-in Customer"

    def test_invoice_numbers_are_sequential(self, db_session, catalog):
        pen = catalog["OFF-001"]
        txs = [checkout_service.checkout([CartLine(pen.id, 1)], payment_method="card") for _ in range(3)]

        assert [tx.id for tx in txs] == [1001, 1002, 1003]
        assert [tx.invoice_number for tx in txs] == ["INV-01001", "INV-01002", "INV-01003"]
        seq = db_session.query(DocumentSequence).filter_by(document_type="INVOICE").one()
        assert seq.next_number == 1004


class TestLedgerQueries:
    def test_list_newest_first(self, db_session, catalog):
        pen = catalog["OFF-001"]
        for _ in range(3):
            checkout_service.checkout([CartLine(pen.id, 1)], payment_method="card")

        assert [tx.id for tx in checkout_service.list_transactions()] == [1003, 1002, 1001]
        assert [tx.id for tx in checkout_service.list_transactions(limit=2)] == [1003, 1002]

    def test_lookup_by_id_and_invoice(self, db_session, catalog):
        tx = checkout_service.checkout([CartLine(catalog["OFF-001"].id, 1)], payment_method="card")

        assert checkout_service.get_transaction(tx.id).invoice_number == "INV-01001"
        assert checkout_service.get_transaction_by_invoice("INV-01001").id == tx.id
        with pytest.raises(NotFoundError):
            checkout_service.get_transaction(1)
        with pytest.raises(NotFoundError):
            checkout_service.get_transaction_by_invoice("INV-99999")
