from __future__ import annotations

from ..extensions import db
from ..services.pricing import from_cents, bps_to_percent
from ..time_utils import to_utc_z


class Transaction(db.Model):
    """
    Completed checkout (append-only ledger row).

    id is the allocated invoice sequence number, so ids and invoice numbers
    rise together: id 1001 <-> INV-01001.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_transactions_invoice_number"),
        db.Index("ix_transactions_created_at", "created_at"),
        db.Index("ix_transactions_payment_method", "payment_method"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    invoice_number = db.Column(db.String(32), nullable=False)

    # UTC-naive, set by the checkout service
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # Snapshot; the directory row may change later
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    grand_total_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed")

    lines = db.relationship(
        "TransactionLine",
        backref=db.backref("transaction", lazy=True),
        order_by="TransactionLine.position",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "timestamp": to_utc_z(self.created_at),
            "customer": {"id": self.customer_id, "name": self.customer_name},
            "items": [line.to_dict() for line in self.lines],
            "subtotal": from_cents(self.subtotal_cents),
            "taxTotal": from_cents(self.tax_cents),
            "grandTotal": from_cents(self.grand_total_cents),
            "paymentMethod": self.payment_method,
            "amountPaid": from_cents(self.amount_paid_cents),
            "change": from_cents(self.change_cents),
            "status": self.status,
        }


class TransactionLine(db.Model):
    """Line item snapshot of the product as it was sold."""
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    # No FK: the line must outlive any later catalog change
    product_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)  # pre-tax
    line_grand_cents = db.Column(db.Integer, nullable=False)  # with tax

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "sku": self.sku,
            "unitPrice": from_cents(self.unit_price_cents),
            "quantity": self.quantity,
            "taxRatePercent": bps_to_percent(self.tax_rate_bps),
            "taxAmount": from_cents(self.tax_cents),
            "lineTotal": from_cents(self.line_total_cents),
            "lineGrand": from_cents(self.line_grand_cents),
        }
