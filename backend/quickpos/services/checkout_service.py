"""
Checkout Service - cart to completed transaction

WHY: A checkout touches the catalog (stock), the invoice counter and the
ledger. All three change in one database transaction or not at all.

Flow (inside one write transaction):
1. lock every product in the cart, ascending id order
2. reject unknown products and carts that exceed stock
3. price lines from the locked snapshot, settle payment
4. decrement stock, allocate the invoice number, insert the ledger row
5. commit
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, PersistenceError, ProductNotFound, InsufficientStock, ValidationError
from ..extensions import db
from ..models import Product, Transaction, TransactionLine
from ..time_utils import utcnow
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .customers_service import resolve_customer
from .document_service import next_invoice_number
from .pricing import PAYMENT_METHODS, price_cart, price_line, settle_payment
from .products_service import decrement_stock


STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


def _cart_lines(items: Iterable) -> list[CartLine]:
    lines = []
    for item in items or []:
        if isinstance(item, CartLine):
            lines.append(item)
        else:
            lines.append(CartLine(product_id=item["product_id"], quantity=item["quantity"]))

    if not lines:
        raise ValidationError("Cart is empty")
    for line in lines:
        if line.quantity is None or line.quantity <= 0:
            raise ValidationError(f"Quantity for product {line.product_id} must be > 0")
    return lines


def _lock_products(product_ids: Iterable[int]) -> dict[int, Product]:
    # Fixed id order so two multi-item carts never wait on each other in a cycle
    query = (
        db.session.query(Product)
        .filter(Product.id.in_(sorted(set(product_ids))))
        .order_by(Product.id.asc())
        .populate_existing()
    )
    return {p.id: p for p in lock_for_update(query).all()}


def _validate_stock(lines: list[CartLine], products: dict[int, Product]) -> dict[int, int]:
    for line in lines:
        if line.product_id not in products:
            raise ProductNotFound(line.product_id)

    # The same product may appear on several lines; stock covers the sum
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    for product_id, qty in requested.items():
        product = products[product_id]
        if product.stock < qty:
            raise InsufficientStock(
                product.name,
                details={
                    "product_id": product_id,
                    "requested_quantity": qty,
                    "on_hand": product.stock,
                },
            )
    return requested


def _checkout_locked(
    lines: list[CartLine],
    *,
    customer_id: int | None,
    payment_method: str,
    amount_paid_cents: int | None,
    occurred_at: datetime | None,
) -> Transaction:
    products = _lock_products(line.product_id for line in lines)
    requested = _validate_stock(lines, products)

    priced = []
    for line in lines:
        product = products[line.product_id]
        priced.append((product, price_line(product.price_cents, product.tax_rate_bps, line.quantity)))

    totals = price_cart(price for _, price in priced)
    settlement = settle_payment(payment_method, totals.grand_total_cents, amount_paid_cents)
    customer = resolve_customer(customer_id)

    for product_id, qty in requested.items():
        decrement_stock(products[product_id], qty)

    sequence_number, invoice_number = next_invoice_number()

    tx = Transaction(
        id=sequence_number,
        invoice_number=invoice_number,
        created_at=occurred_at or utcnow(),
        customer_id=customer.id,
        customer_name=customer.name,
        subtotal_cents=totals.subtotal_cents,
        tax_cents=totals.tax_cents,
        grand_total_cents=totals.grand_total_cents,
        payment_method=settlement.payment_method,
        amount_paid_cents=settlement.amount_paid_cents,
        change_cents=settlement.change_cents,
        status=STATUS_COMPLETED,
    )
    for position, (product, price) in enumerate(priced, start=1):
        tx.lines.append(TransactionLine(
            position=position,
            product_id=product.id,
            name=product.name,
            sku=product.sku,
            unit_price_cents=price.unit_price_cents,
            quantity=price.quantity,
            tax_rate_bps=price.tax_rate_bps,
            tax_cents=price.tax_cents,
            line_total_cents=price.line_total_cents,
            line_grand_cents=price.line_grand_cents,
        ))

    db.session.add(tx)
    db.session.flush()
    return tx


def checkout(
    items: Iterable,
    *,
    payment_method: str,
    customer_id: int | None = None,
    amount_paid_cents: int | None = None,
    occurred_at: datetime | None = None,
) -> Transaction:
    """
    Convert a cart into a completed, persisted transaction.

    items: CartLine objects or {"product_id", "quantity"} dicts.

    Raises:
        ValidationError: empty cart, quantity <= 0, unknown payment method
        ProductNotFound / InsufficientStock / InsufficientPayment
        PersistenceError: the database rejected the write or stayed locked

    On any error nothing is written: no stock change, no ledger row and no
    invoice number consumed.
    """
    lines = _cart_lines(items)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")

    def _op():
        begin_write_transaction()
        try:
            tx = _checkout_locked(
                lines,
                customer_id=customer_id,
                payment_method=payment_method,
                amount_paid_cents=amount_paid_cents,
                occurred_at=occurred_at,
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return tx

    attempts = current_app.config.get("CHECKOUT_RETRY_ATTEMPTS", 3)
    try:
        return run_with_retry(_op, attempts=attempts)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Could not record transaction") from exc


def list_transactions(limit: int | None = None) -> list[Transaction]:
    """Ledger, newest first."""
    query = db.session.query(Transaction).order_by(Transaction.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_transaction(transaction_id: int) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if not tx:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return tx


def get_transaction_by_invoice(invoice_number: str) -> Transaction:
    tx = db.session.query(Transaction).filter_by(invoice_number=invoice_number).first()
    if not tx:
        raise NotFoundError(f"Invoice {invoice_number} not found")
    return tx
