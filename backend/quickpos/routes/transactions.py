# Overview: Flask API routes for checkout and the transaction ledger.

# backend/quickpos/routes/transactions.py
"""Checkout and ledger routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import CheckoutError, NotFoundError, PersistenceError, ValidationError
from ..services import checkout_service
from ..validation import validate_checkout_payload


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
def checkout_route():
    """
    Check out a cart.

    Body: {items: [{productId, qty}], customerId?, paymentMethod, amountPaid?}
    Returns the completed transaction (201) or {error, details} (400).
    """
    try:
        data = validate_checkout_payload(request.get_json(silent=True))
        tx = checkout_service.checkout(
            data["items"],
            customer_id=data["customer_id"],
            payment_method=data["payment_method"],
            amount_paid_cents=data["amount_paid_cents"],
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CheckoutError as e:
        current_app.logger.warning("Checkout rejected: %s", e)
        return jsonify({"error": str(e), "details": e.details}), 400
    except PersistenceError:
        current_app.logger.exception("Checkout could not be persisted")
        return jsonify({"error": "Could not record transaction, please retry"}), 500
    except Exception:
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info(
        "Checkout completed invoice=%s total_cents=%s method=%s",
        tx.invoice_number, tx.grand_total_cents, tx.payment_method,
    )
    return jsonify(tx.to_dict()), 201


@transactions_bp.get("")
def list_transactions_route():
    """All transactions, newest first."""
    return jsonify([tx.to_dict() for tx in checkout_service.list_transactions()])


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        tx = checkout_service.get_transaction(transaction_id)
    except NotFoundError:
        return jsonify({"error": "Not found"}), 404
    return jsonify(tx.to_dict())


@transactions_bp.get("/invoice/<string:invoice_number>")
def get_transaction_by_invoice_route(invoice_number: str):
    try:
        tx = checkout_service.get_transaction_by_invoice(invoice_number)
    except NotFoundError:
        return jsonify({"error": "Not found"}), 404
    return jsonify(tx.to_dict())
