# Overview: Flask API routes for the customer directory (read-only).

from flask import Blueprint, jsonify

from ..errors import NotFoundError
from ..services import customers_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    return jsonify([c.to_dict() for c in customers_service.list_customers()])


@customers_bp.get("/<int:customer_id>")
def get_customer(customer_id: int):
    try:
        customer = customers_service.get_customer(customer_id)
    except NotFoundError:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify(customer.to_dict())
