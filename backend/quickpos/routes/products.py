# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/quickpos/routes/products.py
"""
Catalog routes.

- GET  /api/products?search=&category=   browse (category "All" = no filter)
- GET  /api/products/categories          distinct categories
- GET  /api/products/<id>                one product
- POST /api/products                     create (409 on duplicate SKU)
- PUT  /api/products/<id>                partial update
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "sku": "sku",
        "category": "category",
        "price": "price_cents",
        "cost": "cost_cents",
        "stock": "stock",
        "taxRatePercent": "tax_rate_bps",
    },
    required_on_create=frozenset({"name", "sku", "price"}),
    money_fields=frozenset({"price", "cost"}),
    percent_fields=frozenset({"taxRatePercent"}),
    # Register clients send the product tax rate as "tax"
    aliases={"tax": "taxRatePercent"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    Query params:
    - search: str (optional) - substring of name or SKU, case-insensitive
    - category: str (optional) - exact category, "All" for every category
    """
    search = request.args.get("search")
    category = request.args.get("category")
    products = products_service.list_products(search=search, category=category)
    return jsonify([p.to_dict() for p in products])


@products_bp.get("/categories")
def list_categories():
    return jsonify(products_service.list_categories())


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(patch=patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    current_app.logger.info("Created product id=%s sku=%s", created.id, created.sku)
    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError:
        return jsonify({"error": "Not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(updated.to_dict()), 200
