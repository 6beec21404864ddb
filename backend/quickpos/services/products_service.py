# backend/quickpos/services/products_service.py
"""
Catalog store.

Owns Product rows: browsing, create/update, and the stock decrement used by
checkout. Browsing takes no locks; decrement_stock() expects the caller to
hold the row lock (see checkout_service).
"""
from __future__ import annotations

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InsufficientStock, NotFoundError
from ..extensions import db
from ..models import Product

ALL_CATEGORIES = "All"

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "category", "price_cents", "cost_cents", "stock", "tax_rate_bps"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(search: str | None = None, category: str | None = None) -> list[Product]:
    """
    Catalog browse.

    - search: case-insensitive substring of name OR sku
    - category: exact match; None, "" and "All" mean every category
    Ordered by id ascending.
    """
    query = db.session.query(Product)

    if search:
        needle = search.strip().lower()
        for ch in ("\\", "%", "_"):
            needle = needle.replace(ch, "\\" + ch)
        pattern = f"%{needle}%"
        query = query.filter(or_(
            func.lower(Product.name).like(pattern, escape="\\"),
            func.lower(Product.sku).like(pattern, escape="\\"),
        ))

    if category and category != ALL_CATEGORIES:
        query = query.filter(Product.category == category)

    return query.order_by(Product.id.asc()).all()


def list_categories() -> list[str]:
    rows = db.session.query(Product.category).distinct().order_by(Product.category.asc()).all()
    return [row.category for row in rows]


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def _ensure_sku_available(sku: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("SKU already exists.")


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If SKU already exists
    """
    sku = patch.get("sku")
    if sku is None:
        raise ValueError("sku is required")

    _ensure_sku_available(sku)

    p = Product()
    apply_product_patch(p, patch)
    db.session.add(p)

    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent create of the same SKU
        db.session.rollback()
        raise ConflictError("SKU already exists.")
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Partial update: only keys present in patch are written.

    Raises:
        NotFoundError: unknown product_id
        ConflictError: sku changed to one another product already uses
    """
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_sku_available(patch["sku"], exclude_id=p.id)

    apply_product_patch(p, patch)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("SKU already exists.")
    return p


def decrement_stock(product: Product, quantity: int) -> None:
    """
    Remove sold units from a product the caller has locked.

    Does not commit; the caller's transaction decides.
    """
    if quantity <= 0:
        raise ValueError("quantity must be > 0")
    if product.stock < quantity:
        raise InsufficientStock(
            product.name,
            details={
                "product_id": product.id,
                "requested_quantity": quantity,
                "on_hand": product.stock,
            },
        )
    product.stock -= quantity
