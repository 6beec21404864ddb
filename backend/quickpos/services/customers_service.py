# Overview: Service-layer operations for the customer directory; read-only lookups plus the walk-in sentinel.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, WALK_IN_CUSTOMER_ID, WALK_IN_CUSTOMER_NAME


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def ensure_walk_in_customer() -> Customer:
    """Return the walk-in sentinel (id 1), creating it if missing. Does not commit."""
    customer = db.session.get(Customer, WALK_IN_CUSTOMER_ID)
    if customer is None:
        customer = Customer(id=WALK_IN_CUSTOMER_ID, name=WALK_IN_CUSTOMER_NAME)
        db.session.add(customer)
        db.session.flush()
    return customer


def resolve_customer(customer_id: int | None) -> Customer:
    """Customer for a sale; absent or unknown ids fall back to the walk-in sentinel."""
    if customer_id is not None:
        customer = db.session.get(Customer, customer_id)
        if customer is not None:
            return customer
    return ensure_walk_in_customer()
