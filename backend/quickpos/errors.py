# Overview: Exception taxonomy shared by services and routes.

from __future__ import annotations


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level unknown product, customer or transaction id."""


class PersistenceError(RuntimeError):
    """Storage unreachable, or a write that kept failing after retries."""


class CheckoutError(Exception):
    """Raised when a cart cannot be checked out. Nothing has been written."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFound(CheckoutError):
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})
        self.product_id = product_id


class InsufficientStock(CheckoutError):
    def __init__(self, product_name: str, details: dict | None = None):
        super().__init__(f"Insufficient stock for {product_name}", details=details)
        self.product_name = product_name


class InsufficientPayment(CheckoutError):
    pass
