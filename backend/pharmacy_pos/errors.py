"""
Domain errors raised by the service layer.

Routes translate these into JSON rejections; every one of them leaves the
database untouched because the raising transaction is rolled back first.
"""

from __future__ import annotations


class PharmacyError(Exception):
    """Base class for domain failures surfaced to the client."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFound(PharmacyError):
    def __init__(self, product_id):
        super().__init__(
            f"Product ID {product_id} not found",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStock(PharmacyError):
    def __init__(self, product_id, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for Product ID {product_id}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidExpiry(PharmacyError):
    """Stock receipt with an expiry date that is not in the future."""


class PaymentShortfall(PharmacyError):
    def __init__(self, total: int, tendered: int):
        super().__init__(
            "Payment amount is less than the sale total",
            details={"total": total, "tendered": tendered},
        )
        self.total = total
        self.tendered = tendered


class StorageError(PharmacyError):
    """Opaque wrapper for database failures that are not domain rejections."""
