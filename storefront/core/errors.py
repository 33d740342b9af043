# storefront/core/errors.py
"""
Typed errors raised by the storefront core.

Services never raise HTTPException; they raise one of these and the
exception handler registered in `storefront.main` renders it as

    {"error": <kind>, "message": <text>, "details": {...}}

with the status code from ERROR_STATUS_CODES.
"""

import uuid
from typing import Any


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    kind = "error"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": self.details}


class InvalidRequest(StorefrontError):
    """Raised when required fields are missing or malformed."""

    kind = "invalid_request"


class NotFound(StorefrontError):
    """Raised when a product, variant, cart item, order or user doesn't exist."""

    kind = "not_found"

    def __init__(self, resource: str, resource_id: Any = None):
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        if resource_id is not None:
            msg = f"{resource} {resource_id} not found"
        super().__init__(msg, resource=resource, resource_id=resource_id)


class InsufficientStock(StorefrontError):
    """Raised when a variant cannot back the requested quantity."""

    kind = "insufficient_stock"

    def __init__(
        self,
        variant_id: uuid.UUID,
        requested: int,
        available: int,
        product_name: str | None = None,
        variant_label: str | None = None,
    ):
        self.variant_id = variant_id
        self.requested = requested
        self.available = available

        label = " - ".join(part for part in (product_name, variant_label) if part)
        target = label or f"variant {variant_id}"
        super().__init__(
            f"Insufficient stock for {target}. Only {available} available.",
            variant_id=variant_id,
            product_name=product_name,
            variant=variant_label,
            requested=requested,
            available=available,
        )


class InvalidTransition(StorefrontError):
    """Raised when the order state machine has no edge current -> requested."""

    kind = "invalid_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change status from {current} to {requested}",
            current=current,
            requested=requested,
        )


class RiderRequired(StorefrontError):
    """Raised when an order is moved to shipped without a rider."""

    kind = "rider_required"

    def __init__(self):
        super().__init__("Rider must be assigned for shipping")


class InvalidRider(StorefrontError):
    """Raised when the rider is unknown, inactive or not a rider."""

    kind = "invalid_rider"

    def __init__(self, rider_id: uuid.UUID):
        self.rider_id = rider_id
        super().__init__("Valid rider not found", rider_id=rider_id)


class Unauthorized(StorefrontError):
    """Raised on a role, capability or ownership mismatch."""

    kind = "unauthorized"


class Unauthenticated(StorefrontError):
    """Raised when no valid identity could be resolved for the caller."""

    kind = "unauthenticated"


class Conflict(StorefrontError):
    """
    Raised when a concurrent update was detected.

    The whole operation is safe to retry from a fresh read.
    """

    kind = "conflict"


class StorageFailure(StorefrontError):
    """Raised when the database fails for a reason the core cannot handle."""

    kind = "storage_failure"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage failure during {operation}", operation=operation)


ERROR_STATUS_CODES: dict[type[StorefrontError], int] = {
    InvalidRequest: 400,
    NotFound: 404,
    InsufficientStock: 409,
    InvalidTransition: 400,
    RiderRequired: 400,
    InvalidRider: 400,
    Unauthorized: 403,
    Unauthenticated: 401,
    Conflict: 409,
    StorageFailure: 503,
}
