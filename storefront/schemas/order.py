# storefront/schemas/order.py
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from storefront.models.order import OrderStatus, PaymentMethod

DeliveryOutcome = Literal["delivered", "undelivered"]


class CheckoutItem(SQLModel):
    """
    One requested line: which variant of which product, how many.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    variant_id: uuid.UUID
    quantity: int = Field(gt=0)


class ShippingAddress(SQLModel):
    model_config = ConfigDict(extra="forbid")

    street: str
    city: str
    state: str
    zip_code: str
    country: str = "USA"

    @field_validator("street", "city", "state", "zip_code", "country")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CustomerInfo(SQLModel):
    """
    Contact details for the order.

    Blank fields fall back to the customer's profile at checkout.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None

    @field_validator("name", "phone")
    @classmethod
    def normalize(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class CheckoutRequest(SQLModel):
    """
    Payload for creating an order.

    User provides:
      - items (optional; when omitted the current cart is checked out)
      - shipping_address
      - customer_info
      - payment_method
      - notes (optional)

    Backend derives:
      - customer_id from token
      - status = 'pending'
      - prices from the live catalog, subtotal / tax / shipping / total
    """

    model_config = ConfigDict(extra="forbid")

    items: list[CheckoutItem] | None = None
    shipping_address: ShippingAddress | None = None
    customer_info: CustomerInfo | None = None
    payment_method: PaymentMethod = PaymentMethod.CARD
    notes: str | None = None

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    customer_name: str
    customer_email: str
    customer_phone: str
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    subtotal: float
    tax: float
    shipping_cost: float
    total_amount: float
    status: OrderStatus
    payment_method: PaymentMethod
    transaction_id: str | None = None
    paid_at: datetime | None = None
    rider_id: uuid.UUID | None = None
    assigned_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    undelivered_reason: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: uuid.UUID
    product_name: str
    product_image: str | None = None
    color: str | None = None
    size: str | None = None
    sku: str | None = None
    unit_price: float
    quantity: int
    subtotal: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderTrackingRead(SQLModel):
    """
    Public tracking view; only what an anonymous caller may see.
    """

    order_number: str
    status: OrderStatus
    created_at: datetime
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    rider_name: str | None = None


class RiderDeliveryHistory(SQLModel):
    """
    One page of a rider's finished deliveries.

    `summary` counts every matching order per status, not just this page.
    """

    orders: list[OrderRead]
    summary: dict[str, int]
    total: int
    skip: int
    limit: int


class RiderRoute(SQLModel):
    """Today's shipped orders for one rider, sorted by zip code."""

    day: date
    total_orders: int
    orders: list[OrderWithItemsRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status (and assign a rider).
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    rider_id: uuid.UUID | None = None


class PaymentConfirmation(SQLModel):
    """
    Simulated payment result posted by the customer.
    """

    model_config = ConfigDict(extra="forbid")

    transaction_id: str | None = None


class DeliveryUpdate(SQLModel):
    """
    Rider payload: outcome of a delivery attempt.
    """

    model_config = ConfigDict(extra="forbid")

    status: DeliveryOutcome
    reason: str | None = None
