# storefront/models/order.py
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    UNDELIVERED = "undelivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CARD = "card"
    PAYPAL = "paypal"
    COD = "cod"


class Order(SQLModel, table=True):
    """
    Customer order.

    The item list is fixed at checkout. Afterwards only status, payment,
    rider and timestamp columns change, always through the order state
    machine, which bumps `version` on every transition.

    Invariant:
      total_amount = subtotal + tax + shipping_cost
    """

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("customer_id", "idempotency_key", name="uq_orders_idempotency"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Human readable number, e.g. ORD-20260101-1A2B3C",
    )

    customer_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # Customer contact snapshot
    customer_name: str
    customer_email: str
    customer_phone: str

    # Shipping address snapshot
    street: str
    city: str
    state: str
    zip_code: str
    country: str = "USA"

    subtotal: float = Field(ge=0)
    tax: float = Field(default=0, ge=0)
    shipping_cost: float = Field(default=0, ge=0)
    total_amount: float = Field(ge=0)

    status: str = Field(
        default=OrderStatus.PENDING.value,
        index=True,
        description="Order status lifecycle",
    )

    payment_method: str = Field(default=PaymentMethod.CARD.value)
    transaction_id: str | None = None
    paid_at: datetime | None = None

    rider_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )
    assigned_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    undelivered_reason: str | None = None

    notes: str | None = None

    idempotency_key: str | None = Field(
        default=None,
        max_length=255,
        description="Client supplied key making checkout retry-safe",
    )

    version: int = Field(
        default=0,
        description="Incremented by every status transition",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    A frozen copy of the product / variant as it was at checkout; later
    catalog changes never touch it.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(index=True)
    variant_id: uuid.UUID = Field(index=True)

    product_name: str
    product_image: str | None = None
    color: str | None = None
    size: str | None = None
    sku: str | None = None

    unit_price: float = Field(
        ge=0,
        description="Unit price at time of order (pre-tax)",
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    subtotal: float = Field(ge=0)
