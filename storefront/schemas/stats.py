# storefront/schemas/stats.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel

from storefront.models.order import OrderStatus
from storefront.schemas.order import OrderRead


class LatestOrderSummary(SQLModel):
    """
    Lightweight info for last N orders.
    """
    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    order_number: str
    created_at: datetime
    customer_id: uuid.UUID
    customer_name: str
    total_amount: float
    status: OrderStatus


class AdminDashboardStats(SQLModel):
    """
    Full payload for admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    total_orders: int
    pending_orders: int
    delivered_orders: int
    total_revenue: float
    latest_orders: list[LatestOrderSummary]


class RiderDashboardStats(SQLModel):
    model_config = ConfigDict(extra="forbid")

    total_deliveries: int
    active_deliveries: int
    completed_deliveries: int
    undelivered: int
    today_deliveries: int
    recent_orders: list[OrderRead]


class RiderSummary(SQLModel):
    """
    Rider roster entry for the admin assignment screen.
    """
    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    name: str
    email: str
    phone: str | None = None
    total_orders: int
    active_orders: int
