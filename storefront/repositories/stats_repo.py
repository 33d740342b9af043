# storefront/repositories/stats_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, col, select

from storefront.models.order import Order, OrderStatus

REVENUE_STATUSES = (
    OrderStatus.PAID.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
)


class StatsRepository:
    """
    Read-only aggregated queries for the admin and rider dashboards.
    """

    def count_orders(self, session: Session, status: str | None = None) -> int:
        stmt = select(func.count()).select_from(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        value = session.exec(stmt).one()
        return int(value or 0)

    def total_revenue(self, session: Session) -> float:
        """
        Sum of total_amount over orders that have been paid for
        (paid, shipped or delivered).
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total_amount), 0.0))
            .where(col(Order.status).in_(REVENUE_STATUSES))
        )
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def latest_orders(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[Order]:
        """
        Latest N orders by created_at (any status).
        """
        stmt = select(Order).order_by(col(Order.created_at).desc()).limit(limit)
        return list(session.exec(stmt).all())

    def rider_status_counts(
        self,
        session: Session,
        rider_id: uuid.UUID,
    ) -> dict[str, int]:
        """Number of orders per status assigned to one rider."""
        stmt = (
            select(Order.status, func.count())
            .where(Order.rider_id == rider_id)
            .group_by(Order.status)
        )
        return {status: int(count) for status, count in session.exec(stmt).all()}

    def rider_delivered_between(
        self,
        session: Session,
        rider_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(
                Order.rider_id == rider_id,
                Order.status == OrderStatus.DELIVERED.value,
                Order.delivered_at >= start,
                Order.delivered_at < end,
            )
        )
        value = session.exec(stmt).one()
        return int(value or 0)

    def rider_recent_orders(
        self,
        session: Session,
        rider_id: uuid.UUID,
        limit: int = 5,
    ) -> list[Order]:
        """Most recently assigned orders of one rider, any status."""
        stmt = (
            select(Order)
            .where(Order.rider_id == rider_id)
            .order_by(col(Order.assigned_at).desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())
