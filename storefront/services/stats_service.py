# storefront/services/stats_service.py
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.repositories.stats_repo import StatsRepository
from storefront.schemas.order import OrderRead
from storefront.schemas.stats import (
    AdminDashboardStats,
    LatestOrderSummary,
    RiderDashboardStats,
    RiderSummary,
)
from storefront.services.order_service import day_bounds
from storefront.services.user_service import UserService

ACTIVE_DELIVERY_STATUSES = (OrderStatus.SHIPPED.value,)
RECENT_RIDER_ORDERS = 5


class StatsService:
    """
    Orchestrates aggregated dashboard statistics for admins and riders.
    """

    def __init__(self, repo: StatsRepository, user_service: UserService):
        self.repo = repo
        self.user_service = user_service

    def get_admin_dashboard_stats(
        self,
        session: Session,
        latest_n_orders: int = 5,
    ) -> AdminDashboardStats:
        latest_orders = [
            LatestOrderSummary(
                id=o.id,
                order_number=o.order_number,
                created_at=o.created_at,
                customer_id=o.customer_id,
                customer_name=o.customer_name,
                total_amount=o.total_amount,
                status=o.status,
            )
            for o in self.repo.latest_orders(session, limit=latest_n_orders)
        ]

        return AdminDashboardStats(
            total_orders=self.repo.count_orders(session),
            pending_orders=self.repo.count_orders(session, OrderStatus.PENDING.value),
            delivered_orders=self.repo.count_orders(session, OrderStatus.DELIVERED.value),
            total_revenue=round(self.repo.total_revenue(session), 2),
            latest_orders=latest_orders,
        )

    def get_rider_dashboard_stats(
        self,
        session: Session,
        rider: User,
        now: datetime | None = None,
    ) -> RiderDashboardStats:
        """
        Counters over the orders assigned to `rider`.

        today_deliveries counts orders delivered on the current UTC day;
        recent_orders are the last `RECENT_RIDER_ORDERS` assignments.
        """
        now = now or datetime.now(timezone.utc)
        counts = self.repo.rider_status_counts(session, rider.id)
        start, end = day_bounds(now.date())

        return RiderDashboardStats(
            total_deliveries=sum(counts.values()),
            active_deliveries=sum(counts.get(s, 0) for s in ACTIVE_DELIVERY_STATUSES),
            completed_deliveries=counts.get(OrderStatus.DELIVERED.value, 0),
            undelivered=counts.get(OrderStatus.UNDELIVERED.value, 0),
            today_deliveries=self.repo.rider_delivered_between(session, rider.id, start, end),
            recent_orders=[
                OrderRead.model_validate(o, from_attributes=True)
                for o in self.repo.rider_recent_orders(session, rider.id, RECENT_RIDER_ORDERS)
            ],
        )

    def list_rider_summaries(self, session: Session) -> list[RiderSummary]:
        """Active riders with their workload, for the assignment screen."""
        summaries: list[RiderSummary] = []
        for rider in self.user_service.list_riders(session):
            counts = self.repo.rider_status_counts(session, rider.id)
            summaries.append(
                RiderSummary(
                    id=rider.id,
                    name=rider.name,
                    email=rider.email,
                    phone=rider.phone,
                    total_orders=sum(counts.values()),
                    active_orders=sum(counts.get(s, 0) for s in ACTIVE_DELIVERY_STATUSES),
                )
            )
        return summaries
