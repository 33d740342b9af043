# storefront/routers/admin.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth, require_capability
from storefront.core.permissions import Capability
from storefront.database import get_session
from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.repositories.inventory_repo import InventoryRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.stats_repo import StatsRepository
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import OrderRead, OrderStatusUpdate, OrderWithItemsRead
from storefront.schemas.stats import AdminDashboardStats, RiderSummary
from storefront.services.inventory_service import InventoryLedger
from storefront.services.order_service import OrderService
from storefront.services.stats_service import StatsService
from storefront.services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])

user_repo = UserRepository()
user_service = UserService(user_repo)
service = OrderService(
    OrderRepository(),
    user_repo,
    user_service,
    InventoryLedger(InventoryRepository()),
)
stats_service = StatsService(StatsRepository(), user_service)

require_admin = require_capability(Capability.VIEW_ALL_ORDERS)


@router.get(
    "/orders",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    status: OrderStatus | None = None,
    rider_id: uuid.UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders, newest first.

    Query params (optional):
      - status, rider_id
      - start_date / end_date: inclusive creation days (UTC)
      - search: matches order number, customer name or email
    """
    return service.list_admin(
        session,
        status=status,
        rider_id=rider_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.patch(
    "/orders/{order_id}/status",
    response_model=OrderWithItemsRead,
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Move an order along the state machine.

      pending     -> paid, cancelled
      paid        -> processing, shipped, cancelled
      processing  -> shipped, cancelled
      shipped     -> delivered, undelivered
      undelivered -> shipped

    Each edge is authorized on its own capability; shipping requires
    `rider_id` of an active rider.
    """
    return service.update_status(session, current_user, order_id, payload)


@router.get(
    "/stats",
    response_model=AdminDashboardStats,
    dependencies=[Depends(require_admin)],
)
def get_admin_dashboard_stats(
    session: Session = Depends(get_session),
    latest: int = 5,
):
    """
    Aggregated statistics for the admin dashboard.
    """
    return stats_service.get_admin_dashboard_stats(session, latest_n_orders=latest)


@router.get(
    "/riders",
    response_model=list[RiderSummary],
    dependencies=[Depends(require_admin)],
)
def list_riders(session: Session = Depends(get_session)):
    """Active riders with their total and active order counts."""
    return stats_service.list_rider_summaries(session)
