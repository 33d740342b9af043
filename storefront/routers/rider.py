# storefront/routers/rider.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_capability
from storefront.core.permissions import Capability
from storefront.database import get_session
from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.repositories.inventory_repo import InventoryRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.stats_repo import StatsRepository
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import (
    DeliveryUpdate,
    OrderRead,
    OrderWithItemsRead,
    RiderDeliveryHistory,
    RiderRoute,
)
from storefront.schemas.stats import RiderDashboardStats
from storefront.services.inventory_service import InventoryLedger
from storefront.services.order_service import OrderService
from storefront.services.stats_service import StatsService
from storefront.services.user_service import UserService

router = APIRouter(prefix="/rider", tags=["Rider"])

user_repo = UserRepository()
user_service = UserService(user_repo)
service = OrderService(
    OrderRepository(),
    user_repo,
    user_service,
    InventoryLedger(InventoryRepository()),
)
stats_service = StatsService(StatsRepository(), user_service)

require_rider = require_capability(Capability.VIEW_ASSIGNED_ORDERS)


@router.get("/orders", response_model=list[OrderRead])
def list_my_deliveries(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_rider),
    status: OrderStatus | None = None,
    day: date | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    Orders assigned to the current rider.

    Defaults to active deliveries (status=shipped). `day` keeps orders
    assigned on that UTC day.
    """
    return service.list_for_rider(session, current_user, status, day, skip, limit)


@router.get("/orders/{order_id}", response_model=OrderWithItemsRead)
def get_my_delivery(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_rider),
):
    return service.get_assigned_order(session, current_user, order_id)


@router.patch("/orders/{order_id}/status", response_model=OrderWithItemsRead)
def update_delivery_status(
    order_id: uuid.UUID,
    payload: DeliveryUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.RECORD_DELIVERY)),
):
    """
    Report the outcome of a delivery: shipped -> delivered | undelivered.

    An undelivered report without a reason gets the default reason.
    """
    return service.record_delivery(session, current_user, order_id, payload)


@router.get("/dashboard", response_model=RiderDashboardStats)
def get_rider_dashboard(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_rider),
):
    return stats_service.get_rider_dashboard_stats(session, current_user)


@router.get("/history", response_model=RiderDeliveryHistory)
def get_delivery_history(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_rider),
    start_date: date | None = None,
    end_date: date | None = None,
    skip: int = 0,
    limit: int = 20,
):
    """
    Finished deliveries (delivered or undelivered), newest first, with a
    per-status summary. Dates are inclusive UTC days.
    """
    return service.delivery_history(session, current_user, start_date, end_date, skip, limit)


@router.get("/today-route", response_model=RiderRoute)
def get_today_route(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_rider),
):
    return service.todays_route(session, current_user)
