# storefront/services/user_service.py
import uuid

from sqlmodel import Session

from storefront.core.errors import InvalidRider
from storefront.core.permissions import Role
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository


class UserService:
    """
    Business rules about users that the order core depends on.

    Responsibilities:
      - resolve a rider that may be assigned an order
      - list assignable riders
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def get_assignable_rider(self, session: Session, rider_id: uuid.UUID) -> User:
        """
        Return the rider if it exists, has role 'rider' and is active.

        Raises:
            InvalidRider: otherwise.
        """
        rider = self.repo.get_by_id(session, rider_id)
        if rider is None or rider.role != Role.RIDER.value or not rider.is_active:
            raise InvalidRider(rider_id)
        return rider

    def list_riders(self, session: Session) -> list[User]:
        """Active riders, by name."""
        return self.repo.list_active_by_role(session, Role.RIDER)
