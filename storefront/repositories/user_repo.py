# storefront/repositories/user_repo.py
import uuid

from sqlmodel import Session, select

from storefront.core.permissions import Role
from storefront.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (queries + inserts)
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def list_active_by_role(self, session: Session, role: Role) -> list[User]:
        stmt = (
            select(User)
            .where(User.role == role.value, User.is_active == True)  # noqa: E712
            .order_by(User.name)
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, user: User) -> User:
        """Insert a new User (flushed, not committed)."""
        session.add(user)
        session.flush()
        session.refresh(user)
        return user
