# storefront/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

from storefront.core.permissions import Role


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match the identity provider's user id (UUID from JWT "sub")

    Role:
      - "customer" | "admin" | "rider" (see storefront.core.permissions.Role)

    This table is *not* responsible for credentials. We only mirror identity,
    contact details and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        description="Matches the identity provider's user id",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        description="Display name; first part of email by default",
    )

    phone: str | None = None

    role: str = Field(
        default=Role.CUSTOMER.value,
        index=True,
        description="Application role: customer | admin | rider",
    )

    is_active: bool = Field(
        default=True,
        description="Inactive users cannot authenticate or be assigned orders",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
