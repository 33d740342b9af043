# storefront/core/auth.py
import logging
import uuid
from typing import Any, Callable

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.errors import Unauthenticated, Unauthorized
from storefront.core.permissions import Capability, Role, has_capability
from storefront.database import get_session, transaction
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

# HTTP Bearer scheme:
# - auto_error=False => a missing Authorization header does not raise here,
#   so public routes can share the dependency and we control the error body.
bearer_scheme = HTTPBearer(auto_error=False)

user_repo = UserRepository()


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT).

    Verification:
      - signature (JWT_ALG, HS256 by default, using JWT_SECRET)
      - expiration time (exp), when present
      - audience is NOT verified ('aud' may vary per client)

    Raises:
        Unauthenticated: if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise Unauthenticated("Invalid or expired token") from None


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a bearer JWT.

    Flow:
      1. No Authorization header => anonymous => None.
      2. Decode JWT => 'sub' (user id, UUID) and optional 'email'.
      3. Find the user profile.
      4. Missing profile + email claim => auto-provision a customer.
      5. Inactive users are rejected.

    Raises:
        Unauthenticated: malformed token, missing claims, unknown user
            without an email claim, or inactive user.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub:
        raise Unauthenticated("Token missing sub")

    try:
        user_id = uuid.UUID(str(sub))
    except ValueError:
        raise Unauthenticated("Invalid sub in token") from None

    user = user_repo.get_by_id(session, user_id)

    if user is None:
        if not email:
            raise Unauthenticated("Unknown user and token carries no email")
        # New profiles always start as customers; staff roles are granted
        # by updating the row.
        with transaction(session, "provision_user"):
            user = user_repo.create(
                session,
                User(
                    id=user_id,
                    email=email,
                    name=_default_name_from_email(email),
                    role=Role.CUSTOMER.value,
                ),
            )
        logger.info("Provisioned customer profile for %s", user_id)

    if not user.is_active:
        raise Unauthenticated("User is inactive")

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        Unauthenticated: if the caller is anonymous.
    """
    if user is None:
        raise Unauthenticated("Authentication required")
    return user


def require_capability(capability: Capability) -> Callable[..., User]:
    """
    Dependency factory: the caller must hold `capability`.

        @router.get("/admin/orders")
        def list_orders(user: User = Depends(require_capability(Capability.VIEW_ALL_ORDERS))):
            ...
    """

    def dependency(user: User = Depends(require_auth)) -> User:
        if not has_capability(user.role, capability):
            raise Unauthorized(
                f"Role '{user.role}' lacks capability '{capability.value}'",
                capability=capability.value,
            )
        return user

    return dependency
