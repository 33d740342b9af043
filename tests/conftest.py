"""Pytest fixtures for storefront tests."""

import os

# Settings are read at import time; give the app a throwaway database and
# a known signing secret before anything from storefront is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from storefront.core.config import get_settings
from storefront.core.permissions import Role
from storefront.database import get_session
from storefront.main import app
from storefront.models.product import Product, ProductVariant
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.inventory_repo import InventoryRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.stats_repo import StatsRepository
from storefront.repositories.user_repo import UserRepository
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.inventory_service import InventoryLedger
from storefront.services.order_service import OrderService
from storefront.services.stats_service import StatsService
from storefront.services.user_service import UserService

ADDRESS = {
    "street": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
}

CONTACT = {
    "name": "Alice Buyer",
    "email": "alice@example.com",
    "phone": "+1-555-0101",
}


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    """Create and commit a user."""
    counter = {"n": 0}

    def _make(
        role: Role = Role.CUSTOMER,
        name: str | None = None,
        phone: str | None = "+1-555-0100",
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"{role.value}{n}@example.com",
            name=name or f"{role.value.title()} {n}",
            phone=phone,
            role=role.value,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_variant(session):
    """Create and commit a product with a single variant; returns (product, variant)."""
    counter = {"n": 0}

    def _make(
        price: float = 20.0,
        stock: int = 5,
        name: str = "Classic Tee",
        is_active: bool = True,
        color: str = "white",
        size: str = "M",
    ) -> tuple[Product, ProductVariant]:
        counter["n"] += 1
        product = Product(
            name=name,
            slug=f"product-{counter['n']}",
            is_active=is_active,
            hero_image_url="https://img.example.com/tee.png",
        )
        session.add(product)
        session.flush()
        variant = ProductVariant(
            product_id=product.id,
            color=color,
            size=size,
            price=price,
            stock=stock,
            sku=f"SKU-{counter['n']}",
        )
        session.add(variant)
        session.commit()
        session.refresh(product)
        session.refresh(variant)
        return product, variant

    return _make


@pytest.fixture
def services():
    """Service graph wired the same way the routers wire it."""
    cart_repo = CartRepository()
    product_repo = ProductRepository()
    order_repo = OrderRepository()
    user_repo = UserRepository()
    inventory = InventoryLedger(InventoryRepository())
    user_service = UserService(user_repo)
    cart = CartService(cart_repo, product_repo)

    return SimpleNamespace(
        cart=cart,
        checkout=CheckoutService(order_repo, cart_repo, product_repo, cart, inventory),
        orders=OrderService(order_repo, user_repo, user_service, inventory),
        stats=StatsService(StatsRepository(), user_service),
        inventory=inventory,
        order_repo=order_repo,
        cart_repo=cart_repo,
    )


@pytest.fixture
def client(session):
    """Test client whose requests all run on the test session."""
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user, signed like the identity provider does."""

    def _headers(user: User) -> dict[str, str]:
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(user.id), "email": user.email},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALG,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
