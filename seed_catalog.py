# seed_catalog.py
#
# Populate a demo catalog plus one admin, one rider and one customer.
# Safe to run more than once: existing slugs and emails are skipped.
#
#   DATABASE_URL=sqlite:///./storefront.db JWT_SECRET=dev python seed_catalog.py

import logging

from sqlmodel import Session

from storefront.core.permissions import Role
from storefront.database import create_db_and_tables, engine, transaction
from storefront.models import cart as _cart_models  # noqa: F401
from storefront.models import inventory as _inventory_models  # noqa: F401
from storefront.models import order as _order_models  # noqa: F401
from storefront.models.product import Product, ProductVariant
from storefront.models.user import User
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.user_repo import UserRepository

logger = logging.getLogger("seed_catalog")

CATALOG = [
    {
        "name": "Classic Tee",
        "slug": "classic-tee",
        "category": "tops",
        "variants": [
            ("white", "S", 20.0, 25),
            ("white", "M", 20.0, 30),
            ("black", "M", 22.0, 15),
        ],
    },
    {
        "name": "Denim Jacket",
        "slug": "denim-jacket",
        "category": "outerwear",
        "variants": [
            ("blue", "M", 89.0, 8),
            ("blue", "L", 89.0, 5),
        ],
    },
    {
        "name": "Canvas Sneakers",
        "slug": "canvas-sneakers",
        "category": "shoes",
        "variants": [
            ("red", "42", 55.5, 10),
            ("red", "43", 55.5, 0),
        ],
    },
]

ACCOUNTS = [
    ("admin@storefront.example.com", "Store Admin", Role.ADMIN, None),
    ("rider@storefront.example.com", "Rita Rider", Role.RIDER, "+1-555-0100"),
    ("customer@storefront.example.com", "Casey Customer", Role.CUSTOMER, "+1-555-0199"),
]


def seed(session: Session) -> None:
    products = ProductRepository()
    users = UserRepository()

    with transaction(session, "seed_catalog"):
        for entry in CATALOG:
            if products.get_by_slug(session, entry["slug"]):
                logger.info("Product %s already present", entry["slug"])
                continue

            product = products.create(
                session,
                Product(name=entry["name"], slug=entry["slug"], category=entry["category"]),
            )
            for color, size, price, stock in entry["variants"]:
                products.create_variant(
                    session,
                    ProductVariant(
                        product_id=product.id,
                        color=color,
                        size=size,
                        price=price,
                        stock=stock,
                        sku=f"{entry['slug']}-{color}-{size}".upper(),
                    ),
                )
            logger.info("Added %s with %d variants", product.slug, len(entry["variants"]))

        for email, name, role, phone in ACCOUNTS:
            if users.get_by_email(session, email):
                continue
            user = users.create(session, User(email=email, name=name, role=role.value, phone=phone))
            logger.info("Added %s %s (%s)", role.value, email, user.id)


def main():
    logging.basicConfig(level=logging.INFO)
    create_db_and_tables()
    with Session(engine) as session:
        seed(session)
    logger.info("Seed complete")


if __name__ == "__main__":
    main()
