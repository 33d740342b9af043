# storefront/repositories/product_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.product import Product, ProductVariant


class ProductRepository:
    """
    Read side of the catalog used by carts and checkout.

    - Pure DB operations.
    - Stock is never written here; see InventoryRepository.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def get_variant(
        self,
        session: Session,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> ProductVariant | None:
        """Return the variant only if it belongs to the given product."""
        variant = session.get(ProductVariant, variant_id)
        if variant is None or variant.product_id != product_id:
            return None
        return variant

    def list_variants(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductVariant]:
        stmt = select(ProductVariant).where(ProductVariant.product_id == product_id)
        return list(session.exec(stmt).all())

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        session.refresh(product)
        return product

    def create_variant(self, session: Session, variant: ProductVariant) -> ProductVariant:
        session.add(variant)
        session.flush()
        session.refresh(variant)
        return variant
