from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.models.product_variant import ProductVariant


def get(db: Session, variant_id: str) -> ProductVariant | None:
    return db.get(ProductVariant, variant_id)


def get_for_update(db: Session, variant_id: str) -> ProductVariant | None:
    return db.scalar(
        select(ProductVariant).where(ProductVariant.id == variant_id).with_for_update()
    )


def set_stock(db: Session, variant: ProductVariant, stock: int) -> ProductVariant:
    variant.stock = stock
    db.add(variant)
    db.flush()
    return variant
