from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.models.product_variant import ProductVariant


def get(db: Session, product_id: str) -> Product | None:
    return db.get(Product, product_id)


def get_for_update(db: Session, product_id: str) -> Product | None:
    # Bloquea la fila hasta el commit/rollback de la transaccion en curso.
    return db.scalar(select(Product).where(Product.id == product_id).with_for_update())


def has_variants(db: Session, product_id: str) -> bool:
    return bool(db.scalar(select(exists().where(ProductVariant.product_id == product_id))))


def set_stock(db: Session, product: Product, stock: int) -> Product:
    product.stock = stock
    db.add(product)
    db.flush()
    return product
