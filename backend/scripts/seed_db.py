import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from storefront.db.session import SessionLocal  # noqa: E402
from storefront.models.enums import ProductStatus  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.product_variant import ProductVariant  # noqa: E402
from storefront.services import stock_adjustment_service  # noqa: E402
from storefront.services.errors import InventoryError  # noqa: E402


SIMPLE_PRODUCTS = [
    ("Canvas Tote Bag", "canvas-tote-bag", "TOTE-001", 24),
    ("Leather Belt", "leather-belt", "BELT-001", 7),
    ("Wool Beanie", "wool-beanie", "BEANIE-001", 0),
    ("Gift Card", "gift-card", None, None),
]

VARIANT_PRODUCTS = [
    ("Oxford Shirt", "oxford-shirt", [("S", 3), ("M", 12), ("L", 6), ("XL", 0)]),
    ("Slim Jeans", "slim-jeans", [("30", 4), ("32", 9), ("34", 2)]),
    ("Running Sneaker", "running-sneaker", [("40", 1), ("41", 5), ("42", 8), ("43", 0)]),
]


def run_seed():
    db = SessionLocal()

    try:
        def get_or_create(model, defaults=None, **kwargs):
            instance = db.query(model).filter_by(**kwargs).first()
            if instance:
                return instance, False
            params = dict(kwargs)
            if defaults:
                params.update(defaults)
            instance = model(**params)
            db.add(instance)
            return instance, True

        for name, slug, sku, stock in SIMPLE_PRODUCTS:
            get_or_create(
                Product,
                slug=slug,
                defaults={"name": name, "sku": sku, "stock": stock, "status": ProductStatus.ACTIVE},
            )
        db.commit()

        for name, slug, sizes in VARIANT_PRODUCTS:
            product, _ = get_or_create(
                Product,
                slug=slug,
                defaults={"name": name, "status": ProductStatus.ACTIVE},
            )
            db.flush()
            for order, (size, stock) in enumerate(sizes, start=1):
                get_or_create(
                    ProductVariant,
                    product_id=product.id,
                    name=size,
                    defaults={"sku": f"{slug.upper()}-{size}", "stock": stock, "sort_order": order},
                )
        db.commit()

        # Unos cuantos movimientos para que el historial no salga vacio.
        tote = db.query(Product).filter_by(slug="canvas-tote-bag").one()
        stock_adjustment_service.bulk_adjust_stock(
            db,
            [
                {"product_id": tote.id, "quantity": 10, "type": "in", "reason": "Supplier delivery"},
                {"product_id": tote.id, "quantity": 3, "type": "out", "reason": "Online orders"},
                {"product_id": tote.id, "quantity": -1, "type": "adjust", "reason": "Damaged item"},
            ],
        )

        print("Seed ejecutado correctamente")

    except InventoryError as e:
        db.rollback()
        print("Error en seed:", e.message)

    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
