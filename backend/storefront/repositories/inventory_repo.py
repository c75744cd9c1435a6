"""SQL builders for the admin inventory listing.

Simple products (no variants) and variants are read as one relation through a
``UNION ALL`` so that filters, counts and pagination all run in the database.
"""
from typing import Any, Sequence

from sqlalchemy import String, and_, cast, exists, func, literal, null, or_, select, union_all
from sqlalchemy.orm import Session

from storefront.models.enums import ProductType, ProductTypeFilter, StockLevelFilter
from storefront.models.product import Product
from storefront.models.product_variant import ProductVariant


LIKE_ESCAPE = "\\"


def _like_pattern(search: str) -> str:
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _stock_level_clause(stock_col, threshold: int, stock_level: StockLevelFilter):
    # stock NULL (no controlado) nunca cae en ningun tramo.
    if stock_level == StockLevelFilter.OUT_OF_STOCK:
        return stock_col == 0
    if stock_level == StockLevelFilter.LOW_STOCK:
        return and_(stock_col > 0, stock_col < threshold)
    if stock_level == StockLevelFilter.IN_STOCK:
        return stock_col >= threshold
    return None


def _simple_items(search: str | None, stock_level: StockLevelFilter, threshold: int):
    has_variants = exists().where(ProductVariant.product_id == Product.id)
    stmt = select(
        Product.id.label("id"),
        Product.id.label("product_id"),
        cast(null(), String(36)).label("variant_id"),
        Product.name.label("product_name"),
        cast(null(), String(50)).label("variant_name"),
        Product.sku.label("sku"),
        Product.stock.label("stock"),
        Product.is_active.label("is_active"),
        literal(ProductType.SIMPLE.value).label("product_type"),
        literal(0).label("sort_order"),
    ).where(~has_variants)

    if search:
        pattern = _like_pattern(search)
        stmt = stmt.where(
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.sku.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    level = _stock_level_clause(Product.stock, threshold, stock_level)
    if level is not None:
        stmt = stmt.where(level)
    return stmt


def _variant_items(search: str | None, stock_level: StockLevelFilter, threshold: int):
    stmt = select(
        ProductVariant.id.label("id"),
        ProductVariant.product_id.label("product_id"),
        ProductVariant.id.label("variant_id"),
        Product.name.label("product_name"),
        ProductVariant.name.label("variant_name"),
        ProductVariant.sku.label("sku"),
        ProductVariant.stock.label("stock"),
        ProductVariant.is_active.label("is_active"),
        literal(ProductType.VARIANT.value).label("product_type"),
        ProductVariant.sort_order.label("sort_order"),
    ).join(Product, ProductVariant.product_id == Product.id)

    if search:
        pattern = _like_pattern(search)
        stmt = stmt.where(
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                ProductVariant.sku.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    level = _stock_level_clause(ProductVariant.stock, threshold, stock_level)
    if level is not None:
        stmt = stmt.where(level)
    return stmt


def list_stock_items(
    db: Session,
    *,
    search: str | None = None,
    stock_level: StockLevelFilter = StockLevelFilter.ALL,
    product_type: ProductTypeFilter = ProductTypeFilter.ALL,
    simple_threshold: int = 10,
    variant_threshold: int = 5,
    order_by: str = "name",
    limit: int = 20,
    offset: int = 0,
) -> tuple[Sequence[dict[str, Any]], int]:
    branches = []
    if product_type in (ProductTypeFilter.ALL, ProductTypeFilter.SIMPLE):
        branches.append(_simple_items(search, stock_level, simple_threshold))
    if product_type in (ProductTypeFilter.ALL, ProductTypeFilter.VARIANT):
        branches.append(_variant_items(search, stock_level, variant_threshold))

    if len(branches) == 1:
        items = branches[0].subquery("stock_items")
    else:
        items = union_all(*branches).subquery("stock_items")

    total = db.scalar(select(func.count()).select_from(items)) or 0

    if order_by == "stock":
        ordering = (items.c.stock.asc(), items.c.product_name.asc(), items.c.id.asc())
    else:
        ordering = (
            items.c.product_name.asc(),
            items.c.sort_order.asc(),
            items.c.variant_name.asc(),
            items.c.id.asc(),
        )
    stmt = select(items).order_by(*ordering).offset(offset).limit(limit)
    rows = db.execute(stmt).mappings().all()
    return rows, total
