import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.models.enums import ProductType, StockLevel, StockLevelFilter
from storefront.models.stock_movement import StockMovement
from storefront.repositories import inventory_repo, movement_repo
from storefront.schemas.inventory import InventoryFilter
from storefront.services.errors import PersistenceError, ValidationError


logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 200


@dataclass(frozen=True)
class LowStockThresholds:
    simple: int
    variant: int

    @classmethod
    def from_settings(cls) -> "LowStockThresholds":
        return cls(
            simple=settings.low_stock_threshold_simple,
            variant=settings.low_stock_threshold_variant,
        )

    def for_type(self, product_type: ProductType) -> int:
        return self.variant if product_type == ProductType.VARIANT else self.simple


@dataclass(frozen=True)
class StockItem:
    id: str
    product_id: str
    variant_id: str | None
    product_name: str
    variant_name: str | None
    sku: str | None
    stock: int | None
    is_active: bool
    product_type: ProductType
    stock_level: StockLevel | None


@dataclass(frozen=True)
class InventoryPage:
    items: list[StockItem]
    page: int
    limit: int
    total: int
    total_pages: int


@dataclass(frozen=True)
class LowStockSummary:
    count: int
    items: list[StockItem]


def classify_stock_level(
    stock: int | None,
    product_type: ProductType,
    thresholds: LowStockThresholds,
) -> StockLevel | None:
    """Return the stock bucket of one item, or ``None`` when stock is not tracked."""
    if stock is None:
        return None
    if stock == 0:
        return StockLevel.OUT_OF_STOCK
    if stock < thresholds.for_type(product_type):
        return StockLevel.LOW_STOCK
    return StockLevel.IN_STOCK


def build_stock_item(row: Mapping[str, Any], thresholds: LowStockThresholds) -> StockItem:
    product_type = ProductType(row["product_type"])
    return StockItem(
        id=row["id"],
        product_id=row["product_id"],
        variant_id=row["variant_id"],
        product_name=row["product_name"],
        variant_name=row["variant_name"],
        sku=row["sku"],
        stock=row["stock"],
        is_active=bool(row["is_active"]),
        product_type=product_type,
        stock_level=classify_stock_level(row["stock"], product_type, thresholds),
    )


def _parse_filter(filters: InventoryFilter | Mapping[str, Any] | None) -> InventoryFilter:
    if filters is None:
        return InventoryFilter()
    if isinstance(filters, InventoryFilter):
        return filters
    try:
        return InventoryFilter.model_validate(filters)
    except PydanticValidationError as exc:
        fields = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationError("Invalid inventory filter", fields=fields) from exc


def get_inventory_overview(
    db: Session,
    filters: InventoryFilter | Mapping[str, Any] | None = None,
    *,
    thresholds: LowStockThresholds | None = None,
) -> InventoryPage:
    query = _parse_filter(filters)
    thresholds = thresholds or LowStockThresholds.from_settings()
    offset = (query.page - 1) * query.limit
    search = query.search.strip() if query.search else None

    try:
        rows, total = inventory_repo.list_stock_items(
            db,
            search=search,
            stock_level=query.stock_level,
            product_type=query.product_type,
            simple_threshold=thresholds.simple,
            variant_threshold=thresholds.variant,
            limit=query.limit,
            offset=offset,
        )
    except SQLAlchemyError as exc:
        logger.exception("Error leyendo el inventario")
        raise PersistenceError("Failed to fetch inventory overview") from exc

    return InventoryPage(
        items=[build_stock_item(row, thresholds) for row in rows],
        page=query.page,
        limit=query.limit,
        total=total,
        total_pages=math.ceil(total / query.limit),
    )


def get_inventory_history(
    db: Session,
    product_id: str | None = None,
    variant_id: str | None = None,
    limit: int = 50,
) -> Sequence[StockMovement]:
    if limit < 1 or limit > MAX_HISTORY_LIMIT:
        raise ValidationError(
            "Invalid history limit",
            fields=[{"field": "limit", "message": f"Limit must be between 1 and {MAX_HISTORY_LIMIT}"}],
        )
    try:
        return movement_repo.list_recent(
            db,
            product_id=product_id,
            variant_id=variant_id,
            limit=limit,
        )
    except SQLAlchemyError as exc:
        logger.exception("Error leyendo el historial de movimientos")
        raise PersistenceError("Failed to fetch inventory history") from exc


def get_low_stock_summary(
    db: Session,
    limit: int = 5,
    *,
    thresholds: LowStockThresholds | None = None,
) -> LowStockSummary:
    """Count low-stock items and return the ``limit`` with the least stock left."""
    thresholds = thresholds or LowStockThresholds.from_settings()
    try:
        rows, total = inventory_repo.list_stock_items(
            db,
            stock_level=StockLevelFilter.LOW_STOCK,
            simple_threshold=thresholds.simple,
            variant_threshold=thresholds.variant,
            order_by="stock",
            limit=limit,
            offset=0,
        )
    except SQLAlchemyError as exc:
        logger.exception("Error leyendo el resumen de stock bajo")
        raise PersistenceError("Failed to fetch low stock summary") from exc

    logger.debug(json.dumps({"event": "low_stock_summary", "count": total}))
    return LowStockSummary(count=total, items=[build_stock_item(row, thresholds) for row in rows])
