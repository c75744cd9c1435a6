import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.observability import metrics_registry
from storefront.models.enums import MovementType, ProductType
from storefront.models.product import Product
from storefront.models.product_variant import ProductVariant
from storefront.models.stock_movement import StockMovement
from storefront.repositories import movement_repo, product_repo, variant_repo
from storefront.schemas.inventory import StockAdjustmentRequest
from storefront.services.errors import (
    InsufficientStockError,
    InventoryError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from storefront.services.inventory_query_service import (
    LowStockThresholds,
    StockItem,
    classify_stock_level,
)


logger = logging.getLogger(__name__)

# Claves de cache que dependen del stock; se devuelven al llamador para invalidarlas.
INVENTORY_CACHE_PREFIXES = ("inventory:overview", "inventory:history", "inventory:low-stock")


@dataclass(frozen=True)
class AdjustmentResult:
    item: StockItem
    movement: StockMovement
    previous_stock: int | None
    invalidate: tuple[str, ...] = INVENTORY_CACHE_PREFIXES


@dataclass(frozen=True)
class BulkItemResult:
    index: int
    success: bool
    result: AdjustmentResult | None = None
    error: str | None = None
    fields: tuple[dict[str, str], ...] = ()


@dataclass(frozen=True)
class BulkAdjustmentResult:
    results: list[BulkItemResult]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def invalidate(self) -> tuple[str, ...]:
        return INVENTORY_CACHE_PREFIXES if self.succeeded else ()


def validate_adjustment(payload: Mapping[str, Any] | StockAdjustmentRequest) -> StockAdjustmentRequest:
    """Check the shape of one adjustment request without touching the store."""
    if isinstance(payload, StockAdjustmentRequest):
        return payload
    try:
        return StockAdjustmentRequest.model_validate(payload)
    except PydanticValidationError as exc:
        fields = [
            {"field": ".".join(str(p) for p in err["loc"]) or "request", "message": err["msg"]}
            for err in exc.errors()
        ]
        names = ", ".join(dict.fromkeys(f["field"] for f in fields))
        raise ValidationError(f"Invalid stock adjustment: {names}", fields=fields) from exc


def compute_new_stock(current: int | None, movement_type: MovementType, quantity: int) -> int:
    """
    Resulting stock for one adjustment.

    ``in`` and ``out`` use the magnitude of ``quantity``; ``adjust`` applies it as a
    signed delta. Untracked stock (``None``) counts as zero.
    """
    base = current or 0
    if movement_type == MovementType.IN:
        new_stock = base + abs(quantity)
    elif movement_type == MovementType.OUT:
        new_stock = base - abs(quantity)
    else:
        new_stock = base + quantity

    if new_stock < 0:
        raise InsufficientStockError(
            f"Cannot reduce stock below zero (current stock {base}, requested {quantity})"
        )
    return new_stock


def _load_for_update(
    db: Session, product_id: str, variant_id: str | None
) -> tuple[Product, ProductVariant | None]:
    if variant_id is not None:
        variant = variant_repo.get_for_update(db, variant_id)
        if variant is None or variant.product_id != product_id:
            raise NotFoundError("Item not found: variant does not exist for this product")
        return variant.product, variant

    product = product_repo.get_for_update(db, product_id)
    if product is None:
        raise NotFoundError("Item not found: product does not exist")
    if product_repo.has_variants(db, product_id):
        raise ValidationError(
            "Invalid stock adjustment: variant_id",
            fields=[{"field": "variant_id", "message": "A variant is required for products with variants"}],
        )
    return product, None


def _stock_item(product: Product, variant: ProductVariant | None) -> StockItem:
    thresholds = LowStockThresholds.from_settings()
    if variant is None:
        return StockItem(
            id=product.id,
            product_id=product.id,
            variant_id=None,
            product_name=product.name,
            variant_name=None,
            sku=product.sku,
            stock=product.stock,
            is_active=product.is_active,
            product_type=ProductType.SIMPLE,
            stock_level=classify_stock_level(product.stock, ProductType.SIMPLE, thresholds),
        )
    return StockItem(
        id=variant.id,
        product_id=product.id,
        variant_id=variant.id,
        product_name=product.name,
        variant_name=variant.name,
        sku=variant.sku,
        stock=variant.stock,
        is_active=variant.is_active,
        product_type=ProductType.VARIANT,
        stock_level=classify_stock_level(variant.stock, ProductType.VARIANT, thresholds),
    )


def _raw_type(payload: Any) -> str:
    raw = payload.get("type") if isinstance(payload, Mapping) else None
    if isinstance(raw, str) and raw in {m.value for m in MovementType}:
        return raw
    return "unknown"


def _log(event: str, request: StockAdjustmentRequest | None, **extra: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {"event": event}
    if request is not None:
        entry.update(
            {
                "product_id": str(request.product_id),
                "variant_id": str(request.variant_id) if request.variant_id else None,
                "type": request.type.value,
                "quantity": request.quantity,
            }
        )
    entry.update(extra)
    return entry


def adjust_stock(db: Session, payload: Mapping[str, Any] | StockAdjustmentRequest) -> AdjustmentResult:
    """
    Apply one stock adjustment and append its movement row.

    The item row is read with a row lock and both writes are committed together;
    any failure rolls the whole unit back. Cache invalidation is returned in the
    result, the caller decides how to apply it.
    """
    try:
        request = validate_adjustment(payload)
    except ValidationError as exc:
        metrics_registry.observe_adjustment(_raw_type(payload), "invalid")
        logger.warning(json.dumps(_log("stock_adjustment_rejected", None, error=exc.message)))
        raise

    product_id = str(request.product_id)
    variant_id = str(request.variant_id) if request.variant_id else None

    try:
        product, variant = _load_for_update(db, product_id, variant_id)
        target = variant if variant is not None else product
        previous_stock = target.stock
        new_stock = compute_new_stock(previous_stock, request.type, request.quantity)

        if variant is not None:
            variant_repo.set_stock(db, variant, new_stock)
        else:
            product_repo.set_stock(db, product, new_stock)
        movement = movement_repo.create_movement(
            db,
            product_id=product_id,
            variant_id=variant_id,
            movement_type=request.type,
            quantity=request.quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=request.reason,
            commit=False,
        )
        db.commit()
        db.refresh(target)
        db.refresh(movement)
        item = _stock_item(product, variant)
    except InventoryError as exc:
        db.rollback()
        metrics_registry.observe_adjustment(request.type.value, "rejected")
        logger.warning(json.dumps(_log("stock_adjustment_rejected", request, error=exc.message)))
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        metrics_registry.observe_adjustment(request.type.value, "error")
        logger.exception(json.dumps(_log("stock_adjustment_failed", request)))
        raise PersistenceError("Failed to adjust stock") from exc

    metrics_registry.observe_adjustment(request.type.value, "accepted")
    logger.info(
        json.dumps(
            _log(
                "stock_adjustment",
                request,
                movement_id=movement.id,
                previous_stock=previous_stock,
                new_stock=new_stock,
            )
        )
    )
    return AdjustmentResult(
        item=item,
        movement=movement,
        previous_stock=previous_stock,
    )


def bulk_adjust_stock(
    db: Session,
    payloads: Sequence[Mapping[str, Any] | StockAdjustmentRequest],
) -> BulkAdjustmentResult:
    """
    Apply several adjustments in order, each in its own transaction.

    A failing item is reported and skipped; items applied before it stay applied.
    """
    if not payloads:
        raise ValidationError(
            "At least one adjustment is required",
            fields=[{"field": "adjustments", "message": "At least one adjustment is required"}],
        )

    results: list[BulkItemResult] = []
    for index, payload in enumerate(payloads):
        try:
            result = adjust_stock(db, payload)
        except InventoryError as exc:
            results.append(
                BulkItemResult(
                    index=index,
                    success=False,
                    error=exc.message,
                    fields=tuple(getattr(exc, "fields", ())),
                )
            )
            continue
        results.append(BulkItemResult(index=index, success=True, result=result))

    bulk = BulkAdjustmentResult(results=results)
    logger.info(
        json.dumps({"event": "bulk_stock_adjustment", "succeeded": bulk.succeeded, "failed": bulk.failed})
    )
    return bulk
