from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.cache.redis_cache import apply_invalidations, cache_get, cache_set, make_key
from storefront.db.deps import get_db
from storefront.models.enums import ProductTypeFilter, StockLevelFilter
from storefront.schemas.inventory import (
    AdjustmentResponse,
    BulkAdjustmentResponse,
    BulkItemResponse,
    BulkStockAdjustmentRequest,
    InventoryFilter,
    InventoryOverviewResponse,
    LowStockSummaryResponse,
    PaginationResponse,
    StockItemResponse,
    StockMovementResponse,
)
from storefront.services import inventory_query_service, stock_adjustment_service
from storefront.services.errors import (
    InsufficientStockError,
    InventoryError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


router = APIRouter(prefix="/inventory", tags=["inventory"], dependencies=[Depends(require_admin)])

ERROR_STATUS = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)

ADJUSTMENT_ERROR_RESPONSES = {
    404: {"model": AdjustmentResponse, "description": "Item not found"},
    409: {"model": AdjustmentResponse, "description": "Insufficient stock"},
    422: {"model": AdjustmentResponse, "description": "Invalid adjustment"},
    500: {"model": AdjustmentResponse, "description": "Failed to adjust stock"},
}


def _status_for(exc: InventoryError) -> int:
    for error_cls, status_code in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _fields(exc: InventoryError) -> list[dict[str, str]]:
    return list(getattr(exc, "fields", []))


def _adjustment_payload(result: stock_adjustment_service.AdjustmentResult) -> dict[str, Any]:
    return {
        "item": StockItemResponse.model_validate(result.item),
        "movement": StockMovementResponse.model_validate(result.movement),
    }


@router.get("/", response_model=InventoryOverviewResponse)
def inventory_overview(
    db: Session = Depends(get_db),
    search: str | None = Query(None, max_length=100),
    stock_level: StockLevelFilter = Query(StockLevelFilter.ALL),
    product_type: ProductTypeFilter = Query(ProductTypeFilter.ALL),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    filters = InventoryFilter(
        search=search,
        stock_level=stock_level,
        product_type=product_type,
        page=page,
        limit=limit,
    )
    cache_key = make_key("inventory:overview", filters.model_dump())
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    try:
        result = inventory_query_service.get_inventory_overview(db, filters)
    except InventoryError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)

    payload = InventoryOverviewResponse(
        items=[StockItemResponse.model_validate(item) for item in result.items],
        pagination=PaginationResponse(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )
    cache_set(cache_key, payload)
    return payload


@router.get("/history", response_model=list[StockMovementResponse])
def inventory_history(
    db: Session = Depends(get_db),
    product_id: str | None = Query(None),
    variant_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=inventory_query_service.MAX_HISTORY_LIMIT),
):
    cache_key = make_key(
        "inventory:history",
        {"product_id": product_id, "variant_id": variant_id, "limit": limit},
    )
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    try:
        movements = inventory_query_service.get_inventory_history(
            db,
            product_id=product_id,
            variant_id=variant_id,
            limit=limit,
        )
    except InventoryError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)

    payload = [StockMovementResponse.model_validate(m) for m in movements]
    cache_set(cache_key, payload)
    return payload


@router.get("/low-stock", response_model=LowStockSummaryResponse)
def low_stock_summary(
    db: Session = Depends(get_db),
    limit: int = Query(5, ge=1, le=50),
):
    cache_key = make_key("inventory:low-stock", {"limit": limit})
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    try:
        summary = inventory_query_service.get_low_stock_summary(db, limit=limit)
    except InventoryError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)

    payload = LowStockSummaryResponse(
        count=summary.count,
        items=[StockItemResponse.model_validate(item) for item in summary.items],
    )
    cache_set(cache_key, payload)
    return payload


@router.post(
    "/adjust",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ADJUSTMENT_ERROR_RESPONSES,
)
def adjust_stock(
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    # El cuerpo llega sin tipar para que los errores de forma salgan con el mismo formato.
    try:
        result = stock_adjustment_service.adjust_stock(db, payload)
    except InventoryError as e:
        body = AdjustmentResponse(success=False, error=e.message, fields=_fields(e))
        return JSONResponse(status_code=_status_for(e), content=body.model_dump(mode="json"))

    apply_invalidations(result.invalidate)
    return AdjustmentResponse(success=True, **_adjustment_payload(result))


@router.post("/adjust/bulk", response_model=BulkAdjustmentResponse)
def bulk_adjust_stock(
    payload: BulkStockAdjustmentRequest,
    db: Session = Depends(get_db),
):
    try:
        bulk = stock_adjustment_service.bulk_adjust_stock(db, payload.adjustments)
    except InventoryError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)

    apply_invalidations(bulk.invalidate)
    results = []
    for item in bulk.results:
        if item.success and item.result is not None:
            results.append(BulkItemResponse(index=item.index, success=True, **_adjustment_payload(item.result)))
        else:
            results.append(
                BulkItemResponse(index=item.index, success=False, error=item.error, fields=list(item.fields))
            )
    return BulkAdjustmentResponse(
        success=bulk.failed == 0,
        succeeded=bulk.succeeded,
        failed=bulk.failed,
        results=results,
    )
