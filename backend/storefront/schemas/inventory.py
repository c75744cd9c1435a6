from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from storefront.models.enums import (
    MovementType,
    ProductType,
    ProductTypeFilter,
    StockLevel,
    StockLevelFilter,
)


class StockAdjustmentRequest(BaseModel):
    product_id: UUID = Field(examples=["6f1c2a9e-3b1d-4c55-9a57-0c1f2f3e4d5a"])
    variant_id: UUID | None = Field(None, examples=[None])
    # Sin coercion: true, "5" o 5.0 no cuentan como cantidad.
    quantity: StrictInt = Field(examples=[5])
    type: MovementType = Field(examples=["in"])
    reason: str | None = Field(None, max_length=100, examples=["Restock from supplier"])
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "6f1c2a9e-3b1d-4c55-9a57-0c1f2f3e4d5a",
                "variant_id": "0b9d8e7f-1a2b-4c3d-8e9f-a0b1c2d3e4f5",
                "quantity": -2,
                "type": "adjust",
                "reason": "Damaged in storage",
            }
        }
    )

    @field_validator("quantity")
    @classmethod
    def _quantity_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("Quantity cannot be zero")
        return value

    @field_validator("reason")
    @classmethod
    def _blank_reason_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class BulkStockAdjustmentRequest(BaseModel):
    # Cada ajuste se valida por separado: uno invalido no tumba el lote.
    adjustments: list[dict[str, Any]] = Field(..., min_length=1)


class InventoryFilter(BaseModel):
    search: str | None = None
    stock_level: StockLevelFilter = StockLevelFilter.ALL
    product_type: ProductTypeFilter = ProductTypeFilter.ALL
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class FieldErrorResponse(BaseModel):
    field: str
    message: str


class StockItemResponse(BaseModel):
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
    model_config = ConfigDict(from_attributes=True)


class StockMovementResponse(BaseModel):
    id: str
    product_id: str
    variant_id: str | None
    type: MovementType
    quantity: int
    previous_stock: int | None
    new_stock: int
    reason: str | None
    created_at: datetime
    product_name: str | None = None
    variant_name: str | None = None
    sku: str | None = None
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "5a4b3c2d-1e0f-4a9b-8c7d-6e5f4a3b2c1d",
                "product_id": "6f1c2a9e-3b1d-4c55-9a57-0c1f2f3e4d5a",
                "variant_id": None,
                "type": "in",
                "quantity": 5,
                "previous_stock": 3,
                "new_stock": 8,
                "reason": "Restock from supplier",
                "created_at": "2026-02-17T10:20:00Z",
                "product_name": "Linen Shirt",
                "variant_name": None,
                "sku": "LS-001",
            }
        },
    )


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class InventoryOverviewResponse(BaseModel):
    items: list[StockItemResponse]
    pagination: PaginationResponse


class AdjustmentResponse(BaseModel):
    success: bool
    error: str | None = None
    fields: list[FieldErrorResponse] = []
    item: StockItemResponse | None = None
    movement: StockMovementResponse | None = None


class BulkItemResponse(AdjustmentResponse):
    index: int


class BulkAdjustmentResponse(BaseModel):
    success: bool
    succeeded: int
    failed: int
    results: list[BulkItemResponse]


class LowStockSummaryResponse(BaseModel):
    count: int
    items: list[StockItemResponse]
