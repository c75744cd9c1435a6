from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.models.enums import MovementType
from storefront.models.stock_movement import StockMovement


def get(db: Session, movement_id: str) -> StockMovement | None:
    return db.get(StockMovement, movement_id)


def list_recent(
    db: Session,
    *,
    product_id: str | None = None,
    variant_id: str | None = None,
    limit: int = 50,
) -> Sequence[StockMovement]:
    filters = []
    if product_id is not None:
        filters.append(StockMovement.product_id == product_id)
    if variant_id is not None:
        filters.append(StockMovement.variant_id == variant_id)

    stmt = (
        select(StockMovement)
        .options(selectinload(StockMovement.product), selectinload(StockMovement.variant))
        .where(*filters)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
    )
    return db.scalars(stmt).all()


def create_movement(
    db: Session,
    *,
    product_id: str,
    variant_id: str | None,
    movement_type: MovementType,
    quantity: int,
    previous_stock: int | None,
    new_stock: int,
    reason: str | None = None,
    commit: bool = True,
) -> StockMovement:
    movement = StockMovement(
        product_id=product_id,
        variant_id=variant_id,
        type=movement_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
    )
    db.add(movement)

    if commit:
        db.commit()
        db.refresh(movement)
    else:
        db.flush()  # deja el id listo dentro de la transaccion

    return movement
