import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base
from storefront.models.enums import MovementType


class StockMovement(Base):
    """Append-only ledger row; one per accepted adjustment."""

    __tablename__ = "stock_movements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    variant_id: Mapped[str | None] = mapped_column(
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=True,
    )
    type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, values_callable=lambda e: [m.value for m in e], name="movement_type"),
        nullable=False,
    )
    # Cantidad tal cual llego en la peticion (con signo).
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False
    )

    product = relationship("Product")
    variant = relationship("ProductVariant")

    __table_args__ = (
        Index("ix_stock_movements_product", "product_id"),
        Index("ix_stock_movements_variant", "variant_id"),
        Index("ix_stock_movements_type", "type"),
        Index("ix_stock_movements_created", "created_at"),
    )

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None

    @property
    def variant_name(self) -> str | None:
        return self.variant.name if self.variant else None

    @property
    def sku(self) -> str | None:
        if self.variant is not None:
            return self.variant.sku
        return self.product.sku if self.product else None
