from storefront.models.product import Product
from storefront.models.product_variant import ProductVariant
from storefront.models.stock_movement import StockMovement

__all__ = ["Product", "ProductVariant", "StockMovement"]
