import enum


class MovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUST = "adjust"


class ProductStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class ProductType(str, enum.Enum):
    SIMPLE = "simple"
    VARIANT = "variant"


class StockLevel(str, enum.Enum):
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


class StockLevelFilter(str, enum.Enum):
    ALL = "all"
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"


class ProductTypeFilter(str, enum.Enum):
    ALL = "all"
    SIMPLE = "simple"
    VARIANT = "variant"
