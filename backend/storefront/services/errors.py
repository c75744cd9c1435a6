class InventoryError(Exception):
    """Errores de dominio para operaciones de inventario."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(InventoryError):
    def __init__(self, message: str, fields: list[dict[str, str]] | None = None):
        super().__init__(message)
        self.fields = fields or []


class NotFoundError(InventoryError):
    pass


class InsufficientStockError(InventoryError):
    pass


class PersistenceError(InventoryError):
    pass
