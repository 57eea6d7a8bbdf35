"""Custom exception classes for the application."""


class BaseAppException(Exception):
    """Base exception class for all application exceptions."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InventoryError(BaseAppException):
    """Base class for recoverable domain errors raised by inventory operations."""

    code = "INVENTORY_ERROR"

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class DuplicateNameError(InventoryError):
    """Raised when a warehouse or variant name is already taken."""
    code = "DUPLICATE_NAME"


class CannotDeleteDefaultError(InventoryError):
    """Raised when trying to remove the default warehouse."""
    code = "CANNOT_DELETE_DEFAULT"


class WarehouseNotEmptyError(InventoryError):
    """Raised when removing a warehouse that still holds stock."""
    code = "WAREHOUSE_NOT_EMPTY"


class InvalidVariantError(InventoryError):
    """Raised when a variant has a missing or negative cost, price or quantity."""
    code = "INVALID_VARIANT"


class VariantLimitExceededError(InventoryError):
    """Raised when an item would end up with more variants than allowed."""
    code = "VARIANT_LIMIT_EXCEEDED"


class InsufficientStockError(InventoryError):
    """Raised when a warehouse bucket holds less stock than requested."""
    code = "INSUFFICIENT_STOCK"


class UnknownWarehouseError(InventoryError):
    """Raised when a warehouse id does not resolve."""
    code = "UNKNOWN_WAREHOUSE"


class VariantNotFoundError(InventoryError):
    """Raised when a variant id is missing or does not belong to the item."""
    code = "VARIANT_NOT_FOUND"


class ItemNotFoundError(InventoryError):
    """Raised when an item id does not resolve."""
    code = "ITEM_NOT_FOUND"


class TransactionNotFoundError(InventoryError):
    """Raised when a transaction id does not resolve."""
    code = "TRANSACTION_NOT_FOUND"


class InvalidOperationError(InventoryError):
    """Raised for malformed stock operations (same source and target, negative cost)."""
    code = "INVALID_OPERATION"


class InvalidNameError(InventoryError):
    """Raised when a required name is empty."""
    code = "INVALID_NAME"


class StorageError(BaseAppException):
    """Raised when the persistence provider cannot read or write a key."""
    pass


class ConfigurationError(BaseAppException):
    """Raised when there's a configuration error."""
    pass
