"""
Errors raised by the sale commit engine.

Every error leaves persisted state exactly as it was before the call.
"""
from typing import Optional


class SaleCommitError(Exception):
    code = "sale_commit_error"
    retryable = False

    def __init__(self, message: str, product_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.product_id = product_id

    def to_dict(self) -> dict:
        detail = {"code": self.code, "message": self.message, "retryable": self.retryable}
        if self.product_id is not None:
            detail["product_id"] = self.product_id
        return detail


class ValidationError(SaleCommitError):
    """Malformed cart: empty, bad quantity, unknown payment method or student."""
    code = "validation_error"


class ProductUnavailableError(SaleCommitError):
    """Product missing, owned by another tenant, or discontinued."""
    code = "product_unavailable"


class InsufficientStockError(SaleCommitError):
    code = "insufficient_stock"

    def __init__(self, message: str, product_id: Optional[str] = None, available: int = 0, requested: int = 0):
        super().__init__(message, product_id)
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        detail = super().to_dict()
        detail["available"] = self.available
        detail["requested"] = self.requested
        return detail


class ConcurrencyConflictError(SaleCommitError):
    """Stock changed between validation and write. Retry the whole commit."""
    code = "concurrency_conflict"
    retryable = True


class StorageError(SaleCommitError):
    """Driver, transport or deadline failure. Nothing partial was persisted."""
    code = "storage_error"
    retryable = True
