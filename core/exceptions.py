"""
Error taxonomy for the stock ledger.

Services raise these directly; each one is an ``HTTPException`` so FastAPI
renders it without any translation in the routers. Catch ``StockError`` to
handle every failure of the core at once.
"""
from typing import Optional

from fastapi import HTTPException, status


class StockError(HTTPException):
    """Base class for all stock ledger errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "stock_error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or "Stock operation failed")

    def __str__(self) -> str:
        return str(self.detail)


class NotFound(StockError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, part_id):
        self.part_id = part_id
        super().__init__(f"Spare part {part_id} not found")


class InvalidQuantity(StockError):
    """A negative quantity reached the catalog. Should never happen."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "invalid_quantity"

    def __init__(self, part_id, quantity: int):
        self.part_id = part_id
        self.quantity = quantity
        super().__init__(f"Refusing to set quantity of spare part {part_id} to {quantity}")


class InvalidMovement(StockError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_movement"


class InsufficientStock(StockError):
    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_stock"

    def __init__(self, part_id, current: int, requested: int):
        self.part_id = part_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Insufficient stock. Current: {current}, Requested reduction: {requested}"
        )


class TransactionNotFound(StockError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "transaction_not_found"

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Stock transaction {transaction_id} not found")


class OrphanedTransaction(StockError):
    status_code = status.HTTP_409_CONFLICT
    code = "orphaned_transaction"

    def __init__(self, transaction_id, part_id):
        self.transaction_id = transaction_id
        self.part_id = part_id
        super().__init__(
            f"Stock transaction {transaction_id} references missing spare part {part_id}"
        )


class InvalidDateRange(StockError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_date_range"

    def __init__(self, start, end):
        super().__init__(f"Start date {start} is after end date {end}")


class LedgerImmutable(StockError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "ledger_immutable"

    def __init__(self, transaction_id, operation: str):
        self.transaction_id = transaction_id
        self.operation = operation
        super().__init__(
            f"Stock transaction {transaction_id} is immutable ({operation} blocked)"
        )


class StorageError(StockError):
    """The movement was not applied. Nothing was written."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_error"


class DuplicatePartCode(StockError):
    code = "duplicate_part_code"

    def __init__(self, part_code: str):
        self.part_code = part_code
        super().__init__(f"Spare part with code '{part_code}' already exists")
