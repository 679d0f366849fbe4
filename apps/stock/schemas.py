from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from apps.stock.models import STOCK_COUNT_MACHINE_ID, TransactionType
from apps.spare_parts.inventory import StockStatus
from apps.spare_parts.schemas import SparePartResponse


class StockMovementCreate(BaseModel):
    part_id: int
    transaction_type: TransactionType
    quantity: int = Field(..., ge=1, description="Number of units moved")
    machine_id: str = Field(..., min_length=1, max_length=100)
    operator_name: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None

    @validator('machine_id', 'operator_name')
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class StockTransactionResponse(BaseModel):
    id: int
    part_id: Optional[int]
    part_code: Optional[str]
    transaction_type: TransactionType
    quantity: int
    machine_id: str
    operator_name: str
    notes: Optional[str]
    unit_price: Optional[Decimal]
    recorded_by_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementResponse(BaseModel):
    part_id: int
    quantity_in_stock: int
    status: StockStatus
    transaction: StockTransactionResponse


class LedgerCheckResponse(BaseModel):
    part_id: int
    opening_quantity: int
    recorded_quantity: int
    replayed_quantity: int
    consistent: bool


class StockTransactionDetailResponse(BaseModel):
    transaction: StockTransactionResponse
    spare_part: SparePartResponse


class StockCountItem(BaseModel):
    part_id: int
    quantity: int = Field(..., ge=0, description="Counted quantity on the shelf")


class StockCountCreate(BaseModel):
    counts: List[StockCountItem] = Field(..., min_length=1)
    operator_name: str = Field(..., min_length=1, max_length=255)
    machine_id: str = Field(STOCK_COUNT_MACHINE_ID, min_length=1, max_length=100)
    notes: Optional[str] = None

    @validator('operator_name', 'machine_id')
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @validator('counts')
    def one_count_per_part(cls, v):
        part_ids = [item.part_id for item in v]
        if len(part_ids) != len(set(part_ids)):
            raise ValueError("each part may be counted only once")
        return v


class StockCountLineResponse(BaseModel):
    part_id: int
    previous_quantity: int
    quantity_in_stock: int
    status: StockStatus
    transaction: Optional[StockTransactionResponse] = None
