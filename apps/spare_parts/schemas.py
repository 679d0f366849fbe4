from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from apps.spare_parts.models import PartCategory
from apps.spare_parts.inventory import StockStatus


class SparePartBase(BaseModel):
    part_code: str = Field(..., min_length=1, max_length=100, description="Unique part code")
    name: str = Field(..., min_length=1, max_length=255, description="Spare part name")
    description: Optional[str] = Field(None, description="Detailed description")
    machine_type: str = Field(..., min_length=1, max_length=255, description="Machine the part fits")
    category: PartCategory
    quantity_in_stock: int = Field(0, ge=0, description="Quantity cannot be negative")
    minimum_stock_level: int = Field(0, ge=0, description="Minimum stock level for alerts")
    storage_location: str = Field(..., min_length=1, max_length=100, description="Shelf-slot, e.g. 1-01")
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    service_life_months: int = Field(1, ge=1, description="Expected service life in months")
    image_url: Optional[str] = Field(None, max_length=500)

    @validator('part_code')
    def part_code_uppercase(cls, v):
        return v.strip().upper()


class SparePartCreate(SparePartBase):
    pass


class SparePartUpdate(BaseModel):
    part_code: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    machine_type: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[PartCategory] = None
    # Administrative correction; business movements go through the stock ledger
    quantity_in_stock: Optional[int] = Field(None, ge=0)
    minimum_stock_level: Optional[int] = Field(None, ge=0)
    storage_location: Optional[str] = Field(None, min_length=1, max_length=100)
    unit_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    service_life_months: Optional[int] = Field(None, ge=1)
    image_url: Optional[str] = Field(None, max_length=500)

    @validator('part_code')
    def part_code_uppercase(cls, v):
        if v is not None:
            return v.strip().upper()
        return v

    # Any field may be left out, but the NOT NULL columns cannot be cleared
    @validator(
        'part_code', 'name', 'machine_type', 'category', 'quantity_in_stock', 'minimum_stock_level',
        'storage_location', 'unit_price', 'service_life_months',
    )
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class SparePartResponse(SparePartBase):
    id: int
    status: StockStatus
    total_value: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SparePartListResponse(BaseModel):
    items: List[SparePartResponse]
    total: int
    page: int
    size: int
    total_pages: int


class LowStockAlert(BaseModel):
    spare_part: SparePartResponse
    status: StockStatus
    current_stock: int
    minimum_level: int
    shortfall_value: Decimal
    needs_reorder: bool
