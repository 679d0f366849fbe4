from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from apps.stock.models import TransactionType
from apps.spare_parts.inventory import StockStatus


class PriceBasis(str, Enum):
    CURRENT = "current"          # part's price when the report runs
    TRANSACTION = "transaction"  # price captured on the ledger row


class TransactionReportRow(BaseModel):
    transaction_id: int
    created_at: datetime
    part_id: int
    part_code: str
    part_name: str
    quantity: int
    machine_id: str
    operator_name: str
    notes: Optional[str] = None
    unit_price: Decimal
    line_total: Decimal


class OrphanedTransactionFlag(BaseModel):
    transaction_id: int
    part_id: Optional[int]
    part_code: Optional[str]
    quantity: int
    created_at: datetime
    reason: str


class TransactionReport(BaseModel):
    transaction_type: TransactionType
    start_date: date
    end_date: date
    price_basis: PriceBasis
    currency: str
    rows: List[TransactionReportRow]
    item_count: int
    total: Decimal
    orphaned: List[OrphanedTransactionFlag] = []


class AlertItem(BaseModel):
    part_id: int
    part_code: str
    name: str
    storage_location: str
    quantity_in_stock: int
    minimum_stock_level: int
    unit_price: Decimal
    value: Decimal


class AlertBucketResponse(BaseModel):
    status: StockStatus
    item_count: int
    total_value: Decimal
    items: List[AlertItem]


class AlertReport(BaseModel):
    currency: str
    out_of_stock: AlertBucketResponse
    low_stock: AlertBucketResponse
    item_count: int
    total_value: Decimal


class InventorySummaryResponse(BaseModel):
    currency: str
    total_parts: int
    low_stock_items: int
    out_of_stock_items: int
    total_value: Decimal
