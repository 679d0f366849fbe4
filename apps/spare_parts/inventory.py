"""
Stock status and valuation.

Everything here is a pure function of a part's current quantity, minimum
level and unit price. Status is never stored on the part; it is derived
every time it is needed so it cannot go stale.
"""
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List

ZERO = Decimal("0")


class StockStatus(str, enum.Enum):
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


def stock_status(quantity: int, minimum: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= minimum:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def status(part) -> StockStatus:
    return stock_status(part.quantity_in_stock, part.minimum_stock_level)


def _price(part) -> Decimal:
    return Decimal(str(part.unit_price)) if part.unit_price is not None else ZERO


def line_value(part) -> Decimal:
    """Value of what is on the shelf: unit price x quantity in stock."""
    return _price(part) * part.quantity_in_stock


def shortfall_value(part) -> Decimal:
    """
    Valuation used by the alert report.

    Out of stock: the cost of replenishing back to the minimum level.
    Low stock: the value still on the shelf that is at risk.
    In stock parts are not in any alert bucket and are worth 0 here.
    """
    current = status(part)
    if current is StockStatus.OUT_OF_STOCK:
        return _price(part) * part.minimum_stock_level
    if current is StockStatus.LOW_STOCK:
        return _price(part) * part.quantity_in_stock
    return ZERO


@dataclass
class AlertBucket:
    status: StockStatus
    parts: List = field(default_factory=list)
    total_value: Decimal = ZERO

    @property
    def item_count(self) -> int:
        return len(self.parts)

    def add(self, part) -> None:
        self.parts.append(part)
        self.total_value += shortfall_value(part)


@dataclass
class AlertSummary:
    out_of_stock: AlertBucket
    low_stock: AlertBucket

    @property
    def total_value(self) -> Decimal:
        return self.out_of_stock.total_value + self.low_stock.total_value

    @property
    def item_count(self) -> int:
        return self.out_of_stock.item_count + self.low_stock.item_count

    def __bool__(self) -> bool:
        return self.item_count > 0


def build_alert_summary(parts: Iterable) -> AlertSummary:
    """Split parts into out-of-stock and low-stock buckets; in-stock parts are dropped."""
    summary = AlertSummary(
        out_of_stock=AlertBucket(StockStatus.OUT_OF_STOCK),
        low_stock=AlertBucket(StockStatus.LOW_STOCK),
    )
    for part in parts:
        current = status(part)
        if current is StockStatus.OUT_OF_STOCK:
            summary.out_of_stock.add(part)
        elif current is StockStatus.LOW_STOCK:
            summary.low_stock.add(part)
    return summary


@dataclass
class InventorySummary:
    total_parts: int = 0
    low_stock_items: int = 0  # at or below minimum, out of stock included
    out_of_stock_items: int = 0
    total_value: Decimal = ZERO


def build_inventory_summary(parts: Iterable) -> InventorySummary:
    summary = InventorySummary()
    for part in parts:
        summary.total_parts += 1
        summary.total_value += line_value(part)
        current = status(part)
        if current is not StockStatus.IN_STOCK:
            summary.low_stock_items += 1
        if current is StockStatus.OUT_OF_STOCK:
            summary.out_of_stock_items += 1
    return summary
