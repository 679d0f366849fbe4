from decimal import Decimal
from types import SimpleNamespace

import pytest

from apps.spare_parts.inventory import (
    StockStatus,
    build_alert_summary,
    build_inventory_summary,
    line_value,
    shortfall_value,
    status,
    stock_status,
)


def part(quantity, minimum, price="0"):
    return SimpleNamespace(
        quantity_in_stock=quantity,
        minimum_stock_level=minimum,
        unit_price=Decimal(price),
    )


@pytest.mark.parametrize(
    "quantity, minimum, expected",
    [
        (0, 10, StockStatus.OUT_OF_STOCK),
        (0, 0, StockStatus.OUT_OF_STOCK),
        (1, 10, StockStatus.LOW_STOCK),
        (10, 10, StockStatus.LOW_STOCK),
        (11, 10, StockStatus.IN_STOCK),
        (1, 0, StockStatus.IN_STOCK),
    ],
)
def test_stock_status_thresholds(quantity, minimum, expected):
    assert stock_status(quantity, minimum) is expected


def test_status_ignores_any_stored_status_field():
    stale = part(5, 10)
    stale.status = "in-stock"
    assert status(stale) is StockStatus.LOW_STOCK


def test_status_is_recomputed_after_quantity_changes():
    item = part(0, 10)
    assert status(item) is StockStatus.OUT_OF_STOCK
    item.quantity_in_stock = 25
    assert status(item) is StockStatus.IN_STOCK


def test_line_value_is_price_times_quantity():
    assert line_value(part(4, 0, "12.50")) == Decimal("50.00")
    assert line_value(part(0, 0, "12.50")) == 0


def test_shortfall_value_for_out_of_stock_uses_minimum_level():
    assert shortfall_value(part(0, 10, "100")) == Decimal("1000")


def test_shortfall_value_for_low_stock_uses_quantity_on_hand():
    assert shortfall_value(part(3, 10, "50")) == Decimal("150")


def test_shortfall_value_for_in_stock_is_zero():
    assert shortfall_value(part(15, 10, "50")) == 0


def test_alert_summary_buckets_and_values():
    a = part(0, 10, "100")
    b = part(3, 10, "50")
    c = part(15, 10, "20")

    summary = build_alert_summary([a, b, c])

    assert summary.out_of_stock.parts == [a]
    assert summary.out_of_stock.item_count == 1
    assert summary.out_of_stock.total_value == Decimal("1000")
    assert summary.low_stock.parts == [b]
    assert summary.low_stock.item_count == 1
    assert summary.low_stock.total_value == Decimal("150")
    assert c not in summary.out_of_stock.parts + summary.low_stock.parts
    assert summary.total_value == Decimal("1150")
    assert summary.item_count == 2
    assert summary


def test_alert_summary_empty_when_everything_is_stocked():
    summary = build_alert_summary([part(15, 10, "20"), part(1, 0, "5")])
    assert not summary
    assert summary.total_value == 0


def test_inventory_summary_counts_and_value():
    summary = build_inventory_summary([
        part(0, 10, "100"),
        part(3, 10, "50"),
        part(15, 10, "20"),
    ])
    assert summary.total_parts == 3
    assert summary.low_stock_items == 2
    assert summary.out_of_stock_items == 1
    assert summary.total_value == Decimal("450")
