import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from apps.reports.schemas import PriceBasis
from apps.reports.services import ReportService, log_stock_alerts
from apps.spare_parts.inventory import StockStatus
from apps.spare_parts.services import SparePartService
from apps.stock.models import StockTransaction, TransactionType
from core.exceptions import InvalidDateRange


def record(db_session, part, direction, quantity, created_at, unit_price=None):
    transaction = StockTransaction(
        part_id=part.id,
        transaction_type=direction,
        quantity=quantity,
        machine_id="M1",
        operator_name="Alice",
        part_code=part.part_code,
        unit_price=part.unit_price if unit_price is None else unit_price,
        created_at=created_at,
    )
    db_session.add(transaction)
    db_session.commit()
    return transaction


@pytest.fixture()
def january(db_session, make_part):
    bearing = make_part(part_code="BRG", name="Bearing", unit_price=Decimal("100.00"))
    belt = make_part(part_code="BLT", name="Belt", unit_price=Decimal("25.50"))
    rows = {
        "first_second": record(db_session, bearing, TransactionType.OUT, 2, datetime(2024, 1, 1, 0, 0, 0)),
        "mid_month": record(db_session, belt, TransactionType.OUT, 4, datetime(2024, 1, 15, 9, 30)),
        "last_second": record(db_session, bearing, TransactionType.OUT, 1, datetime(2024, 1, 31, 23, 59, 59)),
        "stock_in": record(db_session, belt, TransactionType.IN, 50, datetime(2024, 1, 10)),
        "december": record(db_session, bearing, TransactionType.OUT, 7, datetime(2023, 12, 31, 23, 59, 59)),
        "february": record(db_session, bearing, TransactionType.OUT, 9, datetime(2024, 2, 1, 0, 0, 0)),
    }
    return bearing, belt, rows


def test_out_report_for_january(db_session, january):
    _, _, rows = january

    report = ReportService(db_session).build_transaction_report("out", date(2024, 1, 1), date(2024, 1, 31))

    assert [r.transaction_id for r in report.rows] == [
        rows["last_second"].id,
        rows["mid_month"].id,
        rows["first_second"].id,
    ]
    assert [r.line_total for r in report.rows] == [Decimal("100.00"), Decimal("102.00"), Decimal("200.00")]
    assert report.total == Decimal("402.00")
    assert report.total == sum(r.quantity * r.unit_price for r in report.rows)
    assert report.item_count == 3
    assert report.transaction_type == TransactionType.OUT
    assert report.orphaned == []


def test_in_report_only_contains_stock_in(db_session, january):
    _, _, rows = january

    report = ReportService(db_session).build_transaction_report(TransactionType.IN, date(2024, 1, 1), date(2024, 1, 31))

    assert [r.transaction_id for r in report.rows] == [rows["stock_in"].id]
    assert report.total == Decimal("1275.00")


def test_report_uses_current_price_by_default(db_session, january):
    bearing, _, _ = january
    bearing.unit_price = Decimal("120.00")
    db_session.commit()
    service = ReportService(db_session)

    current = service.build_transaction_report("out", date(2024, 1, 1), date(2024, 1, 31))
    historical = service.build_transaction_report(
        "out", date(2024, 1, 1), date(2024, 1, 31), price_basis=PriceBasis.TRANSACTION
    )

    assert current.total == Decimal("462.00")
    assert historical.total == Decimal("402.00")
    assert historical.price_basis is PriceBasis.TRANSACTION


def test_orphaned_transactions_are_flagged_not_totalled(db_session, january, caplog):
    bearing, _, rows = january
    SparePartService(db_session).delete_spare_part(bearing.id)

    with caplog.at_level(logging.WARNING, logger="apps.reports.services"):
        report = ReportService(db_session).build_transaction_report("out", date(2024, 1, 1), date(2024, 1, 31))

    assert [r.transaction_id for r in report.rows] == [rows["mid_month"].id]
    assert report.total == Decimal("102.00")
    assert {o.transaction_id for o in report.orphaned} == {rows["first_second"].id, rows["last_second"].id}
    assert all(o.part_code == "BRG" for o in report.orphaned)
    assert "orphaned" in caplog.text


def test_empty_window_gives_empty_report(db_session, january):
    report = ReportService(db_session).build_transaction_report("out", date(2024, 3, 1), date(2024, 3, 31))
    assert report.rows == []
    assert report.total == 0


def test_reversed_window_is_rejected(db_session):
    with pytest.raises(InvalidDateRange):
        ReportService(db_session).build_transaction_report("out", date(2024, 1, 31), date(2024, 1, 1))


def test_alert_report(db_session, make_part):
    make_part(part_code="A", quantity_in_stock=0, minimum_stock_level=10, unit_price=Decimal("100"), storage_location="2-01")
    make_part(part_code="B", quantity_in_stock=3, minimum_stock_level=10, unit_price=Decimal("50"), storage_location="1-01")
    make_part(part_code="C", quantity_in_stock=15, minimum_stock_level=10, unit_price=Decimal("50"))
    make_part(part_code="D", quantity_in_stock=0, minimum_stock_level=2, unit_price=Decimal("5"), storage_location="1-01")

    report = ReportService(db_session).build_alert_report()

    assert report.out_of_stock.status is StockStatus.OUT_OF_STOCK
    assert [i.part_code for i in report.out_of_stock.items] == ["D", "A"]
    assert report.out_of_stock.item_count == 2
    assert report.out_of_stock.total_value == Decimal("1010")
    assert [i.part_code for i in report.low_stock.items] == ["B"]
    assert report.low_stock.total_value == Decimal("150")
    assert report.item_count == 3
    assert report.total_value == Decimal("1160")


def test_inventory_summary(db_session, make_part):
    make_part(quantity_in_stock=0, minimum_stock_level=10, unit_price=Decimal("100"))
    make_part(quantity_in_stock=3, minimum_stock_level=10, unit_price=Decimal("50"))
    make_part(quantity_in_stock=15, minimum_stock_level=10, unit_price=Decimal("20"))

    summary = ReportService(db_session).build_inventory_summary()

    assert summary.total_parts == 3
    assert summary.low_stock_items == 2
    assert summary.out_of_stock_items == 1
    assert summary.total_value == Decimal("450")


def test_scheduled_alert_scan_logs_warning(session_factory, make_part, caplog):
    make_part(quantity_in_stock=0, minimum_stock_level=10, unit_price=Decimal("100"))

    with caplog.at_level(logging.INFO, logger="apps.reports.services"):
        summary = log_stock_alerts(session_factory)

    assert summary.out_of_stock.item_count == 1
    assert "1 part(s) out of stock" in caplog.text


def test_scheduled_alert_scan_quiet_when_stocked(session_factory, make_part, caplog):
    make_part(quantity_in_stock=20, minimum_stock_level=10)

    with caplog.at_level(logging.INFO, logger="apps.reports.services"):
        summary = log_stock_alerts(session_factory)

    assert not summary
    assert "all parts above minimum level" in caplog.text
