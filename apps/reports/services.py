from datetime import date
from decimal import Decimal
from typing import Dict, List, Union
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from apps.reports.schemas import (
    AlertBucketResponse,
    AlertItem,
    AlertReport,
    InventorySummaryResponse,
    OrphanedTransactionFlag,
    PriceBasis,
    TransactionReport,
    TransactionReportRow,
)
from apps.spare_parts import inventory
from apps.spare_parts.locator import sort_by_location
from apps.spare_parts.models import SparePart
from apps.spare_parts.services import SparePartService
from apps.stock.models import TransactionType
from apps.stock.services import StockLedgerService, day_window, parse_direction
from core.database import SessionLocal, get_db, settings

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = SparePartService(db)
        self.ledger = StockLedgerService(db)

    def build_transaction_report(
        self,
        direction: Union[str, TransactionType],
        start_date: date,
        end_date: date,
        price_basis: Union[str, PriceBasis] = PriceBasis.CURRENT,
    ) -> TransactionReport:
        """
        Stock in or stock out report for whole days, newest first.

        Rows whose part has been deleted are left out of the rows and the
        total and listed under ``orphaned`` instead.
        """
        direction = parse_direction(direction)
        price_basis = PriceBasis(price_basis)
        start, end = day_window(start_date, end_date)

        transactions = self.ledger.query(direction, start, end)
        part_ids = {t.part_id for t in transactions if t.part_id is not None}
        parts: Dict[int, SparePart] = {}
        if part_ids:
            parts = {p.id: p for p in self.db.query(SparePart).filter(SparePart.id.in_(part_ids)).all()}

        rows: List[TransactionReportRow] = []
        orphaned: List[OrphanedTransactionFlag] = []
        total = Decimal("0")

        for transaction in transactions:
            part = parts.get(transaction.part_id)
            if part is None:
                orphaned.append(OrphanedTransactionFlag(
                    transaction_id=transaction.id,
                    part_id=transaction.part_id,
                    part_code=transaction.part_code,
                    quantity=transaction.quantity,
                    created_at=transaction.created_at,
                    reason="spare part no longer exists",
                ))
                continue

            if price_basis is PriceBasis.TRANSACTION and transaction.unit_price is not None:
                unit_price = Decimal(str(transaction.unit_price))
            else:
                unit_price = Decimal(str(part.unit_price))
            line_total = unit_price * transaction.quantity
            total += line_total

            rows.append(TransactionReportRow(
                transaction_id=transaction.id,
                created_at=transaction.created_at,
                part_id=part.id,
                part_code=part.part_code,
                part_name=part.name,
                quantity=transaction.quantity,
                machine_id=transaction.machine_id,
                operator_name=transaction.operator_name,
                notes=transaction.notes,
                unit_price=unit_price,
                line_total=line_total,
            ))

        if orphaned:
            logger.warning(
                f"Stock {direction.value} report {start_date}..{end_date}: excluded {len(orphaned)} "
                f"orphaned transaction(s) {[o.transaction_id for o in orphaned]}"
            )

        return TransactionReport(
            transaction_type=direction,
            start_date=start_date,
            end_date=end_date,
            price_basis=price_basis,
            currency=settings.CURRENCY,
            rows=rows,
            item_count=len(rows),
            total=total,
            orphaned=orphaned,
        )

    def build_alert_report(self) -> AlertReport:
        summary = inventory.build_alert_summary(self.catalog.list_all())
        return AlertReport(
            currency=settings.CURRENCY,
            out_of_stock=self._bucket_to_response(summary.out_of_stock),
            low_stock=self._bucket_to_response(summary.low_stock),
            item_count=summary.item_count,
            total_value=summary.total_value,
        )

    def build_inventory_summary(self) -> InventorySummaryResponse:
        summary = inventory.build_inventory_summary(self.catalog.list_all())
        return InventorySummaryResponse(
            currency=settings.CURRENCY,
            total_parts=summary.total_parts,
            low_stock_items=summary.low_stock_items,
            out_of_stock_items=summary.out_of_stock_items,
            total_value=summary.total_value,
        )

    def _bucket_to_response(self, bucket: inventory.AlertBucket) -> AlertBucketResponse:
        return AlertBucketResponse(
            status=bucket.status,
            item_count=bucket.item_count,
            total_value=bucket.total_value,
            items=[
                AlertItem(
                    part_id=part.id,
                    part_code=part.part_code,
                    name=part.name,
                    storage_location=part.storage_location,
                    quantity_in_stock=part.quantity_in_stock,
                    minimum_stock_level=part.minimum_stock_level,
                    unit_price=part.unit_price,
                    value=inventory.shortfall_value(part),
                )
                for part in sort_by_location(bucket.parts)
            ],
        )


def log_stock_alerts(session_factory=SessionLocal) -> inventory.AlertSummary:
    """Scheduled scan: log the current low/out-of-stock situation."""
    db = session_factory()
    try:
        summary = inventory.build_alert_summary(SparePartService(db).list_all())
    finally:
        db.close()

    if summary:
        logger.warning(
            f"Stock alert: {summary.out_of_stock.item_count} part(s) out of stock "
            f"(replenish value {summary.out_of_stock.total_value} {settings.CURRENCY}), "
            f"{summary.low_stock.item_count} part(s) low "
            f"(value at risk {summary.low_stock.total_value} {settings.CURRENCY})"
        )
    else:
        logger.info("Stock alert scan: all parts above minimum level")
    return summary


# Dependency injection
def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)
