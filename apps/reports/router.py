from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date

from apps.reports.schemas import AlertReport, InventorySummaryResponse, PriceBasis, TransactionReport
from apps.reports.services import ReportService, get_report_service
from apps.stock.models import TransactionType
from apps.auth.services import get_current_user
from apps.auth.models import UserModel

router = APIRouter()


@router.get(
    "/transactions",
    response_model=TransactionReport,
    summary="Stock receipt / withdrawal report",
    description="Transactions of one type between two dates (inclusive), newest first, with value totals"
)
def get_transaction_report(
    transaction_type: TransactionType = Query(TransactionType.OUT, description="'in' or 'out'"),
    start_date: Optional[date] = Query(None, description="Defaults to the first day of the current month"),
    end_date: Optional[date] = Query(None, description="Defaults to today"),
    price_basis: PriceBasis = Query(PriceBasis.CURRENT, description="'current' or 'transaction' unit price"),
    service: ReportService = Depends(get_report_service),
    current_user: UserModel = Depends(get_current_user)
):
    today = date.today()
    return service.build_transaction_report(
        transaction_type,
        start_date or today.replace(day=1),
        end_date or today,
        price_basis,
    )


@router.get(
    "/alerts",
    response_model=AlertReport,
    summary="Low stock & out of stock alerts",
)
def get_alert_report(
    service: ReportService = Depends(get_report_service),
    current_user: UserModel = Depends(get_current_user)
):
    return service.build_alert_report()


@router.get(
    "/summary",
    response_model=InventorySummaryResponse,
    summary="Inventory dashboard figures",
)
def get_inventory_summary(
    service: ReportService = Depends(get_report_service),
    current_user: UserModel = Depends(get_current_user)
):
    return service.build_inventory_summary()
