from fastapi import APIRouter, Depends, status, Query
from typing import List
from datetime import date

from apps.stock.schemas import (
    StockMovementCreate,
    StockMovementResponse,
    StockTransactionResponse,
    StockTransactionDetailResponse,
    StockCountCreate,
    StockCountLineResponse,
    LedgerCheckResponse,
)
from apps.stock.services import StockLedgerService, get_stock_ledger_service, day_window
from apps.stock.models import TransactionType
from apps.auth.services import get_current_user, get_current_admin
from apps.auth.models import UserModel

router = APIRouter()


@router.post(
    "/movements",
    response_model=StockMovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Stock in / stock out",
    description="Apply a stock movement to a part and record it in the ledger"
)
def apply_movement(
    movement: StockMovementCreate,
    service: StockLedgerService = Depends(get_stock_ledger_service),
    current_user: UserModel = Depends(get_current_user)
):
    result = service.apply_movement(
        part_id=movement.part_id,
        direction=movement.transaction_type,
        quantity=movement.quantity,
        machine_id=movement.machine_id,
        operator_name=movement.operator_name,
        notes=movement.notes,
        recorded_by_id=current_user.id,
    )
    return StockMovementResponse(
        part_id=result.part_id,
        quantity_in_stock=result.quantity,
        status=result.status,
        transaction=StockTransactionResponse.model_validate(result.transaction),
    )


@router.get(
    "/transactions",
    response_model=List[StockTransactionResponse],
    summary="Query the ledger",
    description="Transactions of one type created between two dates (inclusive), newest first"
)
def query_transactions(
    transaction_type: TransactionType = Query(..., description="'in' or 'out'"),
    start: date = Query(..., description="First day, inclusive"),
    end: date = Query(..., description="Last day, inclusive"),
    service: StockLedgerService = Depends(get_stock_ledger_service),
    current_user: UserModel = Depends(get_current_user)
):
    window_start, window_end = day_window(start, end)
    return service.query(transaction_type, window_start, window_end)


@router.get(
    "/transactions/{transaction_id}",
    response_model=StockTransactionDetailResponse,
    summary="Get one ledger row",
    description="A stock transaction with the spare part it moved; 409 when the part was deleted"
)
def get_transaction(
    transaction_id: int,
    service: StockLedgerService = Depends(get_stock_ledger_service),
    current_user: UserModel = Depends(get_current_user)
):
    transaction, part = service.get_transaction_with_part(transaction_id)
    return StockTransactionDetailResponse(
        transaction=StockTransactionResponse.model_validate(transaction),
        spare_part=service.catalog.part_to_response(part),
    )


@router.post(
    "/counts",
    response_model=List[StockCountLineResponse],
    summary="Stock count",
    description="Set several parts to their counted quantities (Admin only). Differences are booked in the ledger."
)
def apply_stock_count(
    stock_count: StockCountCreate,
    service: StockLedgerService = Depends(get_stock_ledger_service),
    admin: UserModel = Depends(get_current_admin)
):
    lines = service.apply_stock_count(
        counts={item.part_id: item.quantity for item in stock_count.counts},
        operator_name=stock_count.operator_name,
        machine_id=stock_count.machine_id,
        notes=stock_count.notes,
        recorded_by_id=admin.id,
    )
    return [
        StockCountLineResponse(
            part_id=line.part_id,
            previous_quantity=line.previous_quantity,
            quantity_in_stock=line.quantity,
            status=line.status,
            transaction=StockTransactionResponse.model_validate(line.transaction) if line.transaction is not None else None,
        )
        for line in lines
    ]


@router.get(
    "/parts/{part_id}/history",
    response_model=List[StockTransactionResponse],
    summary="Stock history of a part"
)
def get_part_history(
    part_id: int,
    limit: int = Query(100, ge=1, le=1000),
    service: StockLedgerService = Depends(get_stock_ledger_service),
    current_user: UserModel = Depends(get_current_user)
):
    return service.get_part_history(part_id, limit=limit)


@router.get(
    "/parts/{part_id}/consistency",
    response_model=LedgerCheckResponse,
    summary="Ledger consistency check",
    description="Replay the ledger from an opening quantity and compare with the stored quantity"
)
def check_consistency(
    part_id: int,
    opening_quantity: int = Query(0, ge=0),
    service: StockLedgerService = Depends(get_stock_ledger_service),
    current_user: UserModel = Depends(get_current_user)
):
    check = service.check_consistency(part_id, opening_quantity)
    return LedgerCheckResponse(
        part_id=check.part_id,
        opening_quantity=check.opening_quantity,
        recorded_quantity=check.recorded_quantity,
        replayed_quantity=check.replayed_quantity,
        consistent=check.consistent,
    )
