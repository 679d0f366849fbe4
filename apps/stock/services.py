from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union
import logging

from fastapi import Depends
from sqlalchemy import func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.spare_parts import inventory
from apps.spare_parts.models import SparePart
from apps.spare_parts.services import SparePartService
from apps.stock.models import STOCK_COUNT_MACHINE_ID, StockTransaction, TransactionType
from core.database import get_db, settings
from core.exceptions import (
    InvalidDateRange,
    InvalidMovement,
    InsufficientStock,
    OrphanedTransaction,
    StockError,
    StorageError,
    TransactionNotFound,
)
from core.locks import LockAcquireTimeout, PartLockRegistry, part_locks

logger = logging.getLogger(__name__)


@dataclass
class MovementResult:
    part_id: int
    quantity: int
    minimum_stock_level: int
    transaction_id: int
    transaction: StockTransaction

    @property
    def status(self) -> inventory.StockStatus:
        # Same locked read as ``quantity``
        return inventory.stock_status(self.quantity, self.minimum_stock_level)


@dataclass
class StockCountLine:
    part_id: int
    previous_quantity: int
    quantity: int
    minimum_stock_level: int
    transaction: Optional[StockTransaction] = None

    @property
    def status(self) -> inventory.StockStatus:
        return inventory.stock_status(self.quantity, self.minimum_stock_level)


@dataclass
class LedgerCheck:
    part_id: int
    opening_quantity: int
    recorded_quantity: int
    replayed_quantity: int

    @property
    def consistent(self) -> bool:
        return self.recorded_quantity == self.replayed_quantity


def day_window(start_date: date, end_date: date) -> Tuple[datetime, datetime]:
    """[start 00:00:00, end 23:59:59.999999] for whole-day ranges"""
    if start_date > end_date:
        raise InvalidDateRange(start_date, end_date)
    return datetime.combine(start_date, time.min), datetime.combine(end_date, time.max)


def parse_direction(direction: Union[str, TransactionType]) -> TransactionType:
    try:
        return TransactionType(direction)
    except ValueError:
        raise InvalidMovement(f"Unknown transaction type '{direction}', expected 'in' or 'out'")


def _require_names(machine_id: str, operator_name: str) -> Tuple[str, str]:
    if not machine_id or not machine_id.strip():
        raise InvalidMovement("Machine ID is required")
    if not operator_name or not operator_name.strip():
        raise InvalidMovement("Operator name is required")
    return machine_id.strip(), operator_name.strip()


class StockLedgerService:
    """
    The only business path that changes a part's quantity.

    Each movement updates the part and appends one ledger row inside a single
    database transaction, while holding the part's lock.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = datetime.utcnow,
        locks: PartLockRegistry = part_locks,
        lock_timeout: Optional[float] = None,
    ):
        self.db = db
        self.catalog = SparePartService(db)
        self.clock = clock
        self.locks = locks
        self.lock_timeout = settings.PART_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout

    def apply_movement(
        self,
        part_id: int,
        direction: Union[str, TransactionType],
        quantity: int,
        machine_id: str,
        operator_name: str,
        notes: Optional[str] = None,
        recorded_by_id: Optional[int] = None,
    ) -> MovementResult:
        direction = parse_direction(direction)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidMovement(f"Quantity must be a positive integer, got {quantity!r}")
        machine_id, operator_name = _require_names(machine_id, operator_name)

        try:
            with self.locks.hold(part_id, timeout=self.lock_timeout):
                return self._apply_locked(
                    part_id, direction, quantity, machine_id, operator_name, notes, recorded_by_id,
                )
        except LockAcquireTimeout as e:
            raise StorageError(f"Stock movement not applied: part {part_id} is busy, try again") from e

    def apply_stock_count(
        self,
        counts: Dict[int, int],
        operator_name: str,
        machine_id: str = STOCK_COUNT_MACHINE_ID,
        notes: Optional[str] = None,
        recorded_by_id: Optional[int] = None,
    ) -> List[StockCountLine]:
        """
        Bring several parts to their counted quantities at once.

        Every difference is booked as a stock in or stock out, so replaying the
        ledger still gives the stored quantity. Parts whose count already
        matches get no ledger row. All parts are updated in one database
        transaction: either every count is applied or none is.
        """
        if not counts:
            raise InvalidMovement("No stock counts given")
        for part_id, counted in counts.items():
            if isinstance(counted, bool) or not isinstance(counted, int) or counted < 0:
                raise InvalidMovement(
                    f"Counted quantity for part {part_id} must be a non-negative integer, got {counted!r}"
                )
        machine_id, operator_name = _require_names(machine_id, operator_name)

        # Fixed lock order so two overlapping counts cannot deadlock
        part_ids = sorted(counts)
        try:
            with ExitStack() as stack:
                for part_id in part_ids:
                    stack.enter_context(self.locks.hold(part_id, timeout=self.lock_timeout))
                with self._atomic(f"stock count of parts {part_ids}"):
                    lines = [
                        self._count_locked(part_id, counts[part_id], machine_id, operator_name, notes, recorded_by_id)
                        for part_id in part_ids
                    ]
        except LockAcquireTimeout as e:
            raise StorageError(f"Stock count not applied: parts {part_ids} are busy, try again") from e

        changed = [line for line in lines if line.transaction is not None]
        logger.info(
            f"Stock count by {operator_name}: {len(lines)} part(s) counted, {len(changed)} corrected "
            f"{[(line.part_id, line.previous_quantity, line.quantity) for line in changed]}"
        )
        return lines

    @contextmanager
    def _atomic(self, label: str) -> Iterator[None]:
        """Commit the block as one database transaction, or roll all of it back."""
        try:
            yield
            self.db.commit()
        except StockError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{label} rolled back: {e}", exc_info=True)
            raise StorageError("Stock movement not applied: storage failure") from e

    def _apply_locked(self, part_id, direction, quantity, machine_id, operator_name, notes, recorded_by_id):
        with self._atomic(f"Stock movement on part {part_id}"):
            part = self.catalog.get_spare_part_for_update(part_id)
            current = part.quantity_in_stock
            minimum = part.minimum_stock_level
            delta = quantity if direction == TransactionType.IN else -quantity
            new_quantity = current + delta

            if direction == TransactionType.OUT and new_quantity < 0:
                logger.warning(
                    f"Rejected stock out of {quantity} for {part.part_code} (ID: {part_id}): only {current} in stock"
                )
                raise InsufficientStock(part_id, current, quantity)

            self.catalog.set_quantity(part_id, new_quantity)
            transaction = self._append(part, direction, quantity, machine_id, operator_name, notes, recorded_by_id)

        logger.info(
            f"Stock {direction.value} {quantity} x {part.part_code} (ID: {part_id}): "
            f"{current} -> {new_quantity} by {operator_name} on {machine_id}"
        )
        return MovementResult(
            part_id=part_id,
            quantity=new_quantity,
            minimum_stock_level=minimum,
            transaction_id=transaction.id,
            transaction=transaction,
        )

    def _count_locked(self, part_id, counted, machine_id, operator_name, notes, recorded_by_id) -> StockCountLine:
        part = self.catalog.get_spare_part_for_update(part_id)
        line = StockCountLine(
            part_id=part_id,
            previous_quantity=part.quantity_in_stock,
            quantity=counted,
            minimum_stock_level=part.minimum_stock_level,
        )
        if counted == line.previous_quantity:
            return line

        direction = TransactionType.IN if counted > line.previous_quantity else TransactionType.OUT
        self.catalog.set_quantity(part_id, counted)
        line.transaction = self._append(
            part, direction, abs(counted - line.previous_quantity), machine_id, operator_name, notes, recorded_by_id,
        )
        return line

    def _append(self, part, direction, quantity, machine_id, operator_name, notes, recorded_by_id) -> StockTransaction:
        transaction = StockTransaction(
            part_id=part.id,
            transaction_type=direction,
            quantity=quantity,
            machine_id=machine_id,
            operator_name=operator_name,
            notes=notes or None,
            part_code=part.part_code,
            unit_price=part.unit_price,
            recorded_by_id=recorded_by_id,
            created_at=self.clock(),
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def query(
        self,
        direction: Union[str, TransactionType],
        start: datetime,
        end: datetime,
    ) -> List[StockTransaction]:
        """Transactions of one direction with start <= created_at <= end, newest first"""
        return (
            self.db.query(StockTransaction)
            .filter(
                StockTransaction.transaction_type == parse_direction(direction),
                StockTransaction.created_at >= start,
                StockTransaction.created_at <= end,
            )
            .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
            .all()
        )

    def get_transaction_with_part(self, transaction_id: int) -> Tuple[StockTransaction, SparePart]:
        """A single ledger row together with the part it moved."""
        transaction = self.db.get(StockTransaction, transaction_id)
        if transaction is None:
            raise TransactionNotFound(transaction_id)

        part = self.catalog.get_spare_part(transaction.part_id) if transaction.part_id is not None else None
        if part is None:
            logger.warning(
                f"Stock transaction {transaction_id} ({transaction.part_code}) has no spare part any more"
            )
            raise OrphanedTransaction(transaction_id, transaction.part_id)
        return transaction, part

    def get_part_history(self, part_id: int, limit: int = 100) -> List[StockTransaction]:
        self.catalog.require_spare_part(part_id)
        return (
            self.db.query(StockTransaction)
            .filter(StockTransaction.part_id == part_id)
            .order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
            .limit(limit)
            .all()
        )

    def replay_quantity(self, part_id: int, opening_quantity: int = 0) -> int:
        """Opening quantity plus every signed movement recorded for the part"""
        signed = case(
            (StockTransaction.transaction_type == TransactionType.IN, StockTransaction.quantity),
            else_=-StockTransaction.quantity,
        )
        net = (
            self.db.query(func.coalesce(func.sum(signed), 0))
            .filter(StockTransaction.part_id == part_id)
            .scalar()
        )
        return opening_quantity + int(net or 0)

    def check_consistency(self, part_id: int, opening_quantity: int = 0) -> LedgerCheck:
        part = self.catalog.require_spare_part(part_id)
        check = LedgerCheck(
            part_id=part_id,
            opening_quantity=opening_quantity,
            recorded_quantity=part.quantity_in_stock,
            replayed_quantity=self.replay_quantity(part_id, opening_quantity),
        )
        if not check.consistent:
            logger.warning(
                f"Ledger mismatch for part {part_id}: recorded {check.recorded_quantity}, "
                f"replayed {check.replayed_quantity}"
            )
        return check


# Dependency injection
def get_stock_ledger_service(db: Session = Depends(get_db)) -> StockLedgerService:
    return StockLedgerService(db)
