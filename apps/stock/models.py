from core.database import Base
from core.exceptions import LedgerImmutable
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey, CheckConstraint, Enum as SQLEnum, event
from datetime import datetime
import enum
import logging

logger = logging.getLogger(__name__)


class TransactionType(str, enum.Enum):
    IN = "in"
    OUT = "out"


# Machine id booked on stock-count corrections
STOCK_COUNT_MACHINE_ID = "STOCK-COUNT"


class StockTransaction(Base):
    """One stock movement. Rows are written once and never changed."""

    __tablename__ = "stock_transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Nullable: deleting a part leaves its history behind as orphans
    part_id = Column(Integer, ForeignKey("spare_parts.id", ondelete="SET NULL"), index=True, nullable=True)
    transaction_type = Column(
        SQLEnum(TransactionType, name="transaction_type", values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
    )
    quantity = Column(Integer, nullable=False)
    machine_id = Column(String(100), nullable=False)
    operator_name = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)

    # Snapshots taken when the movement was applied
    part_code = Column(String(100), nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=True)

    recorded_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True, nullable=False)

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.transaction_type == TransactionType.IN else -self.quantity

    def __repr__(self) -> str:
        return f"<StockTransaction {self.id} {self.transaction_type} {self.quantity} part={self.part_id}>"


@event.listens_for(StockTransaction, "before_update")
def _block_transaction_update(mapper, connection, target):
    logger.error(f"Blocked update of stock transaction {target.id}")
    raise LedgerImmutable(target.id, "update")


@event.listens_for(StockTransaction, "before_delete")
def _block_transaction_delete(mapper, connection, target):
    logger.error(f"Blocked delete of stock transaction {target.id}")
    raise LedgerImmutable(target.id, "delete")
