from core.database import Base
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, CheckConstraint, Enum as SQLEnum
from datetime import datetime
import enum


class PartCategory(str, enum.Enum):
    MECHANICAL = "Mechanical"
    ELECTRICAL = "Electrical"
    HYDRAULIC = "Hydraulic"
    PNEUMATIC = "Pneumatic"
    ELECTRONIC = "Electronic"
    CONSUMABLE = "Consumable"


class SparePart(Base):
    __tablename__ = "spare_parts"
    __table_args__ = (
        CheckConstraint("quantity_in_stock >= 0", name="ck_spare_parts_quantity_non_negative"),
        CheckConstraint("minimum_stock_level >= 0", name="ck_spare_parts_minimum_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_spare_parts_price_non_negative"),
        # Never hand a deleted part's id to a new part; its ledger rows must stay orphaned
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    part_code = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), index=True, nullable=False)
    description = Column(Text, nullable=True)
    machine_type = Column(String(255), nullable=False, default="")
    category = Column(
        SQLEnum(PartCategory, name="part_category", values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
    )
    quantity_in_stock = Column(Integer, nullable=False, default=0)
    minimum_stock_level = Column(Integer, nullable=False, default=0)  # Alert at or below this
    storage_location = Column(String(100), nullable=False, default="")  # "<shelf>-<slot>", e.g. 1-01
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    service_life_months = Column(Integer, nullable=False, default=1)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<SparePart {self.part_code}: {self.quantity_in_stock}>"
