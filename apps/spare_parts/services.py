from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Tuple
from fastapi import Depends
from apps.spare_parts.models import SparePart
from apps.spare_parts.schemas import (
    SparePartCreate,
    SparePartUpdate,
)
from apps.spare_parts import inventory
from apps.spare_parts.locator import ALL_CATEGORIES, filter_parts
from core.database import get_db
from core.exceptions import NotFound, InvalidQuantity, DuplicatePartCode
from core.locks import part_locks
import logging

logger = logging.getLogger(__name__)


class SparePartService:
    def __init__(self, db: Session):
        self.db = db

    def get_spare_part(self, spare_part_id: int) -> Optional[SparePart]:
        """Get spare part by ID"""
        return self.db.query(SparePart).filter(SparePart.id == spare_part_id).first()

    def get_spare_part_by_code(self, part_code: str) -> Optional[SparePart]:
        """Get spare part by part code"""
        return self.db.query(SparePart).filter(SparePart.part_code == part_code.strip().upper()).first()

    def require_spare_part(self, spare_part_id: int) -> SparePart:
        spare_part = self.get_spare_part(spare_part_id)
        if not spare_part:
            raise NotFound(spare_part_id)
        return spare_part

    def get_spare_part_for_update(self, spare_part_id: int) -> SparePart:
        """Re-read a part from the database, row-locked where the backend supports it."""
        spare_part = (
            self.db.query(SparePart)
            .filter(SparePart.id == spare_part_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not spare_part:
            raise NotFound(spare_part_id)
        return spare_part

    def list_all(self) -> List[SparePart]:
        return self.db.query(SparePart).all()

    def get_spare_parts(
        self,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        category: Optional[str] = ALL_CATEGORIES,
    ) -> Tuple[List[SparePart], int]:
        """Get spare parts matching search/category, in storage-location order"""
        query = self.db.query(SparePart)

        # Narrow in SQL first; the exact match and the ordering happen in Python
        if category and category != ALL_CATEGORIES:
            query = query.filter(SparePart.category == category)

        spare_parts = filter_parts(query.all(), search, category)
        total = len(spare_parts)

        return spare_parts[skip:skip + limit], total

    def create_spare_part(self, spare_part: SparePartCreate) -> SparePart:
        """Create a new spare part"""
        if self.get_spare_part_by_code(spare_part.part_code):
            raise DuplicatePartCode(spare_part.part_code)

        db_spare_part = SparePart(**spare_part.model_dump())
        self.db.add(db_spare_part)
        self._commit_catalog_edit(db_spare_part.part_code)
        self.db.refresh(db_spare_part)

        logger.info(f"Created spare part: {db_spare_part.part_code} {db_spare_part.name} (ID: {db_spare_part.id})")
        return db_spare_part

    def update_spare_part(
        self,
        spare_part_id: int,
        spare_part_update: SparePartUpdate
    ) -> SparePart:
        """Update an existing spare part (catalog edit, not a stock movement)"""
        db_spare_part = self.require_spare_part(spare_part_id)

        update_data = spare_part_update.model_dump(exclude_unset=True)

        if 'part_code' in update_data and update_data['part_code']:
            existing = self.get_spare_part_by_code(update_data['part_code'])
            if existing and existing.id != spare_part_id:
                raise DuplicatePartCode(update_data['part_code'])

        for field, value in update_data.items():
            setattr(db_spare_part, field, value)

        self._commit_catalog_edit(db_spare_part.part_code, spare_part_id)
        self.db.refresh(db_spare_part)

        logger.info(f"Updated spare part: {db_spare_part.part_code} (ID: {db_spare_part.id}) fields={sorted(update_data)}")
        return db_spare_part

    def _commit_catalog_edit(self, part_code: str, spare_part_id: Optional[int] = None):
        """Commit a create/update; a part code taken concurrently becomes DuplicatePartCode."""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            taken = self.db.query(SparePart.id).filter(SparePart.part_code == part_code).first()
            if taken and taken.id != spare_part_id:
                logger.warning(f"Part code {part_code} was taken by spare part {taken.id} before commit")
                raise DuplicatePartCode(part_code)
            raise

    def delete_spare_part(self, spare_part_id: int) -> bool:
        """Delete a spare part. Its ledger rows stay behind as orphans."""
        db_spare_part = self.require_spare_part(spare_part_id)

        self.db.delete(db_spare_part)
        self.db.commit()
        part_locks.discard(spare_part_id)

        logger.info(f"Deleted spare part: {db_spare_part.part_code} (ID: {spare_part_id})")
        return True

    def set_quantity(self, spare_part_id: int, new_quantity: int) -> SparePart:
        """
        Store a new stock quantity for a part.

        Only the stock ledger calls this. The change is flushed into the
        caller's transaction; committing (or rolling back) is up to the caller.
        """
        db_spare_part = self.require_spare_part(spare_part_id)
        if new_quantity < 0:
            raise InvalidQuantity(spare_part_id, new_quantity)

        db_spare_part.quantity_in_stock = new_quantity
        self.db.flush()
        return db_spare_part

    def get_low_stock_items(self) -> List[Dict]:
        """Parts at or below their minimum level, out of stock first"""
        summary = inventory.build_alert_summary(self.list_all())

        alerts = []
        for bucket in (summary.out_of_stock, summary.low_stock):
            for item in filter_parts(bucket.parts):
                alerts.append({
                    "spare_part": self.part_to_response(item),
                    "status": bucket.status,
                    "current_stock": item.quantity_in_stock,
                    "minimum_level": item.minimum_stock_level,
                    "shortfall_value": inventory.shortfall_value(item),
                    "needs_reorder": bucket.status is inventory.StockStatus.OUT_OF_STOCK,
                })
        return alerts

    def get_categories(self) -> List[str]:
        """Get all categories currently in use"""
        categories = self.db.query(SparePart.category).distinct().all()

        return sorted(cat[0].value for cat in categories if cat[0])

    def part_to_response(self, part: SparePart) -> Dict:
        """Convert SparePart model to response dictionary with derived fields"""
        return {
            "id": part.id,
            "part_code": part.part_code,
            "name": part.name,
            "description": part.description,
            "machine_type": part.machine_type,
            "category": part.category,
            "quantity_in_stock": part.quantity_in_stock,
            "minimum_stock_level": part.minimum_stock_level,
            "storage_location": part.storage_location,
            "unit_price": part.unit_price,
            "service_life_months": part.service_life_months,
            "image_url": part.image_url,
            "status": inventory.status(part),
            "total_value": inventory.line_value(part),
            "created_at": part.created_at,
            "updated_at": part.updated_at,
        }


# Dependency injection
def get_spare_part_service(db: Session = Depends(get_db)) -> SparePartService:
    return SparePartService(db)
