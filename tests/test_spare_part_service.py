from decimal import Decimal

import pytest
from pydantic import ValidationError

from apps.spare_parts.inventory import StockStatus
from apps.spare_parts.models import PartCategory, SparePart
from apps.spare_parts.schemas import SparePartCreate, SparePartUpdate
from apps.spare_parts.services import SparePartService
from core.exceptions import DuplicatePartCode, InvalidQuantity, NotFound
from core.locks import part_locks


def test_set_quantity_unknown_part_raises_not_found(db_session):
    with pytest.raises(NotFound):
        SparePartService(db_session).set_quantity(999, 5)


def test_set_quantity_rejects_negative_value(db_session, make_part):
    part = make_part(quantity_in_stock=4)
    service = SparePartService(db_session)

    with pytest.raises(InvalidQuantity):
        service.set_quantity(part.id, -1)

    db_session.refresh(part)
    assert part.quantity_in_stock == 4


def test_set_quantity_joins_the_callers_transaction(db_session, make_part):
    part = make_part(quantity_in_stock=4)
    service = SparePartService(db_session)

    service.set_quantity(part.id, 9)
    assert service.get_spare_part(part.id).quantity_in_stock == 9

    db_session.rollback()
    assert service.get_spare_part(part.id).quantity_in_stock == 4


def test_create_spare_part_uppercases_code_and_rejects_duplicates(db_session):
    service = SparePartService(db_session)
    payload = dict(
        part_code="brg-6204",
        name="Ball bearing 6204",
        machine_type="Conveyor",
        category=PartCategory.MECHANICAL,
        quantity_in_stock=12,
        minimum_stock_level=4,
        storage_location="2-03",
        unit_price=Decimal("85.50"),
        service_life_months=18,
    )

    created = service.create_spare_part(SparePartCreate(**payload))
    assert created.part_code == "BRG-6204"
    assert service.get_spare_part_by_code("brg-6204").id == created.id

    with pytest.raises(DuplicatePartCode):
        service.create_spare_part(SparePartCreate(**payload))


def test_update_spare_part_rejects_code_taken_by_another_part(db_session, make_part):
    first = make_part(part_code="A-1")
    second = make_part(part_code="B-1")
    service = SparePartService(db_session)

    with pytest.raises(DuplicatePartCode):
        service.update_spare_part(second.id, SparePartUpdate(part_code="a-1"))

    updated = service.update_spare_part(first.id, SparePartUpdate(minimum_stock_level=7, part_code="a-1"))
    assert updated.minimum_stock_level == 7


def test_delete_spare_part(db_session, make_part):
    part = make_part()
    service = SparePartService(db_session)

    assert service.delete_spare_part(part.id) is True
    assert db_session.query(SparePart).count() == 0
    with pytest.raises(NotFound):
        service.delete_spare_part(part.id)


def test_get_spare_parts_filters_and_orders_by_location(db_session, make_part):
    make_part(name="Seal kit", storage_location="10-01", category=PartCategory.HYDRAULIC)
    make_part(name="Seal ring", storage_location="2-01", category=PartCategory.HYDRAULIC)
    make_part(name="Seal tape", storage_location="1-01", category=PartCategory.CONSUMABLE)
    make_part(name="Contactor", storage_location="A-1", category=PartCategory.ELECTRICAL)
    service = SparePartService(db_session)

    parts, total = service.get_spare_parts(search="seal")
    assert total == 3
    assert [p.storage_location for p in parts] == ["1-01", "2-01", "10-01"]

    parts, total = service.get_spare_parts(search="seal", category="Hydraulic")
    assert total == 2
    assert [p.name for p in parts] == ["Seal ring", "Seal kit"]

    parts, total = service.get_spare_parts(skip=1, limit=2)
    assert total == 4
    assert [p.storage_location for p in parts] == ["2-01", "10-01"]


def test_low_stock_items_put_out_of_stock_first(db_session, make_part):
    make_part(part_code="LOW", quantity_in_stock=3, minimum_stock_level=10, unit_price=Decimal("50"))
    make_part(part_code="OUT", quantity_in_stock=0, minimum_stock_level=10, unit_price=Decimal("100"))
    make_part(part_code="OK", quantity_in_stock=15, minimum_stock_level=10)

    alerts = SparePartService(db_session).get_low_stock_items()

    assert [a["spare_part"]["part_code"] for a in alerts] == ["OUT", "LOW"]
    assert alerts[0]["status"] is StockStatus.OUT_OF_STOCK
    assert alerts[0]["needs_reorder"] is True
    assert alerts[0]["shortfall_value"] == Decimal("1000")
    assert alerts[1]["shortfall_value"] == Decimal("150")


def test_get_categories_lists_categories_in_use(db_session, make_part):
    make_part(category=PartCategory.HYDRAULIC)
    make_part(category=PartCategory.ELECTRICAL)
    make_part(category=PartCategory.HYDRAULIC)

    assert SparePartService(db_session).get_categories() == ["Electrical", "Hydraulic"]


def test_part_to_response_derives_status_and_value(db_session, make_part):
    part = make_part(quantity_in_stock=3, minimum_stock_level=5, unit_price=Decimal("20.00"))

    response = SparePartService(db_session).part_to_response(part)

    assert response["status"] is StockStatus.LOW_STOCK
    assert response["total_value"] == Decimal("60.00")


@pytest.mark.parametrize("field", ["name", "part_code", "category", "quantity_in_stock", "unit_price", "storage_location"])
def test_update_cannot_clear_required_fields(field):
    with pytest.raises(ValidationError):
        SparePartUpdate(**{field: None})


def test_update_may_clear_optional_fields(db_session, make_part):
    part = make_part(description="old", image_url="http://img/1.png")

    updated = SparePartService(db_session).update_spare_part(
        part.id, SparePartUpdate(description=None, image_url=None)
    )

    assert updated.description is None
    assert updated.image_url is None


def test_code_taken_between_check_and_commit_is_a_duplicate(db_session, make_part, monkeypatch):
    make_part(part_code="RACE-1")
    service = SparePartService(db_session)
    monkeypatch.setattr(SparePartService, "get_spare_part_by_code", lambda self, code: None)

    with pytest.raises(DuplicatePartCode):
        service.create_spare_part(SparePartCreate(
            part_code="race-1",
            name="Raced part",
            machine_type="Press",
            category=PartCategory.MECHANICAL,
            storage_location="1-01",
            unit_price=Decimal("1.00"),
        ))

    assert db_session.query(SparePart).count() == 1


def test_delete_spare_part_forgets_its_lock(db_session, make_part):
    part = make_part()
    part_locks.lock_for(part.id)

    SparePartService(db_session).delete_spare_part(part.id)

    assert part.id not in part_locks
