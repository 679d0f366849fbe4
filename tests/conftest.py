import itertools
import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["ALERT_SCAN_ENABLED"] = "false"

from core.database import Base  # noqa: E402
from apps.auth import models as auth_models  # noqa: E402,F401
from apps.spare_parts.models import PartCategory, SparePart  # noqa: E402
from apps.stock import models as stock_models  # noqa: E402,F401


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def build_part(n, **overrides):
    values = dict(
        part_code=f"P-{n:03d}",
        name=f"Part {n}",
        machine_type="Press",
        category=PartCategory.MECHANICAL,
        quantity_in_stock=0,
        minimum_stock_level=0,
        storage_location=f"{n}-01",
        unit_price=Decimal("10.00"),
        service_life_months=12,
    )
    values.update(overrides)
    return SparePart(**values)


@pytest.fixture()
def make_part(db_session):
    counter = itertools.count(1)

    def _make(**overrides):
        part = build_part(next(counter), **overrides)
        db_session.add(part)
        db_session.commit()
        db_session.refresh(part)
        return part

    return _make
