from __future__ import annotations

import os
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

from silodb.database import Base  # noqa: E402
from silodb.clock import FixedClock  # noqa: E402
from silodb.apps.inventory import models as inventory_models  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(
        bind=engine,
        tables=[
            inventory_models.InventoryItem.__table__,
            inventory_models.Receipt.__table__,
            inventory_models.Delivery.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return FixedClock(datetime(2024, 3, 10, 9, 0, 0))


@pytest.fixture()
def make_item(db_session):
    """Seed an item row directly, the way pre-existing data sits in the store."""

    def _make(code="CEM-01", stock="10", description="Portland cement", unit="Kg", name="Cement", location="Silo A"):
        item = inventory_models.InventoryItem(
            code=code,
            name=name,
            description=description,
            unit=unit,
            stock=Decimal(stock),
            location=location,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make
