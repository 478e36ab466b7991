"""Pytest configuration and shared fixtures."""

import os
from datetime import date, datetime, timezone
from decimal import Decimal

# Point the application at an in-memory database and a fixed business timezone
# BEFORE importing rentbill
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TIMEZONE"] = "Asia/Bangkok"

import pytest  # noqa: E402
from fastapi import Header  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from rentbill.api.deps import get_context  # noqa: E402
from rentbill.main import app  # noqa: E402
from rentbill.models import Base, Contract, MeterReading, Room, Tenant  # noqa: E402
from rentbill.services.context import RequestContext  # noqa: E402
from rentbill.services.db import SessionLocal, engine, get_db  # noqa: E402

# 2024-03-10: five days after the March due date
FIXED_NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)
STAFF_ID = 7


@pytest.fixture(scope="function")
def db_session():
    """Provide a database session with all tables created."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def context() -> RequestContext:
    """Staff context with the clock frozen at FIXED_NOW."""
    return RequestContext.at(FIXED_NOW, actor_id=STAFF_ID)


@pytest.fixture
def make_room(db_session):
    """Factory for rooms; rates default to water=18, elec=7, rent=3000."""
    counter = {"n": 0}

    def _make(**overrides) -> Room:
        counter["n"] += 1
        values = {
            "house_number": f"A-{counter['n']:02d}",
            "building": "A",
            "base_rent": Decimal("3000"),
            "water_rate": Decimal("18"),
            "elec_rate": Decimal("7"),
        }
        values.update(overrides)
        room = Room(**values)
        db_session.add(room)
        db_session.commit()
        return room

    return _make


@pytest.fixture
def make_contract(db_session):
    """Factory for contracts, creating the tenant as well."""

    def _make(room: Room, deposit: Decimal = Decimal("10000"), is_active: bool = True) -> Contract:
        tenant = Tenant(name=f"Tenant of {room.house_number}", phone="0800000000")
        db_session.add(tenant)
        db_session.flush()
        contract = Contract(
            room_id=room.id,
            tenant_id=tenant.id,
            start_date=date(2023, 6, 1),
            deposit=deposit,
            rent_amount=room.base_rent,
            is_active=is_active,
        )
        db_session.add(contract)
        db_session.commit()
        return contract

    return _make


@pytest.fixture
def add_reading(db_session):
    """Factory for meter readings recorded directly, bypassing billing."""

    def _add(room: Room, month_year: str, water: int, elec: int) -> MeterReading:
        reading = MeterReading(
            room_id=room.id,
            month_year=month_year,
            reading_date=date.fromisoformat(f"{month_year}-01"),
            prev_water_reading=0,
            prev_elec_reading=0,
            water_reading=water,
            elec_reading=elec,
        )
        db_session.add(reading)
        db_session.commit()
        return reading

    return _add


@pytest.fixture
def billed_room(make_room, make_contract, add_reading):
    """Room with an active contract and a January reading of water=100, elec=200."""
    room = make_room()
    contract = make_contract(room)
    add_reading(room, "2024-01", water=100, elec=200)
    return room, contract


@pytest.fixture
def client(db_session):
    """FastAPI test client bound to the test session and a frozen clock."""

    def override_get_db():
        yield db_session

    def override_get_context(x_actor_id: int | None = Header(None)) -> RequestContext:
        return RequestContext.at(FIXED_NOW, actor_id=x_actor_id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_context] = override_get_context

    yield TestClient(app)

    app.dependency_overrides.clear()
