import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hospital_cabins import auth, models
from hospital_cabins.clock import FixedClock
from hospital_cabins.database import Base, get_db
from hospital_cabins.dependencies import get_clock
from hospital_cabins.main import app

NOW = datetime(2025, 5, 20, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def client(db, clock):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db, username, is_admin=False):
    user = models.User(
        username=username,
        email=f"{username}@example.com",
        password="not-a-real-hash",
        full_name=username.title(),
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def patient(db):
    return _make_user(db, "patient")


@pytest.fixture
def other_patient(db):
    return _make_user(db, "other")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin", is_admin=True)


def headers_for(user):
    token = auth.create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patient_headers(patient):
    return headers_for(patient)


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def other_headers(other_patient):
    return headers_for(other_patient)


@pytest.fixture
def make_cabin(db):
    def factory(name="C101", capacity=2, price_cents=10000, is_active=True, **fields):
        cabin = models.Cabin(
            name=name,
            capacity=capacity,
            price_per_night_cents=price_cents,
            is_active=is_active,
            **fields,
        )
        db.add(cabin)
        db.commit()
        db.refresh(cabin)
        return cabin
    return factory


@pytest.fixture
def make_period(db):
    def factory(cabin, start, end, is_active=True):
        period = models.CabinAvailabilityPeriod(
            cabin_id=cabin.id, start_date=start, end_date=end, is_active=is_active
        )
        db.add(period)
        db.commit()
        return period
    return factory


@pytest.fixture
def make_booking(db):
    counter = {"n": 0}

    def factory(cabin, patient, check_in, check_out, status=models.BookingStatus.CONFIRMED, **fields):
        counter["n"] += 1
        fields.setdefault("booking_number", f"CBTEST{counter['n']:04d}")
        booking = models.CabinBooking(
            cabin_id=cabin.id,
            patient_id=patient.id,
            check_in_date=check_in,
            check_out_date=check_out,
            number_of_nights=(check_out - check_in).days,
            number_of_guests=1,
            guest_name="Existing Guest",
            total_amount_cents=(check_out - check_in).days * cabin.price_per_night_cents,
            status=status,
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking
    return factory
