"""
Pytest configuration and fixtures for the dispatch engine.

The environment is set before anything under app/ is imported: settings are
read once at import time.
"""
import os

os.environ["JWT_SECRET"] = "test-secret-for-the-tow-dispatch-suite-0123456789"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["SEED_USERS"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.core.db import Base, SessionLocal, engine
from app.core.deps import get_notification_relay
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models.fleet import ThirdPartyWrecker, TowTruck, WreckerDriver
from app.models.user import User, UserRole
from app.services.dispatch import DispatchCoordinator

_PASSWORD_HASH = hash_password("secret123")


class RecordingRelay:
    """Keeps every notification; raises instead when ``fail`` is set."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, recipient, payload):
        if self.fail:
            raise ConnectionError("push gateway down")
        self.sent.append((recipient.id, payload))

    @property
    def statuses(self):
        return [payload["status"] for _, payload in self.sent]


class FixedClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class Factory:
    def __init__(self, db):
        self.db = db
        self._n = 0

    def _next(self) -> int:
        self._n += 1
        return self._n

    def user(self, role=UserRole.CUSTOMER, **kw) -> User:
        n = self._next()
        user = User(
            id=str(uuid.uuid4()),
            first_name=kw.pop("first_name", f"User{n}"),
            last_name=kw.pop("last_name", "Test"),
            phone=kw.pop("phone", f"+1555{n:07d}"),
            role=role,
            password_hash=_PASSWORD_HASH,
            is_active=kw.pop("is_active", True),
            **kw,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def truck(self, **kw) -> TowTruck:
        n = self._next()
        truck = TowTruck(
            id=str(uuid.uuid4()),
            truck_number=kw.pop("truck_number", f"TRK-{n:02d}"),
            license_plate=kw.pop("license_plate", f"PLT{n:04d}"),
            make=kw.pop("make", "Ford"),
            model=kw.pop("model", "F-550"),
            year=kw.pop("year", 2021),
            **kw,
        )
        self.db.add(truck)
        self.db.commit()
        return truck

    def driver(self, user: User | None = None, **kw) -> WreckerDriver:
        user = user or self.user(role=UserRole.DRIVER)
        driver = WreckerDriver(
            id=str(uuid.uuid4()),
            user_id=user.id,
            license_number=kw.pop("license_number", f"CDL-{self._next():05d}"),
            phone=kw.pop("phone", user.phone),
            **kw,
        )
        self.db.add(driver)
        self.db.commit()
        return driver

    def wrecker(self, **kw) -> ThirdPartyWrecker:
        n = self._next()
        wrecker = ThirdPartyWrecker(
            id=str(uuid.uuid4()),
            company_name=kw.pop("company_name", f"Acme Towing {n}"),
            contact_name=kw.pop("contact_name", "Pat Contact"),
            phone=kw.pop("phone", f"+1666{n:07d}"),
            service_area=kw.pop("service_area", "Metro"),
            base_rate=kw.pop("base_rate", Decimal("75.00")),
            per_mile_rate=kw.pop("per_mile_rate", Decimal("3.50")),
            **kw,
        )
        self.db.add(wrecker)
        self.db.commit()
        return wrecker


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def factory(db):
    return Factory(db)


@pytest.fixture()
def relay():
    return RecordingRelay()


@pytest.fixture()
def clock():
    return FixedClock(datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc))


@pytest.fixture()
def coordinator(db, relay, clock):
    return DispatchCoordinator(db, relay=relay, clock=clock)


@pytest.fixture()
def customer(factory):
    return factory.user(role=UserRole.CUSTOMER, first_name="Casey", last_name="Customer")


@pytest.fixture()
def client(db, relay):
    app.dependency_overrides[get_notification_relay] = lambda: relay
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def _auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id, role=user.role.value)}"}


@pytest.fixture()
def auth_headers():
    return _auth_headers
