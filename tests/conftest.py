import os

os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789")

from datetime import datetime

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shifttrack.auth.security import create_access_token
from shifttrack.db import Base, get_db
from shifttrack.models.models import Organization, Shift, User, ROLE_CARE_WORKER, ROLE_MANAGER
from shifttrack.services.permissions import Caller
from shifttrack.services.time_rules import get_clock


ORG_LAT, ORG_LON = 17.5868, 78.0736
INSIDE = (17.5900, 78.0750)
OUTSIDE = (17.7000, 78.2000)

# Wednesday afternoon
NOW = datetime(2025, 3, 12, 15, 0, tzinfo=pytz.UTC)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_org(db):
    def _make(name="Sunrise Care", latitude=ORG_LAT, longitude=ORG_LON, radius_km=2.0):
        org = Organization(name=name, latitude=latitude, longitude=longitude, perimeter_radius_km=radius_km)
        db.add(org)
        db.commit()
        db.refresh(org)
        return org
    return _make


@pytest.fixture
def make_user(db):
    def _make(org, email, role=ROLE_CARE_WORKER):
        user = User(auth_subject=f"idp|{email}", email=email, role=role, organization_id=org.id)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def add_shift(db):
    def _add(user, clock_in, clock_out=None, note=None):
        shift = Shift(user_id=user.id, clock_in=clock_in, clock_out=clock_out, clock_in_note=note)
        db.add(shift)
        db.commit()
        db.refresh(shift)
        return shift
    return _add


@pytest.fixture
def org(make_org):
    return make_org()


@pytest.fixture
def manager(org, make_user):
    return make_user(org, "manager@sunrise.test", role=ROLE_MANAGER)


@pytest.fixture
def worker(org, make_user):
    return make_user(org, "alice@sunrise.test")


@pytest.fixture
def manager_caller(manager):
    return Caller.from_user(manager)


@pytest.fixture
def worker_caller(worker):
    return Caller.from_user(worker)


@pytest.fixture
def client(session_factory):
    from shifttrack.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user.auth_subject, email=user.email)
        return {"Authorization": f"Bearer {token}"}
    return _headers
