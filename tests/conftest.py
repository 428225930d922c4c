import os

# Settings are read at import time; configure before importing the package
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAILS_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from shuttle.core.security import create_access_token, hash_password
from shuttle.db.base import Base
from shuttle.db.session import Database, get_db
from shuttle.main import create_app
from shuttle.models.departure import Departure, SCHEDULED
from shuttle.models.pricing_tier import PricingTier
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.user import User
from shuttle.models.vehicle import Vehicle


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'shuttle.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # pysqlite: let SQLAlchemy issue BEGIN so SAVEPOINTs work and writers serialize
    @event.listens_for(eng, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(engine, db):
    app = create_app(database=Database(engine=engine))

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_user(db):
    u = User(
        id=str(uuid.uuid4()),
        email="admin@example.com",
        full_name="Ada Admin",
        role="admin",
        password_hash=hash_password("secret123"),
        is_active=True,
    )
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user.id)}"}


@pytest.fixture
def make_route(db):
    def _make(name="Columbia to CLT", origin="Columbia, SC", destination="Charlotte Airport", active=True):
        r = Route(id=str(uuid.uuid4()), name=name, origin=origin, destination=destination,
                  duration_minutes=120, active=active)
        db.add(r)
        db.flush()
        return r
    return _make


@pytest.fixture
def make_vehicle(db):
    def _make(name="Van A", capacity=15, active=True):
        v = Vehicle(id=str(uuid.uuid4()), name=name, capacity=capacity, price_multiplier=1.0, active=active)
        db.add(v)
        db.flush()
        return v
    return _make


@pytest.fixture
def make_schedule(db):
    def _make(route, time="08:00", day_of_week=None, every_day=False, capacity=None, vehicle=None, active=True):
        s = Schedule(
            id=str(uuid.uuid4()),
            route_id=route.id,
            day_of_week=day_of_week,
            every_day=every_day,
            time=time,
            capacity=capacity,
            vehicle_id=vehicle.id if vehicle else None,
            active=active,
        )
        db.add(s)
        db.flush()
        return s
    return _make


@pytest.fixture
def make_departure(db):
    def _make(schedule, day: date, capacity=12, status=SCHEDULED, vehicle=None):
        d = Departure(
            id=str(uuid.uuid4()),
            schedule_id=schedule.id,
            departure_date=day,
            capacity=capacity,
            booked_seats=0,
            blocked_seats=0,
            status=status,
            vehicle_id=vehicle.id if vehicle else None,
        )
        db.add(d)
        db.flush()
        return d
    return _make


@pytest.fixture
def make_tier(db):
    def _make(customer_type="REGULAR", base_price=35, active=True, name=None):
        t = PricingTier(
            id=str(uuid.uuid4()),
            name=name or f"{customer_type.title()} Rate",
            description="",
            customer_type=customer_type,
            base_price=base_price,
            active=active,
        )
        db.add(t)
        db.flush()
        return t
    return _make


@pytest.fixture
def guest():
    return {"firstName": "Grace", "lastName": "Guest", "email": "grace@example.com", "phone": "555-0100"}
