import logging
import uuid

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from shuttle.core.config import settings
from shuttle.core.security import hash_password
from shuttle.db.session import Database
from shuttle.models.user import SUPERADMIN, User
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle
from shuttle.models.pricing_tier import PricingTier
from shuttle.models.setting import Setting
from shuttle.services.departure_generator import generate_rolling_window
from shuttle.services.settings_service import EXTRA_LUGGAGE_FEE, PET_FEE

logger = logging.getLogger(__name__)

PRICING_TIERS = [
    ("Regular Adult Rate", "Standard adult fare", "REGULAR", 35),
    ("Student Rate", "Valid student ID required", "STUDENT", 32),
    ("Military Rate", "Active duty and veterans", "MILITARY", 32),
    ("Legacy Customer Rate", "Early customers", "LEGACY", 31),
]

VEHICLES = [
    ("Van A", 15, 1.0),
    ("Van B", 15, 1.0),
    ("Premium Coach", 12, 1.2),
    ("Luxury Van", 8, 1.5),
    ("Economy Shuttle", 20, 0.9),
]

SAMPLE_ROUTE = ("Columbia to Charlotte Airport", "Columbia, SC", "Charlotte Douglas International Airport (CLT)", 120)
SAMPLE_TIMES = ["06:00", "08:00", "10:00", "12:00", "14:00", "16:00", "18:00", "20:00"]


def ensure_user(db: Session, email: str, password: str, role: str, name: str):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return
    db.add(
        User(
            id=str(uuid.uuid4()),
            email=email,
            full_name=name,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
    )
    db.commit()


def ensure_pricing(db: Session):
    for name, description, customer_type, base_price in PRICING_TIERS:
        exists = db.query(PricingTier).filter(PricingTier.customer_type == customer_type).first()
        if exists:
            continue
        db.add(PricingTier(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            customer_type=customer_type,
            base_price=base_price,
            active=True,
        ))
    for key, value in ((EXTRA_LUGGAGE_FEE, settings.DEFAULT_EXTRA_LUGGAGE_FEE), (PET_FEE, settings.DEFAULT_PET_FEE)):
        if not db.get(Setting, key):
            db.add(Setting(key=key, int_value=value, str_value=None))
    db.commit()


def ensure_sample_network(db: Session):
    """Vehicles, one route and daily schedules at even hours; then fill the rolling window."""
    for name, capacity, multiplier in VEHICLES:
        if not db.query(Vehicle).filter(Vehicle.name == name).first():
            db.add(Vehicle(id=str(uuid.uuid4()), name=name, capacity=capacity, price_multiplier=multiplier, active=True))
    db.flush()

    name, origin, destination, duration = SAMPLE_ROUTE
    route = db.query(Route).filter(Route.name == name).first()
    if not route:
        route = Route(id=str(uuid.uuid4()), name=name, origin=origin, destination=destination,
                      duration_minutes=duration, active=True)
        db.add(route)
        db.flush()
        van = db.query(Vehicle).filter(Vehicle.name == "Van A").first()
        for t in SAMPLE_TIMES:
            db.add(Schedule(
                id=str(uuid.uuid4()),
                route_id=route.id,
                day_of_week=None,
                every_day=True,
                time=t,
                vehicle_id=van.id if van else None,
                active=True,
            ))
        db.flush()
    result = generate_rolling_window(db)
    db.commit()
    logger.info("[seed] rolling window: %s departures created", result.created)


def run(db=None):
    database = None
    if db is None:
        database = Database()
        db = database.session()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except ProgrammingError:
            db.rollback()
            logger.warning("[seed] users table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        ensure_user(db, settings.SEED_ADMIN_EMAIL.lower(), settings.SEED_ADMIN_PASSWORD, SUPERADMIN, "Admin")
        ensure_pricing(db)
        if settings.SEED_SAMPLE_DATA:
            ensure_sample_network(db)
    finally:
        db.close()
        if database is not None:
            database.dispose()


if __name__ == "__main__":
    from shuttle.core.logging_config import configure_logging
    configure_logging(settings.LOG_LEVEL)
    run()
