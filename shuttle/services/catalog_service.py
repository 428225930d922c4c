"""
Routes, schedules, vehicles and pricing tiers: write-time rules.

Rows that dated departures or bookings point at are never deleted; the
caller gets a ConflictError telling them to deactivate instead. Callers
commit.
"""
import logging
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from shuttle.core.errors import ConflictError, NotFoundError, ValidationFailed
from shuttle.models.booking import Booking
from shuttle.models.departure import Departure
from shuttle.models.pricing_tier import PricingTier, CUSTOMER_TYPES
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle

logger = logging.getLogger(__name__)


def _get(db: Session, model, obj_id: str, label: str):
    obj = db.get(model, obj_id)
    if not obj:
        raise NotFoundError(f"{label} not found")
    return obj


def _name_taken(db: Session, model, name: str, exclude_id: str | None = None) -> bool:
    q = db.query(model.id).filter(func.lower(model.name) == name.strip().lower())
    if exclude_id:
        q = q.filter(model.id != exclude_id)
    return q.first() is not None


# Routes

def route_to_dict(r: Route) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "origin": r.origin,
        "destination": r.destination,
        "duration": r.duration_minutes,
        "active": bool(r.active),
    }


def create_route(db: Session, name: str, origin: str, destination: str, duration_minutes: int = 60, active: bool = True) -> Route:
    if _name_taken(db, Route, name):
        raise ConflictError(f"Route '{name.strip()}' already exists")
    r = Route(
        id=str(uuid.uuid4()),
        name=name.strip(),
        origin=origin.strip(),
        destination=destination.strip(),
        duration_minutes=duration_minutes,
        active=active,
    )
    db.add(r)
    db.flush()
    return r


def update_route(db: Session, route_id: str, **fields) -> Route:
    r = _get(db, Route, route_id, "Route")
    name = fields.get("name")
    if name is not None:
        if _name_taken(db, Route, name, exclude_id=r.id):
            raise ConflictError(f"Route '{name.strip()}' already exists")
        r.name = name.strip()
    for attr in ("origin", "destination"):
        if fields.get(attr) is not None:
            setattr(r, attr, fields[attr].strip())
    if fields.get("duration_minutes") is not None:
        r.duration_minutes = fields["duration_minutes"]
    if fields.get("active") is not None:
        r.active = bool(fields["active"])
    return r


def delete_route(db: Session, route_id: str) -> None:
    r = _get(db, Route, route_id, "Route")
    if db.query(Schedule.id).filter(Schedule.route_id == r.id).first():
        raise ConflictError("Cannot delete route that has schedules. Deactivate it instead.")
    db.delete(r)
    logger.info("Deleted %s %s", r.__tablename__, r.id)


# Schedules

def schedule_to_dict(s: Schedule, route: Route | None = None) -> dict:
    out = {
        "id": s.id,
        "routeId": s.route_id,
        "dayOfWeek": s.day_of_week,
        "everyDay": bool(s.every_day),
        "time": s.time,
        "capacity": s.capacity,
        "vehicleId": s.vehicle_id,
        "active": bool(s.active),
    }
    if route is not None:
        out["route"] = route_to_dict(route)
    return out


def _check_vehicle(db: Session, vehicle_id: str | None) -> None:
    if vehicle_id:
        v = _get(db, Vehicle, vehicle_id, "Vehicle")
        if not v.active:
            raise ValidationFailed("Vehicle is not active")


def _check_schedule_unique(db: Session, route_id: str, day_of_week: int | None, every_day: bool, time: str, exclude_id: str | None = None) -> None:
    q = db.query(Schedule.id).filter(Schedule.route_id == route_id, Schedule.time == time)
    if every_day:
        q = q.filter(Schedule.every_day == True)  # noqa: E712
    else:
        q = q.filter(Schedule.every_day == False, Schedule.day_of_week == day_of_week)  # noqa: E712
    if exclude_id:
        q = q.filter(Schedule.id != exclude_id)
    if q.first():
        raise ConflictError("A schedule for this route, day and time already exists")


def create_schedule(
    db: Session,
    route_id: str,
    time: str,
    day_of_week: int | None = None,
    every_day: bool = False,
    capacity: int | None = None,
    vehicle_id: str | None = None,
    active: bool = True,
) -> Schedule:
    _get(db, Route, route_id, "Route")
    _check_vehicle(db, vehicle_id)
    if every_day:
        day_of_week = None
    elif day_of_week not in range(1, 8):
        raise ValidationFailed("dayOfWeek must be 1 (Monday) .. 7 (Sunday)")
    _check_schedule_unique(db, route_id, day_of_week, every_day, time)
    s = Schedule(
        id=str(uuid.uuid4()),
        route_id=route_id,
        day_of_week=day_of_week,
        every_day=every_day,
        time=time,
        capacity=capacity,
        vehicle_id=vehicle_id or None,
        active=active,
    )
    db.add(s)
    db.flush()
    return s


def update_schedule(db: Session, schedule_id: str, **fields) -> Schedule:
    """Changes apply to departures generated afterwards; existing departures keep their values."""
    s = _get(db, Schedule, schedule_id, "Schedule")
    every_day = s.every_day if fields.get("every_day") is None else bool(fields["every_day"])
    day_of_week = s.day_of_week if fields.get("day_of_week") is None else fields["day_of_week"]
    if every_day:
        day_of_week = None
    elif day_of_week not in range(1, 8):
        raise ValidationFailed("dayOfWeek must be 1 (Monday) .. 7 (Sunday)")
    time = fields.get("time") or s.time
    _check_schedule_unique(db, s.route_id, day_of_week, every_day, time, exclude_id=s.id)
    if "vehicle_id" in fields and fields["vehicle_id"] is not None:
        _check_vehicle(db, fields["vehicle_id"])
        s.vehicle_id = fields["vehicle_id"] or None
    s.every_day = every_day
    s.day_of_week = day_of_week
    s.time = time
    if fields.get("capacity") is not None:
        s.capacity = fields["capacity"]
    if fields.get("active") is not None:
        s.active = bool(fields["active"])
    return s


def delete_schedule(db: Session, schedule_id: str) -> None:
    s = _get(db, Schedule, schedule_id, "Schedule")
    if db.query(Departure.id).filter(Departure.schedule_id == s.id).first():
        raise ConflictError("Cannot delete schedule that has departures. Deactivate it instead.")
    db.delete(s)
    logger.info("Deleted %s %s", s.__tablename__, s.id)


# Vehicles

def vehicle_to_dict(v: Vehicle) -> dict:
    return {
        "id": v.id,
        "name": v.name,
        "capacity": v.capacity,
        "priceMultiplier": v.price_multiplier,
        "active": bool(v.active),
    }


def create_vehicle(db: Session, name: str, capacity: int, price_multiplier: float = 1.0, active: bool = True) -> Vehicle:
    if _name_taken(db, Vehicle, name):
        raise ConflictError(f"Vehicle '{name.strip()}' already exists")
    v = Vehicle(
        id=str(uuid.uuid4()),
        name=name.strip(),
        capacity=capacity,
        price_multiplier=price_multiplier,
        active=active,
    )
    db.add(v)
    db.flush()
    return v


def update_vehicle(db: Session, vehicle_id: str, **fields) -> Vehicle:
    """Capacity changes reach departures only when the vehicle is (re)assigned."""
    v = _get(db, Vehicle, vehicle_id, "Vehicle")
    name = fields.get("name")
    if name is not None:
        if _name_taken(db, Vehicle, name, exclude_id=v.id):
            raise ConflictError(f"Vehicle '{name.strip()}' already exists")
        v.name = name.strip()
    if fields.get("capacity") is not None:
        v.capacity = fields["capacity"]
    if fields.get("price_multiplier") is not None:
        v.price_multiplier = fields["price_multiplier"]
    if fields.get("active") is not None:
        v.active = bool(fields["active"])
    return v


def delete_vehicle(db: Session, vehicle_id: str) -> None:
    v = _get(db, Vehicle, vehicle_id, "Vehicle")
    in_use = (
        db.query(Departure.id).filter(Departure.vehicle_id == v.id).first()
        or db.query(Schedule.id).filter(Schedule.vehicle_id == v.id).first()
    )
    if in_use:
        raise ConflictError("Cannot delete vehicle that is assigned to departures. Deactivate it instead.")
    db.delete(v)
    logger.info("Deleted %s %s", v.__tablename__, v.id)


# Pricing tiers

def _normalize_type(customer_type: str) -> str:
    t = (customer_type or "").strip().upper()
    if t not in CUSTOMER_TYPES:
        raise ValidationFailed(f"customerType must be one of {', '.join(CUSTOMER_TYPES)}")
    return t


def _check_single_active(db: Session, customer_type: str, exclude_id: str | None = None) -> None:
    q = db.query(PricingTier.id).filter(
        PricingTier.customer_type == customer_type,
        PricingTier.active == True,  # noqa: E712
    )
    if exclude_id:
        q = q.filter(PricingTier.id != exclude_id)
    if q.first():
        raise ConflictError(f"An active pricing tier for {customer_type} already exists")


def create_pricing_tier(db: Session, name: str, customer_type: str, base_price: int, description: str = "", active: bool = True) -> PricingTier:
    ctype = _normalize_type(customer_type)
    if active:
        _check_single_active(db, ctype)
    t = PricingTier(
        id=str(uuid.uuid4()),
        name=name.strip(),
        description=description or "",
        customer_type=ctype,
        base_price=base_price,
        active=active,
    )
    db.add(t)
    db.flush()
    return t


def update_pricing_tier(db: Session, tier_id: str, **fields) -> PricingTier:
    t = _get(db, PricingTier, tier_id, "Pricing tier")
    if fields.get("active") and not t.active:
        _check_single_active(db, t.customer_type, exclude_id=t.id)
    if fields.get("name") is not None:
        t.name = fields["name"].strip()
    if fields.get("description") is not None:
        t.description = fields["description"]
    if fields.get("base_price") is not None:
        t.base_price = fields["base_price"]
    if fields.get("active") is not None:
        t.active = bool(fields["active"])
    return t


def delete_pricing_tier(db: Session, tier_id: str) -> None:
    t = _get(db, PricingTier, tier_id, "Pricing tier")
    if db.query(Booking.id).filter(Booking.pricing_tier_id == t.id).first():
        raise ConflictError("Cannot delete pricing tier used by bookings. Deactivate it instead.")
    db.delete(t)
    logger.info("Deleted %s %s", t.__tablename__, t.id)
