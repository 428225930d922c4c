"""
Admin operations on dated departures: block/release seats, vehicle
assignment, driver status updates and the admin listings.

Blocking seats writes Departure.blocked_seats, so the seats-taken aggregate
(and with it the booked_seats cache) stays the single source of truth.
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from shuttle.core.errors import NotFoundError, ValidationFailed
from shuttle.models.departure import Departure, CANCELLED, DEPARTURE_STATUSES
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle
from shuttle.services import availability, capacity

logger = logging.getLogger(__name__)


def departures_before_query(db: Session, end_date: date, start_date: date | None, schedule_ids):
    # row locks hold off concurrent bookings until the batch commits
    q = (
        db.query(Departure)
        .filter(Departure.departure_date < end_date, Departure.status != CANCELLED)
        .with_for_update()
    )
    if start_date is not None:
        q = q.filter(Departure.departure_date >= start_date)
    if schedule_ids:
        q = q.filter(Departure.schedule_id.in_(list(schedule_ids)))
    return q.order_by(Departure.departure_date.asc(), Departure.id.asc())


def _departures_before(db: Session, end_date: date, start_date: date | None, schedule_ids) -> list[Departure]:
    return departures_before_query(db, end_date, start_date, schedule_ids).all()


def mark_booked(db: Session, end_date: date, schedule_ids: list[str] | None = None) -> list[Departure]:
    """
    Take every remaining seat off sale on non-cancelled departures dated
    before end_date, so each reports booked_seats == capacity. Caller commits
    the whole batch.
    """
    departures = _departures_before(db, end_date, None, schedule_ids)
    passengers = capacity.passenger_seats_map(db, [d.id for d in departures])
    for d in departures:
        booked = passengers.get(d.id, 0)
        d.blocked_seats = max(0, d.capacity - booked)
        d.booked_seats = booked + d.blocked_seats
        if booked > d.capacity:
            logger.warning("Departure %s already over capacity: %s > %s", d.id, booked, d.capacity)
    db.flush()
    logger.info("Marked %s departures fully booked before %s", len(departures), end_date)
    return departures


def release_blocked(
    db: Session,
    end_date: date,
    start_date: date | None = None,
    schedule_ids: list[str] | None = None,
) -> list[Departure]:
    """Put admin-blocked seats back on sale in [start_date, end_date). Caller commits."""
    departures = [d for d in _departures_before(db, end_date, start_date, schedule_ids) if d.blocked_seats]
    passengers = capacity.passenger_seats_map(db, [d.id for d in departures])
    for d in departures:
        d.blocked_seats = 0
        d.booked_seats = passengers.get(d.id, 0)
    db.flush()
    logger.info("Released blocked seats on %s departures before %s", len(departures), end_date)
    return departures


def get_departure(db: Session, departure_id: str) -> Departure:
    d = db.get(Departure, departure_id)
    if not d:
        raise NotFoundError("Departure not found")
    return d


def assign_vehicle(db: Session, departure_id: str, vehicle_id: str | None) -> tuple[Departure, Vehicle | None]:
    """
    Assign (or with None, remove) a vehicle. Assignment copies the vehicle's
    capacity onto the departure; removal keeps the current capacity.
    Caller commits.
    """
    d = get_departure(db, departure_id)
    if not vehicle_id:
        d.vehicle_id = None
        logger.info("Vehicle assignment removed from departure %s", d.id)
        return d, None

    v = db.get(Vehicle, vehicle_id)
    if not v:
        raise NotFoundError("Vehicle not found")
    if not v.active:
        raise ValidationFailed("Vehicle is not active")
    d.vehicle_id = v.id
    d.capacity = v.capacity
    taken = capacity.seats_taken(db, d.id)
    if taken > d.capacity:
        logger.warning(
            "Departure %s now over capacity after assigning %s: %s taken, capacity %s",
            d.id, v.name, taken, d.capacity,
        )
    logger.info("Vehicle %s assigned to departure %s (capacity %s)", v.name, d.id, d.capacity)
    return d, v


def update_departure(
    db: Session,
    departure_id: str,
    status: str | None = None,
    driver_notes: str | None = None,
    capacity_value: int | None = None,
) -> Departure:
    d = get_departure(db, departure_id)
    if status is not None:
        status = status.upper()
        if status not in DEPARTURE_STATUSES:
            raise ValidationFailed(f"status must be one of {', '.join(DEPARTURE_STATUSES)}")
        if status != d.status:
            logger.info("Departure %s status %s -> %s", d.id, d.status, status)
        d.status = status
    if driver_notes is not None:
        d.driver_notes = driver_notes
    if capacity_value is not None:
        if capacity_value < 1:
            raise ValidationFailed("capacity must be >= 1")
        passengers = capacity.passenger_seats(db, d.id)
        if capacity_value < passengers:
            raise ValidationFailed(f"capacity cannot be below the {passengers} seats already booked")
        d.capacity = capacity_value
        d.blocked_seats = min(int(d.blocked_seats or 0), capacity_value - passengers)
        capacity.refresh_booked_seats(db, d, expect_change=True)
    return d


def joined_rows(db: Session, start: date, end: date, route_id: str | None = None):
    q = (
        db.query(Departure, Schedule, Route, Vehicle)
        .join(Schedule, Schedule.id == Departure.schedule_id)
        .join(Route, Route.id == Schedule.route_id)
        .outerjoin(Vehicle, Vehicle.id == Departure.vehicle_id)
        .filter(Departure.departure_date >= start, Departure.departure_date <= end)
    )
    if route_id:
        q = q.filter(Route.id == route_id)
    return q.order_by(Departure.departure_date.asc(), Schedule.time.asc(), Route.name.asc()).all()


def list_departures(db: Session, start: date, end: date, route_id: str | None = None) -> list[dict]:
    if start > end:
        raise ValidationFailed("startDate must be on or before endDate")
    rows = joined_rows(db, start, end, route_id)
    taken = capacity.seats_taken_map(db, [r[0] for r in rows])
    out = []
    for departure, schedule, route, vehicle in rows:
        p = availability.project_departure(departure, taken[departure.id], schedule, route, vehicle)
        p["blockedSeats"] = int(departure.blocked_seats or 0)
        out.append(p)
    return out


def capacity_view(db: Session, day: date, view: str = "day") -> dict:
    if view not in ("day", "week"):
        raise ValidationFailed("view must be 'day' or 'week'")
    start, end = availability.week_bounds(day) if view == "week" else (day, day)
    rows = joined_rows(db, start, end)
    taken = capacity.seats_taken_map(db, [r[0] for r in rows])
    slots = availability.group_capacity_view(rows, taken)
    return {
        "date": day.isoformat(),
        "view": view,
        "dateRange": {"start": start.isoformat(), "end": end.isoformat()},
        "timeSlots": slots,
        "summary": availability.summarize(
            p for s in slots for g in s["routes"] for p in g["departures"]
        ),
    }


def departure_to_dict(db: Session, d: Departure) -> dict:
    schedule = db.get(Schedule, d.schedule_id)
    route = db.get(Route, schedule.route_id) if schedule else None
    vehicle = db.get(Vehicle, d.vehicle_id) if d.vehicle_id else None
    p = availability.project_departure(d, capacity.seats_taken(db, d.id), schedule, route, vehicle)
    p["blockedSeats"] = int(d.blocked_seats or 0)
    return p
