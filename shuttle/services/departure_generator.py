"""
Departure window generation: expand weekly schedules into dated departures.

Day-of-week convention (schedules and schemas): ISO weekday, 1 = Monday ..
7 = Sunday, matched against date.isoweekday(). Schedules flagged every_day
run on all dates.

Capacity of a new departure: explicit override > schedule's vehicle capacity
> schedule capacity > settings.DEFAULT_DEPARTURE_CAPACITY.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shuttle.core.clock import local_today
from shuttle.core.config import settings
from shuttle.core.errors import NotFoundError, ValidationFailed
from shuttle.models.departure import Departure, SCHEDULED
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    start: date
    end: date
    schedules_processed: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "departuresCreated": self.created,
            "departuresSkipped": self.skipped,
            "departuresFailed": self.failed,
            "schedulesProcessed": self.schedules_processed,
            "dateRange": {"start": self.start.isoformat(), "end": self.end.isoformat()},
            "errors": self.errors,
        }


def iter_dates(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def resolve_capacity(schedule: Schedule, vehicle: Optional[Vehicle], override: Optional[int] = None) -> int:
    if override:
        return int(override)
    if vehicle is not None and vehicle.capacity:
        return int(vehicle.capacity)
    if schedule.capacity:
        return int(schedule.capacity)
    return settings.DEFAULT_DEPARTURE_CAPACITY


def _validate_window(start: date, end: date, capacity: Optional[int]) -> None:
    if start > end:
        raise ValidationFailed("startDate must be on or before endDate")
    if (end - start).days + 1 > settings.MAX_GENERATION_DAYS:
        raise ValidationFailed(f"Date range must not exceed {settings.MAX_GENERATION_DAYS} days")
    if capacity is not None and capacity < 1:
        raise ValidationFailed("capacity must be >= 1")


def _load_schedules(db: Session, schedule_ids: Optional[Sequence[str]]) -> List[Schedule]:
    # deactivated routes get no departures
    q = (
        db.query(Schedule)
        .outerjoin(Route, Route.id == Schedule.route_id)
        .filter(Schedule.active == True, or_(Route.id.is_(None), Route.active == True))  # noqa: E712
    )
    if schedule_ids:
        q = q.filter(Schedule.id.in_(list(schedule_ids)))
    schedules = q.order_by(Schedule.time.asc(), Schedule.id.asc()).all()
    if schedule_ids and not schedules:
        raise NotFoundError("No active schedules found for the given scheduleIds")
    return schedules


def _insert_departure(db: Session, departure: Departure) -> None:
    # Savepoint per row: a duplicate or a bad row only loses that row
    with db.begin_nested():
        db.add(departure)
        db.flush()


def generate_departures(
    db: Session,
    start: date,
    end: date,
    capacity: Optional[int] = None,
    schedule_ids: Optional[Sequence[str]] = None,
) -> GenerationResult:
    """
    Ensure a departure exists for every (active schedule, date) in [start, end]
    where the schedule runs on that date.

    Idempotent: pairs that already exist are skipped, and a uniqueness
    conflict from a concurrent run counts as skipped. Failures are recorded
    per row and never abort the batch. The caller commits.
    """
    _validate_window(start, end, capacity)
    schedules = _load_schedules(db, schedule_ids)
    result = GenerationResult(start=start, end=end)
    if not schedules:
        logger.info("No active schedules; nothing to generate for %s..%s", start, end)
        return result

    route_ids = {s.route_id for s in schedules}
    routes = {r.id: r for r in db.query(Route).filter(Route.id.in_(route_ids)).all()}
    vehicle_ids = {s.vehicle_id for s in schedules if s.vehicle_id}
    vehicles = {v.id: v for v in db.query(Vehicle).filter(Vehicle.id.in_(vehicle_ids)).all()} if vehicle_ids else {}

    runnable: List[Schedule] = []
    for s in schedules:
        if s.route_id not in routes:
            msg = f"Schedule {s.id} references missing route {s.route_id}; skipped"
            logger.warning(msg)
            result.errors.append(msg)
            continue
        if not s.every_day and s.day_of_week not in range(1, 8):
            msg = f"Schedule {s.id} has no valid day of week; skipped"
            logger.warning(msg)
            result.errors.append(msg)
            continue
        runnable.append(s)
    result.schedules_processed = len(runnable)

    existing = {
        (sid, d)
        for sid, d in db.query(Departure.schedule_id, Departure.departure_date).filter(
            Departure.schedule_id.in_([s.id for s in runnable]),
            Departure.departure_date >= start,
            Departure.departure_date <= end,
        )
    }

    for day in iter_dates(start, end):
        for s in runnable:
            if not s.runs_on(day):
                continue
            key = (s.id, day)
            if key in existing:
                result.skipped += 1
                continue
            vehicle = vehicles.get(s.vehicle_id) if s.vehicle_id else None
            departure = Departure(
                id=str(uuid.uuid4()),
                schedule_id=s.id,
                departure_date=day,
                capacity=resolve_capacity(s, vehicle, capacity),
                booked_seats=0,
                blocked_seats=0,
                status=SCHEDULED,
                vehicle_id=vehicle.id if vehicle is not None else None,
            )
            try:
                _insert_departure(db, departure)
            except IntegrityError:
                # created concurrently by another run
                result.skipped += 1
                existing.add(key)
                continue
            except SQLAlchemyError as e:
                logger.exception("Failed to create departure for schedule %s on %s", s.id, day)
                result.failed += 1
                result.errors.append(f"Schedule {s.id} on {day.isoformat()}: {e.__class__.__name__}")
                continue
            existing.add(key)
            result.created += 1

    logger.info(
        "Generated departures %s..%s: created=%s skipped=%s failed=%s",
        start, end, result.created, result.skipped, result.failed,
    )
    return result


def generate_rolling_window(db: Session, days: Optional[int] = None, capacity: Optional[int] = None) -> GenerationResult:
    """Generate from today for the configured horizon (quick-fix endpoint, beat job)."""
    days = days or settings.ROLLING_WINDOW_DAYS
    today = local_today()
    return generate_departures(db, today, today + timedelta(days=days - 1), capacity=capacity)
