from collections import defaultdict
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from shuttle.db.session import get_db
from shuttle.core.clock import local_today
from shuttle.core.config import settings
from shuttle.models.departure import Departure, UPCOMING_STATUSES
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle
from shuttle.services import availability, capacity
from shuttle.services.catalog_service import route_to_dict, schedule_to_dict
from shuttle.services.pricing_service import calculate_price

router = APIRouter(tags=["public"])


def _active_schedules(db: Session, route_id: str | None = None) -> list[tuple[Schedule, Route]]:
    q = (
        db.query(Schedule, Route)
        .join(Route, Route.id == Schedule.route_id)
        .filter(Schedule.active == True, Route.active == True)  # noqa: E712
    )
    if route_id:
        q = q.filter(Route.id == route_id)
    return q.order_by(Route.name.asc(), Schedule.every_day.desc(), Schedule.day_of_week.asc(), Schedule.time.asc()).all()


def _upcoming_by_schedule(db: Session, schedule_ids: list[str]) -> dict[str, list[dict]]:
    """Next UPCOMING_DEPARTURES_LIMIT upcoming departures per schedule, annotated."""
    if not schedule_ids:
        return {}
    departures = (
        db.query(Departure)
        .filter(
            Departure.schedule_id.in_(schedule_ids),
            Departure.departure_date >= local_today(),
            Departure.status.in_(UPCOMING_STATUSES),
        )
        .order_by(Departure.departure_date.asc())
        .all()
    )
    grouped: dict[str, list[Departure]] = defaultdict(list)
    for d in departures:
        if len(grouped[d.schedule_id]) < settings.UPCOMING_DEPARTURES_LIMIT:
            grouped[d.schedule_id].append(d)
    kept = [d for ds in grouped.values() for d in ds]
    taken = capacity.seats_taken_map(db, kept)
    return {
        sid: [availability.project_departure(d, taken[d.id]) for d in ds]
        for sid, ds in grouped.items()
    }


def _schedules_payload(db: Session, rows: list[tuple[Schedule, Route]], with_route: bool = True) -> list[dict]:
    upcoming = _upcoming_by_schedule(db, [s.id for s, _ in rows])
    out = []
    for s, r in rows:
        item = schedule_to_dict(s, r if with_route else None)
        item["departures"] = upcoming.get(s.id, [])
        out.append(item)
    return out


@router.get("/schedules")
def list_schedules(routeId: Optional[str] = None, db: Session = Depends(get_db)):
    """Active schedules with their upcoming departures and seat availability."""
    return {"schedules": _schedules_payload(db, _active_schedules(db, routeId))}


@router.get("/routes")
def list_routes(includeSchedules: bool = False, db: Session = Depends(get_db)):
    routes = db.query(Route).filter(Route.active == True).order_by(Route.name.asc()).all()  # noqa: E712
    items = [route_to_dict(r) for r in routes]
    if includeSchedules:
        rows = _active_schedules(db)
        nested = defaultdict(list)
        for item in _schedules_payload(db, rows, with_route=False):
            nested[item["routeId"]].append(item)
        for item in items:
            item["schedules"] = nested.get(item["id"], [])
    return {"routes": items}


@router.get("/departures")
def list_departures(date: Optional[date] = None, routeId: Optional[str] = None, db: Session = Depends(get_db)):
    """Departures on `date`, or from today onward when omitted."""
    q = (
        db.query(Departure, Schedule, Route, Vehicle)
        .join(Schedule, Schedule.id == Departure.schedule_id)
        .join(Route, Route.id == Schedule.route_id)
        .outerjoin(Vehicle, Vehicle.id == Departure.vehicle_id)
        .filter(Route.active == True, Departure.status.in_(UPCOMING_STATUSES))  # noqa: E712
    )
    if date is not None:
        q = q.filter(Departure.departure_date == date)
    else:
        q = q.filter(Departure.departure_date >= local_today())
    if routeId:
        q = q.filter(Route.id == routeId)
    rows = q.order_by(Departure.departure_date.asc(), Schedule.time.asc(), Route.name.asc()).limit(500).all()
    taken = capacity.seats_taken_map(db, [r[0] for r in rows])
    return {
        "departures": [
            availability.project_departure(d, taken[d.id], s, r, v)
            for d, s, r, v in rows
        ]
    }


@router.get("/pricing")
def get_pricing(
    customerType: str = "REGULAR",
    passengerCount: int = 1,
    extraLuggage: int = 0,
    pets: int = 0,
    roundTrip: bool = False,
    db: Session = Depends(get_db),
):
    return calculate_price(db, customerType, passengerCount, extraLuggage, pets, roundTrip)
