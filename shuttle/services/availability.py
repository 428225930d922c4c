"""
Availability projection: seats left and occupancy labels.

The same projection feeds the public departure listings and the admin
capacity calendar; labels are display hints, the booking gate lives in
services.capacity.
"""
import logging
from datetime import date, timedelta
from typing import Iterable

from shuttle.models.departure import Departure
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle

logger = logging.getLogger(__name__)

FULL = "FULL"
LOW = "LOW"
MEDIUM = "MEDIUM"
HIGH = "HIGH"

# (minimum percent booked, label), checked in order
OCCUPANCY_THRESHOLDS = ((100, FULL), (80, LOW), (50, MEDIUM))


def available_seats(capacity: int, taken: int, departure_id: str | None = None) -> int:
    if taken > capacity:
        logger.warning(
            "Overbooking anomaly on departure %s: %s seats taken, capacity %s",
            departure_id or "?", taken, capacity,
        )
    return max(0, capacity - taken)


def occupancy_status(capacity: int, taken: int) -> str:
    if capacity <= 0:
        return FULL
    for percent, label in OCCUPANCY_THRESHOLDS:
        # integer form of taken / capacity * 100 >= percent
        if taken * 100 >= percent * capacity:
            return label
    return HIGH


def occupancy_rate(capacity: int, taken: int) -> float:
    if capacity <= 0:
        return 100.0
    return round(min(taken, capacity) * 100 / capacity, 1)


def route_summary(route: Route | None) -> dict | None:
    if route is None:
        return None
    return {
        "id": route.id,
        "name": route.name,
        "origin": route.origin,
        "destination": route.destination,
        "duration": route.duration_minutes,
    }


def vehicle_summary(vehicle: Vehicle | None) -> dict | None:
    if vehicle is None:
        return None
    return {"id": vehicle.id, "name": vehicle.name, "capacity": vehicle.capacity}


def project_departure(
    departure: Departure,
    taken: int,
    schedule: Schedule | None = None,
    route: Route | None = None,
    vehicle: Vehicle | None = None,
) -> dict:
    out = {
        "id": departure.id,
        "scheduleId": departure.schedule_id,
        "date": departure.departure_date.isoformat(),
        "capacity": departure.capacity,
        "bookedSeats": taken,
        "availableSeats": available_seats(departure.capacity, taken, departure.id),
        "availabilityStatus": occupancy_status(departure.capacity, taken),
        "status": departure.status,
        "vehicleId": departure.vehicle_id,
        "driverNotes": departure.driver_notes,
    }
    if schedule is not None:
        out["departureTime"] = schedule.time
    if route is not None:
        out["route"] = route_summary(route)
    if vehicle is not None:
        out["vehicle"] = vehicle_summary(vehicle)
    return out


def summarize(projections: Iterable[dict]) -> dict:
    capacity = booked = available = count = 0
    for p in projections:
        count += 1
        capacity += p["capacity"]
        booked += p["bookedSeats"]
        available += p["availableSeats"]
    return {
        "departures": count,
        "capacity": capacity,
        "bookedSeats": booked,
        "availableSeats": available,
        "occupancyRate": occupancy_rate(capacity, booked),
        "availabilityStatus": occupancy_status(capacity, booked),
    }


def group_capacity_view(
    rows: Iterable[tuple[Departure, Schedule, Route, Vehicle | None]],
    taken: dict[str, int],
) -> list[dict]:
    """
    Admin calendar view: time slot -> route -> departures.

    Departures inside a route keep the order of `rows` (date, then time).
    """
    slots: dict[str, dict] = {}
    for departure, schedule, route, vehicle in rows:
        slot = slots.setdefault(schedule.time, {"time": schedule.time, "routes": {}})
        group = slot["routes"].setdefault(route.id, {
            "routeId": route.id,
            "route": route.label,
            "origin": route.origin,
            "destination": route.destination,
            "departures": [],
        })
        projection = project_departure(departure, taken.get(departure.id, 0), vehicle=vehicle)
        projection["vehicle"] = vehicle_summary(vehicle)
        group["departures"].append(projection)

    out = []
    for slot in sorted(slots.values(), key=lambda s: s["time"]):
        routes = list(slot["routes"].values())
        for group in routes:
            group["summary"] = summarize(group["departures"])
        out.append({
            "time": slot["time"],
            "routes": routes,
            "summary": summarize(p for g in routes for p in g["departures"]),
        })
    return out


def week_bounds(day: date) -> tuple[date, date]:
    """Monday..Sunday of the ISO week containing `day`."""
    start = day - timedelta(days=day.isoweekday() - 1)
    return start, start + timedelta(days=6)
