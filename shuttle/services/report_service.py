"""
Admin reports: occupancy over a date range, paid revenue and the dashboard
headline numbers.

Occupancy reuses the availability projection, so a departure counts the same
seats (passengers plus blocked) here as on the capacity calendar.
"""
import logging
from collections import Counter
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from shuttle.core.clock import local_day_bounds, local_today, to_local_date
from shuttle.core.config import settings
from shuttle.core.errors import ValidationFailed
from shuttle.models.booking import Booking, CANCELLED, CONFIRMED, PAID, PENDING
from shuttle.models.departure import Departure, CANCELLED as DEPARTURE_CANCELLED, UPCOMING_STATUSES
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.user import User, CUSTOMER
from shuttle.services import availability, capacity
from shuttle.services.departure_service import joined_rows

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7


def check_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationFailed("startDate must be on or before endDate")
    if (end - start).days + 1 > settings.MAX_GENERATION_DAYS:
        raise ValidationFailed(f"Report range is limited to {settings.MAX_GENERATION_DAYS} days")


def _period(start: date, end: date) -> str:
    return f"{start.isoformat()} to {end.isoformat()}"


def _grouped(projections: list[dict], key, label: str) -> list[dict]:
    groups: dict = {}
    for p in projections:
        groups.setdefault(key(p), []).append(p)
    return [{label: k, **availability.summarize(items)} for k, items in groups.items()]


def occupancy_report(db: Session, start: date, end: date) -> dict:
    check_range(start, end)
    rows = [r for r in joined_rows(db, start, end) if r[0].status != DEPARTURE_CANCELLED]
    taken = capacity.seats_taken_map(db, [r[0] for r in rows])

    occupancy = []
    for departure, schedule, route, vehicle in rows:
        p = availability.project_departure(departure, taken[departure.id], schedule, route, vehicle)
        p["occupancyRate"] = availability.occupancy_rate(departure.capacity, taken[departure.id])
        p["routeName"] = route.name
        occupancy.append(p)

    by_route = _grouped(occupancy, lambda p: p["route"]["id"], "routeId")
    names = {p["route"]["id"]: p["routeName"] for p in occupancy}
    for group in by_route:
        group["routeName"] = names[group["routeId"]]
    by_route.sort(key=lambda g: (-g["occupancyRate"], g["routeName"]))

    by_time = _grouped(occupancy, lambda p: p["departureTime"], "time")
    by_time.sort(key=lambda g: (-g["occupancyRate"], g["time"]))

    by_day = _grouped(occupancy, lambda p: p["date"], "date")
    by_day.sort(key=lambda g: g["date"])

    counts = Counter(p["availabilityStatus"] for p in occupancy)
    distribution = {label: counts.get(label, 0) for label in (
        availability.FULL, availability.LOW, availability.MEDIUM, availability.HIGH,
    )}

    summary = availability.summarize(occupancy)
    summary["period"] = _period(start, end)
    logger.info("Occupancy report %s: %s departures", summary["period"], summary["departures"])
    return {
        "summary": summary,
        "occupancyData": occupancy,
        "routeOccupancy": by_route,
        "timeSlotOccupancy": by_time,
        "dailyOccupancy": by_day,
        "occupancyDistribution": distribution,
    }


def revenue_report(db: Session, start: date, end: date) -> dict:
    """Paid bookings whose payment landed on a local day in [start, end]."""
    check_range(start, end)
    lo, hi = local_day_bounds(start, end)
    rows = (
        db.query(Booking, Schedule, Route)
        .join(Departure, Departure.id == Booking.departure_id)
        .join(Schedule, Schedule.id == Departure.schedule_id)
        .join(Route, Route.id == Schedule.route_id)
        .filter(Booking.status == PAID, Booking.paid_at >= lo, Booking.paid_at < hi)
        .order_by(Booking.paid_at.asc())
        .all()
    )

    total = sum(b.total_amount for b, _, _ in rows)
    by_date: dict[str, dict] = {}
    by_type: dict[str, dict] = {}
    by_route: dict[str, dict] = {}
    by_time: dict[str, dict] = {}
    for booking, schedule, route in rows:
        day = to_local_date(booking.paid_at).isoformat()
        d = by_date.setdefault(day, {"date": day, "revenue": 0, "bookings": 0})
        d["revenue"] += booking.total_amount
        d["bookings"] += 1

        t = by_type.setdefault(booking.customer_type, {"customerType": booking.customer_type, "revenue": 0, "bookings": 0})
        t["revenue"] += booking.total_amount
        t["bookings"] += 1

        r = by_route.setdefault(route.id, {
            "routeId": route.id, "routeName": route.name,
            "totalRevenue": 0, "totalBookings": 0, "totalPassengers": 0,
        })
        r["totalRevenue"] += booking.total_amount
        r["totalBookings"] += 1
        r["totalPassengers"] += booking.passenger_count

        s = by_time.setdefault(schedule.time, {"time": schedule.time, "bookings": 0, "passengers": 0, "revenue": 0})
        s["bookings"] += 1
        s["passengers"] += booking.passenger_count
        s["revenue"] += booking.total_amount

    for t in by_type.values():
        t["percentage"] = round(t["revenue"] * 100 / total, 1) if total else 0.0

    return {
        "summary": {
            "totalRevenue": total,
            "totalBookings": len(rows),
            "averageBookingValue": round(total / len(rows), 2) if rows else 0,
            "period": _period(start, end),
        },
        "revenueByDate": sorted(by_date.values(), key=lambda d: d["date"]),
        "customerTypeBreakdown": sorted(by_type.values(), key=lambda t: (-t["revenue"], t["customerType"])),
        "routePerformance": sorted(by_route.values(), key=lambda r: (-r["totalRevenue"], r["routeName"])),
        "peakTimes": sorted(by_time.values(), key=lambda s: (-s["revenue"], s["time"])),
    }


def dashboard_stats(db: Session) -> dict:
    today = local_today()
    lo, hi = local_day_bounds(today)

    today_bookings = (
        db.query(func.count(Booking.id))
        .filter(Booking.created_at >= lo, Booking.created_at < hi, Booking.status != CANCELLED)
        .scalar() or 0
    )
    today_revenue = (
        db.query(func.coalesce(func.sum(Booking.total_amount), 0))
        .filter(Booking.status == PAID, Booking.paid_at >= lo, Booking.paid_at < hi)
        .scalar() or 0
    )
    customers = db.query(func.count(User.id)).filter(User.role == CUSTOMER).scalar() or 0
    pending = db.query(func.count(Booking.id)).filter(Booking.status.in_((PENDING, CONFIRMED))).scalar() or 0

    upcoming = (
        db.query(Departure)
        .filter(
            Departure.departure_date >= today,
            Departure.departure_date < today + timedelta(days=UPCOMING_DAYS),
            Departure.status.in_(UPCOMING_STATUSES),
        )
        .all()
    )
    taken = capacity.seats_taken_map(db, upcoming)
    window = availability.summarize(
        availability.project_departure(d, taken[d.id]) for d in upcoming
    )

    return {
        "stats": {
            "todayBookings": int(today_bookings),
            "todayRevenue": int(today_revenue),
            "totalCustomers": int(customers),
            "upcomingDepartures": window["departures"],
            "occupancyRate": window["occupancyRate"] if upcoming else 0.0,
            "pendingPayments": int(pending),
        }
    }
