"""
Seats-taken resolution for departures.

The authoritative number of seats taken on a departure is the sum of
passenger_count over CONFIRMED/PAID bookings that travel on it (as the
outbound or the return leg) plus the seats an admin blocked off sale.
Departure.booked_seats is a cache of that number, rewritten inside the
transaction that creates or cancels a booking.
"""
import logging
from collections import defaultdict
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from shuttle.core.errors import NotFoundError, SoldOutError, ValidationFailed
from shuttle.models.booking import Booking, SEAT_HOLDING_STATUSES
from shuttle.models.departure import Departure, SCHEDULED

logger = logging.getLogger(__name__)


def passenger_seats_map(db: Session, departure_ids: Iterable[str]) -> dict[str, int]:
    """Confirmed/paid passengers per departure, both legs, one grouped query per leg."""
    ids = list({d for d in departure_ids if d})
    out: dict[str, int] = defaultdict(int)
    if not ids:
        return out
    for column in (Booking.departure_id, Booking.return_departure_id):
        rows = db.execute(
            select(column, func.coalesce(func.sum(Booking.passenger_count), 0))
            .where(column.in_(ids), Booking.status.in_(SEAT_HOLDING_STATUSES))
            .group_by(column)
        ).all()
        for departure_id, seats in rows:
            out[departure_id] += int(seats or 0)
    return out


def seats_taken_map(db: Session, departures: Iterable[Departure]) -> dict[str, int]:
    """Seats taken (passengers + blocked) for already-loaded departures."""
    departures = list(departures)
    passengers = passenger_seats_map(db, [d.id for d in departures])
    return {d.id: passengers.get(d.id, 0) + int(d.blocked_seats or 0) for d in departures}


def passenger_seats(db: Session, departure_id: str) -> int:
    return passenger_seats_map(db, [departure_id]).get(departure_id, 0)


def seats_taken(db: Session, departure_id: str) -> int:
    departure = db.get(Departure, departure_id)
    if departure is None:
        raise NotFoundError("Departure not found")
    return passenger_seats(db, departure_id) + int(departure.blocked_seats or 0)


def refresh_booked_seats(db: Session, departure: Departure, expect_change: bool = False) -> int:
    """Rewrite the booked_seats cache from the live aggregate. Caller owns the transaction.

    A changed value is reported as drift unless the caller just released seats
    (expect_change).
    """
    db.flush()
    taken = passenger_seats(db, departure.id) + int(departure.blocked_seats or 0)
    if departure.booked_seats != taken:
        if not expect_change:
            logger.warning(
                "Departure %s booked_seats cache drifted: cached=%s actual=%s",
                departure.id, departure.booked_seats, taken,
            )
        departure.booked_seats = taken
    return taken


def reserve_seats(db: Session, departure_id: str, seats: int) -> Departure:
    """
    Take `seats` on a departure with one conditional UPDATE.

    The row is only updated while the departure is SCHEDULED and the new count
    stays within capacity, so concurrent reservations cannot both pass the
    check. Returns the refreshed departure.
    """
    if seats < 1:
        raise ValidationFailed("seats must be >= 1")
    result = db.execute(
        update(Departure)
        .where(
            Departure.id == departure_id,
            Departure.status == SCHEDULED,
            Departure.booked_seats + seats <= Departure.capacity,
        )
        .values(booked_seats=Departure.booked_seats + seats)
        .execution_options(synchronize_session=False)
    )
    departure = db.get(Departure, departure_id, populate_existing=True)
    if result.rowcount == 1:
        return departure
    if departure is None:
        raise NotFoundError("Departure not found")
    if departure.status != SCHEDULED:
        raise ValidationFailed(f"Departure is {departure.status.lower()} and not open for booking")
    available = max(0, departure.capacity - departure.booked_seats)
    logger.info("Departure %s sold out for %s seats (%s left)", departure_id, seats, available)
    raise SoldOutError(departure_id, available, seats)
