"""
Booking lifecycle: create (seat reservation), cancel (seat release), mark paid.

Seats are taken through capacity.reserve_seats, then the booking rows are
inserted and every touched departure's booked_seats cache is rewritten from
the aggregate and re-checked against capacity, all in one transaction.
"""
import logging
import random
import string
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from shuttle.core.errors import NotFoundError, SoldOutError, ValidationFailed
from shuttle.models.booking import Booking, CANCELLED, CONFIRMED, PAID, SEAT_HOLDING_STATUSES
from shuttle.models.departure import Departure
from shuttle.models.passenger import Passenger
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.user import User
from shuttle.services import capacity
from shuttle.services.email_service import booking_confirmation, is_valid_email, queue_email
from shuttle.services.pricing_service import build_quote

logger = logging.getLogger(__name__)

MAX_PASSENGERS = 15
MAX_EXTRA_LUGGAGE = 10
MAX_PETS = 5


def make_booking_ref() -> str:
    return "SHT-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=6))


def _allocate_ref(db: Session) -> str:
    # booking_ref must be unique
    for _ in range(10):
        ref = make_booking_ref()
        if not db.query(Booking).filter(Booking.booking_ref == ref).first():
            return ref
    raise ValidationFailed("could not allocate booking reference")


def _validate_counts(passenger_count: int, extra_luggage: int, pets: int) -> None:
    if not 1 <= passenger_count <= MAX_PASSENGERS:
        raise ValidationFailed(f"passengerCount must be between 1 and {MAX_PASSENGERS}")
    if not 0 <= extra_luggage <= MAX_EXTRA_LUGGAGE:
        raise ValidationFailed(f"extraLuggage must be between 0 and {MAX_EXTRA_LUGGAGE}")
    if not 0 <= pets <= MAX_PETS:
        raise ValidationFailed(f"pets must be between 0 and {MAX_PETS}")


def _guest_details(user: User | None, guest: dict | None) -> dict:
    guest = guest or {}
    if (guest.get("email") or "").strip() and not is_valid_email(guest["email"].strip()):
        raise ValidationFailed("Guest email must look like name@domain")
    if user is not None:
        first, _, last = (user.full_name or "").partition(" ")
        return {
            "guest_first_name": guest.get("firstName") or first,
            "guest_last_name": guest.get("lastName") or last,
            "guest_email": (guest.get("email") or "").strip().lower() or user.email,
            "guest_phone": guest.get("phone") or user.phone or "",
        }
    missing = [k for k in ("firstName", "lastName", "email", "phone") if not (guest.get(k) or "").strip()]
    if missing:
        raise ValidationFailed("Guest bookings require " + ", ".join(missing))
    return {
        "guest_first_name": guest["firstName"].strip(),
        "guest_last_name": guest["lastName"].strip(),
        "guest_email": guest["email"].strip().lower(),
        "guest_phone": guest["phone"].strip(),
    }


def _ensure_within_capacity(db: Session, departure: Departure, requested: int) -> None:
    taken = capacity.refresh_booked_seats(db, departure)
    if taken > departure.capacity:
        logger.warning("Departure %s over capacity after booking: %s > %s", departure.id, taken, departure.capacity)
        raise SoldOutError(departure.id, 0, requested)


def create_booking(
    db: Session,
    departure_id: str,
    passenger_count: int,
    customer_type: str | None = None,
    return_departure_id: str | None = None,
    extra_luggage: int = 0,
    pets: int = 0,
    special_requests: str = "",
    passengers: list[dict] | None = None,
    guest: dict | None = None,
    user: User | None = None,
    send_confirmation: bool = True,
) -> Booking:
    _validate_counts(passenger_count, extra_luggage, pets)
    if return_departure_id and return_departure_id == departure_id:
        raise ValidationFailed("Return departure must differ from the outbound departure")
    details = _guest_details(user, guest)

    try:
        outbound = capacity.reserve_seats(db, departure_id, passenger_count)
        inbound = None
        if return_departure_id:
            inbound = capacity.reserve_seats(db, return_departure_id, passenger_count)
            if inbound.departure_date < outbound.departure_date:
                raise ValidationFailed("Return departure must not be before the outbound departure")

        quote = build_quote(db, customer_type, passenger_count, extra_luggage, pets, round_trip=inbound is not None)
        booking = Booking(
            id=str(uuid.uuid4()),
            booking_ref=_allocate_ref(db),
            departure_id=outbound.id,
            return_departure_id=inbound.id if inbound is not None else None,
            user_id=user.id if user is not None else None,
            customer_type=quote.customer_type,
            pricing_tier_id=quote.tier_id,
            passenger_count=passenger_count,
            extra_luggage=extra_luggage,
            pets=pets,
            special_requests=special_requests or "",
            subtotal=quote.subtotal,
            savings=quote.savings,
            total_amount=quote.total,
            status=CONFIRMED,
            **details,
        )
        db.add(booking)
        for p in (passengers or [])[:passenger_count]:
            db.add(Passenger(
                id=str(uuid.uuid4()),
                booking_id=booking.id,
                first_name=(p.get("firstName") or "").strip(),
                last_name=(p.get("lastName") or "").strip(),
                age=p.get("age"),
            ))

        _ensure_within_capacity(db, outbound, passenger_count)
        if inbound is not None:
            _ensure_within_capacity(db, inbound, passenger_count)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        "Booking %s created: departure=%s return=%s passengers=%s total=%s",
        booking.booking_ref, booking.departure_id, booking.return_departure_id, passenger_count, booking.total_amount,
    )
    if send_confirmation:
        try:
            _queue_confirmation(db, booking, outbound, inbound)
        except Exception:
            # the booking is already committed and must be returned
            db.rollback()
            logger.exception("Confirmation email for booking %s could not be queued", booking.booking_ref)
    return booking


def _queue_confirmation(db: Session, booking: Booking, outbound: Departure, inbound: Departure | None) -> None:
    schedule = db.get(Schedule, outbound.schedule_id)
    route = db.get(Route, schedule.route_id) if schedule else None
    if schedule is None or route is None or not booking.guest_email:
        return
    return_leg = None
    if inbound is not None:
        r_schedule = db.get(Schedule, inbound.schedule_id)
        if r_schedule is not None:
            return_leg = (inbound, r_schedule)
    subject, body = booking_confirmation(booking, outbound, schedule, route, return_leg)
    queue_email(db, booking.guest_email, subject, body, related_booking_ref=booking.booking_ref)


def get_booking_by_ref(db: Session, ref: str) -> Booking:
    booking = db.query(Booking).filter(Booking.booking_ref == (ref or "").strip().upper()).first()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def _refresh_legs(db: Session, booking: Booking) -> None:
    for departure_id in (booking.departure_id, booking.return_departure_id):
        if not departure_id:
            continue
        departure = db.get(Departure, departure_id)
        if departure is not None:
            capacity.refresh_booked_seats(db, departure, expect_change=True)


def cancel_booking(db: Session, booking: Booking) -> Booking:
    """Cancel and release seats on both legs. Commits."""
    if booking.status == CANCELLED:
        raise ValidationFailed("Booking is already cancelled")
    held = booking.status in SEAT_HOLDING_STATUSES
    try:
        booking.status = CANCELLED
        booking.cancelled_at = datetime.now(timezone.utc)
        if held:
            _refresh_legs(db, booking)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info("Booking %s cancelled", booking.booking_ref)
    return booking


def mark_paid(db: Session, booking: Booking) -> Booking:
    """CONFIRMED -> PAID. Caller commits."""
    if booking.status == PAID:
        return booking
    if booking.status != CONFIRMED:
        raise ValidationFailed(f"Only confirmed bookings can be marked paid (status {booking.status})")
    booking.status = PAID
    booking.paid_at = datetime.now(timezone.utc)
    logger.info("Booking %s marked paid", booking.booking_ref)
    return booking


def booking_to_dict(db: Session, booking: Booking) -> dict:
    legs = []
    for departure_id in (booking.departure_id, booking.return_departure_id):
        if not departure_id:
            continue
        departure = db.get(Departure, departure_id)
        schedule = db.get(Schedule, departure.schedule_id) if departure else None
        route = db.get(Route, schedule.route_id) if schedule else None
        legs.append({
            "departureId": departure_id,
            "date": departure.departure_date.isoformat() if departure else None,
            "time": schedule.time if schedule else None,
            "route": route.label if route else None,
        })
    passengers = db.query(Passenger).filter(Passenger.booking_id == booking.id).order_by(Passenger.created_at.asc()).all()
    return {
        "id": booking.id,
        "bookingRef": booking.booking_ref,
        "status": booking.status,
        "customerType": booking.customer_type,
        "passengerCount": booking.passenger_count,
        "extraLuggage": booking.extra_luggage,
        "pets": booking.pets,
        "specialRequests": booking.special_requests or "",
        "subtotal": booking.subtotal,
        "savings": booking.savings,
        "total": booking.total_amount,
        "isRoundTrip": booking.return_departure_id is not None,
        "outbound": legs[0] if legs else None,
        "return": legs[1] if len(legs) > 1 else None,
        "customer": {
            "firstName": booking.guest_first_name,
            "lastName": booking.guest_last_name,
            "email": booking.guest_email,
            "phone": booking.guest_phone,
        },
        "passengers": [{"firstName": p.first_name, "lastName": p.last_name, "age": p.age} for p in passengers],
        "paidAt": booking.paid_at.isoformat() if booking.paid_at else None,
        "cancelledAt": booking.cancelled_at.isoformat() if booking.cancelled_at else None,
        "createdAt": booking.created_at.isoformat() if booking.created_at else None,
    }
