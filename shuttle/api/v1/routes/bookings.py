from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from shuttle.db.session import get_db
from shuttle.models.user import User
from shuttle.schemas.booking import BookingCreate
from shuttle.api.deps import ADMIN_ROLES, get_optional_user
from shuttle.services.booking_service import booking_to_dict, cancel_booking, create_booking, get_booking_by_ref

router = APIRouter(tags=["bookings"])


class CancelRequest(BaseModel):
    email: str = ""


@router.post("/bookings", status_code=201)
def create_public_booking(body: BookingCreate, db: Session = Depends(get_db),
                          me: User | None = Depends(get_optional_user)):
    booking = create_booking(
        db,
        departure_id=body.departureId,
        return_departure_id=body.returnDepartureId,
        passenger_count=body.passengerCount,
        customer_type=body.customerType,
        extra_luggage=body.extraLuggage,
        pets=body.pets,
        special_requests=body.specialRequests,
        passengers=[p.model_dump() for p in body.passengers],
        guest=body.guest.model_dump() if body.guest else None,
        user=me,
    )
    return booking_to_dict(db, booking)


@router.get("/bookings/{booking_ref}")
def get_booking(booking_ref: str, db: Session = Depends(get_db)):
    return booking_to_dict(db, get_booking_by_ref(db, booking_ref))


@router.post("/bookings/{booking_ref}/cancel")
def cancel_public_booking(booking_ref: str, body: CancelRequest | None = None,
                          db: Session = Depends(get_db),
                          me: User | None = Depends(get_optional_user)):
    """Cancel by reference: the booking's account, an admin, or the guest email on file."""
    b = get_booking_by_ref(db, booking_ref)
    email = (body.email if body else "").strip().lower()
    allowed = (
        (me is not None and (me.id == b.user_id or me.role in ADMIN_ROLES))
        or (email and email == (b.guest_email or "").lower())
    )
    if not allowed:
        raise HTTPException(status_code=403, detail="Not allowed to cancel this booking")
    return booking_to_dict(db, cancel_booking(db, b))
