from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from shuttle.db.session import get_db
from shuttle.api.deps import admin_only
from shuttle.core.clock import local_today
from shuttle.models.user import User
from shuttle.models.booking import Booking, BOOKING_STATUSES
from shuttle.schemas.departures import (
    AssignVehicleIn, DepartureUpdate, GenerateDeparturesIn, MarkBookedIn, QuickFixIn, ReleaseBlockedIn,
)
from shuttle.services import departure_service
from shuttle.services.audit_service import log_audit
from shuttle.services.booking_service import booking_to_dict, cancel_booking, mark_paid
from shuttle.services.catalog_service import vehicle_to_dict
from shuttle.services.departure_generator import generate_departures, generate_rolling_window

router = APIRouter(tags=["ops"])


# -------------------------
# DEPARTURE GENERATION
# -------------------------
@router.post("/admin/generate-departures")
def admin_generate_departures(body: GenerateDeparturesIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    result = generate_departures(db, body.startDate, body.endDate, capacity=body.capacity, schedule_ids=body.scheduleIds)
    log_audit(db, me.id, "departures.generate", "departure", "batch", result.as_dict())
    db.commit()
    return {
        "message": f"Generated {result.created} departures ({result.skipped} already existed)",
        **result.as_dict(),
    }

@router.post("/admin/quick-fix")
def admin_quick_fix(body: QuickFixIn | None = None, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    """Fill the rolling window from today so customers always see upcoming departures."""
    result = generate_rolling_window(db, days=body.days if body else None)
    log_audit(db, me.id, "departures.quick_fix", "departure", "batch", result.as_dict())
    db.commit()
    return {
        "message": f"Rolling window ready: {result.created} departures created",
        **result.as_dict(),
    }


# -------------------------
# DEPARTURES
# -------------------------
@router.post("/admin/departures/mark-booked")
def admin_mark_booked(body: MarkBookedIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    departures = departure_service.mark_booked(db, body.endDate, body.scheduleIds)
    log_audit(db, me.id, "departures.mark_booked", "departure", "batch",
              {"endDate": body.endDate, "scheduleIds": body.scheduleIds, "count": len(departures)})
    db.commit()
    return {
        "message": f"Successfully marked {len(departures)} departures as fully booked",
        "updatedDepartures": len(departures),
        "endDate": body.endDate.isoformat(),
        "departures": [
            {"id": d.id, "date": d.departure_date.isoformat(), "capacity": d.capacity, "bookedSeats": d.booked_seats}
            for d in departures
        ],
    }

@router.post("/admin/departures/release")
def admin_release_blocked(body: ReleaseBlockedIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    departures = departure_service.release_blocked(db, body.endDate, body.startDate, body.scheduleIds)
    log_audit(db, me.id, "departures.release", "departure", "batch",
              {"startDate": body.startDate, "endDate": body.endDate, "count": len(departures)})
    db.commit()
    return {
        "message": f"Released blocked seats on {len(departures)} departures",
        "updatedDepartures": len(departures),
    }

@router.post("/admin/departures/assign-vehicle")
def admin_assign_vehicle(body: AssignVehicleIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    d, v = departure_service.assign_vehicle(db, body.departureId, body.vehicleId)
    log_audit(db, me.id, "departure.assign_vehicle", "departure", d.id, {"vehicleId": body.vehicleId})
    db.commit()
    if v is None:
        return {"message": "Vehicle assignment removed", "departureId": d.id, "capacity": d.capacity}
    return {
        "message": f"Vehicle {v.name} assigned to departure",
        "departureId": d.id,
        "vehicle": vehicle_to_dict(v),
        "vehicleName": v.name,
        "capacity": d.capacity,
        "priceMultiplier": v.price_multiplier,
    }

@router.get("/admin/departures")
def admin_list_departures(startDate: date | None = None, endDate: date | None = None, routeId: str | None = None,
                          db: Session = Depends(get_db), me: User = Depends(admin_only)):
    start = startDate or local_today()
    end = endDate or start + timedelta(days=6)
    return {"departures": departure_service.list_departures(db, start, end, routeId)}

@router.patch("/admin/departures/{departure_id}")
def admin_update_departure(departure_id: str, body: DepartureUpdate, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    d = departure_service.update_departure(
        db, departure_id, status=body.status, driver_notes=body.driverNotes, capacity_value=body.capacity,
    )
    log_audit(db, me.id, "departure.update", "departure", d.id, body.model_dump(exclude_none=True))
    db.commit()
    return departure_service.departure_to_dict(db, d)

@router.get("/admin/schedules/capacity")
def admin_capacity_view(date: date, view: str = "day", db: Session = Depends(get_db), me: User = Depends(admin_only)):
    return departure_service.capacity_view(db, date, view)


# -------------------------
# BOOKINGS
# -------------------------
@router.get("/admin/bookings")
def admin_list_bookings(status: str = "", q: str = "", departureId: str = "", limit: int = 50, offset: int = 0,
                        db: Session = Depends(get_db), me: User = Depends(admin_only)):
    query = db.query(Booking)
    if status:
        if status.upper() not in BOOKING_STATUSES:
            raise HTTPException(status_code=400, detail="invalid status")
        query = query.filter(Booking.status == status.upper())
    if departureId:
        query = query.filter((Booking.departure_id == departureId) | (Booking.return_departure_id == departureId))
    if q:
        ql = f"%{q.lower()}%"
        query = query.filter(
            func.lower(Booking.booking_ref).like(ql)
            | func.lower(Booking.guest_email).like(ql)
            | func.lower(Booking.guest_last_name).like(ql)
        )
    total = query.count()
    items = query.order_by(Booking.created_at.desc()).limit(min(limit, 200)).offset(max(offset, 0)).all()
    return {"total": total, "items": [booking_to_dict(db, b) for b in items]}

def _get_booking(db: Session, booking_id: str) -> Booking:
    b = db.get(Booking, booking_id)
    if not b:
        raise HTTPException(status_code=404, detail="Not found")
    return b

@router.post("/admin/bookings/{booking_id}/mark-paid")
def admin_mark_paid(booking_id: str, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    b = mark_paid(db, _get_booking(db, booking_id))
    log_audit(db, me.id, "booking.mark_paid", "booking", b.id, {"bookingRef": b.booking_ref})
    db.commit()
    return booking_to_dict(db, b)

@router.post("/admin/bookings/{booking_id}/cancel")
def admin_cancel_booking(booking_id: str, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    b = _get_booking(db, booking_id)
    log_audit(db, me.id, "booking.cancel", "booking", b.id, {"bookingRef": b.booking_ref})
    return booking_to_dict(db, cancel_booking(db, b))
