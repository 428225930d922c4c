from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shuttle.db.session import get_db
from shuttle.api.deps import admin_only
from shuttle.models.user import User
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.models.vehicle import Vehicle
from shuttle.models.pricing_tier import PricingTier
from shuttle.schemas.catalog import (
    RouteIn, RouteUpdate, ScheduleIn, ScheduleUpdate, VehicleIn, VehicleUpdate,
    PricingTierIn, PricingTierUpdate, FeesIn,
)
from shuttle.services import catalog_service as catalog
from shuttle.services.audit_service import audit_to_dict, list_audit, log_audit
from shuttle.services.pricing_service import tier_to_dict
from shuttle.services.settings_service import get_fees, set_fees

router = APIRouter(tags=["admin"])


# -------------------------
# ADMIN: ROUTES
# -------------------------
@router.get("/admin/routes")
def admin_list_routes(db: Session = Depends(get_db), me: User = Depends(admin_only)):
    items = db.query(Route).order_by(Route.name.asc()).all()
    return {"routes": [catalog.route_to_dict(r) for r in items]}

@router.post("/admin/routes", status_code=201)
def admin_create_route(body: RouteIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    r = catalog.create_route(db, body.name, body.origin, body.destination, body.durationMinutes, body.active)
    log_audit(db, me.id, "route.create", "route", r.id, body.model_dump())
    db.commit()
    return catalog.route_to_dict(r)

@router.patch("/admin/routes/{route_id}")
def admin_update_route(route_id: str, body: RouteUpdate, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    changes = body.model_dump(exclude_none=True)
    r = catalog.update_route(
        db, route_id, name=body.name, origin=body.origin, destination=body.destination,
        duration_minutes=body.durationMinutes, active=body.active,
    )
    log_audit(db, me.id, "route.update", "route", r.id, changes)
    db.commit()
    return catalog.route_to_dict(r)

@router.delete("/admin/routes/{route_id}")
def admin_delete_route(route_id: str, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    catalog.delete_route(db, route_id)
    log_audit(db, me.id, "route.delete", "route", route_id)
    db.commit()
    return {"ok": True}


# -------------------------
# ADMIN: SCHEDULES
# -------------------------
@router.get("/admin/schedules")
def admin_list_schedules(routeId: str | None = None, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    q = db.query(Schedule, Route).join(Route, Route.id == Schedule.route_id)
    if routeId:
        q = q.filter(Schedule.route_id == routeId)
    rows = q.order_by(Route.name.asc(), Schedule.every_day.desc(), Schedule.day_of_week.asc(), Schedule.time.asc()).all()
    return {"schedules": [catalog.schedule_to_dict(s, r) for s, r in rows]}

@router.post("/admin/schedules", status_code=201)
def admin_create_schedule(body: ScheduleIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    s = catalog.create_schedule(
        db, body.routeId, body.time, day_of_week=body.dayOfWeek, every_day=body.everyDay,
        capacity=body.capacity, vehicle_id=body.vehicleId, active=body.active,
    )
    log_audit(db, me.id, "schedule.create", "schedule", s.id, body.model_dump())
    db.commit()
    return catalog.schedule_to_dict(s)

@router.patch("/admin/schedules/{schedule_id}")
def admin_update_schedule(schedule_id: str, body: ScheduleUpdate, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    changes = body.model_dump(exclude_none=True)
    s = catalog.update_schedule(
        db, schedule_id, day_of_week=body.dayOfWeek, every_day=body.everyDay, time=body.time,
        capacity=body.capacity, vehicle_id=body.vehicleId, active=body.active,
    )
    log_audit(db, me.id, "schedule.update", "schedule", s.id, changes)
    db.commit()
    return catalog.schedule_to_dict(s)

@router.delete("/admin/schedules/{schedule_id}")
def admin_delete_schedule(schedule_id: str, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    catalog.delete_schedule(db, schedule_id)
    log_audit(db, me.id, "schedule.delete", "schedule", schedule_id)
    db.commit()
    return {"ok": True}


# -------------------------
# ADMIN: VEHICLES
# -------------------------
@router.get("/admin/vehicles")
def admin_list_vehicles(db: Session = Depends(get_db), me: User = Depends(admin_only)):
    items = db.query(Vehicle).order_by(Vehicle.name.asc()).all()
    return {"vehicles": [catalog.vehicle_to_dict(v) for v in items]}

@router.post("/admin/vehicles", status_code=201)
def admin_create_vehicle(body: VehicleIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    v = catalog.create_vehicle(db, body.name, body.capacity, body.priceMultiplier, body.active)
    log_audit(db, me.id, "vehicle.create", "vehicle", v.id, body.model_dump())
    db.commit()
    return catalog.vehicle_to_dict(v)

@router.patch("/admin/vehicles/{vehicle_id}")
def admin_update_vehicle(vehicle_id: str, body: VehicleUpdate, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    changes = body.model_dump(exclude_none=True)
    v = catalog.update_vehicle(
        db, vehicle_id, name=body.name, capacity=body.capacity,
        price_multiplier=body.priceMultiplier, active=body.active,
    )
    log_audit(db, me.id, "vehicle.update", "vehicle", v.id, changes)
    db.commit()
    return catalog.vehicle_to_dict(v)

@router.delete("/admin/vehicles/{vehicle_id}")
def admin_delete_vehicle(vehicle_id: str, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    catalog.delete_vehicle(db, vehicle_id)
    log_audit(db, me.id, "vehicle.delete", "vehicle", vehicle_id)
    db.commit()
    return {"ok": True}


# -------------------------
# ADMIN: PRICING
# -------------------------
@router.get("/admin/pricing")
def admin_list_pricing(db: Session = Depends(get_db), me: User = Depends(admin_only)):
    tiers = db.query(PricingTier).order_by(PricingTier.customer_type.asc(), PricingTier.created_at.asc()).all()
    return {"tiers": [tier_to_dict(t) for t in tiers], "fees": get_fees(db)}

@router.post("/admin/pricing", status_code=201)
def admin_create_pricing(body: PricingTierIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    t = catalog.create_pricing_tier(db, body.name, body.customerType, body.basePrice, body.description, body.active)
    log_audit(db, me.id, "pricing.create", "pricing_tier", t.id, body.model_dump())
    db.commit()
    return tier_to_dict(t)

@router.put("/admin/pricing/fees")
def admin_set_fees(body: FeesIn, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    fees = set_fees(db, extra_luggage=body.extraLuggage, pets=body.pets)
    log_audit(db, me.id, "pricing.fees", "setting", "fees", fees)
    db.commit()
    return fees

@router.patch("/admin/pricing/{tier_id}")
def admin_update_pricing(tier_id: str, body: PricingTierUpdate, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    changes = body.model_dump(exclude_none=True)
    t = catalog.update_pricing_tier(
        db, tier_id, name=body.name, description=body.description,
        base_price=body.basePrice, active=body.active,
    )
    log_audit(db, me.id, "pricing.update", "pricing_tier", t.id, changes)
    db.commit()
    return tier_to_dict(t)

@router.delete("/admin/pricing/{tier_id}")
def admin_delete_pricing(tier_id: str, db: Session = Depends(get_db), me: User = Depends(admin_only)):
    catalog.delete_pricing_tier(db, tier_id)
    log_audit(db, me.id, "pricing.delete", "pricing_tier", tier_id)
    db.commit()
    return {"ok": True}


# -------------------------
# ADMIN: AUDIT TRAIL
# -------------------------
@router.get("/admin/audit")
def admin_list_audit(entityType: str = "", entityId: str = "", action: str = "", limit: int = 100, offset: int = 0,
                     db: Session = Depends(get_db), me: User = Depends(admin_only)):
    total, rows = list_audit(db, entityType, entityId, action, limit, offset)
    return {"total": total, "items": [audit_to_dict(a) for a in rows]}
