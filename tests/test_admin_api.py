import json

from fastapi.testclient import TestClient

from shuttle.core.security import create_access_token, hash_password
from shuttle.models.audit_log import AuditLog
from shuttle.models.departure import Departure
from shuttle.models.user import User



def test_admin_routes_require_admin_role(client, db):
    customer = User(id="c1", email="c@example.com", full_name="Cus Tomer", role="customer",
                    password_hash=hash_password("x"), is_active=True)
    db.add(customer)
    db.commit()
    assert client.get("/api/v1/admin/vehicles").status_code == 401
    r = client.get("/api/v1/admin/vehicles", headers={"Authorization": f"Bearer {create_access_token('c1')}"})
    assert r.status_code == 403


def _setup_network(client, headers):
    route = client.post("/api/v1/admin/routes", headers=headers, json={
        "name": "Columbia to CLT", "origin": "Columbia, SC", "destination": "CLT", "durationMinutes": 120,
    }).json()
    schedule = client.post("/api/v1/admin/schedules", headers=headers, json={
        "routeId": route["id"], "dayOfWeek": 1, "time": "08:00",
    }).json()
    return route, schedule


def test_generate_two_mondays(client, admin_headers, db):
    _, schedule = _setup_network(client, admin_headers)
    r = client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-20",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["departuresCreated"] == 2
    assert body["dateRange"] == {"start": "2030-01-07", "end": "2030-01-20"}

    again = client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-20",
    }).json()
    assert again["departuresCreated"] == 0
    assert again["departuresSkipped"] == 2
    assert db.query(Departure).filter_by(schedule_id=schedule["id"]).count() == 2
    assert db.query(AuditLog).filter_by(action="departures.generate").count() == 2


def test_generate_rejects_inverted_range(client, admin_headers):
    r = client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-20", "endDate": "2030-01-07",
    })
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_schedule_requires_day_or_every_day(client, admin_headers):
    route, _ = _setup_network(client, admin_headers)
    r = client.post("/api/v1/admin/schedules", headers=admin_headers, json={"routeId": route["id"], "time": "09:00"})
    assert r.status_code == 400
    bad_time = client.post("/api/v1/admin/schedules", headers=admin_headers, json={
        "routeId": route["id"], "everyDay": True, "time": "25:00",
    })
    assert bad_time.status_code == 400
    dup = client.post("/api/v1/admin/schedules", headers=admin_headers, json={
        "routeId": route["id"], "dayOfWeek": 1, "time": "08:00",
    })
    assert dup.status_code == 400
    assert dup.json()["code"] == "CONFLICT"


def test_vehicle_crud_and_delete_conflict(client, admin_headers, db):
    _setup_network(client, admin_headers)
    v = client.post("/api/v1/admin/vehicles", headers=admin_headers, json={"name": "Van A", "capacity": 15})
    assert v.status_code == 201
    vid = v.json()["id"]
    dup = client.post("/api/v1/admin/vehicles", headers=admin_headers, json={"name": "van a", "capacity": 10})
    assert dup.status_code == 400

    client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-07",
    })
    dep = db.query(Departure).one()
    assigned = client.post("/api/v1/admin/departures/assign-vehicle", headers=admin_headers, json={
        "departureId": dep.id, "vehicleId": vid,
    })
    assert assigned.status_code == 200
    assert assigned.json()["capacity"] == 15

    r = client.delete(f"/api/v1/admin/vehicles/{vid}", headers=admin_headers)
    assert r.status_code == 400
    assert "Deactivate it instead" in r.json()["detail"]

    # deactivate, then it can no longer be assigned
    client.patch(f"/api/v1/admin/vehicles/{vid}", headers=admin_headers, json={"active": False})
    again = client.post("/api/v1/admin/departures/assign-vehicle", headers=admin_headers, json={
        "departureId": dep.id, "vehicleId": vid,
    })
    assert again.status_code == 400

    removed = client.post("/api/v1/admin/departures/assign-vehicle", headers=admin_headers, json={
        "departureId": dep.id, "vehicleId": None,
    })
    assert removed.status_code == 200
    db.refresh(dep)
    assert dep.vehicle_id is None
    assert dep.capacity == 15


def test_unused_vehicle_can_be_deleted(client, admin_headers):
    vid = client.post("/api/v1/admin/vehicles", headers=admin_headers, json={"name": "Spare", "capacity": 8}).json()["id"]
    assert client.delete(f"/api/v1/admin/vehicles/{vid}", headers=admin_headers).status_code == 200
    assert client.get("/api/v1/admin/vehicles", headers=admin_headers).json()["vehicles"] == []


def test_assign_unknown_ids(client, admin_headers):
    r = client.post("/api/v1/admin/departures/assign-vehicle", headers=admin_headers, json={
        "departureId": "missing", "vehicleId": None,
    })
    assert r.status_code == 404


def test_mark_booked_then_release(client, admin_headers, db, guest):
    _setup_network(client, admin_headers)
    client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-20",
    })
    first, second = db.query(Departure).order_by(Departure.departure_date).all()
    client.post("/api/v1/bookings", json={"departureId": first.id, "passengerCount": 2, "guest": guest})

    r = client.post("/api/v1/admin/departures/mark-booked", headers=admin_headers, json={"endDate": "2030-01-14"})
    assert r.status_code == 200
    assert r.json()["updatedDepartures"] == 1

    day = client.get("/api/v1/departures", params={"date": "2030-01-07"}).json()["departures"][0]
    assert day["bookedSeats"] == day["capacity"]
    assert day["availableSeats"] == 0
    assert day["availabilityStatus"] == "FULL"
    db.refresh(second)
    assert second.blocked_seats == 0

    sold_out = client.post("/api/v1/bookings", json={"departureId": first.id, "passengerCount": 1, "guest": guest})
    assert sold_out.status_code == 409

    released = client.post("/api/v1/admin/departures/release", headers=admin_headers, json={"endDate": "2030-01-14"})
    assert released.json()["updatedDepartures"] == 1
    db.refresh(first)
    assert (first.blocked_seats, first.booked_seats) == (0, 2)


def test_capacity_view_week(client, admin_headers, db):
    _setup_network(client, admin_headers)
    client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-20",
    })
    r = client.get("/api/v1/admin/schedules/capacity", headers=admin_headers, params={"date": "2030-01-09", "view": "week"})
    assert r.status_code == 200
    body = r.json()
    assert body["dateRange"] == {"start": "2030-01-07", "end": "2030-01-13"}
    assert body["timeSlots"][0]["time"] == "08:00"
    assert body["summary"]["departures"] == 1
    bad = client.get("/api/v1/admin/schedules/capacity", headers=admin_headers, params={"date": "2030-01-09", "view": "month"})
    assert bad.status_code == 400


def test_update_departure_status_and_capacity(client, admin_headers, db, guest):
    _setup_network(client, admin_headers)
    client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-07",
    })
    dep = db.query(Departure).one()
    client.post("/api/v1/bookings", json={"departureId": dep.id, "passengerCount": 3, "guest": guest})

    too_small = client.patch(f"/api/v1/admin/departures/{dep.id}", headers=admin_headers, json={"capacity": 2})
    assert too_small.status_code == 400
    r = client.patch(f"/api/v1/admin/departures/{dep.id}", headers=admin_headers, json={
        "status": "boarding", "driverNotes": "Gate 3", "capacity": 4,
    })
    assert r.status_code == 200
    body = r.json()
    assert (body["status"], body["driverNotes"], body["capacity"], body["availableSeats"]) == ("BOARDING", "Gate 3", 4, 1)


def test_pricing_tiers_and_fees(client, admin_headers):
    r = client.post("/api/v1/admin/pricing", headers=admin_headers, json={
        "name": "Student Rate", "customerType": "student", "basePrice": 30,
    })
    assert r.status_code == 201
    dup = client.post("/api/v1/admin/pricing", headers=admin_headers, json={
        "name": "Student 2", "customerType": "STUDENT", "basePrice": 29,
    })
    assert dup.status_code == 400
    fees = client.put("/api/v1/admin/pricing/fees", headers=admin_headers, json={"extraLuggage": 7}).json()
    assert fees == {"extraLuggage": 7, "pets": 10}
    quote = client.get("/api/v1/pricing", params={"customerType": "STUDENT", "extraLuggage": 1}).json()
    assert quote["breakdown"]["subtotal"] == 37


def test_admin_bookings_mark_paid_and_cancel(client, admin_headers, db, guest):
    _setup_network(client, admin_headers)
    client.post("/api/v1/admin/generate-departures", headers=admin_headers, json={
        "startDate": "2030-01-07", "endDate": "2030-01-07",
    })
    dep = db.query(Departure).one()
    booking = client.post("/api/v1/bookings", json={"departureId": dep.id, "passengerCount": 2, "guest": guest}).json()

    listed = client.get("/api/v1/admin/bookings", headers=admin_headers, params={"q": "grace"}).json()
    assert listed["total"] == 1
    paid = client.post(f"/api/v1/admin/bookings/{booking['id']}/mark-paid", headers=admin_headers)
    assert paid.json()["status"] == "PAID"
    cancelled = client.post(f"/api/v1/admin/bookings/{booking['id']}/cancel", headers=admin_headers)
    assert cancelled.json()["status"] == "CANCELLED"
    db.refresh(dep)
    assert dep.booked_seats == 0
    audit = db.query(AuditLog).filter_by(action="booking.cancel").one()
    assert json.loads(audit.details_json)["bookingRef"] == booking["bookingRef"]


def test_unhandled_errors_return_500(engine, monkeypatch):
    from shuttle.api.v1.routes import public
    from shuttle.db.session import Database
    from shuttle.main import create_app

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(public, "calculate_price", boom)
    app = create_app(database=Database(engine=engine))
    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.get("/api/v1/pricing")
    assert r.status_code == 500
    assert r.json()["detail"] == "Internal server error"


def test_audit_trail_lists_admin_writes(client, admin_headers, admin_user):
    route, schedule = _setup_network(client, admin_headers)
    client.patch(f"/api/v1/admin/routes/{route['id']}", headers=admin_headers, json={"durationMinutes": 95})

    r = client.get("/api/v1/admin/audit", headers=admin_headers, params={"action": "route."})
    body = r.json()
    assert body["total"] == 2
    assert {a["action"] for a in body["items"]} == {"route.create", "route.update"}
    update = next(a for a in body["items"] if a["action"] == "route.update")
    assert update["details"] == {"durationMinutes": 95}
    assert update["actorUserId"] == admin_user.id

    by_entity = client.get("/api/v1/admin/audit", headers=admin_headers, params={"entityId": schedule["id"]}).json()
    assert [a["action"] for a in by_entity["items"]] == ["schedule.create"]
