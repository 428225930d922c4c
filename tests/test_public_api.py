from datetime import timedelta

import pytest

from shuttle.core.clock import local_today
from shuttle.models.departure import Departure


@pytest.fixture
def network(db, make_route, make_schedule, make_departure, make_tier):
    make_tier("REGULAR", 35)
    route = make_route()
    s = make_schedule(route, time="08:00", every_day=True)
    today = local_today()
    d0 = make_departure(s, today, capacity=4)
    d1 = make_departure(s, today + timedelta(days=1), capacity=4)
    past = make_departure(s, today - timedelta(days=1), capacity=4)
    db.commit()
    return {"route": route, "schedule": s, "today": d0, "tomorrow": d1, "past": past}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_pricing_endpoint(client, network):
    r = client.get("/api/v1/pricing", params={"customerType": "REGULAR", "passengerCount": 2, "roundTrip": "true"})
    assert r.status_code == 200
    b = r.json()["breakdown"]
    assert (b["roundTripTotal"], b["savings"], b["total"]) == (140, 14, 126)


def test_pricing_rejects_zero_passengers(client):
    r = client.get("/api/v1/pricing", params={"passengerCount": 0})
    assert r.status_code == 400


def test_schedules_list_upcoming_departures_with_availability(client, network, guest):
    client.post("/api/v1/bookings", json={
        "departureId": network["today"].id, "passengerCount": 3, "guest": guest,
    })
    r = client.get("/api/v1/schedules")
    assert r.status_code == 200
    schedules = r.json()["schedules"]
    assert len(schedules) == 1
    deps = schedules[0]["departures"]
    assert [d["id"] for d in deps] == [network["today"].id, network["tomorrow"].id]
    assert deps[0]["bookedSeats"] == 3
    assert deps[0]["availableSeats"] == 1
    assert deps[0]["availabilityStatus"] == "MEDIUM"
    assert deps[1]["availabilityStatus"] == "HIGH"
    assert schedules[0]["route"]["name"] == network["route"].name


def test_routes_with_nested_schedules(client, network):
    r = client.get("/api/v1/routes", params={"includeSchedules": "true"})
    routes = r.json()["routes"]
    assert routes[0]["schedules"][0]["id"] == network["schedule"].id
    assert "schedules" not in client.get("/api/v1/routes").json()["routes"][0]


def test_departures_by_date(client, network):
    day = network["tomorrow"].departure_date.isoformat()
    r = client.get("/api/v1/departures", params={"date": day})
    deps = r.json()["departures"]
    assert [d["id"] for d in deps] == [network["tomorrow"].id]
    assert deps[0]["departureTime"] == "08:00"
    assert deps[0]["route"]["origin"] == "Columbia, SC"
    # no date: today onward
    ids = [d["id"] for d in client.get("/api/v1/departures").json()["departures"]]
    assert network["past"].id not in ids


def test_booking_flow(client, network, guest):
    r = client.post("/api/v1/bookings", json={
        "departureId": network["tomorrow"].id,
        "passengerCount": 2,
        "guest": guest,
        "passengers": [{"firstName": "Ann", "lastName": "Lee"}, {"firstName": "Bo", "lastName": "Lee"}],
    })
    assert r.status_code == 201
    body = r.json()
    assert body["total"] == 70
    ref = body["bookingRef"]

    got = client.get(f"/api/v1/bookings/{ref}").json()
    assert got["outbound"]["time"] == "08:00"
    assert len(got["passengers"]) == 2

    denied = client.post(f"/api/v1/bookings/{ref}/cancel", json={"email": "someone@else.com"})
    assert denied.status_code == 403
    ok = client.post(f"/api/v1/bookings/{ref}/cancel", json={"email": guest["email"]})
    assert ok.status_code == 200
    assert ok.json()["status"] == "CANCELLED"


def test_booking_sold_out_returns_409(client, network, guest):
    dep = network["today"].id
    assert client.post("/api/v1/bookings", json={"departureId": dep, "passengerCount": 4, "guest": guest}).status_code == 201
    r = client.post("/api/v1/bookings", json={"departureId": dep, "passengerCount": 1, "guest": guest})
    assert r.status_code == 409
    assert r.json()["code"] == "SOLD_OUT"
    assert r.json()["availableSeats"] == 0


def test_booking_unknown_departure_404(client, guest):
    r = client.post("/api/v1/bookings", json={"departureId": "missing", "passengerCount": 1, "guest": guest})
    assert r.status_code == 404


def test_cancelled_departure_not_bookable(client, db, network, guest):
    network["tomorrow"].status = "CANCELLED"
    db.commit()
    r = client.post("/api/v1/bookings", json={"departureId": network["tomorrow"].id, "passengerCount": 1, "guest": guest})
    assert r.status_code == 400
    assert db.get(Departure, network["tomorrow"].id).booked_seats == 0


def test_login_and_me(client, admin_user):
    r = client.post("/api/v1/auth/login", json={"email": "ADMIN@example.com", "password": "secret123"})
    assert r.status_code == 200
    tokens = r.json()
    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.json()["role"] == "admin"
    assert me.json()["lastLoginAt"] is not None

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    # an access token cannot be used to refresh
    bad = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert bad.status_code == 401


def test_login_wrong_password(client, admin_user):
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert r.status_code == 401


def test_booking_rejects_header_injection_in_guest_email(client, network, guest):
    bad = dict(guest, email="grace@example.com\r\nBcc: x@example.com")
    r = client.post("/api/v1/bookings", json={"departureId": network["today"].id, "passengerCount": 1, "guest": bad})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"
