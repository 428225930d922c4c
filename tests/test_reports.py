from datetime import date, datetime, timezone

import pytest

from shuttle.core.clock import local_day_bounds, local_today, to_local_date
from shuttle.core.errors import ValidationFailed
from shuttle.models.departure import CANCELLED
from shuttle.models.user import User
from shuttle.services import report_service
from shuttle.services.booking_service import cancel_booking, create_booking, mark_paid

DAY = date(2030, 1, 7)


@pytest.fixture
def network(make_route, make_schedule, make_departure):
    clt = make_route(name="Columbia to CLT")
    cae = make_route(name="Columbia to CAE")
    morning = make_schedule(clt, time="06:00", every_day=True)
    evening = make_schedule(cae, time="18:00", every_day=True)
    return {
        "full": make_departure(morning, DAY, capacity=10),
        "half": make_departure(morning, date(2030, 1, 8), capacity=10),
        "quiet": make_departure(evening, DAY, capacity=10),
        "cancelled": make_departure(evening, date(2030, 1, 8), capacity=10, status=CANCELLED),
        "clt": clt,
        "cae": cae,
    }


def _paid(db, departure_id, seats, amount, paid_at, guest, customer_type=None):
    booking = create_booking(db, departure_id, seats, customer_type=customer_type, guest=guest, send_confirmation=False)
    mark_paid(db, booking)
    booking.total_amount = amount
    booking.paid_at = paid_at
    db.commit()
    return booking


def test_occupancy_report_groups_and_distribution(db, network, guest):
    create_booking(db, network["full"].id, 10, guest=guest, send_confirmation=False)
    create_booking(db, network["half"].id, 5, guest=guest, send_confirmation=False)
    create_booking(db, network["quiet"].id, 1, guest=guest, send_confirmation=False)

    report = report_service.occupancy_report(db, DAY, date(2030, 1, 8))

    summary = report["summary"]
    assert summary["departures"] == 3
    assert summary["capacity"] == 30
    assert summary["bookedSeats"] == 16
    assert summary["period"] == "2030-01-07 to 2030-01-08"
    assert report["occupancyDistribution"] == {"FULL": 1, "LOW": 0, "MEDIUM": 1, "HIGH": 1}

    routes = report["routeOccupancy"]
    assert [r["routeName"] for r in routes] == ["Columbia to CLT", "Columbia to CAE"]
    assert routes[0]["occupancyRate"] == 75.0
    assert routes[1]["bookedSeats"] == 1

    assert [s["time"] for s in report["timeSlotOccupancy"]] == ["06:00", "18:00"]
    assert [d["date"] for d in report["dailyOccupancy"]] == ["2030-01-07", "2030-01-08"]
    assert report["dailyOccupancy"][1]["departures"] == 1

    rates = {p["id"]: p["occupancyRate"] for p in report["occupancyData"]}
    assert rates[network["full"].id] == 100.0
    assert network["cancelled"].id not in rates


def test_occupancy_counts_blocked_seats(db, network):
    network["quiet"].blocked_seats = 8
    db.commit()
    report = report_service.occupancy_report(db, DAY, DAY)
    quiet = next(p for p in report["occupancyData"] if p["id"] == network["quiet"].id)
    assert quiet["bookedSeats"] == 8
    assert quiet["availabilityStatus"] == "LOW"


def test_report_range_is_validated(db):
    with pytest.raises(ValidationFailed):
        report_service.occupancy_report(db, date(2030, 1, 8), DAY)
    with pytest.raises(ValidationFailed):
        report_service.revenue_report(db, DAY, date(2032, 1, 7))


def test_revenue_report_counts_paid_bookings_in_range(db, network, guest, make_tier):
    make_tier("REGULAR", 35)
    make_tier("STUDENT", 30)
    noon = datetime(2030, 1, 7, 17, 0, tzinfo=timezone.utc)
    _paid(db, network["full"].id, 2, 70, noon, guest)
    _paid(db, network["full"].id, 1, 30, noon, guest, customer_type="STUDENT")
    _paid(db, network["quiet"].id, 1, 110, datetime(2030, 1, 8, 17, 0, tzinfo=timezone.utc), guest)
    # paid outside the range
    _paid(db, network["quiet"].id, 1, 500, datetime(2030, 1, 20, 17, 0, tzinfo=timezone.utc), guest)
    # confirmed but unpaid
    create_booking(db, network["half"].id, 3, guest=guest, send_confirmation=False)
    cancelled = create_booking(db, network["half"].id, 1, guest=guest, send_confirmation=False)
    cancel_booking(db, cancelled)
    db.commit()

    report = report_service.revenue_report(db, DAY, date(2030, 1, 8))

    assert report["summary"]["totalRevenue"] == 210
    assert report["summary"]["totalBookings"] == 3
    assert report["summary"]["averageBookingValue"] == 70.0
    assert report["revenueByDate"] == [
        {"date": "2030-01-07", "revenue": 100, "bookings": 2},
        {"date": "2030-01-08", "revenue": 110, "bookings": 1},
    ]
    types = {t["customerType"]: t for t in report["customerTypeBreakdown"]}
    assert types["REGULAR"]["percentage"] == 85.7
    assert types["STUDENT"]["bookings"] == 1
    routes = report["routePerformance"]
    assert routes[0]["routeName"] == "Columbia to CAE"
    assert routes[1]["totalPassengers"] == 3
    assert [s["time"] for s in report["peakTimes"]] == ["18:00", "06:00"]


def test_revenue_report_empty_range(db):
    report = report_service.revenue_report(db, DAY, DAY)
    assert report["summary"]["totalRevenue"] == 0
    assert report["summary"]["averageBookingValue"] == 0
    assert report["customerTypeBreakdown"] == []


def test_local_day_bounds_follow_operating_timezone():
    lo, hi = local_day_bounds(date(2030, 7, 1))
    assert lo.tzinfo == timezone.utc
    assert (hi - lo).total_seconds() == 24 * 3600
    assert to_local_date(lo) == date(2030, 7, 1)
    assert to_local_date(hi.replace(tzinfo=None)) == date(2030, 7, 2)


def test_dashboard_stats(db, make_route, make_schedule, make_departure, guest):
    today = local_today()
    s = make_schedule(make_route(), every_day=True)
    d = make_departure(s, today, capacity=10)
    db.add(User(id="cust-1", email="c1@example.com", full_name="Cus One", role="customer",
                password_hash="x", is_active=True))
    db.commit()

    paid = create_booking(db, d.id, 2, guest=guest, send_confirmation=False)
    mark_paid(db, paid)
    paid.total_amount = 70
    create_booking(db, d.id, 3, guest=guest, send_confirmation=False)
    gone = create_booking(db, d.id, 1, guest=guest, send_confirmation=False)
    cancel_booking(db, gone)
    db.commit()

    stats = report_service.dashboard_stats(db)["stats"]
    assert stats["todayBookings"] == 2
    assert stats["todayRevenue"] == 70
    assert stats["totalCustomers"] == 1
    assert stats["upcomingDepartures"] == 1
    assert stats["occupancyRate"] == 50.0
    assert stats["pendingPayments"] == 1


def test_dashboard_with_no_departures(db):
    stats = report_service.dashboard_stats(db)["stats"]
    assert stats["upcomingDepartures"] == 0
    assert stats["occupancyRate"] == 0.0


def test_report_endpoints(client, admin_headers, db, network, guest):
    create_booking(db, network["full"].id, 10, guest=guest, send_confirmation=False)

    assert client.get("/api/v1/admin/reports/occupancy?startDate=2030-01-07&endDate=2030-01-08").status_code == 401

    r = client.get("/api/v1/admin/reports/occupancy?startDate=2030-01-07&endDate=2030-01-08", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["occupancyDistribution"]["FULL"] == 1

    bad = client.get("/api/v1/admin/reports/revenue?startDate=2030-01-08&endDate=2030-01-07", headers=admin_headers)
    assert bad.status_code == 400
    assert bad.json()["code"] == "VALIDATION_ERROR"

    missing = client.get("/api/v1/admin/reports/revenue?startDate=2030-01-08", headers=admin_headers)
    assert missing.status_code == 400

    stats = client.get("/api/v1/admin/dashboard/stats", headers=admin_headers)
    assert stats.status_code == 200
    assert set(stats.json()["stats"]) == {
        "todayBookings", "todayRevenue", "totalCustomers", "upcomingDepartures", "occupancyRate", "pendingPayments",
    }
