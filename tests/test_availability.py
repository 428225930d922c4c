import logging
from datetime import date

import pytest

from shuttle.models.departure import Departure
from shuttle.models.route import Route
from shuttle.models.schedule import Schedule
from shuttle.services import availability


@pytest.mark.parametrize("capacity,taken,expected", [
    (12, 0, "HIGH"),
    (12, 5, "HIGH"),
    (12, 6, "MEDIUM"),
    (10, 8, "LOW"),
    (10, 9, "LOW"),
    (12, 12, "FULL"),
    (12, 14, "FULL"),
    (0, 0, "FULL"),
])
def test_occupancy_status(capacity, taken, expected):
    assert availability.occupancy_status(capacity, taken) == expected


def test_available_seats_never_negative_and_logs_overbooking(caplog):
    assert availability.available_seats(12, 3) == 9
    with caplog.at_level(logging.WARNING, logger="shuttle.services.availability"):
        assert availability.available_seats(12, 15, "dep-1") == 0
    assert "Overbooking anomaly on departure dep-1" in caplog.text


def test_week_bounds_are_monday_to_sunday():
    # 2030-01-09 is a Wednesday
    assert availability.week_bounds(date(2030, 1, 9)) == (date(2030, 1, 7), date(2030, 1, 13))
    assert availability.week_bounds(date(2030, 1, 13)) == (date(2030, 1, 7), date(2030, 1, 13))


def _row(time, route, day, capacity=10, dep_id=None):
    schedule = Schedule(id=f"s-{route.id}-{time}", route_id=route.id, time=time, every_day=True)
    departure = Departure(
        id=dep_id or f"d-{route.id}-{time}-{day.isoformat()}",
        schedule_id=schedule.id,
        departure_date=day,
        capacity=capacity,
        booked_seats=0,
        blocked_seats=0,
        status="SCHEDULED",
    )
    return departure, schedule, route, None


def test_group_capacity_view_by_time_then_route():
    a = Route(id="r1", name="A", origin="Columbia", destination="CLT")
    b = Route(id="r2", name="B", origin="Rock Hill", destination="CLT")
    day = date(2030, 1, 7)
    rows = [_row("06:00", a, day), _row("06:00", b, day, capacity=8), _row("10:00", a, day)]
    taken = {rows[0][0].id: 10, rows[1][0].id: 2, rows[2][0].id: 0}

    slots = availability.group_capacity_view(rows, taken)

    assert [s["time"] for s in slots] == ["06:00", "10:00"]
    six = slots[0]
    assert [g["route"] for g in six["routes"]] == ["Columbia → CLT", "Rock Hill → CLT"]
    first = six["routes"][0]["departures"][0]
    assert first["availableSeats"] == 0
    assert first["availabilityStatus"] == "FULL"
    assert six["summary"]["capacity"] == 18
    assert six["summary"]["bookedSeats"] == 12
    assert six["summary"]["availableSeats"] == 6
    assert slots[1]["summary"]["availabilityStatus"] == "HIGH"


def test_summarize_empty():
    s = availability.summarize([])
    assert s["departures"] == 0
    assert s["availabilityStatus"] == "FULL"
