from datetime import date, timedelta

import pytest
from sqlalchemy import insert

from shuttle.core.clock import local_today
from shuttle.core.config import settings
from shuttle.core.errors import NotFoundError, ValidationFailed
from shuttle.models.departure import Departure
from shuttle.services import departure_generator
from shuttle.services.departure_generator import generate_departures, generate_rolling_window

MONDAY = date(2030, 1, 7)


def _count(db):
    return db.query(Departure).count()


def test_weekly_schedule_over_two_weeks(db, make_route, make_schedule):
    s = make_schedule(make_route(), time="08:00", day_of_week=1)

    result = generate_departures(db, MONDAY, date(2030, 1, 20))
    db.commit()

    assert result.created == 2
    assert result.skipped == 0
    dates = sorted(d.departure_date for d in db.query(Departure).filter_by(schedule_id=s.id))
    assert dates == [date(2030, 1, 7), date(2030, 1, 14)]
    assert all(d.isoweekday() == 1 for d in dates)


def test_generation_is_idempotent(db, make_route, make_schedule):
    route = make_route()
    make_schedule(route, time="08:00", every_day=True)
    make_schedule(route, time="18:00", day_of_week=5)

    first = generate_departures(db, MONDAY, MONDAY + timedelta(days=6))
    db.commit()
    second = generate_departures(db, MONDAY, MONDAY + timedelta(days=6))
    db.commit()

    assert first.created == 8
    assert second.created == 0
    assert second.skipped == 8
    assert _count(db) == 8


def test_capacity_precedence(db, make_route, make_schedule, make_vehicle):
    route = make_route()
    van = make_vehicle("Van A", capacity=15)
    with_vehicle = make_schedule(route, time="06:00", every_day=True, capacity=9, vehicle=van)
    with_capacity = make_schedule(route, time="08:00", every_day=True, capacity=9)
    bare = make_schedule(route, time="10:00", every_day=True)

    generate_departures(db, MONDAY, MONDAY)
    by_schedule = {d.schedule_id: d for d in db.query(Departure).all()}

    assert by_schedule[with_vehicle.id].capacity == 15
    assert by_schedule[with_vehicle.id].vehicle_id == van.id
    assert by_schedule[with_capacity.id].capacity == 9
    assert by_schedule[bare.id].capacity == settings.DEFAULT_DEPARTURE_CAPACITY

    override = generate_departures(db, MONDAY + timedelta(days=1), MONDAY + timedelta(days=1), capacity=4)
    assert override.created == 3
    caps = {d.capacity for d in db.query(Departure).filter(Departure.departure_date == MONDAY + timedelta(days=1))}
    assert caps == {4}


def test_new_departures_start_empty(db, make_route, make_schedule):
    make_schedule(make_route(), every_day=True)
    generate_departures(db, MONDAY, MONDAY)
    d = db.query(Departure).one()
    assert (d.booked_seats, d.blocked_seats, d.status) == (0, 0, "SCHEDULED")


def test_inactive_schedules_are_ignored(db, make_route, make_schedule):
    make_schedule(make_route(), every_day=True, active=False)
    result = generate_departures(db, MONDAY, MONDAY + timedelta(days=3))
    assert result.created == 0
    assert result.schedules_processed == 0


def test_restrict_to_schedule_ids(db, make_route, make_schedule):
    route = make_route()
    wanted = make_schedule(route, time="06:00", every_day=True)
    make_schedule(route, time="08:00", every_day=True)

    result = generate_departures(db, MONDAY, MONDAY, schedule_ids=[wanted.id])

    assert result.created == 1
    assert db.query(Departure).one().schedule_id == wanted.id


def test_unknown_schedule_ids_not_found(db):
    with pytest.raises(NotFoundError):
        generate_departures(db, MONDAY, MONDAY, schedule_ids=["missing"])


@pytest.mark.parametrize("start,end,capacity", [
    (MONDAY, MONDAY - timedelta(days=1), None),
    (MONDAY, MONDAY + timedelta(days=400), None),
    (MONDAY, MONDAY, 0),
])
def test_rejects_bad_windows(db, start, end, capacity):
    with pytest.raises(ValidationFailed):
        generate_departures(db, start, end, capacity=capacity)


def test_schedule_with_missing_route_is_reported(db, make_route, make_schedule):
    route = make_route()
    ok = make_schedule(route, every_day=True)
    orphan = make_schedule(route, time="09:00", every_day=True)
    orphan.route_id = "gone"
    db.flush()

    result = generate_departures(db, MONDAY, MONDAY)

    assert result.created == 1
    assert db.query(Departure).one().schedule_id == ok.id
    assert any(orphan.id in e for e in result.errors)


def test_rolling_window_starts_today(db, make_route, make_schedule):
    make_schedule(make_route(), every_day=True)
    result = generate_rolling_window(db, days=5)
    today = local_today()
    assert result.created == 5
    assert result.start == today
    assert result.end == today + timedelta(days=4)


def test_concurrent_insert_counts_as_skipped(db, make_route, make_schedule, monkeypatch):
    s = make_schedule(make_route(), every_day=True)
    contested = MONDAY + timedelta(days=1)
    real_insert = departure_generator._insert_departure

    def racing_insert(session, departure):
        # another generator commits the same (schedule, date) after our pre-load
        if departure.departure_date == contested:
            session.execute(insert(Departure).values(
                id="other-run", schedule_id=s.id, departure_date=contested,
                capacity=12, booked_seats=0, blocked_seats=0, status="SCHEDULED",
            ))
        real_insert(session, departure)

    monkeypatch.setattr(departure_generator, "_insert_departure", racing_insert)
    result = generate_departures(db, MONDAY, MONDAY + timedelta(days=2))
    db.commit()

    assert (result.created, result.skipped, result.failed) == (2, 1, 0)
    rows = db.query(Departure).filter_by(schedule_id=s.id).order_by(Departure.departure_date).all()
    assert [d.departure_date for d in rows] == [MONDAY, contested, MONDAY + timedelta(days=2)]
    assert rows[1].id == "other-run"


def test_inactive_route_gets_no_departures(db, make_route, make_schedule):
    make_schedule(make_route(name="Retired line", active=False), every_day=True)
    live = make_schedule(make_route(name="Live line"), every_day=True)

    result = generate_departures(db, MONDAY, MONDAY + timedelta(days=2))
    db.commit()

    assert result.created == 3
    assert {d.schedule_id for d in db.query(Departure)} == {live.id}
