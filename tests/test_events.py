# tests/test_events.py
from datetime import datetime, timedelta

import pytest

from ellarises.errors import ValidationError
from ellarises.models.events import EventOccurrence, EventTemplate, LocationCapacity
from ellarises.services.events import series_starts

from factories import make_occurrence


def _add_template(client, **overrides):
    data = {"event_name": "STEAM Saturday", "event_type": "workshop", "event_default_capacity": "10"}
    data.update(overrides)
    return client.post("/addEvent", data=data, follow_redirects=False)


def test_add_event_template(manager_client, db):
    r = _add_template(manager_client, event_recurrence_pattern="rrule:freq=weekly;byday=sa")
    assert r.status_code == 303
    tpl = db.query(EventTemplate).one()
    assert tpl.event_recurrence_pattern == "FREQ=WEEKLY;BYDAY=SA"
    assert tpl.event_default_capacity == 10


def test_add_event_rejects_bad_rrule(manager_client, db):
    r = _add_template(manager_client, event_recurrence_pattern="every saturday")
    assert r.status_code == 400
    assert "recurrence must be an iCalendar RRULE" in r.text
    assert db.query(EventTemplate).count() == 0


def test_add_event_rejects_unknown_type(manager_client):
    r = _add_template(manager_client, event_type="party")
    assert r.status_code == 400
    assert "event type must be one of" in r.text


def test_series_starts_follow_rule():
    first = datetime(2030, 1, 5, 10, 0)  # a Saturday
    starts = series_starts("FREQ=WEEKLY;BYDAY=SA", first, 3)
    assert starts == [first, first + timedelta(days=7), first + timedelta(days=14)]


def test_series_needs_a_pattern():
    with pytest.raises(ValidationError):
        series_starts(None, datetime(2030, 1, 5, 10, 0), 2)


def test_add_occurrence_series(manager_client, db):
    _add_template(manager_client, event_recurrence_pattern="FREQ=WEEKLY;BYDAY=SA")
    tpl = db.query(EventTemplate).one()
    r = manager_client.post(
        "/addOccurrence",
        data={
            "event_template_id": str(tpl.event_template_id),
            "start_at": "2030-01-05T10:00:00",
            "end_at": "2030-01-05T12:00:00",
            "registration_deadline": "2030-01-04T10:00:00",
            "repeat_count": "3",
        },
        follow_redirects=False,
    )
    assert r.status_code == 303
    occs = db.query(EventOccurrence).order_by(EventOccurrence.start_at).all()
    assert [o.start_at for o in occs] == [
        datetime(2030, 1, 5, 10),
        datetime(2030, 1, 12, 10),
        datetime(2030, 1, 19, 10),
    ]
    assert all(o.end_at - o.start_at == timedelta(hours=2) for o in occs)
    assert occs[2].registration_deadline == datetime(2030, 1, 18, 10)


def test_add_occurrence_rejects_end_before_start(manager_client, db):
    _add_template(manager_client)
    tpl = db.query(EventTemplate).one()
    r = manager_client.post(
        "/addOccurrence",
        data={
            "event_template_id": str(tpl.event_template_id),
            "start_at": "2030-01-05T10:00:00",
            "end_at": "2030-01-05T09:00:00",
        },
    )
    assert r.status_code == 400
    assert "end_at must be greater than or equal to start_at" in r.text
    assert db.query(EventOccurrence).count() == 0


def test_effective_capacity_precedence(db):
    occ = make_occurrence(db)
    loc = LocationCapacity(location_name="Hall", location_capacity=40)
    db.add(loc)
    db.flush()
    occ.location_id = loc.location_id
    db.commit()
    db.refresh(occ)
    assert occ.effective_capacity == 40

    occ.template.event_default_capacity = 20
    assert occ.effective_capacity == 20

    occ.capacity = 5
    assert occ.effective_capacity == 5


def test_locations_crud(manager_client, db):
    r = manager_client.post("/addLocation", data={"location_name": "Maker Lab", "location_capacity": "12"}, follow_redirects=False)
    assert r.status_code == 303
    loc = db.query(LocationCapacity).one()

    r = manager_client.post("/addLocation", data={"location_name": "maker lab", "location_capacity": "30"})
    assert r.status_code == 400
    assert "Location name already in use" in r.text

    r = manager_client.post(
        f"/editLocation/{loc.location_id}",
        data={"location_name": "Maker Lab", "location_capacity": "14"},
        follow_redirects=False,
    )
    assert r.status_code == 303

    r = manager_client.get("/viewLocations")
    assert "Maker Lab" in r.text and "14" in r.text


def test_delete_location_keeps_occurrences(manager_client, db):
    occ = make_occurrence(db)
    loc = LocationCapacity(location_name="Hall", location_capacity=40)
    db.add(loc)
    db.commit()
    occ.location_id = loc.location_id
    db.commit()

    manager_client.post(f"/deleteLocation/{loc.location_id}")
    db.expire_all()
    kept = db.get(EventOccurrence, occ.occurrence_id)
    assert kept is not None
    assert kept.location_id is None


def test_delete_template_removes_occurrences(manager_client, db):
    occ = make_occurrence(db)
    manager_client.post(f"/deleteEvent/{occ.event_template_id}")
    db.expire_all()
    assert db.query(EventOccurrence).count() == 0


def test_view_and_search_events(user_client, db):
    make_occurrence(db, name="Robotics Night")
    make_occurrence(db, name="Poetry Circle")
    r = user_client.get("/viewEvents")
    assert r.status_code == 200
    assert "Robotics Night" in r.text and "Poetry Circle" in r.text
    assert "/addEvent" not in r.text

    r = user_client.get("/searchEvents", params={"q": "robot"})
    assert "Robotics Night" in r.text
    assert "Poetry Circle" not in r.text
