# tests/test_registrations.py
from datetime import datetime, timedelta

import pytest

from ellarises.errors import DuplicateError, NotFoundError, ValidationError
from ellarises.models.events import Registration
from ellarises.models.users import User
from ellarises.services import participants as participants_svc
from ellarises.services import registrations as registrations_svc

from factories import USER_EMAIL, login, make_occurrence, make_participant, make_registration, make_user


@pytest.fixture()
def linked_client(anon_client, db):
    p = make_participant(db, email=USER_EMAIL)
    make_user(db, USER_EMAIL, participant_id=p.participant_id)
    assert login(anon_client, USER_EMAIL).status_code == 303
    anon_client.participant_id = p.participant_id
    return anon_client


def test_register_for_open_event(linked_client, db):
    occ = make_occurrence(db)
    r = linked_client.post(f"/register/{occ.occurrence_id}", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/register"

    reg = db.query(Registration).one()
    assert reg.participant_id == linked_client.participant_id
    assert reg.registration_status == "requested"

    r = linked_client.get("/register")
    assert "Your registrations" in r.text
    assert "STEAM Workshop" in r.text


def test_register_twice_is_rejected(linked_client, db):
    occ = make_occurrence(db)
    linked_client.post(f"/register/{occ.occurrence_id}")
    r = linked_client.post(f"/register/{occ.occurrence_id}")
    assert r.status_code == 409
    assert "You are already registered for this event" in r.text
    assert db.query(Registration).count() == 1


def test_register_after_deadline(linked_client, db):
    occ = make_occurrence(db, deadline=datetime.now() - timedelta(hours=1))
    r = linked_client.post(f"/register/{occ.occurrence_id}")
    assert r.status_code == 400
    assert "Registration for this event has closed" in r.text


def test_register_when_full(db):
    occ = make_occurrence(db, capacity=1)
    first = make_participant(db, email="first@example.org")
    second = make_participant(db, email="second@example.org")
    registrations_svc.register(db, first.participant_id, occ.occurrence_id)
    with pytest.raises(ValidationError) as exc:
        registrations_svc.register(db, second.participant_id, occ.occurrence_id)
    assert exc.value.message == "This event is full"


def test_cancelled_registration_frees_the_seat(db):
    occ = make_occurrence(db, capacity=1)
    first = make_participant(db, email="first@example.org")
    second = make_participant(db, email="second@example.org")
    reg = registrations_svc.register(db, first.participant_id, occ.occurrence_id)
    registrations_svc.update_status(db, reg.registration_id, "cancelled")
    assert registrations_svc.register(db, second.participant_id, occ.occurrence_id) is not None


def test_duplicate_registration_service(db):
    occ = make_occurrence(db)
    p = make_participant(db)
    make_registration(db, p.participant_id, occ.occurrence_id, status="requested")
    with pytest.raises(DuplicateError):
        registrations_svc.register(db, p.participant_id, occ.occurrence_id)


def test_manager_edits_and_deletes_registration(manager_client, db):
    occ = make_occurrence(db)
    p = make_participant(db)
    reg = make_registration(db, p.participant_id, occ.occurrence_id, status="requested")

    r = manager_client.get("/viewRegistrations")
    assert r.status_code == 200
    assert "Maria Lopez" in r.text

    r = manager_client.post(
        f"/editRegistration/{reg.registration_id}",
        data={"registration_status": "attended"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    db.expire_all()
    assert db.get(Registration, reg.registration_id).registration_status == "attended"

    r = manager_client.post(f"/editRegistration/{reg.registration_id}", data={"registration_status": "maybe"})
    assert r.status_code == 400

    manager_client.post(f"/deleteRegistration/{reg.registration_id}")
    db.expire_all()
    assert db.get(Registration, reg.registration_id) is None


def test_register_requires_login(anon_client, db):
    occ = make_occurrence(db)
    r = anon_client.post(f"/register/{occ.occurrence_id}", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_register_unknown_participant_is_404(db):
    occ = make_occurrence(db)
    with pytest.raises(NotFoundError):
        registrations_svc.register(db, 999, occ.occurrence_id)
    assert db.query(Registration).count() == 0


def test_register_after_participant_deleted_mid_session(linked_client, db):
    occ = make_occurrence(db)
    assert linked_client.get("/register").status_code == 200

    participants_svc.delete_participant(db, linked_client.participant_id)

    r = linked_client.post(f"/register/{occ.occurrence_id}", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == f"/createParticipant?next=/register/{occ.occurrence_id}"
    assert db.query(Registration).count() == 0


def test_register_follows_relinked_participant(linked_client, db):
    occ = make_occurrence(db)
    other = make_participant(db, email="other@example.org", first="Rosa", last="Diaz")
    user = db.query(User).filter_by(email=USER_EMAIL).one()
    user.participant_id = other.participant_id
    db.commit()

    r = linked_client.post(f"/register/{occ.occurrence_id}", follow_redirects=False)
    assert r.status_code == 303

    reg = db.query(Registration).one()
    assert reg.participant_id == other.participant_id
