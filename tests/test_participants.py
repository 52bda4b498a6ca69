# tests/test_participants.py
from datetime import date, timedelta

import pytest

from ellarises.models.events import Registration
from ellarises.models.participants import Donation, Milestone, Participant
from ellarises.models.surveys import Survey
from ellarises.models.users import User

from factories import USER_EMAIL, make_occurrence, make_participant, make_registration, make_user


def test_add_participant(manager_client, participant_form, db):
    r = manager_client.post("/addPart", data=participant_form, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/viewParticipants"

    p = db.query(Participant).one()
    assert p.participant_email == "ana.garcia@example.org"
    assert p.participant_school_or_employer == "Provo High"
    assert p.total_donations == 0


def test_add_participant_missing_email_is_rejected(manager_client, participant_form, db):
    del participant_form["part_email"]
    r = manager_client.post("/addPart", data=participant_form)
    assert r.status_code == 400
    assert "All fields are required" in r.text
    # submitted values are kept in the form
    assert 'value="Ana"' in r.text
    assert db.query(Participant).count() == 0


def test_add_participant_blank_field_counts_as_missing(manager_client, participant_form, db):
    participant_form["part_city"] = "   "
    r = manager_client.post("/addPart", data=participant_form)
    assert r.status_code == 400
    assert "All fields are required" in r.text


@pytest.mark.parametrize("email", ["ana@example..org", "ana@-example.org", "ana.example.org"])
def test_add_participant_malformed_email(manager_client, participant_form, db, email):
    participant_form["part_email"] = email
    r = manager_client.post("/addPart", data=participant_form)
    assert r.status_code == 400
    assert "not a valid email address" in r.text
    assert db.query(Participant).count() == 0


def test_add_participant_duplicate_email(manager_client, participant_form, db):
    make_participant(db, email="ana.garcia@example.org")
    participant_form["part_email"] = "Ana.Garcia@Example.org"
    r = manager_client.post("/addPart", data=participant_form)
    assert r.status_code == 409
    assert "Email already in use" in r.text
    assert db.query(Participant).count() == 1


def test_add_participant_future_dob(manager_client, participant_form):
    participant_form["part_dob"] = (date.today() + timedelta(days=1)).isoformat()
    r = manager_client.post("/addPart", data=participant_form)
    assert r.status_code == 400
    assert "date of birth cannot be in the future" in r.text


def test_edit_participant_same_email_passes(manager_client, participant_form, db):
    manager_client.post("/addPart", data=participant_form)
    p = db.query(Participant).one()

    participant_form["part_city"] = "Orem"
    r = manager_client.post(f"/editPart/{p.participant_id}", data=participant_form, follow_redirects=False)
    assert r.status_code == 303

    db.expire_all()
    assert db.get(Participant, p.participant_id).participant_city == "Orem"


def test_edit_participant_to_taken_email(manager_client, participant_form, db):
    make_participant(db, email="taken@example.org")
    manager_client.post("/addPart", data=participant_form)
    p = db.query(Participant).filter_by(participant_email="ana.garcia@example.org").one()

    participant_form["part_email"] = "taken@example.org"
    r = manager_client.post(f"/editPart/{p.participant_id}", data=participant_form)
    assert r.status_code == 409
    db.expire_all()
    assert db.get(Participant, p.participant_id).participant_email == "ana.garcia@example.org"


def test_edit_form_prefills_values(manager_client, db):
    p = make_participant(db)
    r = manager_client.get(f"/editPart/{p.participant_id}")
    assert r.status_code == 200
    assert 'value="maria.lopez@example.org"' in r.text


def test_edit_missing_participant_is_404(manager_client):
    r = manager_client.get("/editPart/999")
    assert r.status_code == 404
    assert "Participant not found" in r.text


def test_delete_participant_cascades_and_unlinks_user(manager_client, db):
    p = make_participant(db, email=USER_EMAIL)
    user = make_user(db, USER_EMAIL, participant_id=p.participant_id)
    occ = make_occurrence(db)
    reg = make_registration(db, p.participant_id, occ.occurrence_id)
    db.add_all(
        [
            Milestone(participant_id=p.participant_id, milestone_number=1, milestone_title="Joined", milestone_date=date.today()),
            Donation(participant_id=p.participant_id, donation_number=1, donation_amount=25, donation_date=date.today()),
            Survey(
                registration_id=reg.registration_id,
                survey_satisfaction_score=5,
                survey_usefulness_score=5,
                survey_instructor_score=5,
                survey_recommendation_score=10,
                survey_overall_score=5,
                survey_nps_bucket="promoter",
            ),
        ]
    )
    db.commit()

    r = manager_client.post(f"/deletePart/{p.participant_id}", follow_redirects=False)
    assert r.status_code == 303

    db.expire_all()
    assert db.get(Participant, p.participant_id) is None
    assert db.query(Milestone).count() == 0
    assert db.query(Donation).count() == 0
    assert db.query(Registration).count() == 0
    assert db.query(Survey).count() == 0
    kept = db.get(User, user.user_id)
    assert kept is not None
    assert kept.participant_id is None


def test_view_and_search_participants(user_client, db):
    make_participant(db, email="maria.lopez@example.org", first="Maria", last="Lopez")
    make_participant(db, email="ana.garcia@example.org", first="Ana", last="Garcia")

    r = user_client.get("/viewParticipants")
    assert r.status_code == 200
    assert "Maria Lopez" in r.text and "Ana Garcia" in r.text
    # ordinary users get no edit actions
    assert "/editPart/" not in r.text

    r = user_client.get("/searchParticipants", params={"q": "garc"})
    assert "Ana Garcia" in r.text
    assert "Maria Lopez" not in r.text


def test_search_treats_wildcards_literally(user_client, db):
    make_participant(db)
    r = user_client.get("/searchParticipants", params={"q": "%"})
    assert "Maria Lopez" not in r.text


def test_participant_detail(manager_client, db):
    p = make_participant(db)
    r = manager_client.get(f"/participant/{p.participant_id}")
    assert r.status_code == 200
    assert "maria.lopez@example.org" in r.text
    assert "Milestones" in r.text and "Donations" in r.text
