# tests/test_surveys.py
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from ellarises.models.surveys import Survey, SurveyQuestionResponse
from ellarises.services.surveys import nps_bucket

from factories import USER_EMAIL, login, make_occurrence, make_participant, make_registration, make_user

SURVEY = {
    "survey_satisfaction_score": "5",
    "survey_usefulness_score": "4",
    "survey_instructor_score": "4",
    "survey_recommendation_score": "9",
    "survey_comments": "Loved it",
}


@pytest.mark.parametrize(
    "score, bucket",
    [(s, "detractor") for s in range(0, 7)] + [(7, "passive"), (8, "passive"), (9, "promoter"), (10, "promoter")],
)
def test_nps_bucket(score, bucket):
    assert nps_bucket(score) == bucket


@pytest.fixture()
def attended(anon_client, db):
    """A logged-in participant with one registration for a past event."""
    p = make_participant(db, email=USER_EMAIL)
    make_user(db, USER_EMAIL, participant_id=p.participant_id)
    occ = make_occurrence(db, start=datetime.now() - timedelta(days=2))
    reg = make_registration(db, p.participant_id, occ.occurrence_id)
    assert login(anon_client, USER_EMAIL).status_code == 303
    return anon_client, reg


def test_take_survey(attended, db):
    client, reg = attended
    r = client.get("/register")
    assert f"/takeSurvey/{reg.registration_id}" in r.text

    data = dict(SURVEY, question_1="Favorite part?", answer_1="The robots", question_2="", answer_2="ignored")
    r = client.post(f"/takeSurvey/{reg.registration_id}", data=data)
    assert r.status_code == 200
    assert "Thank you" in r.text

    survey = db.query(Survey).one()
    assert survey.survey_nps_bucket == "promoter"
    assert Decimal(str(survey.survey_overall_score)).quantize(Decimal("0.01")) == Decimal("4.33")
    responses = db.query(SurveyQuestionResponse).all()
    assert [(x.question, x.answer) for x in responses] == [("Favorite part?", "The robots")]


def test_second_survey_rejected(attended, db):
    client, reg = attended
    client.post(f"/takeSurvey/{reg.registration_id}", data=SURVEY)
    r = client.post(f"/takeSurvey/{reg.registration_id}", data=dict(SURVEY, survey_recommendation_score="3"))
    assert r.status_code == 409
    assert "Survey already taken" in r.text
    assert db.query(Survey).count() == 1

    r = client.get(f"/takeSurvey/{reg.registration_id}")
    assert r.status_code == 409


def test_recommendation_out_of_range(attended, db):
    client, reg = attended
    r = client.post(f"/takeSurvey/{reg.registration_id}", data=dict(SURVEY, survey_recommendation_score="11"))
    assert r.status_code == 400
    assert db.query(Survey).count() == 0


def test_cannot_survey_someone_elses_registration(attended, db):
    client, _ = attended
    other = make_participant(db, email="other@example.org")
    occ = make_occurrence(db, name="Other event")
    theirs = make_registration(db, other.participant_id, occ.occurrence_id)
    r = client.get(f"/takeSurvey/{theirs.registration_id}")
    assert r.status_code == 404


def test_users_see_only_their_surveys(attended, db, manager_client):
    client, reg = attended
    client.post(f"/takeSurvey/{reg.registration_id}", data=SURVEY)

    other = make_participant(db, email="other@example.org", first="Olga", last="Other")
    occ = make_occurrence(db, name="Other event")
    theirs = make_registration(db, other.participant_id, occ.occurrence_id)
    db.add(
        Survey(
            registration_id=theirs.registration_id,
            survey_satisfaction_score=1,
            survey_usefulness_score=1,
            survey_instructor_score=1,
            survey_recommendation_score=2,
            survey_overall_score=1,
            survey_nps_bucket="detractor",
        )
    )
    db.commit()

    r = client.get("/viewSurveys")
    assert "Maria Lopez" in r.text
    assert "Olga Other" not in r.text

    r = manager_client.get("/viewSurveys")
    assert "Maria Lopez" in r.text and "Olga Other" in r.text

    r = manager_client.get("/searchSurveys", params={"q": "detractor"})
    assert "Olga Other" in r.text
    assert "Maria Lopez" not in r.text


def test_manager_views_and_deletes_survey(attended, db, manager_client):
    client, reg = attended
    client.post(f"/takeSurvey/{reg.registration_id}", data=dict(SURVEY, question_1="Q?", answer_1="A!"))
    survey = db.query(Survey).one()

    r = manager_client.get(f"/survey/{survey.survey_id}")
    assert r.status_code == 200
    assert "Loved it" in r.text and "Q?" in r.text

    r = manager_client.post(f"/deleteSurvey/{survey.survey_id}", follow_redirects=False)
    assert r.status_code == 303
    db.expire_all()
    assert db.query(Survey).count() == 0
    assert db.query(SurveyQuestionResponse).count() == 0
