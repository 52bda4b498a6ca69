# tests/test_auth_gate.py
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ellarises.auth import (
    ANONYMOUS,
    LOGIN_REQUIRED_MESSAGE,
    Access,
    AuthContext,
    Outcome,
    classify,
    decide,
)
from ellarises.models.users import LEVEL_MANAGER, LEVEL_USER, User

from factories import USER_EMAIL, login, make_occurrence, make_participant, make_user

USER = AuthContext(is_logged_in=True, email="u@example.org", level=LEVEL_USER, user_id=2)
LINKED_USER = AuthContext(is_logged_in=True, email="u@example.org", level=LEVEL_USER, user_id=2, part_id=7)
MANAGER = AuthContext(is_logged_in=True, email="m@example.org", level=LEVEL_MANAGER, user_id=1)


@pytest.mark.parametrize(
    "path, access",
    [
        ("/", Access.PUBLIC),
        ("/login", Access.PUBLIC),
        ("/donate", Access.PUBLIC),
        ("/privacy", Access.PUBLIC),
        ("/health", Access.PUBLIC),
        ("/viewParticipants", Access.LOGGED_IN),
        ("/searchSurveys", Access.LOGGED_IN),
        ("/viewMilestones/12", Access.LOGGED_IN),
        ("/createParticipant", Access.LOGGED_IN),
        ("/register", Access.PARTICIPANT),
        ("/register/5", Access.PARTICIPANT),
        ("/takeSurvey/3", Access.PARTICIPANT),
        ("/addPart", Access.MANAGER),
        ("/editMilestone/1/2", Access.MANAGER),
        ("/viewUsers", Access.MANAGER),
        ("/registerAll", Access.MANAGER),
        ("/somethingUnknown", Access.MANAGER),
    ],
)
def test_classify(path, access):
    assert classify(path) is access


def test_public_paths_proceed_for_anyone():
    for auth in (ANONYMOUS, USER, MANAGER):
        assert decide("/about", auth).outcome is Outcome.PROCEED


def test_logged_in_paths_render_login_when_anonymous():
    d = decide("/viewDonations", ANONYMOUS)
    assert d.outcome is Outcome.LOGIN
    assert d.message == LOGIN_REQUIRED_MESSAGE
    assert decide("/viewDonations", USER).outcome is Outcome.PROCEED


def test_participant_paths():
    assert decide("/register", ANONYMOUS).outcome is Outcome.REDIRECT
    assert decide("/register", ANONYMOUS).target == "/login"
    assert decide("/register", USER).outcome is Outcome.LINK_PARTICIPANT
    assert decide("/register", LINKED_USER).outcome is Outcome.PROCEED


def test_manager_paths():
    assert decide("/addPart", ANONYMOUS).outcome is Outcome.REDIRECT
    assert decide("/addPart", ANONYMOUS).target == "/login"
    assert decide("/addPart", USER).target == "/"
    assert decide("/addPart", MANAGER).outcome is Outcome.PROCEED


def test_anonymous_view_page_renders_login(anon_client):
    r = anon_client.get("/viewParticipants", follow_redirects=False)
    assert r.status_code == 200
    assert LOGIN_REQUIRED_MESSAGE in r.text
    assert "Participants</h1>" not in r.text


def test_anonymous_manager_page_redirects_to_login(anon_client):
    r = anon_client.get("/viewUsers", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_user_on_manager_page_redirects_home(user_client):
    r = user_client.get("/addPart", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"


def test_user_post_to_manager_action_is_blocked(user_client, db):
    p = make_participant(db)
    r = user_client.post(f"/deletePart/{p.participant_id}", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    db.expire_all()
    assert db.get(type(p), p.participant_id) is not None


def test_register_without_participant_redirects_to_create(user_client):
    r = user_client.get("/register", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/createParticipant?next=/register"


def test_register_links_existing_participant_by_email(db, anon_client):
    user = make_user(db, USER_EMAIL)
    p = make_participant(db, email=USER_EMAIL)
    assert login(anon_client, USER_EMAIL).status_code == 303

    r = anon_client.get("/register")
    assert r.status_code == 200
    assert "Register for an event" in r.text

    db.expire_all()
    assert db.get(User, user.user_id).participant_id == p.participant_id


def test_create_participant_then_continue(user_client, db):
    make_occurrence(db)
    r = user_client.post(
        "/createParticipant",
        data={
            "next": "/register",
            "part_first_name": "Val",
            "part_last_name": "Ortiz",
            "part_dob": "2008-02-01",
            "part_phone": "801-555-0199",
            "part_city": "Orem",
            "part_state": "UT",
            "part_zip": "84057",
        },
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/register"

    r = user_client.get("/register")
    assert r.status_code == 200
    assert "STEAM Workshop" in r.text


def test_create_participant_ignores_offsite_next(user_client):
    r = user_client.post(
        "/createParticipant",
        data={
            "next": "//evil.example.com",
            "part_first_name": "Val",
            "part_last_name": "Ortiz",
            "part_dob": "2008-02-01",
            "part_phone": "801-555-0199",
            "part_city": "Orem",
            "part_state": "UT",
            "part_zip": "84057",
        },
        follow_redirects=False,
    )
    assert r.headers["location"] == "/"


def test_participant_lookup_failure_is_generic_500(user_client, monkeypatch):
    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT participant_info", {}, Exception("db down: password=hunter2"))

    monkeypatch.setattr(Session, "execute", _fail)
    r = user_client.get("/register", follow_redirects=False)
    assert r.status_code == 500
    assert "Unable to load your participant record" in r.text
    assert "db down" not in r.text
    assert "hunter2" not in r.text
