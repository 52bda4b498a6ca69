# tests/test_accounts.py
from ellarises.models.users import LEVEL_USER, User
from ellarises.services.users import verify_password

from factories import PASSWORD, USER_EMAIL, login, make_participant


def test_login_success_sets_session(anon_client, user):
    r = login(anon_client, USER_EMAIL)
    assert r.status_code == 303
    assert r.headers["location"] == "/"

    # session now authenticated: logged-in page renders
    r = anon_client.get("/viewParticipants")
    assert r.status_code == 200
    assert "Participants</h1>" in r.text


def test_login_is_case_insensitive_on_email(anon_client, user):
    assert login(anon_client, USER_EMAIL.upper()).status_code == 303


def test_login_wrong_password(anon_client, user):
    r = login(anon_client, USER_EMAIL, "not-the-password")
    assert r.status_code == 200
    assert "Invalid login" in r.text

    r = anon_client.get("/viewParticipants")
    assert "Please log in to access this page" in r.text


def test_login_unknown_email(anon_client):
    r = login(anon_client, "nobody@example.org")
    assert r.status_code == 200
    assert "Invalid login" in r.text


def test_logout_clears_session(user_client):
    r = user_client.get("/logout", follow_redirects=False)
    assert r.status_code == 303
    r = user_client.get("/viewDonations")
    assert "Please log in to access this page" in r.text


def test_signup_creates_hashed_user(anon_client, db):
    r = anon_client.post(
        "/signup",
        data={"email": "New.Person@Example.org", "password": PASSWORD, "confirm_password": PASSWORD},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/login"

    user = db.query(User).filter_by(email="new.person@example.org").one()
    assert user.level == LEVEL_USER
    assert user.password_hash != PASSWORD
    assert verify_password(user.password_hash, PASSWORD)


def test_signup_links_participant_with_same_email(anon_client, db):
    p = make_participant(db, email="maria.lopez@example.org")
    anon_client.post(
        "/signup",
        data={"email": "maria.lopez@example.org", "password": PASSWORD, "confirm_password": PASSWORD},
    )
    user = db.query(User).filter_by(email="maria.lopez@example.org").one()
    assert user.participant_id == p.participant_id


def test_signup_duplicate_email(anon_client, user, db):
    r = anon_client.post(
        "/signup",
        data={"email": USER_EMAIL, "password": PASSWORD, "confirm_password": PASSWORD},
    )
    assert r.status_code == 409
    assert "Email already in use" in r.text
    assert db.query(User).count() == 1


def test_signup_password_mismatch(anon_client, db):
    r = anon_client.post(
        "/signup",
        data={"email": "a@example.org", "password": PASSWORD, "confirm_password": PASSWORD + "x"},
    )
    assert r.status_code == 400
    assert "Passwords do not match" in r.text
    assert db.query(User).count() == 0


def test_signup_missing_field(anon_client, db):
    r = anon_client.post("/signup", data={"email": "a@example.org", "password": PASSWORD})
    assert r.status_code == 400
    assert "All fields are required" in r.text
    assert db.query(User).count() == 0


def test_signup_malformed_email(anon_client, db):
    r = anon_client.post(
        "/signup",
        data={"email": "a@-example.org", "password": PASSWORD, "confirm_password": PASSWORD},
    )
    assert r.status_code == 400
    assert "not a valid email address" in r.text
    assert db.query(User).count() == 0


def test_login_malformed_email_is_invalid_login(anon_client):
    r = anon_client.post("/login", data={"email": "not-an-email", "password": PASSWORD})
    assert r.status_code == 200
    assert "Invalid login" in r.text
