# tests/conftest.py
import os

# Must be set before ellarises.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("AUTO_CREATE_TABLES", "0")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import ellarises.models  # noqa: E402,F401
from ellarises.db import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from ellarises.main import app  # noqa: E402
from ellarises.models.users import LEVEL_MANAGER  # noqa: E402

from factories import MANAGER_EMAIL, PARTICIPANT_FORM, USER_EMAIL, login, make_user  # noqa: E402


@pytest.fixture()
def engine():
    # One connection shared by every session so the in-memory db survives
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _override_get_db(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def anon_client():
    return TestClient(app)


@pytest.fixture()
def manager(db):
    return make_user(db, MANAGER_EMAIL, level=LEVEL_MANAGER)


@pytest.fixture()
def manager_client(manager):
    client = TestClient(app)
    r = login(client, MANAGER_EMAIL)
    assert r.status_code == 303, r.text
    return client


@pytest.fixture()
def user(db):
    return make_user(db, USER_EMAIL)


@pytest.fixture()
def user_client(user):
    client = TestClient(app)
    r = login(client, USER_EMAIL)
    assert r.status_code == 303, r.text
    return client


@pytest.fixture()
def participant_form():
    return dict(PARTICIPANT_FORM)
