"""
Authorization gate.

Every route runs `authorize` (installed as an application-level dependency in
main.py) before its handler. The decision itself is the pure `decide`
function; `authorize` only adds the session plumbing and the one side effect
the gate has: linking a logged-in user to their participant record on first
use of a participant-only page.

Path tiers:

* public            - always proceed
* logged in         - proceed when authenticated, else render the login page (200)
* participant       - authenticated and linked to a participant (linked on demand)
* manager (default) - level 'm'; others are redirected to / or /login
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import quote

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.db import get_db
from ellarises.errors import StoreError, ValidationError
from ellarises.models.participants import Participant
from ellarises.models.users import LEVEL_MANAGER, User

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = "Please log in to access this page"

PUBLIC_PATHS = frozenset(
    {
        "/",
        "/login",
        "/logout",
        "/signup",
        "/donate",
        "/about",
        "/contact",
        "/privacy",
        "/health",
        "/version",
    }
)

LOGGED_IN_PATHS = frozenset(
    {
        "/viewParticipants",
        "/searchParticipants",
        "/viewDonations",
        "/searchDonations",
        "/viewMilestones",
        "/searchMilestones",
        "/viewEvents",
        "/searchEvents",
        "/viewSurveys",
        "/searchSurveys",
        "/createParticipant",
    }
)

# Read-only milestone detail pages (/viewMilestones/<participant_id>)
LOGGED_IN_PREFIXES = ("/viewMilestones/",)

PARTICIPANT_ROOTS = ("/register", "/takeSurvey")


class Access(str, enum.Enum):
    PUBLIC = "public"
    LOGGED_IN = "logged_in"
    PARTICIPANT = "participant"
    MANAGER = "manager"


class Outcome(str, enum.Enum):
    PROCEED = "proceed"
    REDIRECT = "redirect"
    LOGIN = "login"
    LINK_PARTICIPANT = "link_participant"


@dataclass(frozen=True)
class AuthContext:
    """Per-request snapshot of the session, built once by the gate."""

    is_logged_in: bool = False
    email: Optional[str] = None
    level: Optional[str] = None
    part_id: Optional[int] = None
    user_id: Optional[int] = None

    @property
    def is_manager(self) -> bool:
        return self.is_logged_in and self.level == LEVEL_MANAGER

    @classmethod
    def from_session(cls, session: Mapping[str, Any]) -> "AuthContext":
        return cls(
            is_logged_in=bool(session.get("is_logged_in")),
            email=session.get("email"),
            level=session.get("level"),
            part_id=session.get("part_id"),
            user_id=session.get("user_id"),
        )


ANONYMOUS = AuthContext()


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    target: Optional[str] = None
    message: Optional[str] = None


class GateRedirect(Exception):
    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(target)


class GateLogin(Exception):
    def __init__(self, message: str = LOGIN_REQUIRED_MESSAGE) -> None:
        self.message = message
        super().__init__(message)


def _normalize(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


def classify(path: str) -> Access:
    path = _normalize(path)
    if path in PUBLIC_PATHS:
        return Access.PUBLIC
    if path in LOGGED_IN_PATHS or path.startswith(LOGGED_IN_PREFIXES):
        return Access.LOGGED_IN
    if any(path == root or path.startswith(root + "/") for root in PARTICIPANT_ROOTS):
        return Access.PARTICIPANT
    return Access.MANAGER


def decide(path: str, auth: AuthContext) -> Decision:
    access = classify(path)

    if access is Access.PUBLIC:
        return Decision(Outcome.PROCEED)

    if access is Access.LOGGED_IN:
        if auth.is_logged_in:
            return Decision(Outcome.PROCEED)
        return Decision(Outcome.LOGIN, message=LOGIN_REQUIRED_MESSAGE)

    if access is Access.PARTICIPANT:
        if not auth.is_logged_in:
            return Decision(Outcome.REDIRECT, target="/login")
        if auth.part_id is None:
            return Decision(Outcome.LINK_PARTICIPANT)
        return Decision(Outcome.PROCEED)

    if auth.is_manager:
        return Decision(Outcome.PROCEED)
    if auth.is_logged_in:
        return Decision(Outcome.REDIRECT, target="/")
    return Decision(Outcome.REDIRECT, target="/login")


def _link_participant(request: Request, db: Session, auth: AuthContext) -> AuthContext:
    """Attach the participant whose email matches the session, or send the user to create one."""
    path = request.url.path
    try:
        participant = (
            db.execute(select(Participant).where(Participant.participant_email == (auth.email or "").lower()))
            .scalars()
            .first()
        )
        if participant is None:
            raise GateRedirect(f"/createParticipant?next={quote(path)}")

        user = db.get(User, auth.user_id) if auth.user_id is not None else None
        owner = participant.user
        if owner is not None and (user is None or owner.user_id != user.user_id):
            raise ValidationError("This participant record is linked to another account", back_url="/")
        if user is not None and user.participant_id != participant.participant_id:
            user.participant_id = participant.participant_id
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("Unable to load your participant record", back_url="/") from exc

    logger.info("Linked user_id=%s to participant_id=%s", auth.user_id, participant.participant_id)
    request.session["part_id"] = participant.participant_id
    return AuthContext(
        is_logged_in=auth.is_logged_in,
        email=auth.email,
        level=auth.level,
        part_id=participant.participant_id,
        user_id=auth.user_id,
    )


def _refresh_link(request: Request, db: Session, auth: AuthContext) -> AuthContext:
    """
    Follow the user row when it no longer carries the session's `part_id`.

    A manager may delete the participant or relink the account while the
    session is alive. A cleared link goes through the on-demand link again.
    """
    try:
        user = db.get(User, auth.user_id) if auth.user_id is not None else None
        linked = user.participant_id if user is not None else None
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("Unable to load your participant record", back_url="/") from exc

    if user is None:
        logger.info("Session for %s points at a missing user; logging out", auth.email)
        end_session(request)
        raise GateRedirect("/login")
    if linked == auth.part_id:
        return auth

    logger.info("Stale part_id=%s in session of user_id=%s (now %s)", auth.part_id, auth.user_id, linked)
    if linked is None:
        request.session.pop("part_id", None)
    else:
        request.session["part_id"] = linked
    return AuthContext(
        is_logged_in=auth.is_logged_in,
        email=auth.email,
        level=auth.level,
        part_id=linked,
        user_id=auth.user_id,
    )


def authorize(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    """Application-wide gate; stores the request's AuthContext on request.state."""
    auth = AuthContext.from_session(request.session)
    if auth.is_logged_in and auth.part_id is not None and classify(request.url.path) is Access.PARTICIPANT:
        auth = _refresh_link(request, db, auth)
    decision = decide(request.url.path, auth)

    if decision.outcome is Outcome.REDIRECT:
        raise GateRedirect(decision.target or "/")
    if decision.outcome is Outcome.LOGIN:
        raise GateLogin(decision.message or LOGIN_REQUIRED_MESSAGE)
    if decision.outcome is Outcome.LINK_PARTICIPANT:
        auth = _link_participant(request, db, auth)

    request.state.auth = auth
    return auth


def current_auth(request: Request) -> AuthContext:
    auth = getattr(request.state, "auth", None)
    if auth is None:
        auth = AuthContext.from_session(request.session)
    return auth


def start_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session.update(
        {
            "is_logged_in": True,
            "email": user.email,
            "level": user.level,
            "part_id": user.participant_id,
            "user_id": user.user_id,
        }
    )


def end_session(request: Request) -> None:
    request.session.clear()
