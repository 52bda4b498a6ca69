from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ellarises.errors import DuplicateError, StoreError, ValidationError
from ellarises.models.events import EventOccurrence, EventTemplate, Registration
from ellarises.models.participants import Participant
from ellarises.services.common import get_or_404, unit_of_work
from ellarises.services.events import seats_taken

logger = logging.getLogger(__name__)

LIST_URL = "/viewRegistrations"


def _query():
    return (
        select(Registration)
        .join(EventOccurrence, EventOccurrence.occurrence_id == Registration.occurrence_id)
        .join(Participant, Participant.participant_id == Registration.participant_id)
        .options(
            joinedload(Registration.participant),
            joinedload(Registration.occurrence).joinedload(EventOccurrence.template),
            joinedload(Registration.survey),
        )
    )


def list_registrations(db: Session) -> List[Registration]:
    stmt = _query().order_by(EventOccurrence.start_at.desc(), Participant.participant_last_name)
    return list(db.execute(stmt).scalars().unique().all())


def registrations_for(db: Session, participant_id: int) -> List[Registration]:
    stmt = _query().where(Registration.participant_id == participant_id).order_by(EventOccurrence.start_at.desc())
    return list(db.execute(stmt).scalars().unique().all())


def get_registration(db: Session, registration_id: int) -> Registration:
    return get_or_404(db, Registration, registration_id, "Registration", back_url=LIST_URL)


def find_registration(db: Session, participant_id: int, occurrence_id: int) -> Optional[Registration]:
    stmt = select(Registration).where(
        Registration.participant_id == participant_id,
        Registration.occurrence_id == occurrence_id,
    )
    return db.execute(stmt).scalars().first()


def register(db: Session, participant_id: int, occurrence_id: int, now: Optional[datetime] = None) -> Registration:
    """
    Register a participant for an occurrence.

    One registration per (participant, occurrence); closed once the deadline
    (or the start time) has passed or every seat is taken.
    """
    now = now or datetime.now()
    get_or_404(db, Participant, participant_id, "Participant", back_url="/register")
    occ = get_or_404(db, EventOccurrence, occurrence_id, "Event occurrence", back_url="/register")

    deadline = occ.registration_deadline or occ.start_at
    if deadline < now:
        raise ValidationError("Registration for this event has closed")

    if find_registration(db, participant_id, occurrence_id) is not None:
        raise DuplicateError("You are already registered for this event")

    capacity = occ.effective_capacity
    if capacity is not None and seats_taken(db, [occurrence_id]).get(occurrence_id, 0) >= capacity:
        raise ValidationError("This event is full")

    try:
        with unit_of_work(db, "register for this event"):
            registration = Registration(
                participant_id=participant_id,
                occurrence_id=occurrence_id,
                registration_status="requested",
            )
            db.add(registration)
            db.flush()
    except StoreError as exc:
        # a concurrent request inserted the same pair first
        if isinstance(exc.__cause__, IntegrityError) and find_registration(db, participant_id, occurrence_id) is not None:
            raise DuplicateError("You are already registered for this event") from exc
        raise
    logger.info("participant_id=%s registered for occurrence_id=%s", participant_id, occurrence_id)
    return registration


def update_status(db: Session, registration_id: int, status: str) -> Registration:
    registration = get_registration(db, registration_id)
    with unit_of_work(db, "update registration"):
        registration.registration_status = status
    logger.info("registration_id=%s status -> %s", registration_id, status)
    return registration


def delete_registration(db: Session, registration_id: int) -> None:
    registration = get_registration(db, registration_id)
    with unit_of_work(db, "delete registration"):
        db.delete(registration)
    logger.info("Deleted registration_id=%s", registration_id)


def event_label(registration: Registration) -> str:
    occ = registration.occurrence
    tpl: Optional[EventTemplate] = occ.template if occ is not None else None
    name = tpl.event_name if tpl is not None else "Event"
    return f"{name} ({occ.start_at:%Y-%m-%d})" if occ is not None else name
