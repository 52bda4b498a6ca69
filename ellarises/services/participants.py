from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from ellarises.errors import DuplicateError
from ellarises.models.participants import Participant
from ellarises.models.users import User
from ellarises.schemas.participants import ParticipantDetails, ParticipantForm
from ellarises.services.common import ensure_email_available, get_or_404, like, unit_of_work

logger = logging.getLogger(__name__)

LIST_URL = "/viewParticipants"


def list_participants(db: Session) -> List[Participant]:
    stmt = select(Participant).order_by(Participant.participant_last_name, Participant.participant_first_name)
    return list(db.execute(stmt).scalars().all())


def search_participants(db: Session, q: Optional[str]) -> List[Participant]:
    pattern = like(q)
    if pattern is None:
        return list_participants(db)
    stmt = (
        select(Participant)
        .where(
            or_(
                Participant.participant_first_name.ilike(pattern, escape="\\"),
                Participant.participant_last_name.ilike(pattern, escape="\\"),
                Participant.participant_email.ilike(pattern, escape="\\"),
                Participant.participant_city.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Participant.participant_last_name, Participant.participant_first_name)
    )
    return list(db.execute(stmt).scalars().all())


def get_participant(db: Session, participant_id: int) -> Participant:
    return get_or_404(db, Participant, participant_id, "Participant", back_url=LIST_URL)


def find_by_email(db: Session, email: str) -> Optional[Participant]:
    stmt = select(Participant).where(Participant.participant_email == email.strip().lower())
    return db.execute(stmt).scalars().first()


def create_participant(db: Session, form: ParticipantForm) -> Participant:
    with unit_of_work(db, "add participant"):
        ensure_email_available(db, Participant.participant_email, form.part_email)
        participant = Participant(**form.columns())
        db.add(participant)
        db.flush()
    db.refresh(participant)
    logger.info("Created participant_id=%s", participant.participant_id)
    return participant


def update_participant(db: Session, participant_id: int, form: ParticipantForm) -> Participant:
    participant = get_participant(db, participant_id)
    with unit_of_work(db, "update participant"):
        ensure_email_available(
            db, Participant.participant_email, form.part_email, current=participant.participant_email
        )
        for key, value in form.columns().items():
            setattr(participant, key, value)
    db.refresh(participant)
    logger.info("Updated participant_id=%s", participant_id)
    return participant


def delete_participant(db: Session, participant_id: int) -> None:
    """
    Delete a participant together with its milestones, donations, registrations
    and surveys; a linked user account is kept and unlinked.
    """
    participant = get_participant(db, participant_id)
    with unit_of_work(db, "delete participant"):
        db.execute(update(User).where(User.participant_id == participant_id).values(participant_id=None))
        db.delete(participant)
    logger.info("Deleted participant_id=%s", participant_id)


def create_self_participant(db: Session, user_id: Optional[int], email: str, details: ParticipantDetails) -> Participant:
    """Self-service: create the participant for the logged-in user's email and link it."""
    with unit_of_work(db, "create your participant record"):
        if find_by_email(db, email) is not None:
            raise DuplicateError("A participant with your email already exists")
        participant = Participant(
            participant_email=email.strip().lower(),
            participant_role="participant",
            **details.columns(),
        )
        db.add(participant)
        db.flush()
        if user_id is not None:
            user = db.get(User, user_id)
            if user is not None:
                user.participant_id = participant.participant_id
    db.refresh(participant)
    logger.info("User user_id=%s created participant_id=%s", user_id, participant.participant_id)
    return participant


def find_or_create_donor(db: Session, first_name: str, last_name: str, email: str) -> Participant:
    """Donor lookup for the public donation form; adds a new participant tagged 'donor' if needed."""
    participant = find_by_email(db, email)
    if participant is not None:
        return participant
    participant = Participant(
        participant_email=email.strip().lower(),
        participant_first_name=first_name,
        participant_last_name=last_name,
        participant_role="donor",
    )
    db.add(participant)
    db.flush()
    return participant
