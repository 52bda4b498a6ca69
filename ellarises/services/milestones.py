from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from ellarises.models.participants import Milestone, Participant
from ellarises.services.common import get_or_404, like, lock_participant, next_number, unit_of_work

logger = logging.getLogger(__name__)

LIST_URL = "/viewMilestones"


def _base_query():
    return (
        select(Milestone)
        .join(Participant, Participant.participant_id == Milestone.participant_id)
        .options(joinedload(Milestone.participant))
    )


def list_milestones(db: Session) -> List[Milestone]:
    stmt = _base_query().order_by(
        Participant.participant_last_name, Participant.participant_first_name, Milestone.milestone_number
    )
    return list(db.execute(stmt).scalars().all())


def search_milestones(db: Session, q: Optional[str]) -> List[Milestone]:
    pattern = like(q)
    if pattern is None:
        return list_milestones(db)
    stmt = (
        _base_query()
        .where(
            or_(
                Milestone.milestone_title.ilike(pattern, escape="\\"),
                Participant.participant_first_name.ilike(pattern, escape="\\"),
                Participant.participant_last_name.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Participant.participant_last_name, Milestone.milestone_number)
    )
    return list(db.execute(stmt).scalars().all())


def milestones_for(db: Session, participant_id: int) -> List[Milestone]:
    stmt = select(Milestone).where(Milestone.participant_id == participant_id).order_by(Milestone.milestone_number)
    return list(db.execute(stmt).scalars().all())


def get_milestone(db: Session, participant_id: int, milestone_number: int) -> Milestone:
    return get_or_404(db, Milestone, (participant_id, milestone_number), "Milestone", back_url=LIST_URL)


def add_milestone(db: Session, participant_id: int, title: str, when: date) -> Milestone:
    """Append a milestone numbered max(existing) + 1 for this participant."""
    with unit_of_work(db, "add milestone"):
        lock_participant(db, participant_id)
        number = next_number(db, Milestone.milestone_number, Milestone.participant_id, participant_id)
        milestone = Milestone(
            participant_id=participant_id,
            milestone_number=number,
            milestone_title=title,
            milestone_date=when,
        )
        db.add(milestone)
    logger.info("Added milestone %s for participant_id=%s", number, participant_id)
    return milestone


def update_milestone(db: Session, participant_id: int, milestone_number: int, title: str, when: date) -> Milestone:
    milestone = get_milestone(db, participant_id, milestone_number)
    with unit_of_work(db, "update milestone"):
        milestone.milestone_title = title
        milestone.milestone_date = when
    logger.info("Updated milestone %s for participant_id=%s", milestone_number, participant_id)
    return milestone


def delete_milestone(db: Session, participant_id: int, milestone_number: int) -> None:
    """Remaining milestones keep their numbers."""
    milestone = get_milestone(db, participant_id, milestone_number)
    with unit_of_work(db, "delete milestone"):
        db.delete(milestone)
    logger.info("Deleted milestone %s for participant_id=%s", milestone_number, participant_id)
