from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ellarises.errors import DuplicateError, StoreError
from ellarises.models.events import EventOccurrence, EventTemplate, Registration
from ellarises.models.participants import Participant
from ellarises.models.surveys import Survey, SurveyQuestionResponse
from ellarises.schemas.surveys import SurveyForm
from ellarises.services.common import get_or_404, like, unit_of_work

logger = logging.getLogger(__name__)

LIST_URL = "/viewSurveys"
ALREADY_TAKEN = "Survey already taken"


def nps_bucket(score: int) -> str:
    """Net Promoter bucket for a 0..10 recommendation score."""
    if score >= 9:
        return "promoter"
    if score <= 6:
        return "detractor"
    return "passive"


def overall_score(form: SurveyForm) -> Decimal:
    scores = (form.survey_satisfaction_score, form.survey_usefulness_score, form.survey_instructor_score)
    return (Decimal(sum(scores)) / Decimal(len(scores))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _query():
    return (
        select(Survey)
        .join(Registration, Registration.registration_id == Survey.registration_id)
        .join(Participant, Participant.participant_id == Registration.participant_id)
        .join(EventOccurrence, EventOccurrence.occurrence_id == Registration.occurrence_id)
        .join(EventTemplate, EventTemplate.event_template_id == EventOccurrence.event_template_id)
        .options(
            joinedload(Survey.registration).joinedload(Registration.participant),
            joinedload(Survey.registration).joinedload(Registration.occurrence).joinedload(EventOccurrence.template),
        )
    )


def list_surveys(db: Session, participant_id: Optional[int] = None) -> List[Survey]:
    stmt = _query()
    if participant_id is not None:
        stmt = stmt.where(Registration.participant_id == participant_id)
    stmt = stmt.order_by(Survey.survey_submitted_at.desc(), Survey.survey_id.desc())
    return list(db.execute(stmt).scalars().unique().all())


def search_surveys(db: Session, q: Optional[str], participant_id: Optional[int] = None) -> List[Survey]:
    pattern = like(q)
    if pattern is None:
        return list_surveys(db, participant_id)
    stmt = _query().where(
        or_(
            Participant.participant_first_name.ilike(pattern, escape="\\"),
            Participant.participant_last_name.ilike(pattern, escape="\\"),
            EventTemplate.event_name.ilike(pattern, escape="\\"),
            Survey.survey_nps_bucket.ilike(pattern, escape="\\"),
        )
    )
    if participant_id is not None:
        stmt = stmt.where(Registration.participant_id == participant_id)
    stmt = stmt.order_by(Survey.survey_submitted_at.desc(), Survey.survey_id.desc())
    return list(db.execute(stmt).scalars().unique().all())


def get_survey(db: Session, survey_id: int) -> Survey:
    return get_or_404(db, Survey, survey_id, "Survey", back_url=LIST_URL)


def survey_for_registration(db: Session, registration_id: int) -> Optional[Survey]:
    stmt = select(Survey).where(Survey.registration_id == registration_id)
    return db.execute(stmt).scalars().first()


def submit_survey(
    db: Session,
    registration_id: int,
    form: SurveyForm,
    questions: Sequence[Tuple[str, Optional[str]]] = (),
) -> Survey:
    """Store one survey per registration, with the NPS bucket derived at submission time."""
    if survey_for_registration(db, registration_id) is not None:
        raise DuplicateError(ALREADY_TAKEN)

    try:
        with unit_of_work(db, "submit survey"):
            survey = Survey(
                registration_id=registration_id,
                survey_nps_bucket=nps_bucket(form.survey_recommendation_score),
                survey_overall_score=overall_score(form),
                **form.model_dump(),
            )
            survey.responses = [SurveyQuestionResponse(question=q, answer=a) for q, a in questions]
            db.add(survey)
            db.flush()
    except StoreError as exc:
        if isinstance(exc.__cause__, IntegrityError):
            raise DuplicateError(ALREADY_TAKEN) from exc
        raise
    logger.info("Survey %s submitted for registration_id=%s", survey.survey_id, registration_id)
    return survey


def delete_survey(db: Session, survey_id: int) -> None:
    survey = get_survey(db, survey_id)
    with unit_of_work(db, "delete survey"):
        db.delete(survey)
    logger.info("Deleted survey_id=%s", survey_id)
