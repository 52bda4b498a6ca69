# ellarises/api/surveys.py
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import DuplicateError, NotFoundError, rerender
from ellarises.models.events import Registration
from ellarises.models.surveys import Survey
from ellarises.schemas.forms import parse_form
from ellarises.schemas.surveys import SurveyForm, question_pairs
from ellarises.services import registrations as registrations_svc
from ellarises.services import surveys as surveys_svc
from ellarises.web import Action, FormField, Row, form_data, render, see_other, when

router = APIRouter(tags=["Surveys"])

LIST_URL = surveys_svc.LIST_URL
QUESTION_SLOTS = 3


def _scale(low: int, high: int) -> List[tuple]:
    return [(str(n), str(n)) for n in range(low, high + 1)]


SURVEY_FIELDS = [
    FormField("survey_satisfaction_score", "How satisfied were you? (1-5)", type="select", options=_scale(1, 5)),
    FormField("survey_usefulness_score", "How useful was it? (1-5)", type="select", options=_scale(1, 5)),
    FormField("survey_instructor_score", "How was the instructor? (1-5)", type="select", options=_scale(1, 5)),
    FormField(
        "survey_recommendation_score",
        "How likely are you to recommend us to a friend? (0-10)",
        type="select",
        options=_scale(0, 10),
    ),
    FormField("survey_comments", "Comments", type="textarea", required=False),
]


def _rows(surveys: List[Survey], auth: AuthContext) -> List[Row]:
    rows = []
    for s in surveys:
        reg = s.registration
        actions = []
        if auth.is_manager:
            actions = [
                Action("View", f"/survey/{s.survey_id}"),
                Action("Delete", f"/deleteSurvey/{s.survey_id}", method="post"),
            ]
        rows.append(
            Row(
                [
                    reg.participant.full_name,
                    registrations_svc.event_label(reg),
                    s.survey_overall_score,
                    s.survey_recommendation_score,
                    s.survey_nps_bucket,
                    when(s.survey_submitted_at),
                ],
                actions,
            )
        )
    return rows


def _scope(auth: AuthContext) -> Optional[int]:
    """Managers see every survey; anyone else only their own (none without a participant record)."""
    if auth.is_manager:
        return None
    return auth.part_id if auth.part_id is not None else -1


def _table(request: Request, surveys: List[Survey], auth: AuthContext, q: Optional[str] = None):
    return render(
        request,
        "table.html",
        title="Surveys",
        columns=["Participant", "Event", "Overall", "Recommend", "NPS", "Submitted"],
        rows=_rows(surveys, auth),
        has_actions=auth.is_manager,
        search_url="/searchSurveys",
        q=q,
        empty_message="No surveys submitted yet.",
    )


@router.get("/viewSurveys")
def view_surveys(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return _table(request, surveys_svc.list_surveys(db, _scope(auth)), auth)


@router.get("/searchSurveys")
def search_surveys(
    request: Request,
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    return _table(request, surveys_svc.search_surveys(db, q, _scope(auth)), auth, q=q)


def _own_registration(db: Session, registration_id: int, auth: AuthContext) -> Registration:
    registration = db.get(Registration, registration_id)
    if registration is None or registration.participant_id != auth.part_id:
        raise NotFoundError("Registration not found", back_url="/register")
    return registration


def _survey_page(registration: Registration, values: Dict[str, str]) -> dict:
    return {
        "title": "Event survey",
        "intro": registrations_svc.event_label(registration),
        "action": f"/takeSurvey/{registration.registration_id}",
        "fields": SURVEY_FIELDS,
        "values": values,
        "question_slots": QUESTION_SLOTS,
        "submit_label": "Submit survey",
        "cancel_url": "/register",
    }


@router.get("/takeSurvey/{registration_id}")
def take_survey_page(
    registration_id: int,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    registration = _own_registration(db, registration_id, auth)
    if surveys_svc.survey_for_registration(db, registration_id) is not None:
        raise DuplicateError(surveys_svc.ALREADY_TAKEN, back_url="/register")
    return render(request, "survey_form.html", **_survey_page(registration, {}))


@router.post("/takeSurvey/{registration_id}")
def take_survey(
    registration_id: int,
    request: Request,
    form: dict = Depends(form_data),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    registration = _own_registration(db, registration_id, auth)
    with rerender("survey_form.html", **_survey_page(registration, form)):
        payload = parse_form(SurveyForm, form)
        surveys_svc.submit_survey(db, registration_id, payload, question_pairs(form))
    return render(
        request,
        "page.html",
        title="Thank you!",
        paragraphs=["Your feedback helps us make every event better."],
    )


@router.get("/survey/{survey_id}")
def survey_detail(survey_id: int, request: Request, db: Session = Depends(get_db)):
    s = surveys_svc.get_survey(db, survey_id)
    reg = s.registration
    return render(
        request,
        "detail.html",
        title=f"Survey #{s.survey_id}",
        facts=[
            ("Participant", reg.participant.full_name),
            ("Event", registrations_svc.event_label(reg)),
            ("Satisfaction", s.survey_satisfaction_score),
            ("Usefulness", s.survey_usefulness_score),
            ("Instructor", s.survey_instructor_score),
            ("Recommendation", s.survey_recommendation_score),
            ("Overall", s.survey_overall_score),
            ("NPS bucket", s.survey_nps_bucket),
            ("Comments", s.survey_comments or ""),
            ("Submitted", when(s.survey_submitted_at)),
        ],
        links=[Action("Delete", f"/deleteSurvey/{s.survey_id}", method="post")],
        sections=[
            {
                "title": "Additional questions",
                "columns": ["Question", "Answer"],
                "rows": [Row([r.question, r.answer or ""]) for r in s.responses],
                "has_actions": False,
            }
        ],
    )


@router.post("/deleteSurvey/{survey_id}")
def delete_survey(survey_id: int, db: Session = Depends(get_db)):
    surveys_svc.delete_survey(db, survey_id)
    return see_other(LIST_URL)
