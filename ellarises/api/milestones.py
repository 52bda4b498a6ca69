# ellarises/api/milestones.py
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import rerender
from ellarises.models.participants import Milestone
from ellarises.schemas.forms import parse_form
from ellarises.schemas.records import GlobalMilestoneForm, MilestoneForm
from ellarises.services import milestones as milestones_svc
from ellarises.services import participants as participants_svc
from ellarises.web import Action, FormField, Row, form_data, form_values, render, see_other

router = APIRouter(tags=["Milestones"])

LIST_URL = milestones_svc.LIST_URL

FIELDS = [
    FormField("milestone_title", "Title"),
    FormField("milestone_date", "Date", type="date"),
]
FIELD_ATTRS = {"milestone_title": "milestone_title", "milestone_date": "milestone_date"}


def participant_options(db: Session) -> List[tuple]:
    return [
        (str(p.participant_id), f"{p.full_name} ({p.participant_email})")
        for p in participants_svc.list_participants(db)
    ]


def _rows(milestones: List[Milestone], auth: AuthContext, with_name: bool = True) -> List[Row]:
    rows = []
    for m in milestones:
        cells = [m.milestone_number, m.milestone_title, m.milestone_date]
        if with_name:
            cells.insert(0, m.participant.full_name)
        actions = []
        if auth.is_manager:
            actions = [
                Action("Edit", f"/editMilestone/{m.participant_id}/{m.milestone_number}"),
                Action("Delete", f"/deleteMilestone/{m.participant_id}/{m.milestone_number}", method="post"),
            ]
        elif with_name:
            actions = [Action("All milestones", f"/viewMilestones/{m.participant_id}")]
        rows.append(Row(cells, actions))
    return rows


def _table(request: Request, milestones: List[Milestone], auth: AuthContext, q: Optional[str] = None):
    links = [Action("Add milestone", "/addMilestoneGlobal")] if auth.is_manager else []
    return render(
        request,
        "table.html",
        title="Milestones",
        columns=["Participant", "#", "Title", "Date"],
        rows=_rows(milestones, auth),
        has_actions=True,
        search_url="/searchMilestones",
        q=q,
        links=links,
    )


@router.get("/viewMilestones")
def view_milestones(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return _table(request, milestones_svc.list_milestones(db), auth)


@router.get("/searchMilestones")
def search_milestones(
    request: Request,
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    return _table(request, milestones_svc.search_milestones(db, q), auth, q=q)


@router.get("/viewMilestones/{participant_id}")
def participant_milestones(
    participant_id: int,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    participant = participants_svc.get_participant(db, participant_id)
    links = [Action("Add milestone", f"/addMilestone/{participant_id}")] if auth.is_manager else []
    return render(
        request,
        "table.html",
        title=f"Milestones for {participant.full_name}",
        columns=["#", "Title", "Date"],
        rows=_rows(milestones_svc.milestones_for(db, participant_id), auth, with_name=False),
        has_actions=auth.is_manager,
        links=links,
        empty_message="No milestones recorded yet.",
    )


def _add_page(participant_id: int, name: str, values: Dict[str, str]) -> dict:
    return {
        "title": f"Add milestone for {name}",
        "action": f"/addMilestone/{participant_id}",
        "fields": FIELDS,
        "values": values,
        "cancel_url": f"/viewMilestones/{participant_id}",
    }


@router.get("/addMilestone/{participant_id}")
def add_milestone_page(participant_id: int, request: Request, db: Session = Depends(get_db)):
    participant = participants_svc.get_participant(db, participant_id)
    return render(request, "form.html", **_add_page(participant_id, participant.full_name, {}))


@router.post("/addMilestone/{participant_id}")
def add_milestone(participant_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    participant = participants_svc.get_participant(db, participant_id)
    with rerender("form.html", **_add_page(participant_id, participant.full_name, form)):
        payload = parse_form(MilestoneForm, form)
        milestones_svc.add_milestone(db, participant_id, payload.milestone_title, payload.milestone_date)
    return see_other(f"/viewMilestones/{participant_id}")


def _global_page(db: Session, values: Dict[str, str]) -> dict:
    return {
        "title": "Add milestone",
        "action": "/addMilestoneGlobal",
        "fields": [FormField("participant_id", "Participant", type="select", options=participant_options(db)), *FIELDS],
        "values": values,
        "cancel_url": LIST_URL,
    }


@router.get("/addMilestoneGlobal")
def add_milestone_global_page(request: Request, db: Session = Depends(get_db)):
    return render(request, "form.html", **_global_page(db, {}))


@router.post("/addMilestoneGlobal")
def add_milestone_global(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_global_page(db, form)):
        payload = parse_form(GlobalMilestoneForm, form)
        milestones_svc.add_milestone(db, payload.participant_id, payload.milestone_title, payload.milestone_date)
    return see_other(LIST_URL)


def _edit_page(participant_id: int, number: int, values: Dict[str, str]) -> dict:
    return {
        "title": f"Edit milestone #{number}",
        "action": f"/editMilestone/{participant_id}/{number}",
        "fields": FIELDS,
        "values": values,
        "cancel_url": f"/viewMilestones/{participant_id}",
    }


@router.get("/editMilestone/{participant_id}/{milestone_number}")
def edit_milestone_page(participant_id: int, milestone_number: int, request: Request, db: Session = Depends(get_db)):
    milestone = milestones_svc.get_milestone(db, participant_id, milestone_number)
    page = _edit_page(participant_id, milestone_number, form_values(milestone, FIELD_ATTRS))
    return render(request, "form.html", **page)


@router.post("/editMilestone/{participant_id}/{milestone_number}")
def edit_milestone(
    participant_id: int,
    milestone_number: int,
    request: Request,
    form: dict = Depends(form_data),
    db: Session = Depends(get_db),
):
    milestones_svc.get_milestone(db, participant_id, milestone_number)
    with rerender("form.html", **_edit_page(participant_id, milestone_number, form)):
        payload = parse_form(MilestoneForm, form)
        milestones_svc.update_milestone(
            db, participant_id, milestone_number, payload.milestone_title, payload.milestone_date
        )
    return see_other(f"/viewMilestones/{participant_id}")


@router.post("/deleteMilestone/{participant_id}/{milestone_number}")
def delete_milestone(participant_id: int, milestone_number: int, db: Session = Depends(get_db)):
    milestones_svc.delete_milestone(db, participant_id, milestone_number)
    return see_other(f"/viewMilestones/{participant_id}")
