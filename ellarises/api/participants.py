# ellarises/api/participants.py
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import rerender
from ellarises.models.participants import PARTICIPANT_ROLES, Participant
from ellarises.schemas.forms import parse_form
from ellarises.schemas.participants import ParticipantDetails, ParticipantForm
from ellarises.services import donations as donations_svc
from ellarises.services import milestones as milestones_svc
from ellarises.services import participants as participants_svc
from ellarises.services import registrations as registrations_svc
from ellarises.web import Action, FormField, Row, choices, form_data, form_values, money, render, see_other

router = APIRouter(tags=["Participants"])

LIST_URL = participants_svc.LIST_URL
COLUMNS = ["Name", "Email", "Role", "City", "State", "Total donations"]

DETAIL_FIELDS = [
    FormField("part_first_name", "First name"),
    FormField("part_last_name", "Last name"),
    FormField("part_dob", "Date of birth", type="date"),
    FormField("part_phone", "Phone", type="tel"),
    FormField("part_city", "City"),
    FormField("part_state", "State"),
    FormField("part_zip", "Zip"),
    FormField("part_school", "School or employer", required=False),
    FormField("part_interest", "Field of interest", required=False),
]

MANAGER_FIELDS = [
    FormField("part_email", "Email", type="email"),
    FormField("part_role", "Role", type="select", options=choices(PARTICIPANT_ROLES)),
    *DETAIL_FIELDS,
]

# form field -> Participant attribute
FIELD_ATTRS = {
    "part_email": "participant_email",
    "part_role": "participant_role",
    "part_first_name": "participant_first_name",
    "part_last_name": "participant_last_name",
    "part_dob": "participant_dob",
    "part_phone": "participant_phone",
    "part_city": "participant_city",
    "part_state": "participant_state",
    "part_zip": "participant_zip",
    "part_school": "participant_school_or_employer",
    "part_interest": "participant_field_of_interest",
}


def _safe_next(target: Optional[str]) -> str:
    # Only same-site absolute paths
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return "/"


def _rows(participants: List[Participant], auth: AuthContext) -> List[Row]:
    rows = []
    for p in participants:
        if auth.is_manager:
            actions = [
                Action("View", f"/participant/{p.participant_id}"),
                Action("Edit", f"/editPart/{p.participant_id}"),
                Action("Delete", f"/deletePart/{p.participant_id}", method="post"),
            ]
        else:
            actions = [Action("Milestones", f"/viewMilestones/{p.participant_id}")]
        rows.append(
            Row(
                [
                    p.full_name,
                    p.participant_email,
                    p.participant_role or "",
                    p.participant_city or "",
                    p.participant_state or "",
                    money(p.total_donations),
                ],
                actions,
            )
        )
    return rows


def _table(request: Request, participants: List[Participant], auth: AuthContext, q: Optional[str] = None):
    links = []
    if auth.is_manager:
        links = [Action("Add participant", "/addPart"), Action("Recompute donation totals", "/recomputeTotals", method="post")]
    return render(
        request,
        "table.html",
        title="Participants",
        columns=COLUMNS,
        rows=_rows(participants, auth),
        has_actions=True,
        search_url="/searchParticipants",
        q=q,
        links=links,
    )


def _form_page(title: str, action: str, values: Dict[str, str]) -> dict:
    return {
        "title": title,
        "action": action,
        "fields": MANAGER_FIELDS,
        "values": values,
        "cancel_url": LIST_URL,
    }


@router.get("/viewParticipants")
def view_participants(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return _table(request, participants_svc.list_participants(db), auth)


@router.get("/searchParticipants")
def search_participants(
    request: Request,
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    return _table(request, participants_svc.search_participants(db, q), auth, q=q)


@router.get("/addPart")
def add_participant_page(request: Request):
    return render(request, "form.html", **_form_page("Add participant", "/addPart", {"part_role": "participant"}))


@router.post("/addPart")
def add_participant(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_form_page("Add participant", "/addPart", form)):
        payload = parse_form(ParticipantForm, form)
        participants_svc.create_participant(db, payload)
    return see_other(LIST_URL)


@router.get("/editPart/{participant_id}")
def edit_participant_page(participant_id: int, request: Request, db: Session = Depends(get_db)):
    participant = participants_svc.get_participant(db, participant_id)
    page = _form_page("Edit participant", f"/editPart/{participant_id}", form_values(participant, FIELD_ATTRS))
    return render(request, "form.html", **page)


@router.post("/editPart/{participant_id}")
def edit_participant(
    participant_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)
):
    participants_svc.get_participant(db, participant_id)
    with rerender("form.html", **_form_page("Edit participant", f"/editPart/{participant_id}", form)):
        payload = parse_form(ParticipantForm, form)
        participants_svc.update_participant(db, participant_id, payload)
    return see_other(LIST_URL)


@router.post("/deletePart/{participant_id}")
def delete_participant(participant_id: int, db: Session = Depends(get_db)):
    participants_svc.delete_participant(db, participant_id)
    return see_other(LIST_URL)


@router.get("/participant/{participant_id}")
def participant_detail(participant_id: int, request: Request, db: Session = Depends(get_db)):
    p = participants_svc.get_participant(db, participant_id)
    milestones = milestones_svc.milestones_for(db, participant_id)
    donations = donations_svc.donations_for(db, participant_id)
    registrations = registrations_svc.registrations_for(db, participant_id)

    sections = [
        {
            "title": "Milestones",
            "columns": ["#", "Title", "Date"],
            "rows": [
                Row(
                    [m.milestone_number, m.milestone_title, m.milestone_date],
                    [
                        Action("Edit", f"/editMilestone/{participant_id}/{m.milestone_number}"),
                        Action("Delete", f"/deleteMilestone/{participant_id}/{m.milestone_number}", method="post"),
                    ],
                )
                for m in milestones
            ],
        },
        {
            "title": "Donations",
            "columns": ["#", "Amount", "Date"],
            "rows": [
                Row(
                    [d.donation_number, money(d.donation_amount), d.donation_date],
                    [
                        Action("Edit", f"/editDonation/{participant_id}/{d.donation_number}"),
                        Action("Delete", f"/deleteDonation/{participant_id}/{d.donation_number}", method="post"),
                    ],
                )
                for d in donations
            ],
        },
        {
            "title": "Registrations",
            "columns": ["Event", "Status"],
            "rows": [
                Row(
                    [registrations_svc.event_label(r), r.registration_status],
                    [Action("Edit", f"/editRegistration/{r.registration_id}")],
                )
                for r in registrations
            ],
        },
    ]
    return render(
        request,
        "detail.html",
        title=p.full_name,
        facts=[
            ("Email", p.participant_email),
            ("Role", p.participant_role or ""),
            ("Date of birth", p.participant_dob or ""),
            ("Phone", p.participant_phone or ""),
            ("City", p.participant_city or ""),
            ("State", p.participant_state or ""),
            ("Zip", p.participant_zip or ""),
            ("School or employer", p.participant_school_or_employer or ""),
            ("Field of interest", p.participant_field_of_interest or ""),
            ("Total donations", money(p.total_donations)),
        ],
        links=[
            Action("Edit", f"/editPart/{participant_id}"),
            Action("Add milestone", f"/addMilestone/{participant_id}"),
            Action("Add donation", f"/addDonation/{participant_id}"),
        ],
        sections=sections,
    )


# Self-service participant record for a logged-in user

def _self_page(email: Optional[str], next_url: str, values: Dict[str, str]) -> dict:
    return {
        "title": "Tell us about yourself",
        "intro": f"Create the participant record for {email}.",
        "action": "/createParticipant",
        "fields": DETAIL_FIELDS,
        "values": values,
        "hidden": {"next": next_url},
        "submit_label": "Continue",
    }


@router.get("/createParticipant")
def create_participant_page(
    request: Request,
    next: Optional[str] = Query(None),
    auth: AuthContext = Depends(current_auth),
):
    return render(request, "form.html", **_self_page(auth.email, _safe_next(next), {}))


@router.post("/createParticipant")
def create_participant(
    request: Request,
    form: dict = Depends(form_data),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    next_url = _safe_next(form.get("next"))
    with rerender("form.html", **_self_page(auth.email, next_url, form)):
        details = parse_form(ParticipantDetails, form)
        participant = participants_svc.create_self_participant(db, auth.user_id, auth.email or "", details)
    request.session["part_id"] = participant.participant_id
    return see_other(next_url)
