# ellarises/api/registrations.py
from __future__ import annotations

from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import rerender
from ellarises.models.events import REGISTRATION_STATUSES
from ellarises.schemas.events import RegistrationStatusForm
from ellarises.schemas.forms import parse_form
from ellarises.services import events as events_svc
from ellarises.services import registrations as registrations_svc
from ellarises.web import Action, FormField, Row, choices, form_data, render, see_other, when

router = APIRouter(tags=["Registrations"])

LIST_URL = registrations_svc.LIST_URL

STATUS_FIELDS = [
    FormField("registration_status", "Status", type="select", options=choices(REGISTRATION_STATUSES)),
]


def _register_page(db: Session, auth: AuthContext) -> dict:
    """Open occurrences to sign up for, plus the participant's own registrations."""
    now = datetime.now()
    upcoming = events_svc.upcoming_open(db, now)
    taken = events_svc.seats_taken(db, [o.occurrence_id for o in upcoming])
    mine = registrations_svc.registrations_for(db, auth.part_id) if auth.part_id is not None else []
    registered = {r.occurrence_id for r in mine}

    rows = []
    for o in upcoming:
        capacity = o.effective_capacity
        left = capacity - taken.get(o.occurrence_id, 0) if capacity is not None else None
        actions = []
        if o.occurrence_id not in registered and (left is None or left > 0):
            actions = [Action("Register", f"/register/{o.occurrence_id}", method="post")]
        rows.append(
            Row(
                [
                    o.template.event_name,
                    when(o.start_at),
                    o.location.location_name if o.location is not None else "",
                    when(o.registration_deadline or o.start_at),
                    "unlimited" if left is None else max(left, 0),
                ],
                actions,
            )
        )

    my_rows = []
    for r in mine:
        actions = []
        if r.survey is None and r.occurrence.start_at <= now:
            actions = [Action("Take survey", f"/takeSurvey/{r.registration_id}")]
        my_rows.append(
            Row([registrations_svc.event_label(r), r.registration_status, "yes" if r.survey else "no"], actions)
        )

    return {
        "title": "Register for an event",
        "columns": ["Event", "Starts", "Location", "Register by", "Seats left"],
        "rows": rows,
        "has_actions": True,
        "empty_message": "No upcoming events are open for registration.",
        "sections": [
            {
                "title": "Your registrations",
                "columns": ["Event", "Status", "Survey submitted"],
                "rows": my_rows,
                "empty_message": "You have not registered for any events yet.",
            }
        ],
    }


@router.get("/register")
def register_page(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return render(request, "table.html", **_register_page(db, auth))


@router.post("/register/{occurrence_id}")
def register(
    occurrence_id: int,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    with rerender("table.html", **_register_page(db, auth)):
        registrations_svc.register(db, auth.part_id, occurrence_id)
    return see_other("/register")


@router.get("/viewRegistrations")
def view_registrations(request: Request, db: Session = Depends(get_db)):
    rows = [
        Row(
            [
                r.participant.full_name,
                registrations_svc.event_label(r),
                r.registration_status,
                when(r.registration_created_at),
                "yes" if r.survey else "no",
            ],
            [
                Action("Edit", f"/editRegistration/{r.registration_id}"),
                Action("Delete", f"/deleteRegistration/{r.registration_id}", method="post"),
            ],
        )
        for r in registrations_svc.list_registrations(db)
    ]
    return render(
        request,
        "table.html",
        title="Registrations",
        columns=["Participant", "Event", "Status", "Registered", "Survey"],
        rows=rows,
        has_actions=True,
    )


def _edit_page(registration_id: int, label: str, values: Dict[str, str]) -> dict:
    return {
        "title": "Edit registration",
        "intro": label,
        "action": f"/editRegistration/{registration_id}",
        "fields": STATUS_FIELDS,
        "values": values,
        "cancel_url": LIST_URL,
    }


@router.get("/editRegistration/{registration_id}")
def edit_registration_page(registration_id: int, request: Request, db: Session = Depends(get_db)):
    r = registrations_svc.get_registration(db, registration_id)
    label = f"{r.participant.full_name}: {registrations_svc.event_label(r)}"
    page = _edit_page(registration_id, label, {"registration_status": r.registration_status})
    return render(request, "form.html", **page)


@router.post("/editRegistration/{registration_id}")
def edit_registration(
    registration_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)
):
    r = registrations_svc.get_registration(db, registration_id)
    label = f"{r.participant.full_name}: {registrations_svc.event_label(r)}"
    with rerender("form.html", **_edit_page(registration_id, label, form)):
        payload = parse_form(RegistrationStatusForm, form)
        registrations_svc.update_status(db, registration_id, payload.registration_status)
    return see_other(LIST_URL)


@router.post("/deleteRegistration/{registration_id}")
def delete_registration(registration_id: int, db: Session = Depends(get_db)):
    registrations_svc.delete_registration(db, registration_id)
    return see_other(LIST_URL)
