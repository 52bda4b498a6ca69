# ellarises/api/events.py
"""Event templates, scheduled occurrences and venues."""
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import rerender
from ellarises.models.events import EVENT_TYPES, EventOccurrence, EventTemplate
from ellarises.schemas.events import EventTemplateForm, LocationForm, OccurrenceForm
from ellarises.schemas.forms import parse_form
from ellarises.services import events as events_svc
from ellarises.web import Action, FormField, Row, choices, form_data, form_values, render, see_other, when

router = APIRouter(tags=["Events"])

LIST_URL = events_svc.LIST_URL
LOCATIONS_URL = events_svc.LOCATIONS_URL

TEMPLATE_FIELDS = [
    FormField("event_name", "Name"),
    FormField("event_type", "Type", type="select", options=choices(EVENT_TYPES)),
    FormField("event_description", "Description", type="textarea", required=False),
    FormField("event_recurrence_pattern", "Recurrence (RRULE, e.g. FREQ=WEEKLY;BYDAY=SA)", required=False),
    FormField("event_default_capacity", "Default capacity", type="number", required=False),
]
TEMPLATE_ATTRS = {f.name: f.name for f in TEMPLATE_FIELDS}

LOCATION_FIELDS = [
    FormField("location_name", "Name"),
    FormField("location_capacity", "Capacity", type="number"),
]
LOCATION_ATTRS = {f.name: f.name for f in LOCATION_FIELDS}

OCCURRENCE_ATTRS = {
    "event_template_id": "event_template_id",
    "location_id": "location_id",
    "start_at": "start_at",
    "end_at": "end_at",
    "registration_deadline": "registration_deadline",
    "capacity": "capacity",
}


def _occurrence_fields(db: Session, series: bool) -> List[FormField]:
    fields = [
        FormField(
            "event_template_id",
            "Event",
            type="select",
            options=[(str(t.event_template_id), t.event_name) for t in events_svc.list_templates(db)],
        ),
        FormField(
            "location_id",
            "Location",
            type="select",
            required=False,
            options=[(str(loc.location_id), loc.location_name) for loc in events_svc.list_locations(db)],
        ),
        FormField("start_at", "Starts", type="datetime-local"),
        FormField("end_at", "Ends", type="datetime-local"),
        FormField("registration_deadline", "Registration deadline", type="datetime-local", required=False),
        FormField("capacity", "Capacity override", type="number", required=False),
    ]
    if series:
        fields.append(FormField("repeat_count", "Number of occurrences (follows the event's recurrence)", type="number", required=False))
    return fields


def _occurrence_rows(db: Session, occurrences: List[EventOccurrence], auth: AuthContext) -> List[Row]:
    taken = events_svc.seats_taken(db, [o.occurrence_id for o in occurrences])
    rows = []
    for o in occurrences:
        capacity = o.effective_capacity
        seats = f"{taken.get(o.occurrence_id, 0)} / {capacity}" if capacity is not None else str(taken.get(o.occurrence_id, 0))
        actions = []
        if auth.is_manager:
            actions = [
                Action("Edit", f"/editOccurrence/{o.occurrence_id}"),
                Action("Delete", f"/deleteOccurrence/{o.occurrence_id}", method="post"),
            ]
        rows.append(
            Row(
                [
                    o.template.event_name,
                    o.template.event_type,
                    when(o.start_at),
                    when(o.end_at),
                    o.location.location_name if o.location is not None else "",
                    seats,
                ],
                actions,
            )
        )
    return rows


def _template_section(db: Session) -> dict:
    templates = events_svc.list_templates(db)
    return {
        "title": "Event templates",
        "columns": ["Name", "Type", "Recurrence", "Default capacity"],
        "links": [Action("Add event", "/addEvent")],
        "rows": [
            Row(
                [t.event_name, t.event_type, t.event_recurrence_pattern or "", t.event_default_capacity],
                [
                    Action("Edit", f"/editEvent/{t.event_template_id}"),
                    Action("Delete", f"/deleteEvent/{t.event_template_id}", method="post"),
                ],
            )
            for t in templates
        ],
    }


def _events_page(request: Request, db: Session, occurrences: List[EventOccurrence], auth: AuthContext, q: Optional[str] = None):
    links, sections = [], []
    if auth.is_manager:
        links = [Action("Schedule occurrence", "/addOccurrence"), Action("Locations", LOCATIONS_URL)]
        sections = [_template_section(db)]
    return render(
        request,
        "table.html",
        title="Events",
        columns=["Event", "Type", "Starts", "Ends", "Location", "Seats"],
        rows=_occurrence_rows(db, occurrences, auth),
        has_actions=auth.is_manager,
        search_url="/searchEvents",
        q=q,
        links=links,
        sections=sections,
    )


@router.get("/viewEvents")
def view_events(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return _events_page(request, db, events_svc.list_occurrences(db), auth)


@router.get("/searchEvents")
def search_events(
    request: Request,
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    return _events_page(request, db, events_svc.search_occurrences(db, q), auth, q=q)


# ── Templates ────────────────────────────────────────────────────────────────

def _template_page(title: str, action: str, values: Dict[str, str]) -> dict:
    return {"title": title, "action": action, "fields": TEMPLATE_FIELDS, "values": values, "cancel_url": LIST_URL}


@router.get("/addEvent")
def add_event_page(request: Request):
    return render(request, "form.html", **_template_page("Add event", "/addEvent", {"event_type": "workshop"}))


@router.post("/addEvent")
def add_event(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_template_page("Add event", "/addEvent", form)):
        payload = parse_form(EventTemplateForm, form)
        events_svc.create_template(db, payload)
    return see_other(LIST_URL)


@router.get("/editEvent/{template_id}")
def edit_event_page(template_id: int, request: Request, db: Session = Depends(get_db)):
    tpl: EventTemplate = events_svc.get_template(db, template_id)
    page = _template_page("Edit event", f"/editEvent/{template_id}", form_values(tpl, TEMPLATE_ATTRS))
    return render(request, "form.html", **page)


@router.post("/editEvent/{template_id}")
def edit_event(template_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    events_svc.get_template(db, template_id)
    with rerender("form.html", **_template_page("Edit event", f"/editEvent/{template_id}", form)):
        payload = parse_form(EventTemplateForm, form)
        events_svc.update_template(db, template_id, payload)
    return see_other(LIST_URL)


@router.post("/deleteEvent/{template_id}")
def delete_event(template_id: int, db: Session = Depends(get_db)):
    events_svc.delete_template(db, template_id)
    return see_other(LIST_URL)


# ── Occurrences ──────────────────────────────────────────────────────────────

def _occurrence_page(db: Session, title: str, action: str, values: Dict[str, str], series: bool) -> dict:
    return {
        "title": title,
        "action": action,
        "fields": _occurrence_fields(db, series),
        "values": values,
        "cancel_url": LIST_URL,
    }


@router.get("/addOccurrence")
def add_occurrence_page(request: Request, db: Session = Depends(get_db)):
    page = _occurrence_page(db, "Schedule occurrence", "/addOccurrence", {"repeat_count": "1"}, series=True)
    return render(request, "form.html", **page)


@router.post("/addOccurrence")
def add_occurrence(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_occurrence_page(db, "Schedule occurrence", "/addOccurrence", form, series=True)):
        payload = parse_form(OccurrenceForm, form)
        events_svc.create_occurrences(db, payload)
    return see_other(LIST_URL)


@router.get("/editOccurrence/{occurrence_id}")
def edit_occurrence_page(occurrence_id: int, request: Request, db: Session = Depends(get_db)):
    occ = events_svc.get_occurrence(db, occurrence_id)
    values = form_values(occ, OCCURRENCE_ATTRS)
    page = _occurrence_page(db, "Edit occurrence", f"/editOccurrence/{occurrence_id}", values, series=False)
    return render(request, "form.html", **page)


@router.post("/editOccurrence/{occurrence_id}")
def edit_occurrence(occurrence_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    events_svc.get_occurrence(db, occurrence_id)
    page = _occurrence_page(db, "Edit occurrence", f"/editOccurrence/{occurrence_id}", form, series=False)
    with rerender("form.html", **page):
        payload = parse_form(OccurrenceForm, form)
        events_svc.update_occurrence(db, occurrence_id, payload)
    return see_other(LIST_URL)


@router.post("/deleteOccurrence/{occurrence_id}")
def delete_occurrence(occurrence_id: int, db: Session = Depends(get_db)):
    events_svc.delete_occurrence(db, occurrence_id)
    return see_other(LIST_URL)


# ── Locations ────────────────────────────────────────────────────────────────

@router.get("/viewLocations")
def view_locations(request: Request, db: Session = Depends(get_db)):
    rows = [
        Row(
            [loc.location_name, loc.location_capacity],
            [
                Action("Edit", f"/editLocation/{loc.location_id}"),
                Action("Delete", f"/deleteLocation/{loc.location_id}", method="post"),
            ],
        )
        for loc in events_svc.list_locations(db)
    ]
    return render(
        request,
        "table.html",
        title="Locations",
        columns=["Name", "Capacity"],
        rows=rows,
        has_actions=True,
        links=[Action("Add location", "/addLocation")],
    )


def _location_page(title: str, action: str, values: Dict[str, str]) -> dict:
    return {"title": title, "action": action, "fields": LOCATION_FIELDS, "values": values, "cancel_url": LOCATIONS_URL}


@router.get("/addLocation")
def add_location_page(request: Request):
    return render(request, "form.html", **_location_page("Add location", "/addLocation", {}))


@router.post("/addLocation")
def add_location(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_location_page("Add location", "/addLocation", form)):
        payload = parse_form(LocationForm, form)
        events_svc.create_location(db, payload)
    return see_other(LOCATIONS_URL)


@router.get("/editLocation/{location_id}")
def edit_location_page(location_id: int, request: Request, db: Session = Depends(get_db)):
    loc = events_svc.get_location(db, location_id)
    page = _location_page("Edit location", f"/editLocation/{location_id}", form_values(loc, LOCATION_ATTRS))
    return render(request, "form.html", **page)


@router.post("/editLocation/{location_id}")
def edit_location(location_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    events_svc.get_location(db, location_id)
    with rerender("form.html", **_location_page("Edit location", f"/editLocation/{location_id}", form)):
        payload = parse_form(LocationForm, form)
        events_svc.update_location(db, location_id, payload)
    return see_other(LOCATIONS_URL)


@router.post("/deleteLocation/{location_id}")
def delete_location(location_id: int, db: Session = Depends(get_db)):
    events_svc.delete_location(db, location_id)
    return see_other(LOCATIONS_URL)
