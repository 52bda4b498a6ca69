# ellarises/api/donations.py
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ellarises.api.milestones import participant_options
from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import rerender
from ellarises.models.participants import Donation
from ellarises.schemas.forms import parse_form
from ellarises.schemas.participants import PublicDonationForm
from ellarises.schemas.records import DonationForm, GlobalDonationForm
from ellarises.services import donations as donations_svc
from ellarises.services import participants as participants_svc
from ellarises.web import Action, FormField, Row, form_data, form_values, money, render, see_other

router = APIRouter(tags=["Donations"])

LIST_URL = donations_svc.LIST_URL

FIELDS = [
    FormField("donation_amount", "Amount", type="number", step="0.01"),
    FormField("donation_date", "Date", type="date"),
]
FIELD_ATTRS = {"donation_amount": "donation_amount", "donation_date": "donation_date"}

PUBLIC_FIELDS = [
    FormField("first_name", "First name"),
    FormField("last_name", "Last name"),
    FormField("email", "Email", type="email"),
    FormField("donation_amount", "Amount", type="number", step="0.01"),
    FormField("donation_date", "Date", type="date", required=False),
]


def _rows(donations: List[Donation], auth: AuthContext) -> List[Row]:
    rows = []
    for d in donations:
        actions = []
        if auth.is_manager:
            actions = [
                Action("Edit", f"/editDonation/{d.participant_id}/{d.donation_number}"),
                Action("Delete", f"/deleteDonation/{d.participant_id}/{d.donation_number}", method="post"),
            ]
        rows.append(Row([d.participant.full_name, d.donation_number, money(d.donation_amount), d.donation_date], actions))
    return rows


def _table(request: Request, donations: List[Donation], auth: AuthContext, q: Optional[str] = None):
    links = []
    if auth.is_manager:
        links = [
            Action("Add donation", "/addDonationGlobal"),
            Action("Recompute donation totals", "/recomputeTotals", method="post"),
        ]
    return render(
        request,
        "table.html",
        title="Donations",
        columns=["Participant", "#", "Amount", "Date"],
        rows=_rows(donations, auth),
        has_actions=auth.is_manager,
        search_url="/searchDonations",
        q=q,
        links=links,
    )


@router.get("/viewDonations")
def view_donations(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return _table(request, donations_svc.list_donations(db), auth)


@router.get("/searchDonations")
def search_donations(
    request: Request,
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    return _table(request, donations_svc.search_donations(db, q), auth, q=q)


def _add_page(participant_id: int, name: str, values: Dict[str, str]) -> dict:
    return {
        "title": f"Add donation for {name}",
        "action": f"/addDonation/{participant_id}",
        "fields": FIELDS,
        "values": values,
        "cancel_url": f"/participant/{participant_id}",
    }


@router.get("/addDonation/{participant_id}")
def add_donation_page(participant_id: int, request: Request, db: Session = Depends(get_db)):
    participant = participants_svc.get_participant(db, participant_id)
    return render(request, "form.html", **_add_page(participant_id, participant.full_name, {}))


@router.post("/addDonation/{participant_id}")
def add_donation(participant_id: int, request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    participant = participants_svc.get_participant(db, participant_id)
    with rerender("form.html", **_add_page(participant_id, participant.full_name, form)):
        payload = parse_form(DonationForm, form)
        donations_svc.add_donation(db, participant_id, payload.donation_amount, payload.donation_date)
    return see_other(f"/participant/{participant_id}")


def _global_page(db: Session, values: Dict[str, str]) -> dict:
    return {
        "title": "Add donation",
        "action": "/addDonationGlobal",
        "fields": [FormField("participant_id", "Participant", type="select", options=participant_options(db)), *FIELDS],
        "values": values,
        "cancel_url": LIST_URL,
    }


@router.get("/addDonationGlobal")
def add_donation_global_page(request: Request, db: Session = Depends(get_db)):
    return render(request, "form.html", **_global_page(db, {}))


@router.post("/addDonationGlobal")
def add_donation_global(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_global_page(db, form)):
        payload = parse_form(GlobalDonationForm, form)
        donations_svc.add_donation(db, payload.participant_id, payload.donation_amount, payload.donation_date)
    return see_other(LIST_URL)


def _edit_page(participant_id: int, number: int, values: Dict[str, str]) -> dict:
    return {
        "title": f"Edit donation #{number}",
        "action": f"/editDonation/{participant_id}/{number}",
        "fields": FIELDS,
        "values": values,
        "cancel_url": LIST_URL,
    }


@router.get("/editDonation/{participant_id}/{donation_number}")
def edit_donation_page(participant_id: int, donation_number: int, request: Request, db: Session = Depends(get_db)):
    donation = donations_svc.get_donation(db, participant_id, donation_number)
    page = _edit_page(participant_id, donation_number, form_values(donation, FIELD_ATTRS))
    return render(request, "form.html", **page)


@router.post("/editDonation/{participant_id}/{donation_number}")
def edit_donation(
    participant_id: int,
    donation_number: int,
    request: Request,
    form: dict = Depends(form_data),
    db: Session = Depends(get_db),
):
    donations_svc.get_donation(db, participant_id, donation_number)
    with rerender("form.html", **_edit_page(participant_id, donation_number, form)):
        payload = parse_form(DonationForm, form)
        donations_svc.update_donation(db, participant_id, donation_number, payload.donation_amount, payload.donation_date)
    return see_other(LIST_URL)


@router.post("/deleteDonation/{participant_id}/{donation_number}")
def delete_donation(participant_id: int, donation_number: int, db: Session = Depends(get_db)):
    donations_svc.delete_donation(db, participant_id, donation_number)
    return see_other(LIST_URL)


@router.post("/recomputeTotals")
def recompute_totals(request: Request, db: Session = Depends(get_db)):
    changed = donations_svc.recompute_all_totals(db)
    return render(
        request,
        "page.html",
        title="Donation totals recomputed",
        paragraphs=[f"{changed} participant total(s) were corrected."],
    )


# Public donation form

def _donate_page(values: Dict[str, str]) -> dict:
    return {
        "title": "Support Ella Rises",
        "intro": "Every gift keeps our programs free for the young women we serve.",
        "action": "/donate",
        "fields": PUBLIC_FIELDS,
        "values": values,
        "submit_label": "Donate",
    }


@router.get("/donate")
def donate_page(request: Request):
    return render(request, "form.html", **_donate_page({}))


@router.post("/donate")
def donate(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_donate_page(form)):
        payload = parse_form(PublicDonationForm, form)
        donation = donations_svc.record_public_donation(db, payload)
    return render(
        request,
        "page.html",
        title="Thank you!",
        paragraphs=[f"We received your donation of {money(donation.donation_amount)}. Thank you, {payload.first_name}!"],
    )
