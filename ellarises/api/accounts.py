# ellarises/api/accounts.py
"""Login, logout and self-service signup."""
from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ellarises.auth import end_session, start_session
from ellarises.db import get_db
from ellarises.errors import ValidationError, rerender
from ellarises.schemas.forms import parse_form
from ellarises.schemas.users import LoginForm, SignupForm
from ellarises.services import users as users_svc
from ellarises.web import FormField, form_data, render, see_other

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Accounts"])

INVALID_LOGIN = "Invalid login"

SIGNUP_FIELDS = [
    FormField("email", "Email", type="email"),
    FormField("password", "Password", type="password"),
    FormField("confirm_password", "Confirm password", type="password"),
]


def _signup_page(values: Dict[str, str]) -> dict:
    return {
        "title": "Create an account",
        "action": "/signup",
        "fields": SIGNUP_FIELDS,
        "values": {"email": values.get("email", "")},
        "submit_label": "Sign up",
    }


@router.get("/login")
def login_page(request: Request):
    return render(request, "login.html")


@router.post("/login")
def login(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    email = (form.get("email") or "").strip().lower()
    # Failed logins re-render the page with 200
    try:
        creds = parse_form(LoginForm, form)
    except ValidationError:
        logger.info("Failed login for %s (malformed form)", email)
        return render(request, "login.html", email=email, error_message=INVALID_LOGIN)
    with rerender("login.html", email=email):
        user = users_svc.authenticate(db, creds.email, creds.password)
    if user is None:
        logger.info("Failed login for %s", creds.email)
        return render(request, "login.html", email=email, error_message=INVALID_LOGIN)

    start_session(request, user)
    logger.info("User %s logged in", user.email)
    return see_other("/")


@router.get("/logout")
def logout(request: Request):
    email = request.session.get("email")
    end_session(request)
    if email:
        logger.info("User %s logged out", email)
    return see_other("/")


@router.get("/signup")
def signup_page(request: Request):
    return render(request, "form.html", **_signup_page({}))


@router.post("/signup", status_code=status.HTTP_303_SEE_OTHER)
def signup(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_signup_page(form)):
        payload = parse_form(SignupForm, form)
        users_svc.signup(db, payload)
    return see_other("/login")
