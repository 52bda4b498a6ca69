# ellarises/api/users.py
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ellarises.api.milestones import participant_options
from ellarises.auth import AuthContext, current_auth
from ellarises.db import get_db
from ellarises.errors import rerender
from ellarises.models.users import LEVEL_MANAGER, LEVEL_USER, User
from ellarises.schemas.forms import parse_form
from ellarises.schemas.users import UserEditForm, UserForm
from ellarises.services import users as users_svc
from ellarises.web import Action, FormField, Row, form_data, render, see_other, when

router = APIRouter(tags=["Users"])

LIST_URL = users_svc.LIST_URL
LEVELS = [(LEVEL_USER, "User"), (LEVEL_MANAGER, "Manager")]


def _fields(db: Session, editing: bool) -> List[FormField]:
    return [
        FormField("email", "Email", type="email"),
        FormField(
            "password",
            "Password (leave blank to keep the current one)" if editing else "Password",
            type="password",
            required=not editing,
        ),
        FormField("level", "Level", type="select", options=LEVELS),
        FormField("participant_id", "Linked participant", type="select", required=False, options=participant_options(db)),
    ]


def _table(request: Request, users: List[User], auth: AuthContext, q: Optional[str] = None):
    rows = []
    for u in users:
        actions = [Action("Edit", f"/editUser/{u.user_id}")]
        if u.user_id != auth.user_id:
            actions.append(Action("Delete", f"/deleteUser/{u.user_id}", method="post"))
        rows.append(
            Row(
                [
                    u.email,
                    "Manager" if u.is_manager else "User",
                    u.participant.full_name if u.participant is not None else "",
                    when(u.created_at),
                ],
                actions,
            )
        )
    return render(
        request,
        "table.html",
        title="Users",
        columns=["Email", "Level", "Participant", "Created"],
        rows=rows,
        has_actions=True,
        search_url="/searchUsers",
        q=q,
        links=[Action("Add user", "/addUser")],
    )


@router.get("/viewUsers")
def view_users(request: Request, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    return _table(request, users_svc.list_users(db), auth)


@router.get("/searchUsers")
def search_users(
    request: Request,
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    return _table(request, users_svc.search_users(db, q), auth, q=q)


def _page(db: Session, title: str, action: str, values: Dict[str, str], editing: bool) -> dict:
    # never echo a password back into the form
    values = {k: v for k, v in values.items() if k != "password"}
    return {"title": title, "action": action, "fields": _fields(db, editing), "values": values, "cancel_url": LIST_URL}


@router.get("/addUser")
def add_user_page(request: Request, db: Session = Depends(get_db)):
    return render(request, "form.html", **_page(db, "Add user", "/addUser", {"level": LEVEL_USER}, editing=False))


@router.post("/addUser")
def add_user(request: Request, form: dict = Depends(form_data), db: Session = Depends(get_db)):
    with rerender("form.html", **_page(db, "Add user", "/addUser", form, editing=False)):
        payload = parse_form(UserForm, form)
        users_svc.create_user(db, payload)
    return see_other(LIST_URL)


@router.get("/editUser/{user_id}")
def edit_user_page(user_id: int, request: Request, db: Session = Depends(get_db)):
    user = users_svc.get_user(db, user_id)
    values = {
        "email": user.email,
        "level": user.level,
        "participant_id": str(user.participant_id) if user.participant_id is not None else "",
    }
    return render(request, "form.html", **_page(db, "Edit user", f"/editUser/{user_id}", values, editing=True))


@router.post("/editUser/{user_id}")
def edit_user(
    user_id: int,
    request: Request,
    form: dict = Depends(form_data),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(current_auth),
):
    users_svc.get_user(db, user_id)
    with rerender("form.html", **_page(db, "Edit user", f"/editUser/{user_id}", form, editing=True)):
        payload = parse_form(UserEditForm, form)
        user = users_svc.update_user(db, user_id, payload)

    if user_id == auth.user_id:
        # keep the session in step with the edited account
        request.session.update({"email": user.email, "level": user.level, "part_id": user.participant_id})
    return see_other(LIST_URL)


@router.post("/deleteUser/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), auth: AuthContext = Depends(current_auth)):
    users_svc.delete_user(db, user_id, auth.user_id)
    return see_other(LIST_URL)
