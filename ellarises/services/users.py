from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from ellarises.errors import ValidationError
from ellarises.models.participants import Participant
from ellarises.models.users import LEVEL_USER, User
from ellarises.schemas.users import SignupForm, UserEditForm, UserForm
from ellarises.services.common import ensure_email_available, get_or_404, like, unit_of_work

logger = logging.getLogger(__name__)

LIST_URL = "/viewUsers"


def hash_password(plain: str) -> str:
    return generate_password_hash(plain)


def verify_password(password_hash: str, plain: str) -> bool:
    try:
        return check_password_hash(password_hash, plain)
    except ValueError:
        # unknown hash format
        return False


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email.strip().lower())).scalars().first()


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = find_by_email(db, email)
    if user is None or not verify_password(user.password_hash, password):
        return None
    return user


def list_users(db: Session) -> List[User]:
    return list(db.execute(select(User).order_by(User.email)).scalars().all())


def search_users(db: Session, q: Optional[str]) -> List[User]:
    pattern = like(q)
    if pattern is None:
        return list_users(db)
    stmt = select(User).where(User.email.ilike(pattern, escape="\\")).order_by(User.email)
    return list(db.execute(stmt).scalars().all())


def get_user(db: Session, user_id: int) -> User:
    return get_or_404(db, User, user_id, "User", back_url=LIST_URL)


def _check_participant_link(db: Session, participant_id: Optional[int], user_id: Optional[int] = None) -> None:
    if participant_id is None:
        return
    if db.get(Participant, participant_id) is None:
        raise ValidationError("Selected participant does not exist")
    owner = db.execute(select(User.user_id).where(User.participant_id == participant_id)).scalar()
    if owner is not None and owner != user_id:
        raise ValidationError("Selected participant is already linked to another user")


def signup(db: Session, form: SignupForm) -> User:
    """Self-registration: an ordinary user, linked to the participant with the same email if any."""
    with unit_of_work(db, "create your account"):
        ensure_email_available(db, User.email, form.email)
        participant_id = db.execute(
            select(Participant.participant_id).where(Participant.participant_email == form.email)
        ).scalar()
        if participant_id is not None:
            taken = db.execute(select(User.user_id).where(User.participant_id == participant_id)).scalar()
            if taken is not None:
                participant_id = None
        user = User(
            email=form.email,
            password_hash=hash_password(form.password),
            level=LEVEL_USER,
            participant_id=participant_id,
        )
        db.add(user)
        db.flush()
    logger.info("Signed up user_id=%s", user.user_id)
    return user


def create_user(db: Session, form: UserForm) -> User:
    with unit_of_work(db, "add user"):
        ensure_email_available(db, User.email, form.email)
        _check_participant_link(db, form.participant_id)
        user = User(
            email=form.email,
            password_hash=hash_password(form.password),
            level=form.level,
            participant_id=form.participant_id,
        )
        db.add(user)
        db.flush()
    logger.info("Created user_id=%s level=%s", user.user_id, form.level)
    return user


def update_user(db: Session, user_id: int, form: UserEditForm) -> User:
    user = get_user(db, user_id)
    with unit_of_work(db, "update user"):
        ensure_email_available(db, User.email, form.email, current=user.email)
        _check_participant_link(db, form.participant_id, user_id=user_id)
        user.email = form.email
        user.level = form.level
        user.participant_id = form.participant_id
        if form.password:
            user.password_hash = hash_password(form.password)
    logger.info("Updated user_id=%s", user_id)
    return user


def delete_user(db: Session, user_id: int, acting_user_id: Optional[int]) -> None:
    user = get_user(db, user_id)
    if acting_user_id is not None and user_id == acting_user_id:
        raise ValidationError("You cannot delete your own account", back_url=LIST_URL)
    with unit_of_work(db, "delete user"):
        db.delete(user)
    logger.info("Deleted user_id=%s", user_id)
