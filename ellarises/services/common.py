# ellarises/services/common.py
"""Transaction, numbering and uniqueness helpers shared by the services."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.errors import AppError, DuplicateError, NotFoundError, StoreError
from ellarises.models.participants import Participant

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Unique indexes on the two email columns (PostgreSQL reports the index name)
EMAIL_UNIQUE_INDEXES = frozenset({"ix_users_email", "ix_participant_info_participant_email"})
# SQLite reports "UNIQUE constraint failed: <table>.<column>"
EMAIL_UNIQUE_COLUMNS = ("users.email", "participant_info.participant_email")


def is_duplicate_email(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint in EMAIL_UNIQUE_INDEXES
    message = str(orig)
    return any(f"UNIQUE constraint failed: {col}" in message for col in EMAIL_UNIQUE_COLUMNS)


@contextmanager
def unit_of_work(db: Session, action: str) -> Iterator[Session]:
    """
    Run one write as one transaction: commit on success, roll back on any error.

    Unique-email violations surface as DuplicateError; every other database
    failure becomes StoreError("Unable to <action>").
    """
    try:
        yield db
        db.commit()
    except AppError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if is_duplicate_email(exc):
            raise DuplicateError() from exc
        logger.warning("Integrity error while trying to %s: %s", action, exc.orig)
        raise StoreError(f"Unable to {action}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error while trying to %s", action)
        raise StoreError(f"Unable to {action}") from exc


def get_or_404(db: Session, model: Type[T], ident: Any, label: str, back_url: Optional[str] = None) -> T:
    obj = db.get(model, ident)
    if obj is None:
        raise NotFoundError(f"{label} not found", back_url=back_url)
    return obj


def lock_participant(db: Session, participant_id: int) -> Participant:
    """SELECT ... FOR UPDATE on the owning participant (serializes numbering per owner)."""
    participant = (
        db.execute(
            select(Participant).where(Participant.participant_id == participant_id).with_for_update()
        )
        .scalars()
        .first()
    )
    if participant is None:
        raise NotFoundError("Participant not found", back_url="/viewParticipants")
    return participant


def next_number(db: Session, number_column, owner_column, owner_id: int) -> int:
    """max(number) + 1 for the owner; 1 when the owner has no rows yet."""
    current = db.execute(select(func.max(number_column)).where(owner_column == owner_id)).scalar()
    return int(current or 0) + 1


def ensure_email_available(db: Session, email_column, email: str, current: Optional[str] = None) -> None:
    """
    Reject an email already used by another row of the same table.

    On update pass the stored value as `current`; the lookup is skipped when
    the email did not change.
    """
    email = email.strip().lower()
    if current is not None and email == current.strip().lower():
        return
    taken = db.execute(select(email_column).where(func.lower(email_column) == email).limit(1)).first()
    if taken is not None:
        raise DuplicateError()


def like(q: Optional[str]) -> Optional[str]:
    q = (q or "").strip()
    if not q:
        return None
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
