from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from ellarises.models.participants import Donation, Participant
from ellarises.schemas.participants import PublicDonationForm
from ellarises.services.common import get_or_404, like, lock_participant, next_number, unit_of_work
from ellarises.services.participants import find_or_create_donor

logger = logging.getLogger(__name__)

LIST_URL = "/viewDonations"


def _base_query():
    return (
        select(Donation)
        .join(Participant, Participant.participant_id == Donation.participant_id)
        .options(joinedload(Donation.participant))
    )


def list_donations(db: Session) -> List[Donation]:
    stmt = _base_query().order_by(Donation.donation_date.desc(), Participant.participant_last_name)
    return list(db.execute(stmt).scalars().all())


def search_donations(db: Session, q: Optional[str]) -> List[Donation]:
    pattern = like(q)
    if pattern is None:
        return list_donations(db)
    stmt = (
        _base_query()
        .where(
            or_(
                Participant.participant_first_name.ilike(pattern, escape="\\"),
                Participant.participant_last_name.ilike(pattern, escape="\\"),
                Participant.participant_email.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Donation.donation_date.desc())
    )
    return list(db.execute(stmt).scalars().all())


def donations_for(db: Session, participant_id: int) -> List[Donation]:
    stmt = select(Donation).where(Donation.participant_id == participant_id).order_by(Donation.donation_number)
    return list(db.execute(stmt).scalars().all())


def get_donation(db: Session, participant_id: int, donation_number: int) -> Donation:
    return get_or_404(db, Donation, (participant_id, donation_number), "Donation", back_url=LIST_URL)


def sum_donations(db: Session, participant_id: int) -> Decimal:
    total = db.execute(
        select(func.coalesce(func.sum(Donation.donation_amount), 0)).where(Donation.participant_id == participant_id)
    ).scalar_one()
    return Decimal(str(total)).quantize(Decimal("0.01"))


def recompute_total(db: Session, participant: Participant) -> Decimal:
    """Rewrite the cached total from the donation rows; caller owns the transaction."""
    db.flush()
    participant.total_donations = sum_donations(db, participant.participant_id)
    return participant.total_donations


def insert_donation(db: Session, participant: Participant, amount: Decimal, when: date) -> Donation:
    """Numbered insert + total refresh inside the caller's transaction (participant already locked)."""
    number = next_number(db, Donation.donation_number, Donation.participant_id, participant.participant_id)
    donation = Donation(
        participant_id=participant.participant_id,
        donation_number=number,
        donation_amount=amount,
        donation_date=when,
    )
    db.add(donation)
    recompute_total(db, participant)
    return donation


def add_donation(db: Session, participant_id: int, amount: Decimal, when: date) -> Donation:
    with unit_of_work(db, "add donation"):
        participant = lock_participant(db, participant_id)
        donation = insert_donation(db, participant, amount, when)
    logger.info("Added donation %s for participant_id=%s", donation.donation_number, participant_id)
    return donation


def update_donation(db: Session, participant_id: int, donation_number: int, amount: Decimal, when: date) -> Donation:
    donation = get_donation(db, participant_id, donation_number)
    with unit_of_work(db, "update donation"):
        participant = lock_participant(db, participant_id)
        donation.donation_amount = amount
        donation.donation_date = when
        recompute_total(db, participant)
    logger.info("Updated donation %s for participant_id=%s", donation_number, participant_id)
    return donation


def delete_donation(db: Session, participant_id: int, donation_number: int) -> None:
    donation = get_donation(db, participant_id, donation_number)
    with unit_of_work(db, "delete donation"):
        participant = lock_participant(db, participant_id)
        db.delete(donation)
        recompute_total(db, participant)
    logger.info("Deleted donation %s for participant_id=%s", donation_number, participant_id)


def recompute_all_totals(db: Session) -> int:
    """Repair every participant's cached total; returns how many changed."""
    changed = 0
    with unit_of_work(db, "recompute donation totals"):
        participants = db.execute(select(Participant).with_for_update()).scalars().all()
        for participant in participants:
            before = Decimal(str(participant.total_donations or 0)).quantize(Decimal("0.01"))
            if recompute_total(db, participant) != before:
                changed += 1
    logger.info("Recomputed donation totals; %s participant(s) changed", changed)
    return changed


def record_public_donation(db: Session, form: PublicDonationForm) -> Donation:
    """Public donation form: find or create the donor, then append a numbered donation."""
    with unit_of_work(db, "record your donation"):
        donor = find_or_create_donor(db, form.first_name, form.last_name, form.email)
        participant = lock_participant(db, donor.participant_id)
        donation = insert_donation(db, participant, form.donation_amount, form.donation_date or date.today())
    logger.info("Public donation %s recorded for participant_id=%s", donation.donation_number, donation.participant_id)
    return donation
