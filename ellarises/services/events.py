# ellarises/services/events.py
from __future__ import annotations

import logging
from datetime import datetime
from itertools import islice
from typing import Dict, List, Optional

from dateutil.rrule import rrulestr
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from ellarises.errors import ValidationError
from ellarises.models.events import EventOccurrence, EventTemplate, LocationCapacity, Registration
from ellarises.schemas.events import EventTemplateForm, LocationForm, OccurrenceForm
from ellarises.services.common import get_or_404, like, unit_of_work

logger = logging.getLogger(__name__)

LIST_URL = "/viewEvents"
LOCATIONS_URL = "/viewLocations"

# Registrations in these states do not hold a seat
INACTIVE_STATUSES = ("cancelled",)


# ─────────────────────────────────────────────────────────────────────────────
# Event templates
# ─────────────────────────────────────────────────────────────────────────────

def list_templates(db: Session) -> List[EventTemplate]:
    return list(db.execute(select(EventTemplate).order_by(EventTemplate.event_name)).scalars().all())


def get_template(db: Session, template_id: int) -> EventTemplate:
    return get_or_404(db, EventTemplate, template_id, "Event", back_url=LIST_URL)


def create_template(db: Session, form: EventTemplateForm) -> EventTemplate:
    with unit_of_work(db, "add event"):
        tpl = EventTemplate(**form.model_dump())
        db.add(tpl)
        db.flush()
    logger.info("Created event_template_id=%s", tpl.event_template_id)
    return tpl


def update_template(db: Session, template_id: int, form: EventTemplateForm) -> EventTemplate:
    tpl = get_template(db, template_id)
    with unit_of_work(db, "update event"):
        for key, value in form.model_dump().items():
            setattr(tpl, key, value)
    logger.info("Updated event_template_id=%s", template_id)
    return tpl


def delete_template(db: Session, template_id: int) -> None:
    """Deletes the template with all its occurrences and their registrations."""
    tpl = get_template(db, template_id)
    with unit_of_work(db, "delete event"):
        db.delete(tpl)
    logger.info("Deleted event_template_id=%s", template_id)


# ─────────────────────────────────────────────────────────────────────────────
# Locations
# ─────────────────────────────────────────────────────────────────────────────

def list_locations(db: Session) -> List[LocationCapacity]:
    return list(db.execute(select(LocationCapacity).order_by(LocationCapacity.location_name)).scalars().all())


def get_location(db: Session, location_id: int) -> LocationCapacity:
    return get_or_404(db, LocationCapacity, location_id, "Location", back_url=LOCATIONS_URL)


def _ensure_location_name_free(db: Session, name: str, current_id: Optional[int] = None) -> None:
    stmt = select(LocationCapacity.location_id).where(func.lower(LocationCapacity.location_name) == name.lower())
    found = db.execute(stmt).scalar()
    if found is not None and found != current_id:
        raise ValidationError("Location name already in use")


def create_location(db: Session, form: LocationForm) -> LocationCapacity:
    with unit_of_work(db, "add location"):
        _ensure_location_name_free(db, form.location_name)
        loc = LocationCapacity(**form.model_dump())
        db.add(loc)
        db.flush()
    logger.info("Created location_id=%s", loc.location_id)
    return loc


def update_location(db: Session, location_id: int, form: LocationForm) -> LocationCapacity:
    loc = get_location(db, location_id)
    with unit_of_work(db, "update location"):
        _ensure_location_name_free(db, form.location_name, current_id=location_id)
        loc.location_name = form.location_name
        loc.location_capacity = form.location_capacity
    logger.info("Updated location_id=%s", location_id)
    return loc


def delete_location(db: Session, location_id: int) -> None:
    """Occurrences held there keep existing without a venue."""
    loc = get_location(db, location_id)
    with unit_of_work(db, "delete location"):
        db.delete(loc)
    logger.info("Deleted location_id=%s", location_id)


# ─────────────────────────────────────────────────────────────────────────────
# Occurrences
# ─────────────────────────────────────────────────────────────────────────────

def _occurrence_query():
    return (
        select(EventOccurrence)
        .join(EventTemplate, EventTemplate.event_template_id == EventOccurrence.event_template_id)
        .options(joinedload(EventOccurrence.template), joinedload(EventOccurrence.location))
    )


def list_occurrences(db: Session) -> List[EventOccurrence]:
    stmt = _occurrence_query().order_by(EventOccurrence.start_at.desc())
    return list(db.execute(stmt).scalars().unique().all())


def search_occurrences(db: Session, q: Optional[str]) -> List[EventOccurrence]:
    pattern = like(q)
    if pattern is None:
        return list_occurrences(db)
    stmt = (
        _occurrence_query()
        .where(
            or_(
                EventTemplate.event_name.ilike(pattern, escape="\\"),
                EventTemplate.event_type.ilike(pattern, escape="\\"),
                EventTemplate.event_description.ilike(pattern, escape="\\"),
            )
        )
        .order_by(EventOccurrence.start_at.desc())
    )
    return list(db.execute(stmt).scalars().unique().all())


def get_occurrence(db: Session, occurrence_id: int) -> EventOccurrence:
    return get_or_404(db, EventOccurrence, occurrence_id, "Event occurrence", back_url=LIST_URL)


def _check_refs(db: Session, form: OccurrenceForm) -> EventTemplate:
    tpl = db.get(EventTemplate, form.event_template_id)
    if tpl is None:
        raise ValidationError("Selected event does not exist")
    if form.location_id is not None and db.get(LocationCapacity, form.location_id) is None:
        raise ValidationError("Selected location does not exist")
    return tpl


def series_starts(pattern: Optional[str], first_start: datetime, count: int) -> List[datetime]:
    """
    Start times for `count` occurrences following the template's RRULE.

    The first occurrence is always `first_start`; the rule may end the series
    early (COUNT/UNTIL).
    """
    if count <= 1:
        return [first_start]
    if not pattern:
        raise ValidationError("This event has no recurrence pattern; schedule one occurrence at a time")
    rule = rrulestr(pattern, dtstart=first_start)
    starts = [first_start]
    for inst in islice(rule, count):
        if inst != first_start and len(starts) < count:
            starts.append(inst)
    return starts


def create_occurrences(db: Session, form: OccurrenceForm) -> List[EventOccurrence]:
    created: List[EventOccurrence] = []
    with unit_of_work(db, "add event occurrence"):
        tpl = _check_refs(db, form)
        duration = form.end_at - form.start_at
        lead = (form.start_at - form.registration_deadline) if form.registration_deadline else None

        for start in series_starts(tpl.event_recurrence_pattern, form.start_at, form.repeat_count):
            occ = EventOccurrence(
                event_template_id=tpl.event_template_id,
                location_id=form.location_id,
                start_at=start,
                end_at=start + duration,
                registration_deadline=(start - lead) if lead is not None else None,
                capacity=form.capacity,
            )
            db.add(occ)
            created.append(occ)
        db.flush()
    logger.info(
        "Created %s occurrence(s) for event_template_id=%s", len(created), form.event_template_id
    )
    return created


def update_occurrence(db: Session, occurrence_id: int, form: OccurrenceForm) -> EventOccurrence:
    occ = get_occurrence(db, occurrence_id)
    with unit_of_work(db, "update event occurrence"):
        _check_refs(db, form)
        occ.event_template_id = form.event_template_id
        occ.location_id = form.location_id
        occ.start_at = form.start_at
        occ.end_at = form.end_at
        occ.registration_deadline = form.registration_deadline
        occ.capacity = form.capacity
    logger.info("Updated occurrence_id=%s", occurrence_id)
    return occ


def delete_occurrence(db: Session, occurrence_id: int) -> None:
    occ = get_occurrence(db, occurrence_id)
    with unit_of_work(db, "delete event occurrence"):
        db.delete(occ)
    logger.info("Deleted occurrence_id=%s", occurrence_id)


def seats_taken(db: Session, occurrence_ids: List[int]) -> Dict[int, int]:
    if not occurrence_ids:
        return {}
    stmt = (
        select(Registration.occurrence_id, func.count())
        .where(
            Registration.occurrence_id.in_(occurrence_ids),
            Registration.registration_status.notin_(INACTIVE_STATUSES),
        )
        .group_by(Registration.occurrence_id)
    )
    return {occ_id: int(n) for occ_id, n in db.execute(stmt).all()}


def upcoming_open(db: Session, now: Optional[datetime] = None) -> List[EventOccurrence]:
    """Future occurrences whose registration deadline has not passed."""
    now = now or datetime.now()
    stmt = (
        _occurrence_query()
        .where(
            EventOccurrence.start_at > now,
            or_(EventOccurrence.registration_deadline.is_(None), EventOccurrence.registration_deadline >= now),
        )
        .order_by(EventOccurrence.start_at)
    )
    return list(db.execute(stmt).scalars().unique().all())
