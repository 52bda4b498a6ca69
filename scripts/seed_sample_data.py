# scripts/seed_sample_data.py
"""
Load a small demo data set through the service layer.

Usage (from repo root):
  python scripts/seed_sample_data.py            # seed an empty database
  python scripts/seed_sample_data.py --create   # create tables first (SQLite/dev)

Participants, milestones, donations, two event templates with a few
occurrences, registrations and surveys. Refuses to run when participants
already exist.
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

HERE = Path(__file__).resolve()
REPO_ROOT = HERE.parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import func, select  # noqa: E402

from ellarises.db import SessionLocal, init_db  # noqa: E402
from ellarises.models.participants import Participant  # noqa: E402
from ellarises.schemas.events import EventTemplateForm, LocationForm, OccurrenceForm  # noqa: E402
from ellarises.schemas.forms import parse_form  # noqa: E402
from ellarises.schemas.participants import ParticipantForm  # noqa: E402
from ellarises.schemas.surveys import SurveyForm  # noqa: E402
from ellarises.services import donations as donations_svc  # noqa: E402
from ellarises.services import events as events_svc  # noqa: E402
from ellarises.services import milestones as milestones_svc  # noqa: E402
from ellarises.services import participants as participants_svc  # noqa: E402
from ellarises.services import registrations as registrations_svc  # noqa: E402
from ellarises.services import surveys as surveys_svc  # noqa: E402

logger = logging.getLogger("seed_sample_data")

FIRST_NAMES = ["Ana", "Bianca", "Camila", "Daniela", "Elena", "Fernanda", "Gabriela", "Isabel", "Lucia", "Mariana"]
LAST_NAMES = ["Garcia", "Lopez", "Martinez", "Hernandez", "Gonzalez", "Perez", "Sanchez", "Ramirez", "Torres", "Flores"]
CITIES = [("Provo", "UT", "84601"), ("Orem", "UT", "84057"), ("Salt Lake City", "UT", "84101")]
MILESTONES = ["Joined program", "First workshop", "Completed STEAM summit", "Mentor matched", "College application"]


def seed(db, rng: random.Random) -> None:
    participants = []
    for i, (first, last) in enumerate(zip(FIRST_NAMES, LAST_NAMES)):
        city, state, zip_code = rng.choice(CITIES)
        form = parse_form(
            ParticipantForm,
            {
                "part_email": f"{first}.{last}@example.org".lower(),
                "part_role": "participant" if i < 8 else "volunteer",
                "part_first_name": first,
                "part_last_name": last,
                "part_dob": date(2008 + i % 5, 1 + i, 10 + i).isoformat(),
                "part_phone": f"801-555-01{i:02d}",
                "part_city": city,
                "part_state": state,
                "part_zip": zip_code,
                "part_interest": rng.choice(["Engineering", "Art", "Medicine", "Computer science"]),
            },
        )
        participants.append(participants_svc.create_participant(db, form))

    for p in participants:
        start = date.today() - timedelta(days=365)
        for n, title in enumerate(MILESTONES[: rng.randint(1, len(MILESTONES))]):
            milestones_svc.add_milestone(db, p.participant_id, title, start + timedelta(days=60 * n))
        for _ in range(rng.randint(0, 3)):
            amount = Decimal(rng.choice([25, 50, 100, 250]))
            donations_svc.add_donation(db, p.participant_id, amount, start + timedelta(days=rng.randint(0, 360)))

    hall = events_svc.create_location(db, parse_form(LocationForm, {"location_name": "Community Hall", "location_capacity": "40"}))
    lab = events_svc.create_location(db, parse_form(LocationForm, {"location_name": "Maker Lab", "location_capacity": "12"}))

    workshop = events_svc.create_template(
        db,
        parse_form(
            EventTemplateForm,
            {
                "event_name": "Saturday STEAM Workshop",
                "event_type": "workshop",
                "event_description": "Hands-on projects with local engineers.",
                "event_recurrence_pattern": "FREQ=WEEKLY;BYDAY=SA",
                "event_default_capacity": "12",
            },
        ),
    )
    summit = events_svc.create_template(
        db,
        parse_form(
            EventTemplateForm,
            {"event_name": "Spring Leadership Summit", "event_type": "summit", "event_default_capacity": "40"},
        ),
    )

    # next Saturday 10:00
    today = datetime.now().replace(hour=10, minute=0, second=0, microsecond=0)
    saturday = today + timedelta(days=(5 - today.weekday()) % 7 or 7)
    upcoming = events_svc.create_occurrences(
        db,
        parse_form(
            OccurrenceForm,
            {
                "event_template_id": str(workshop.event_template_id),
                "location_id": str(lab.location_id),
                "start_at": saturday.isoformat(),
                "end_at": (saturday + timedelta(hours=2)).isoformat(),
                "registration_deadline": (saturday - timedelta(days=1)).isoformat(),
                "repeat_count": "4",
            },
        ),
    )
    past_start = today - timedelta(days=30)
    past = events_svc.create_occurrences(
        db,
        parse_form(
            OccurrenceForm,
            {
                "event_template_id": str(summit.event_template_id),
                "location_id": str(hall.location_id),
                "start_at": past_start.isoformat(),
                "end_at": (past_start + timedelta(hours=6)).isoformat(),
            },
        ),
    )[0]

    # past summit: register (bypassing the deadline check with an earlier clock) and survey
    for p in participants[:6]:
        reg = registrations_svc.register(db, p.participant_id, past.occurrence_id, now=past_start - timedelta(days=7))
        registrations_svc.update_status(db, reg.registration_id, "attended")
        survey = parse_form(
            SurveyForm,
            {
                "survey_satisfaction_score": str(rng.randint(3, 5)),
                "survey_usefulness_score": str(rng.randint(3, 5)),
                "survey_instructor_score": str(rng.randint(3, 5)),
                "survey_recommendation_score": str(rng.randint(5, 10)),
                "survey_comments": "Loved meeting the speakers.",
            },
        )
        surveys_svc.submit_survey(db, reg.registration_id, survey)

    for p in participants[:4]:
        registrations_svc.register(db, p.participant_id, upcoming[0].occurrence_id)

    logger.info(
        "Seeded %s participants, %s upcoming occurrences, 1 past summit with surveys",
        len(participants),
        len(upcoming),
    )


def main() -> int:
    ap = argparse.ArgumentParser(description="Seed Ella Rises demo data.")
    ap.add_argument("--create", action="store_true", help="Create missing tables first")
    ap.add_argument("--seed", type=int, default=42)
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if args.create:
        init_db()

    db = SessionLocal()
    try:
        existing = db.execute(select(func.count()).select_from(Participant)).scalar_one()
        if existing:
            logger.error("Database already has %s participant(s); refusing to seed", existing)
            return 1
        seed(db, random.Random(args.seed))
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
