# ellarises/schemas/events.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from dateutil.rrule import rrulestr
from pydantic import Field, field_validator, model_validator

from ellarises.models.events import EVENT_TYPES, REGISTRATION_STATUSES
from ellarises.schemas.forms import FormModel


class EventTemplateForm(FormModel):
    event_name: str = Field(..., max_length=200)
    event_type: str
    event_description: Optional[str] = None
    # iCalendar RRULE, e.g. "FREQ=WEEKLY;BYDAY=SA"
    event_recurrence_pattern: Optional[str] = None
    event_default_capacity: Optional[int] = Field(None, gt=0)

    @field_validator("event_type")
    @classmethod
    def _known_type(cls, v: str) -> str:
        v = v.lower()
        if v not in EVENT_TYPES:
            raise ValueError(f"event type must be one of {', '.join(EVENT_TYPES)}")
        return v

    @field_validator("event_recurrence_pattern")
    @classmethod
    def _valid_rrule(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.upper()
        if v.startswith("RRULE:"):
            v = v[len("RRULE:"):]
        try:
            rrulestr(v, dtstart=datetime(2000, 1, 1))
        except (ValueError, TypeError) as exc:
            raise ValueError(f"recurrence must be an iCalendar RRULE ({exc})") from exc
        return v


class LocationForm(FormModel):
    location_name: str = Field(..., max_length=200)
    location_capacity: int = Field(..., gt=0)


class OccurrenceForm(FormModel):
    event_template_id: int
    location_id: Optional[int] = None
    start_at: datetime
    end_at: datetime
    registration_deadline: Optional[datetime] = None
    capacity: Optional[int] = Field(None, gt=0)

    # >1 schedules a series following the template's recurrence pattern
    repeat_count: int = Field(1, ge=1, le=52)

    @model_validator(mode="after")
    def _ordered_times(self) -> "OccurrenceForm":
        if self.end_at < self.start_at:
            raise ValueError("end_at must be greater than or equal to start_at.")
        if self.registration_deadline is not None and self.registration_deadline > self.start_at:
            raise ValueError("registration_deadline must not be after start_at.")
        return self


class RegistrationStatusForm(FormModel):
    registration_status: str

    @field_validator("registration_status")
    @classmethod
    def _known_status(cls, v: str) -> str:
        v = v.lower()
        if v not in REGISTRATION_STATUSES:
            raise ValueError(f"status must be one of {', '.join(REGISTRATION_STATUSES)}")
        return v
