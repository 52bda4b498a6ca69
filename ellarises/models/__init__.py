# ellarises/models/__init__.py
"""
Central model registry.

Import this once at startup (e.g., in main.py) so SQLAlchemy sees all mapped
classes before relationships referenced by name are resolved.
"""
from ellarises.db import Base  # re-export Base

from .participants import Participant, Milestone, Donation  # noqa: F401
from .users import User  # noqa: F401
from .events import EventTemplate, LocationCapacity, EventOccurrence, Registration  # noqa: F401
from .surveys import Survey, SurveyQuestionResponse  # noqa: F401

__all__ = [
    "Base",
    "Participant",
    "Milestone",
    "Donation",
    "User",
    "EventTemplate",
    "LocationCapacity",
    "EventOccurrence",
    "Registration",
    "Survey",
    "SurveyQuestionResponse",
]
