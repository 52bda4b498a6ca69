from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ellarises.db import Base

EVENT_TYPES = ["workshop", "summit", "mentoring", "social", "other"]
REGISTRATION_STATUSES = ["requested", "registered", "attended", "cancelled", "no_show"]


class EventTemplate(Base):
    __tablename__ = "event_templates"

    event_template_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_name: Mapped[str] = mapped_column(String(200), nullable=False)
    event_type: Mapped[str] = mapped_column(String(30), nullable=False, server_default="other")
    event_description: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)

    # iCalendar RRULE string (e.g., "FREQ=MONTHLY;BYDAY=2SA"); None for one-off events
    event_recurrence_pattern: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    event_default_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    occurrences: Mapped[List["EventOccurrence"]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="EventOccurrence.start_at",
    )

    def __repr__(self) -> str:
        return f"<EventTemplate id={self.event_template_id} name={self.event_name!r}>"


class LocationCapacity(Base):
    __tablename__ = "location_capacities"

    location_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    location_name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    location_capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    occurrences: Mapped[List["EventOccurrence"]] = relationship(back_populates="location")


class EventOccurrence(Base):
    __tablename__ = "event_occurrences"

    occurrence_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_template_id: Mapped[int] = mapped_column(
        ForeignKey("event_templates.event_template_id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("location_capacities.location_id", ondelete="SET NULL"), nullable=True
    )

    start_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    registration_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(), nullable=True)

    # Overrides template default / location capacity when set
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    template: Mapped[EventTemplate] = relationship(back_populates="occurrences")
    location: Mapped[Optional[LocationCapacity]] = relationship(back_populates="occurrences")
    registrations: Mapped[List["Registration"]] = relationship(
        back_populates="occurrence",
        cascade="all, delete-orphan",
    )

    @property
    def effective_capacity(self) -> Optional[int]:
        """Occurrence override, then template default, then the venue's capacity."""
        if self.capacity is not None:
            return self.capacity
        if self.template is not None and self.template.event_default_capacity is not None:
            return self.template.event_default_capacity
        if self.location is not None:
            return self.location.location_capacity
        return None

    def __repr__(self) -> str:
        return f"<EventOccurrence id={self.occurrence_id} template={self.event_template_id} start={self.start_at}>"


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("participant_id", "occurrence_id", name="uq_registrations_participant_occurrence"),
    )

    registration_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participant_info.participant_id", ondelete="CASCADE"), nullable=False, index=True
    )
    occurrence_id: Mapped[int] = mapped_column(
        ForeignKey("event_occurrences.occurrence_id", ondelete="CASCADE"), nullable=False, index=True
    )
    registration_status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="requested")
    registration_created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    participant = relationship("Participant", back_populates="registrations")
    occurrence: Mapped[EventOccurrence] = relationship(back_populates="registrations")
    survey = relationship("Survey", back_populates="registration", uselist=False, cascade="all, delete-orphan")
