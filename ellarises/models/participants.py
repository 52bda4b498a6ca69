# ellarises/models/participants.py
from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from ellarises.db import Base

PARTICIPANT_ROLES = ["participant", "volunteer", "donor", "mentor", "sponsor"]


class Participant(Base):
    __tablename__ = "participant_info"

    participant_id = Column(Integer, primary_key=True, index=True)
    participant_email = Column(String(255), nullable=False, unique=True, index=True)
    participant_first_name = Column(String(100), nullable=False)
    participant_last_name = Column(String(100), nullable=False)
    participant_dob = Column(Date, nullable=True)
    participant_role = Column(String(20), nullable=False, server_default="participant")
    participant_phone = Column(String(30), nullable=True)
    participant_city = Column(String(100), nullable=True)
    participant_state = Column(String(50), nullable=True)
    participant_zip = Column(String(10), nullable=True)
    participant_school_or_employer = Column(String(200), nullable=True)
    participant_field_of_interest = Column(String(100), nullable=True)

    # Cached SUM(donation_amount); rewritten in the same transaction as every donation write.
    total_donations = Column(Numeric(12, 2), nullable=False, server_default="0")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    milestones = relationship(
        "Milestone",
        back_populates="participant",
        cascade="all, delete-orphan",
        order_by="Milestone.milestone_number",
    )
    donations = relationship(
        "Donation",
        back_populates="participant",
        cascade="all, delete-orphan",
        order_by="Donation.donation_number",
    )
    registrations = relationship(
        "Registration",
        back_populates="participant",
        cascade="all, delete-orphan",
    )
    user = relationship("User", back_populates="participant", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.participant_first_name} {self.participant_last_name}"

    def __repr__(self) -> str:
        return f"<Participant id={self.participant_id} email={self.participant_email!r}>"


class Milestone(Base):
    __tablename__ = "participant_milestones"

    # (participant_id, milestone_number) doubles as the uniqueness backstop for numbering.
    participant_id = Column(
        Integer,
        ForeignKey("participant_info.participant_id", ondelete="CASCADE"),
        primary_key=True,
    )
    milestone_number = Column(Integer, primary_key=True, autoincrement=False)
    milestone_title = Column(String(200), nullable=False)
    milestone_date = Column(Date, nullable=False)

    participant = relationship("Participant", back_populates="milestones")


class Donation(Base):
    __tablename__ = "participant_donations"
    __table_args__ = (CheckConstraint("donation_amount > 0", name="ck_participant_donations_amount_positive"),)

    participant_id = Column(
        Integer,
        ForeignKey("participant_info.participant_id", ondelete="CASCADE"),
        primary_key=True,
    )
    donation_number = Column(Integer, primary_key=True, autoincrement=False)
    donation_amount = Column(Numeric(12, 2), nullable=False)
    donation_date = Column(Date, nullable=False)

    participant = relationship("Participant", back_populates="donations")
