# ellarises/schemas/participants.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from ellarises.models.participants import PARTICIPANT_ROLES
from ellarises.schemas.forms import Email, FormModel


class ParticipantDetails(FormModel):
    """Fields a participant can fill in about themselves."""

    part_first_name: str = Field(..., max_length=100)
    part_last_name: str = Field(..., max_length=100)
    part_dob: date
    part_phone: str = Field(..., max_length=30)
    part_city: str = Field(..., max_length=100)
    part_state: str = Field(..., max_length=50)
    part_zip: str = Field(..., max_length=10)
    part_school: Optional[str] = Field(None, max_length=200)
    part_interest: Optional[str] = Field(None, max_length=100)

    @field_validator("part_dob")
    @classmethod
    def _dob_in_past(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("date of birth cannot be in the future")
        return v

    def columns(self) -> Dict[str, Any]:
        return {
            "participant_first_name": self.part_first_name,
            "participant_last_name": self.part_last_name,
            "participant_dob": self.part_dob,
            "participant_phone": self.part_phone,
            "participant_city": self.part_city,
            "participant_state": self.part_state,
            "participant_zip": self.part_zip,
            "participant_school_or_employer": self.part_school,
            "participant_field_of_interest": self.part_interest,
        }


class ParticipantForm(ParticipantDetails):
    """Manager add/edit form."""

    part_email: Email
    part_role: str

    @field_validator("part_role")
    @classmethod
    def _known_role(cls, v: str) -> str:
        v = v.lower()
        if v not in PARTICIPANT_ROLES:
            raise ValueError(f"role must be one of {', '.join(PARTICIPANT_ROLES)}")
        return v

    def columns(self) -> Dict[str, Any]:
        out = super().columns()
        out["participant_email"] = self.part_email
        out["participant_role"] = self.part_role
        return out


class PublicDonationForm(FormModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: Email
    donation_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    donation_date: Optional[date] = None
