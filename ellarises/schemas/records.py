# ellarises/schemas/records.py
"""Milestone and donation forms (numbered child rows of a participant)."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import Field

from ellarises.schemas.forms import FormModel


class MilestoneForm(FormModel):
    milestone_title: str = Field(..., max_length=200)
    milestone_date: date


class GlobalMilestoneForm(MilestoneForm):
    participant_id: int


class DonationForm(FormModel):
    donation_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    donation_date: date


class GlobalDonationForm(DonationForm):
    participant_id: int
