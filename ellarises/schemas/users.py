# ellarises/schemas/users.py
from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator, model_validator

from ellarises.models.users import LEVEL_MANAGER, LEVEL_USER
from ellarises.schemas.forms import Email, FormModel

MIN_PASSWORD_LENGTH = 8


def _check_level(v: str) -> str:
    v = v.lower()
    if v not in (LEVEL_MANAGER, LEVEL_USER):
        raise ValueError("level must be 'm' (manager) or 'u' (user)")
    return v


class LoginForm(FormModel):
    email: Email
    password: str


class SignupForm(FormModel):
    email: Email
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self) -> "SignupForm":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserForm(FormModel):
    email: Email
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    level: str = LEVEL_USER
    participant_id: Optional[int] = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        return _check_level(v)


class UserEditForm(FormModel):
    email: Email
    # blank keeps the current password
    password: Optional[str] = Field(None, min_length=MIN_PASSWORD_LENGTH)
    level: str = LEVEL_USER
    participant_id: Optional[int] = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        return _check_level(v)
