# ellarises/schemas/forms.py
"""Helpers shared by the form schemas: parsing, email normalization."""
from __future__ import annotations

from typing import Annotated, Any, Mapping, Type, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr
from pydantic import ValidationError as PydanticValidationError

from ellarises.errors import ALL_FIELDS_REQUIRED, ValidationError

M = TypeVar("M", bound=BaseModel)


# Syntax checked by email-validator (no DNS lookup), then lower-cased
Email = Annotated[EmailStr, AfterValidator(str.lower)]


class FormModel(BaseModel):
    # Unknown keys (submit buttons, csrf fields, question_N pairs) are ignored
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


def _clean(data: Mapping[str, Any]) -> dict:
    out = {}
    for key, value in data.items():
        if isinstance(value, str):
            value = value.strip()
        if value in ("", None):
            continue  # blank inputs count as missing
        out[key] = value
    return out


def _message(err: dict) -> str:
    msg = str(err.get("msg", "invalid value"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = [str(p) for p in err.get("loc", ()) if p != "__root__"]
    return f"{', '.join(loc)}: {msg}" if loc else msg


def parse_form(schema: Type[M], data: Mapping[str, Any]) -> M:
    """
    Validate a submitted form against `schema`.

    Any missing required field yields the generic "All fields are required";
    otherwise the first field error is reported.
    """
    try:
        return schema.model_validate(_clean(data))
    except PydanticValidationError as exc:
        errors = exc.errors()
        if any(e.get("type") == "missing" for e in errors):
            raise ValidationError(ALL_FIELDS_REQUIRED) from exc
        raise ValidationError(_message(errors[0])) from exc
