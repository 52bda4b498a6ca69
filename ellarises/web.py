# ellarises/web.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from ellarises.auth import current_auth

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def money(value: Any) -> str:
    if value is None:
        return "$0.00"
    return f"${Decimal(str(value)):,.2f}"


def when(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "strftime"):
        fmt = "%Y-%m-%d %H:%M" if hasattr(value, "hour") else "%Y-%m-%d"
        return value.strftime(fmt)
    return str(value)


templates.env.filters["money"] = money
templates.env.filters["when"] = when


def render(request: Request, name: str, status_code: int = status.HTTP_200_OK, **context: Any):
    """Render a page with the request's auth context available as `auth`."""
    page: Dict[str, Any] = {"auth": current_auth(request)}
    page.update(context)
    return templates.TemplateResponse(request, name, page, status_code=status_code)


def see_other(url: str) -> RedirectResponse:
    # 303 so a POST is followed by a GET
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


async def form_data(request: Request) -> Dict[str, str]:
    """Form-encoded body as a plain dict (last value wins for repeated keys)."""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


# ─────────────────────────────────────────────────────────────────────────────
# Generic page building blocks (form.html / table.html)
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    type: str = "text"  # text, email, password, date, datetime-local, number, textarea, select
    required: bool = True
    options: Sequence[Tuple[str, str]] = ()
    step: Optional[str] = None


@dataclass(frozen=True)
class Action:
    label: str
    url: str
    method: str = "get"  # "post" renders a small form button


@dataclass
class Row:
    cells: List[Any]
    actions: List[Action] = field(default_factory=list)


def choices(values: Iterable[str]) -> List[Tuple[str, str]]:
    return [(v, v.replace("_", " ").title()) for v in values]


def input_value(value: Any) -> str:
    """Format a stored value for an HTML input."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def form_values(obj: Any, names: Dict[str, str]) -> Dict[str, str]:
    """Map form field names to the current values of `obj` attributes ({field: attribute})."""
    return {name: input_value(getattr(obj, attr, None)) for name, attr in names.items()}
