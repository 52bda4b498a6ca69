"""
Error taxonomy and the single place where errors become HTTP responses.

Route handlers and services raise one of the `AppError` subclasses; nothing
below the router layer builds an error response itself.

    ValidationError  -> 400, originating form re-rendered with the message
    DuplicateError   -> 409, same as ValidationError
    NotFoundError    -> 404, error page with a link back to a listing
    StoreError       -> 500, generic "Unable to ..." message, details logged only
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import FastAPI, Request, status
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

ALL_FIELDS_REQUIRED = "All fields are required"


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        template: Optional[str] = None,
        back_url: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.template = template
        self.back_url = back_url
        self.context: Dict[str, Any] = context
        super().__init__(self.message)

    def attach(self, template: str, context: Dict[str, Any]) -> None:
        """Point the error at the view that should be re-rendered, keeping any explicit view."""
        if self.template is None:
            self.template = template
            self.context = {**context, **self.context}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = ALL_FIELDS_REQUIRED


class DuplicateError(ValidationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Email already in use"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found"


class StoreError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unable to complete the request"


@contextmanager
def rerender(template: str, **context: Any) -> Iterator[None]:
    """
    Re-render `template` with `context` when form handling fails.

    Only validation and store errors go back to the form; a missing record
    falls through to the error page.
    """
    try:
        yield
    except (ValidationError, StoreError) as exc:
        exc.attach(template, context)
        raise


def register_exception_handlers(app: FastAPI) -> None:
    # Local imports: auth and web both import this module.
    from ellarises.auth import GateLogin, GateRedirect
    from ellarises.web import render, see_other

    @app.exception_handler(GateRedirect)
    async def _gate_redirect(request: Request, exc: GateRedirect):
        return see_other(exc.target)

    @app.exception_handler(GateLogin)
    async def _gate_login(request: Request, exc: GateLogin):
        return render(request, "login.html", error_message=exc.message)

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
        else:
            logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        context = {**exc.context, "error_message": exc.message, "back_url": exc.back_url}
        return render(request, exc.template or "error.html", status_code=exc.status_code, **context)

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return render(
            request,
            "error.html",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_message=StoreError.default_message,
            back_url="/",
        )
