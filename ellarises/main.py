import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

import uvicorn
from fastapi import Depends, FastAPI
from starlette.middleware.sessions import SessionMiddleware

# Ensure all SQLAlchemy models are imported so relationships resolve
import ellarises.models  # noqa: F401

from ellarises.api import (
    accounts,       # /login, /logout, /signup
    donations,      # /viewDonations, /donate, /recomputeTotals
    events,         # /viewEvents, occurrences, locations
    milestones,     # /viewMilestones
    pages,          # /, /about, /contact, /privacy
    participants,   # /viewParticipants, /createParticipant
    registrations,  # /register, /viewRegistrations
    surveys,        # /viewSurveys, /takeSurvey
    users,          # /viewUsers
)
from ellarises.api.system import router as system_router  # /health, /version
from ellarises.auth import authorize
from ellarises.config import AppConfig, settings
from ellarises.db import init_db
from ellarises.errors import register_exception_handlers

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def configure_logging(config: AppConfig) -> None:
    """Console handler always; rotating file handler (10MB x 5) when LOG_FILE is set."""
    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    if not any(getattr(h, "_ellarises", False) for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler._ellarises = True
        root_logger.addHandler(console_handler)

        if config.log_file:
            file_handler = RotatingFileHandler(
                config.log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            file_handler._ellarises = True
            root_logger.addHandler(file_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        logger.info("AUTO_CREATE_TABLES set; creating missing tables")
        init_db()
    logger.info("Ella Rises started (env=%s)", settings.env)
    yield


configure_logging(settings)

# The gate runs before every route
app = FastAPI(title="Ella Rises Admin", lifespan=lifespan, dependencies=[Depends(authorize)])

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie="ellarises_session",
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.session_https_only,
)

register_exception_handlers(app)

# Routers
app.include_router(system_router)  # /health, /version
app.include_router(pages.router)
app.include_router(accounts.router)

app.include_router(participants.router)
app.include_router(milestones.router)
app.include_router(donations.router)

app.include_router(events.router)
app.include_router(registrations.router)
app.include_router(surveys.router)

# Users (manager)
app.include_router(users.router)


if __name__ == "__main__":
    uvicorn.run("ellarises.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
