# ellarises/config.py
from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "y", "on"}


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _database_url() -> str:
    """
    Resolve the SQLAlchemy URL.

    DATABASE_URL wins. Otherwise, when DB_HOST is set, compose a PostgreSQL
    URL from the DB_* parts. Otherwise fall back to a local SQLite file.
    """
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url

    host = os.getenv("DB_HOST", "").strip()
    if host:
        query = {"sslmode": "require"} if _flag("DB_SSL") else {}
        return URL.create(
            "postgresql+psycopg2",
            username=os.getenv("DB_USER") or None,
            password=os.getenv("DB_PASSWORD") or None,
            host=host,
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME") or None,
            query=query,
        ).render_as_string(hide_password=False)

    return "sqlite:///./ellarises.db"


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings, read once from the environment (and `.env`)."""

    database_url: str = "sqlite:///./ellarises.db"
    session_secret: str = ""
    session_max_age: int = 14 * 24 * 60 * 60
    session_https_only: bool = False
    env: str = "dev"  # "dev" or "prod"
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    log_file: Optional[str] = None
    auto_create_tables: bool = False
    timezone: str = "UTC"

    @property
    def is_prod(self) -> bool:
        return self.env == "prod"

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        load_dotenv()

        env = os.getenv("ENV", "dev").strip().lower()
        if env not in ("dev", "prod"):
            logger.warning("Invalid ENV %r, falling back to 'dev'", env)
            env = "dev"

        secret = os.getenv("SESSION_SECRET", "").strip()
        if not secret:
            if env == "prod":
                raise RuntimeError("ENV=prod requires SESSION_SECRET to be set.")
            # Sessions will not survive a restart with a per-process secret.
            logger.warning("SESSION_SECRET not set; using a random per-process secret (dev only)")
            secret = secrets.token_urlsafe(32)

        return cls(
            database_url=_database_url(),
            session_secret=secret,
            session_max_age=int(os.getenv("SESSION_MAX_AGE", str(14 * 24 * 60 * 60))),
            session_https_only=_flag("SESSION_HTTPS_ONLY"),
            env=env,
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
            auto_create_tables=_flag("AUTO_CREATE_TABLES"),
            timezone=os.getenv("TZ", "UTC"),
        )


settings = AppConfig.load_from_env()
