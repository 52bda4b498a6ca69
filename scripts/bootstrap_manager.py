# scripts/bootstrap_manager.py
"""
Create (or promote) the first manager account.

Usage (from repo root):
  MANAGER_EMAIL=director@ellarises.org MANAGER_PASSWORD='...' python scripts/bootstrap_manager.py
  python scripts/bootstrap_manager.py --email director@ellarises.org --password '...'

Idempotent: an existing account with that email is promoted to manager and,
when --reset-password is given, gets the new password.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

HERE = Path(__file__).resolve()
REPO_ROOT = HERE.parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ellarises.db import SessionLocal  # noqa: E402
from ellarises.models.users import LEVEL_MANAGER  # noqa: E402
from ellarises.schemas.forms import parse_form  # noqa: E402
from ellarises.schemas.users import UserForm  # noqa: E402
from ellarises.services import users as users_svc  # noqa: E402
from ellarises.services.common import unit_of_work  # noqa: E402

logger = logging.getLogger("bootstrap_manager")


def main() -> int:
    ap = argparse.ArgumentParser(description="Create or promote an Ella Rises manager account.")
    ap.add_argument("--email", default=os.getenv("MANAGER_EMAIL"))
    ap.add_argument("--password", default=os.getenv("MANAGER_PASSWORD"))
    ap.add_argument("--reset-password", action="store_true", help="Overwrite the password of an existing account")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if not args.email or not args.password:
        ap.error("email and password are required (flags or MANAGER_EMAIL / MANAGER_PASSWORD)")

    form = parse_form(UserForm, {"email": args.email, "password": args.password, "level": LEVEL_MANAGER})

    db = SessionLocal()
    try:
        user = users_svc.find_by_email(db, form.email)
        if user is None:
            user = users_svc.create_user(db, form)
            logger.info("Created manager %s (user_id=%s)", user.email, user.user_id)
            return 0

        with unit_of_work(db, "promote user"):
            user.level = LEVEL_MANAGER
            if args.reset_password:
                user.password_hash = users_svc.hash_password(form.password)
        logger.info("Promoted existing user %s to manager%s", user.email, " (password reset)" if args.reset_password else "")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
