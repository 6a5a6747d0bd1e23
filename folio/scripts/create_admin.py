"""
Create Admin Script
Creates the first admin account, or resets the password of an existing
account and makes it an admin.

    python -m folio.scripts.create_admin
"""

import getpass
import logging
import sys
from typing import Callable, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from folio.config import settings
from folio.core.security import hash_password
from folio.database.client import Database, DatabaseClient
from folio.database.migrator import Migrator
from folio.database.tables import profiles, users, utcnow

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def prompt_credentials(
    read_line: Callable[[str], str] = input,
    read_secret: Callable[[str], str] = getpass.getpass,
) -> Tuple[str, str]:
    """Ask for email and password; raises ValueError on invalid input."""
    email = read_line("Admin email: ").strip().lower()
    if "@" not in email:
        raise ValueError("A valid email address is required")

    password = read_secret("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if read_secret("Confirm password: ") != password:
        raise ValueError("Passwords do not match")
    return email, password


def upsert_admin(database: Database, email: str, password: str) -> str:
    """Returns "created" or "updated"."""
    encrypted = hash_password(password)
    now = utcnow()
    with database.transaction() as conn:
        user_id = conn.execute(select(users.c.id).where(users.c.email == email)).scalar_one_or_none()
        if user_id is None:
            user_id = conn.execute(
                users.insert().values(
                    email=email,
                    encrypted_password=encrypted,
                    raw_user_meta_data={},
                    confirmed_at=now,
                    email_confirmed_at=now,
                ).returning(users.c.id)
            ).scalar_one()
            conn.execute(profiles.insert().values(user_id=user_id, email=email, role="admin"))
            return "created"

        conn.execute(
            users.update()
            .where(users.c.id == user_id)
            .values(encrypted_password=encrypted, deleted_at=None, updated_at=now)
        )
        updated = conn.execute(
            profiles.update().where(profiles.c.user_id == user_id).values(role="admin", updated_at=now)
        ).rowcount
        if not updated:
            conn.execute(profiles.insert().values(user_id=user_id, email=email, role="admin"))
        return "updated"


def main():
    try:
        email, password = prompt_credentials()
        database = DatabaseClient.connect_with_retry()
        if not Migrator(database, settings.migrations_dir).run()["success"]:
            raise RuntimeError("Database migrations failed")
        outcome = upsert_admin(database, email, password)
    except (ValueError, RuntimeError, SQLAlchemyError) as e:
        logger.error("Could not create admin: %s", e)
        sys.exit(1)
    except (KeyboardInterrupt, EOFError):
        logger.error("Aborted")
        sys.exit(1)

    logger.info("Admin %s %s", email, outcome)


if __name__ == "__main__":
    main()
