#!/usr/bin/env python3
"""
Container entrypoint: wait for Postgres, run migrations, seed, then exec uvicorn.
All steps use the same DATABASE_URL as the app.
"""
import os
import sys

from alembic import command
from alembic.config import Config

import wait_for_db
from shuttle.core.config import settings
from shuttle.core.logging_config import configure_logging
from shuttle.db.session import Database
from shuttle.seed import run as run_seed


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    wait_for_db.wait(settings.DATABASE_URL, int(os.getenv("DB_WAIT_TIMEOUT", "60")))

    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(alembic_cfg, "head")

    # Seed with its own engine, created after migrations; the API opens another in its lifespan
    seed_database = Database()
    try:
        run_seed(seed_database.session())
    finally:
        seed_database.dispose()

    os.execv(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "shuttle.main:app", "--host", "0.0.0.0", "--port", os.getenv("PORT", "8000")],
    )


if __name__ == "__main__":
    main()
