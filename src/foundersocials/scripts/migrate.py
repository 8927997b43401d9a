# src/foundersocials/scripts/migrate.py
"""Apply Alembic migrations, or create tables directly for local SQLite runs."""
from __future__ import annotations

import argparse
import logging
import os

from alembic import command
from alembic.config import Config

from foundersocials.core.settings import settings
from foundersocials.db.session import create_tables

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def run_upgrade_head() -> None:
    cfg = Config(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
    # Inject sync URL for Alembic (psycopg driver)
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    command.upgrade(cfg, "head")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--create-all",
        action="store_true",
        help="skip Alembic and create tables from the ORM metadata",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())
    if args.create_all:
        create_tables()
        logger.info("Created tables on %s", settings.database_url_sync)
    else:
        run_upgrade_head()
        logger.info("Database upgraded to head")


if __name__ == "__main__":
    main()
