"""
Create the orchestration tables.
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

from grc_sync.infrastructure.db.connection import DatabaseManager, to_async_url
from .base import BaseCommand

PROJECT_ROOT = Path(__file__).resolve().parents[4]


class Command(BaseCommand):
    description = "Create the orchestration tables"

    def add_arguments(self, parser):
        parser.add_argument(
            "--alembic",
            action="store_true",
            help="Upgrade to the latest Alembic revision instead of creating tables from the models",
        )
        parser.add_argument(
            "--drop",
            action="store_true",
            help="Drop every table first (destroys data)",
        )

    def handle(self, **options):
        try:
            if options.get("alembic"):
                self._run_alembic(options.get("database_url"))
            else:
                self.run_async(self._create_tables(options.get("database_url"), options.get("drop", False)))
        except Exception as e:
            self.print_error(f"Migration failed: {e}")
            sys.exit(1)

    async def _create_tables(self, database_url, drop: bool):
        database = DatabaseManager(url=database_url)
        try:
            if drop:
                self.print_warning("Dropping all tables...")
                await database.drop_tables()
            self.print_info("Creating tables...")
            await database.create_tables()
            self.print_success("Tables are up to date")
        finally:
            await database.disconnect()

    def _run_alembic(self, database_url):
        self.print_info("Upgrading to head...")
        config = Config(str(PROJECT_ROOT / "alembic.ini"))
        if database_url:
            config.set_main_option("sqlalchemy.url", to_async_url(database_url))
        command.upgrade(config, "head")
        self.print_success("Migrations completed successfully!")
