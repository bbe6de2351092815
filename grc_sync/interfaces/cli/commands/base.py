"""
Base class for every CLI command.
"""

import argparse
import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, List, Optional

from grc_sync.core.logging import setup_logging
from grc_sync.infrastructure.db.connection import DatabaseManager
from grc_sync.services import SyncServices, build_sync_services

GREEN, RED, YELLOW, BLUE, RESET = "\033[92m", "\033[91m", "\033[93m", "\033[94m", "\033[0m"


class BaseCommand(ABC):
    """
    A management command.

    Subclasses declare their options in ``add_arguments`` and do their work in
    ``handle``, which receives the parsed options as keyword arguments.
    Commands that touch the database get a ``--database-url`` option.
    """

    description = "No description provided"
    uses_database = True

    def __init__(self):
        self.parser = argparse.ArgumentParser(description=self.description, add_help=False)
        self.add_arguments(self.parser)
        if self.uses_database:
            self.parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")

    def add_arguments(self, parser: argparse.ArgumentParser):
        pass

    @abstractmethod
    def handle(self, **options):
        ...

    def run(self, args: List[str]):
        options = self.parser.parse_args(args)
        setup_logging()
        self.handle(**vars(options))

    def help(self):
        self.parser.print_help()

    def run_async(self, coroutine: Awaitable[Any]) -> Any:
        return asyncio.run(coroutine)

    def build_services(self, database_url: Optional[str] = None) -> SyncServices:
        return build_sync_services(DatabaseManager(url=database_url))

    @asynccontextmanager
    async def open_services(self, database_url: Optional[str] = None,
                            with_change_feed: bool = False) -> AsyncIterator[SyncServices]:
        """Wired services with the database (and optionally the change feed) connected."""
        services = self.build_services(database_url)
        if with_change_feed:
            await services.start()
        else:
            await services.database.connect()
        try:
            yield services
        finally:
            if with_change_feed:
                await services.stop()
            else:
                await services.database.disconnect()

    def print_success(self, message: str):
        print(f"{GREEN}✓ {message}{RESET}")

    def print_error(self, message: str):
        print(f"{RED}✗ {message}{RESET}")

    def print_warning(self, message: str):
        print(f"{YELLOW}⚠ {message}{RESET}")

    def print_info(self, message: str):
        print(f"{BLUE}ℹ {message}{RESET}")
