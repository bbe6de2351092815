"""
Run the change listener for one or more organizations until interrupted.
"""

import asyncio

from grc_sync.core.config import get_settings
from .base import BaseCommand


class Command(BaseCommand):
    description = "Listen for table changes and fan them out"

    def add_arguments(self, parser):
        parser.add_argument("org_ids", nargs="*", help="Organizations to listen for (default: SYNC_AUTO_INITIALIZE_ORGS)")

    def handle(self, **options):
        org_ids = options.get("org_ids") or get_settings().sync.auto_initialize_orgs
        if not org_ids:
            self.print_error("No organization given")
            return
        self.run_async(self._listen(org_ids, options.get("database_url")))

    async def _listen(self, org_ids, database_url):
        async with self.open_services(database_url, with_change_feed=True) as services:
            for org_id in org_ids:
                orchestrator = await services.realtime.initialize(org_id)
                self.print_success(f"Listening for org {org_id} ({len(orchestrator.subscription_keys)} tables)")

            self.print_info("Press Ctrl+C to stop")
            try:
                await asyncio.Event().wait()
            finally:
                self.print_info("Listener stopped")
