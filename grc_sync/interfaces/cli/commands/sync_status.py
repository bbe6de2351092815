"""
Print the sync status of an organization.
"""

from .base import BaseCommand

STATUS_LINES = (
    ("total events", "total_events", ""),
    ("pending events", "pending_events", ""),
    ("failed events", "failed_events", ""),
    ("success rate", "success_rate", "%"),
)


class Command(BaseCommand):
    description = "Show sync event counts for an organization"

    def add_arguments(self, parser):
        parser.add_argument("org_id", help="Organization ID")

    def handle(self, **options):
        status = self.run_async(self._status(options["org_id"], options.get("database_url")))

        self.print_info(f"Sync status for org {options['org_id']}")
        for label, key, unit in STATUS_LINES:
            print(f"  {label:<20} {status[key]}{unit}")

    async def _status(self, org_id, database_url):
        async with self.open_services(database_url) as services:
            return await services.realtime.get_sync_status(org_id)
