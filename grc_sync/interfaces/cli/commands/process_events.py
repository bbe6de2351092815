"""
Deliver an organization's pending sync events once.
"""

from .base import BaseCommand


class Command(BaseCommand):
    description = "Process pending sync events once"

    def add_arguments(self, parser):
        parser.add_argument("org_id", help="Organization ID")
        parser.add_argument("--limit", type=int, default=None, help="Maximum number of events")

    def handle(self, **options):
        reports = self.run_async(
            self._process(options["org_id"], options.get("limit"), options.get("database_url"))
        )

        if not reports:
            self.print_info("No pending events")
            return

        for report in reports:
            line = f"{report.event_id}: {report.status.value}"
            if report.failed:
                self.print_warning(f"{line} (failed: {', '.join(report.failed)})")
            else:
                self.print_success(line)

    async def _process(self, org_id, limit, database_url):
        async with self.open_services(database_url) as services:
            return await services.consumer.process_pending(org_id, limit=limit)
