from django.core.management.base import BaseCommand, CommandError

from countries.exceptions import RefreshError
from countries.services import refresh_country_data


class Command(BaseCommand):
    help = "Fetch countries and exchange rates, upsert them and regenerate the summary image."

    def handle(self, *args, **options):
        try:
            report = refresh_country_data()
        except RefreshError as e:
            raise CommandError(f"Refresh failed: {e}") from e

        for failure in report.failures:
            self.stderr.write(f"  {failure.name or '<unnamed>'}: {failure.error}")

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed at {report.last_refreshed_at.isoformat()}: "
            f"{report.inserted} inserted, {report.updated} updated, "
            f"{len(report.failures)} failed, {report.total} total"
        ))
