"""
Management command run every 2 minutes to ingest PurpleAir readings.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.aqi.ingestion import ReadingIngestor
from apps.buffers.lifecycle import wait_for_population
from apps.core.exceptions import StorageFailure


class Command(BaseCommand):
    help = 'Fetch the latest PurpleAir readings and advance every PM2.5 buffer by one slot'

    def handle(self, *args, **options):
        try:
            result = ReadingIngestor().run_tick()
        except StorageFailure as e:
            raise CommandError(f'Ingestion aborted: {e}')

        # Buffer population must finish before the process exits
        result.failures.extend(wait_for_population(result.initializations))

        if not result.upstream_ok:
            self.stdout.write(self.style.WARNING('PurpleAir request failed, empty readings written'))

        self.stdout.write(
            f'{len(result.processed)} sensors processed, '
            f'{len(result.new_readings)} new readings, '
            f'{len(result.initializations)} buffers initializing'
        )

        if result.failures:
            failed = ', '.join(str(sensor_id) for sensor_id, _ in result.failures)
            raise CommandError(f'Storage failures for sensors: {failed}')

        self.stdout.write(self.style.SUCCESS('Ingestion tick complete'))
