"""
Management command run every 10 minutes to compute sensor AQIs.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.aqi.orchestrator import SensorAqiOrchestrator
from apps.buffers.lifecycle import wait_for_population
from apps.core.exceptions import StorageFailure


class Command(BaseCommand):
    help = 'Compute the NowCast AQI for every active sensor and publish the current readings'

    def handle(self, *args, **options):
        try:
            result = SensorAqiOrchestrator().run_tick()
        except StorageFailure as e:
            raise CommandError(f'AQI calculation aborted: {e}')

        # Buffer population must finish before the process exits
        result.failures.extend(wait_for_population(result.initializations))

        valid = sum(1 for entry in result.snapshot.values() if entry['is_valid'])
        self.stdout.write(f'{len(result.processed)} sensors processed, {valid} with a valid AQI')

        if result.failures:
            failed = ', '.join(str(sensor_id or 'snapshot') for sensor_id, _ in result.failures)
            raise CommandError(f'Storage failures for: {failed}')

        self.stdout.write(self.style.SUCCESS('AQI tick complete'))
