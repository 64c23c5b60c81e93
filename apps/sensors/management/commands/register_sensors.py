"""
Management command to activate or deactivate monitored sensors.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import StorageFailure
from apps.sensors.store import SensorStore


class Command(BaseCommand):
    help = 'Activate PurpleAir sensors for AQI monitoring, or deactivate them with --deactivate'

    def add_arguments(self, parser):
        parser.add_argument('purpleair_ids', nargs='+', type=int, help='PurpleAir sensor indexes')
        parser.add_argument('--name', default='', help='Display name (used when a single sensor is given)')
        parser.add_argument(
            '--deactivate',
            action='store_true',
            help='Stop monitoring and drop the ring buffers',
        )

    def handle(self, *args, **options):
        store = SensorStore()
        ids = options['purpleair_ids']
        name = options['name'] if len(ids) == 1 else ''

        try:
            for purpleair_id in ids:
                if options['deactivate']:
                    self.deactivate(store, purpleair_id)
                else:
                    self.activate(store, purpleair_id, name)
        except StorageFailure as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f'\n{len(ids)} sensors updated'))

    def activate(self, store, purpleair_id, name):
        sensor = store.activate_sensor(purpleair_id, name=name)
        self.stdout.write(f'  Activated {sensor}')

    def deactivate(self, store, purpleair_id):
        sensor = store.deactivate_sensor(purpleair_id)
        if sensor is None:
            self.stdout.write(self.style.WARNING(f'  Unknown sensor {purpleair_id}, skipped'))
        else:
            self.stdout.write(f'  Deactivated {sensor}')
