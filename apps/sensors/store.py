"""
Document-store access for sensor records.

Every engine read and write goes through ``SensorStore`` so that database
errors surface as ``StorageFailure`` and nothing else.
"""
import functools
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import DatabaseError
from django.utils import timezone

from apps.buffers.lifecycle import BufferKind, BufferState
from apps.core.exceptions import StorageFailure
from .models import Sensor, SensorReading, CurrentReading

logger = logging.getLogger(__name__)


def storage_operation(description):
    """Translate DatabaseError raised by ``fn`` into StorageFailure."""
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except DatabaseError as e:
                logger.error(f"Storage failure during {description}: {e}")
                raise StorageFailure(description, e) from e
        return wrapper
    return decorator


def to_coordinate(value) -> Optional[Decimal]:
    if value is None:
        return None
    return round(Decimal(str(value)), 6)


class SensorStore:
    """
    Repository over the Sensor, SensorReading and CurrentReading models.
    """

    SNAPSHOT_KEY = 'sensors'

    @storage_operation('load active sensors')
    def active_sensors(self) -> List[Sensor]:
        return list(Sensor.objects.filter(is_active=True).order_by('purpleair_id'))

    @storage_operation('load sensor')
    def get_sensor(self, purpleair_id) -> Optional[Sensor]:
        return Sensor.objects.filter(purpleair_id=purpleair_id).first()

    @storage_operation('update sensor')
    def update_sensor(self, sensor_id, fields: Dict) -> None:
        """Partial update of one sensor record."""
        Sensor.objects.filter(pk=sensor_id).update(updated_at=timezone.now(), **fields)

    @storage_operation('claim buffer initialization')
    def claim_buffer_initialization(self, sensor_id, kind: BufferKind) -> bool:
        """
        Move a buffer from missing to initializing.
        Returns False when the buffer was not missing any more.
        """
        updated = Sensor.objects.filter(
            pk=sensor_id,
            **{kind.status_field: BufferState.MISSING},
        ).update(
            updated_at=timezone.now(),
            **{kind.status_field: BufferState.INITIALIZING},
        )
        return updated == 1

    @storage_operation('populate buffer')
    def complete_buffer_initialization(self, sensor_id, kind: BufferKind, buffer) -> bool:
        """
        Store a freshly populated buffer and mark it ready, only if it is
        still initializing (the sensor may have been reset meanwhile).
        """
        updated = Sensor.objects.filter(
            pk=sensor_id,
            **{kind.status_field: BufferState.INITIALIZING},
        ).update(
            updated_at=timezone.now(),
            **{
                kind.buffer_field: kind.dump(buffer),
                kind.index_field: 0,
                kind.status_field: BufferState.READY,
            },
        )
        return updated == 1

    @storage_operation('release buffer initialization')
    def release_buffer_initialization(self, sensor_id, kind: BufferKind) -> bool:
        """Hand a claimed buffer back to missing after a failed population."""
        updated = Sensor.objects.filter(
            pk=sensor_id,
            **{kind.status_field: BufferState.INITIALIZING},
        ).update(
            updated_at=timezone.now(),
            **{
                kind.buffer_field: [],
                kind.index_field: 0,
                kind.status_field: BufferState.MISSING,
            },
        )
        return updated == 1

    @storage_operation('reset buffers')
    def reset_buffers(self, sensor_id) -> None:
        fields = {}
        for kind in BufferKind:
            fields[kind.buffer_field] = []
            fields[kind.index_field] = 0
            fields[kind.status_field] = BufferState.MISSING
        Sensor.objects.filter(pk=sensor_id).update(updated_at=timezone.now(), **fields)

    @storage_operation('record reading')
    def record_reading(self, sensor: Sensor, reading) -> SensorReading:
        """Store a PurpleAir reading in the historical readings table."""
        record, _ = SensorReading.objects.get_or_create(
            sensor=sensor,
            timestamp=reading.timestamp,
            defaults={
                'pm25': reading.pm25,
                'humidity': reading.humidity,
                'mean_percent_difference': reading.mean_percent_difference,
                'lat': to_coordinate(reading.latitude),
                'lon': to_coordinate(reading.longitude),
            }
        )
        return record

    @storage_operation('publish snapshot')
    def publish_snapshot(self, data: Dict) -> CurrentReading:
        """Overwrite the aggregate current-reading document."""
        snapshot, _ = CurrentReading.objects.update_or_create(
            key=self.SNAPSHOT_KEY,
            defaults={'data': data},
        )
        return snapshot

    @storage_operation('load snapshot')
    def get_snapshot(self) -> Optional[CurrentReading]:
        return CurrentReading.objects.filter(key=self.SNAPSHOT_KEY).first()

    @storage_operation('activate sensor')
    def activate_sensor(self, purpleair_id, name: str = '') -> Sensor:
        """Create or re-activate a sensor. Buffers start out missing."""
        sensor, created = Sensor.objects.get_or_create(
            purpleair_id=purpleair_id,
            defaults={'name': name, 'is_active': True},
        )
        if not created and not sensor.is_active:
            sensor.is_active = True
            if name:
                sensor.name = name
            sensor.save(update_fields=['is_active', 'name', 'updated_at'])
        return sensor

    @storage_operation('deactivate sensor')
    def deactivate_sensor(self, purpleair_id) -> Optional[Sensor]:
        """Stop gathering data for a sensor and drop its buffers."""
        sensor = Sensor.objects.filter(purpleair_id=purpleair_id).first()
        if sensor is None:
            return None
        Sensor.objects.filter(pk=sensor.pk).update(is_active=False, is_valid=False)
        self.reset_buffers(sensor.pk)
        sensor.refresh_from_db()
        return sensor
