"""
Models for monitored sensors, their readings, and the published snapshot.
"""
from django.db import models

from apps.buffers.lifecycle import BufferState
from apps.core.models import TimeStampedModel


class Sensor(TimeStampedModel):
    """
    A PurpleAir sensor and its two ring buffers.

    The buffers are stored inline as JSON lists next to their write index and
    lifecycle status, so one row read gives the engine everything it needs
    for a tick.
    """
    # Identification
    purpleair_id = models.PositiveIntegerField(unique=True, db_index=True)
    name = models.CharField(max_length=200, blank=True)

    # Location (refreshed from each new reading)
    lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    lon = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Status
    is_active = models.BooleanField(default=True, db_index=True)
    is_valid = models.BooleanField(default=False)
    invalid_aqi_errors = models.JSONField(default=list, blank=True)
    # Diagnostics of the latest PurpleAir reading, written every ingestion tick
    sensor_reading_errors = models.JSONField(default=list, blank=True)
    last_valid_aqi_time = models.DateTimeField(null=True, blank=True)
    last_reading_time = models.DateTimeField(null=True, blank=True)

    # PM2.5 ring buffer, one slot per 2-minute ingestion tick
    pm25_buffer = models.JSONField(default=list, blank=True)
    pm25_buffer_index = models.PositiveIntegerField(default=0)
    pm25_buffer_status = models.CharField(
        max_length=20, choices=BufferState.choices, default=BufferState.MISSING
    )

    # AQI ring buffer, one slot per 10-minute AQI tick
    aqi_buffer = models.JSONField(default=list, blank=True)
    aqi_buffer_index = models.PositiveIntegerField(default=0)
    aqi_buffer_status = models.CharField(
        max_length=20, choices=BufferState.choices, default=BufferState.MISSING
    )

    class Meta:
        verbose_name = 'Sensor'
        verbose_name_plural = 'Sensors'
        ordering = ['purpleair_id']

    def __str__(self):
        status = "Active" if self.is_active else "Inactive"
        return f"{self.name or 'Sensor'} ({self.purpleair_id}) - {status}"


class SensorReading(TimeStampedModel):
    """
    Historical PurpleAir reading, one row per new upstream timestamp.
    """
    sensor = models.ForeignKey(Sensor, on_delete=models.CASCADE, related_name='readings')
    timestamp = models.DateTimeField(db_index=True)

    pm25 = models.FloatField()
    humidity = models.FloatField()
    mean_percent_difference = models.FloatField()

    lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    lon = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    class Meta:
        verbose_name = 'Sensor Reading'
        verbose_name_plural = 'Sensor Readings'
        ordering = ['-timestamp']
        unique_together = [['sensor', 'timestamp']]
        indexes = [
            models.Index(fields=['sensor', '-timestamp']),
        ]

    def __str__(self):
        return f"{self.sensor.purpleair_id} - PM2.5 {self.pm25} at {self.timestamp}"


class CurrentReading(models.Model):
    """
    Aggregate document with the latest AQI state of every active sensor.
    Overwritten wholesale by each AQI tick.
    """
    key = models.CharField(max_length=50, unique=True)
    data = models.JSONField(default=dict)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Current Reading'
        verbose_name_plural = 'Current Readings'

    def __str__(self):
        return f"{self.key} ({len(self.data)} sensors) - {self.last_updated}"
