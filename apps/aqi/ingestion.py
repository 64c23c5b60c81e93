"""
Per-tick PM2.5 ingestion from PurpleAir into the sensor ring buffers.
"""
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from apps.adapters.purpleair import PurpleAirAdapter, PurpleAirReading, PurpleAirReport
from apps.buffers.elements import Pm25BufferElement
from apps.buffers.lifecycle import BufferKind, BufferLifecycle
from apps.core.exceptions import StorageFailure
from apps.sensors.store import SensorStore, to_coordinate
from .errors import SensorReadingError

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    upstream_ok: bool = True
    processed: List[int] = field(default_factory=list)
    new_readings: List[int] = field(default_factory=list)
    failures: List[Tuple[int, StorageFailure]] = field(default_factory=list)
    initializations: List[Tuple[int, Future]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class ReadingIngestor:
    """
    Writes one PM2.5 buffer slot per active sensor on every ingestion tick.

    A sensor gets a real reading only when PurpleAir reported a timestamp
    different from the one last stored; otherwise the slot holds the sentinel
    so that the buffer index keeps tracking wall-clock ticks. Every tick also
    overwrites the sensor's reading diagnostics, with READING_NOT_RECEIVED for
    a sensor PurpleAir did not report.
    """

    def __init__(self, adapter=None, store=None, lifecycle=None, executor=None):
        self.adapter = adapter or PurpleAirAdapter()
        self.store = store or SensorStore()
        self.lifecycle = lifecycle or BufferLifecycle(self.store, executor=executor)

    def fetch(self) -> Optional[Dict[int, PurpleAirReport]]:
        reports = self.adapter.fetch_readings()
        if reports is None:
            return None
        return {report.sensor_id: report for report in reports}

    def run_tick(self) -> IngestResult:
        result = IngestResult()

        reports = self.fetch()
        if reports is None:
            # Buffers still advance so the index stays aligned with time
            logger.error("PurpleAir fetch failed, writing empty readings this tick")
            result.upstream_ok = False
            reports = {}

        sensors = self.store.active_sensors()
        logger.info(f"Ingesting readings for {len(sensors)} active sensors")

        for sensor in sensors:
            try:
                is_new, future = self._process_sensor(sensor, reports.get(sensor.purpleair_id))
            except StorageFailure as e:
                logger.error(f"Skipping sensor {sensor.purpleair_id}: {e}")
                result.failures.append((sensor.purpleair_id, e))
                continue

            result.processed.append(sensor.purpleair_id)
            if is_new:
                result.new_readings.append(sensor.purpleair_id)
            if future is not None:
                result.initializations.append((sensor.purpleair_id, future))

        logger.info(
            f"Ingestion tick done: {len(result.new_readings)} new readings, "
            f"{len(result.failures)} failures"
        )
        return result

    @staticmethod
    def is_new_reading(sensor, reading: Optional[PurpleAirReading]) -> bool:
        if reading is None:
            return False
        return sensor.last_reading_time is None or sensor.last_reading_time != reading.timestamp

    def _process_sensor(self, sensor, report: Optional[PurpleAirReport]):
        if report is None:
            reading, errors = None, [SensorReadingError.READING_NOT_RECEIVED]
        else:
            reading, errors = report.reading, report.errors

        fields = {'sensor_reading_errors': [error.value for error in errors]}

        if self.is_new_reading(sensor, reading):
            element = Pm25BufferElement(
                timestamp=reading.timestamp,
                concentration=reading.pm25,
                channel_divergence=reading.mean_percent_difference,
                humidity=reading.humidity,
            )
            self.store.record_reading(sensor, reading)
            fields.update({
                'name': reading.name,
                'lat': to_coordinate(reading.latitude),
                'lon': to_coordinate(reading.longitude),
                'last_reading_time': reading.timestamp,
            })
            is_new = True
        else:
            element = Pm25BufferElement.default()
            is_new = False

        write = self.lifecycle.plan_write(sensor, BufferKind.PM25, element)
        fields.update(write.fields)
        self.store.update_sensor(sensor.pk, fields)

        return is_new, self.lifecycle.apply(sensor.pk, write)
