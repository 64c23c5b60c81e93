"""
Per-tick AQI computation for every active sensor.
"""
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from django.utils import timezone

from apps.buffers.elements import AqiBufferElement
from apps.buffers.lifecycle import BufferKind, BufferLifecycle, BufferState
from apps.core.exceptions import StorageFailure
from apps.core.utils import serialize_datetime
from apps.sensors.store import SensorStore
from .cleaning import ReadingCleaner
from .errors import InvalidAqiError
from .mapper import AqiMapper
from .nowcast import NowCastEstimator
from .windows import HourlyWindowExtractor

logger = logging.getLogger(__name__)


@dataclass
class AqiOutcome:
    """Result of the AQI computation for one sensor on one tick."""
    nowcast_concentration: Optional[float] = None
    aqi: Optional[int] = None
    errors: List[InvalidAqiError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.aqi is not None and not self.errors


@dataclass
class TickResult:
    processed: List[int] = field(default_factory=list)
    failures: List[Tuple[Optional[int], StorageFailure]] = field(default_factory=list)
    initializations: List[Tuple[int, Future]] = field(default_factory=list)
    snapshot: Dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def _as_float(value):
    return float(value) if value is not None else None


class SensorAqiOrchestrator:
    """
    Runs the AQI pipeline for every active sensor:
    1. Reconstruct the last 12 hourly windows from the PM2.5 buffer
    2. Average and correct each hour
    3. NowCast the hourly values and map the result onto the AQI
    4. Record the AQI in the sensor's AQI buffer
    5. Publish one snapshot document covering all sensors

    Sensors are processed one after another. A storage failure on one sensor
    is logged and reported in the result, and the sensor is published as
    invalid; the remaining sensors still run.
    """

    def __init__(self, store=None, lifecycle=None, executor=None):
        self.store = store or SensorStore()
        self.lifecycle = lifecycle or BufferLifecycle(self.store, executor=executor)
        self.extractor = HourlyWindowExtractor()
        self.cleaner = ReadingCleaner()
        self.nowcast = NowCastEstimator()
        self.mapper = AqiMapper()

    def run_tick(self, now=None) -> TickResult:
        now = now or timezone.now()
        result = TickResult()

        sensors = self.store.active_sensors()
        logger.info(f"Calculating AQI for {len(sensors)} active sensors")

        for sensor in sensors:
            try:
                entry, future = self._process_sensor(sensor, now)
            except StorageFailure as e:
                logger.error(f"Skipping sensor {sensor.purpleair_id}: {e}")
                result.failures.append((sensor.purpleair_id, e))
                # Still published, as invalid, with the state it was loaded with
                result.snapshot[str(sensor.purpleair_id)] = self._snapshot_entry(
                    sensor, AqiOutcome(), sensor.last_valid_aqi_time
                )
                continue

            result.processed.append(sensor.purpleair_id)
            result.snapshot[str(sensor.purpleair_id)] = entry
            if future is not None:
                result.initializations.append((sensor.purpleair_id, future))

        try:
            self.store.publish_snapshot(result.snapshot)
        except StorageFailure as e:
            result.failures.append((None, e))

        logger.info(
            f"AQI tick done: {len(result.processed)} processed, "
            f"{len(result.failures)} failures"
        )
        return result

    def compute(self, sensor) -> AqiOutcome:
        """Run the PM2.5 to AQI pipeline for one sensor without writing anything."""
        state = self.lifecycle.state_of(sensor, BufferKind.PM25)
        if state == BufferState.READY:
            buffer, index = self.lifecycle.load(sensor, BufferKind.PM25)
        else:
            buffer, index = None, 0

        windows = self.extractor.extract(state, buffer, index)
        cleaned = self.cleaner.clean_hours(windows)

        outcome = AqiOutcome(errors=list(cleaned.errors))
        if not self.nowcast.has_quorum(cleaned.values):
            if not outcome.errors:
                outcome.errors.append(InvalidAqiError.NOT_ENOUGH_NEW_READINGS)
            return outcome

        outcome.nowcast_concentration = self.nowcast.estimate(cleaned.values)
        aqi = self.mapper.to_aqi(outcome.nowcast_concentration)
        if not self.mapper.is_valid(aqi):
            outcome.errors = [InvalidAqiError.INFINITE_AQI]
            return outcome

        outcome.aqi = aqi
        # One missing recent hour is tolerated once the quorum holds
        outcome.errors = []
        return outcome

    def _process_sensor(self, sensor, now):
        outcome = self.compute(sensor)

        if outcome.is_valid:
            element = AqiBufferElement(timestamp=now, aqi=outcome.aqi)
            last_valid_aqi_time = now
        else:
            logger.info(
                f"Sensor {sensor.purpleair_id} AQI invalid: "
                f"{', '.join(error.value for error in outcome.errors)}"
            )
            element = AqiBufferElement.default()
            last_valid_aqi_time = sensor.last_valid_aqi_time

        write = self.lifecycle.plan_write(sensor, BufferKind.AQI, element)

        fields = dict(write.fields)
        fields['is_valid'] = outcome.is_valid
        fields['invalid_aqi_errors'] = [error.value for error in outcome.errors]
        fields['last_valid_aqi_time'] = last_valid_aqi_time
        self.store.update_sensor(sensor.pk, fields)

        future = self.lifecycle.apply(sensor.pk, write)
        return self._snapshot_entry(sensor, outcome, last_valid_aqi_time), future

    @staticmethod
    def _snapshot_entry(sensor, outcome: AqiOutcome, last_valid_aqi_time) -> Dict:
        return {
            'id': sensor.purpleair_id,
            'sensor_id': sensor.pk,
            'name': sensor.name,
            'lat': _as_float(sensor.lat),
            'lon': _as_float(sensor.lon),
            'nowcast_concentration': outcome.nowcast_concentration,
            'aqi': outcome.aqi,
            'is_valid': outcome.is_valid,
            'last_valid_aqi_time': serialize_datetime(last_valid_aqi_time),
            'last_reading_time': serialize_datetime(sensor.last_reading_time),
        }
