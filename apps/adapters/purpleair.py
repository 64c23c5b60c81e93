"""
PurpleAir adapter for the monitored sensor group.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from apps.aqi.errors import SensorReadingError
from apps.core.constants import (
    MAX_PERCENT_DIFFERENCE,
    PURPLEAIR_CHANNEL_FLAG_NAMES,
    PURPLEAIR_DOWNGRADED_CHANNELS,
    PURPLEAIR_FIELDS,
)
from apps.core.utils import mean_percent_difference_from_confidence, timestamp_to_datetime

from .base import BaseAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurpleAirReading:
    """One complete reading of one sensor from the group query."""
    id: int
    name: str
    latitude: float
    longitude: float
    pm25: float
    humidity: float
    mean_percent_difference: float
    timestamp: datetime


@dataclass(frozen=True)
class PurpleAirReport:
    """
    What the group query said about one sensor: its reading, when complete,
    and the diagnostics raised while parsing it.
    """
    sensor_id: int
    reading: Optional[PurpleAirReading]
    errors: Tuple[SensorReadingError, ...] = field(default_factory=tuple)


def _number(value):
    # bool is an int subclass, PurpleAir never sends it for numeric fields
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


class PurpleAirAdapter(BaseAdapter):
    """
    Adapter for the PurpleAir API.

    Readings come from a single group query covering every monitored sensor.
    Each member row is a list of values ordered like the response's
    ``fields`` list.
    """

    SOURCE_NAME = "PurpleAir"
    SOURCE_CODE = "PURPLEAIR"
    API_BASE_URL = "https://api.purpleair.com/v1/"

    def auth_headers(self) -> Dict:
        """PurpleAir uses X-API-Key header."""
        if self.api_key:
            return {'X-API-Key': self.api_key}
        return {}

    def fetch_readings(self, **kwargs) -> Optional[List[PurpleAirReport]]:
        group_id = kwargs.get('group_id', self.settings.get('PURPLEAIR_GROUP_ID'))
        return self.fetch_group_readings(group_id)

    def fetch_group_readings(self, group_id) -> Optional[List[PurpleAirReport]]:
        """
        Fetch the latest reading of every sensor in a PurpleAir group.

        Only sensors seen within ``PURPLEAIR_MAX_AGE_SECONDS`` are returned
        by PurpleAir.

        Args:
            group_id: PurpleAir group ID

        Returns:
            One PurpleAirReport per returned sensor, or None on request failure
        """
        params = {
            'fields': ','.join(PURPLEAIR_FIELDS),
            'max_age': self.settings.get('PURPLEAIR_MAX_AGE_SECONDS', 240),
        }

        raw_data = self._get_json(f'groups/{group_id}/members', params=params)

        if raw_data is None:
            return None

        return self.normalize_data(raw_data)

    def normalize_data(self, raw_data: Dict) -> List[PurpleAirReport]:
        """
        Normalize the group response to one PurpleAirReport per sensor.

        A row missing any field yields a report without a reading. Rows
        without a sensor index cannot be attributed and are dropped. If either
        channel is downgraded the mean percent difference is forced to its
        maximum, since a single channel cannot be checked for divergence.
        """
        fields = raw_data.get('fields', [])
        data = raw_data.get('data') or []
        flag_names = raw_data.get('channel_flags') or PURPLEAIR_CHANNEL_FLAG_NAMES

        # Create field index map
        field_indices = {field: idx for idx, field in enumerate(fields)}

        reports = []

        for sensor_data in data:
            values = {
                field: sensor_data[idx]
                for field, idx in field_indices.items()
                if idx < len(sensor_data)
            }

            sensor_index = _number(values.get('sensor_index'))
            if not sensor_index:
                logger.debug(f"Dropping PurpleAir row without a sensor index: {sensor_data}")
                continue

            reading, errors = self._parse_reading(values, flag_names)
            if reading is None:
                logger.debug(f"Incomplete PurpleAir reading for sensor {sensor_index}")

            reports.append(PurpleAirReport(sensor_id=int(sensor_index), reading=reading, errors=errors))

        complete = sum(1 for report in reports if report.reading is not None)
        logger.info(f"PurpleAir returned {complete} complete readings out of {len(data)}")
        return reports

    def _parse_reading(self, values: Dict, flag_names: List[str]) -> Tuple[Optional[PurpleAirReading], tuple]:
        sensor_index = _number(values.get('sensor_index'))
        name = values.get('name')
        latitude = _number(values.get('latitude'))
        longitude = _number(values.get('longitude'))
        confidence = _number(values.get('confidence'))
        pm25 = _number(values.get('pm2.5'))
        humidity = _number(values.get('humidity'))
        last_seen = _number(values.get('last_seen'))

        errors = self._downgraded_channels(values.get('channel_flags'), flag_names)

        required = [latitude, longitude, confidence, pm25, humidity]
        if (not sensor_index or not isinstance(name, str) or not last_seen
                or any(value is None for value in required)):
            if humidity is None:
                errors.append(SensorReadingError.NO_HUMIDITY_READING)
            errors.append(SensorReadingError.INCOMPLETE_SENSOR_READING)
            return None, tuple(errors)

        mean_percent_difference = mean_percent_difference_from_confidence(confidence)
        if errors:
            mean_percent_difference = MAX_PERCENT_DIFFERENCE
        if mean_percent_difference > self.settings.get('MAX_MEAN_PERCENT_DIFFERENCE', 0.7):
            errors.append(SensorReadingError.CHANNELS_DIVERGED)

        reading = PurpleAirReading(
            id=int(sensor_index),
            name=name,
            latitude=float(latitude),
            longitude=float(longitude),
            pm25=float(pm25),
            humidity=float(humidity),
            mean_percent_difference=mean_percent_difference,
            timestamp=timestamp_to_datetime(last_seen),
        )
        return reading, tuple(errors)

    @staticmethod
    def _downgraded_channels(flag, flag_names: List[str]) -> List[SensorReadingError]:
        """CHANNEL_A/B_DOWNGRADED codes for a numeric channel_flags value."""
        flag = _number(flag)
        if flag is None or not 0 <= flag < len(flag_names):
            return []
        channels = PURPLEAIR_DOWNGRADED_CHANNELS.get(flag_names[int(flag)], ())
        return [
            SensorReadingError.CHANNEL_A_DOWNGRADED if channel == 'A' else SensorReadingError.CHANNEL_B_DOWNGRADED
            for channel in channels
        ]
