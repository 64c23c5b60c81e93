"""
Slot types stored in the per-sensor ring buffers.

Both element kinds use ``timestamp=None`` as the default (sentinel) value: a
slot that was never written, or a tick that produced no usable data. Missing
numbers are ``None`` rather than NaN so that JSON storage stays valid and
arithmetic on a missing value fails loudly.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from apps.core.utils import serialize_datetime, parse_datetime


@dataclass(frozen=True)
class Pm25BufferElement:
    """One sub-hourly PurpleAir reading."""
    timestamp: Optional[datetime] = None
    concentration: Optional[float] = None
    channel_divergence: Optional[float] = None
    humidity: Optional[float] = None

    @classmethod
    def default(cls) -> 'Pm25BufferElement':
        return cls()

    @property
    def is_default(self) -> bool:
        return self.timestamp is None

    @property
    def is_complete(self) -> bool:
        """A reading usable for hourly averages."""
        return (
            self.timestamp is not None
            and self.concentration is not None
            and self.channel_divergence is not None
            and self.humidity is not None
        )

    def to_dict(self) -> dict:
        return {
            'timestamp': serialize_datetime(self.timestamp),
            'concentration': self.concentration,
            'channel_divergence': self.channel_divergence,
            'humidity': self.humidity,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'Pm25BufferElement':
        if not data:
            return cls.default()
        return cls(
            timestamp=parse_datetime(data.get('timestamp')),
            concentration=data.get('concentration'),
            channel_divergence=data.get('channel_divergence'),
            humidity=data.get('humidity'),
        )


@dataclass(frozen=True)
class AqiBufferElement:
    """One AQI tick. ``aqi`` is None when the sensor was invalid."""
    timestamp: Optional[datetime] = None
    aqi: Optional[int] = None

    @classmethod
    def default(cls) -> 'AqiBufferElement':
        return cls()

    @property
    def is_default(self) -> bool:
        return self.timestamp is None

    def to_dict(self) -> dict:
        return {
            'timestamp': serialize_datetime(self.timestamp),
            'aqi': self.aqi,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'AqiBufferElement':
        if not data:
            return cls.default()
        return cls(
            timestamp=parse_datetime(data.get('timestamp')),
            aqi=data.get('aqi'),
        )
