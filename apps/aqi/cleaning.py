"""
Hourly averaging and EPA correction of PurpleAir readings.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from django.conf import settings

from apps.buffers.elements import Pm25BufferElement
from apps.core.utils import apply_purpleair_epa_correction
from .errors import InvalidAqiError


@dataclass(frozen=True)
class HourlyAverage:
    concentration: float
    channel_divergence: float
    humidity: float


@dataclass
class CleanedHours:
    """
    Corrected PM2.5 per hour, most recent first. ``None`` marks an hour
    without enough trustworthy data. ``errors`` lists why any of the most
    recent hours were dropped.
    """
    values: List[Optional[float]]
    errors: List[InvalidAqiError] = field(default_factory=list)

    def valid_count(self, hours: int) -> int:
        return sum(1 for value in self.values[:hours] if value is not None)


class ReadingCleaner:
    """
    Turns one hour of raw readings into a corrected concentration.

    An hour is kept when at least ``min_readings`` slots hold a reading.
    Thirty readings an hour at 75% is 22.5, rounded up to 23. The EPA suggests
    90% completeness but accepts 75%, which tolerates flaky sensor uplinks.
    The hour is then dropped again if the mean divergence between the two
    channels exceeds the EPA ceiling of 0.7.
    """

    def __init__(self, min_readings: int = None, max_divergence: float = None, recent_hours: int = None):
        aq_settings = settings.AIR_QUALITY_SETTINGS
        self.min_readings = min_readings or aq_settings.get('MIN_READINGS_PER_HOUR', 23)
        self.max_divergence = max_divergence or aq_settings.get('MAX_MEAN_PERCENT_DIFFERENCE', 0.7)
        self.recent_hours = recent_hours or aq_settings.get('NOWCAST_RECENT_HOURS', 3)

    def average(self, window: Optional[Sequence[Pm25BufferElement]]) -> Optional[HourlyAverage]:
        """Mean of the hour's readings, or None below the completeness threshold."""
        if not window:
            return None

        readings = [element for element in window if element.is_complete]
        if len(readings) < self.min_readings:
            return None

        count = len(readings)
        return HourlyAverage(
            concentration=sum(r.concentration for r in readings) / count,
            channel_divergence=sum(r.channel_divergence for r in readings) / count,
            humidity=sum(r.humidity for r in readings) / count,
        )

    def is_diverged(self, average: HourlyAverage) -> bool:
        return average.channel_divergence > self.max_divergence

    def correct(self, average: Optional[HourlyAverage]) -> Optional[float]:
        """EPA-corrected concentration, or None for a missing or diverged hour."""
        if average is None or self.is_diverged(average):
            return None
        return apply_purpleair_epa_correction(average.concentration, average.humidity)

    def clean(self, window: Optional[Sequence[Pm25BufferElement]]) -> Optional[float]:
        return self.correct(self.average(window))

    def clean_hours(self, windows: Sequence[Optional[Sequence[Pm25BufferElement]]]) -> CleanedHours:
        """
        Clean every hourly window.

        Only hours inside the NowCast recent-data quorum contribute to
        ``errors``: a gap further back cannot invalidate the AQI on its own.
        """
        values: List[Optional[float]] = []
        errors: List[InvalidAqiError] = []

        for hours_ago, window in enumerate(windows):
            average = self.average(window)
            value = self.correct(average)
            values.append(value)

            if value is not None or hours_ago >= self.recent_hours:
                continue
            if average is None:
                reason = InvalidAqiError.NOT_ENOUGH_NEW_READINGS
            else:
                reason = InvalidAqiError.NOT_ENOUGH_RECENT_VALID_READINGS
            if reason not in errors:
                errors.append(reason)

        return CleanedHours(values=values, errors=errors)
