"""
Hourly window reconstruction from the PM2.5 ring buffer.
"""
import logging
from typing import List, Optional

from django.conf import settings

from apps.buffers.elements import Pm25BufferElement
from apps.buffers.lifecycle import BufferState
from apps.buffers.ring import RingBuffer

logger = logging.getLogger(__name__)

HourWindow = Optional[List[Pm25BufferElement]]


class HourlyWindowExtractor:
    """
    Splits the last ``lookback_hours`` of a PM2.5 ring buffer into one-hour
    segments, most recent hour first.

    The write index points at the next slot to write, i.e. just past the
    newest reading, so hour ``h`` spans
    ``[idx - (h + 1) * T, idx - h * T)`` modulo the capacity.
    """

    def __init__(self, lookback_hours: int = None, readings_per_hour: int = None):
        aq_settings = settings.AIR_QUALITY_SETTINGS
        self.lookback_hours = lookback_hours or aq_settings.get('LOOKBACK_HOURS', 12)
        self.readings_per_hour = readings_per_hour or aq_settings.get('READINGS_PER_HOUR', 30)

    def extract(self, state: BufferState, buffer: Optional[RingBuffer], index: int) -> List[HourWindow]:
        """
        Get the raw readings for each of the last ``lookback_hours`` hours.

        Args:
            state: lifecycle state of the PM2.5 buffer
            buffer: the PM2.5 ring buffer (None when not ready)
            index: current write index of the buffer

        Returns:
            List of ``lookback_hours`` windows, each ``readings_per_hour``
            elements long. Every window is None when the buffer is not ready
            or the index is 0; a partial result is never returned.
        """
        absent = [None] * self.lookback_hours

        if state != BufferState.READY or buffer is None or not index:
            return absent

        if buffer.capacity < self.lookback_hours * self.readings_per_hour:
            logger.error(
                f"PM2.5 buffer capacity {buffer.capacity} is smaller than "
                f"{self.lookback_hours} hours of readings"
            )
            return absent

        windows: List[HourWindow] = []
        for hours_ago in range(self.lookback_hours):
            end = buffer.wrap(index - hours_ago * self.readings_per_hour)
            start = buffer.wrap(end - self.readings_per_hour)
            if start == end:
                # One hour fills the whole buffer
                windows.append(buffer.ordered_from(start))
            else:
                windows.append(buffer.read_range(start, end))
        return windows
