"""
EPA NowCast for PM2.5.
"""
from typing import Optional, Sequence

from django.conf import settings

from apps.core.constants import NOWCAST_MIN_WEIGHT


class NowCastEstimator:
    """
    Time-weighted average of up to 12 hourly concentrations.

    The faster concentrations change over the window, the more steeply older
    hours are discounted; the per-hour weight factor never drops below 0.5.
    See https://usepa.servicenowservices.com/airnow?id=kb_article&sys_id=fed0037b1b62545040a1a7dbe54bcbd4
    """

    def __init__(self, recent_hours: int = None, recent_valid_hours: int = None):
        aq_settings = settings.AIR_QUALITY_SETTINGS
        self.recent_hours = recent_hours or aq_settings.get('NOWCAST_RECENT_HOURS', 3)
        self.recent_valid_hours = recent_valid_hours or aq_settings.get('NOWCAST_RECENT_VALID_HOURS', 2)

    def has_quorum(self, hourly_values: Sequence[Optional[float]]) -> bool:
        """True when at least 2 of the 3 most recent hours have a value."""
        recent = hourly_values[:self.recent_hours]
        return sum(1 for value in recent if value is not None) >= self.recent_valid_hours

    @staticmethod
    def weight_factor(values: Sequence[float]) -> float:
        minimum = min(values)
        maximum = max(values)
        if maximum <= 0:
            # Rate of change is unbounded, use the floor
            return NOWCAST_MIN_WEIGHT
        scaled_rate_of_change = (maximum - minimum) / maximum
        return max(NOWCAST_MIN_WEIGHT, 1 - scaled_rate_of_change)

    def estimate(self, hourly_values: Sequence[Optional[float]]) -> float:
        """
        NowCast concentration.

        Args:
            hourly_values: concentrations, most recent hour first, None for
                missing hours. Callers check ``has_quorum`` first.

        Returns:
            float: the NowCast PM2.5 estimate
        """
        present = [value for value in hourly_values if value is not None]
        if not present:
            raise ValueError("NowCast needs at least one hourly value")

        weight = self.weight_factor(present)

        weighted_sum = 0.0
        weight_total = 0.0
        current_weight = 1.0
        for value in hourly_values:
            if value is not None:
                weighted_sum += current_weight * value
                weight_total += current_weight
            current_weight *= weight

        return weighted_sum / weight_total
