"""
PM2.5 concentration to AQI conversion.
"""
import math
from typing import Union

from apps.core.constants import EPA_PM25_BREAKPOINTS, PM25_BEYOND_INDEX
from apps.core.utils import convert_aqi_to_category


class AqiMapper:
    """
    Maps a PM2.5 concentration (µg/m³) onto the EPA AQI.

    Adapted from the EPA calculator at
    https://www.airnow.gov/sites/default/files/custom-js/conc-aqi.js
    """

    def __init__(self, breakpoints=None):
        self.breakpoints = breakpoints or EPA_PM25_BREAKPOINTS

    @staticmethod
    def truncate(concentration: float) -> float:
        # EPA requires truncation to one decimal before the table lookup
        return math.floor(10 * concentration) / 10

    @staticmethod
    def interpolate(c_low, c_high, i_low, i_high, concentration) -> float:
        return ((i_high - i_low) / (c_high - c_low)) * (concentration - c_low) + i_low

    def to_aqi(self, concentration: float) -> Union[int, float]:
        """
        AQI for a PM2.5 concentration.

        Returns:
            The AQI rounded half up to an integer, ``-inf`` for a negative
            concentration, ``+inf`` beyond the top of the index.
        """
        truncated = self.truncate(concentration)

        if truncated < 0:
            return -math.inf
        if truncated >= PM25_BEYOND_INDEX:
            return math.inf

        for c_low, c_high, i_low, i_high in self.breakpoints:
            if truncated <= c_high:
                aqi = self.interpolate(c_low, c_high, i_low, i_high, truncated)
                return math.floor(aqi + 0.5)

        return math.inf

    @staticmethod
    def is_valid(aqi) -> bool:
        return aqi is not None and math.isfinite(aqi)

    def category_for(self, aqi):
        """EPA category dict for a finite AQI, else None."""
        return convert_aqi_to_category(aqi)
