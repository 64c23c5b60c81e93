"""
Utility functions for the Sensor AQI engine.
"""
import math
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone

from .constants import (
    EPA_AQI_CATEGORIES,
    PURPLEAIR_MIN_CONFIDENCE,
    PURPLEAIR_MAX_CONFIDENCE,
    MIN_PERCENT_DIFFERENCE,
    MAX_PERCENT_DIFFERENCE,
    PURPLEAIR_CORRECTION_PM25,
    PURPLEAIR_CORRECTION_HUMIDITY,
    PURPLEAIR_CORRECTION_OFFSET,
)


def apply_purpleair_epa_correction(pm25_raw, humidity):
    """
    Apply the EPA correction to a PurpleAir PM2.5 reading.

    Args:
        pm25_raw: raw PM2.5 value from PurpleAir (average of both channels)
        humidity: relative humidity reported by the same sensor

    Returns:
        float: corrected PM2.5 value
    """
    return (
        PURPLEAIR_CORRECTION_PM25 * pm25_raw
        + PURPLEAIR_CORRECTION_HUMIDITY * humidity
        + PURPLEAIR_CORRECTION_OFFSET
    )


def mean_percent_difference_from_confidence(confidence):
    """
    Undo PurpleAir's confidence calculation to recover the mean percent
    difference between channel A and channel B.

    PurpleAir computes confidence as
    ``max(100 - max(round(mpd * 100 / 1.6) - 25, 0), 0)``, so a confidence of
    100 only means the channels agree closely enough; it is mapped to 0.

    Args:
        confidence: confidence value from PurpleAir, between 0 and 100

    Returns:
        float: mean percent difference between 0 and 2
    """
    if confidence <= PURPLEAIR_MIN_CONFIDENCE:
        return MAX_PERCENT_DIFFERENCE
    if confidence >= PURPLEAIR_MAX_CONFIDENCE:
        return MIN_PERCENT_DIFFERENCE
    return ((PURPLEAIR_MAX_CONFIDENCE - confidence + 25) * 1.6) / 100


def convert_aqi_to_category(aqi):
    """
    Convert AQI value to EPA category information.

    Args:
        aqi: AQI value

    Returns:
        dict: category information or None
    """
    if aqi is None or not math.isfinite(aqi):
        return None

    for category in EPA_AQI_CATEGORIES:
        if category['min_value'] <= aqi <= category['max_value']:
            return category

    return None


def timestamp_to_datetime(seconds):
    """Convert seconds since the epoch to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=dt_timezone.utc)


def serialize_datetime(value):
    """ISO-8601 string for storage in JSON documents, or None."""
    if value is None:
        return None
    if not timezone.is_aware(value):
        value = timezone.make_aware(value, dt_timezone.utc)
    return value.isoformat()


def parse_datetime(value):
    """Inverse of serialize_datetime. Accepts datetimes unchanged."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace('Z', '+00:00'))
