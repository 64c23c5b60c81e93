"""
Diagnostic codes stored on the sensor record.

``InvalidAqiError`` explains why a tick's AQI was reported invalid.
``SensorReadingError`` describes the latest PurpleAir reading of a sensor.
Both are recovered locally: the tick moves on and only the codes are kept
for diagnosis. The user-facing outcome is the single ``is_valid`` flag.
"""
from enum import Enum


class InvalidAqiError(str, Enum):
    # NowCast PM2.5 fell outside the AQI table (negative or beyond 500.4)
    INFINITE_AQI = 'infinite_aqi'
    # Fewer than 23 readings in a recent hour, or the buffer is not ready yet
    NOT_ENOUGH_NEW_READINGS = 'not_enough_new_readings'
    # Enough readings arrived, but the two channels diverged past 0.7
    NOT_ENOUGH_RECENT_VALID_READINGS = 'not_enough_recent_valid_readings'


class SensorReadingError(str, Enum):
    # The sensor was absent from the group response, or the request failed
    READING_NOT_RECEIVED = 'reading_not_received'
    # Always reported together with INCOMPLETE_SENSOR_READING
    NO_HUMIDITY_READING = 'no_humidity_reading'
    INCOMPLETE_SENSOR_READING = 'incomplete_sensor_reading'
    # Mean percent difference above 0.7, or a channel is downgraded
    CHANNELS_DIVERGED = 'channels_diverged'
    CHANNEL_A_DOWNGRADED = 'channel_a_downgraded'
    CHANNEL_B_DOWNGRADED = 'channel_b_downgraded'
