"""
Test settings for Sensor AQI project.
"""
from .base import *

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

API_KEYS = {
    'PURPLEAIR': 'test-key',
}

REST_FRAMEWORK = REST_FRAMEWORK.copy()
REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []
REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'] = {}

# Keep retries out of unit tests
AIR_QUALITY_SETTINGS = {
    **AIR_QUALITY_SETTINGS,
    'MAX_RETRIES': 0,
}

LOGGING['root']['level'] = 'WARNING'
LOGGING['loggers']['apps']['level'] = 'WARNING'
