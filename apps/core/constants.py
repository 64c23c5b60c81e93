"""
Constants and lookup data for the Sensor AQI engine.
"""

# EPA AQI Categories (US Standard)
EPA_AQI_CATEGORIES = [
    {
        'min_value': 0,
        'max_value': 50,
        'category': 'Good',
        'color_hex': '#00E400',
        'health_message': 'Air quality is satisfactory, and air pollution poses little or no risk.',
    },
    {
        'min_value': 51,
        'max_value': 100,
        'category': 'Moderate',
        'color_hex': '#FFFF00',
        'health_message': 'Air quality is acceptable. However, there may be a risk for some people, particularly those who are unusually sensitive to air pollution.',
    },
    {
        'min_value': 101,
        'max_value': 150,
        'category': 'Unhealthy for Sensitive Groups',
        'color_hex': '#FF7E00',
        'health_message': 'Members of sensitive groups may experience health effects. The general public is less likely to be affected.',
    },
    {
        'min_value': 151,
        'max_value': 200,
        'category': 'Unhealthy',
        'color_hex': '#FF0000',
        'health_message': 'Some members of the general public may experience health effects; members of sensitive groups may experience more serious health effects.',
    },
    {
        'min_value': 201,
        'max_value': 300,
        'category': 'Very Unhealthy',
        'color_hex': '#8F3F97',
        'health_message': 'Health alert: The risk of health effects is increased for everyone.',
    },
    {
        'min_value': 301,
        'max_value': 500,
        'category': 'Hazardous',
        'color_hex': '#7E0023',
        'health_message': 'Health warning of emergency conditions: everyone is more likely to be affected.',
    },
]

# EPA PM2.5 breakpoints (Table 6, AQI Technical Assistance Document, May 2016)
# (concentration low, concentration high, index low, index high)
EPA_PM25_BREAKPOINTS = [
    (0.0, 12.0, 0, 50),
    (12.1, 35.4, 51, 100),
    (35.5, 55.4, 101, 150),
    (55.5, 150.4, 151, 200),
    (150.5, 250.4, 201, 300),
    (250.5, 350.4, 301, 400),
    (350.5, 500.4, 401, 500),
]

# Anything at or above this truncated concentration is "beyond the AQI"
PM25_BEYOND_INDEX = 500.5

# EPA correction for PurpleAir PM2.5 (US-wide, Barkjohn et al.)
PURPLEAIR_CORRECTION_PM25 = 0.534
PURPLEAIR_CORRECTION_HUMIDITY = -0.0844
PURPLEAIR_CORRECTION_OFFSET = 5.604

# NowCast weight factor lower bound
NOWCAST_MIN_WEIGHT = 0.5

# PurpleAir confidence bounds and the matching mean percent difference range
PURPLEAIR_MIN_CONFIDENCE = 0
PURPLEAIR_MAX_CONFIDENCE = 100
MIN_PERCENT_DIFFERENCE = 0.0
MAX_PERCENT_DIFFERENCE = 2.0

# Fields requested from the PurpleAir group members endpoint
PURPLEAIR_FIELDS = [
    'sensor_index',
    'name',
    'latitude',
    'longitude',
    'confidence',
    'pm2.5',
    'humidity',
    'last_seen',
    'channel_flags',
]

# PurpleAir channel_flags values, indexed by the numeric flag
PURPLEAIR_CHANNEL_FLAG_NAMES = ['Normal', 'A-Downgraded', 'B-Downgraded', 'A+B-Downgraded']
# Downgraded channels per flag name; unknown names downgrade nothing
PURPLEAIR_DOWNGRADED_CHANNELS = {
    'Normal': (),
    'A-Downgraded': ('A',),
    'B-Downgraded': ('B',),
    'A+B-Downgraded': ('A', 'B'),
}
