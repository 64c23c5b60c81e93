"""
DRF serializers for API responses.
"""
from rest_framework import serializers

from apps.aqi.mapper import AqiMapper


class CategorySerializer(serializers.Serializer):
    """EPA AQI category for a valid AQI."""
    category = serializers.CharField()
    color_hex = serializers.CharField()
    health_message = serializers.CharField()


class SensorSnapshotSerializer(serializers.Serializer):
    """One sensor entry of the published current-readings snapshot."""
    id = serializers.IntegerField()
    sensor_id = serializers.IntegerField()
    name = serializers.CharField(allow_blank=True)
    lat = serializers.FloatField(allow_null=True)
    lon = serializers.FloatField(allow_null=True)
    nowcast_concentration = serializers.FloatField(allow_null=True)
    aqi = serializers.IntegerField(allow_null=True)
    category = serializers.SerializerMethodField()
    is_valid = serializers.BooleanField()
    last_valid_aqi_time = serializers.DateTimeField(allow_null=True)
    last_reading_time = serializers.DateTimeField(allow_null=True)

    def get_category(self, obj):
        if not obj.get('is_valid'):
            return None
        category = AqiMapper().category_for(obj.get('aqi'))
        if category is None:
            return None
        return CategorySerializer(category).data


class CurrentReadingsSerializer(serializers.Serializer):
    """Response for the current-readings endpoint."""
    last_updated = serializers.DateTimeField(allow_null=True)
    sensors = SensorSnapshotSerializer(many=True)


class AqiHistoryItemSerializer(serializers.Serializer):
    timestamp = serializers.DateTimeField()
    aqi = serializers.IntegerField()


class AqiHistorySerializer(serializers.Serializer):
    """AQI ring buffer of one sensor, oldest tick first."""
    purpleair_id = serializers.IntegerField()
    name = serializers.CharField(allow_blank=True)
    status = serializers.CharField()
    readings = AqiHistoryItemSerializer(many=True)

