"""
Admin configuration for sensor models.
"""
from django.contrib import admin

from apps.buffers.lifecycle import BufferLifecycle
from .models import Sensor, SensorReading, CurrentReading
from .store import SensorStore


@admin.register(Sensor)
class SensorAdmin(admin.ModelAdmin):
    list_display = ['purpleair_id', 'name', 'is_active', 'is_valid', 'last_valid_aqi_time', 'last_reading_time', 'pm25_buffer_status', 'aqi_buffer_status']
    list_filter = ['is_active', 'is_valid', 'pm25_buffer_status', 'aqi_buffer_status']
    search_fields = ['name', 'purpleair_id']
    readonly_fields = ['created_at', 'updated_at', 'pm25_buffer', 'pm25_buffer_index', 'aqi_buffer', 'aqi_buffer_index', 'invalid_aqi_errors', 'sensor_reading_errors']
    ordering = ['purpleair_id']
    actions = ['reset_buffers']

    def reset_buffers(self, request, queryset):
        lifecycle = BufferLifecycle(SensorStore())
        for sensor in queryset:
            lifecycle.reset(sensor.pk)
        self.message_user(request, f"Reset buffers for {queryset.count()} sensors")
    reset_buffers.short_description = 'Drop ring buffers (re-initialized on next tick)'


@admin.register(SensorReading)
class SensorReadingAdmin(admin.ModelAdmin):
    list_display = ['sensor', 'timestamp', 'pm25', 'humidity', 'mean_percent_difference']
    list_filter = ['sensor', 'timestamp']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-timestamp']
    date_hierarchy = 'timestamp'


@admin.register(CurrentReading)
class CurrentReadingAdmin(admin.ModelAdmin):
    list_display = ['key', 'last_updated']
    readonly_fields = ['last_updated']
