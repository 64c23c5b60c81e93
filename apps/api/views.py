"""
Read-only API views over the published AQI data.
"""
import logging

from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.adapters.models import AdapterStatus
from apps.buffers.lifecycle import BufferKind, BufferState
from apps.sensors.store import SensorStore
from .serializers import AqiHistorySerializer, CurrentReadingsSerializer

logger = logging.getLogger(__name__)


class CurrentReadingsView(APIView):
    """
    GET /api/v1/current-readings/

    Latest AQI state of every sensor, as published by the last AQI tick.
    """

    def get(self, request):
        snapshot = SensorStore().get_snapshot()

        if snapshot is None:
            data = {'last_updated': None, 'sensors': []}
        else:
            sensors = sorted(snapshot.data.values(), key=lambda entry: entry['id'])
            data = {'last_updated': snapshot.last_updated, 'sensors': sensors}

        return Response(CurrentReadingsSerializer(data).data)


class SensorAqiHistoryView(APIView):
    """
    GET /api/v1/sensors/<purpleair_id>/aqi-history/

    The last 24 hours of AQI ticks for one sensor, oldest first. Ticks where
    the sensor was invalid are left out.
    """

    def get(self, request, purpleair_id):
        sensor = SensorStore().get_sensor(purpleair_id)
        if sensor is None:
            raise Http404(f"Unknown sensor {purpleair_id}")

        kind = BufferKind.AQI
        state = BufferState(sensor.aqi_buffer_status)

        readings = []
        if state == BufferState.READY:
            buffer = kind.load(sensor.aqi_buffer)
            # The write index is the oldest slot
            for element in buffer.ordered_from(buffer.wrap(sensor.aqi_buffer_index)):
                if not element.is_default and element.aqi is not None:
                    readings.append({'timestamp': element.timestamp, 'aqi': element.aqi})

        data = {
            'purpleair_id': sensor.purpleair_id,
            'name': sensor.name,
            'status': state.value,
            'readings': readings,
        }
        return Response(AqiHistorySerializer(data).data)


class HealthCheckView(APIView):
    """
    GET /api/v1/health/

    Database reachability plus upstream adapter health.
    """

    def get(self, request):
        try:
            adapters = {
                adapter.source: {
                    'healthy': adapter.is_healthy,
                    'consecutive_failures': adapter.consecutive_failures,
                    'last_success_at': adapter.last_success_at,
                }
                for adapter in AdapterStatus.objects.all()
            }
        except DatabaseError as e:
            logger.error(f"Health check database error: {e}")
            return Response(
                {'status': 'unhealthy', 'database': 'unavailable'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )

        return Response({
            'status': 'healthy',
            'database': 'ok',
            'adapters': adapters,
        })
