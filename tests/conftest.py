"""Pytest configuration and fixtures for test suite."""
import pytest

from apps.buffers.lifecycle import BufferLifecycle, BufferState
from apps.sensors.models import Sensor
from apps.sensors.store import SensorStore

from .factories import DeferredExecutor, SynchronousExecutor, reading, ready_pm25_documents


@pytest.fixture
def sync_executor():
    return SynchronousExecutor()


@pytest.fixture
def deferred_executor():
    return DeferredExecutor()


@pytest.fixture
def store():
    return SensorStore()


@pytest.fixture
def lifecycle(store, deferred_executor):
    return BufferLifecycle(store, executor=deferred_executor)


@pytest.fixture
def make_sensor(db):
    """Factory for sensor records."""
    counter = {'next_id': 1000}

    def factory(**fields):
        counter['next_id'] += 1
        fields.setdefault('purpleair_id', counter['next_id'])
        fields.setdefault('name', f"Sensor {fields['purpleair_id']}")
        return Sensor.objects.create(**fields)

    return factory


@pytest.fixture
def clean_air_sensor(make_sensor):
    """
    Sensor whose PM2.5 buffer holds 12 full hours of (pm25=20, divergence=0,
    humidity=50), which corrects to 12.064 µg/m³.
    """
    return make_sensor(
        pm25_buffer=ready_pm25_documents(lambda i: reading(minutes=2 * i)),
        pm25_buffer_index=5,
        pm25_buffer_status=BufferState.READY,
    )
