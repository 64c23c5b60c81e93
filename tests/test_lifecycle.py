"""
Tests for lazy ring buffer initialization
"""
from unittest.mock import patch

import pytest

from apps.buffers.elements import AqiBufferElement, Pm25BufferElement
from apps.buffers.lifecycle import BufferKind, BufferLifecycle, BufferState, wait_for_population
from apps.core.exceptions import BufferNotReady, StorageFailure
from apps.sensors.models import Sensor

from .factories import reading

pytestmark = pytest.mark.django_db


def refreshed(sensor):
    return Sensor.objects.get(pk=sensor.pk)


class TestBufferKind:
    """Test storage layout of the two buffer kinds"""

    def test_field_names(self) -> None:
        assert BufferKind.PM25.buffer_field == 'pm25_buffer'
        assert BufferKind.AQI.index_field == 'aqi_buffer_index'
        assert BufferKind.AQI.status_field == 'aqi_buffer_status'

    def test_configured_capacities(self) -> None:
        assert BufferKind.PM25.capacity() == 360
        assert BufferKind.AQI.capacity() == 144

    def test_load_rebuilds_elements(self) -> None:
        element = reading(minutes=4)
        buffer = BufferKind.PM25.load([element.to_dict(), {}])
        assert buffer.capacity == 2
        assert buffer.read(0) == element
        assert buffer.read(1).is_default


class TestBufferLifecycle:
    """Test the missing -> initializing -> ready state machine"""

    def test_new_sensor_buffers_are_missing(self, make_sensor, lifecycle) -> None:
        sensor = make_sensor()
        assert lifecycle.state_of(sensor, BufferKind.PM25) == BufferState.MISSING
        assert lifecycle.state_of(sensor, BufferKind.AQI) == BufferState.MISSING

    def test_missing_buffer_writes_nothing(self, make_sensor, lifecycle) -> None:
        sensor = make_sensor()
        write = lifecycle.plan_write(sensor, BufferKind.AQI, AqiBufferElement.default())
        assert write.needs_initialization
        assert write.fields == {}

    def test_initialization_claims_then_populates(self, make_sensor, lifecycle, deferred_executor) -> None:
        sensor = make_sensor()

        future = lifecycle.begin_initialization(sensor.pk, BufferKind.PM25)
        assert future is not None
        assert refreshed(sensor).pm25_buffer_status == BufferState.INITIALIZING

        deferred_executor.run_all()
        assert future.result() is True

        sensor = refreshed(sensor)
        assert sensor.pm25_buffer_status == BufferState.READY
        assert sensor.pm25_buffer_index == 0
        assert len(sensor.pm25_buffer) == 360
        assert all(Pm25BufferElement.from_dict(doc).is_default for doc in sensor.pm25_buffer)
        # The other buffer is untouched
        assert sensor.aqi_buffer_status == BufferState.MISSING

    def test_second_claim_is_a_no_op(self, make_sensor, lifecycle, deferred_executor) -> None:
        sensor = make_sensor()
        lifecycle.begin_initialization(sensor.pk, BufferKind.AQI)

        assert lifecycle.begin_initialization(sensor.pk, BufferKind.AQI) is None
        assert len(deferred_executor.jobs) == 1

    def test_initializing_buffer_is_left_alone(self, make_sensor, lifecycle) -> None:
        sensor = make_sensor(aqi_buffer_status=BufferState.INITIALIZING)
        write = lifecycle.plan_write(sensor, BufferKind.AQI, AqiBufferElement.default())
        assert not write.needs_initialization
        assert write.fields == {}
        assert lifecycle.apply(sensor.pk, write) is None

    def test_ready_write_advances_index(self, make_sensor, lifecycle) -> None:
        sensor = make_sensor(
            aqi_buffer=[AqiBufferElement.default().to_dict()] * 3,
            aqi_buffer_index=2,
            aqi_buffer_status=BufferState.READY,
        )
        element = AqiBufferElement(timestamp=reading().timestamp, aqi=42)

        write = lifecycle.plan_write(sensor, BufferKind.AQI, element)

        assert write.fields['aqi_buffer_index'] == 0
        assert AqiBufferElement.from_dict(write.fields['aqi_buffer'][2]) == element

    def test_load_requires_ready(self, make_sensor, lifecycle) -> None:
        sensor = make_sensor()
        with pytest.raises(BufferNotReady):
            lifecycle.load(sensor, BufferKind.PM25)

    def test_reset_returns_buffers_to_missing(self, make_sensor, lifecycle) -> None:
        sensor = make_sensor(
            pm25_buffer=[{}] * 4,
            pm25_buffer_index=3,
            pm25_buffer_status=BufferState.READY,
            aqi_buffer_status=BufferState.READY,
        )
        lifecycle.reset(sensor.pk)

        sensor = refreshed(sensor)
        assert sensor.pm25_buffer == []
        assert sensor.pm25_buffer_index == 0
        assert sensor.pm25_buffer_status == BufferState.MISSING
        assert sensor.aqi_buffer_status == BufferState.MISSING

    def test_population_after_reset_is_discarded(self, make_sensor, lifecycle, deferred_executor) -> None:
        sensor = make_sensor()
        future = lifecycle.begin_initialization(sensor.pk, BufferKind.PM25)
        lifecycle.reset(sensor.pk)

        deferred_executor.run_all()

        assert future.result() is False
        assert refreshed(sensor).pm25_buffer_status == BufferState.MISSING

    def test_failed_population_releases_the_claim(self, make_sensor, lifecycle, store, deferred_executor) -> None:
        sensor = make_sensor()
        future = lifecycle.begin_initialization(sensor.pk, BufferKind.AQI)

        with patch.object(store, 'complete_buffer_initialization', side_effect=StorageFailure('populate buffer')):
            deferred_executor.run_all()

        assert isinstance(future.exception(), StorageFailure)
        assert refreshed(sensor).aqi_buffer_status == BufferState.MISSING

        # The next claim succeeds and completes
        lifecycle.begin_initialization(sensor.pk, BufferKind.AQI)
        deferred_executor.run_all()
        assert refreshed(sensor).aqi_buffer_status == BufferState.READY

    def test_release_leaves_other_states_alone(self, make_sensor, store) -> None:
        sensor = make_sensor(pm25_buffer=[{}] * 3, pm25_buffer_status=BufferState.READY)

        assert store.release_buffer_initialization(sensor.pk, BufferKind.PM25) is False
        assert refreshed(sensor).pm25_buffer_status == BufferState.READY

    def test_wait_for_population_reports_failures(self, make_sensor, lifecycle, store, deferred_executor) -> None:
        healthy, broken = make_sensor(), make_sensor()
        initializations = [
            (healthy.purpleair_id, lifecycle.begin_initialization(healthy.pk, BufferKind.PM25)),
            (broken.purpleair_id, lifecycle.begin_initialization(broken.pk, BufferKind.PM25)),
        ]
        original = store.complete_buffer_initialization

        def complete(sensor_id, kind, buffer):
            if sensor_id == broken.pk:
                raise StorageFailure('populate buffer')
            return original(sensor_id, kind, buffer)

        with patch.object(store, 'complete_buffer_initialization', side_effect=complete):
            deferred_executor.run_all()

        failures = wait_for_population(initializations)

        assert [sensor_id for sensor_id, _ in failures] == [broken.purpleair_id]
        assert isinstance(failures[0][1], StorageFailure)

    def test_default_executor_is_shared(self, store) -> None:
        from apps.buffers.lifecycle import get_populate_executor
        assert get_populate_executor() is get_populate_executor()
        assert BufferLifecycle(store)._owns_executor
