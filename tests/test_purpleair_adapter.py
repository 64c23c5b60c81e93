"""
Tests for the PurpleAir group query adapter
"""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
import requests

from apps.adapters.models import AdapterStatus, RawAPIResponse
from apps.adapters.base import summarize_payload
from apps.adapters.purpleair import PurpleAirAdapter
from apps.aqi.errors import SensorReadingError

pytestmark = pytest.mark.django_db

FIELDS = [
    'sensor_index', 'name', 'latitude', 'longitude', 'confidence',
    'pm2.5', 'humidity', 'last_seen', 'channel_flags',
]
CHANNEL_FLAGS = ['Normal', 'A-Downgraded', 'B-Downgraded', 'A+B-Downgraded']


def group_response(*rows):
    return {
        'api_version': 'V1.0.11',
        'fields': FIELDS,
        'channel_flags': CHANNEL_FLAGS,
        'data': list(rows),
    }


def mock_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def adapter():
    adapter = PurpleAirAdapter()
    adapter.session = Mock()
    return adapter


class TestPurpleAirAdapter:
    """Test parsing and error handling of the group members query"""

    def test_request_shape(self, adapter) -> None:
        adapter.session.request.return_value = mock_response(group_response())

        adapter.fetch_group_readings(490)

        kwargs = adapter.session.request.call_args.kwargs
        assert kwargs['url'] == 'https://api.purpleair.com/v1/groups/490/members'
        assert kwargs['headers'] == {'X-API-Key': 'test-key'}
        assert kwargs['params']['max_age'] == 240
        assert kwargs['params']['fields'].split(',') == FIELDS

    def test_parses_complete_rows(self, adapter) -> None:
        row = [131075, 'Library roof', 37.7749, -122.4194, 80, 15.2, 41, 1704096000, 0]
        adapter.session.request.return_value = mock_response(group_response(row))

        reports = adapter.fetch_readings()

        assert len(reports) == 1
        reading = reports[0].reading
        assert reading.id == 131075
        assert reading.pm25 == 15.2
        assert reading.humidity == 41.0
        # (100 - 80 + 25) * 1.6 / 100
        assert reading.mean_percent_difference == pytest.approx(0.72)
        assert reading.timestamp == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize('confidence, expected', [(100, 0.0), (0, 2.0), (-5, 2.0)])
    def test_confidence_bounds(self, adapter, confidence, expected) -> None:
        row = [1, 'a', 0.0, 0.0, confidence, 5.0, 30, 1704096000, 0]
        assert adapter.normalize_data(group_response(row))[0].reading.mean_percent_difference == expected

    @pytest.mark.parametrize('flag, expected', [
        (0, ()),
        (1, (SensorReadingError.CHANNEL_A_DOWNGRADED,)),
        (2, (SensorReadingError.CHANNEL_B_DOWNGRADED,)),
        (3, (SensorReadingError.CHANNEL_A_DOWNGRADED, SensorReadingError.CHANNEL_B_DOWNGRADED)),
        (9, ()),
    ])
    def test_channel_flags_are_reported(self, adapter, flag, expected) -> None:
        row = [1, 'a', 0.0, 0.0, 100, 5.0, 30, 1704096000, flag]

        errors = adapter.normalize_data(group_response(row))[0].errors

        assert errors[:len(expected)] == expected
        assert (SensorReadingError.CHANNELS_DIVERGED in errors) == bool(expected)

    @pytest.mark.parametrize('confidence, diverged', [(80, True), (85, False)])
    def test_low_confidence_is_reported_diverged(self, adapter, confidence, diverged) -> None:
        # 80 gives 0.72 and 85 gives 0.64 around the 0.7 ceiling
        row = [1, 'a', 0.0, 0.0, confidence, 5.0, 30, 1704096000, 0]

        errors = adapter.normalize_data(group_response(row))[0].errors

        assert errors == ((SensorReadingError.CHANNELS_DIVERGED,) if diverged else ())

    @pytest.mark.parametrize('flag', [1, 2, 3])
    def test_downgraded_channel_forces_max_divergence(self, adapter, flag) -> None:
        row = [1, 'a', 0.0, 0.0, 100, 5.0, 30, 1704096000, flag]
        assert adapter.normalize_data(group_response(row))[0].reading.mean_percent_difference == 2.0

    def test_incomplete_rows_have_no_reading(self, adapter) -> None:
        no_humidity = [1, 'a', 0.0, 0.0, 100, 5.0, None, 1704096000, 0]
        no_name = [2, None, 0.0, 0.0, 100, 5.0, 30, 1704096000, 0]
        complete = [3, 'c', 0.0, 0.0, 100, 5.0, 30, 1704096000, 0]

        reports = adapter.normalize_data(group_response(no_humidity, no_name, complete))

        assert [report.sensor_id for report in reports] == [1, 2, 3]
        assert [report.reading is None for report in reports] == [True, True, False]
        assert reports[0].errors == (
            SensorReadingError.NO_HUMIDITY_READING,
            SensorReadingError.INCOMPLETE_SENSOR_READING,
        )
        assert reports[1].errors == (SensorReadingError.INCOMPLETE_SENSOR_READING,)
        assert reports[2].errors == ()

    def test_rows_without_sensor_index_are_dropped(self, adapter) -> None:
        row = [None, 'a', 0.0, 0.0, 100, 5.0, 30, 1704096000, 0]

        assert adapter.normalize_data(group_response(row)) == []

    def test_fields_are_matched_by_name(self, adapter) -> None:
        payload = {
            'fields': ['pm2.5', 'sensor_index', 'humidity', 'name', 'last_seen',
                       'latitude', 'longitude', 'confidence'],
            'data': [[7.5, 9, 20, 'x', 1704096000, 1.5, 2.5, 100]],
        }

        reading = adapter.normalize_data(payload)[0].reading

        assert (reading.id, reading.pm25, reading.latitude) == (9, 7.5, 1.5)

    def test_request_failure_returns_none(self, adapter) -> None:
        adapter.session.request.side_effect = requests.exceptions.ConnectionError('down')

        assert adapter.fetch_group_readings(490) is None

        status = AdapterStatus.objects.get(source='PURPLEAIR')
        assert status.consecutive_failures == 1
        assert RawAPIResponse.objects.filter(source='PURPLEAIR', is_error=True).count() == 1

    def test_success_is_audited(self, adapter) -> None:
        adapter.session.request.return_value = mock_response(group_response())

        adapter.fetch_group_readings(490)

        status = AdapterStatus.objects.get(source='PURPLEAIR')
        assert status.total_requests == 1
        assert status.consecutive_failures == 0
        assert RawAPIResponse.objects.get(source='PURPLEAIR').status_code == 200

    def test_audit_row_stores_member_count_only(self, adapter) -> None:
        rows = [[n, 'a', 0.0, 0.0, 100, 5.0, 30, 1704096000, 0] for n in range(1, 4)]
        adapter.session.request.return_value = mock_response(group_response(*rows))

        adapter.fetch_group_readings(490)

        response_data = RawAPIResponse.objects.get(source='PURPLEAIR').response_data
        assert 'data' not in response_data
        assert response_data['data_count'] == 3
        assert response_data['fields'] == FIELDS

    def test_missing_api_key_sends_no_header(self, settings) -> None:
        settings.API_KEYS = {}

        assert PurpleAirAdapter().auth_headers() == {}


class TestSummarizePayload:
    """Test the audit copy of upstream bodies"""

    def test_non_dict_body_is_truncated(self) -> None:
        summary = summarize_payload('x' * 5000)

        assert summary == {'raw': 'x' * 1000}

    def test_body_without_rows_is_kept(self) -> None:
        assert summarize_payload({'error': 'NotFoundError'}) == {'error': 'NotFoundError'}
