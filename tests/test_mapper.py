"""
Tests for the PM2.5 to AQI breakpoint table
"""
import math

import pytest

from apps.aqi.mapper import AqiMapper


class TestAqiMapper:
    """Test EPA breakpoints, truncation and out-of-range values"""

    @pytest.mark.parametrize('concentration, aqi', [
        (0.0, 0),
        (12.0, 50),
        (12.064, 50),
        (12.1, 51),
        (35.4, 100),
        (35.5, 101),
        (55.4, 150),
        (150.4, 200),
        (500.4, 500),
    ])
    def test_breakpoints(self, concentration, aqi) -> None:
        assert AqiMapper().to_aqi(concentration) == aqi

    def test_truncates_before_lookup(self) -> None:
        # 12.09 truncates to 12.0, not into the Moderate range
        assert AqiMapper().to_aqi(12.09) == 50

    def test_negative_concentration(self) -> None:
        assert AqiMapper().to_aqi(-1.0) == -math.inf

    def test_beyond_index(self) -> None:
        assert AqiMapper().to_aqi(500.5) == math.inf
        assert AqiMapper().to_aqi(1000.0) == math.inf

    def test_validity(self) -> None:
        assert AqiMapper.is_valid(50)
        assert not AqiMapper.is_valid(math.inf)
        assert not AqiMapper.is_valid(None)

    def test_category(self) -> None:
        mapper = AqiMapper()
        assert mapper.category_for(50)['category'] == 'Good'
        assert mapper.category_for(101)['category'] == 'Unhealthy for Sensitive Groups'
        assert mapper.category_for(math.inf) is None
