from datetime import datetime, timedelta, timezone

import pytest

from floodsense.constants import SAFETY_NOTICE
from floodsense.models import (
    EvidenceItem,
    GaugeReading,
    RiskAssessment,
    RiskSignal,
    StationConfig,
    WeatherForecast,
    to_iso,
)


NOW = datetime(2025, 2, 20, 10, 0, tzinfo=timezone.utc)


def make_reading(level, hours_ago=0.0, station_id="test", flow=None):
    return GaugeReading(
        station_id=station_id,
        timestamp=to_iso(NOW - timedelta(hours=hours_ago)),
        water_level_m=level,
        flow_rate_m3s=flow,
        source="test-gauge",
    )


def make_forecast(rainfall_mm, station_id="test", confidence=None):
    return WeatherForecast(
        station_id=station_id,
        forecasted_at=to_iso(NOW),
        valid_from=to_iso(NOW),
        valid_to=to_iso(NOW + timedelta(hours=72)),
        rainfall_mm=rainfall_mm,
        peak_intensity_mm_h=12.5,
        confidence=confidence,
        source="test-weather",
    )


def make_item(item_id, type="gauge", citation="", hours_ago=0.0):
    return EvidenceItem(
        id=item_id,
        type=type,
        citation=citation or f"{type} evidence {item_id}",
        timestamp=to_iso(NOW - timedelta(hours=hours_ago)),
        source="test",
        payload={},
    )


@pytest.fixture
def station():
    return StationConfig(
        id="test",
        name="Test Pegel",
        river_name="Mosel",
        location_name="Nowhere",
        lat=50.0,
        lon=7.0,
        warning_level_m=5.0,
        danger_level_m=7.0,
        baseline_m=2.0,
    )


@pytest.fixture
def assessment():
    return RiskAssessment(
        station_id="trier",
        assessed_at=to_iso(NOW),
        risk_score=72,
        risk_level="high",
        signals=(
            RiskSignal(
                code="FORECAST_HEAVY_RAIN",
                label="Heavy rainfall forecast",
                description="78 mm of rain expected in the next 72 hours.",
                severity="critical",
                value=78.0,
            ),
            RiskSignal(
                code="GAUGE_ABOVE_WARNING",
                label="Above warning level",
                description="Water level 5.50 m has reached or exceeded the warning threshold of 5.50 m.",
                severity="warning",
                value=5.5,
            ),
            RiskSignal(
                code="TREND_NOTABLE_RISE",
                label="Notable rise",
                description="Water level rising at 12 cm/hour, upward trend observed.",
                severity="warning",
                value=0.12,
            ),
        ),
        gauge_reading=make_reading(5.5, station_id="trier"),
        weather_forecast=make_forecast(78.0, station_id="trier"),
    )


@pytest.fixture
def evidence():
    return [
        make_item(
            "ev-1",
            "gauge",
            "Gauge reading at trier: 5.10 m (450.0 m³/s) at Thu, 20 Feb 2025 10:00:00 GMT. Source: mock.",
        ),
        make_item("ev-2", "forecast", "Weather forecast: 78 mm total rainfall, peak 12.5 mm/h."),
    ]


@pytest.fixture
def safety_notice():
    return SAFETY_NOTICE
