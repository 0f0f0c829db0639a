import pytest
from hypothesis import given
from hypothesis import strategies as st

from floodsense.errors import InvalidInput
from floodsense.models import RiskSignal, StationConfig
from floodsense.scorer import (
    compute_risk_assessment,
    deduplicate_signals,
    score_forecast,
    score_gauge_level,
    score_gauge_trend,
    score_to_level,
)

from .conftest import NOW, make_forecast, make_reading


STATION = StationConfig(
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


def _codes(component):
    return [s.code for s in component.signals]


# --- gauge level ---

@pytest.mark.parametrize("level", [0.0, 1.0, 2.0])
def test_gauge_level_at_or_below_baseline_scores_zero_without_signal(level):
    result = score_gauge_level(level, STATION)
    assert result.score == 0
    assert result.signals == ()


@pytest.mark.parametrize("level", [7.0, 7.5, 12.0])
def test_gauge_level_at_or_above_danger_scores_100(level):
    result = score_gauge_level(level, STATION)
    assert result.score == 100
    assert _codes(result) == ["GAUGE_ABOVE_DANGER"]
    assert result.signals[0].severity == "critical"


def test_gauge_level_between_warning_and_danger_interpolates():
    result = score_gauge_level(6.0, STATION)
    assert result.score == pytest.approx(87.0)
    assert _codes(result) == ["GAUGE_ABOVE_WARNING"]
    assert result.signals[0].severity == "warning"


def test_gauge_level_upper_elevated_band():
    result = score_gauge_level(4.0, STATION)
    assert result.score == pytest.approx(35 + 40 * (2 / 3))
    assert _codes(result) == ["GAUGE_ELEVATED"]
    assert result.signals[0].severity == "info"


def test_gauge_level_lower_elevated_band():
    result = score_gauge_level(3.0, STATION)
    assert result.score == pytest.approx(35 / 3)
    assert _codes(result) == ["GAUGE_ELEVATED"]


@given(
    st.floats(min_value=0.0, max_value=15.0, allow_nan=False),
    st.floats(min_value=0.0, max_value=15.0, allow_nan=False),
)
def test_gauge_level_score_is_monotonic(a, b):
    low, high = sorted((a, b))
    assert score_gauge_level(low, STATION).score <= score_gauge_level(high, STATION).score


# --- trend ---

def test_trend_with_single_reading_is_stable():
    result = score_gauge_trend([make_reading(4.0)])
    assert result.score == 0
    assert _codes(result) == ["TREND_STABLE"]
    assert result.rate_m_h == 0


def test_trend_with_non_positive_elapsed_time_is_stable():
    same_time = [make_reading(4.5, 0), make_reading(4.0, 0)]
    reversed_time = [make_reading(4.5, 1), make_reading(4.0, 0)]
    for readings in (same_time, reversed_time):
        result = score_gauge_trend(readings)
        assert result.score == 0
        assert _codes(result) == ["TREND_STABLE"]


def test_trend_rapid_rise():
    result = score_gauge_trend([make_reading(4.2, 0), make_reading(4.0, 1)])
    assert result.score == 100
    assert _codes(result) == ["TREND_RAPID_RISE"]
    assert result.signals[0].severity == "critical"


def test_trend_notable_rise_uses_elapsed_hours():
    # 0.2 m over 2 h = 0.1 m/h, halfway between notable and rapid
    result = score_gauge_trend([make_reading(4.2, 0), make_reading(4.0, 2)])
    assert result.rate_m_h == pytest.approx(0.1)
    assert result.score == pytest.approx(75.0)
    assert _codes(result) == ["TREND_NOTABLE_RISE"]


def test_trend_only_uses_two_newest_readings():
    readings = [make_reading(4.0, 0), make_reading(4.0, 1), make_reading(1.0, 2)]
    assert _codes(score_gauge_trend(readings)) == ["TREND_STABLE"]


def test_trend_falling():
    result = score_gauge_trend([make_reading(3.8, 0), make_reading(4.0, 1)])
    assert result.score == -20
    assert _codes(result) == ["TREND_FALLING"]
    assert "20 cm/hour" in result.signals[0].description


# --- forecast ---

def test_missing_forecast_is_neutral():
    result = score_forecast(None)
    assert result.score == 50
    assert _codes(result) == ["FORECAST_UNAVAILABLE"]


@pytest.mark.parametrize(
    "mm, expected, code",
    [
        (0.0, 0.0, "FORECAST_LOW_RAIN"),
        (5.0, 12.5, "FORECAST_LOW_RAIN"),
        (20.0, 37.5, "FORECAST_LOW_RAIN"),
        (45.0, 62.5, "FORECAST_MODERATE_RAIN"),
        (80.0, 87.5, "FORECAST_HEAVY_RAIN"),
        (100.0, 100.0, "FORECAST_HEAVY_RAIN"),
        (150.0, 100.0, "FORECAST_HEAVY_RAIN"),
    ],
)
def test_forecast_bands(mm, expected, code):
    result = score_forecast(make_forecast(mm))
    assert result.score == pytest.approx(expected)
    assert _codes(result) == [code]


# --- composite ---

@pytest.mark.parametrize(
    "score, level",
    [(0, "low"), (24, "low"), (25, "moderate"), (49, "moderate"), (50, "high"), (74, "high"), (75, "critical"), (100, "critical")],
)
def test_score_to_level_thresholds(score, level):
    assert score_to_level(score) == level


def test_empty_readings_raise_invalid_input():
    with pytest.raises(InvalidInput):
        compute_risk_assessment([], make_forecast(10.0), STATION)


def test_critical_scenario():
    readings = [make_reading(7.5, 0), make_reading(7.0, 1)]
    a = compute_risk_assessment(readings, make_forecast(120.0), STATION, assessed_at=NOW)
    assert a.risk_score >= 75
    assert a.risk_level == "critical"
    assert [s.code for s in a.signals] == ["GAUGE_ABOVE_DANGER", "TREND_RAPID_RISE", "FORECAST_HEAVY_RAIN"]
    assert a.gauge_reading == readings[0]


def test_low_scenario():
    readings = [make_reading(2.1, 0), make_reading(2.0, 1)]
    a = compute_risk_assessment(readings, make_forecast(5.0), STATION, assessed_at=NOW)
    assert a.risk_score == 23
    assert a.risk_level == "low"


def test_assessment_is_deterministic_for_identical_inputs():
    readings = [make_reading(5.6, 0), make_reading(5.5, 1)]
    forecast = make_forecast(42.0)
    first = compute_risk_assessment(readings, forecast, STATION, assessed_at=NOW)
    for _ in range(5):
        assert compute_risk_assessment(readings, forecast, STATION, assessed_at=NOW) == first


def test_every_component_contributes_a_signal_without_duplicates():
    readings = [make_reading(4.0, 0), make_reading(4.0, 1)]
    a = compute_risk_assessment(readings, None, STATION, assessed_at=NOW)
    codes = [s.code for s in a.signals]
    assert len(codes) == len(set(codes))
    assert any(c.startswith("GAUGE_") for c in codes)
    assert any(c.startswith("TREND_") for c in codes)
    assert any(c.startswith("FORECAST_") for c in codes)


def test_composite_score_is_clamped_at_zero():
    # falling trend pulls a dry, low gauge below zero before the clamp
    readings = [make_reading(1.0, 0), make_reading(1.5, 1)]
    a = compute_risk_assessment(readings, make_forecast(0.0), STATION, assessed_at=NOW)
    assert a.risk_score == 0


def test_deduplicate_keeps_first_and_orders_by_severity():
    first = RiskSignal(code="A", label="first", description="", severity="info")
    dup = RiskSignal(code="A", label="second", description="", severity="critical")
    crit = RiskSignal(code="B", label="b", description="", severity="critical")
    warn = RiskSignal(code="C", label="c", description="", severity="warning")
    info = RiskSignal(code="D", label="d", description="", severity="info")

    result = deduplicate_signals([first, crit, dup, warn, info])
    assert [s.code for s in result] == ["B", "C", "A", "D"]
    assert result[2].label == "first"
