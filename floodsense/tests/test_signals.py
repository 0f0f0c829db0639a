import pytest

from floodsense import signals


@pytest.mark.parametrize(
    "signal, code, severity",
    [
        (signals.signal_above_danger(7.6, 7.5), "GAUGE_ABOVE_DANGER", "critical"),
        (signals.signal_above_warning(5.6, 5.5), "GAUGE_ABOVE_WARNING", "warning"),
        (signals.signal_elevated_level(3.0, 2.1), "GAUGE_ELEVATED", "info"),
        (signals.signal_rapid_rise(0.2), "TREND_RAPID_RISE", "critical"),
        (signals.signal_notable_rise(0.08), "TREND_NOTABLE_RISE", "warning"),
        (signals.signal_stable(), "TREND_STABLE", "info"),
        (signals.signal_falling(-0.1), "TREND_FALLING", "info"),
        (signals.signal_heavy_rain(78), "FORECAST_HEAVY_RAIN", "critical"),
        (signals.signal_moderate_rain(34), "FORECAST_MODERATE_RAIN", "warning"),
        (signals.signal_low_rain(6), "FORECAST_LOW_RAIN", "info"),
        (signals.signal_forecast_unavailable(), "FORECAST_UNAVAILABLE", "info"),
    ],
)
def test_each_code_has_a_fixed_severity(signal, code, severity):
    assert signal.code == code
    assert signal.severity == severity
    assert signal.label
    assert signal.description.endswith(".")


def test_descriptions_format_the_triggering_values():
    assert "5.60 m" in signals.signal_above_warning(5.6, 5.5).description
    assert "5.50 m" in signals.signal_above_warning(5.6, 5.5).description
    assert "12 cm/hour" in signals.signal_notable_rise(0.12).description
    assert "78 mm" in signals.signal_heavy_rain(78.2).description


def test_value_is_kept_for_evidence_linking():
    assert signals.signal_above_danger(7.6, 7.5).value == 7.6
    assert signals.signal_stable().value is None
    assert "value" not in signals.signal_forecast_unavailable().to_dict()
