"""Signal factory.

One constructor per reason code. Severity is fixed per code; callers only
supply the triggering values.
"""

from __future__ import annotations

from .models import RiskSignal


# --- Gauge level ---

def signal_above_danger(level_m: float, danger_m: float) -> RiskSignal:
    return RiskSignal(
        code="GAUGE_ABOVE_DANGER",
        label="Above danger level",
        description=f"Water level {level_m:.2f} m exceeds the danger threshold of {danger_m:.2f} m.",
        severity="critical",
        value=level_m,
    )


def signal_above_warning(level_m: float, warning_m: float) -> RiskSignal:
    return RiskSignal(
        code="GAUGE_ABOVE_WARNING",
        label="Above warning level",
        description=(
            f"Water level {level_m:.2f} m has reached or exceeded the warning threshold "
            f"of {warning_m:.2f} m."
        ),
        severity="warning",
        value=level_m,
    )


def signal_elevated_level(level_m: float, baseline_m: float) -> RiskSignal:
    return RiskSignal(
        code="GAUGE_ELEVATED",
        label="Elevated above baseline",
        description=f"Water level {level_m:.2f} m is significantly above the {baseline_m:.2f} m baseline.",
        severity="info",
        value=level_m,
    )


# --- Trend (rates in m/h, rendered as cm/hour) ---

def signal_rapid_rise(rate_m_h: float) -> RiskSignal:
    return RiskSignal(
        code="TREND_RAPID_RISE",
        label="Rapid rise",
        description=f"Water level rising at {rate_m_h * 100:.0f} cm/hour, a rapid escalation rate.",
        severity="critical",
        value=rate_m_h,
    )


def signal_notable_rise(rate_m_h: float) -> RiskSignal:
    return RiskSignal(
        code="TREND_NOTABLE_RISE",
        label="Notable rise",
        description=f"Water level rising at {rate_m_h * 100:.0f} cm/hour, upward trend observed.",
        severity="warning",
        value=rate_m_h,
    )


def signal_stable() -> RiskSignal:
    return RiskSignal(
        code="TREND_STABLE",
        label="Level stable",
        description="Water level is not materially rising or falling.",
        severity="info",
    )


def signal_falling(rate_m_h: float) -> RiskSignal:
    return RiskSignal(
        code="TREND_FALLING",
        label="Level falling",
        description=f"Water level falling at {abs(rate_m_h * 100):.0f} cm/hour, receding.",
        severity="info",
        value=rate_m_h,
    )


# --- Forecast ---

def signal_heavy_rain(rainfall_mm: float) -> RiskSignal:
    return RiskSignal(
        code="FORECAST_HEAVY_RAIN",
        label="Heavy rainfall forecast",
        description=(
            f"{rainfall_mm:.0f} mm of rain expected in the next 72 hours, "
            "significant catchment loading."
        ),
        severity="critical",
        value=rainfall_mm,
    )


def signal_moderate_rain(rainfall_mm: float) -> RiskSignal:
    return RiskSignal(
        code="FORECAST_MODERATE_RAIN",
        label="Moderate rainfall forecast",
        description=f"{rainfall_mm:.0f} mm of rain expected in the next 72 hours.",
        severity="warning",
        value=rainfall_mm,
    )


def signal_low_rain(rainfall_mm: float) -> RiskSignal:
    return RiskSignal(
        code="FORECAST_LOW_RAIN",
        label="Low rainfall forecast",
        description=(
            f"Only {rainfall_mm:.0f} mm of rain expected, minimal additional catchment loading."
        ),
        severity="info",
        value=rainfall_mm,
    )


def signal_forecast_unavailable() -> RiskSignal:
    return RiskSignal(
        code="FORECAST_UNAVAILABLE",
        label="Forecast unavailable",
        description=(
            "No weather forecast could be retrieved. "
            "Rainfall contribution to risk score is set to neutral."
        ),
        severity="info",
    )
