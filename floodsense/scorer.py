"""Rule-based composite flood-risk scoring (0-100).

Three components, weighted by ``SCORE_WEIGHTS``:

1. Gauge level (45%): piecewise-linear from baseline through warning to
   danger. At or below baseline = 0, at or above danger = 100.
2. Gauge trend (25%): rise/fall rate between the two newest readings.
   Rapid rise = 100, stable = 0, falling = -20.
3. Forecast rainfall (30%): banded on ``RAINFALL_THRESHOLDS``, linear within
   each band. A missing forecast scores a neutral 50.

Final score = round(clamp(sum(component * weight), 0, 100)).

The numeric result depends only on the inputs; ``assessed_at`` is the one
wall-clock field and callers can pin it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import (
    FORECAST_UNAVAILABLE_SCORE,
    RAINFALL_THRESHOLDS,
    SCORE_WEIGHTS,
    SEVERITY_ORDER,
    TREND_THRESHOLDS,
)
from .errors import InvalidInput
from .models import (
    GaugeReading,
    RiskAssessment,
    RiskLevel,
    RiskSignal,
    StationConfig,
    WeatherForecast,
    parse_iso,
    to_iso,
    utc_now,
)
from .signals import (
    signal_above_danger,
    signal_above_warning,
    signal_elevated_level,
    signal_falling,
    signal_forecast_unavailable,
    signal_heavy_rain,
    signal_low_rain,
    signal_moderate_rain,
    signal_notable_rise,
    signal_rapid_rise,
    signal_stable,
)


logger = logging.getLogger("flood.scorer")


@dataclass(frozen=True)
class ComponentScore:
    score: float
    signals: Tuple[RiskSignal, ...]
    # Only set by the trend component.
    rate_m_h: Optional[float] = None


def _clamp(n: float, lo: float, hi: float) -> float:
    return min(max(n, lo), hi)


def _interpolate(value: float, lo: float, hi: float, score_lo: float, score_hi: float) -> float:
    fraction = (value - lo) / (hi - lo)
    return score_lo + fraction * (score_hi - score_lo)


def score_gauge_level(level_m: float, station: StationConfig) -> ComponentScore:
    baseline = station.baseline_m
    warning = station.warning_level_m
    danger = station.danger_level_m
    midpoint = baseline + (warning - baseline) * 0.5
    relative = (level_m - baseline) / (warning - baseline)

    signals: List[RiskSignal] = []
    if level_m >= danger:
        score = 100.0
        signals.append(signal_above_danger(level_m, danger))
    elif level_m >= warning:
        # 75-99 between warning and danger
        score = _interpolate(level_m, warning, danger, 75.0, 99.0)
        signals.append(signal_above_warning(level_m, warning))
    elif level_m >= midpoint:
        score = 35.0 + relative * 40.0
        signals.append(signal_elevated_level(level_m, baseline))
    elif level_m > baseline:
        score = relative * 35.0
        signals.append(signal_elevated_level(level_m, baseline))
    else:
        score = 0.0

    return ComponentScore(score=_clamp(score, 0.0, 100.0), signals=tuple(signals))


def _stable() -> ComponentScore:
    return ComponentScore(score=0.0, signals=(signal_stable(),), rate_m_h=0.0)


def score_gauge_trend(readings: Sequence[GaugeReading]) -> ComponentScore:
    """Score the rise rate between ``readings[0]`` (newest) and ``readings[1]``."""
    if len(readings) < 2:
        return _stable()

    latest, previous = readings[0], readings[1]
    dt_hours = (parse_iso(latest.timestamp) - parse_iso(previous.timestamp)).total_seconds() / 3600.0
    if dt_hours <= 0:
        return _stable()

    rate = (latest.water_level_m - previous.water_level_m) / dt_hours
    rapid = TREND_THRESHOLDS["RAPID_RISE_MH"]
    notable = TREND_THRESHOLDS["NOTABLE_RISE_MH"]

    if rate >= rapid:
        score = 100.0
        signal = signal_rapid_rise(rate)
    elif rate >= notable:
        score = _interpolate(rate, notable, rapid, 50.0, 100.0)
        signal = signal_notable_rise(rate)
    elif rate >= -notable:
        score = 0.0
        signal = signal_stable()
    else:
        # Receding water slightly lowers the composite.
        score = -20.0
        signal = signal_falling(rate)

    return ComponentScore(score=_clamp(score, -20.0, 100.0), signals=(signal,), rate_m_h=rate)


def score_forecast(forecast: Optional[WeatherForecast]) -> ComponentScore:
    if forecast is None:
        return ComponentScore(score=FORECAST_UNAVAILABLE_SCORE, signals=(signal_forecast_unavailable(),))

    mm = forecast.rainfall_mm
    low = RAINFALL_THRESHOLDS["LOW"]
    moderate = RAINFALL_THRESHOLDS["MODERATE"]
    high = RAINFALL_THRESHOLDS["HIGH"]
    critical = RAINFALL_THRESHOLDS["CRITICAL"]

    if mm >= critical:
        score = 100.0
        signal = signal_heavy_rain(mm)
    elif mm >= high:
        score = _interpolate(mm, high, critical, 75.0, 100.0)
        signal = signal_heavy_rain(mm)
    elif mm >= moderate:
        score = _interpolate(mm, moderate, high, 50.0, 75.0)
        signal = signal_moderate_rain(mm)
    elif mm >= low:
        score = _interpolate(mm, low, moderate, 25.0, 50.0)
        signal = signal_low_rain(mm)
    else:
        score = (mm / low) * 25.0
        signal = signal_low_rain(mm)

    return ComponentScore(score=_clamp(score, 0.0, 100.0), signals=(signal,))


def score_to_level(score: int) -> RiskLevel:
    if score >= 75:
        return "critical"
    if score >= 50:
        return "high"
    if score >= 25:
        return "moderate"
    return "low"


def deduplicate_signals(signals: Iterable[RiskSignal]) -> Tuple[RiskSignal, ...]:
    """Drop repeated codes (first wins), then order critical -> warning -> info.

    ``sorted`` is stable, so ties keep their input order.
    """
    seen = set()
    unique: List[RiskSignal] = []
    for s in signals:
        if s.code in seen:
            continue
        seen.add(s.code)
        unique.append(s)
    return tuple(sorted(unique, key=lambda s: SEVERITY_ORDER.get(s.severity, len(SEVERITY_ORDER))))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_risk_assessment(
    readings: Sequence[GaugeReading],
    forecast: Optional[WeatherForecast],
    station: StationConfig,
    assessed_at: Optional[datetime] = None,
) -> RiskAssessment:
    """Score one station.

    ``readings`` must be newest-first and non-empty.
    """
    if not readings:
        raise InvalidInput(f"no gauge readings provided for station {station.id}")

    latest = readings[0]
    gauge = score_gauge_level(latest.water_level_m, station)
    trend = score_gauge_trend(readings)
    rain = score_forecast(forecast)

    raw_score = (
        gauge.score * SCORE_WEIGHTS["GAUGE_LEVEL"]
        + trend.score * SCORE_WEIGHTS["GAUGE_TREND"]
        + rain.score * SCORE_WEIGHTS["FORECAST_RAIN"]
    )
    risk_score = _round_half_up(_clamp(raw_score, 0.0, 100.0))
    risk_level = score_to_level(risk_score)

    signals = deduplicate_signals(gauge.signals + trend.signals + rain.signals)

    logger.debug(
        "scored station=%s gauge=%.2f trend=%.2f rain=%.2f score=%s level=%s",
        station.id,
        gauge.score,
        trend.score,
        rain.score,
        risk_score,
        risk_level,
    )

    return RiskAssessment(
        station_id=station.id,
        assessed_at=to_iso(assessed_at or utc_now()),
        risk_score=risk_score,
        risk_level=risk_level,
        signals=signals,
        gauge_reading=latest,
        weather_forecast=forecast,
    )
