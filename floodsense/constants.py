from __future__ import annotations

from typing import Dict

from .models import StationConfig


# Component weights (sum to 1.0).
SCORE_WEIGHTS = {
    # How close the current gauge is to danger level
    "GAUGE_LEVEL": 0.45,
    # Rate of rise between the two newest readings
    "GAUGE_TREND": 0.25,
    # Rainfall forecast over the next 72 h
    "FORECAST_RAIN": 0.30,
}

# Total forecast rainfall, mm.
RAINFALL_THRESHOLDS = {
    "LOW": 10.0,
    "MODERATE": 30.0,
    "HIGH": 60.0,
    # Saturated catchment expected
    "CRITICAL": 100.0,
}

# Rise rates, m/h.
TREND_THRESHOLDS = {
    "RAPID_RISE_MH": 0.15,
    "NOTABLE_RISE_MH": 0.05,
}

# Neutral forecast component when no forecast could be fetched.
FORECAST_UNAVAILABLE_SCORE = 50.0

RISK_LEVELS = ("low", "moderate", "high", "critical")
SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2}
EVIDENCE_TYPES = ("gauge", "forecast", "assessment", "historical")

# Must appear in every explanation; the guardrails check the first 60 chars.
SAFETY_NOTICE = (
    "IMPORTANT: This analysis is for decision-support purposes only. "
    "It does not constitute an official flood warning or emergency directive. "
    "Always follow guidance from your national or regional flood-warning authority "
    "and emergency services. Do not rely solely on this tool for safety decisions."
)
SAFETY_NOTICE_PREFIX_LEN = 60

ASSESSMENT_SOURCE = "flood-risk-engine"

# Mosel gauge stations. Levels approximate; PegelOnline / BfG are authoritative.
STATIONS: Dict[str, StationConfig] = {
    "trier": StationConfig(
        id="trier",
        name="Trier Pegel",
        river_name="Mosel",
        location_name="Trier, Rhineland-Palatinate, Germany",
        lat=49.7567,
        lon=6.6414,
        warning_level_m=5.5,
        danger_level_m=7.5,
        baseline_m=2.1,
    ),
    "cochem": StationConfig(
        id="cochem",
        name="Cochem Pegel",
        river_name="Mosel",
        location_name="Cochem, Rhineland-Palatinate, Germany",
        lat=50.1453,
        lon=7.1669,
        warning_level_m=6.0,
        danger_level_m=8.5,
        baseline_m=1.8,
    ),
    "bernkastel": StationConfig(
        id="bernkastel",
        name="Bernkastel-Kues Pegel",
        river_name="Mosel",
        location_name="Bernkastel-Kues, Rhineland-Palatinate, Germany",
        lat=49.9147,
        lon=7.0726,
        warning_level_m=5.0,
        danger_level_m=7.0,
        baseline_m=1.5,
    ),
}
