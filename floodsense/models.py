from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Tuple, Union

from .errors import InvalidInput


Severity = Literal["info", "warning", "critical"]
RiskLevel = Literal["low", "moderate", "high", "critical"]
EvidenceType = Literal["gauge", "forecast", "historical", "assessment"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Fixed width and always UTC, so plain string comparison orders timestamps.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def http_date(value: str) -> str:
    """RFC 1123 rendering used in citations, e.g. ``Thu, 20 Feb 2025 10:00:00 GMT``."""
    return parse_iso(value).strftime("%a, %d %b %Y %H:%M:%S GMT")


@dataclass(frozen=True)
class StationConfig:
    id: str
    name: str
    river_name: str
    location_name: str
    lat: float
    lon: float
    # Levels in metres above the station datum.
    warning_level_m: float
    danger_level_m: float
    baseline_m: float

    def __post_init__(self) -> None:
        if not (self.baseline_m < self.warning_level_m < self.danger_level_m):
            raise InvalidInput(
                f"station {self.id}: expected baseline < warning < danger, got "
                f"{self.baseline_m} / {self.warning_level_m} / {self.danger_level_m}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "riverName": self.river_name,
            "locationName": self.location_name,
            "lat": self.lat,
            "lon": self.lon,
            "warningLevelM": self.warning_level_m,
            "dangerLevelM": self.danger_level_m,
            "baselineM": self.baseline_m,
        }


@dataclass(frozen=True)
class GaugeReading:
    station_id: str
    timestamp: str
    water_level_m: float
    source: str
    flow_rate_m3s: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "stationId": self.station_id,
            "timestamp": self.timestamp,
            "waterLevelM": self.water_level_m,
        }
        if self.flow_rate_m3s is not None:
            out["flowRateM3s"] = self.flow_rate_m3s
        out["source"] = self.source
        return out


@dataclass(frozen=True)
class WeatherForecast:
    station_id: str
    forecasted_at: str
    valid_from: str
    valid_to: str
    rainfall_mm: float
    peak_intensity_mm_h: float
    source: str
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "stationId": self.station_id,
            "forecastedAt": self.forecasted_at,
            "validFrom": self.valid_from,
            "validTo": self.valid_to,
            "rainfallMm": self.rainfall_mm,
            "peakIntensityMmH": self.peak_intensity_mm_h,
        }
        if self.confidence is not None:
            out["confidence"] = self.confidence
        out["source"] = self.source
        return out


@dataclass(frozen=True)
class RiskSignal:
    code: str
    label: str
    description: str
    severity: Severity
    # Triggering value, kept for evidence linking.
    value: Union[float, str, None] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "code": self.code,
            "label": self.label,
            "description": self.description,
            "severity": self.severity,
        }
        if self.value is not None:
            out["value"] = self.value
        return out


@dataclass(frozen=True)
class RiskAssessment:
    station_id: str
    assessed_at: str
    risk_score: int
    risk_level: RiskLevel
    signals: Tuple[RiskSignal, ...]
    gauge_reading: GaugeReading
    weather_forecast: Optional[WeatherForecast]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stationId": self.station_id,
            "assessedAt": self.assessed_at,
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level,
            "signals": [s.to_dict() for s in self.signals],
            "gaugeReading": self.gauge_reading.to_dict(),
            "weatherForecast": self.weather_forecast.to_dict() if self.weather_forecast else None,
        }


@dataclass(frozen=True)
class EvidenceItem:
    id: str
    type: EvidenceType
    citation: str
    timestamp: str
    source: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "citation": self.citation,
            "timestamp": self.timestamp,
            "source": self.source,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "EvidenceItem":
        return cls(
            id=str(raw["id"]),
            type=raw["type"],
            citation=str(raw.get("citation", "")),
            timestamp=str(raw.get("timestamp", "")),
            source=str(raw.get("source", "")),
            payload=dict(raw.get("payload") or {}),
        )


@dataclass(frozen=True)
class EvidenceBundle:
    station_id: str
    # Newest first, capped at the retrieval limit.
    items: Tuple[EvidenceItem, ...]
    retrieved_at: str
    latest_gauge: Optional[EvidenceItem] = None
    latest_forecast: Optional[EvidenceItem] = None
    latest_assessment: Optional[EvidenceItem] = None

    def to_dict(self) -> Dict[str, Any]:
        def _opt(item: Optional[EvidenceItem]) -> Optional[Dict[str, Any]]:
            return item.to_dict() if item is not None else None

        return {
            "stationId": self.station_id,
            "items": [i.to_dict() for i in self.items],
            "retrievedAt": self.retrieved_at,
            "latestGauge": _opt(self.latest_gauge),
            "latestForecast": _opt(self.latest_forecast),
            "latestAssessment": _opt(self.latest_assessment),
        }


@dataclass(frozen=True)
class FloodExplanation:
    station_id: str
    generated_at: str
    risk_score: int
    risk_level: RiskLevel
    summary: str
    key_signals: Tuple[RiskSignal, ...]
    evidence: Tuple[EvidenceItem, ...]
    uncertainty: str
    safety_notice: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stationId": self.station_id,
            "generatedAt": self.generated_at,
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level,
            "summary": self.summary,
            "keySignals": [s.to_dict() for s in self.key_signals],
            "evidence": [e.to_dict() for e in self.evidence],
            "uncertainty": self.uncertainty,
            "safetyNotice": self.safety_notice,
        }
