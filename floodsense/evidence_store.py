"""Append-only evidence store.

Gauge readings, forecasts and risk assessments are persisted as citable
``EvidenceItem`` records, one JSON object per line (NDJSON)::

    <data_dir>/gauge-<station>.ndjson
    <data_dir>/forecast-<station>.ndjson
    <data_dir>/assessment-<station>.ndjson

``EvidenceStore`` is the seam for other backends (SQLite, a time-series DB);
callers only ever see the abstract methods.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from .constants import ASSESSMENT_SOURCE, EVIDENCE_TYPES
from .models import (
    EvidenceItem,
    EvidenceType,
    GaugeReading,
    RiskAssessment,
    WeatherForecast,
    http_date,
)


logger = logging.getLogger("flood.evidence")

# Types produced by ingestion and scoring; reseeding truncates only these.
CLEARED_TYPES = ("gauge", "forecast", "assessment")


def gauge_citation(r: GaugeReading) -> str:
    flow = f" ({r.flow_rate_m3s:.1f} m³/s)" if r.flow_rate_m3s is not None else ""
    return (
        f"Gauge reading at {r.station_id}: {r.water_level_m:.2f} m{flow} "
        f"at {http_date(r.timestamp)}. Source: {r.source}."
    )


def forecast_citation(f: WeatherForecast) -> str:
    return (
        f"Weather forecast issued {http_date(f.forecasted_at)} for {f.station_id}: "
        f"{f.rainfall_mm:.0f} mm total rainfall, peak {f.peak_intensity_mm_h:.1f} mm/h, "
        f"valid {http_date(f.valid_from)} to {http_date(f.valid_to)}. Source: {f.source}."
    )


def assessment_citation(a: RiskAssessment) -> str:
    return (
        f"Risk assessment for {a.station_id} at {a.assessed_at}: "
        f"score {a.risk_score}/100 ({a.risk_level})."
    )


class EvidenceStore(ABC):
    @abstractmethod
    def append_gauge(self, reading: GaugeReading) -> EvidenceItem: ...

    @abstractmethod
    def append_forecast(self, forecast: WeatherForecast) -> EvidenceItem: ...

    @abstractmethod
    def append_assessment(self, assessment: RiskAssessment) -> EvidenceItem: ...

    @abstractmethod
    def query(
        self,
        station_id: str,
        types: Optional[Sequence[EvidenceType]] = None,
        limit: int = 20,
    ) -> List[EvidenceItem]:
        """Newest-first by timestamp string comparison, capped at ``limit``."""

    @abstractmethod
    def query_latest(self, station_id: str, type: EvidenceType) -> Optional[EvidenceItem]: ...

    @abstractmethod
    def clear(self, station_id: str) -> None:
        """Truncate the gauge, forecast and assessment logs of one station.

        Historical reference evidence is kept.
        """


class NdjsonEvidenceStore(EvidenceStore):
    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        # One lock per store: appends never interleave, reads never see half a line.
        self._lock = threading.Lock()

    # --- append ---

    def append_gauge(self, reading: GaugeReading) -> EvidenceItem:
        item = EvidenceItem(
            id=str(uuid.uuid4()),
            type="gauge",
            citation=gauge_citation(reading),
            timestamp=reading.timestamp,
            source=reading.source,
            payload=reading.to_dict(),
        )
        self._write(reading.station_id, item)
        return item

    def append_forecast(self, forecast: WeatherForecast) -> EvidenceItem:
        item = EvidenceItem(
            id=str(uuid.uuid4()),
            type="forecast",
            citation=forecast_citation(forecast),
            timestamp=forecast.forecasted_at,
            source=forecast.source,
            payload=forecast.to_dict(),
        )
        self._write(forecast.station_id, item)
        return item

    def append_assessment(self, assessment: RiskAssessment) -> EvidenceItem:
        item = EvidenceItem(
            id=str(uuid.uuid4()),
            type="assessment",
            citation=assessment_citation(assessment),
            timestamp=assessment.assessed_at,
            source=ASSESSMENT_SOURCE,
            payload=assessment.to_dict(),
        )
        self._write(assessment.station_id, item)
        return item

    # --- query ---

    def query(
        self,
        station_id: str,
        types: Optional[Sequence[EvidenceType]] = None,
        limit: int = 20,
    ) -> List[EvidenceItem]:
        target_types = tuple(types) if types is not None else EVIDENCE_TYPES
        items: List[EvidenceItem] = []
        for t in target_types:
            items.extend(self._read_all(t, station_id))
        items.sort(key=lambda e: e.timestamp, reverse=True)
        return items[: max(0, limit)]

    def query_latest(self, station_id: str, type: EvidenceType) -> Optional[EvidenceItem]:
        items = self._read_all(type, station_id)
        if not items:
            return None
        return max(items, key=lambda e: e.timestamp)

    def clear(self, station_id: str) -> None:
        with self._lock:
            for t in CLEARED_TYPES:
                path = self._path(t, station_id)
                if path.exists():
                    path.write_text("", encoding="utf-8")
        logger.info("evidence_cleared station=%s", station_id)

    # --- internals ---

    def _path(self, type: str, station_id: str) -> Path:
        return self.data_dir / f"{type}-{station_id}.ndjson"

    def _write(self, station_id: str, item: EvidenceItem) -> None:
        line = json.dumps(item.to_dict(), ensure_ascii=False) + "\n"
        path = self._path(item.type, station_id)
        with self._lock:
            with path.open("a", encoding="utf-8") as fh:
                fh.write(line)
        logger.debug("evidence_appended station=%s type=%s id=%s", station_id, item.type, item.id)

    def _read_all(self, type: str, station_id: str) -> List[EvidenceItem]:
        path = self._path(type, station_id)
        with self._lock:
            if not path.exists():
                return []
            content = path.read_text(encoding="utf-8")
        return [EvidenceItem.from_dict(json.loads(line)) for line in content.splitlines() if line.strip()]
