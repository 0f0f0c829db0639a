from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import GaugeReading, parse_iso


@dataclass(frozen=True)
class NormalizedPayload:
    payload: Dict[str, Any]
    errors: List[str]
    warnings: List[str]


@dataclass(frozen=True)
class NormalizedReadings:
    readings: Tuple[GaugeReading, ...]
    warnings: List[str]


_ASSESS_KEYS = ("stationId", "asOf")


def _to_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_iso(value)
    except ValueError:
        return None


def normalize_assess_request(raw: Any) -> NormalizedPayload:
    """Normalize an assess request body.

    Accepts ``stationId`` (required) and ``asOf`` (optional ISO-8601).

    Returns a NormalizedPayload with:
    - payload: ``station_id`` (lower-cased, trimmed) and ``as_of`` (datetime or None)
    - errors: issues that make the request unserviceable (-> HTTP 400)
    - warnings: non-fatal issues (ignored keys)
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(raw, dict):
        return NormalizedPayload(payload={"station_id": None, "as_of": None}, errors=["body_not_object"], warnings=[])

    station_id = raw.get("stationId")
    if station_id is None:
        errors.append("missing_station_id")
    elif not isinstance(station_id, str) or not station_id.strip():
        errors.append("invalid_station_id")
        station_id = None
    else:
        station_id = station_id.strip().lower()

    as_of = None
    if raw.get("asOf") is not None:
        as_of = _to_datetime(raw.get("asOf"))
        if as_of is None:
            errors.append("invalid_as_of")

    for key in raw:
        if key not in _ASSESS_KEYS:
            warnings.append(f"ignored_key:{key}")

    return NormalizedPayload(
        payload={"station_id": station_id, "as_of": as_of},
        errors=errors,
        warnings=warnings,
    )


def normalize_readings(readings: Sequence[GaugeReading]) -> NormalizedReadings:
    """Order readings newest-first and drop ones the scorer cannot use.

    - negative water levels are dropped (``negative_level_dropped``)
    - unparseable timestamps are dropped (``bad_timestamp_dropped``)
    - repeated timestamps keep the first reading (``duplicate_timestamp_dropped``)
    """
    warnings: List[str] = []
    keyed: List[Tuple[datetime, GaugeReading]] = []
    seen = set()

    for r in readings:
        if r.water_level_m < 0:
            warnings.append("negative_level_dropped")
            continue
        ts = _to_datetime(r.timestamp)
        if ts is None:
            warnings.append("bad_timestamp_dropped")
            continue
        if ts in seen:
            warnings.append("duplicate_timestamp_dropped")
            continue
        seen.add(ts)
        keyed.append((ts, r))

    keyed.sort(key=lambda pair: pair[0], reverse=True)
    return NormalizedReadings(readings=tuple(r for _, r in keyed), warnings=warnings)
