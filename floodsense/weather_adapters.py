from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Mapping, Optional

import requests

from .config import settings
from .constants import STATIONS
from .errors import IngestionError
from .models import StationConfig, WeatherForecast, to_iso, utc_now


logger = logging.getLogger("flood.ingestion")


class WeatherAdapter(ABC):
    @abstractmethod
    def fetch_forecast(self, station_id: str, window_hours: int = 72) -> WeatherForecast:
        """Rainfall forecast for the catchment around ``station_id``."""


@dataclass(frozen=True)
class _ForecastProfile:
    rainfall_mm: float
    peak_intensity_mm_h: float
    confidence: float


_PROFILES: Dict[str, _ForecastProfile] = {
    "trier": _ForecastProfile(rainfall_mm=78.0, peak_intensity_mm_h=12.5, confidence=0.72),
    "cochem": _ForecastProfile(rainfall_mm=6.0, peak_intensity_mm_h=1.2, confidence=0.91),
    "bernkastel": _ForecastProfile(rainfall_mm=34.0, peak_intensity_mm_h=5.8, confidence=0.81),
}

MOCK_WEATHER_SOURCE = "Mock Weather Adapter v1 (synthetic, replace with DWD/Open-Meteo)"


class MockWeatherAdapter(WeatherAdapter):
    def __init__(self, as_of: Optional[datetime] = None) -> None:
        self.as_of = as_of or utc_now()

    def fetch_forecast(self, station_id: str, window_hours: int = 72) -> WeatherForecast:
        profile = _PROFILES.get(station_id)
        if profile is None:
            raise IngestionError(
                f'MockWeatherAdapter: unknown stationId "{station_id}". '
                f"Known stations: {', '.join(_PROFILES)}"
            )

        issued = to_iso(self.as_of)
        return WeatherForecast(
            station_id=station_id,
            forecasted_at=issued,
            valid_from=issued,
            valid_to=to_iso(self.as_of + timedelta(hours=window_hours)),
            rainfall_mm=profile.rainfall_mm,
            peak_intensity_mm_h=profile.peak_intensity_mm_h,
            confidence=profile.confidence,
            source=MOCK_WEATHER_SOURCE,
        )


OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"


class OpenMeteoAdapter(WeatherAdapter):
    """Open-Meteo hourly precipitation (no key), summed over the window."""

    def __init__(
        self,
        stations: Mapping[str, StationConfig] = STATIONS,
        base_url: str = OPEN_METEO_URL,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.stations = stations
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.HTTP_TIMEOUT_SECONDS

    def fetch_forecast(self, station_id: str, window_hours: int = 72) -> WeatherForecast:
        station = self.stations.get(station_id)
        if station is None:
            raise IngestionError(
                f'OpenMeteoAdapter: unknown stationId "{station_id}". '
                f"Known stations: {', '.join(self.stations)}"
            )

        params = {
            "latitude": station.lat,
            "longitude": station.lon,
            "hourly": "precipitation",
            "forecast_days": math.ceil(window_hours / 24),
            "timezone": "UTC",
        }
        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise IngestionError(f'Open-Meteo request failed for station "{station_id}": {e}') from e
        if not response.ok:
            raise IngestionError(
                f'Open-Meteo API error {response.status_code} for station "{station_id}": {response.reason}'
            )

        try:
            hourly = response.json().get("hourly") or {}
            # Missing hours come back as null.
            precip = [float(v or 0.0) for v in (hourly.get("precipitation") or [])][:window_hours]
        except (ValueError, TypeError, AttributeError) as e:
            raise IngestionError(f'Open-Meteo returned a malformed payload for station "{station_id}": {e}') from e
        now = utc_now()

        return WeatherForecast(
            station_id=station_id,
            forecasted_at=to_iso(now),
            valid_from=to_iso(now),
            valid_to=to_iso(now + timedelta(hours=window_hours)),
            rainfall_mm=round(sum(precip), 1),
            peak_intensity_mm_h=round(max(precip), 1) if precip else 0.0,
            source=f"Open-Meteo (lat={station.lat}, lon={station.lon})",
        )


def build_weather_adapter(source: Optional[str] = None, as_of: Optional[datetime] = None) -> WeatherAdapter:
    choice = (source or settings.WEATHER_SOURCE or "mock").strip().lower()
    if choice == "mock":
        return MockWeatherAdapter(as_of)
    if choice in ("open-meteo", "openmeteo"):
        return OpenMeteoAdapter()
    raise IngestionError(f"unknown WEATHER_SOURCE {choice!r}; expected mock or open-meteo")
