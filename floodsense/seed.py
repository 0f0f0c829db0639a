"""Populate the evidence store with adapter data for every station.

Idempotent per station: existing logs are cleared before re-seeding.

    python -m floodsense.seed
"""

from __future__ import annotations

import logging
from typing import Mapping

from .evidence_store import EvidenceStore
from .gauge_adapters import GaugeAdapter
from .models import StationConfig
from .weather_adapters import WeatherAdapter


logger = logging.getLogger("flood.seed")


def seed_store(
    store: EvidenceStore,
    gauge_adapter: GaugeAdapter,
    weather_adapter: WeatherAdapter,
    stations: Mapping[str, StationConfig],
) -> None:
    for station_id in stations:
        store.clear(station_id)

        readings = gauge_adapter.fetch_latest(station_id, 24)
        for reading in readings:
            store.append_gauge(reading)

        forecast = weather_adapter.fetch_forecast(station_id, 72)
        store.append_forecast(forecast)

        logger.info(
            "seeded station=%s readings=%s rainfall_mm=%s",
            station_id,
            len(readings),
            forecast.rainfall_mm,
        )


def main() -> None:
    from .config import settings
    from .constants import STATIONS
    from .evidence_store import NdjsonEvidenceStore
    from .gauge_adapters import build_gauge_adapter
    from .logging_config import configure_logging
    from .weather_adapters import build_weather_adapter

    configure_logging()
    logger.info("seed_starting data_dir=%s", settings.DATA_DIR)
    seed_store(
        NdjsonEvidenceStore(settings.DATA_DIR),
        build_gauge_adapter(settings.GAUGE_SOURCE),
        build_weather_adapter(settings.WEATHER_SOURCE),
        STATIONS,
    )
    logger.info("seed_done")


if __name__ == "__main__":
    main()
