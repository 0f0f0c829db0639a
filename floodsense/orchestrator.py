"""Composition root for one assessment request.

Pipeline::

    fetch gauge readings  \
                           > (concurrently) -> store evidence -> score
    fetch forecast        /                  -> store assessment -> explain

``AssessmentPipeline`` is built once at process start (see ``build_pipeline``)
and handed to the request handlers; it keeps no per-request state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Mapping, Optional

from .agent import FloodExplanationAgent
from .config import Settings, settings
from .constants import STATIONS
from .errors import IngestionError, InvalidInput
from .evidence_store import EvidenceStore, NdjsonEvidenceStore
from .gauge_adapters import GaugeAdapter, MockGaugeAdapter, build_gauge_adapter
from .models import FloodExplanation, StationConfig
from .providers import LLMProvider, build_provider
from .retrieval import EvidenceRetrieval
from .scorer import compute_risk_assessment
from .seed import seed_store
from .validation import normalize_readings
from .weather_adapters import MockWeatherAdapter, WeatherAdapter, build_weather_adapter


logger = logging.getLogger("flood.pipeline")

GAUGE_READINGS_LIMIT = 24
FORECAST_WINDOW_HOURS = 72

GaugeAdapterFactory = Callable[[Optional[datetime]], GaugeAdapter]
WeatherAdapterFactory = Callable[[Optional[datetime]], WeatherAdapter]


class AssessmentPipeline:
    def __init__(
        self,
        store: EvidenceStore,
        llm: LLMProvider,
        stations: Mapping[str, StationConfig] = STATIONS,
        gauge_adapter_factory: GaugeAdapterFactory = MockGaugeAdapter,
        weather_adapter_factory: WeatherAdapterFactory = MockWeatherAdapter,
        retrieval_limit: int = 8,
    ) -> None:
        self.store = store
        self.retrieval = EvidenceRetrieval(store)
        self.llm = llm
        self.stations = stations
        self.gauge_adapter_factory = gauge_adapter_factory
        self.weather_adapter_factory = weather_adapter_factory
        self.retrieval_limit = retrieval_limit
        self.agent = FloodExplanationAgent(
            retrieve_evidence=lambda sid: self.retrieval.retrieve(sid, self.retrieval_limit),
            llm=llm,
        )

    def station(self, station_id: str) -> StationConfig:
        station = self.stations.get(station_id)
        if station is None:
            raise InvalidInput(
                f'Unknown station "{station_id}". Valid stations: {", ".join(self.stations)}'
            )
        return station

    def run_assessment(self, station_id: str, as_of: Optional[datetime] = None) -> FloodExplanation:
        station = self.station(station_id)
        gauge_adapter = self.gauge_adapter_factory(as_of)
        weather_adapter = self.weather_adapter_factory(as_of)

        # Independent fetches; both must finish before scoring.
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="ingest") as pool:
            gauge_future = pool.submit(gauge_adapter.fetch_latest, station_id, GAUGE_READINGS_LIMIT)
            forecast_future = pool.submit(weather_adapter.fetch_forecast, station_id, FORECAST_WINDOW_HOURS)
            wait([gauge_future, forecast_future])

        raw_readings = gauge_future.result()
        try:
            forecast = forecast_future.result()
        except IngestionError as e:
            # Scored as neutral (FORECAST_UNAVAILABLE).
            logger.warning("forecast_unavailable station=%s error=%s", station_id, e)
            forecast = None

        normalized = normalize_readings(raw_readings)
        for w in normalized.warnings:
            logger.warning("reading_warning=%s station=%s", w, station_id)
        readings = normalized.readings

        for reading in readings:
            self.store.append_gauge(reading)
        if forecast is not None:
            self.store.append_forecast(forecast)

        assessment = compute_risk_assessment(readings, forecast, station, assessed_at=as_of)
        self.store.append_assessment(assessment)
        logger.info(
            "assessed station=%s score=%s level=%s readings=%s forecast=%s",
            station_id,
            assessment.risk_score,
            assessment.risk_level,
            len(readings),
            forecast is not None,
        )

        return self.agent.explain(assessment)

    def seed(self, as_of: Optional[datetime] = None) -> None:
        seed_store(
            self.store,
            self.gauge_adapter_factory(as_of),
            self.weather_adapter_factory(as_of),
            self.stations,
        )


def build_pipeline(config: Settings = settings) -> AssessmentPipeline:
    return AssessmentPipeline(
        store=NdjsonEvidenceStore(config.DATA_DIR),
        llm=build_provider(config.LLM_PROVIDER, config),
        gauge_adapter_factory=lambda as_of: build_gauge_adapter(config.GAUGE_SOURCE, as_of),
        weather_adapter_factory=lambda as_of: build_weather_adapter(config.WEATHER_SOURCE, as_of),
        retrieval_limit=config.EVIDENCE_RETRIEVAL_LIMIT,
    )
