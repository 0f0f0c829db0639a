import threading

import pytest
import requests

from floodsense.constants import SAFETY_NOTICE
from floodsense.errors import IngestionError, InvalidInput
from floodsense.evidence_store import NdjsonEvidenceStore
from floodsense.gauge_adapters import GaugeAdapter, MockGaugeAdapter
from floodsense.guardrails import FALLBACK_SUMMARY
from floodsense.models import to_iso
from floodsense.orchestrator import AssessmentPipeline
from floodsense.providers import LLMProvider, StubLLMProvider
from floodsense.weather_adapters import MockWeatherAdapter, OpenMeteoAdapter, WeatherAdapter

from .conftest import NOW
from .test_providers import FakeResponse, Recorder


class BrokenWeather(WeatherAdapter):
    def fetch_forecast(self, station_id, window_hours=72):
        raise IngestionError("Open-Meteo API error 502")


class BrokenLLM(LLMProvider):
    name = "broken"

    def complete(self, messages):
        raise ConnectionError("no route to host")


def _pipeline(tmp_path, **kwargs):
    kwargs.setdefault("llm", StubLLMProvider())
    return AssessmentPipeline(store=NdjsonEvidenceStore(tmp_path), **kwargs)


def test_run_assessment_end_to_end(tmp_path):
    pipeline = _pipeline(tmp_path)
    explanation = pipeline.run_assessment("trier", NOW)

    assert explanation.station_id == "trier"
    assert explanation.generated_at == to_iso(NOW)
    assert explanation.safety_notice == SAFETY_NOTICE
    assert explanation.summary != FALLBACK_SUMMARY
    assert [e.type for e in explanation.evidence[:3]] == ["gauge", "forecast", "assessment"]
    assert len(explanation.evidence) <= 8

    store = pipeline.store
    assert len(store.query("trier", ["gauge"], limit=100)) == 24
    assert len(store.query("trier", ["forecast"])) == 1
    latest = store.query_latest("trier", "assessment")
    assert latest.payload["riskScore"] == explanation.risk_score


def test_identical_requests_score_identically(tmp_path):
    pipeline = _pipeline(tmp_path)
    first = pipeline.run_assessment("bernkastel", NOW)
    second = pipeline.run_assessment("bernkastel", NOW)
    assert (first.risk_score, first.risk_level) == (second.risk_score, second.risk_level)


def test_unknown_station_is_invalid_input(tmp_path):
    with pytest.raises(InvalidInput, match="Unknown station"):
        _pipeline(tmp_path).run_assessment("rhine", NOW)


def test_missing_forecast_scores_neutral(tmp_path):
    pipeline = _pipeline(tmp_path, weather_adapter_factory=lambda as_of: BrokenWeather())
    explanation = pipeline.run_assessment("cochem", NOW)

    assert "FORECAST_UNAVAILABLE" in [s.code for s in explanation.key_signals]
    assert pipeline.store.query("cochem", ["forecast"]) == []


def test_gauge_failure_is_fatal(tmp_path):
    class BrokenGauge(GaugeAdapter):
        def fetch_latest(self, station_id, limit=24):
            raise IngestionError("PegelOnline API error 500")

    pipeline = _pipeline(tmp_path, gauge_adapter_factory=lambda as_of: BrokenGauge())
    with pytest.raises(IngestionError):
        pipeline.run_assessment("trier", NOW)


def test_failing_generation_still_returns_an_explanation(tmp_path):
    explanation = _pipeline(tmp_path, llm=BrokenLLM()).run_assessment("trier", NOW)
    assert explanation.summary == FALLBACK_SUMMARY
    assert explanation.safety_notice == SAFETY_NOTICE


def test_ingestion_fetches_run_concurrently(tmp_path):
    # Each fetch blocks until the other has started; sequential calls would time out.
    barrier = threading.Barrier(2, timeout=5)

    class WaitingGauge(MockGaugeAdapter):
        def fetch_latest(self, station_id, limit=24):
            barrier.wait()
            return super().fetch_latest(station_id, limit)

    class WaitingWeather(MockWeatherAdapter):
        def fetch_forecast(self, station_id, window_hours=72):
            barrier.wait()
            return super().fetch_forecast(station_id, window_hours)

    pipeline = _pipeline(
        tmp_path,
        gauge_adapter_factory=lambda as_of: WaitingGauge(NOW),
        weather_adapter_factory=lambda as_of: WaitingWeather(NOW),
    )
    assert pipeline.run_assessment("trier", NOW).station_id == "trier"


def test_seed_is_idempotent(tmp_path):
    pipeline = _pipeline(tmp_path)
    pipeline.seed(NOW)
    pipeline.seed(NOW)

    for station_id in pipeline.stations:
        assert len(pipeline.store.query(station_id, ["gauge"], limit=100)) == 24
        assert len(pipeline.store.query(station_id, ["forecast"])) == 1


def test_malformed_forecast_payload_scores_neutral(tmp_path, monkeypatch):
    monkeypatch.setattr(requests, "get", Recorder(FakeResponse(payload=[])))
    pipeline = _pipeline(tmp_path, weather_adapter_factory=lambda as_of: OpenMeteoAdapter())

    explanation = pipeline.run_assessment("trier", NOW)

    assert "FORECAST_UNAVAILABLE" in [s.code for s in explanation.key_signals]
    assert pipeline.store.query("trier", ["forecast"]) == []
