"""Text-generation providers.

The agent only sees ``LLMProvider.complete(messages) -> str``. Auth, model
selection and any retries belong to the provider, never to the agent.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Optional, Sequence
from urllib.parse import urlparse

import requests

from .config import Settings, settings
from .constants import SAFETY_NOTICE
from .errors import FloodSenseError, InvalidInput


logger = logging.getLogger("flood.llm")


@dataclass(frozen=True)
class LLMMessage:
    role: Literal["system", "user", "assistant"]
    content: str


class LLMProviderError(FloodSenseError):
    def __init__(self, message: str, provider_name: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.provider_name = provider_name
        self.cause = cause


class LLMProvider(ABC):
    name: str = "provider"

    @abstractmethod
    def complete(self, messages: Sequence[LLMMessage]) -> str:
        """Return the model's text reply. Raises ``LLMProviderError`` on failure."""


def _split_messages(messages: Sequence[LLMMessage]) -> tuple[str, list[LLMMessage]]:
    system = "\n\n".join(m.content for m in messages if m.role == "system")
    rest = [m for m in messages if m.role != "system"]
    return system, rest


# ---------------------------------------------------------------------------
# Deterministic stub
# ---------------------------------------------------------------------------


def _stub_summary(score: int, station: str) -> str:
    display = station[:1].upper() + station[1:]
    if score >= 75:
        return (
            f"Critical flood risk conditions are indicated at {display}. "
            f"The composite risk score of {score}/100 reflects elevated water levels, "
            "a rapid rising trend, and significant rainfall forecast for the catchment. "
            "The combination of these factors suggests a high probability of flooding in the near term."
        )
    if score >= 50:
        return (
            f"High flood risk is indicated at {display} (score: {score}/100). "
            "Water levels are elevated and the forecast includes notable rainfall. "
            "Conditions should be monitored closely as the situation may escalate."
        )
    if score >= 25:
        return (
            f"Moderate flood risk conditions are present at {display} (score: {score}/100). "
            "Some indicator thresholds are elevated but the situation is not immediately critical. "
            "Continue to monitor water levels and incoming forecast updates."
        )
    return (
        f"Low flood risk is indicated at {display} (score: {score}/100). "
        "Water levels are near baseline and no significant rainfall is forecast. "
        "No immediate concern, but routine monitoring should continue."
    )


class StubLLMProvider(LLMProvider):
    """Builds a plausible explanation from the prompt itself; no network.

    Used for tests, CI and local development without an API key.
    """

    name = "Stub (deterministic, no LLM call)"

    def complete(self, messages: Sequence[LLMMessage]) -> str:
        user_msg = next((m.content for m in messages if m.role == "user"), "")

        score_match = re.search(r"Risk score:\s*(\d+)", user_msg, re.IGNORECASE)
        station_match = re.search(r"Station:\s*([\w-]+)", user_msg, re.IGNORECASE)
        score = int(score_match.group(1)) if score_match else 50
        station = station_match.group(1) if station_match else "unknown"

        return json.dumps(
            {
                "summary": _stub_summary(score, station),
                "uncertainty": (
                    "This assessment is based on mock sensor data and a deterministic stub provider. "
                    "In production, real-time gauge readings (PegelOnline) and weather forecasts would be used. "
                    "Forecast confidence may be limited beyond 48 hours. Catchment saturation is not modelled."
                ),
                "safetyNotice": SAFETY_NOTICE,
            }
        )


# ---------------------------------------------------------------------------
# Ollama
# ---------------------------------------------------------------------------


def _normalize_ollama_url(url: str) -> str:
    # Accept either full endpoint (..../api/generate) or base host (http://localhost:11434)
    # and normalize to /api/generate.
    parsed = urlparse(url)
    path = parsed.path or ""
    if path.rstrip("/") in ("", "/api"):
        return url.rstrip("/").removesuffix("/api") + "/api/generate"
    return url


class OllamaProvider(LLMProvider):
    def __init__(
        self,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.url = _normalize_ollama_url(url or settings.OLLAMA_URL)
        self.model = model or settings.OLLAMA_MODEL
        self.timeout_seconds = float(timeout_seconds if timeout_seconds is not None else settings.OLLAMA_TIMEOUT_SECONDS)
        self.name = f"Ollama ({self.model})"

    def is_available(self, timeout_seconds: float | None = None) -> tuple[bool, str | None]:
        """Best-effort check that Ollama is reachable.

        Uses /api/tags which is cheap and doesn't require generating tokens.
        """
        timeout = float(timeout_seconds) if timeout_seconds is not None else settings.HEALTHCHECK_TIMEOUT_SECONDS
        parsed = urlparse(self.url)
        tags_url = f"{parsed.scheme}://{parsed.netloc}/api/tags"
        try:
            resp = requests.get(tags_url, timeout=timeout)
        except requests.RequestException as e:
            return False, str(e)
        if not resp.ok:
            return False, f"HTTP {resp.status_code}: {resp.text}"
        return True, None

    def complete(self, messages: Sequence[LLMMessage]) -> str:
        system, rest = _split_messages(messages)
        prompt = "\n\n".join(m.content for m in rest)
        try:
            response = requests.post(
                self.url,
                json={
                    "model": self.model,
                    "system": system,
                    "prompt": prompt,
                    "stream": False,
                    "format": "json",
                },
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise LLMProviderError(f"LLM unavailable: {e}", self.name, e) from e

        if not response.ok:
            # Common case: model not pulled yet -> 404 with JSON error.
            raise LLMProviderError(f"LLM error {response.status_code}: {response.text}", self.name)
        try:
            body = response.json()
        except ValueError as e:
            raise LLMProviderError(f"LLM returned a non-JSON body: {e}", self.name, e) from e
        if not isinstance(body, dict):
            raise LLMProviderError("Unexpected response body", self.name)
        return body.get("response", "") or ""


# ---------------------------------------------------------------------------
# Anthropic Messages API
# ---------------------------------------------------------------------------


class AnthropicProvider(LLMProvider):
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_tokens: int = 1024,
    ) -> None:
        self.model = model or settings.ANTHROPIC_MODEL
        self.name = f"Anthropic ({self.model})"
        key = api_key or settings.ANTHROPIC_API_KEY
        if not key:
            raise LLMProviderError("ANTHROPIC_API_KEY environment variable is not set.", self.name)
        self.api_key = key
        self.url = url or settings.ANTHROPIC_URL
        self.timeout_seconds = float(timeout_seconds if timeout_seconds is not None else settings.LLM_TIMEOUT_SECONDS)
        self.max_tokens = max_tokens

    def complete(self, messages: Sequence[LLMMessage]) -> str:
        system, rest = _split_messages(messages)
        try:
            response = requests.post(
                self.url,
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": self.API_VERSION,
                    "content-type": "application/json",
                },
                json={
                    "model": self.model,
                    "max_tokens": self.max_tokens,
                    "system": system,
                    "messages": [{"role": m.role, "content": m.content} for m in rest],
                },
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise LLMProviderError(f"LLM unavailable: {e}", self.name, e) from e

        if not response.ok:
            raise LLMProviderError(f"LLM error {response.status_code}: {response.text}", self.name)

        try:
            body = response.json()
        except ValueError as e:
            raise LLMProviderError(f"LLM returned a non-JSON body: {e}", self.name, e) from e

        blocks = body.get("content") if isinstance(body, dict) else None
        first = blocks[0] if isinstance(blocks, list) and blocks else None
        if not isinstance(first, dict) or first.get("type") != "text":
            raise LLMProviderError("Unexpected response type", self.name)
        return first.get("text", "") or ""


def build_provider(name: Optional[str] = None, config: Settings = settings) -> LLMProvider:
    choice = (name or config.LLM_PROVIDER or "stub").strip().lower()
    if choice == "stub":
        return StubLLMProvider()
    if choice == "ollama":
        return OllamaProvider(config.OLLAMA_URL, config.OLLAMA_MODEL, config.OLLAMA_TIMEOUT_SECONDS)
    if choice == "anthropic":
        return AnthropicProvider(
            api_key=config.ANTHROPIC_API_KEY,
            model=config.ANTHROPIC_MODEL,
            url=config.ANTHROPIC_URL,
            timeout_seconds=config.LLM_TIMEOUT_SECONDS,
        )
    raise InvalidInput(f"unknown LLM_PROVIDER {choice!r}; expected stub, ollama or anthropic")
