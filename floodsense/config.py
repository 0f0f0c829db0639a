import os
from pathlib import Path

from dotenv import load_dotenv


_ROOT = Path(__file__).resolve().parent.parent
_ENV_PATH = _ROOT / ".env"
load_dotenv(_ENV_PATH)


def _csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS"))

    # Evidence store (one NDJSON file per type + station)
    DATA_DIR = os.getenv("DATA_DIR", str(_ROOT / "data"))
    EVIDENCE_RETRIEVAL_LIMIT = int(os.getenv("EVIDENCE_RETRIEVAL_LIMIT", "8"))

    # Text generation: stub | ollama | anthropic
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "stub")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

    # Ollama
    # Expect either full endpoint (e.g., http://localhost:11434/api/generate)
    # or just host (the provider normalizes a missing path).
    OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434/api/generate")
    OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3")
    OLLAMA_TIMEOUT_SECONDS = float(os.getenv("OLLAMA_TIMEOUT_SECONDS", "120"))

    # Anthropic Messages API
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-6")
    ANTHROPIC_URL = os.getenv("ANTHROPIC_URL", "https://api.anthropic.com/v1/messages")

    # Ingestion: mock | pegelonline, mock | open-meteo
    GAUGE_SOURCE = os.getenv("GAUGE_SOURCE", "mock")
    WEATHER_SOURCE = os.getenv("WEATHER_SOURCE", "mock")
    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

    HEALTHCHECK_TIMEOUT_SECONDS = float(os.getenv("HEALTHCHECK_TIMEOUT_SECONDS", "2"))


settings = Settings()
