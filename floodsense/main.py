from contextlib import asynccontextmanager
import logging
import os
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .config import settings
from .errors import InvalidInput
from .logging_config import configure_logging
from .orchestrator import AssessmentPipeline, build_pipeline
from .validation import normalize_assess_request

logger = logging.getLogger("flood.api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def create_app(pipeline: Optional[AssessmentPipeline] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        logger.info("app_starting")

        # Built once here and passed to handlers via app.state.
        if getattr(app.state, "pipeline", None) is None:
            app.state.pipeline = build_pipeline()
        logger.info("pipeline_ready provider=%s data_dir=%s", app.state.pipeline.llm.name, settings.DATA_DIR)

        try:
            yield
        finally:
            logger.info("app_stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/ready")
    def ready(request: Request, include_llm: bool = False):
        p: AssessmentPipeline = request.app.state.pipeline

        data_dir = getattr(p.store, "data_dir", None)
        store_ok = data_dir is None or os.access(data_dir, os.W_OK)

        llm_ok = None
        llm_error = None
        probe = getattr(p.llm, "is_available", None)
        if include_llm and probe is not None:
            llm_ok, llm_error = probe()

        is_ready = store_ok and (llm_ok is not False)
        payload = {
            "ready": is_ready,
            "store": {"ok": store_ok, "data_dir": str(data_dir) if data_dir is not None else None},
        }
        if include_llm:
            payload["llm"] = {"ok": llm_ok, "error": llm_error, "provider": p.llm.name}

        if not is_ready:
            raise HTTPException(status_code=503, detail=payload)
        return payload

    @app.get("/stations")
    def stations(request: Request):
        p: AssessmentPipeline = request.app.state.pipeline
        return {"stations": [s.to_dict() for s in p.stations.values()]}

    @app.get("/evidence/{station_id}")
    def evidence(station_id: str, request: Request, limit: int = 10):
        p: AssessmentPipeline = request.app.state.pipeline
        if station_id not in p.stations:
            raise HTTPException(status_code=404, detail={"error": "unknown_station", "stationId": station_id})
        limit = max(1, min(int(limit), 200))
        return p.retrieval.retrieve(station_id, limit).to_dict()

    @app.post("/api/assess")
    async def assess(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return _error(400, "Request body must be valid JSON")

        normalized = normalize_assess_request(body)
        for w in normalized.warnings:
            logger.warning("assess_request_warning=%s", w)
        if normalized.errors:
            if "missing_station_id" in normalized.errors or "invalid_station_id" in normalized.errors:
                return _error(400, "Missing required field: stationId")
            return _error(400, f"Invalid request: {', '.join(normalized.errors)}")

        p: AssessmentPipeline = request.app.state.pipeline
        station_id = normalized.payload["station_id"]
        try:
            explanation = await run_in_threadpool(p.run_assessment, station_id, normalized.payload["as_of"])
        except InvalidInput as e:
            logger.warning("assess_rejected station=%s error=%s", station_id, e)
            return _error(400, str(e))
        except Exception as e:
            logger.exception("assess_failed station=%s", station_id)
            return _error(500, str(e) or "Internal server error")

        return {"ok": True, "explanation": explanation.to_dict()}

    @app.post("/api/seed")
    def seed(request: Request):
        p: AssessmentPipeline = request.app.state.pipeline
        try:
            p.seed()
        except Exception as e:
            logger.exception("seed_failed")
            return _error(500, str(e) or "Seed failed")
        return {"ok": True, "message": "Evidence store seeded successfully."}

    return app


app = create_app()
