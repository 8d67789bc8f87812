from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import requests
import uvicorn
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from common.logging_setup import get_logger, setup_logging
from spotlight_cache.asset_fetcher import AssetFetcher
from spotlight_cache.cache_store import CacheStore
from spotlight_cache.feed_client import SpotlightFeedClient
from spotlight_cache.refresh import RefreshOrchestrator
from spotlight_cache.scheduler import RefreshScheduler
from spotlight_cache.settings import Settings, load_settings
from spotlight_cache.transcoder import ImageTranscoder


log = get_logger(__name__)

STATUS_TEXT = "Spotlight Cache Service is running."


def _problem(status: int, title: str, detail: str) -> JSONResponse:
    return JSONResponse(
        {"type": "about:blank", "title": title, "status": status, "detail": detail},
        status_code=status,
        media_type="application/problem+json",
    )


def build_pipeline(settings: Settings, session: Optional[requests.Session] = None):
    """Wire store + orchestrator + scheduler from settings. Creates cache dirs."""
    settings.ensure_dirs()
    session = session or requests.Session()
    store = CacheStore(settings.metadata_path)
    orchestrator = RefreshOrchestrator(
        feed_url=settings.api_url,
        store=store,
        image_dir=settings.image_dir,
        feed_client=SpotlightFeedClient(session=session, timeout=settings.request_timeout_s),
        fetcher=AssetFetcher(session=session, timeout=settings.request_timeout_s),
        transcoder=ImageTranscoder(settings.compression_quality),
    )
    log.info("Image compression quality set to %d", settings.compression_quality)
    scheduler = RefreshScheduler(
        orchestrator,
        interval_s=settings.update_interval_s,
        startup_delay_s=settings.startup_delay_s,
    )
    return store, orchestrator, scheduler


def create_app(settings: Optional[Settings] = None, *, run_scheduler: bool = True) -> FastAPI:
    """
    App factory. Without `settings`, configuration is loaded from YAML/env and a
    missing feed URL raises ConfigError here, before the server binds.
    """
    settings = settings or load_settings()
    store, orchestrator, scheduler = build_pipeline(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.load()
        if run_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            await run_in_threadpool(scheduler.stop)

    app = FastAPI(title="Spotlight Cache Service", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=PlainTextResponse)
    def status() -> str:
        return STATUS_TEXT

    @app.get("/health")
    def health(request: Request):
        last = request.app.state.orchestrator.last_result
        return {
            "status": "ok",
            "entries": len(request.app.state.store),
            "scheduler_running": request.app.state.scheduler.running,
            "last_refresh": last.to_dict() if last else None,
        }

    @app.get("/api/spotlight-data")
    def spotlight_data(request: Request):
        try:
            data = request.app.state.store.snapshot()
        except Exception:
            log.exception("Error retrieving spotlight cache data.")
            return _problem(500, "Internal Server Error", "An error occurred while retrieving cache data.")
        if not data:
            log.warning("Cache data requested but is empty.")
        return [e.to_dict() for e in data]

    app.mount("/api/cached-images", StaticFiles(directory=str(settings.image_dir)), name="cached-images")
    return app


def main() -> None:
    settings = load_settings()
    setup_logging(default=settings.log_level, force=True)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


# -------- local dev entrypoint --------
if __name__ == "__main__":
    main()
