"""histview FastAPI application entry point."""
from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from histview import config
from histview.file_watcher import file_watcher
from histview.history_service import get_history_service
from histview.observability import (
    PROMETHEUS_CONTENT_TYPE,
    initialize as initialize_observability,
    render_prometheus,
    shutdown as shutdown_observability,
)
from histview.parsers.history import SourceUnavailable
from histview.routers.api import categories_router, history_router, sessions_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("histview")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("histview starting up")
    initialize_observability(app)

    service = get_history_service()
    logger.info(f"History file: {service.settings.history_file}")
    logger.info(f"Session timeout: {service.settings.session_heuristics.timeout_minutes}m")
    try:
        service.refresh()
    except SourceUnavailable as e:
        # Serve empty results until the file appears.
        logger.error(f"Initial parse failed: {e}")

    if config.AUTO_REFRESH:
        await file_watcher.start(service)

    yield

    logger.info("histview shutting down")
    await file_watcher.stop()
    shutdown_observability(app)


app = FastAPI(
    title="histview API",
    description="Shell history sessions, categories and summaries",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router)
app.include_router(history_router)
app.include_router(categories_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    service = get_history_service()
    return {
        "status": "ok",
        "history_file": service.settings.history_file,
        "last_updated": service.last_updated,
        "watcher": "running" if file_watcher.is_running else "stopped",
    }


@app.get("/metrics")
def metrics():
    return Response(content=render_prometheus(), media_type=PROMETHEUS_CONTENT_TYPE)


def run() -> None:
    parser = argparse.ArgumentParser(description="Serve shell history sessions over HTTP.")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--history", default="", help="Path to zsh history file")
    args = parser.parse_args()

    if args.history:
        service = get_history_service()
        settings = service.settings.model_copy(update={"history_file": args.history})
        service.settings = settings

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    run()
