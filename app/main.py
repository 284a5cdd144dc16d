from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from datastore.readings_store import build_default_store
from logging_config import configure_logging
from services.ingest import build_default_coordinator
from services.readings import build_default_readings_service
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    store = build_default_store()
    logger.info(
        "Ingest service ready",
        extra={"schema": settings.ingest_schema, "store_backend": settings.store_backend},
    )
    try:
        yield
    finally:
        store.close()
        build_default_readings_service.cache_clear()
        build_default_coordinator.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="CO2 Telemetry Ingest",
        description="Accepts CO2 readings from field devices and serves them to the map client.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


app = create_app()


if __name__ == "__main__":
    run()
