"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.schemas import (
    EnrichedReading,
    ErrorResponse,
    IngestAccepted,
    IngestPartial,
    Measurement,
    ServiceStatus,
)
from services.errors import StoreError
from services.ingest import IngestCoordinator, IngestStatus, build_default_coordinator
from services.latest_cache import LatestReadingCache, build_default_cache
from services.readings import ReadingsService, build_default_readings_service
from settings import get_settings

logger = logging.getLogger(__name__)

MAX_READINGS_LIMIT = 1000

router = APIRouter()


def get_coordinator() -> IngestCoordinator:
    return build_default_coordinator()


def get_cache() -> LatestReadingCache:
    return build_default_cache()


def get_readings_service() -> ReadingsService:
    return build_default_readings_service()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.get(
    "/",
    response_model=ServiceStatus,
    summary="Root endpoint reporting that the service is up.",
    status_code=status.HTTP_200_OK,
)
async def root() -> ServiceStatus:
    return ServiceStatus(message="Carbon backend running")


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/data",
    response_model=Measurement,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    summary="Return the most recently accepted measurement.",
)
@router.get(
    "/api/test",
    response_model=Measurement,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    include_in_schema=False,
)
async def latest_measurement(cache: LatestReadingCache = Depends(get_cache)):
    measurement = cache.get()
    if measurement is None:
        return _error(status.HTTP_404_NOT_FOUND, "No data received yet")
    return Measurement.model_validate(measurement)


@router.post(
    "/data",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestAccepted,
    responses={400: {"model": ErrorResponse}, 500: {"model": IngestPartial}},
    summary="Accept a reading pushed by a device.",
)
@router.post(
    "/api/test",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestAccepted,
    responses={400: {"model": ErrorResponse}, 500: {"model": IngestPartial}},
    include_in_schema=False,
)
async def ingest_measurement(
    request: Request,
    coordinator: IngestCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    try:
        raw = await request.json()
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid payload format: body is not valid JSON")

    # The store call may block on network I/O.
    outcome = await run_in_threadpool(coordinator.ingest, raw)

    if outcome.status is IngestStatus.rejected:
        return _error(status.HTTP_400_BAD_REQUEST, outcome.reason or "Invalid payload format")

    saved = Measurement.model_validate(outcome.measurement)
    if outcome.status is IngestStatus.partial:
        body = IngestPartial(saved=saved, store_error=outcome.reason)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json", exclude_none=True),
        )

    body = IngestAccepted(saved=saved, db_id=outcome.record_id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@router.get(
    "/readings",
    response_model=List[EnrichedReading],
    responses={500: {"model": ErrorResponse}},
    summary="Return recent readings joined with device coordinates, newest first.",
)
def recent_readings(
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        le=MAX_READINGS_LIMIT,
        description="Maximum number of readings to return.",
    ),
    service: ReadingsService = Depends(get_readings_service),
):
    if limit is None:
        limit = min(get_settings().readings_default_limit, MAX_READINGS_LIMIT)
    try:
        readings = service.recent(limit)
    except StoreError:
        logger.exception("Failed to fetch readings", extra={"limit": limit})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch readings")
    return [EnrichedReading.model_validate(reading) for reading in readings]
