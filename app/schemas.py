"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class ServiceStatus(BaseModel):
    status: str = "ok"
    message: str


class ErrorResponse(BaseModel):
    """Body returned for rejected payloads, empty cache and failed queries."""

    error: str


class Measurement(BaseModel):
    """The canonical measurement as exposed over HTTP."""

    model_config = ConfigDict(from_attributes=True)

    device_id: str
    # Integers are echoed back as sent, not widened to float.
    co2_ppm: Union[StrictInt, float]
    received_at: Optional[datetime] = None
    timestamp_ms: Optional[int] = None
    co2_emission_kg_per_hr: Optional[Union[StrictInt, float]] = None
    asset_type: Optional[str] = None
    asset_name: Optional[str] = None


class IngestAccepted(BaseModel):
    """201 body: the measurement was cached and persisted."""

    status: str = "ok"
    saved: Measurement
    db_id: Optional[int] = Field(default=None, description="Store-assigned record id.")


class IngestPartial(BaseModel):
    """500 body: the measurement was cached but could not be persisted."""

    status: str = "error"
    message: str = "Stored in RAM but failed to write to DB"
    saved: Measurement
    store_error: Optional[str] = None


class EnrichedReading(BaseModel):
    """A persisted reading with the coordinates of its device."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    device_id: str
    co2_ppm: Optional[float] = None
    received_at: Optional[datetime] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    timestamp_ms: Optional[int] = None
    co2_emission_kg_per_hr: Optional[float] = None
    asset_type: Optional[str] = None
    asset_name: Optional[str] = None
