"""Ingestion of device payloads into the cache and the durable store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Optional

from datastore.readings_store import ReadingsStore, build_default_store
from models.records import CanonicalMeasurement
from services.errors import InvalidPayloadError
from services.latest_cache import LatestReadingCache, build_default_cache
from services.validator import PayloadSchema, resolve_schema, validate
from settings import get_settings

logger = logging.getLogger(__name__)


class IngestStatus(str, Enum):
    """How far an ingested payload got."""

    rejected = "rejected"
    partial = "partial"
    stored = "stored"


@dataclass(frozen=True)
class IngestOutcome:
    status: IngestStatus
    measurement: Optional[CanonicalMeasurement] = None
    record_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is not IngestStatus.rejected


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestCoordinator:
    """Validates payloads, updates the latest reading and persists it.

    A valid payload always reaches the cache, even when the store insert
    fails; that case is reported as ``partial`` so callers can tell the value
    is not durable. Nothing is retried.
    """

    def __init__(
        self,
        cache: LatestReadingCache,
        store: ReadingsStore,
        schema: PayloadSchema = PayloadSchema.co2_basic,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cache = cache
        self.store = store
        self.schema = schema
        self._clock = clock

    def ingest(self, raw: Any) -> IngestOutcome:
        try:
            measurement = validate(raw, self.schema, now=self._clock())
        except InvalidPayloadError as exc:
            logger.warning(
                "Rejected payload",
                extra={"reason": str(exc), "schema": self.schema.value},
            )
            return IngestOutcome(status=IngestStatus.rejected, reason=str(exc))

        self.cache.set(measurement)
        logger.debug("New measurement received", extra={"device_id": measurement.device_id})

        try:
            record_id = self.store.insert(measurement)
        except Exception as exc:
            logger.exception(
                "Failed to persist measurement",
                extra={"device_id": measurement.device_id, "status": IngestStatus.partial.value},
            )
            return IngestOutcome(
                status=IngestStatus.partial,
                measurement=measurement,
                reason=str(exc) or exc.__class__.__name__,
            )

        logger.info(
            "Measurement persisted",
            extra={"device_id": measurement.device_id, "record_id": record_id},
        )
        return IngestOutcome(
            status=IngestStatus.stored,
            measurement=measurement,
            record_id=record_id,
        )


@lru_cache
def build_default_coordinator() -> IngestCoordinator:
    """Factory that wires the coordinator with the configured store."""
    settings = get_settings()
    return IngestCoordinator(
        cache=build_default_cache(),
        store=build_default_store(),
        schema=resolve_schema(settings.ingest_schema),
    )
