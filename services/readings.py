"""Read side: recent readings from the store, enriched for the map."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

from datastore.device_metadata import build_default_metadata
from datastore.readings_store import ReadingsStore, build_default_store
from models.records import EnrichedReading
from services.enrichment import EnrichmentMode, EnrichmentProjector
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingsService:
    """Queries the store and projects the rows; store errors propagate."""

    def __init__(self, store: ReadingsStore, projector: EnrichmentProjector) -> None:
        self.store = store
        self.projector = projector

    def recent(self, limit: int) -> List[EnrichedReading]:
        records = self.store.query_recent(limit)
        readings = self.projector.project(records)
        logger.debug(
            "Projected recent readings",
            extra={"limit": limit, "record_count": len(readings)},
        )
        return readings


@lru_cache
def build_default_readings_service() -> ReadingsService:
    settings = get_settings()
    projector = EnrichmentProjector(
        metadata=build_default_metadata(),
        mode=EnrichmentMode(settings.enrichment_mode),
    )
    return ReadingsService(store=build_default_store(), projector=projector)
