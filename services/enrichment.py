"""Projection of stored readings into the map-facing view."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, List, Optional

from datastore.device_metadata import DeviceMetadata
from models.records import EnrichedReading, StoredRecord


class EnrichmentMode(str, Enum):
    """What to do with readings from devices without coordinates."""

    drop = "drop"
    pass_through = "pass_through"


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _to_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class EnrichmentProjector:
    """Joins stored readings with device coordinates.

    The mode is fixed at construction: ``drop`` leaves unmapped devices out,
    ``pass_through`` keeps them with ``lat``/``lng`` set to ``None``. Record
    order is preserved.
    """

    def __init__(self, metadata: DeviceMetadata, mode: EnrichmentMode = EnrichmentMode.drop) -> None:
        self.metadata = metadata
        self.mode = mode

    def project(self, records: Iterable[StoredRecord]) -> List[EnrichedReading]:
        enriched: List[EnrichedReading] = []
        for record in records:
            coords = self.metadata.lookup(record.device_id)
            if coords is None and self.mode is EnrichmentMode.drop:
                continue
            values = record.values
            enriched.append(
                EnrichedReading(
                    id=record.record_id,
                    device_id=record.device_id,
                    co2_ppm=_to_float(values.get("co2_ppm")),
                    received_at=record.received_at,
                    lat=coords.lat if coords else None,
                    lng=coords.lng if coords else None,
                    timestamp_ms=_to_int(values.get("timestamp_ms")),
                    co2_emission_kg_per_hr=_to_float(values.get("co2_emission_kg_per_hr")),
                    asset_type=_to_text(values.get("asset_type")),
                    asset_name=_to_text(values.get("asset_name")),
                )
            )
        return enriched
