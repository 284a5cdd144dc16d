"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class CanonicalMeasurement:
    """A validated reading in the shape of the deployed payload schema.

    Exactly one of ``received_at`` (server clock) and ``timestamp_ms`` (device
    clock) is set, depending on the schema.
    """

    device_id: str
    co2_ppm: float
    received_at: Optional[datetime] = None
    timestamp_ms: Optional[int] = None
    co2_emission_kg_per_hr: Optional[float] = None
    asset_type: Optional[str] = None
    asset_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Return the populated fields only, in declaration order."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True, slots=True)
class StoredRecord:
    """A row as returned by the durable store.

    ``values`` holds the remaining persisted columns in whatever form the store
    handed them back (numbers may arrive as strings).
    """

    record_id: int
    device_id: str
    received_at: Any = None
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(slots=True)
class EnrichedReading:
    """A stored reading joined with its device coordinates."""

    id: int
    device_id: str
    co2_ppm: Optional[float]
    received_at: Any
    lat: Optional[float]
    lng: Optional[float]
    timestamp_ms: Optional[int] = None
    co2_emission_kg_per_hr: Optional[float] = None
    asset_type: Optional[str] = None
    asset_name: Optional[str] = None
