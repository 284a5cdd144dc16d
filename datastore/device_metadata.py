"""Static device coordinates used to place readings on the map."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from models.records import Coordinates
from settings import get_settings

logger = logging.getLogger(__name__)

# Fixed sensors of the Vancouver deployment, keyed by the device_id they report.
VANCOUVER_STREETS: Mapping[str, Coordinates] = MappingProxyType(
    {
        "Granville St": Coordinates(lat=49.2827, lng=-123.1187),
        "Main St": Coordinates(lat=49.2734, lng=-123.1000),
        "Broadway": Coordinates(lat=49.2625, lng=-123.1140),
        "Kingsway": Coordinates(lat=49.2485, lng=-123.0650),
        "Fraser St": Coordinates(lat=49.2570, lng=-123.0900),
        "Commercial Dr": Coordinates(lat=49.2730, lng=-123.0690),
        "Hastings St": Coordinates(lat=49.2810, lng=-123.0560),
        "Robson St": Coordinates(lat=49.2835, lng=-123.1210),
        "Davie St": Coordinates(lat=49.2810, lng=-123.1330),
        "Denman St": Coordinates(lat=49.2900, lng=-123.1390),
        "West 4th Ave": Coordinates(lat=49.2680, lng=-123.1550),
        "West 41st Ave": Coordinates(lat=49.2330, lng=-123.1160),
        "Knight St": Coordinates(lat=49.2430, lng=-123.0770),
        "Cambie St": Coordinates(lat=49.2660, lng=-123.1150),
        "Victoria Dr": Coordinates(lat=49.2490, lng=-123.0650),
    }
)


class DeviceMetadata(Mapping[str, Coordinates]):
    """Read-only ``device_id -> Coordinates`` table.

    Unknown devices are normal (new or unmapped sensors), so ``lookup``
    returns ``None`` instead of raising.
    """

    def __init__(self, entries: Mapping[str, Coordinates]) -> None:
        self._entries: Mapping[str, Coordinates] = MappingProxyType(dict(entries))

    def lookup(self, device_id: str) -> Optional[Coordinates]:
        return self._entries.get(device_id)

    def __getitem__(self, device_id: str) -> Coordinates:
        return self._entries[device_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def load_device_metadata(path: Path) -> DeviceMetadata:
    """Load ``{"<device_id>": {"lat": .., "lng": ..}}`` from a JSON file."""
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Device metadata file {path} must contain a JSON object.")

    entries = {}
    for device_id, coords in data.items():
        try:
            entries[device_id] = Coordinates(lat=float(coords["lat"]), lng=float(coords["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid coordinates for device {device_id!r} in {path}."
            ) from exc
    return DeviceMetadata(entries)


@lru_cache
def build_default_metadata(path: Optional[str] = None) -> DeviceMetadata:
    settings = get_settings()
    metadata_path = settings.device_metadata_path if path is None else path
    if not metadata_path:
        return DeviceMetadata(VANCOUVER_STREETS)
    metadata = load_device_metadata(Path(metadata_path))
    logger.info(
        "Loaded coordinates for %d devices from %s",
        len(metadata),
        metadata_path,
        extra={"record_count": len(metadata)},
    )
    return metadata
