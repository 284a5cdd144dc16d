"""Durable storage backends for accepted readings."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from models.records import CanonicalMeasurement, StoredRecord
from services.errors import StoreError
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 500


class ReadingsStore(Protocol):
    def insert(self, measurement: CanonicalMeasurement) -> int:
        """Persist ``measurement`` and return its store-assigned id."""

    def query_recent(self, limit: int = DEFAULT_QUERY_LIMIT) -> List[StoredRecord]:
        """Return at most ``limit`` records, most recently inserted first."""

    def close(self) -> None:
        ...


def _to_row(measurement: CanonicalMeasurement) -> Dict[str, Any]:
    row = measurement.to_payload()
    received_at = row.get("received_at")
    if isinstance(received_at, datetime):
        row["received_at"] = received_at.isoformat()
    return row


def _to_record(row: Mapping[str, Any]) -> StoredRecord:
    try:
        record_id = row["id"]
        device_id = row["device_id"]
    except KeyError as exc:
        raise StoreError(f"Stored row is missing column {exc.args[0]!r}.") from exc
    values = {
        key: value
        for key, value in row.items()
        if key not in {"id", "device_id", "received_at"}
    }
    return StoredRecord(
        record_id=record_id,
        device_id=device_id,
        received_at=row.get("received_at"),
        values=values,
    )


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("Query limit must be a positive integer.")


class MockReadingsTable:
    """In-process readings table with optional JSON persistence.

    Rows are kept in JSON form, the way a remote store hands them back.
    """

    def __init__(self, name: str = "readings", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._rows: List[Dict[str, Any]] = []
        self._next_id = 1
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, measurement: CanonicalMeasurement) -> int:
        row = _to_row(measurement)
        with self._lock:
            record_id = self._next_id
            rows = [*self._rows, {"id": record_id, **row}]
            self._persist(rows)
            self._rows = rows
            self._next_id = record_id + 1
        return record_id

    def query_recent(self, limit: int = DEFAULT_QUERY_LIMIT) -> List[StoredRecord]:
        _check_limit(limit)
        with self._lock:
            newest = sorted(self._rows, key=lambda row: row["id"], reverse=True)[:limit]
            return [_to_record(dict(row)) for row in newest]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def close(self) -> None:
        return None

    def _persist(self, rows: List[Dict[str, Any]]) -> None:
        if not self.persistence_path:
            return
        try:
            self.persistence_path.write_text(json.dumps(rows, indent=2, sort_keys=True))
        except OSError as exc:
            raise StoreError(f"Could not write readings file {self.persistence_path}: {exc}") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable readings file %s", self.persistence_path
            )
            data = []

        self._rows = [row for row in data if isinstance(row, dict) and "id" in row]
        if self._rows:
            self._next_id = max(row["id"] for row in self._rows) + 1


class SupabaseReadingsStore:
    """Readings table behind Supabase's PostgREST endpoint.

    The httpx timeout is the deadline for every store call; expiry is reported
    as ``StoreError`` like any other failure.
    """

    def __init__(
        self,
        url: Optional[str],
        service_key: Optional[str],
        table: str = "readings",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.table = table
        self._client: Optional[httpx.Client] = None
        if url and service_key:
            self._client = httpx.Client(
                base_url=f"{url.rstrip('/')}/rest/v1",
                timeout=timeout,
                transport=transport,
                headers={
                    "apikey": service_key,
                    "Authorization": f"Bearer {service_key}",
                },
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def insert(self, measurement: CanonicalMeasurement) -> int:
        response = self._request(
            "POST",
            json=_to_row(measurement),
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response)
        if not rows:
            raise StoreError("Insert returned no row representation.")
        return _to_record(rows[0]).record_id

    def query_recent(self, limit: int = DEFAULT_QUERY_LIMIT) -> List[StoredRecord]:
        _check_limit(limit)
        response = self._request(
            "GET",
            params={"select": "*", "order": "id.desc", "limit": str(limit)},
        )
        return [_to_record(row) for row in self._rows(response)[:limit]]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise StoreError("Supabase credentials are not configured.")
        try:
            response = self._client.request(method, f"/{self.table}", **kwargs)
        except httpx.TimeoutException as exc:
            raise StoreError(f"Supabase request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Supabase request failed: {exc}") from exc
        if response.is_error:
            raise StoreError(
                f"Supabase responded with status {response.status_code}: {response.text.strip()}"
            )
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> List[Dict[str, Any]]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError("Supabase returned a non-JSON body.") from exc
        if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
            raise StoreError("Supabase returned an unexpected payload shape.")
        return payload


@lru_cache
def build_default_store() -> ReadingsStore:
    settings = get_settings()
    if settings.store_backend == "supabase":
        store = SupabaseReadingsStore(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            table=settings.supabase_table,
            timeout=settings.store_timeout_seconds,
        )
        if not store.configured:
            logger.error(
                "Supabase env vars are missing. Set SUPABASE_URL and SUPABASE_SERVICE_KEY.",
                extra={"store_backend": "supabase"},
            )
        return store
    if settings.store_backend != "mock":
        raise ValueError(f"Unknown store backend {settings.store_backend!r}.")
    path = Path(settings.mock_store_path) if settings.mock_store_path else None
    return MockReadingsTable(name=settings.supabase_table, persistence_path=path)
