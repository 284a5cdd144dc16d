"""Tests for the readings store backends."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from datastore.readings_store import MockReadingsTable, SupabaseReadingsStore
from models.records import CanonicalMeasurement
from services.errors import StoreError

RECEIVED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _measurement(device_id: str = "Main St", co2_ppm: float = 420.0) -> CanonicalMeasurement:
    return CanonicalMeasurement(device_id=device_id, co2_ppm=co2_ppm, received_at=RECEIVED_AT)


def test_mock_table_assigns_increasing_ids() -> None:
    table = MockReadingsTable()

    ids = [table.insert(_measurement(co2_ppm=value)) for value in (400, 410, 420)]

    assert ids == [1, 2, 3]
    assert len(table) == 3


def test_mock_table_returns_newest_first_within_limit() -> None:
    table = MockReadingsTable()
    for value in range(10):
        table.insert(_measurement(co2_ppm=float(value)))

    records = table.query_recent(4)

    assert [record.record_id for record in records] == [10, 9, 8, 7]
    assert [record.values["co2_ppm"] for record in records] == [9.0, 8.0, 7.0, 6.0]
    assert all(
        earlier.record_id > later.record_id for earlier, later in zip(records, records[1:])
    )


def test_mock_table_ignores_client_timestamps_for_ordering() -> None:
    table = MockReadingsTable()
    table.insert(CanonicalMeasurement(device_id="a", co2_ppm=1, timestamp_ms=2_000))
    table.insert(CanonicalMeasurement(device_id="b", co2_ppm=2, timestamp_ms=1_000))

    records = table.query_recent(10)

    assert [record.device_id for record in records] == ["b", "a"]


def test_mock_table_stores_json_forms() -> None:
    table = MockReadingsTable()
    table.insert(_measurement())

    (record,) = table.query_recent(1)

    assert record.received_at == RECEIVED_AT.isoformat()
    assert record.values == {"co2_ppm": 420.0}


def test_mock_table_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        MockReadingsTable().query_recent(0)


def test_mock_table_persists_and_continues_ids(tmp_path) -> None:
    path = tmp_path / "readings.json"
    table = MockReadingsTable(persistence_path=path)
    table.insert(_measurement(co2_ppm=400))
    table.insert(_measurement(co2_ppm=500))

    payload = json.loads(path.read_text())
    assert [row["id"] for row in payload] == [1, 2]

    reloaded = MockReadingsTable(persistence_path=path)
    assert reloaded.insert(_measurement(co2_ppm=600)) == 3
    assert [record.record_id for record in reloaded.query_recent(5)] == [3, 2, 1]


def test_mock_table_ignores_corrupt_file(tmp_path) -> None:
    path = tmp_path / "readings.json"
    path.write_text("{not json")

    table = MockReadingsTable(persistence_path=path)

    assert len(table) == 0
    assert table.insert(_measurement()) == 1


def _supabase(handler) -> SupabaseReadingsStore:
    return SupabaseReadingsStore(
        url="https://project.supabase.co",
        service_key="service-key",
        transport=httpx.MockTransport(handler),
    )


def test_supabase_insert_posts_row_and_returns_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json=[{"id": 42, **body}])

    store = _supabase(handler)

    assert store.insert(_measurement()) == 42
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/readings"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert request.headers["Prefer"] == "return=representation"
    assert json.loads(request.content) == {
        "device_id": "Main St",
        "co2_ppm": 420.0,
        "received_at": RECEIVED_AT.isoformat(),
    }


def test_supabase_query_orders_by_id_and_limits() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        rows = [
            {"id": 7, "device_id": "Main St", "co2_ppm": "512.5", "received_at": "2024-05-01T12:00:00+00:00"},
            {"id": 3, "device_id": "Broadway", "co2_ppm": 430, "received_at": "2024-05-01T11:00:00+00:00"},
        ]
        return httpx.Response(200, json=rows)

    records = _supabase(handler).query_recent(2)

    params = seen[0].url.params
    assert params["order"] == "id.desc"
    assert params["limit"] == "2"
    assert [record.record_id for record in records] == [7, 3]
    assert records[0].values == {"co2_ppm": "512.5"}


def test_supabase_error_status_raises_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid API key"})

    with pytest.raises(StoreError, match="401"):
        _supabase(handler).insert(_measurement())


def test_supabase_timeout_raises_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(StoreError, match="timed out"):
        _supabase(handler).query_recent(10)


def test_supabase_unexpected_payload_raises_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"rows": []})

    with pytest.raises(StoreError):
        _supabase(handler).query_recent(10)


def test_supabase_without_credentials_fails_at_call_time() -> None:
    store = SupabaseReadingsStore(url=None, service_key=None)

    assert store.configured is False
    with pytest.raises(StoreError, match="not configured"):
        store.insert(_measurement())
    with pytest.raises(StoreError, match="not configured"):
        store.query_recent(5)
    store.close()


def test_mock_table_failed_write_leaves_table_unchanged(tmp_path) -> None:
    path = tmp_path / "readings.json"
    table = MockReadingsTable(persistence_path=path)
    assert table.insert(_measurement(device_id="a")) == 1

    path.unlink()
    path.mkdir()
    with pytest.raises(StoreError, match="Could not write readings file"):
        table.insert(_measurement(device_id="b"))

    assert len(table) == 1
    assert [record.device_id for record in table.query_recent(10)] == ["a"]

    path.rmdir()
    assert table.insert(_measurement(device_id="c")) == 2
    assert [row["device_id"] for row in json.loads(path.read_text())] == ["a", "c"]
