from __future__ import annotations

from typing import Iterable

import pytest

from datastore.device_metadata import build_default_metadata
from datastore.readings_store import (
    MockReadingsTable,
    SupabaseReadingsStore,
    build_default_store,
)
from services.enrichment import EnrichmentMode
from services.ingest import build_default_coordinator
from services.latest_cache import build_default_cache
from services.readings import build_default_readings_service
from services.validator import PayloadSchema
from settings import get_settings

_CACHES = (
    get_settings,
    build_default_store,
    build_default_cache,
    build_default_metadata,
    build_default_coordinator,
    build_default_readings_service,
)


def _clear_caches(caches: Iterable = _CACHES) -> None:
    for cache in caches:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def fresh_factories():
    _clear_caches()
    yield
    _clear_caches()


def test_defaults_when_environment_is_empty(monkeypatch) -> None:
    for name in ("PORT", "INGEST_SCHEMA", "STORE_BACKEND", "READINGS_DEFAULT_LIMIT", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.port == 3000
    assert settings.ingest_schema == "co2_basic"
    assert settings.enrichment_mode == "drop"
    assert settings.readings_default_limit == 500
    assert settings.store_backend == "mock"
    assert settings.cors_allow_origins == ("*",)
    assert isinstance(build_default_store(), MockReadingsTable)


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "readings.json"
    metadata_path = tmp_path / "devices.json"
    metadata_path.write_text('{"truck-7": {"lat": 49.3, "lng": -123.2}}')

    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("INGEST_SCHEMA", "CO2_ASSET")
    monkeypatch.setenv("READINGS_ENRICHMENT_MODE", "pass_through")
    monkeypatch.setenv("READINGS_DEFAULT_LIMIT", "50")
    monkeypatch.setenv("STORE_BACKEND", "mock")
    monkeypatch.setenv("MOCK_READINGS_PERSISTENCE_PATH", str(store_path))
    monkeypatch.setenv("DEVICE_METADATA_PATH", str(metadata_path))
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://map.example.org, http://localhost:5173")

    settings = get_settings()
    coordinator = build_default_coordinator()
    service = build_default_readings_service()

    assert settings.port == 8080
    assert settings.readings_default_limit == 50
    assert settings.cors_allow_origins == ("https://map.example.org", "http://localhost:5173")
    assert coordinator.schema is PayloadSchema.co2_asset
    assert coordinator.cache is build_default_cache()
    assert isinstance(coordinator.store, MockReadingsTable)
    assert coordinator.store.persistence_path == store_path
    assert service.store is coordinator.store
    assert service.projector.mode is EnrichmentMode.pass_through
    assert list(service.projector.metadata) == ["truck-7"]


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setenv("READINGS_DEFAULT_LIMIT", "-3")
    monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "0")

    settings = get_settings()

    assert settings.port == 3000
    assert settings.readings_default_limit == 500
    assert settings.store_timeout_seconds == 5.0


def test_supabase_backend_without_credentials_still_builds(monkeypatch, caplog) -> None:
    monkeypatch.setenv("STORE_BACKEND", "supabase")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)

    store = build_default_store()

    assert isinstance(store, SupabaseReadingsStore)
    assert store.configured is False
    assert "Supabase env vars are missing" in caplog.text


def test_unknown_store_backend_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("STORE_BACKEND", "dynamo")

    with pytest.raises(ValueError, match="dynamo"):
        build_default_store()
