from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_SCHEMA_ENV = "INGEST_SCHEMA"
_ENRICHMENT_MODE_ENV = "READINGS_ENRICHMENT_MODE"
_READINGS_LIMIT_ENV = "READINGS_DEFAULT_LIMIT"
_STORE_BACKEND_ENV = "STORE_BACKEND"
_MOCK_STORE_PATH_ENV = "MOCK_READINGS_PERSISTENCE_PATH"
_SUPABASE_URL_ENV = "SUPABASE_URL"
_SUPABASE_KEY_ENV = "SUPABASE_SERVICE_KEY"
_SUPABASE_TABLE_ENV = "SUPABASE_TABLE"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT_SECONDS"
_METADATA_PATH_ENV = "DEVICE_METADATA_PATH"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    log_level: str
    ingest_schema: str
    enrichment_mode: str
    readings_default_limit: int
    store_backend: str
    mock_store_path: Optional[str]
    supabase_url: Optional[str]
    supabase_service_key: Optional[str]
    supabase_table: str
    store_timeout_seconds: float
    device_metadata_path: Optional[str]
    cors_allow_origins: Tuple[str, ...]


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_choice(name: str, default: str) -> str:
    return _read_str_env(name, default).lower()


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_origins(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(part.strip() for part in value.split(",") if part.strip())
    return origins or default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3000),
        log_level=_read_log_level("INFO"),
        ingest_schema=_read_choice(_SCHEMA_ENV, "co2_basic"),
        enrichment_mode=_read_choice(_ENRICHMENT_MODE_ENV, "drop"),
        readings_default_limit=_read_positive_int(_READINGS_LIMIT_ENV, 500),
        store_backend=_read_choice(_STORE_BACKEND_ENV, "mock"),
        mock_store_path=_read_optional_env(_MOCK_STORE_PATH_ENV, None),
        supabase_url=_read_optional_env(_SUPABASE_URL_ENV, None),
        supabase_service_key=_read_optional_env(_SUPABASE_KEY_ENV, None),
        supabase_table=_read_str_env(_SUPABASE_TABLE_ENV, "readings"),
        store_timeout_seconds=_read_positive_float(_STORE_TIMEOUT_ENV, 5.0),
        device_metadata_path=_read_optional_env(_METADATA_PATH_ENV, None),
        cors_allow_origins=_read_origins(("*",)),
    )
