"""Validation and normalization of device payloads.

Each deployment accepts exactly one payload schema. The schemas below are the
shapes shipped by the device firmware generations still in the field; a
payload is checked field by field in declaration order and rejected on the
first problem. Nothing is coerced: ``"812"`` is not a number and a missing
field is never defaulted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from models.records import CanonicalMeasurement
from services.errors import InvalidPayloadError


class PayloadSchema(str, Enum):
    """Payload shapes a deployment can be configured to accept."""

    co2_basic = "co2_basic"
    co2_asset = "co2_asset"
    co2_timestamped = "co2_timestamped"


class FieldKind(str, Enum):
    string = "string"
    number = "number"
    integer = "integer"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind


@dataclass(frozen=True)
class SchemaDefinition:
    fields: Tuple[FieldSpec, ...]
    client_clock: bool = False


_DEVICE_ID = FieldSpec("device_id", FieldKind.string)
_CO2_PPM = FieldSpec("co2_ppm", FieldKind.number)

SCHEMAS: Dict[PayloadSchema, SchemaDefinition] = {
    PayloadSchema.co2_basic: SchemaDefinition(fields=(_DEVICE_ID, _CO2_PPM)),
    PayloadSchema.co2_asset: SchemaDefinition(
        fields=(
            _DEVICE_ID,
            _CO2_PPM,
            FieldSpec("co2_emission_kg_per_hr", FieldKind.number),
            FieldSpec("asset_type", FieldKind.string),
            FieldSpec("asset_name", FieldKind.string),
        )
    ),
    PayloadSchema.co2_timestamped: SchemaDefinition(
        fields=(_DEVICE_ID, _CO2_PPM, FieldSpec("timestamp_ms", FieldKind.integer)),
        client_clock=True,
    ),
}


def resolve_schema(name: str | PayloadSchema) -> PayloadSchema:
    """Map a configured schema name onto the closed set of known schemas."""
    try:
        return PayloadSchema(name)
    except ValueError as exc:
        known = ", ".join(schema.value for schema in PayloadSchema)
        raise ValueError(f"Unknown payload schema {name!r}; expected one of: {known}") from exc


def _check_string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidPayloadError(name, "must be a string")
    candidate = value.strip()
    if not candidate:
        raise InvalidPayloadError(name, "must not be empty")
    return candidate


def _check_number(name: str, value: Any) -> float:
    # bool is an int subclass but never a reading.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPayloadError(name, "must be a number")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        # JSON integers are unbounded and may exceed float range.
        finite = False
    if not finite:
        raise InvalidPayloadError(name, "must be a finite number")
    return value


def _check_integer(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPayloadError(name, "must be an integer")
    if value < 0:
        raise InvalidPayloadError(name, "must not be negative")
    return value


_CHECKS = {
    FieldKind.string: _check_string,
    FieldKind.number: _check_number,
    FieldKind.integer: _check_integer,
}


def validate(
    raw: Any,
    schema: PayloadSchema = PayloadSchema.co2_basic,
    now: Optional[datetime] = None,
) -> CanonicalMeasurement:
    """Return the canonical measurement for ``raw`` or raise ``InvalidPayloadError``.

    ``now`` is the server receive time; it is ignored by schemas that carry
    a device timestamp.
    """
    if not isinstance(raw, Mapping):
        raise InvalidPayloadError(None, "body must be a JSON object")

    definition = SCHEMAS[schema]
    values: Dict[str, Any] = {}
    for spec in definition.fields:
        if spec.name not in raw or raw[spec.name] is None:
            raise InvalidPayloadError(spec.name, "is missing")
        values[spec.name] = _CHECKS[spec.kind](spec.name, raw[spec.name])

    if not definition.client_clock:
        values["received_at"] = now or datetime.now(timezone.utc)

    return CanonicalMeasurement(**values)
