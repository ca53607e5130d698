"""JSON wire format for hazard events on the topic.

Messages are flat records with camelCase keys::

    {"schemaVersion": 1,
     "asteroidName": "(2024 AB1)",
     "closeApproachDate": "2025-11-04",
     "missDistanceKilometers": "4512345.6789",
     "estimatedDiameterAverageMeters": 215.3}

The miss distance is written as a decimal string to keep full precision.
Readers also accept a JSON number there, and treat a missing schemaVersion
as version 1.
"""

import json
import math
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union

from pydantic import ValidationError

from neo_alerts.domain.models import HazardEvent

from .exceptions import EventValidationError

SCHEMA_VERSION = 1
SUPPORTED_VERSIONS = frozenset({1})


def encode_event(event: HazardEvent) -> str:
    """Serialize a HazardEvent to its JSON wire form."""
    return json.dumps(
        {
            "schemaVersion": SCHEMA_VERSION,
            "asteroidName": event.asteroid_name,
            "closeApproachDate": event.close_approach_date.isoformat(),
            "missDistanceKilometers": str(event.miss_distance_km),
            "estimatedDiameterAverageMeters": float(event.estimated_diameter_avg_m),
        },
        separators=(",", ":"),
    )


def decode_event(payload: Union[str, bytes]) -> HazardEvent:
    """Parse a wire payload into a HazardEvent.

    Raises:
        EventValidationError: If the payload is not valid JSON, has an
            unsupported schema version, or a field is missing or malformed
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise EventValidationError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise EventValidationError(f"Payload must be a JSON object, got {type(data).__name__}")

    version = data.get("schemaVersion", 1)
    if not isinstance(version, int) or isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise EventValidationError(f"Unsupported schemaVersion: {version!r}", field="schemaVersion")

    fields = {
        "asteroid_name": _require_str(data, "asteroidName"),
        "close_approach_date": _require_date(data, "closeApproachDate"),
        "miss_distance_km": _require_decimal(data, "missDistanceKilometers"),
        "estimated_diameter_avg_m": _require_float(data, "estimatedDiameterAverageMeters"),
    }

    try:
        return HazardEvent(**fields)
    except ValidationError as e:
        raise EventValidationError(f"Invalid event: {e}") from e


def _require(data: Dict[str, Any], field: str) -> Any:
    if field not in data or data[field] is None:
        raise EventValidationError(f"Missing field: {field}", field=field)
    return data[field]


def _require_str(data: Dict[str, Any], field: str) -> str:
    value = _require(data, field)
    if not isinstance(value, str):
        raise EventValidationError(f"{field} must be a string", field=field)
    return value


def _require_date(data: Dict[str, Any], field: str) -> date:
    value = _require_str(data, field)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise EventValidationError(f"{field} is not a YYYY-MM-DD date: {value!r}", field=field) from e


def _require_decimal(data: Dict[str, Any], field: str) -> Decimal:
    value = _require(data, field)
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise EventValidationError(f"{field} must be a numeric string or number", field=field)

    try:
        # str() first so floats keep their shortest repr instead of binary noise
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise EventValidationError(f"{field} is not numeric: {value!r}", field=field) from e


def _require_float(data: Dict[str, Any], field: str) -> float:
    value = _require(data, field)
    if isinstance(value, bool):
        raise EventValidationError(f"{field} must be a number", field=field)

    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise EventValidationError(f"{field} must be a number: {value!r}", field=field) from e

    if math.isnan(result):
        raise EventValidationError(f"{field} must not be NaN", field=field)
    return result
