from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal

from jobtracker.services.errors import RepositorySchemaViolationError, RepositoryValidationError

ColumnKind = Literal["identity", "text", "timestamp", "boolean", "numeric", "json"]

JOBS_TABLE = "jobs"


@dataclass(frozen=True, slots=True)
class Column:
    name: str
    kind: ColumnKind
    required: bool = False
    writable: bool = True


COLUMNS: dict[str, Column] = {
    column.name: column
    for column in (
        Column("id", "identity", writable=False),
        Column("company", "text", required=True),
        Column("title", "text", required=True),
        Column("applied_at", "timestamp"),
        Column("cover_letter", "boolean"),
        Column("expectation", "numeric"),
        Column("result", "text"),
        Column("company_rate", "numeric"),
        Column("referral", "boolean"),
        Column("custom_fields", "json"),
        Column("remark", "text"),
    )
}
WRITABLE_COLUMNS: dict[str, Column] = {name: column for name, column in COLUMNS.items() if column.writable}

# Text columns where a blank string means "no value".
BLANK_AS_NULL_COLUMNS = {"company", "title", "result"}

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off"}


def normalize_create_input(fields: Any, *, now: datetime | None = None) -> dict[str, Any]:
    """Validate a create payload and fill create-time defaults.

    Returns a new mapping keyed by writable column names, in payload order,
    with ``applied_at`` and ``custom_fields`` always present.
    """
    payload = _require_mapping(fields)
    reject_unknown_columns(payload)

    normalized = {key: coerce_value(WRITABLE_COLUMNS[key], value) for key, value in payload.items()}
    for column in WRITABLE_COLUMNS.values():
        if column.required and normalized.get(column.name) is None:
            raise RepositoryValidationError(f"{column.name} is required")

    if normalized.get("applied_at") is None:
        normalized["applied_at"] = now or datetime.now(timezone.utc)
    if normalized.get("custom_fields") is None:
        normalized["custom_fields"] = {}
    return normalized


def normalize_update_input(fields: Any) -> dict[str, Any]:
    """Validate a partial update payload. No defaults are applied."""
    payload = _require_mapping(fields)
    if not payload:
        raise RepositoryValidationError("update requires at least one field")
    reject_unknown_columns(payload)

    normalized: dict[str, Any] = {}
    for key, value in payload.items():
        column = WRITABLE_COLUMNS[key]
        coerced = coerce_value(column, value)
        if coerced is None:
            if column.required:
                raise RepositoryValidationError(f"{column.name} cannot be empty")
            if column.kind == "timestamp":
                raise RepositoryValidationError(f"{column.name} cannot be cleared")
            if column.kind == "json":
                coerced = {}
        normalized[key] = coerced
    return normalized


def reject_unknown_columns(payload: Mapping[Any, Any]) -> None:
    read_only = sorted(str(key) for key in payload if key in COLUMNS and key not in WRITABLE_COLUMNS)
    if read_only:
        raise RepositorySchemaViolationError(f"read-only fields: {', '.join(read_only)}")
    unknown = sorted(str(key) for key in payload if key not in WRITABLE_COLUMNS)
    if unknown:
        raise RepositorySchemaViolationError(f"unsupported fields: {', '.join(unknown)}")


def coerce_value(column: Column, value: Any) -> Any:
    if column.kind == "text":
        return _coerce_text(column, value)
    if column.kind == "timestamp":
        return _coerce_timestamp(column, value)
    if column.kind == "boolean":
        return _coerce_bool(column, value)
    if column.kind == "numeric":
        return _coerce_numeric(column, value)
    if column.kind == "json":
        return _coerce_json_dict(column, value)
    raise RepositorySchemaViolationError(f"read-only fields: {column.name}")


def _require_mapping(fields: Any) -> Mapping[Any, Any]:
    if not isinstance(fields, Mapping):
        raise RepositoryValidationError("payload must be an object")
    return fields


def _coerce_text(column: Column, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise RepositoryValidationError(f"{column.name} must be a string")
    if "\x00" in value:
        raise RepositoryValidationError(f"{column.name} must not contain NUL characters")
    if column.name in BLANK_AS_NULL_COLUMNS:
        return value.strip() or None
    return value


def _coerce_timestamp(column: Column, value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            parsed = datetime.fromisoformat(candidate.replace("Z", "+00:00"))
        except ValueError as exc:
            raise RepositoryValidationError(f"{column.name} must be an ISO-8601 timestamp") from exc
    else:
        raise RepositoryValidationError(f"{column.name} must be an ISO-8601 timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_bool(column: Column, value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return None
        if normalized in _TRUE_TOKENS:
            return True
        if normalized in _FALSE_TOKENS:
            return False
    raise RepositoryValidationError(f"{column.name} must be a boolean")


def _coerce_numeric(column: Column, value: Any) -> int | float | Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RepositoryValidationError(f"{column.name} must be a number")
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            value = float(candidate)
        except ValueError as exc:
            raise RepositoryValidationError(f"{column.name} must be a number") from exc
    if not isinstance(value, (int, float, Decimal)):
        raise RepositoryValidationError(f"{column.name} must be a number")
    # Reads come back as float, so anything beyond float range would not round-trip.
    try:
        finite = math.isfinite(float(value))
    except (OverflowError, ValueError):
        finite = False
    if not finite:
        raise RepositoryValidationError(f"{column.name} must be a finite number")
    return value


def _coerce_json_dict(column: Column, value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise RepositoryValidationError(f"{column.name} must be an object") from exc
    if not isinstance(value, Mapping):
        raise RepositoryValidationError(f"{column.name} must be an object")
    normalized = dict(value)
    try:
        json.dumps(normalized)
    except (TypeError, ValueError) as exc:
        raise RepositoryValidationError(f"{column.name} must be JSON-serializable") from exc
    if _contains_nul(normalized):
        raise RepositoryValidationError(f"{column.name} must not contain NUL characters")
    return normalized


def _contains_nul(value: Any) -> bool:
    # Postgres text and jsonb both refuse \u0000.
    if isinstance(value, str):
        return "\x00" in value
    if isinstance(value, Mapping):
        return any(_contains_nul(key) or _contains_nul(item) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return any(_contains_nul(item) for item in value)
    return False
