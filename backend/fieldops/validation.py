from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import Boolean, Float, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from fieldops.time_utils import parse_iso_datetime


class ValidationError(ValueError):
    """400-level input problem. `errors` holds one {field, message} entry per failed check."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: payload keys clients may set, mapped to model column names
    - required_on_create: payload keys required for POST
    - choices: allowed values per payload key
    """
    writable_fields: dict[str, str]
    required_on_create: frozenset[str] = frozenset()
    choices: dict[str, tuple[str, ...]] | None = None


def field_error(field: str, message: str) -> ValidationError:
    return ValidationError(message, errors=[{"field": field, "message": message}])


class _Collector:
    def __init__(self):
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def raise_if_any(self) -> None:
        if self.errors:
            first = self.errors[0]["message"]
            raise ValidationError(first, errors=self.errors)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_value(field: str, col, value: Any):
    coltype = col.type

    if isinstance(coltype, Integer):
        if isinstance(value, bool):
            raise ValueError(f"{field} must be an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValueError(f"{field} must be an integer")
            return int(stripped)
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise ValueError(f"{field} must be an integer")

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValueError(f"{field} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{field} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"true", "1", "yes"}
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        try:
            dt = parse_iso_datetime(value) if isinstance(value, str) else None
        except ValueError:
            dt = None
        if dt is None:
            raise ValueError(f"{field} must be an ISO-8601 datetime")
        return dt

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict | None,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against SQLAlchemy column metadata
    (nullable, type, String length) and the policy allowlist.

    Unknown keys are ignored so clients can send the populated form back.
    Returns a patch keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)
    choices = policy.choices or {}
    found = _Collector()
    patch: dict = {}

    if not partial:
        for key in sorted(policy.required_on_create):
            raw = payload.get(key)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                found.add(key, f"{key} is required")

    for key, column_name in policy.writable_fields.items():
        if key not in payload:
            continue
        col = cols[column_name]
        raw = payload[key]

        if raw is None:
            if not col.nullable and key not in policy.required_on_create:
                found.add(key, f"{key} cannot be null")
            elif col.nullable:
                patch[column_name] = None
            continue

        try:
            val = _coerce_value(key, col, raw)
        except ValueError as e:
            found.add(key, str(e))
            continue

        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            if key not in policy.required_on_create or partial:
                found.add(key, f"{key} cannot be blank")
            continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                found.add(key, f"{key} exceeds max length {col.type.length}")
                continue

        if key in choices and val not in choices[key]:
            found.add(key, f"{key} must be one of: {', '.join(choices[key])}")
            continue

        patch[column_name] = val

    found.raise_if_any()
    return patch


def require_fields(payload: dict, *fields: str) -> None:
    """Reject the payload when any of `fields` is missing or blank."""
    found = _Collector()
    for field in fields:
        raw = payload.get(field)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            found.add(field, f"{field} is required")
    found.raise_if_any()


def require_choice(value: Any, field: str, allowed: Iterable[str]) -> str:
    allowed = tuple(allowed)
    if value not in allowed:
        raise field_error(field, f"{field} must be one of: {', '.join(allowed)}")
    return value


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    if isinstance(value, bool) or value is None:
        raise field_error(field, f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise field_error(field, f"{field} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise field_error(field, f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise field_error(field, f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise field_error(field, f"{field} must be at most {maximum}")
    return number


def coerce_float(value: Any, field: str, *, default: float | None = None) -> float:
    if value is None or value == "":
        if default is not None:
            return default
        raise field_error(field, f"{field} is required")
    if isinstance(value, bool):
        raise field_error(field, f"{field} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise field_error(field, f"{field} must be a number")


def coerce_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        dt = parse_iso_datetime(str(value))
    except ValueError:
        dt = None
    if dt is None:
        raise field_error(field, f"{field} must be an ISO-8601 datetime")
    return dt


def require_list(payload: dict, field: str, *, min_items: int = 1) -> list:
    items = payload.get(field)
    if not isinstance(items, list) or len(items) < min_items:
        message = f"{field} must contain at least {min_items} item" + ("s" if min_items != 1 else "")
        raise field_error(field, message)
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            message = f"{field}[{index}] must be an object"
            raise field_error(f"{field}[{index}]", message)
    return items


def optional_str(payload: dict, field: str, *, max_length: int | None = None) -> str | None:
    raw = payload.get(field)
    if raw is None:
        return None
    value = str(raw).strip()
    if max_length and len(value) > max_length:
        message = f"{field} exceeds max length {max_length}"
        raise field_error(field, message)
    return value or None
