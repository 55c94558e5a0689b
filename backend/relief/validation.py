from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.pins import KIND_DAMAGE, KIND_SHELTER, VALID_KINDS


# Client-facing pin types used by the map UI
KIND_ALIASES = {
    "damaged": KIND_DAMAGE,
    "safe": KIND_SHELTER,
}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(name: str, value: Any) -> int:
    # bool is a subclass of int and never a quantity
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def _coerce_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise ValidationError(f"{name} must be a number")
    else:
        raise ValidationError(f"{name} must be a number")
    if math.isnan(result) or math.isinf(result):
        raise ValidationError(f"{name} must be a finite number")
    return result


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Float):
        return _coerce_float(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
    aliases: dict[str, str] | None = None,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    aliases maps client field names onto column keys (e.g. "lat" -> "latitude").
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if aliases:
        payload = {aliases.get(k, k): v for k, v in payload.items()}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def normalize_kind(value: Any) -> str:
    kind = str(value or "").strip().lower()
    kind = KIND_ALIASES.get(kind, kind)
    if kind not in VALID_KINDS:
        raise ValidationError("kind must be one of: damage, shelter")
    return kind


def enforce_rules_pin_create(patch: dict) -> None:
    """Business rules for new pins that column metadata cannot express."""
    patch["kind"] = normalize_kind(patch.get("kind"))

    lat = patch.get("latitude")
    lng = patch.get("longitude")
    if lat is None or not -90 <= lat <= 90:
        raise ValidationError("lat must be between -90 and 90")
    if lng is None or not -180 <= lng <= 180:
        raise ValidationError("lng must be between -180 and 180")


def parse_item_lines(lines: Any) -> list[dict]:
    """
    Normalize [{item_id, requested_qty}, ...].

    requested_qty must be a positive integer. Zero or negative requests are
    rejected, never clamped.
    """
    if lines is None:
        return []
    if not isinstance(lines, list):
        raise ValidationError("items must be a list")

    parsed = []
    for index, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if "item_id" not in line:
            raise ValidationError(f"items[{index}].item_id is required")
        if "requested_qty" not in line:
            raise ValidationError(f"items[{index}].requested_qty is required")
        item_id = _coerce_int(f"items[{index}].item_id", line["item_id"])
        qty = _coerce_int(f"items[{index}].requested_qty", line["requested_qty"])
        if qty <= 0:
            raise ValidationError(f"items[{index}].requested_qty must be > 0")
        parsed.append({"item_id": item_id, "requested_qty": qty})
    return parsed


def parse_acceptances(acceptances: Any) -> list[dict]:
    """
    Normalize [{pin_item_id, accepted_qty}, ...].

    accepted_qty may exceed what remains (clamped later) but may not be
    negative: a negative acceptance would raise remaining_qty.
    """
    if not isinstance(acceptances, list):
        raise ValidationError("items must be a list")

    parsed = []
    for index, line in enumerate(acceptances):
        if not isinstance(line, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if "pin_item_id" not in line:
            raise ValidationError(f"items[{index}].pin_item_id is required")
        if "accepted_qty" not in line:
            raise ValidationError(f"items[{index}].accepted_qty is required")
        pin_item_id = _coerce_int(f"items[{index}].pin_item_id", line["pin_item_id"])
        qty = _coerce_int(f"items[{index}].accepted_qty", line["accepted_qty"])
        if qty < 0:
            raise ValidationError(f"items[{index}].accepted_qty must be >= 0")
        parsed.append({"pin_item_id": pin_item_id, "accepted_qty": qty})
    return parsed


def parse_membership_id(value: Any) -> int | None:
    """Membership reference sent with a confirmation; None when absent."""
    if value is None:
        return None
    return _coerce_int("membership_id", value)


def parse_limit(value: Any, *, maximum: int = 200) -> int | None:
    """Optional positive page size, capped at maximum."""
    if value is None or value == "":
        return None
    limit = _coerce_int("limit", value)
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    return min(limit, maximum)
