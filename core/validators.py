"""
Shared validation helpers for memory services.
"""

from __future__ import annotations

import json
from typing import Optional, Sequence

from core.config import MAX_METADATA_BYTES, MAX_RESULT_LIMIT
from core.errors import ValidationIssue


def validate_required_text(value: str, field: str) -> None:
    if not isinstance(value, str):
        raise ValidationIssue(f"{field} must be a string", field=field, error_type="invalid_type")


def validate_limit(value: int, field: str = "limit", max_value: int = MAX_RESULT_LIMIT) -> None:
    if value <= 0 or value > max_value:
        raise ValidationIssue(f"{field} must be between 1 and {max_value}", field=field, error_type="out_of_range")


def validate_importance(value: Optional[float], field: str = "importance") -> None:
    if value is None:
        return
    if value < 0.0 or value > 1.0:
        raise ValidationIssue(f"{field} must be between 0.0 and 1.0", field=field, error_type="out_of_range")


def validate_string_list(values: Optional[Sequence[str]], field: str) -> None:
    if values is None:
        return
    for item in values:
        if not isinstance(item, str):
            raise ValidationIssue(f"{field} must contain only strings", field=field, error_type="invalid_type")


def validate_metadata(metadata: Optional[dict], field: str = "metadata") -> None:
    if metadata is None:
        return
    if not isinstance(metadata, dict):
        raise ValidationIssue(f"{field} must be an object", field=field, error_type="invalid_type")
    try:
        size = len(json.dumps(metadata))
    except (TypeError, ValueError) as exc:
        raise ValidationIssue(f"{field} must be JSON-serializable", field=field, error_type="invalid_type") from exc
    if size > MAX_METADATA_BYTES:
        raise ValidationIssue(
            f"{field} exceeds max size {MAX_METADATA_BYTES} bytes",
            field=field,
            error_type="max_bytes",
        )
