"""Helpers for reading channel blocks out of operation metadata.

Each channel reads its own block (``metadata["email"]``, ``metadata["sms"]``,
...) and falls back to the top-level ``subject`` / ``body`` keys shared by all
channels of a notification.
"""
from typing import Any, Dict, List

from core.domain.exceptions import ValidationError


def channel_block(metadata: Dict[str, Any], key: str) -> Dict[str, Any]:
    block = metadata.get(key) or {}
    if not isinstance(block, dict):
        raise ValidationError(f"metadata.{key} must be an object")
    return block


def recipients(metadata: Dict[str, Any], key: str) -> List[str]:
    """Non-empty list of recipient strings from ``metadata[key]["recipients"]``."""
    values = channel_block(metadata, key).get("recipients")
    if isinstance(values, str):
        values = [values]
    if not values or not isinstance(values, list):
        raise ValidationError(f"metadata.{key}.recipients is required")
    if not all(isinstance(v, str) and v.strip() for v in values):
        raise ValidationError(f"metadata.{key}.recipients must be non-empty strings")
    return [v.strip() for v in values]


def text(metadata: Dict[str, Any], key: str, field: str = "body") -> str:
    """Channel-specific text, else the shared top-level value."""
    value = channel_block(metadata, key).get(field)
    if value is None:
        value = metadata.get(field)
    return value or ""
