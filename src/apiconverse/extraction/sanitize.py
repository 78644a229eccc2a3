"""Validation and normalisation of extracted argument values.

Nothing here raises: a value that does not fit its schema entry is either
normalised or dropped, leaving the field missing.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from ..models import FieldSchema, Tool

# Literal non-answers that count as "no value"
PLACEHOLDER_VALUES = frozenset({"", "N/A", "n/a", "Unknown", "unknown", "TBD", "tbd"})

# Filler tokens that are never a parameter name or value
FILLER_WORDS = frozenset({
    "i", "want", "get", "by", "the", "is", "are", "with", "for", "to", "a", "an",
    "this", "that", "these", "those", "my", "your", "his", "her", "their",
    "have", "has", "had", "will", "would", "could", "should", "can", "may",
    "please", "help", "need", "like", "love", "hate", "good", "bad", "nice",
    "great", "awesome", "terrible", "okay", "fine", "well", "better", "best",
})

# Frequent misspellings of enum values -> intended value
ENUM_TYPO_CORRECTIONS = {
    "pendding": "pending",
    "pending.": "pending",
    "availble": "available",
    "availabel": "available",
    "avaliable": "available",
    "avalable": "available",
    "aproved": "approved",
    "approvd": "approved",
    "deliverd": "delivered",
    "delivred": "delivered",
    "plced": "placed",
}

_NUMBER = re.compile(r"^[-+]?\d+(?:\.\d+)?$")


def is_placeholder(value: Any) -> bool:
    """True for placeholder literals and for lists made only of them."""
    if isinstance(value, str):
        return value.strip() in PLACEHOLDER_VALUES
    if isinstance(value, (list, tuple)):
        return all(isinstance(v, str) and is_placeholder(v) for v in value)
    return False


def has_placeholder_values(parameters: dict[str, Any]) -> bool:
    for value in parameters.values():
        if is_placeholder(value):
            return True
        if isinstance(value, list) and any(isinstance(v, str) and is_placeholder(v) for v in value):
            return True
    return False


def sanitize(parameters: dict[str, Any]) -> dict[str, Any]:
    """Drop None values, placeholder strings and placeholder list elements.

    A list left empty after filtering is dropped entirely.
    """
    sanitized: dict[str, Any] = {}
    for key, value in parameters.items():
        if value is None:
            continue
        if isinstance(value, str):
            if not is_placeholder(value):
                sanitized[key] = value
        elif isinstance(value, list):
            kept = [v for v in value if v is not None and not (isinstance(v, str) and is_placeholder(v))]
            if kept:
                sanitized[key] = kept
        else:
            sanitized[key] = value
    return sanitized


def _is_tags_field(name: str, schema: FieldSchema) -> bool:
    lowered = name.lower()
    return schema.type in (None, "array") and (lowered == "tags" or lowered.endswith("tags"))


def _is_category_field(name: str) -> bool:
    lowered = name.lower()
    return lowered == "category" or lowered.endswith("category")


def normalize_enum(value: Any, options: list[Any]) -> Any:
    """Case-insensitive enum match with typo correction; unmatched values pass through."""
    if not isinstance(value, str):
        return value
    lowered = value.strip().lower()
    corrected = ENUM_TYPO_CORRECTIONS.get(lowered, lowered)
    for option in options:
        if isinstance(option, str) and option.lower() == corrected:
            return option
    return value


def _coerce_scalar(value: Any, schema: FieldSchema) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if schema.type == "integer" and _NUMBER.match(text) and "." not in text:
        return int(text)
    if schema.type == "number" and _NUMBER.match(text):
        number = float(text)
        return int(number) if number.is_integer() and "." not in text else number
    if schema.type == "boolean" and text.lower() in ("true", "false", "yes", "no"):
        return text.lower() in ("true", "yes")
    return text


def normalize_value(name: str, value: Any, schema: Optional[FieldSchema]) -> Any:
    """Normalise one value against its schema entry. None means 'drop it'."""
    schema = schema or FieldSchema()

    if schema.type == "array" and not isinstance(value, list):
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",") if part.strip()]
        else:
            value = [value]

    if isinstance(value, list):
        value = [v for v in value if v is not None and not (isinstance(v, str) and is_placeholder(v))]
        if not value:
            return None
    elif value is None or is_placeholder(value):
        return None

    if schema.enum:
        value = normalize_enum(value, schema.enum)
    elif isinstance(value, list) and schema.items and schema.items.get("enum"):
        value = [normalize_enum(v, schema.items["enum"]) for v in value]

    if _is_tags_field(name, schema) and isinstance(value, list):
        return [
            {"id": index + 1, "name": tag} if isinstance(tag, str) else tag
            for index, tag in enumerate(value)
        ]

    if _is_category_field(name) and isinstance(value, str):
        return {"id": 1, "name": value}

    return _coerce_scalar(value, schema)


def validate_extracted(extracted: dict[str, Any], tool: Tool) -> dict[str, Any]:
    """Keep the extracted fields the tool knows, normalised; drop the rest."""
    path_params = set(tool.path_parameters())
    validated: dict[str, Any] = {}

    for key, value in extracted.items():
        if not isinstance(key, str) or key.lower() in FILLER_WORDS:
            continue
        if isinstance(value, str) and value.strip().lower() in FILLER_WORDS:
            continue

        schema = tool.get_field(key)
        if schema is None and key not in path_params:
            continue

        normalized = normalize_value(key, value, schema)
        if normalized is None:
            continue
        validated[key] = normalized

    return validated
