# catalog/validators.py
# Attribute type rules: coerce raw values (user input or AI output) to the
# canonical shape of their attribute type.

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional, Sequence

from catalog.models import SELECT_TYPES, TEXT_TYPES, AttributeType

logger = logging.getLogger(__name__)


class AttributeValueError(ValueError):
    """Value does not fit its attribute type."""


class AttributeDefinitionError(ValueError):
    """Attribute definition breaks a type constraint (missing unit / options)."""


def _to_number(raw: Any):
    if isinstance(raw, bool):
        raise AttributeValueError("booleans are not numbers")
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            raise AttributeValueError(f"non-finite number: {raw!r}")
        return raw
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            raise AttributeValueError("empty string is not a number")
        try:
            return int(s)
        except ValueError:
            pass
        try:
            num = float(s)
        except ValueError:
            raise AttributeValueError(f"not a number: {raw!r}") from None
        if not math.isfinite(num):
            raise AttributeValueError(f"non-finite number: {raw!r}")
        return num
    raise AttributeValueError(f"not a number: {raw!r}")


def coerce_value(attr_type, value: Any, options: Optional[Sequence[str]] = None) -> Any:
    """
    Return `value` in canonical form for `attr_type` or raise AttributeValueError.
    - text types: strings only, unchanged (RICH_TEXT markup is not sanitized)
    - NUMBER: numbers or numeric strings
    - SINGLE_SELECT: one of `options`
    - MULTIPLE_SELECT: list of members of `options`
    - MEASURE: {"value": number-ish, "unit": str}; no unit conversion
    """
    attr_type = AttributeType(attr_type)
    options = list(options or [])

    if attr_type in TEXT_TYPES:
        if not isinstance(value, str):
            raise AttributeValueError(f"{attr_type.value} expects a string")
        return value

    if attr_type == AttributeType.NUMBER:
        return _to_number(value)

    if attr_type == AttributeType.SINGLE_SELECT:
        if not isinstance(value, str) or value not in options:
            raise AttributeValueError(f"{value!r} is not one of {options}")
        return value

    if attr_type == AttributeType.MULTIPLE_SELECT:
        if not isinstance(value, list):
            raise AttributeValueError("MULTIPLE_SELECT expects a list")
        for item in value:
            if not isinstance(item, str) or item not in options:
                raise AttributeValueError(f"{item!r} is not one of {options}")
        return list(value)

    if attr_type == AttributeType.MEASURE:
        if not isinstance(value, dict) or "value" not in value or "unit" not in value:
            raise AttributeValueError("MEASURE expects an object with value and unit")
        if not isinstance(value["unit"], str):
            raise AttributeValueError("MEASURE unit must be a string")
        return {"value": _to_number(value["value"]), "unit": value["unit"]}

    raise AttributeValueError(f"unsupported attribute type {attr_type}")


def validate_attribute_values(data: dict, attributes: Iterable) -> dict:
    """
    Keep only the fields of `data` that validate against their attribute.
    Null, missing and malformed fields are dropped, never raised.
    """
    validated = {}
    for attr in attributes:
        value = data.get(attr.name)
        if value is None:
            continue
        try:
            validated[attr.name] = coerce_value(attr.type, value, attr.options)
        except AttributeValueError as e:
            logger.debug("Dropping %s=%r: %s", attr.name, value, e)
    return validated


def check_attribute_definition(attr_type, unit: Optional[str], options: Optional[Sequence[str]]) -> None:
    attr_type = AttributeType(attr_type)
    if attr_type in SELECT_TYPES:
        if not options or not all(isinstance(o, str) and o for o in options):
            raise AttributeDefinitionError("Options are required for SELECT type attributes")
    if attr_type == AttributeType.MEASURE and not (unit or "").strip():
        raise AttributeDefinitionError("Unit is required for MEASURE type attributes")


def is_empty_value(value: Any) -> bool:
    """Absent-equivalent bag values: None, [] and {}."""
    if value is None:
        return True
    if isinstance(value, (list, dict)) and len(value) == 0:
        return True
    return False
