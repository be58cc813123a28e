"""
Value resolvers for loosely-typed Pipedrive fields.

Pipedrive returns the same logical field in several shapes depending on the
field type and endpoint:

- plain scalars (``"Madrid"``, ``3``, ``true``)
- multi-value lists with a primary flag (``[{"value": "a@b.es", "primary": true}]``)
- single objects (``{"value": 12, "name": "Acme"}``, ``{"checked": "1"}``)

All shape dispatch lives here. Every resolver is total: ambiguous or
unexpected shapes resolve to ``False`` / ``None`` and never raise.
"""

import math
from typing import Any

TRUTHY_STRINGS = frozenset({'1', 'true', 'yes'})


def resolve_boolean(value: Any) -> bool:
    """
    Resolve a loosely-typed flag to a bool.

    - bool passes through
    - numbers are true iff non-zero (NaN is false)
    - strings are true iff, trimmed and lowercased, one of "1", "true", "yes"
    - lists are true iff any element resolves true
    - dicts resolve their "value" key, else their "checked" key, else false
    - anything else is false
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return False
        return value != 0

    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS

    if isinstance(value, (list, tuple)):
        return any(resolve_boolean(item) for item in value)

    if isinstance(value, dict):
        if 'value' in value:
            return resolve_boolean(value['value'])
        if 'checked' in value:
            return resolve_boolean(value['checked'])

    return False


def _item_value(item: Any) -> str | None:
    """Raw string value of a list item or object, untrimmed."""
    if isinstance(item, dict) and 'value' in item:
        raw = item['value']
        if raw is None:
            return None
        return raw if isinstance(raw, str) else str(raw)

    if isinstance(item, str):
        return item

    return None


def _is_primary(item: Any) -> bool:
    return isinstance(item, dict) and 'primary' in item and resolve_boolean(item['primary'])


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def resolve_primary_value(value: Any) -> str | None:
    """
    Pick the preferred string out of a possibly multi-valued field.

    Selection order:
        1. the first list item flagged primary
        2. else the first list item carrying a non-empty value
        3. else the object's own "value"
        4. else None

    The result is trimmed; an empty string counts as absent.
    """
    if value is None:
        return None

    if isinstance(value, str):
        return _clean(value)

    if isinstance(value, (list, tuple)):
        selected = next((item for item in value if _is_primary(item)), None)
        if selected is None:
            selected = next((item for item in value if _clean(_item_value(item))), None)
        return _clean(_item_value(selected))

    if isinstance(value, dict):
        return _clean(_item_value(value))

    return None


def resolve_entity_id(value: Any) -> int | None:
    """
    Resolve a linked-entity reference (``org_id``, ``person_id``) to an int.

    Accepts a bare positive int, a numeric string, or an object carrying the
    id under "id" or "value". Zero, negatives and booleans are not ids.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, int):
        return value if value > 0 else None

    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and value > 0:
            return int(value)
        return None

    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit() and int(stripped) > 0:
            return int(stripped)
        return None

    if isinstance(value, dict):
        for key in ('id', 'value'):
            candidate = value.get(key)
            if not isinstance(candidate, dict):
                resolved = resolve_entity_id(candidate)
                if resolved is not None:
                    return resolved

    return None


def resolve_text(value: Any) -> str | None:
    """
    Resolve a single-valued custom field to trimmed text.

    Numbers are rendered without a spurious ".0"; objects and lists go through
    resolve_primary_value.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)

    return resolve_primary_value(value)
