"""Field validators.

All validators are pure: they take the raw string a user typed (or ``None``
when nothing was given) and answer whether it satisfies the field rule.
Surrounding whitespace is ignored everywhere.
"""

from __future__ import annotations

import re

from ..models.record import TestOutcome


MIN_FIELD_LENGTH = 3
MAX_FIELD_LENGTH = 99
MIN_SEARCH_LENGTH = 3

EDITABLE_FIELDS = ("system_name", "test_type", "result")

_NAME_PATTERN = re.compile(r"[A-Za-z0-9()\[\]\-_. ]+")
_TYPE_PATTERN = re.compile(r"[A-Za-z0-9]+")
_ID_PATTERN = re.compile(r"[0-9]+")


def _trimmed(raw: str | None) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def _within_bounds(value: str) -> bool:
    return MIN_FIELD_LENGTH <= len(value) <= MAX_FIELD_LENGTH


def validate_name(raw: str | None) -> bool:
    """System names: letters, digits, spaces and ``()[]-_.``."""
    value = _trimmed(raw)
    return _within_bounds(value) and _NAME_PATTERN.fullmatch(value) is not None


def validate_type(raw: str | None) -> bool:
    """Test types: letters and digits only."""
    value = _trimmed(raw)
    return _within_bounds(value) and _TYPE_PATTERN.fullmatch(value) is not None


def validate_id(raw: str | None) -> bool:
    """A base-10 integer with no trailing garbage, strictly positive."""
    value = _trimmed(raw)
    if not _ID_PATTERN.fullmatch(value):
        return False
    return int(value) > 0


def validate_result(raw: str | None) -> bool:
    try:
        TestOutcome.parse(raw)
    except ValueError:
        return False
    return True


def validate_search_term(raw: str | None) -> bool:
    return len(_trimmed(raw)) >= MIN_SEARCH_LENGTH


_FIELD_VALIDATORS = {
    "system_name": validate_name,
    "test_type": validate_type,
    "result": validate_result,
}


def validate_field(field: str, raw: str | None) -> bool:
    """Validate ``raw`` against the rule of an editable field.

    Raises:
        KeyError: if ``field`` is not one of ``EDITABLE_FIELDS``.
    """
    return _FIELD_VALIDATORS[field](raw)
