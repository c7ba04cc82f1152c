"""Outlook category normalization.

Category names are matched case-insensitively against a fixed table and
mapped to the exact display names Outlook stores on messages. The filter
compiler, the search compiler and the client predicate all go through
`normalize_category` so the three can never disagree about a term.

Labels (user-created categories) are case-sensitive and pass through
unchanged; they are only checked for emptiness.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from OutlookSearch.core.errors import InvalidCategory, QueryValidationError

DEFAULT_CATEGORY_TABLE: Mapping[str, str] = MappingProxyType(
    {
        "personal": "Personal",
        "work": "Work",
        "family": "Family",
        "travel": "Travel",
        "important": "Important",
        "urgent": "Urgent",
    }
)


def normalize_category(
    value: object,
    *,
    table: Mapping[str, str] = DEFAULT_CATEGORY_TABLE,
    strict: bool = True,
) -> str | None:
    """Map a category name to its canonical Outlook display name.

    Args:
        value: Category name as supplied by the caller.
        table: Lower-case name -> canonical name mapping.
        strict: When True, invalid input raises; when False it yields None.

    Returns:
        Canonical category name, or None for invalid input in lenient mode.

    Raises:
        InvalidCategory: In strict mode, when the value is empty or unknown.
    """
    if not isinstance(value, str) or not value.strip():
        if strict:
            raise InvalidCategory(value)
        return None

    canonical = table.get(value.strip().lower())
    if canonical is None:
        if strict:
            raise InvalidCategory(value, tuple(table.keys()))
        return None
    return canonical


def validate_label(value: object) -> str:
    """Return a label unchanged after checking it is a non-empty string.

    Raises:
        QueryValidationError: If the label is empty or not a string.
    """
    if not isinstance(value, str) or not value.strip():
        raise QueryValidationError(f"Invalid label value: {value!r}")
    return value
