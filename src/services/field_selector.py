"""
Completion & Next-Field Selection.

Pure functions over a vacancy record: which field to ask about next,
and whether enough has been collected to generate the vacancy.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from src.schemas.vacancy import FieldDescriptor
from src.services.field_schema import VACANCY_FIELDS, is_filled


def _ring_order(
    fields: Sequence[FieldDescriptor],
    last_asked_field: str | None,
) -> list[FieldDescriptor]:
    """Fields starting right after ``last_asked_field``, wrapping around."""
    names = [f.name for f in fields]
    start = names.index(last_asked_field) + 1 if last_asked_field in names else 0
    return [*fields[start:], *fields[:start]]


def _is_settled(record: dict[str, Any], field: FieldDescriptor, skipped: set[str]) -> bool:
    # Skipped optional fields keep their default and are not asked again
    if not field.required and field.name in skipped:
        return True
    return is_filled(record, field)


def select_next(
    record: dict[str, Any],
    last_asked_field: str | None = None,
    skipped: Iterable[str] = (),
    fields: Sequence[FieldDescriptor] = VACANCY_FIELDS,
) -> FieldDescriptor | None:
    """
    Pick the next field to ask about, or None when nothing is left.

    The search resumes after the last asked field and wraps, so the user
    is not asked the same thing twice in a row and every field is
    eventually reached even when answers arrive out of order.
    """
    skipped_set = set(skipped)
    for field in _ring_order(fields, last_asked_field):
        if not _is_settled(record, field, skipped_set):
            return field
    return None


def missing_required_fields(
    record: dict[str, Any],
    fields: Sequence[FieldDescriptor] = VACANCY_FIELDS,
) -> list[FieldDescriptor]:
    return [f for f in fields if f.required and not is_filled(record, f)]


def is_complete(
    record: dict[str, Any],
    fields: Sequence[FieldDescriptor] = VACANCY_FIELDS,
) -> bool:
    """All mandatory fields are filled. Optional fields don't matter."""
    return not missing_required_fields(record, fields)


def completion_percentage(
    record: dict[str, Any],
    skipped: Iterable[str] = (),
    fields: Sequence[FieldDescriptor] = VACANCY_FIELDS,
) -> int:
    if not fields:
        return 100
    skipped_set = set(skipped)
    settled = sum(1 for f in fields if _is_settled(record, f, skipped_set))
    return round(100 * settled / len(fields))
