"""Refresh policy: decide whether an account must be fetched again."""
from __future__ import annotations

from typing import Optional, Sequence

from ..data.records import NUMERIC_REFRESH_FIELDS, TEXT_REFRESH_FIELDS, AccountRecord, is_absent


def has_absent_field(record: AccountRecord, fields: Sequence[str]) -> bool:
    return any(is_absent(record.get_column(field)) for field in fields)


def needs_fetch(
    record: AccountRecord,
    numeric_fields: Sequence[str] = NUMERIC_REFRESH_FIELDS,
    text_fields: Optional[Sequence[str]] = None,
) -> bool:
    """Return True when any required field is absent.

    ``text_fields`` is only consulted when the numeric fields are complete.
    Pass ``TEXT_REFRESH_FIELDS`` when text output is enabled.
    """

    if has_absent_field(record, numeric_fields):
        return True
    if text_fields:
        return has_absent_field(record, text_fields)
    return False


def refresh_fields(include_text: bool) -> Optional[Sequence[str]]:
    return TEXT_REFRESH_FIELDS if include_text else None
