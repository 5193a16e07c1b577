"""Unit tests for the absent-value predicate and the refresh policy."""
from __future__ import annotations

import math

import pytest

from follower_enricher.data.records import (
    NUMERIC_REFRESH_FIELDS,
    TEXT_REFRESH_FIELDS,
    AccountRecord,
    is_absent,
)
from follower_enricher.fetch.policy import needs_fetch, refresh_fields


def complete_record(**overrides) -> AccountRecord:
    values = dict(
        name="alice",
        count=5,
        followers=0,
        likes=0,
        engagement=0.0,
        comments=0,
        biography="",
        external_url="",
        full_name="Alice",
    )
    values.update(overrides)
    return AccountRecord(**values)


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, float("nan"), math.nan, "undefined", "NaN", " NaN "])
def test_is_absent_sentinels(value):
    assert is_absent(value) is True


@pytest.mark.unit
@pytest.mark.parametrize("value", [0, 0.0, "", "0", False, "nan-ish", 12])
def test_is_absent_keeps_real_values(value):
    assert is_absent(value) is False


@pytest.mark.unit
def test_complete_numeric_record_needs_no_fetch():
    assert needs_fetch(complete_record()) is False


@pytest.mark.unit
@pytest.mark.parametrize("field", NUMERIC_REFRESH_FIELDS)
@pytest.mark.parametrize("sentinel", [None, float("nan"), "undefined", "NaN"])
def test_any_absent_numeric_field_needs_fetch(field, sentinel):
    record = complete_record(**{field: sentinel})
    assert needs_fetch(record) is True


@pytest.mark.unit
def test_text_fields_only_checked_when_requested():
    record = complete_record(biography=None)

    assert needs_fetch(record) is False
    assert needs_fetch(record, NUMERIC_REFRESH_FIELDS, TEXT_REFRESH_FIELDS) is True


@pytest.mark.unit
def test_text_check_short_circuits_on_numeric_absence():
    record = complete_record(followers=None)

    class ExplodingFields:
        def __iter__(self):
            raise AssertionError("text fields should not be evaluated")

        def __bool__(self):
            return True

    assert needs_fetch(record, NUMERIC_REFRESH_FIELDS, ExplodingFields()) is True


@pytest.mark.unit
def test_refresh_fields_follow_text_output_flag():
    assert refresh_fields(True) == TEXT_REFRESH_FIELDS
    assert refresh_fields(False) is None
