"""Unit tests for the record schema, store ordering and column access."""
from __future__ import annotations

import pytest

from follower_enricher.data.records import (
    MAX_CAPTIONS,
    NUMERIC_COLUMNS,
    TEXT_COLUMNS,
    AccountRecord,
    RecordStore,
    RunCounters,
)


@pytest.mark.unit
def test_column_layouts_match_output_contract():
    assert list(NUMERIC_COLUMNS) == [
        "name", "count", "followers", "likes", "engagement",
        "comments", "id", "videoFraction", "videoViews",
    ]
    assert TEXT_COLUMNS[:7] == (
        "name", "followers", "biography", "external_url",
        "full_name", "profile_pic_url_hd", "profile_pic_url",
    )
    assert TEXT_COLUMNS[-1] == f"caption_{MAX_CAPTIONS - 1}"


@pytest.mark.unit
def test_get_and_set_column_maps_camel_case_headers():
    record = AccountRecord(name="alice")
    record.set_column("videoViews", 12.5)
    record.set_column("videoFraction", 0.25)

    assert record.video_views == 12.5
    assert record.get_column("videoFraction") == 0.25


@pytest.mark.unit
def test_caption_columns_grow_and_are_bounded():
    record = AccountRecord(name="alice")
    record.set_column("caption_2", "third")
    record.set_column(f"caption_{MAX_CAPTIONS}", "ignored")

    assert record.captions == ["", "", "third"]
    assert record.get_column("caption_2") == "third"
    assert record.get_column("caption_9") is None


@pytest.mark.unit
def test_store_preserves_insertion_order_and_reuses_records():
    store = RecordStore()
    first = store.get_or_create("b")
    store.get_or_create("a")
    store.add(AccountRecord(name="c"))

    assert [record.name for record in store] == ["b", "a", "c"]
    assert store.get_or_create("b") is first
    assert "a" in store and "z" not in store
    assert len(store) == 3


@pytest.mark.unit
def test_counters_start_at_zero():
    assert set(RunCounters().as_dict().values()) == {0}
