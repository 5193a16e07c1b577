"""Merge raw crawler counts and previously written tables into a RecordStore."""
from __future__ import annotations

import csv
import logging
import math
from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

from .records import NAME_SEARCH_COLUMNS, NUMERIC_COLUMNS, TEXT_COLUMNS, RecordStore

logger = logging.getLogger(__name__)

RAW_LIST_MAX_ROWS = 2_500_000
GENERATED_MAX_ROWS = 250_000
CUSTOM_IMPORT_MAX_ROWS = 100_000

_SENTINELS = ["undefined", "NaN"]
_INT_COLUMNS = {"count", "followers", "likes", "comments"}
_FLOAT_COLUMNS = {"engagement", "videoFraction", "videoViews"}
_BOOL_COLUMNS = {"is_verified", "is_private"}
KNOWN_COLUMNS = set(NUMERIC_COLUMNS) | set(TEXT_COLUMNS) | set(NAME_SEARCH_COLUMNS)
# An empty cell here is a fetched empty value, not a missing one.
_FREE_TEXT_COLUMNS = set(TEXT_COLUMNS) - {"name", "followers"}


class InputLoadError(RuntimeError):
    """An input table could not be read; without it there is nothing to process."""


def _coerce(column: str, raw: object) -> object:
    if raw is None or (isinstance(raw, float) and math.isnan(raw)):
        return None
    text = str(raw).strip()
    if not text and column not in _FREE_TEXT_COLUMNS:
        return None
    if column in _INT_COLUMNS:
        try:
            return int(float(text))
        except ValueError:
            return None
    if column in _FLOAT_COLUMNS:
        try:
            value = float(text)
        except ValueError:
            return None
        return None if math.isnan(value) else value
    if column in _BOOL_COLUMNS:
        if text.lower() in ("true", "1"):
            return True
        if text.lower() in ("false", "0"):
            return False
        return None
    return text


def merge_csv_counts(
    source: Path | str,
    records: RecordStore,
    column_names: Optional[Sequence[str]] = None,
    max_rows: Optional[int] = None,
) -> int:
    """Merge one CSV table into ``records`` and return the rows merged.

    Parameters
    ----------
    source : Path | str
        CSV file to read.
    records : RecordStore
        Target store, keyed by account name.
    column_names : Sequence[str], optional
        Explicit columns for header-less raw tables. Colliding counts are
        summed. Without it the header row defines the columns and colliding
        counts are overwritten, since generated tables already carry merged
        counts forward.
    max_rows : int, optional
        Upper bound on rows read.
    """

    path = Path(source)
    explicit = column_names is not None
    try:
        frame = pd.read_csv(
            path,
            header=None if explicit else 0,
            names=list(column_names) if explicit else None,
            nrows=max_rows,
            dtype=str,
            keep_default_na=False,
            na_values=_SENTINELS,
            quoting=csv.QUOTE_NONE,
            on_bad_lines="skip",
        )
    except (OSError, ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise InputLoadError(f"Could not load {path}: {exc}") from exc

    if "name" not in frame.columns:
        raise InputLoadError(f"{path} has no 'name' column (columns: {list(frame.columns)})")

    columns = [column for column in frame.columns if column in KNOWN_COLUMNS and column != "name"]
    merged = 0
    for row in frame.to_dict(orient="records"):
        name = _coerce("name", row.get("name"))
        if not name:
            continue
        record = records.get_or_create(name)
        values: Dict[str, object] = {column: _coerce(column, row.get(column)) for column in columns}

        count = values.pop("count", None)
        if count is not None:
            record.count = record.count + count if explicit else count
        for column, value in values.items():
            if value is not None:
                record.set_column(column, value)
        merged += 1

    logger.info("Merged %d rows from %s (%d accounts total)", merged, path, len(records))
    return merged
