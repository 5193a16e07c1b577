"""Cumulative CSV checkpoints of every row accepted so far."""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .records import AccountRecord, is_absent, sanitize_text


LOGGER = logging.getLogger(__name__)

_DECIMAL_COLUMNS = {"engagement": 2}
# Keys are not sanitised on ingest.
_KEY_COLUMNS = {"name", "username"}


def format_value(column: str, value: object) -> str:
    if is_absent(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if column in _KEY_COLUMNS:
        return sanitize_text(str(value))
    places = _DECIMAL_COLUMNS.get(column)
    if places is not None and isinstance(value, (int, float)):
        return f"{value:.{places}f}"
    return str(value)


def record_to_row(record: AccountRecord, columns: Sequence[str]) -> List[str]:
    return [format_value(column, record.get_column(column)) for column in columns]


def write_rows(path: Path, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> bool:
    """Write a header plus ``rows`` to ``path``; return False on failure.

    Values are pre-sanitised, so no quoting or escaping is applied. Rows go to
    a sibling ``.tmp`` file that replaces ``path`` only once complete. A failed
    write is logged and not raised: the rows stay in memory for the next
    checkpoint.
    """

    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(
                handle, quoting=csv.QUOTE_NONE, quotechar=None, lineterminator="\n"
            )
            writer.writerow(columns)
            writer.writerows(rows)
        tmp_path.replace(path)
    except (OSError, csv.Error) as exc:
        LOGGER.error("Checkpoint write failed for %s: %s", path, exc)
        if tmp_path.exists():
            tmp_path.unlink()
        return False
    LOGGER.info("Wrote %s (%d rows)", path, len(rows))
    return True


@dataclass
class OutputTable:
    """One output shape: a filename prefix, its columns and accumulated rows."""

    prefix: str
    columns: Sequence[str]
    rows: List[List[str]] = field(default_factory=list)

    def append(self, record: AccountRecord) -> None:
        self.rows.append(record_to_row(record, self.columns))

    def path_for(self, output_dir: Path, row_count: int, final: bool) -> Path:
        suffix = "_final" if final else ""
        return output_dir / f"{self.prefix}{row_count}{suffix}.csv"


class CheckpointWriter:
    """Accumulate rows and flush distinct snapshots every ``every`` new rows.

    Filenames embed the cumulative row count, so snapshots are never
    overwritten and later ones always hold at least as many rows.
    """

    def __init__(
        self,
        output_dir: Path,
        every: int,
        numeric: OutputTable,
        extended: Optional[OutputTable] = None,
    ) -> None:
        if every < 1:
            raise ValueError(f"checkpoint interval must be at least 1, got {every}")
        self._output_dir = Path(output_dir)
        self._every = every
        self._numeric = numeric
        self._extended = extended
        self._since_checkpoint = 0
        self.written: List[Path] = []

    @property
    def row_count(self) -> int:
        return len(self._numeric.rows)

    def add(self, record: AccountRecord) -> bool:
        """Append ``record``; return True when a checkpoint became due."""
        self._numeric.append(record)
        if self._extended is not None:
            self._extended.append(record)
        self._since_checkpoint += 1
        return self._since_checkpoint >= self._every

    def flush(self, *, final: bool = False) -> bool:
        row_count = self.row_count
        ok = True
        for table in (self._numeric, self._extended):
            if table is None:
                continue
            path = table.path_for(self._output_dir, row_count, final)
            if write_rows(path, table.columns, table.rows):
                self.written.append(path)
            else:
                ok = False
        self._since_checkpoint = 0
        return ok
