"""In-memory account records, run counters and CSV column layouts."""
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

# Legacy tables wrote these literals for values that were never fetched.
_ABSENT_STRINGS = {"undefined", "NaN"}

COMMA_REPLACEMENT = "¸"
_LINEBREAK_RE = re.compile(r"\r?\n|\r")

MAX_CAPTIONS = 12

NUMERIC_COLUMNS: Sequence[str] = (
    "name",
    "count",
    "followers",
    "likes",
    "engagement",
    "comments",
    "id",
    "videoFraction",
    "videoViews",
)

TEXT_COLUMNS: Sequence[str] = (
    "name",
    "followers",
    "biography",
    "external_url",
    "full_name",
    "profile_pic_url_hd",
    "profile_pic_url",
) + tuple(f"caption_{index}" for index in range(MAX_CAPTIONS))

NAME_SEARCH_COLUMNS: Sequence[str] = (
    "name",
    "username",
    "followers",
    "full_name",
    "profile_pic_url",
    "is_verified",
    "is_private",
    "id",
)

# Fields whose absence triggers a refetch.
NUMERIC_REFRESH_FIELDS: Sequence[str] = ("followers", "likes", "engagement", "comments")
TEXT_REFRESH_FIELDS: Sequence[str] = ("biography", "external_url", "full_name")

# CSV header -> AccountRecord attribute where the two differ.
_COLUMN_ATTRIBUTES = {
    "videoFraction": "video_fraction",
    "videoViews": "video_views",
}


def is_absent(value: object) -> bool:
    """Return True when ``value`` marks a field that was never fetched.

    Zero is a valid count and an empty biography is a fetched value, so only
    ``None``, NaN and the legacy sentinel strings count as absent.
    """

    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() in _ABSENT_STRINGS:
        return True
    return False


def sanitize_text(text: Optional[str]) -> str:
    """Make a value safe for unquoted CSV: no commas, no line breaks."""

    if text is None:
        return ""
    result = str(text).replace(",", COMMA_REPLACEMENT)
    return _LINEBREAK_RE.sub(" ", result)


def column_attribute(column: str) -> str:
    return _COLUMN_ATTRIBUTES.get(column, column)


@dataclass
class AccountRecord:
    """One tracked account and every attribute the pipeline may attach."""

    name: str
    count: int = 0
    followers: Optional[int] = None
    likes: Optional[int] = None
    engagement: Optional[float] = None
    comments: Optional[int] = None
    video_views: Optional[float] = None
    video_fraction: Optional[float] = None
    id: Optional[str] = None
    biography: Optional[str] = None
    external_url: Optional[str] = None
    full_name: Optional[str] = None
    profile_pic_url_hd: Optional[str] = None
    profile_pic_url: Optional[str] = None
    captions: List[str] = field(default_factory=list)
    username: Optional[str] = None
    is_verified: Optional[bool] = None
    is_private: Optional[bool] = None

    def get_column(self, column: str) -> object:
        """Return the value stored for a CSV column name."""
        if column.startswith("caption_"):
            index = int(column[len("caption_"):])
            return self.captions[index] if index < len(self.captions) else None
        return getattr(self, column_attribute(column))

    def set_column(self, column: str, value: object) -> None:
        """Store ``value`` under a CSV column name, growing captions as needed."""
        if column.startswith("caption_"):
            index = int(column[len("caption_"):])
            if index >= MAX_CAPTIONS:
                return
            while len(self.captions) <= index:
                self.captions.append("")
            self.captions[index] = "" if value is None else str(value)
            return
        setattr(self, column_attribute(column), value)


class RecordStore:
    """Insertion-ordered mapping of account key -> :class:`AccountRecord`."""

    def __init__(self) -> None:
        self._records: Dict[str, AccountRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __iter__(self) -> Iterator[AccountRecord]:
        return iter(list(self._records.values()))

    def __getitem__(self, name: str) -> AccountRecord:
        return self._records[name]

    def get_or_create(self, name: str) -> AccountRecord:
        record = self._records.get(name)
        if record is None:
            record = AccountRecord(name=name)
            self._records[name] = record
        return record

    def add(self, record: AccountRecord) -> AccountRecord:
        self._records[record.name] = record
        return record


@dataclass
class RunCounters:
    """Process-scoped tallies reported at checkpoints and at the end of a run."""

    total: int = 0
    skipped_min_count: int = 0
    skipped_cr: int = 0
    skipped_text_min_followers: int = 0
    skipped_permanent_error: int = 0
    fetch_tried: int = 0
    fetch_skipped: int = 0
    fetch_success: int = 0
    wrote_success: int = 0
    fetch_errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)
