"""CLI entrypoint: merge prior tables, fetch missing account data, write checkpoints.

Usage:
    python -m scripts.enrich_accounts --list data/counts.csv \
        --list-generated data/out1000_final.csv --text-tables data/outText1000_final.csv
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from follower_enricher.config import get_pipeline_settings
from follower_enricher.data.loader import (
    CUSTOM_IMPORT_MAX_ROWS,
    GENERATED_MAX_ROWS,
    RAW_LIST_MAX_ROWS,
    InputLoadError,
    merge_csv_counts,
)
from follower_enricher.data.records import RecordStore
from follower_enricher.fetch import InstagramClient, InstagramClientConfig
from follower_enricher.logging_utils import setup_enrichment_logging
from follower_enricher.pipeline import build_pipeline

LOGGER = logging.getLogger("scripts.enrich_accounts")

RAW_LIST_COLUMNS = ("name", "count")


def _split_paths(value: Optional[str]) -> List[Path]:
    if not value:
        return []
    return [Path(part.strip()) for part in value.split(",") if part.strip()]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fill in follower and engagement data for account tables")
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for checkpoint CSVs (falls back to ENRICHER_OUTPUT_DIR, default ./data).",
    )
    parser.add_argument(
        "-l",
        "--list",
        type=Path,
        default=None,
        help='Raw crawler CSV with header-less "name,count" rows.',
    )
    parser.add_argument(
        "-g",
        "--list-generated",
        type=str,
        default=None,
        help="Comma separated CSVs previously written by this tool.",
    )
    parser.add_argument(
        "-t",
        "--text-tables",
        type=str,
        default=None,
        help="Comma separated text CSVs previously written by this tool (best effort).",
    )
    parser.add_argument(
        "--no-text-output",
        action="store_false",
        dest="text_output",
        help="Disable the extended text table (enabled by default).",
    )
    parser.set_defaults(text_output=True)
    parser.add_argument(
        "-c",
        "--custom-import",
        type=Path,
        default=None,
        help="CSV for an explicit import; when set every other input is ignored.",
    )
    parser.add_argument(
        "-a",
        "--account-names",
        action="store_true",
        help="Treat record keys as real names and resolve them to accounts via search.",
    )
    parser.add_argument(
        "--checkpoint-every",
        type=int,
        default=None,
        help="Write a checkpoint every N new rows (default 1000).",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Initial seconds to sleep between requests (default 3.0).",
    )
    parser.add_argument("--verbose", action="store_true", help="Show debug output on the console.")
    parser.add_argument("--quiet", action="store_true", help="Only log to file.")
    return parser.parse_args(argv)


def load_records(args: argparse.Namespace, records: RecordStore) -> None:
    """Merge every input table into ``records``.

    Raises :class:`InputLoadError` when the base list, a custom import or a
    generated table cannot be read. Text tables are best effort.
    """

    if args.custom_import:
        merge_csv_counts(args.custom_import, records, None, CUSTOM_IMPORT_MAX_ROWS)
        return

    if args.list is None:
        raise InputLoadError("No input list given; pass --list or --custom-import")
    merge_csv_counts(args.list, records, RAW_LIST_COLUMNS, RAW_LIST_MAX_ROWS)

    for path in _split_paths(args.list_generated):
        merge_csv_counts(path, records, None, GENERATED_MAX_ROWS)

    if args.text_output:
        for path in _split_paths(args.text_tables):
            try:
                merge_csv_counts(path, records, None, GENERATED_MAX_ROWS)
            except InputLoadError as err:
                LOGGER.error("Error loading %s; continuing without it: %s", path, err)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    console_log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_enrichment_logging(console_level=console_log_level, quiet=args.quiet)

    settings = get_pipeline_settings().with_overrides(
        output_dir=args.output_dir,
        checkpoint_every=args.checkpoint_every,
        request_delay=args.delay,
    )

    records = RecordStore()
    try:
        load_records(args, records)
    except InputLoadError as err:
        LOGGER.error("Could not load input tables: %s", err)
        return 1

    client = InstagramClient(InstagramClientConfig(timeout_seconds=settings.request_timeout))
    pipeline = build_pipeline(
        records,
        settings,
        client,
        include_text=args.text_output,
        account_names=args.account_names,
    )
    try:
        counters = pipeline.run()
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted by user; rows since the last checkpoint are lost")
        return 130
    finally:
        client.close()

    print(json.dumps(counters.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
