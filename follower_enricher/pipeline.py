"""Enrichment driver: filter, refresh, fetch and checkpoint every account."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .config import PipelineSettings
from .data.checkpoint import CheckpointWriter, OutputTable
from .data.records import (
    NAME_SEARCH_COLUMNS,
    NUMERIC_COLUMNS,
    NUMERIC_REFRESH_FIELDS,
    TEXT_COLUMNS,
    AccountRecord,
    RecordStore,
    RunCounters,
    is_absent,
)
from .fetch.aggregator import apply_profile, apply_search_result
from .fetch.instagram_client import InstagramClient
from .fetch.policy import needs_fetch, refresh_fields
from .fetch.retry import FetchFn, FetchRetryEngine, FetchState, RetryPolicy, RunContext


LOGGER = logging.getLogger(__name__)

# Accounts carrying this marker were already cross-referenced elsewhere.
CROSS_REFERENCE_MARKER = ":cr"


@dataclass(frozen=True)
class PipelineOptions:
    min_count: int = 2
    text_min_followers: int = 0
    include_text: bool = True
    account_names: bool = False


def make_profile_fetcher(client: InstagramClient, *, include_text: bool) -> FetchFn:
    def _fetch(record: AccountRecord) -> bool:
        payload = client.get_profile(record.name)
        apply_profile(record, payload, include_text=include_text)
        return True

    return _fetch


def make_name_search_fetcher(client: InstagramClient) -> FetchFn:
    def _fetch(record: AccountRecord) -> bool:
        payload = client.search_users(record.name)
        return apply_search_result(record, payload)

    return _fetch


class EnrichmentPipeline:
    """Walk the store once in insertion order and emit one row per accepted account."""

    def __init__(
        self,
        records: RecordStore,
        engine: FetchRetryEngine,
        writer: CheckpointWriter,
        options: Optional[PipelineOptions] = None,
    ) -> None:
        self._records = records
        self._engine = engine
        self._writer = writer
        self._options = options or PipelineOptions()

    @property
    def counters(self) -> RunCounters:
        return self._engine.context.counters

    def _excluded(self, record: AccountRecord) -> bool:
        counters = self.counters
        if record.count < self._options.min_count:
            counters.skipped_min_count += 1
            return True
        if CROSS_REFERENCE_MARKER in record.name:
            counters.skipped_cr += 1
            return True
        if (
            self._options.include_text
            and not is_absent(record.followers)
            and record.followers < self._options.text_min_followers
        ):
            counters.skipped_text_min_followers += 1
            return True
        return False

    def _accept(self, record: AccountRecord) -> bool:
        """Return True when ``record`` should be written."""
        counters = self.counters
        # Name search never returns a biography, so only profile mode checks text.
        text_fields = refresh_fields(self._options.include_text and not self._options.account_names)
        if not needs_fetch(record, NUMERIC_REFRESH_FIELDS, text_fields):
            counters.fetch_skipped += 1
            LOGGER.info("Skipping already fetched %s", record.name)
            return True

        counters.fetch_tried += 1
        LOGGER.info("Fetching %s (delay %.2fs)", record.name, self._engine.context.delay_seconds)
        state = self._engine.run(record)
        if state is not FetchState.SUCCEEDED:
            counters.skipped_permanent_error += 1
            return False
        LOGGER.info("Fetched %s (%d fetched so far)", record.name, counters.fetch_success)
        return True

    def run(self) -> RunCounters:
        counters = self.counters
        LOGGER.info("Starting enrichment of %d accounts", len(self._records))

        for record in self._records:
            counters.total += 1
            if self._excluded(record):
                continue
            if not self._accept(record):
                continue

            counters.wrote_success += 1
            if self._writer.add(record):
                LOGGER.info("CHECKPOINT at %d rows: %s", self._writer.row_count, counters.as_dict())
                self._writer.flush()

        self._writer.flush(final=True)
        LOGGER.info(
            "COMPLETE. fetched %d accounts, wrote %d rows: %s",
            counters.fetch_success,
            self._writer.row_count,
            counters.as_dict(),
        )
        return counters


def build_pipeline(
    records: RecordStore,
    settings: PipelineSettings,
    client: InstagramClient,
    *,
    include_text: bool = True,
    account_names: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentPipeline:
    """Wire the client, retry engine and checkpoint writer from ``settings``."""

    if account_names:
        fetch = make_name_search_fetcher(client)
        extended = OutputTable("outAccounts", NAME_SEARCH_COLUMNS)
    else:
        fetch = make_profile_fetcher(client, include_text=include_text)
        extended = OutputTable("outText", TEXT_COLUMNS) if include_text else None

    context = RunContext(delay_seconds=settings.request_delay, sleep=sleep)
    policy = RetryPolicy(
        delay_increment=settings.delay_increment,
        rate_limit_cooldown=settings.rate_limit_cooldown,
        backoff_ceiling=settings.backoff_ceiling,
    )
    writer = CheckpointWriter(
        Path(settings.output_dir),
        settings.checkpoint_every,
        OutputTable("out", NUMERIC_COLUMNS),
        extended,
    )
    options = PipelineOptions(
        min_count=settings.min_count,
        text_min_followers=settings.text_min_followers,
        include_text=include_text,
        account_names=account_names,
    )
    return EnrichmentPipeline(records, FetchRetryEngine(fetch, context, policy), writer, options)
