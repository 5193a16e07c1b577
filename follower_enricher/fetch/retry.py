"""Per-account fetch state machine with global throttling and local backoff."""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..data.records import AccountRecord, RunCounters
from .errors import RATE_LIMIT_STATUS, TRANSIENT_CODES, FetchError


LOGGER = logging.getLogger(__name__)

# Returns False when the remote source had no match for the account.
FetchFn = Callable[[AccountRecord], bool]


class FetchState(str, enum.Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    PERMANENTLY_FAILED = "permanently_failed"


class ErrorClass(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


def classify_error(error: BaseException) -> ErrorClass:
    """Classify by status/code only; anything unrecognised is permanent."""

    if isinstance(error, FetchError):
        if error.status == RATE_LIMIT_STATUS:
            return ErrorClass.RATE_LIMITED
        if error.code in TRANSIENT_CODES:
            return ErrorClass.TRANSIENT
    return ErrorClass.PERMANENT


@dataclass
class RetryPolicy:
    delay_increment: float = 0.3
    rate_limit_cooldown: float = 180.0
    backoff_ceiling: float = 120.0


@dataclass
class RunContext:
    """Mutable state shared across one run: the adaptive delay and counters.

    The delay only ever grows. ``sleep`` is injectable so tests can record
    suspensions instead of waiting.
    """

    delay_seconds: float
    counters: RunCounters = field(default_factory=RunCounters)
    sleep: Callable[[float], None] = time.sleep

    def raise_delay(self, increment: float) -> float:
        if increment < 0:
            raise ValueError(f"delay increment must be non-negative, got {increment}")
        self.delay_seconds += increment
        return self.delay_seconds


class FetchRetryEngine:
    """Drive one account from ATTEMPTING to SUCCEEDED or PERMANENTLY_FAILED.

    - rate limited: raise the global delay, sleep the cooldown, retry forever.
    - transient: retry forever, doubling a per-account backoff that starts
      at the current delay and is capped at ``backoff_ceiling``.
    - anything else: give up on this account.

    Every attempt ends with exactly one sleep of the current wait, which
    keeps requests strictly one at a time.
    """

    def __init__(
        self,
        fetch: FetchFn,
        context: RunContext,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._fetch = fetch
        self._context = context
        self._policy = policy or RetryPolicy()

    @property
    def context(self) -> RunContext:
        return self._context

    def run(self, record: AccountRecord) -> FetchState:
        context = self._context
        state = FetchState.ATTEMPTING
        backoff: Optional[float] = None

        while state is FetchState.ATTEMPTING:
            try:
                matched = self._fetch(record)
            except Exception as error:
                context.counters.fetch_errors += 1
                state, backoff = self._handle_error(record, error, backoff)
            else:
                if matched:
                    context.counters.fetch_success += 1
                    state = FetchState.SUCCEEDED
                else:
                    LOGGER.warning("No match for %s; not writing it", record.name)
                    state = FetchState.PERMANENTLY_FAILED

            context.sleep(backoff if backoff is not None else context.delay_seconds)

        return state

    def _handle_error(
        self,
        record: AccountRecord,
        error: Exception,
        backoff: Optional[float],
    ) -> tuple[FetchState, Optional[float]]:
        context = self._context
        error_class = classify_error(error)
        code = getattr(error, "code", None)
        status = getattr(error, "status", None)

        if error_class is ErrorClass.RATE_LIMITED:
            delay = context.raise_delay(self._policy.delay_increment)
            LOGGER.error(
                "Rate limited on %s (code=%s status=%s); delay now %.2fs, cooling down %.0fs",
                record.name,
                code,
                status,
                delay,
                self._policy.rate_limit_cooldown,
            )
            context.sleep(self._policy.rate_limit_cooldown)
            return FetchState.ATTEMPTING, backoff

        if error_class is ErrorClass.TRANSIENT:
            start = backoff if backoff is not None else context.delay_seconds
            backoff = min(start * 2.0, self._policy.backoff_ceiling)
            LOGGER.warning(
                "Connection problem on %s (code=%s status=%s); retrying in %.2fs (delay %.2fs)",
                record.name,
                code,
                status,
                backoff,
                context.delay_seconds,
            )
            return FetchState.ATTEMPTING, backoff

        LOGGER.error(
            "Permanent error on %s (code=%s status=%s); skipping: %s",
            record.name,
            code,
            status,
            error,
        )
        return FetchState.PERMANENTLY_FAILED, backoff
