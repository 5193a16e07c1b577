"""Configuration helpers for the account enrichment pipeline."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

OUTPUT_DIR_ENV = "ENRICHER_OUTPUT_DIR"
MIN_COUNT_ENV = "ENRICHER_MIN_COUNT"
TEXT_MIN_FOLLOWERS_ENV = "ENRICHER_TEXT_MIN_FOLLOWERS"
CHECKPOINT_EVERY_ENV = "ENRICHER_CHECKPOINT_EVERY"
REQUEST_DELAY_ENV = "ENRICHER_REQUEST_DELAY"
DELAY_INCREMENT_ENV = "ENRICHER_DELAY_INCREMENT"
RATE_LIMIT_COOLDOWN_ENV = "ENRICHER_RATE_LIMIT_COOLDOWN"
BACKOFF_CEILING_ENV = "ENRICHER_BACKOFF_CEILING"
REQUEST_TIMEOUT_ENV = "ENRICHER_REQUEST_TIMEOUT"

DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "data"
DEFAULT_MIN_COUNT = 2
# Keep every account in the text export so nothing has to be refetched later.
DEFAULT_TEXT_MIN_FOLLOWERS = 0
DEFAULT_CHECKPOINT_EVERY = 1000
DEFAULT_REQUEST_DELAY = 3.0
DEFAULT_DELAY_INCREMENT = 0.3
DEFAULT_RATE_LIMIT_COOLDOWN = 180.0
DEFAULT_BACKOFF_CEILING = 120.0
DEFAULT_REQUEST_TIMEOUT = 2.5

T = TypeVar("T")


@dataclass(frozen=True)
class PipelineSettings:
    """Runtime knobs for one enrichment run (all durations in seconds)."""

    output_dir: Path
    min_count: int = DEFAULT_MIN_COUNT
    text_min_followers: int = DEFAULT_TEXT_MIN_FOLLOWERS
    checkpoint_every: int = DEFAULT_CHECKPOINT_EVERY
    request_delay: float = DEFAULT_REQUEST_DELAY
    delay_increment: float = DEFAULT_DELAY_INCREMENT
    rate_limit_cooldown: float = DEFAULT_RATE_LIMIT_COOLDOWN
    backoff_ceiling: float = DEFAULT_BACKOFF_CEILING
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def with_overrides(self, **overrides: object) -> "PipelineSettings":
        """Return a copy with every non-None override applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **applied)


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _parse_env(name: str, default: T, parse: Callable[[str], T], kind: str) -> T:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be {kind}; received '{raw}'.") from exc


def get_output_dir() -> Path:
    """Resolve the directory checkpoints are written to."""

    raw_path = _get_env(OUTPUT_DIR_ENV, str(DEFAULT_OUTPUT_DIR))
    return Path(raw_path).expanduser().resolve()


def get_pipeline_settings() -> PipelineSettings:
    """Resolve pipeline settings from environment with sensible defaults."""

    settings = PipelineSettings(
        output_dir=get_output_dir(),
        min_count=_parse_env(MIN_COUNT_ENV, DEFAULT_MIN_COUNT, int, "an integer"),
        text_min_followers=_parse_env(
            TEXT_MIN_FOLLOWERS_ENV, DEFAULT_TEXT_MIN_FOLLOWERS, int, "an integer"
        ),
        checkpoint_every=_parse_env(
            CHECKPOINT_EVERY_ENV, DEFAULT_CHECKPOINT_EVERY, int, "an integer"
        ),
        request_delay=_parse_env(REQUEST_DELAY_ENV, DEFAULT_REQUEST_DELAY, float, "a number"),
        delay_increment=_parse_env(
            DELAY_INCREMENT_ENV, DEFAULT_DELAY_INCREMENT, float, "a number"
        ),
        rate_limit_cooldown=_parse_env(
            RATE_LIMIT_COOLDOWN_ENV, DEFAULT_RATE_LIMIT_COOLDOWN, float, "a number"
        ),
        backoff_ceiling=_parse_env(
            BACKOFF_CEILING_ENV, DEFAULT_BACKOFF_CEILING, float, "a number"
        ),
        request_timeout=_parse_env(
            REQUEST_TIMEOUT_ENV, DEFAULT_REQUEST_TIMEOUT, float, "a number"
        ),
    )
    if settings.checkpoint_every < 1:
        raise RuntimeError(
            f"{CHECKPOINT_EVERY_ENV} must be at least 1; received {settings.checkpoint_every}."
        )
    return settings
