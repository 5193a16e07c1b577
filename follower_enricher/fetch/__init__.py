"""Remote fetch subsystem (client, payload aggregation, retry engine)."""

from __future__ import annotations

from .errors import (
    FetchError,
    MalformedPayloadError,
    PermanentFetchError,
    RateLimitedError,
    TransientFetchError,
)
from .instagram_client import InstagramClient, InstagramClientConfig
from .retry import FetchRetryEngine, FetchState, RetryPolicy, RunContext

__all__ = [
    "FetchError",
    "FetchRetryEngine",
    "FetchState",
    "InstagramClient",
    "InstagramClientConfig",
    "MalformedPayloadError",
    "PermanentFetchError",
    "RateLimitedError",
    "RetryPolicy",
    "RunContext",
    "TransientFetchError",
]
