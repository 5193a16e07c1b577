"""Fetch error taxonomy.

Every error raised while talking to the remote source carries an HTTP
``status`` and/or a connection-level ``code`` so the retry engine can classify
it without inspecting messages:

- :class:`RateLimitedError` (HTTP 429): retried forever, slows the whole run.
- :class:`TransientFetchError` (DNS failure, reset, timeout): retried forever
  with per-account exponential backoff.
- :class:`PermanentFetchError` (404 and anything else): the account is dropped.
- :class:`MalformedPayloadError`: a permanent error for unusable payloads.
"""
from __future__ import annotations

from typing import Optional

CODE_TIMEOUT = "timeout"
CODE_DNS_FAILURE = "dns_failure"
CODE_CONNECTION_ERROR = "connection_error"
CODE_MALFORMED_PAYLOAD = "malformed_payload"

TRANSIENT_CODES = frozenset({CODE_TIMEOUT, CODE_DNS_FAILURE, CODE_CONNECTION_ERROR})

RATE_LIMIT_STATUS = 429


class FetchError(Exception):
    """Base class for failures fetching one account."""

    def __init__(
        self,
        account: str,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(f"{account}: {message} (code={code} status={status})")
        self.account = account
        self.status = status
        self.code = code


class RateLimitedError(FetchError):
    def __init__(self, account: str, message: str = "rate limited") -> None:
        super().__init__(account, message, status=RATE_LIMIT_STATUS)


class TransientFetchError(FetchError):
    pass


class PermanentFetchError(FetchError):
    pass


class MalformedPayloadError(PermanentFetchError):
    def __init__(self, account: str, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(account, message, status=status, code=CODE_MALFORMED_PAYLOAD)
