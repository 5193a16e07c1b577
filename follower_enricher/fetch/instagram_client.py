"""Thin unauthenticated Instagram web client that classifies every failure."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import requests

from .errors import (
    CODE_CONNECTION_ERROR,
    CODE_DNS_FAILURE,
    CODE_TIMEOUT,
    RATE_LIMIT_STATUS,
    MalformedPayloadError,
    PermanentFetchError,
    RateLimitedError,
    TransientFetchError,
)


LOGGER = logging.getLogger(__name__)

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "nameresolutionerror",
)


@dataclass
class InstagramClientConfig:
    base_url: str = "https://www.instagram.com"
    timeout_seconds: float = 2.5
    user_agent: str = "FollowerEnricher/1.0"


class InstagramClient:
    """Minimal wrapper around the two public endpoints used for enrichment.

    The client never retries or sleeps; it raises a ``FetchError`` subclass
    and leaves the retry policy to :mod:`follower_enricher.fetch.retry`.
    """

    def __init__(self, config: InstagramClientConfig | None = None) -> None:
        self._config = config or InstagramClientConfig()
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self._config.user_agent})

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------
    def _get_json(self, account: str, url: str, params: Dict[str, str] | None = None) -> Dict[str, Any]:
        try:
            response = self._session.get(url, params=params, timeout=self._config.timeout_seconds)
        except requests.Timeout as exc:
            raise TransientFetchError(account, str(exc), code=CODE_TIMEOUT) from exc
        except requests.ConnectionError as exc:
            message = str(exc)
            lowered = message.lower()
            code = CODE_DNS_FAILURE if any(m in lowered for m in _DNS_MARKERS) else CODE_CONNECTION_ERROR
            raise TransientFetchError(account, message, code=code) from exc
        except requests.exceptions.ChunkedEncodingError as exc:
            # Reset while the body was being read
            raise TransientFetchError(account, str(exc), code=CODE_CONNECTION_ERROR) from exc
        except requests.RequestException as exc:
            raise PermanentFetchError(account, str(exc)) from exc

        status = response.status_code
        if status == RATE_LIMIT_STATUS:
            raise RateLimitedError(account)
        if status != 200:
            raise PermanentFetchError(account, f"HTTP {status}", status=status)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedPayloadError(account, "response body is not JSON", status=status) from exc
        if not isinstance(payload, dict) or not payload:
            raise MalformedPayloadError(account, f"response body is invalid: {payload!r}", status=status)

        LOGGER.debug("Fetched %s from %s", account, url)
        return payload

    # ------------------------------------------------------------------
    # Public lookups
    # ------------------------------------------------------------------
    def get_profile(self, account: str) -> Dict[str, Any]:
        """Return the profile payload (``graphql.user`` lives inside)."""
        url = f"{self._config.base_url}/{account}/"
        return self._get_json(account, url, params={"__a": "1"})

    def search_users(self, real_name: str) -> Dict[str, Any]:
        """Return the blended top-search payload for a human name."""
        url = f"{self._config.base_url}/web/search/topsearch/"
        # requests encodes the spaces as '+'
        query = " ".join(real_name.split())
        return self._get_json(real_name, url, params={"context": "blended", "query": query})

    def close(self) -> None:
        self._session.close()
