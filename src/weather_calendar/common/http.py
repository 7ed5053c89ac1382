"""Async GET client for the CWA open data datastore.

Every dataset call goes through ``HttpClient.get``: the authorization key
and ``format=JSON`` ride along as default query params, and transient
failures (timeouts, rate limiting, 5xx) are retried with backoff before
the caller sees them.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

logger = logging.getLogger(__name__)

# Datastore statuses worth another attempt; 401/404 fail at once
_TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TimeoutException):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUSES
    return False


_with_retry = retry(
    retry=retry_if_exception(_is_transient),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


class HttpClient:
    """One short-lived connection pool per dataset fetch.

    Open it with ``async with``; ``params`` are merged into every request
    and are never written to the debug log, since they carry the API key.
    """

    def __init__(
        self,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            params=params or {},
            timeout=httpx.Timeout(timeout),
        )

    @_with_retry
    async def get(self, url: str, params: dict | None = None) -> httpx.Response:
        """GET ``url`` (relative to ``base_url``); non-2xx raises HTTPStatusError."""
        logger.debug("GET %s %s", url, params or {})
        resp = await self._client.get(url, params=params)
        resp.raise_for_status()
        return resp

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
