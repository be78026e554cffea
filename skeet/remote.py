"""Remote configuration authority client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from skeet.errors import RemoteConfigError

logger = logging.getLogger(__name__)

_MAX_LOGGED_BODY = 500


class RemoteConfigFetcher:
    """One-shot GET against the integrations endpoint.

    Returns the parsed body on 200, ``None`` on any other status. Transport
    failures and unparsable bodies raise ``RemoteConfigError``.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key)

    async def fetch(self) -> dict[str, Any] | None:
        if not self._api_key:
            logger.info("No Skeet API key provided, skipping remote configuration")
            return None

        logger.info("Fetching configuration from %s", self._url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(
                    self._url,
                    params={"user_api_key": self._api_key},
                    headers={"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"},
                )
        except httpx.TransportError as e:
            raise RemoteConfigError(f"Failed to reach remote config at {self._url}: {e!r}") from e

        if resp.status_code != 200:
            logger.warning(
                "Remote config request failed with status %d: %s",
                resp.status_code, resp.text[:_MAX_LOGGED_BODY],
            )
            return None

        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteConfigError(f"Remote config returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise RemoteConfigError(f"Remote config returned {type(data).__name__}, expected an object")
        return data
