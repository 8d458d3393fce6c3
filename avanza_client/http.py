"""HTTP request helper for Avanza REST endpoints."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from .constants import BASE_HOST
from .errors import AvanzaConnectionError, AvanzaTimeout

_LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS: Mapping[str, str] = {
    "Accept": "*/*",
    "Content-Type": "application/json",
}


@dataclass(frozen=True)
class AvanzaResponse:
    """Status, decoded body and headers of one HTTP exchange."""

    status: int
    data: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 200


class AvanzaHttpClient:
    """Stateless HTTP client wrapper for Avanza endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        host: str = BASE_HOST,
        timeout: float = 20.0,
    ) -> None:
        self._session = session
        self._host = host
        self._timeout = timeout

    def _url(self, path: str) -> str:
        return f"https://{self._host}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> AvanzaResponse:
        """Send a request and return the response without judging its status.

        Raises:
            AvanzaTimeout: If the request times out
            AvanzaConnectionError: If the network request fails
        """
        url = self._url(path)
        merged = {**DEFAULT_HEADERS, **(headers or {})}
        _LOGGER.debug("%s %s", method.upper(), url)
        try:
            async with self._session.request(
                method.upper(),
                url,
                json=json,
                headers=merged,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
                _LOGGER.debug("%s %s -> %s", method.upper(), url, resp.status)
                return AvanzaResponse(
                    status=resp.status, data=data, headers=resp.headers
                )
        except TimeoutError as err:
            raise AvanzaTimeout(f"{method.upper()} {path} timed out") from err
        except aiohttp.ClientError as err:
            raise AvanzaConnectionError(f"{method.upper()} {path} failed") from err
