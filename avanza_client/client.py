"""Caller-facing client combining authentication, REST calls and realtime."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import aiohttp

from .auth import AvanzaAuthenticator, Credentials, SessionAuth
from .constants import (
    BASE_HOST,
    MAX_INACTIVE_MINUTES,
    SOCKET_URL,
    Channel,
    Paths,
    Transactions,
)
from .errors import AvanzaResponseError
from .http import AvanzaHttpClient
from .realtime import AvanzaRealtime
from .retry import RetryPolicy
from .subscriptions import SubscriptionRequest

_LOGGER = logging.getLogger(__name__)


class AvanzaClient:
    """Avanza API client.

    Usage:
        async with aiohttp.ClientSession() as http_session:
            client = AvanzaClient(http_session)
            client.set_credentials(Credentials("user", "pass", "BASE32SECRET"))
            await client.authenticate()
            positions = await client.get_positions()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        authentication_timeout: int = MAX_INACTIVE_MINUTES,
        login_retry: RetryPolicy | None = None,
        second_factor_retry: RetryPolicy | None = None,
        host: str = BASE_HOST,
        socket_url: str = SOCKET_URL,
    ) -> None:
        """Initialize client.

        Args:
            session: aiohttp session used for every REST call
            authentication_timeout: Session lifetime in minutes, 30 to 1440
            login_retry: Retry policy for the credential step
            second_factor_retry: Retry policy for the TOTP step
            host: REST API host
            socket_url: Realtime push endpoint
        """
        self.http = AvanzaHttpClient(session, host=host)
        self.authenticator = AvanzaAuthenticator(
            self.http,
            authentication_timeout=authentication_timeout,
            login_retry=login_retry,
            second_factor_retry=second_factor_retry,
        )
        self.realtime = AvanzaRealtime(url=socket_url)
        self.authenticator.add_session_listener(self.realtime.update_session)

    def set_credentials(
        self, credentials: Credentials, authentication_timeout: int | None = None
    ) -> None:
        """Validate and store credentials. See AvanzaAuthenticator."""
        self.authenticator.set_credentials(credentials, authentication_timeout)

    async def authenticate(self) -> SessionAuth:
        """Log in now. See AvanzaAuthenticator.authenticate."""
        return await self.authenticator.authenticate()

    async def add_subscription(
        self, channel: Channel | str, ids: Iterable[str]
    ) -> SubscriptionRequest:
        """Subscribe to a realtime channel. See AvanzaRealtime."""
        return await self.realtime.add_subscription(channel, ids)

    async def close(self) -> None:
        """Stop session renewal and close the realtime socket.

        The aiohttp session is left to its owner.
        """
        await self.authenticator.close()
        await self.realtime.close()

    # -------------------------------------------------------------------------
    # Authenticated REST
    # -------------------------------------------------------------------------

    async def _current_session(self) -> SessionAuth:
        session = self.authenticator.session
        if session is None or self.authenticator.is_session_stale():
            _LOGGER.info("No fresh session, authenticating before request")
            session = await self.authenticator.authenticate()
        return session

    async def call(self, method: str, path: str, *, json: Any = None) -> Any:
        """Send an authenticated request and return the decoded body.

        Raises:
            AvanzaResponseError: If the response status is not 200
        """
        session = await self._current_session()
        response = await self.http.request(
            method, path, json=json, headers=session.headers()
        )
        if not response.ok:
            raise AvanzaResponseError(
                response.status,
                f"{method.upper()} {path} failed with status {response.status}",
                response.data,
            )
        return response.data

    async def get_positions(self) -> Any:
        """Get all positions held by this user."""
        return await self.call("GET", Paths.POSITIONS.value)

    async def get_overview(self) -> Any:
        """Get an overview of the user's holdings."""
        return await self.call("GET", Paths.OVERVIEW.value)

    async def get_account_overview(self, account_id: str) -> Any:
        return await self.call("GET", Paths.ACCOUNT_OVERVIEW.value.format(account_id))

    async def get_deals_and_orders(self) -> Any:
        return await self.call("GET", Paths.DEALS_AND_ORDERS.value)

    async def get_inspiration_lists(self) -> Any:
        return await self.call("GET", Paths.INSPIRATION_LIST.value.format(""))

    async def get_transactions(self, kind: Transactions | str) -> Any:
        """Get transactions of one kind, e.g. Transactions.DIVIDEND."""
        return await self.call(
            "GET", Paths.TRANSACTIONS.value.format(Transactions(kind).value)
        )
