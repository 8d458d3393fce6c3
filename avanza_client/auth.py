"""Two-step login and self-renewing session for the Avanza API.

The authenticator owns the user's credentials and produces SessionAuth
bundles. A login is a credential POST that yields a second-factor
challenge, followed by a TOTP confirmation that yields the session. Each
step runs under its own RetryPolicy. Every successful login schedules the
next one shortly before the server-side inactivity timeout would expire it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .constants import (
    AUTHENTICATION_SESSION_HEADER,
    MAX_INACTIVE_MINUTES,
    MIN_INACTIVE_MINUTES,
    SECURITY_TOKEN_HEADER,
    TRANSACTION_COOKIE,
    Paths,
)
from .errors import (
    AvanzaAuthenticationError,
    AvanzaClientError,
    AvanzaResponseError,
    InvalidCredentials,
    InvalidTimeout,
    NonRetryableStatus,
)
from .retry import RetryPolicy
from .totp import generate_code

if TYPE_CHECKING:
    from .http import AvanzaHttpClient

_LOGGER = logging.getLogger(__name__)

RENEWAL_RETRY_SECONDS = 60

SessionListener = Callable[["SessionAuth"], Awaitable[None] | None]


@dataclass(frozen=True)
class Credentials:
    """Login credentials. Held in memory only."""

    username: str
    password: str = field(repr=False)
    totp_secret: str = field(repr=False)


@dataclass(frozen=True)
class TwoFactorChallenge:
    """Result of the credential step, consumed by the TOTP step."""

    transaction_id: str
    method: str = "TOTP"


@dataclass(frozen=True)
class SessionAuth:
    """Token bundle for authenticated REST calls and the realtime socket."""

    authentication_session: str = field(repr=False)
    security_token: str = field(repr=False)
    push_subscription_id: str
    customer_id: str | None = None

    def headers(self) -> dict[str, str]:
        """Headers that authenticate a REST request."""
        return {
            AUTHENTICATION_SESSION_HEADER: self.authentication_session,
            SECURITY_TOKEN_HEADER: self.security_token,
        }


class AuthState(Enum):
    """Progress of the current login attempt."""

    IDLE = "idle"
    LOGGING_IN = "logging_in"
    AWAITING_SECOND_FACTOR = "awaiting_second_factor"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def validate_timeout(minutes: int) -> int:
    """Return minutes if it is an accepted authentication timeout.

    Raises:
        InvalidTimeout: If minutes is not an integer in [30, 1440]
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeout(f"Session timeout must be an integer, got {minutes!r}")
    if not MIN_INACTIVE_MINUTES <= minutes <= MAX_INACTIVE_MINUTES:
        raise InvalidTimeout(
            f"Session timeout not in range {MIN_INACTIVE_MINUTES} - "
            f"{MAX_INACTIVE_MINUTES} minutes."
        )
    return minutes


def check_credentials(credentials: Credentials) -> None:
    """Raise InvalidCredentials when username or password is missing."""
    if not credentials.username:
        raise InvalidCredentials("Missing credentials.username.")
    if not credentials.password:
        raise InvalidCredentials("Missing credentials.password.")


class AvanzaAuthenticator:
    """Session authenticator for the Avanza private API.

    Usage:
        auth = AvanzaAuthenticator(AvanzaHttpClient(session))
        auth.set_credentials(Credentials("user", "pass", "BASE32SECRET"))
        session_auth = await auth.authenticate()
    """

    def __init__(
        self,
        http: AvanzaHttpClient,
        *,
        authentication_timeout: int = MAX_INACTIVE_MINUTES,
        login_retry: RetryPolicy | None = None,
        second_factor_retry: RetryPolicy | None = None,
    ) -> None:
        """Initialize authenticator.

        Args:
            http: Request helper used for both login steps
            authentication_timeout: Requested session lifetime in minutes
            login_retry: Policy for the credential step
            second_factor_retry: Policy for the TOTP step
        """
        self._http = http
        self._authentication_timeout = validate_timeout(authentication_timeout)
        self._login_retry = login_retry or RetryPolicy(
            excluded_status_codes=frozenset({400, 401})
        )
        self._second_factor_retry = second_factor_retry or RetryPolicy()

        self._credentials: Credentials | None = None
        self._state = AuthState.IDLE
        self._session: SessionAuth | None = None
        self._authenticated_at: float | None = None

        self._inflight: asyncio.Task[SessionAuth] | None = None
        self._renewal_handle: asyncio.TimerHandle | None = None
        self._renewal_task: asyncio.Task[None] | None = None
        self._listeners: list[SessionListener] = []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def session(self) -> SessionAuth | None:
        """Latest SessionAuth, or None before the first login."""
        return self._session

    @property
    def authentication_timeout(self) -> int:
        return self._authentication_timeout

    @property
    def renewal_delay(self) -> float:
        """Seconds between a successful login and the scheduled renewal."""
        return (self._authentication_timeout - 1) * 60

    def set_credentials(
        self,
        credentials: Credentials,
        authentication_timeout: int | None = None,
    ) -> None:
        """Validate and store credentials for the next login.

        Replaces any previously stored credentials. Nothing is sent.

        Raises:
            InvalidCredentials: If username or password is empty
            InvalidTimeout: If authentication_timeout is outside [30, 1440]
        """
        check_credentials(credentials)
        if authentication_timeout is not None:
            self._authentication_timeout = validate_timeout(authentication_timeout)
        self._credentials = credentials

    def add_session_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register a callback for every newly produced SessionAuth.

        Coroutine listeners are awaited. Returns a function that removes
        the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def is_session_stale(self) -> bool:
        """True when no session exists or it is due for renewal by wall clock.

        The renewal timer runs on the loop's monotonic clock, which may not
        advance while the host is suspended.
        """
        if self._session is None or self._authenticated_at is None:
            return True
        return time.time() - self._authenticated_at >= self.renewal_delay

    async def authenticate(self) -> SessionAuth:
        """Log in and return the new SessionAuth.

        Joins the login already in flight instead of starting another.

        Raises:
            InvalidCredentials: If no credentials were set
            NonRetryableStatus: If a step was rejected with an excluded status
            RetryExhausted: If a step kept failing past its retry budget
            AvanzaAuthenticationError: If a response lacked required fields
        """
        if self._inflight is not None and not self._inflight.done():
            _LOGGER.debug("Joining login already in flight")
            return await asyncio.shield(self._inflight)

        if self._credentials is None:
            raise InvalidCredentials("No credentials set")

        task = asyncio.create_task(self._login(self._credentials))
        task.add_done_callback(self._clear_inflight)
        self._inflight = task
        return await asyncio.shield(task)

    async def close(self) -> None:
        """Cancel the scheduled renewal and any renewal in progress."""
        if self._renewal_handle is not None:
            self._renewal_handle.cancel()
            self._renewal_handle = None
        if self._renewal_task is not None and not self._renewal_task.done():
            self._renewal_task.cancel()
            try:
                await self._renewal_task
            except asyncio.CancelledError:
                pass
        self._renewal_task = None

    # -------------------------------------------------------------------------
    # Internal: Login Sequence
    # -------------------------------------------------------------------------

    def _set_state(self, state: AuthState) -> None:
        if self._state is not state:
            _LOGGER.debug("Auth state: %s → %s", self._state.value, state.value)
            self._state = state

    def _clear_inflight(self, task: asyncio.Task[SessionAuth]) -> None:
        if self._inflight is task:
            self._inflight = None
        # Callers may all have been cancelled out of their shield.
        if not task.cancelled():
            task.exception()

    async def _login(self, credentials: Credentials) -> SessionAuth:
        _LOGGER.info("Logging in as %s", credentials.username)
        try:
            self._set_state(AuthState.LOGGING_IN)
            challenge = await self._login_retry.run(
                lambda: self._request_challenge(credentials),
                description="Credential login",
            )

            self._set_state(AuthState.AWAITING_SECOND_FACTOR)
            session = await self._second_factor_retry.run(
                lambda: self._confirm_second_factor(credentials, challenge),
                description="Second factor",
            )
        except Exception:
            self._set_state(AuthState.FAILED)
            raise

        self._session = session
        self._authenticated_at = time.time()
        self._set_state(AuthState.AUTHENTICATED)
        _LOGGER.info("Authenticated as %s", credentials.username)

        self._schedule_renewal()
        await self._publish(session)
        return session

    async def _request_challenge(self, credentials: Credentials) -> TwoFactorChallenge:
        response = await self._http.request(
            "POST",
            Paths.AUTHENTICATION.value,
            json={
                "maxInactiveMinutes": self._authentication_timeout,
                "password": credentials.password,
                "username": credentials.username,
            },
        )
        if not response.ok:
            raise AvanzaResponseError(
                response.status,
                f"Credential login failed with status {response.status}",
                response.data,
            )

        body = response.data if isinstance(response.data, dict) else {}
        two_factor = body.get("twoFactorLogin") or {}
        transaction_id = two_factor.get("transactionId")
        if not transaction_id:
            raise AvanzaAuthenticationError(
                "Credential login response has no twoFactorLogin.transactionId"
            )

        method = two_factor.get("method", "TOTP")
        if method != "TOTP":
            raise AvanzaAuthenticationError(
                f"Unsupported second factor method: {method}"
            )
        return TwoFactorChallenge(transaction_id=transaction_id, method=method)

    async def _confirm_second_factor(
        self, credentials: Credentials, challenge: TwoFactorChallenge
    ) -> SessionAuth:
        # Codes roll over every 30s, so each attempt computes a fresh one.
        code = generate_code(credentials.totp_secret)
        response = await self._http.request(
            "POST",
            Paths.TOTP.value,
            json={"method": challenge.method, "totpCode": code},
            headers={"Cookie": f"{TRANSACTION_COOKIE}={challenge.transaction_id}"},
        )
        if not response.ok:
            raise AvanzaResponseError(
                response.status,
                f"Second factor failed with status {response.status}",
                response.data,
            )

        body: dict[str, Any] = response.data if isinstance(response.data, dict) else {}
        authentication_session = body.get("authenticationSession")
        push_subscription_id = body.get("pushSubscriptionId")
        security_token = response.headers.get(SECURITY_TOKEN_HEADER)
        if not authentication_session or not push_subscription_id:
            raise AvanzaAuthenticationError(
                "Second factor response is missing session fields"
            )
        if not security_token:
            raise AvanzaAuthenticationError(
                f"Second factor response has no {SECURITY_TOKEN_HEADER} header"
            )

        customer_id = body.get("customerId")
        return SessionAuth(
            authentication_session=authentication_session,
            security_token=security_token,
            push_subscription_id=str(push_subscription_id),
            customer_id=str(customer_id) if customer_id is not None else None,
        )

    async def _publish(self, session: SessionAuth) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(session)
                if inspect.isawaitable(result):
                    await result
            except Exception as err:
                _LOGGER.exception("Session listener error: %s", err)

    # -------------------------------------------------------------------------
    # Internal: Renewal
    # -------------------------------------------------------------------------

    def _schedule_renewal(self, delay: float | None = None) -> None:
        if self._renewal_handle is not None:
            self._renewal_handle.cancel()

        if delay is None:
            delay = self.renewal_delay
        loop = asyncio.get_running_loop()
        self._renewal_handle = loop.call_later(delay, self._on_renewal_due)
        _LOGGER.info("Session renewal scheduled in %d seconds", delay)

    def _on_renewal_due(self) -> None:
        self._renewal_handle = None
        self._renewal_task = asyncio.create_task(self._renew())

    async def _renew(self) -> None:
        """Log in again, retrying later if the attempt fails.

        A rejection with an excluded status or missing credentials stops
        renewal; the next authenticate() call starts it again.
        """
        _LOGGER.info("Renewing session")
        try:
            await self.authenticate()
        except (NonRetryableStatus, InvalidCredentials) as err:
            _LOGGER.error("Session renewal rejected, not rescheduling: %s", err)
        except AvanzaClientError as err:
            _LOGGER.error(
                "Session renewal failed, retrying in %d seconds: %s",
                RENEWAL_RETRY_SECONDS,
                err,
            )
            self._schedule_renewal(RENEWAL_RETRY_SECONDS)
