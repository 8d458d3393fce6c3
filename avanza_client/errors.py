"""Client error types for Avanza API interactions."""

from __future__ import annotations

from typing import Any


class AvanzaClientError(Exception):
    """Base error for Avanza client failures."""


class AvanzaTimeout(AvanzaClientError):
    """Timeout while communicating with the API."""


class AvanzaConnectionError(AvanzaClientError):
    """Network connection to the API failed."""


class AvanzaHandshakeError(AvanzaClientError):
    """WebSocket upgrade handshake failed."""


class AvanzaResponseError(AvanzaClientError):
    """HTTP response error from the API."""

    def __init__(self, status: int, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload


class NonRetryableStatus(AvanzaResponseError):
    """Request rejected with a status the retry policy does not retry."""


class RetryExhausted(AvanzaClientError):
    """Transient failures exceeded the retry budget."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"Gave up after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error

    @property
    def status(self) -> int | None:
        """Status code of the last failure, if it carried one."""
        return getattr(self.last_error, "status", None)

    @property
    def payload(self) -> Any:
        """Error payload of the last failure, if it carried one."""
        return getattr(self.last_error, "payload", None)


class AvanzaAuthenticationError(AvanzaClientError):
    """Login flow returned a response it cannot continue from."""


class InvalidCredentials(AvanzaClientError, ValueError):
    """Username or password missing."""


class InvalidTimeout(AvanzaClientError, ValueError):
    """Authentication timeout outside the accepted range."""


class InvalidSecret(AvanzaClientError, ValueError):
    """TOTP secret is not valid base32."""


class ProtocolHandshakeRejected(AvanzaClientError):
    """Realtime endpoint refused the CometD handshake."""

    def __init__(self, message: str, frame: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.frame = frame or {}


class TransportClosed(AvanzaClientError):
    """Frame could not be sent because the socket is closed."""
