"""Client for the Avanza private web API with realtime push support."""

__version__ = "0.1.0"

from .auth import (
    AuthState,
    AvanzaAuthenticator,
    Credentials,
    SessionAuth,
    TwoFactorChallenge,
)
from .client import AvanzaClient
from .constants import Channel, Paths, Transactions
from .errors import (
    AvanzaAuthenticationError,
    AvanzaClientError,
    AvanzaConnectionError,
    AvanzaHandshakeError,
    AvanzaResponseError,
    AvanzaTimeout,
    InvalidCredentials,
    InvalidSecret,
    InvalidTimeout,
    NonRetryableStatus,
    ProtocolHandshakeRejected,
    RetryExhausted,
    TransportClosed,
)
from .http import AvanzaHttpClient, AvanzaResponse
from .realtime import AvanzaRealtime, HandshakeState, SocketState
from .retry import RetryPolicy
from .subscriptions import SubscriptionLedger, SubscriptionRequest
from .totp import generate_code
from .ws import connect_websocket
from .ws_client import AvanzaWsClient, AvanzaWsMessage, AvanzaWsMessageType

__all__ = [
    "AuthState",
    "AvanzaAuthenticationError",
    "AvanzaAuthenticator",
    "AvanzaClient",
    "AvanzaClientError",
    "AvanzaConnectionError",
    "AvanzaHandshakeError",
    "AvanzaHttpClient",
    "AvanzaRealtime",
    "AvanzaResponse",
    "AvanzaResponseError",
    "AvanzaTimeout",
    "AvanzaWsClient",
    "AvanzaWsMessage",
    "AvanzaWsMessageType",
    "Channel",
    "Credentials",
    "HandshakeState",
    "InvalidCredentials",
    "InvalidSecret",
    "InvalidTimeout",
    "NonRetryableStatus",
    "Paths",
    "ProtocolHandshakeRejected",
    "RetryExhausted",
    "RetryPolicy",
    "SessionAuth",
    "SocketState",
    "SubscriptionLedger",
    "SubscriptionRequest",
    "Transactions",
    "TransportClosed",
    "TwoFactorChallenge",
    "__version__",
    "connect_websocket",
    "generate_code",
]
