"""Endpoints, channel names and limits for the Avanza private API."""

from __future__ import annotations

from enum import Enum
from typing import Final

BASE_HOST: Final = "www.avanza.se"
SOCKET_URL: Final = "wss://www.avanza.se/_push/cometd"

MIN_INACTIVE_MINUTES: Final = 30
MAX_INACTIVE_MINUTES: Final = 60 * 24

SECURITY_TOKEN_HEADER: Final = "X-SecurityToken"
AUTHENTICATION_SESSION_HEADER: Final = "X-AuthenticationSession"
TRANSACTION_COOKIE: Final = "AZAMFATRANSACTION"


class Paths(str, Enum):
    """REST paths relative to BASE_HOST."""

    POSITIONS = "/_mobile/account/positions"
    OVERVIEW = "/_mobile/account/overview"
    ACCOUNT_OVERVIEW = "/_mobile/account/{0}/overview"
    DEALS_AND_ORDERS = "/_mobile/account/dealsandorders"
    INSPIRATION_LIST = "/_mobile/marketing/inspirationlist/{0}"
    TRANSACTIONS = "/_mobile/account/transactions/{0}"
    AUTHENTICATION = "/_api/authentication/sessions/usercredentials"
    TOTP = "/_api/authentication/sessions/totp"


class Channel(str, Enum):
    """Realtime data channels."""

    ACCOUNTS = "accounts"
    QUOTES = "quotes"
    ORDERDEPTHS = "orderdepths"
    TRADES = "trades"
    BROKERTRADESUMMARY = "brokertradesummary"
    POSITIONS = "positions"
    ORDERS = "orders"
    DEALS = "deals"


class Transactions(str, Enum):
    """Transaction kinds accepted by the transactions endpoint."""

    OPTIONS = "options"
    FOREX = "forex"
    DEPOSIT_WITHDRAW = "deposit-withdraw"
    BUY_SELL = "buy-sell"
    DIVIDEND = "dividend"
    INTEREST = "interest"
    FOREIGN_TAX = "foreign-tax"


# Subscribed once per request with all ids folded into a single path.
ACCOUNT_SCOPED_CHANNELS: Final = frozenset(
    {Channel.ORDERS, Channel.DEALS, Channel.POSITIONS}
)

META_HANDSHAKE: Final = "/meta/handshake"
META_CONNECT: Final = "/meta/connect"
META_SUBSCRIBE: Final = "/meta/subscribe"
