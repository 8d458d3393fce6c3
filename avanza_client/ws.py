"""WebSocket connect helper for the Avanza push endpoint."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .constants import SOCKET_URL
from .errors import (
    AvanzaConnectionError,
    AvanzaHandshakeError,
    AvanzaTimeout,
)


async def connect_websocket(
    url: str = SOCKET_URL,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open a WebSocket connection.

    Args:
        url: Endpoint URL (default: the CometD push endpoint)
        ping_interval: Interval for ping frames
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise AvanzaTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise AvanzaHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise AvanzaConnectionError("WebSocket connection failed") from err
