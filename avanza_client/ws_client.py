"""WebSocket client wrapper for the Avanza push endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from .constants import SOCKET_URL
from .errors import AvanzaConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class AvanzaWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class AvanzaWsMessage:
    """Normalized WebSocket message payload."""

    type: AvanzaWsMessageType
    data: str | None = None


class AvanzaWsClient:
    """Wrapper around the websockets library for the push endpoint."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        url: str = SOCKET_URL,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the push endpoint."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def send_json(self, payload: Any) -> None:
        """Send a JSON payload to the websocket."""
        if self._ws is None:
            raise AvanzaConnectionError("WebSocket is not connected")
        await self._ws.send(json.dumps(payload))

    def __aiter__(self) -> AsyncIterator[AvanzaWsMessage]:
        if self._ws is None:
            raise AvanzaConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[AvanzaWsMessage]:
        if self._ws is None:
            raise AvanzaConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                if isinstance(msg, bytes):
                    continue
                yield AvanzaWsMessage(AvanzaWsMessageType.TEXT, msg)
        except ConnectionClosed:
            yield AvanzaWsMessage(type=AvanzaWsMessageType.CLOSED)
        except Exception:
            yield AvanzaWsMessage(type=AvanzaWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield AvanzaWsMessage(type=AvanzaWsMessageType.CLOSED)
