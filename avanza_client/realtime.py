"""Realtime channel multiplexer for the Avanza push endpoint.

One WebSocket carries every realtime subscription. Once the socket is open
and a SessionAuth is available the multiplexer runs the CometD
handshake, then keeps a /meta/connect long-poll going. The first
successful connect marks the socket authenticated and replays every entry
in the subscription ledger. Frames on other channels are forwarded to
message callbacks and iterators in arrival order.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from enum import Enum
from typing import Any

from websockets.exceptions import ConnectionClosed

from .auth import SessionAuth
from .constants import SOCKET_URL, Channel
from .errors import (
    AvanzaClientError,
    AvanzaConnectionError,
    AvanzaHandshakeError,
    AvanzaTimeout,
    ProtocolHandshakeRejected,
    TransportClosed,
)
from .protocol import (
    ConnectFrame,
    HandshakeFrame,
    SubscribeFrame,
    build_connect,
    build_handshake,
    build_subscribe,
    decode_payload,
    subscription_paths,
)
from .subscriptions import SubscriptionLedger, SubscriptionRequest
from .ws_client import AvanzaWsClient, AvanzaWsMessageType

_LOGGER = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000

MessageCallback = Callable[[Any], None]
RejectedCallback = Callable[[ProtocolHandshakeRejected], Awaitable[None] | None]


class SocketState(Enum):
    """Low-level transport state."""

    CLOSED = "closed"
    OPEN = "open"


class HandshakeState(Enum):
    """CometD negotiation progress on the current socket."""

    UNAUTHENTICATED = "unauthenticated"
    HANDSHAKE_SENT = "handshake_sent"
    CONNECTED = "connected"


class AvanzaRealtime:
    """Multiplexes realtime subscriptions over one CometD WebSocket.

    Usage:
        realtime = AvanzaRealtime()
        authenticator.add_session_listener(realtime.update_session)
        await realtime.connect()
        await realtime.add_subscription(Channel.QUOTES, ["5361"])
        async for message in realtime.messages():
            ...
    """

    def __init__(
        self,
        *,
        url: str = SOCKET_URL,
        session: SessionAuth | None = None,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Initialize multiplexer.

        Args:
            url: Push endpoint URL
            session: Initial SessionAuth, if one is already known
            ping_interval: WebSocket ping interval (seconds)
            timeout: Connect timeout (seconds)
        """
        self.url = url
        self._ping_interval = ping_interval
        self._timeout = timeout

        # Connection state
        self._ws: AvanzaWsClient | None = None
        self._socket_state = SocketState.CLOSED
        self._listen_task: asyncio.Task[None] | None = None

        # Protocol state
        self._handshake_state = HandshakeState.UNAUTHENTICATED
        self._client_id: str | None = None
        self._authenticated = False
        self._next_id = 1
        self._send_lock = asyncio.Lock()

        self._session = session
        self._ledger = SubscriptionLedger()

        # Consumers
        self._message_callbacks: list[MessageCallback] = []
        self._consumer_queues: list[asyncio.Queue[Any]] = []
        self._handshake_rejected_callback: RejectedCallback | None = None

    # -------------------------------------------------------------------------
    # Public API: State
    # -------------------------------------------------------------------------

    @property
    def socket_state(self) -> SocketState:
        return self._socket_state

    @property
    def handshake_state(self) -> HandshakeState:
        return self._handshake_state

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def is_authenticated(self) -> bool:
        """True once a connect succeeded on the current socket."""
        return self._authenticated

    @property
    def session(self) -> SessionAuth | None:
        return self._session

    @property
    def subscriptions(self) -> tuple[SubscriptionRequest, ...]:
        """Every subscription request made so far, oldest first."""
        return self._ledger.snapshot()

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the socket and start listening.

        The handshake starts as soon as a session is available. There is no
        automatic reconnect; call connect() again after the socket closes.

        Returns:
            True if the socket opened, False otherwise
        """
        if self._socket_state is SocketState.OPEN:
            _LOGGER.debug("Socket already open")
            return True

        _LOGGER.info("Connecting to %s", self.url)
        ws_client = AvanzaWsClient()
        try:
            await ws_client.connect(
                self.url,
                ping_interval=self._ping_interval,
                timeout=self._timeout,
            )
        except AvanzaTimeout:
            _LOGGER.warning("Connection timeout - push endpoint unreachable")
            return False
        except AvanzaConnectionError as err:
            _LOGGER.warning("Connection failed: %s", err)
            return False
        except AvanzaHandshakeError as err:
            _LOGGER.error("WebSocket handshake failed: %s", err)
            return False

        _LOGGER.info("WebSocket connected, starting listener")
        await self._handle_open(ws_client)
        self._listen_task = asyncio.create_task(self._listen(ws_client))
        return True

    async def close(self) -> None:
        """Stop listening and close the socket."""
        _LOGGER.info("Closing realtime connection")
        ws = self._ws
        if self._listen_task:
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
            self._listen_task = None

        self._handle_close()
        if ws is not None:
            try:
                await asyncio.wait_for(ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("WebSocket close timed out")

    async def update_session(self, session: SessionAuth) -> None:
        """Accept a new SessionAuth.

        Starts the handshake if the socket is open and not yet negotiating.
        An already authenticated socket keeps running on its old session.
        """
        self._session = session
        if (
            self._socket_state is SocketState.OPEN
            and self._handshake_state is HandshakeState.UNAUTHENTICATED
        ):
            await self._send_handshake()

    # -------------------------------------------------------------------------
    # Public API: Subscriptions and Messages
    # -------------------------------------------------------------------------

    async def add_subscription(
        self, channel: Channel | str, ids: Iterable[str]
    ) -> SubscriptionRequest:
        """Record a subscription and send it if the socket is authenticated.

        Otherwise it is sent on the next authentication.

        Raises:
            ValueError: If channel is unknown
        """
        request = SubscriptionRequest.create(channel, ids)
        self._ledger.append(request)
        _LOGGER.info(
            "Adding subscription %s %s", request.channel.value, list(request.ids)
        )

        if self._authenticated:
            try:
                await self._send_subscription(request)
            except TransportClosed:
                _LOGGER.warning(
                    "Socket closed while subscribing, will replay on next connect"
                )
        return request

    def on_message(self, callback: MessageCallback) -> None:
        """Register callback for forwarded (non-protocol) frames."""
        self._message_callbacks.append(callback)

    def on_handshake_rejected(self, callback: RejectedCallback) -> None:
        """Register callback for a refused handshake (caller must reconnect)."""
        self._handshake_rejected_callback = callback

    async def messages(
        self, *, maxsize: int = DEFAULT_QUEUE_SIZE
    ) -> AsyncIterator[Any]:
        """Iterate forwarded frames delivered from now on.

        Frames arriving while ``maxsize`` frames are already waiting for this
        consumer are dropped with a warning.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._consumer_queues.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._consumer_queues.remove(queue)

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _reset_protocol(self) -> None:
        self._handshake_state = HandshakeState.UNAUTHENTICATED
        self._client_id = None
        self._authenticated = False

    async def _handle_open(self, ws: AvanzaWsClient) -> None:
        self._ws = ws
        self._socket_state = SocketState.OPEN
        self._reset_protocol()
        _LOGGER.debug("Socket: closed → open")

        if self._session is None:
            _LOGGER.debug("Waiting for session before handshake")
            return
        await self._send_handshake()

    def _handle_close(self) -> None:
        if self._socket_state is SocketState.CLOSED:
            return
        self._ws = None
        self._socket_state = SocketState.CLOSED
        self._reset_protocol()
        _LOGGER.info("Socket closed, handshake required on next open")

    async def _listen(self, ws: AvanzaWsClient) -> None:
        """Read frames until the socket closes."""
        message_count = 0
        try:
            async for msg in ws:
                message_count += 1
                if msg.type == AvanzaWsMessageType.TEXT:
                    await self._handle_payload(msg.data or "")
                elif msg.type == AvanzaWsMessageType.CLOSED:
                    _LOGGER.info("WebSocket closed by server")
                    break
                elif msg.type == AvanzaWsMessageType.ERROR:
                    _LOGGER.error("WebSocket error")
                    break
        except asyncio.CancelledError:
            _LOGGER.debug("Listener cancelled (%d messages)", message_count)
            raise
        except AvanzaClientError as err:
            _LOGGER.warning("Client error: %s", err)
        finally:
            if self._ws is ws:
                self._handle_close()

    # -------------------------------------------------------------------------
    # Internal: Protocol Handlers
    # -------------------------------------------------------------------------

    async def _handle_payload(self, payload: str) -> None:
        try:
            frames = decode_payload(payload)
        except ValueError as err:
            _LOGGER.warning("Invalid payload: %s", err)
            return

        for frame in frames:
            if isinstance(frame, HandshakeFrame):
                await self._handle_handshake(frame)
            elif isinstance(frame, ConnectFrame):
                await self._handle_connect(frame)
            else:
                if isinstance(frame, SubscribeFrame) and not frame.successful:
                    _LOGGER.warning(
                        "Subscription %s rejected: %s",
                        frame.subscription,
                        frame.raw.get("error"),
                    )
                self._deliver(frame.raw)

    async def _send_handshake(self) -> None:
        if self._session is None:
            return
        self._handshake_state = HandshakeState.HANDSHAKE_SENT
        await self._send(
            build_handshake,
            push_subscription_id=self._session.push_subscription_id,
        )
        _LOGGER.debug("Handshake sent")

    async def _handle_handshake(self, frame: HandshakeFrame) -> None:
        if not frame.successful:
            rejected = ProtocolHandshakeRejected(
                f"Handshake rejected: {frame.raw.get('error', 'no reason given')}",
                frame.raw,
            )
            _LOGGER.error("%s; reconnect required", rejected)
            if self._handshake_rejected_callback:
                try:
                    result = self._handshake_rejected_callback(rejected)
                    if inspect.isawaitable(result):
                        await result
                except Exception as err:
                    _LOGGER.exception("Handshake rejected callback error: %s", err)
            return

        self._client_id = frame.client_id
        self._handshake_state = HandshakeState.CONNECTED
        _LOGGER.info("Handshake accepted (clientId %s)", frame.client_id)
        await self._send(build_connect, client_id=frame.client_id, first=True)

    async def _handle_connect(self, frame: ConnectFrame) -> None:
        if self._client_id is None:
            _LOGGER.warning("Connect response before handshake, ignoring")
            return

        # Entries added after this point are sent by add_subscription itself.
        replay: tuple[SubscriptionRequest, ...] = ()
        if frame.successful:
            if not self._authenticated:
                replay = self._ledger.snapshot()
                _LOGGER.info(
                    "Socket authenticated, replaying %d subscriptions", len(replay)
                )
            self._authenticated = True
        else:
            _LOGGER.warning("Connect unsuccessful: %s", frame.raw.get("error"))

        await self._send(build_connect, client_id=self._client_id)

        for request in replay:
            await self._send_subscription(request)

    async def _send_subscription(self, request: SubscriptionRequest) -> None:
        for path in subscription_paths(request):
            await self._send(
                build_subscribe, client_id=self._client_id, subscription=path
            )

    async def _send(
        self, build: Callable[..., dict[str, Any]], **fields: Any
    ) -> None:
        """Assign the next message id and write a one-frame batch."""
        async with self._send_lock:
            ws = self._ws
            if ws is None or self._socket_state is SocketState.CLOSED:
                raise TransportClosed("Socket is closed")

            frame = build(msg_id=self._next_id, **fields)
            self._next_id += 1
            _LOGGER.debug("→ %s id=%d", frame["channel"], frame["id"])
            try:
                await ws.send_json([frame])
            except ConnectionClosed as err:
                raise TransportClosed("Socket closed during send") from err

    def _deliver(self, message: Any) -> None:
        for queue in list(self._consumer_queues):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                _LOGGER.warning(
                    "Message consumer is %d frames behind, dropping frame",
                    queue.qsize(),
                )
        for callback in list(self._message_callbacks):
            try:
                callback(message)
            except Exception as err:
                _LOGGER.exception("Message callback error: %s", err)
