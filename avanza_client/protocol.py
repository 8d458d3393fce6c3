"""CometD frame helpers for the Avanza push endpoint.

Outbound frames are plain dicts; the caller assigns ``id`` and wraps each
frame in a one-element batch. Inbound payloads are JSON arrays whose
elements are decoded into tagged frame types by channel.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    ACCOUNT_SCOPED_CHANNELS,
    META_CONNECT,
    META_HANDSHAKE,
    META_SUBSCRIBE,
)
from .subscriptions import SubscriptionRequest

BAYEUX_VERSION = "1.0"
SUPPORTED_CONNECTION_TYPES: tuple[str, ...] = (
    "websocket",
    "long-polling",
    "callback-polling",
)


def build_handshake(*, msg_id: int, push_subscription_id: str) -> dict[str, Any]:
    """Construct a /meta/handshake frame carrying the push subscription id."""
    return {
        "advice": {"timeout": 60000, "interval": 0},
        "channel": META_HANDSHAKE,
        "ext": {"subscriptionId": push_subscription_id},
        "id": msg_id,
        "minimumVersion": BAYEUX_VERSION,
        "supportedConnectionTypes": list(SUPPORTED_CONNECTION_TYPES),
        "version": BAYEUX_VERSION,
    }


def build_connect(*, msg_id: int, client_id: str, first: bool = False) -> dict[str, Any]:
    """Construct a /meta/connect frame.

    The first connect after a handshake asks the server to answer
    immediately; later ones are the long-poll keep-alive.
    """
    frame: dict[str, Any] = {
        "channel": META_CONNECT,
        "clientId": client_id,
        "connectionType": "websocket",
        "id": msg_id,
    }
    if first:
        frame["advice"] = {"timeout": 0}
    return frame


def build_subscribe(*, msg_id: int, client_id: str, subscription: str) -> dict[str, Any]:
    """Construct a /meta/subscribe frame for one subscription path."""
    return {
        "channel": META_SUBSCRIBE,
        "clientId": client_id,
        "id": msg_id,
        "subscription": subscription,
    }


def subscription_paths(request: SubscriptionRequest) -> list[str]:
    """Subscription paths to send for a ledger entry.

    Account-scoped channels fold all ids into one path directly after the
    channel name; every other channel gets one path per id.
    """
    channel = request.channel.value
    if request.channel in ACCOUNT_SCOPED_CHANNELS:
        return [f"/{channel}{','.join(request.ids)}"]
    return [f"/{channel}/{item}" for item in request.ids]


# -----------------------------------------------------------------------------
# Inbound frames
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class HandshakeFrame:
    successful: bool
    client_id: str | None
    raw: dict[str, Any] = field(repr=False)


@dataclass(frozen=True)
class ConnectFrame:
    successful: bool
    raw: dict[str, Any] = field(repr=False)


@dataclass(frozen=True)
class SubscribeFrame:
    successful: bool
    subscription: str | None
    raw: dict[str, Any] = field(repr=False)


@dataclass(frozen=True)
class DataFrame:
    """Anything that is not handshake or connect control traffic."""

    channel: str | None
    raw: Any


Frame = HandshakeFrame | ConnectFrame | SubscribeFrame | DataFrame


def decode_frame(item: Any) -> Frame:
    """Decode one element of an inbound batch.

    Non-object items and unknown channels become DataFrame. A handshake
    without a clientId counts as unsuccessful.
    """
    if not isinstance(item, dict):
        return DataFrame(channel=None, raw=item)

    channel = item.get("channel")
    successful = item.get("successful", True) is True

    if channel == META_HANDSHAKE:
        client_id = item.get("clientId")
        successful = item.get("successful") is True and isinstance(client_id, str)
        return HandshakeFrame(
            successful=successful,
            client_id=client_id if isinstance(client_id, str) else None,
            raw=item,
        )
    if channel == META_CONNECT:
        return ConnectFrame(successful=successful, raw=item)
    if channel == META_SUBSCRIBE:
        subscription = item.get("subscription")
        return SubscribeFrame(
            successful=successful,
            subscription=subscription if isinstance(subscription, str) else None,
            raw=item,
        )
    return DataFrame(channel=channel if isinstance(channel, str) else None, raw=item)


def decode_payload(payload: str | bytes | list[Any] | dict[str, Any]) -> list[Frame]:
    """Decode an inbound socket payload into frames, preserving order.

    A bare object is treated as a batch of one.

    Raises:
        ValueError: If payload is text that is not valid JSON
    """
    data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
    if not isinstance(data, list):
        data = [data]
    return [decode_frame(item) for item in data]
