"""Append-only record of realtime subscription requests."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .constants import Channel


@dataclass(frozen=True)
class SubscriptionRequest:
    """One add-subscription call: a channel and its ordered ids."""

    channel: Channel
    ids: tuple[str, ...]

    @classmethod
    def create(cls, channel: Channel | str, ids: Iterable[str]) -> SubscriptionRequest:
        """Build a request, coercing the channel name and ids.

        Raises:
            ValueError: If channel is not a known Channel
        """
        return cls(channel=Channel(channel), ids=tuple(str(i) for i in ids))


class SubscriptionLedger:
    """Every subscription request ever made, in call order.

    Entries are never removed; duplicates are kept and replayed as-is.
    """

    def __init__(self) -> None:
        self._entries: list[SubscriptionRequest] = []

    def append(self, request: SubscriptionRequest) -> None:
        self._entries.append(request)

    def snapshot(self) -> tuple[SubscriptionRequest, ...]:
        """Entries present right now, unaffected by later appends."""
        return tuple(self._entries)

    def __iter__(self) -> Iterator[SubscriptionRequest]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._entries)
