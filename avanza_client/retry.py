"""Linear backoff retry policy for fallible async calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .errors import (
    AvanzaConnectionError,
    AvanzaResponseError,
    AvanzaTimeout,
    NonRetryableStatus,
    RetryExhausted,
)

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    AvanzaResponseError,
    AvanzaConnectionError,
    AvanzaTimeout,
)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry decision for a single remote call.

    The n-th failure (counting from 1) waits ``n * base_delay`` seconds before
    the next attempt. A failure whose status is in ``excluded_status_codes``
    is raised immediately as NonRetryableStatus; once the failure count
    exceeds ``max_attempts`` the last error is raised inside RetryExhausted.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    excluded_status_codes: frozenset[int] = frozenset({401})

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        return attempt * self.base_delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str = "request",
    ) -> T:
        """Await operation() until it succeeds or the policy gives up."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except RETRYABLE_ERRORS as err:
                status = getattr(err, "status", None)
                if status is not None and status in self.excluded_status_codes:
                    _LOGGER.error(
                        "%s rejected with status %s, not retrying",
                        description,
                        status,
                    )
                    if isinstance(err, NonRetryableStatus):
                        raise
                    raise NonRetryableStatus(
                        status, str(err), getattr(err, "payload", None)
                    ) from err

                if attempt > self.max_attempts:
                    _LOGGER.error(
                        "%s failed after %d attempts: %s", description, attempt, err
                    )
                    raise RetryExhausted(attempt, err) from err

                delay = self.delay_for(attempt)
                _LOGGER.warning(
                    "%s failed (attempt %d): %s; retrying in %.1fs",
                    description,
                    attempt,
                    err,
                    delay,
                )
                await asyncio.sleep(delay)
