"""Pytest configuration and fixtures for avanza_client tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from avanza_client import Credentials

TOTP_SECRET = "JBSWY3DPEHPK3PXP"


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="user", password="hunter2", totp_secret=TOTP_SECRET)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    headers: dict[str, str] | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        headers: Response headers

    Returns:
        Configured AsyncMock response usable as an async context manager
    """
    response = AsyncMock()
    response.status = status
    response.headers = headers or {}
    response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def login_response(transaction_id: str = "tx-1") -> AsyncMock:
    """Successful credential-login response carrying a TOTP challenge."""
    return create_mock_response(
        json_data={"twoFactorLogin": {"transactionId": transaction_id, "method": "TOTP"}}
    )


def totp_response(
    session: str = "session-1",
    token: str = "token-1",
    push_id: str = "push-1",
) -> AsyncMock:
    """Successful second-factor response."""
    return create_mock_response(
        json_data={
            "authenticationSession": session,
            "pushSubscriptionId": push_id,
            "customerId": "cust-1",
            "registrationComplete": True,
        },
        headers={"X-SecurityToken": token},
    )
