"""Tests for AvanzaClient."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from avanza_client import (
    AvanzaClient,
    AvanzaResponseError,
    Channel,
    Credentials,
    InvalidTimeout,
    Transactions,
)

from .conftest import create_mock_response, login_response, totp_response


def requested(mock_session: MagicMock, index: int) -> tuple[str, str, dict]:
    """Method, URL and kwargs of the index-th request."""
    sent = mock_session.request.call_args_list[index]
    return sent.args[0], sent.args[1], sent.kwargs


@pytest.fixture
async def client(mock_session: MagicMock, credentials: Credentials):
    avanza = AvanzaClient(mock_session)
    avanza.set_credentials(credentials)
    yield avanza
    await avanza.close()


class TestAuthenticatedCalls:
    """Tests for REST calls made with the current session."""

    async def test_first_call_logs_in(
        self, client: AvanzaClient, mock_session: MagicMock
    ) -> None:
        mock_session.request.side_effect = [
            login_response(),
            totp_response(),
            create_mock_response(json_data={"instrumentPositions": []}),
        ]

        result = await client.get_positions()

        assert result == {"instrumentPositions": []}
        method, url, kwargs = requested(mock_session, 2)
        assert method == "GET"
        assert url == "https://www.avanza.se/_mobile/account/positions"
        assert kwargs["headers"]["X-AuthenticationSession"] == "session-1"
        assert kwargs["headers"]["X-SecurityToken"] == "token-1"

    async def test_session_reused(
        self, client: AvanzaClient, mock_session: MagicMock
    ) -> None:
        mock_session.request.side_effect = [
            login_response(),
            totp_response(),
            create_mock_response(json_data={}),
            create_mock_response(json_data={}),
        ]

        await client.authenticate()
        await client.get_overview()
        await client.get_deals_and_orders()

        assert mock_session.request.call_count == 4
        assert requested(mock_session, 3)[1].endswith("/_mobile/account/dealsandorders")

    async def test_stale_session_reauthenticates(
        self, client: AvanzaClient, mock_session: MagicMock
    ) -> None:
        mock_session.request.side_effect = [
            login_response(),
            totp_response(),
            login_response("tx-2"),
            totp_response(session="session-2", token="token-2"),
            create_mock_response(json_data={}),
        ]

        await client.authenticate()
        # Simulate a host suspend that outlived the renewal timer.
        client.authenticator._authenticated_at -= client.authenticator.renewal_delay
        await client.get_overview()

        headers = requested(mock_session, 4)[2]["headers"]
        assert headers["X-SecurityToken"] == "token-2"

    async def test_error_status_raises(
        self, client: AvanzaClient, mock_session: MagicMock
    ) -> None:
        mock_session.request.side_effect = [
            login_response(),
            totp_response(),
            create_mock_response(status=500, json_data={"message": "boom"}),
        ]

        with pytest.raises(AvanzaResponseError) as exc_info:
            await client.get_account_overview("1234")

        assert exc_info.value.status == 500
        assert exc_info.value.payload == {"message": "boom"}
        assert requested(mock_session, 2)[1].endswith("/_mobile/account/1234/overview")

    @pytest.mark.parametrize(
        ("kind", "suffix"),
        [
            (Transactions.DIVIDEND, "/transactions/dividend"),
            ("buy-sell", "/transactions/buy-sell"),
        ],
    )
    async def test_transactions_path(
        self,
        client: AvanzaClient,
        mock_session: MagicMock,
        kind: Transactions | str,
        suffix: str,
    ) -> None:
        mock_session.request.side_effect = [
            login_response(),
            totp_response(),
            create_mock_response(json_data={"transactions": []}),
        ]

        await client.get_transactions(kind)

        assert requested(mock_session, 2)[1].endswith(suffix)

    async def test_unknown_transaction_kind(self, client: AvanzaClient) -> None:
        with pytest.raises(ValueError):
            await client.get_transactions("lottery")

    async def test_inspiration_lists(
        self, client: AvanzaClient, mock_session: MagicMock
    ) -> None:
        mock_session.request.side_effect = [
            login_response(),
            totp_response(),
            create_mock_response(json_data=[]),
        ]

        assert await client.get_inspiration_lists() == []
        assert requested(mock_session, 2)[1].endswith(
            "/_mobile/marketing/inspirationlist/"
        )


class TestRealtimeWiring:
    """Tests for session hand-off to the realtime multiplexer."""

    async def test_realtime_receives_session(
        self, client: AvanzaClient, mock_session: MagicMock
    ) -> None:
        mock_session.request.side_effect = [login_response(), totp_response()]

        session = await client.authenticate()

        assert client.realtime.session is session
        assert client.realtime.session.push_subscription_id == "push-1"

    async def test_add_subscription_records_request(self, client: AvanzaClient) -> None:
        request = await client.add_subscription(Channel.QUOTES, ["5361"])

        assert client.realtime.subscriptions == (request,)


def test_constructor_validates_timeout(mock_session: MagicMock) -> None:
    with pytest.raises(InvalidTimeout):
        AvanzaClient(mock_session, authentication_timeout=10)
