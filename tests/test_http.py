"""Tests for AvanzaHttpClient."""

from __future__ import annotations

from unittest.mock import MagicMock

import aiohttp
import pytest

from avanza_client import AvanzaConnectionError, AvanzaHttpClient, AvanzaTimeout

from .conftest import create_mock_response


class TestAvanzaHttpClientRequest:
    """Tests for AvanzaHttpClient.request()."""

    async def test_request_success(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response(
            status=200,
            json_data={"ok": True},
            headers={"X-SecurityToken": "tok"},
        )
        client = AvanzaHttpClient(mock_session)

        response = await client.request("post", "/_api/thing", json={"a": 1})

        assert response.ok
        assert response.status == 200
        assert response.data == {"ok": True}
        assert response.headers["X-SecurityToken"] == "tok"

        call = mock_session.request.call_args
        assert call.args == ("POST", "https://www.avanza.se/_api/thing")
        assert call.kwargs["json"] == {"a": 1}
        assert call.kwargs["headers"]["Content-Type"] == "application/json"

    async def test_non_200_is_returned_not_raised(
        self, mock_session: MagicMock
    ) -> None:
        mock_session.request.return_value = create_mock_response(
            status=401, json_data={"message": "nope"}
        )
        client = AvanzaHttpClient(mock_session)

        response = await client.request("GET", "/x")

        assert not response.ok
        assert response.status == 401
        assert response.data == {"message": "nope"}

    async def test_extra_headers_merged(self, mock_session: MagicMock) -> None:
        mock_session.request.return_value = create_mock_response()
        client = AvanzaHttpClient(mock_session, host="example.test")

        await client.request("GET", "/x", headers={"Cookie": "A=B"})

        call = mock_session.request.call_args
        assert call.args[1] == "https://example.test/x"
        assert call.kwargs["headers"]["Cookie"] == "A=B"
        assert call.kwargs["headers"]["Accept"] == "*/*"

    async def test_undecodable_body(self, mock_session: MagicMock) -> None:
        response = create_mock_response(status=500)
        response.json.side_effect = ValueError("not json")
        mock_session.request.return_value = response
        client = AvanzaHttpClient(mock_session)

        result = await client.request("GET", "/x")

        assert result.status == 500
        assert result.data is None

    async def test_timeout(self, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = TimeoutError()
        client = AvanzaHttpClient(mock_session)

        with pytest.raises(AvanzaTimeout, match="timed out"):
            await client.request("GET", "/x")

    async def test_connection_error(self, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = aiohttp.ClientError("reset")
        client = AvanzaHttpClient(mock_session)

        with pytest.raises(AvanzaConnectionError, match="failed"):
            await client.request("GET", "/x")
