"""
Unit tests for the REST remote table client.
"""

import json

import httpx
import pytest

from activitysync.exceptions import ConfigError, RemoteInsertError
from activitysync.sync.remote import RestTableClient


def make_client(handler):
    return RestTableClient(
        "https://example.test/",
        "test-key",
        transport=httpx.MockTransport(handler),
    )


class TestRestTableClient:
    """Test RestTableClient."""

    @pytest.mark.asyncio
    async def test_insert_posts_rows(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201)

        client = make_client(handler)
        rows = [{"type": "typing", "timestamp": 1}, {"type": "file_save", "timestamp": 2}]
        await client.insert("user_activities", rows)
        await client.close()

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://example.test/rest/v1/user_activities"
        assert request.headers["apikey"] == "test-key"
        assert request.headers["authorization"] == "Bearer test-key"
        assert request.headers["prefer"] == "return=minimal"
        assert json.loads(request.content) == rows

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response,expected", [
        (httpx.Response(401, json={"message": "JWT expired"}), "JWT expired"),
        (httpx.Response(400, json={"error": "bad column"}), "bad column"),
        (httpx.Response(502, text="Bad Gateway"), "Bad Gateway"),
        (httpx.Response(500), "HTTP 500"),
    ])
    async def test_error_responses(self, response, expected):
        client = make_client(lambda request: response)

        with pytest.raises(RemoteInsertError) as exc_info:
            await client.insert("user_activities", [{}])
        await client.close()

        assert str(exc_info.value) == expected
        assert exc_info.value.status_code == response.status_code

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(RemoteInsertError) as exc_info:
            await client.insert("user_activities", [{}])
        await client.close()

        assert "https://example.test" in str(exc_info.value)
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        client = make_client(handler)
        with pytest.raises(RemoteInsertError, match="Timed out"):
            await client.insert("user_activities", [{}])
        await client.close()

    @pytest.mark.parametrize("endpoint,credential", [
        ("", "key"),
        ("https://example.test", ""),
        (None, "key"),
    ])
    def test_missing_settings_rejected(self, endpoint, credential):
        with pytest.raises(ConfigError):
            RestTableClient(endpoint, credential)
