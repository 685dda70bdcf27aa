"""
Tests for the HubSpot API client.

Requests go through httpx.MockTransport, so the exact URLs, headers and
bodies the client sends are checked without network access.
"""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from hubsync.integrations.hubspot.client import HubSpotAPIError, HubSpotAuthError, HubSpotClient


def make_client(handler) -> HubSpotClient:
    return HubSpotClient(
        client_id="client-id",
        client_secret="client-secret",
        api_base_url="https://api.hubapi.test/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
class TestHubSpotClient:
    """Tests for HubSpotClient."""

    async def test_search_posts_request_with_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"results": [{"id": "1"}], "paging": {"next": {"after": "100"}}})

        async with make_client(handler) as client:
            response = await client.search_objects("contacts", {"limit": 100}, "token-1")

        assert seen == {
            "method": "POST",
            "url": "https://api.hubapi.test/crm/v3/objects/contacts/search",
            "auth": "Bearer token-1",
            "body": {"limit": 100},
        }
        assert response["paging"]["next"]["after"] == "100"

    async def test_batch_read_associations(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"results": [{"from": {"id": "1"}, "to": [{"id": "9"}]}]})

        async with make_client(handler) as client:
            results = await client.batch_read_associations("contacts", "companies", ["1", 2], "token")

        assert seen["path"] == "/crm/v3/associations/CONTACTS/COMPANIES/batch/read"
        assert seen["body"] == {"inputs": [{"id": "1"}, {"id": "2"}]}
        assert results == [{"from": {"id": "1"}, "to": [{"id": "9"}]}]

    async def test_get_associations_uses_v4(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/crm/v4/objects/meetings/11/associations/contacts"
            return httpx.Response(200, json={"results": [{"toObjectId": 7}]})

        async with make_client(handler) as client:
            results = await client.get_associations("meetings", "11", "contacts", "token")

        assert results == [{"toObjectId": 7}]

    async def test_get_object_requests_properties(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/crm/v3/objects/contacts/7"
            assert request.url.params["properties"] == "email,firstname"
            return httpx.Response(200, json={"id": "7", "properties": {"email": "a@example.com"}})

        async with make_client(handler) as client:
            contact = await client.get_object("contacts", "7", ["email", "firstname"], "token")

        assert contact["properties"]["email"] == "a@example.com"

    async def test_create_token_posts_form(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["form"] = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
            return httpx.Response(200, json={"access_token": "new", "expires_in": 1800})

        async with make_client(handler) as client:
            token = await client.create_token("refresh-1")

        assert seen["path"] == "/oauth/v1/token"
        assert seen["auth"] is None
        assert seen["form"] == {
            "grant_type": "refresh_token",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "refresh_token": "refresh-1",
        }
        assert token == {"access_token": "new", "expires_in": 1800}

    async def test_error_status_raises_with_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"message": "rate limited"})

        async with make_client(handler) as client:
            with pytest.raises(HubSpotAPIError) as exc_info:
                await client.search_objects("companies", {}, "token")

        assert exc_info.value.status_code == 429

    async def test_rejected_refresh_raises_auth_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"status": "BAD_REFRESH_TOKEN"})

        async with make_client(handler) as client:
            with pytest.raises(HubSpotAuthError) as exc_info:
                await client.create_token("revoked")

        assert exc_info.value.status_code == 400

    async def test_network_error_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(HubSpotAPIError) as exc_info:
                await client.get_object("contacts", "1", ["email"], "token")

        assert exc_info.value.status_code is None

    async def test_empty_body_returns_empty_dict(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        async with make_client(handler) as client:
            assert await client.request("GET", "/crm/v3/objects/contacts/1", access_token="token") == {}
