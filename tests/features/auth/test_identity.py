"""
Tests for the identity collaborator.
"""

import httpx
import pytest

from healthbridge.shared.errors import MisconfiguredError, UnauthenticatedError
from healthbridge.features.auth import IdentityClient, bearer_token

VALID_TOKEN = "valid-session-token"


class TestBearerToken:

    def test_strips_scheme(self):
        assert bearer_token("Bearer abc.def") == "abc.def"

    def test_bare_token_accepted(self):
        assert bearer_token("abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "Bearer    "])
    def test_missing(self, header):
        with pytest.raises(UnauthenticatedError):
            bearer_token(header)


class TestIdentityClient:

    async def test_resolves_user(self, settings, identity_transport, owner_id):
        user = await IdentityClient(settings, transport=identity_transport).get_user(VALID_TOKEN)

        assert user.id == owner_id
        assert user.email == "runner@example.com"

    async def test_sends_api_key(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "u1"})

        await IdentityClient(settings, transport=httpx.MockTransport(handler)).get_user("t")

        assert seen[0].headers["apikey"] == "anon-key"
        assert seen[0].headers["Authorization"] == "Bearer t"

    async def test_rejected_token(self, settings, identity_transport):
        with pytest.raises(UnauthenticatedError, match="Invalid token"):
            await IdentityClient(settings, transport=identity_transport).get_user("forged")

    @pytest.mark.parametrize("response", [
        httpx.Response(200, json={"email": "no-id@example.com"}),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ])
    async def test_unusable_response(self, settings, response):
        transport = httpx.MockTransport(lambda request: response)

        with pytest.raises(UnauthenticatedError):
            await IdentityClient(settings, transport=transport).get_user(VALID_TOKEN)

    async def test_unreachable_provider(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(UnauthenticatedError):
            await IdentityClient(settings, transport=httpx.MockTransport(handler)).get_user(VALID_TOKEN)

    async def test_unconfigured(self, settings):
        unconfigured = settings.model_copy(update={"auth_user_url": None})

        with pytest.raises(MisconfiguredError):
            await IdentityClient(unconfigured).get_user(VALID_TOKEN)
