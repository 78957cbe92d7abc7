"""HttpIdentityProvider tests using httpx.MockTransport."""

import json

import httpx
import pytest

from audit_trail.application.exceptions import DispatchFailureError
from audit_trail.infrastructure.identity.identity_provider import HttpIdentityProvider


@pytest.mark.asyncio
async def test_restrict_posts_reason_and_duration():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(204)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        provider = HttpIdentityProvider(
            "https://idp.example/", restriction_minutes=15, client=client
        )
        await provider.restrict_actor(
            "user 1", reason="Failed logins from 3 sources", pattern_kind="DISTRIBUTED_FAILED_LOGIN"
        )

    assert captured["url"] == "https://idp.example/actors/user%201/restrict"
    assert captured["body"] == {
        "reason": "Failed logins from 3 sources",
        "durationMinutes": 15,
        "findingPattern": "DISTRIBUTED_FAILED_LOGIN",
    }


@pytest.mark.asyncio
async def test_error_status_raises_dispatch_failure():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    async with httpx.AsyncClient(transport=transport) as client:
        provider = HttpIdentityProvider("https://idp.example", client=client)
        with pytest.raises(DispatchFailureError):
            await provider.restrict_actor("u1", reason="r", pattern_kind="DISTRIBUTED_FAILED_LOGIN")


@pytest.mark.asyncio
async def test_unconfigured_provider_is_a_no_op():
    provider = HttpIdentityProvider(None)
    await provider.restrict_actor("u1", reason="r", pattern_kind="DISTRIBUTED_FAILED_LOGIN")
