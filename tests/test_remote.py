"""Test the remote configuration fetcher."""

import httpx
import pytest

from skeet.errors import RemoteConfigError
from skeet.remote import RemoteConfigFetcher

URL = "https://config.example/api/integrations"


def _fetcher(handler, api_key="secret"):
    return RemoteConfigFetcher(URL, api_key, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_returns_body_on_200_and_sends_credential():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.url.params.get("user_api_key")
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"integrations": {}})

    assert await _fetcher(handler).fetch() == {"integrations": {}}
    assert seen == {"key": "secret", "auth": "Bearer secret"}


@pytest.mark.asyncio
async def test_non_200_is_no_data():
    fetcher = _fetcher(lambda request: httpx.Response(401, text="bad key"))
    assert await fetcher.fetch() is None


@pytest.mark.asyncio
async def test_no_credential_skips_network():
    def handler(request):
        raise AssertionError("should not be called")

    fetcher = _fetcher(handler, api_key="")
    assert fetcher.has_credential is False
    assert await fetcher.fetch() is None


@pytest.mark.asyncio
async def test_transport_failure_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteConfigError):
        await _fetcher(handler).fetch()


@pytest.mark.asyncio
async def test_invalid_json_raises():
    fetcher = _fetcher(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(RemoteConfigError):
        await fetcher.fetch()
