import httpx
import pytest

from skynet_sdk.errors import TransportError
from skynet_sdk.transport.http import HttpTransport, Request, join_url
from skynet_sdk.utils.retry import backoff_delay

from conftest import PORTAL_URL, make_config


def test_join_url():
    assert join_url("https://p.net/", "/skynet/registry") == "https://p.net/skynet/registry"
    assert join_url("https://p.net", "/", "abc") == "https://p.net/abc"
    assert join_url("https://p.net", "", None) == "https://p.net"


def test_build_url():
    http = HttpTransport(make_config())
    url = http.build_url("/skynet/registry", query={"publickey": "ed25519:ab", "timeout": 5})
    assert url == f"{PORTAL_URL}/skynet/registry?publickey=ed25519%3Aab&timeout=5"


class Script:
    """Replays canned responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    async def __call__(self, request):
        self.requests.append(request)
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def transport_for(script, **overrides):
    return HttpTransport(make_config(**overrides), transport=httpx.MockTransport(script))


@pytest.mark.asyncio
async def test_json_response_and_headers():
    script = Script(httpx.Response(200, json={"ok": True}))
    async with transport_for(script, api_key="k", user_agent="ua/1") as http:
        resp = await http.execute(Request("GET", "/x"))
    assert resp.ok
    assert resp.data == {"ok": True}
    sent = script.requests[0]
    assert sent.headers["Skynet-Api-Key"] == "k"
    assert sent.headers["User-Agent"] == "ua/1"


@pytest.mark.asyncio
async def test_per_request_overrides():
    script = Script(httpx.Response(200, content=b"raw"))
    async with transport_for(script, api_key="k") as http:
        resp = await http.execute(
            Request("GET", "/x", api_key="other", custom_user_agent="me", response_transform=bytes.upper)
        )
    assert resp.data == b"RAW"
    assert script.requests[0].headers["Skynet-Api-Key"] == "other"
    assert script.requests[0].headers["User-Agent"] == "me"


@pytest.mark.asyncio
async def test_portal_message_is_used():
    script = Script(httpx.Response(400, json={"message": "bad entry"}))
    async with transport_for(script) as http:
        with pytest.raises(TransportError) as ei:
            await http.execute(Request("POST", "/skynet/registry", json={"a": 1}))
    assert str(ei.value) == "bad entry"
    assert ei.value.status == 400
    assert ei.value.method == "POST"
    assert len(script.requests) == 1


@pytest.mark.asyncio
async def test_generic_message_without_body():
    script = Script(httpx.Response(500, content=b"<html>"))
    async with transport_for(script) as http:
        with pytest.raises(TransportError) as ei:
            await http.execute(Request("GET", "/x"))
    assert str(ei.value) == "Request failed with status code 500"
    assert not ei.value.retryable


@pytest.mark.asyncio
async def test_expected_status_is_returned():
    script = Script(httpx.Response(404, json={"message": "nope"}))
    async with transport_for(script) as http:
        resp = await http.execute(Request("GET", "/x", expected_statuses=(404,)))
    assert resp.status == 404
    assert not resp.ok


@pytest.mark.asyncio
async def test_transient_failures_are_retried():
    script = Script(
        httpx.Response(503),
        httpx.ConnectError("refused"),
        httpx.Response(200, json={"ok": 1}),
    )
    async with transport_for(script, max_retries=3) as http:
        resp = await http.execute(Request("GET", "/x"))
    assert resp.data == {"ok": 1}
    assert len(script.requests) == 3


@pytest.mark.asyncio
async def test_retries_are_bounded():
    script = Script(httpx.Response(429), httpx.Response(502), httpx.Response(504))
    async with transport_for(script, max_retries=1) as http:
        with pytest.raises(TransportError) as ei:
            await http.execute(Request("GET", "/x"))
    assert ei.value.status == 502
    assert ei.value.retryable
    assert len(script.requests) == 2


@pytest.mark.asyncio
async def test_network_error_surfaces_as_transport_error():
    script = Script(httpx.ConnectError("refused"))
    async with transport_for(script, max_retries=0) as http:
        with pytest.raises(TransportError) as ei:
            await http.execute(Request("GET", "/x"))
    assert ei.value.status is None
    assert "Network error" in str(ei.value)


@pytest.mark.parametrize("attempt,cap", [(1, 0.2), (2, 0.4), (3, 0.8), (10, 2.0)])
def test_backoff_delay_is_capped(attempt, cap):
    for _ in range(50):
        assert 0.0 <= backoff_delay(attempt, base=0.2, max_delay=2.0) <= cap
