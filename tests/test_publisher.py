from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from garmin_status.errors import PublishError
from garmin_status.publisher import PROFILE_SET_URL, SlackStatusPublisher

Handler = Callable[[httpx.Request], httpx.Response]


def _publish(handler: Handler, emoji: str = ":grin:", text: str = "ok") -> None:
    async def run() -> None:
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            await SlackStatusPublisher("xoxp-token", client=client).publish(emoji, text)

    asyncio.run(run())


def _profile(request: httpx.Request) -> dict[str, object]:
    form = parse_qs(request.content.decode("utf-8"))
    return json.loads(form["profile"][0])


def test_publish_sends_token_and_profile() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    _publish(handler, ":smiley:", ":battery: 56 :brain: 23 :heart: 61")

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == PROFILE_SET_URL
    assert request.headers["Authorization"] == "Bearer xoxp-token"
    assert _profile(request) == {
        "status_emoji": ":smiley:",
        "status_text": ":battery: 56 :brain: 23 :heart: 61",
        "status_expiration": 0,
    }


def test_publish_twice_is_not_an_error() -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(200, json={"ok": True})

    _publish(handler, ":grin:", "same")
    _publish(handler, ":grin:", "same")
    assert len(bodies) == 2
    assert bodies[0] == bodies[1]


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"ok": False, "error": "invalid_auth"}, "invalid_auth"),
        ({"error": "missing_scope"}, "missing_scope"),
        ({"ok": "true"}, "unknown"),
    ],
)
def test_publish_negative_ack_raises(body: dict[str, object], message: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(PublishError, match=message):
        _publish(handler)


def test_publish_http_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal error")

    with pytest.raises(PublishError, match="request failed"):
        _publish(handler)


def test_publish_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PublishError, match="connection refused"):
        _publish(handler)


def test_publish_non_json_body_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(PublishError, match="non-JSON"):
        _publish(handler)


def test_publish_json_array_body_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[True])

    with pytest.raises(PublishError, match="unexpected"):
        _publish(handler)
