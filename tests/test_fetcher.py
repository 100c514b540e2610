"""Tests for the direct -> proxy A -> proxy B metadata fetch chain."""

import json

import httpx
import pytest

from media_grabber.errors import FetchFailure
from media_grabber.fetcher import ResilientFetcher, is_json_content_type

TARGET = "https://api.test/down?url=post"
PROXY_A_HOST = "corsproxy.io"
PROXY_B_HOST = "api.allorigins.win"


def route(direct=None, proxy_a=None, proxy_b=None):
    """Handler dispatching on host; records the hosts it saw."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        seen.append(host)
        responder = {"api.test": direct, PROXY_A_HOST: proxy_a, PROXY_B_HOST: proxy_b}.get(host)
        if responder is None:
            return httpx.Response(500)
        return responder(request)

    handler.seen = seen
    return handler


def json_response(data, status=200):
    return lambda request: httpx.Response(status, json=data)


def test_json_content_type():
    assert is_json_content_type("application/json")
    assert is_json_content_type("application/json; charset=utf-8")
    assert is_json_content_type("application/vnd.api+json")
    assert not is_json_content_type("text/html")
    assert not is_json_content_type("")


@pytest.mark.asyncio
async def test_direct_success(config, make_client):
    handler = route(direct=json_response({"hd": "https://x/a.mp4"}))
    fetcher = ResilientFetcher(config, client=make_client(handler))

    assert await fetcher.fetch_json(TARGET) == {"hd": "https://x/a.mp4"}
    assert handler.seen == ["api.test"]


@pytest.mark.asyncio
async def test_direct_html_falls_through_to_proxy_a(config, make_client):
    handler = route(
        direct=lambda r: httpx.Response(200, text="<html>{}</html>",
                                        headers={"content-type": "text/html"}),
        proxy_a=json_response({"via": "proxy_a"}),
    )
    fetcher = ResilientFetcher(config, client=make_client(handler))

    assert await fetcher.fetch_json(TARGET) == {"via": "proxy_a"}
    assert handler.seen == ["api.test", PROXY_A_HOST]


@pytest.mark.asyncio
async def test_proxy_a_receives_encoded_target(config, make_client):
    captured = {}

    def proxy_a(request):
        captured["url"] = str(request.url)
        return httpx.Response(200, json={"ok": True})

    fetcher = ResilientFetcher(config, client=make_client(route(proxy_a=proxy_a)))
    await fetcher.fetch_json(TARGET)

    assert captured["url"].startswith("https://corsproxy.io/?https%3A%2F%2Fapi.test")


@pytest.mark.asyncio
async def test_transport_error_falls_through(config, make_client):
    def direct(request):
        raise httpx.ConnectError("connection refused", request=request)

    handler = route(direct=direct, proxy_a=json_response({"via": "proxy_a"}))
    fetcher = ResilientFetcher(config, client=make_client(handler))

    assert await fetcher.fetch_json(TARGET) == {"via": "proxy_a"}


@pytest.mark.asyncio
async def test_proxy_b_unwraps_contents(config, make_client):
    handler = route(proxy_b=json_response({"contents": json.dumps({"sd": "https://x/b.mp4"})}))
    fetcher = ResilientFetcher(config, client=make_client(handler))

    assert await fetcher.fetch_json(TARGET) == {"sd": "https://x/b.mp4"}
    assert handler.seen == ["api.test", PROXY_A_HOST, PROXY_B_HOST]


@pytest.mark.asyncio
async def test_proxy_b_bad_contents_is_a_strategy_failure(config, make_client):
    handler = route(proxy_b=json_response({"contents": "not valid json"}))
    fetcher = ResilientFetcher(config, client=make_client(handler))

    with pytest.raises(FetchFailure) as exc_info:
        await fetcher.fetch_json(TARGET)

    assert handler.seen == ["api.test", PROXY_A_HOST, PROXY_B_HOST]
    assert "proxy" not in str(exc_info.value).lower()
    assert exc_info.value.__cause__ is None


@pytest.mark.asyncio
async def test_proxy_b_missing_contents(config, make_client):
    handler = route(proxy_b=json_response({"status": {"http_code": 404}}))
    fetcher = ResilientFetcher(config, client=make_client(handler))

    with pytest.raises(FetchFailure):
        await fetcher.fetch_json(TARGET)


@pytest.mark.asyncio
async def test_proxy_a_non_json_body_falls_through(config, make_client):
    handler = route(
        proxy_a=lambda r: httpx.Response(200, text="Too many requests"),
        proxy_b=json_response({"contents": "{\"ok\": 1}"}),
    )
    fetcher = ResilientFetcher(config, client=make_client(handler))

    assert await fetcher.fetch_json(TARGET) == {"ok": 1}


@pytest.mark.asyncio
async def test_fetch_metadata_builds_upstream_address(config, make_client):
    captured = {}

    def handler(request):
        captured["host"] = request.url.host
        captured["target"] = request.url.params.get("url")
        return httpx.Response(200, json={})

    fetcher = ResilientFetcher(config, client=make_client(handler))
    await fetcher.fetch_metadata("https://tiktok.com/@a/video/123")

    assert captured["host"] == "tele-social.vercel.app"
    assert captured["target"] == "https://tiktok.com/@a/video/123"
