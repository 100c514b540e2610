"""Tests for filename policy and the direct -> proxy -> new tab download chain."""

import os
import re
import threading
from unittest.mock import patch

import httpx
import pytest

from media_grabber.downloader import DownloadOrchestrator, safe_filename

MEDIA_URL = "https://cdn.test/v.mp4"


class TestSafeFilename:
    def test_illegal_characters_stripped(self):
        name = safe_filename('My/Video:Clip*Name?')
        assert re.fullmatch(r"MyVideoClipName_\d{1,4}\.mp4", name)

    def test_all_illegal_characters(self):
        name = safe_filename('a/b\\c:d*e?f"g<h>i|j')
        assert name.startswith("abcdefghij_")

    def test_truncated_to_fifty(self):
        name = safe_filename("x" * 80)
        base = name.rsplit("_", 1)[0]
        assert base == "x" * 50

    def test_trimmed_after_truncation(self):
        name = safe_filename("y" * 49 + " tail")
        assert name.rsplit("_", 1)[0] == "y" * 49

    @pytest.mark.parametrize("title", [None, "", "   ", "???", "/:*"])
    def test_empty_gets_placeholder(self, title):
        assert re.fullmatch(r"video_\d{1,4}\.mp4", safe_filename(title))

    def test_custom_extension(self):
        assert safe_filename("clip", extension=".webm").endswith(".webm")


def make_orchestrator(config, make_client, handler, opened=None):
    opened = opened if opened is not None else []
    return DownloadOrchestrator(config, client=make_client(handler), open_link=opened.append)


def leftovers(config):
    return [f for f in os.listdir(config.download.download_dir) if f.endswith(".part")]


@pytest.mark.asyncio
async def test_direct_download_saves_file(config, make_client):
    orchestrator = make_orchestrator(
        config, make_client, lambda r: httpx.Response(200, content=b"video-bytes"))

    outcome = await orchestrator.download(MEDIA_URL, "Cool")

    assert outcome.strategy == "direct"
    assert not outcome.degraded
    assert re.fullmatch(r"Cool_\d{1,4}\.mp4", outcome.filename)
    with open(outcome.path, "rb") as f:
        assert f.read() == b"video-bytes"
    assert outcome.size == len(b"video-bytes")
    assert leftovers(config) == []


@pytest.mark.asyncio
async def test_blocked_direct_uses_proxy(config, make_client):
    hosts = []

    def handler(request):
        hosts.append(request.url.host)
        if request.url.host == "cdn.test":
            return httpx.Response(403)
        return httpx.Response(200, content=b"tunneled")

    outcome = await make_orchestrator(config, make_client, handler).download(MEDIA_URL, "Cool")

    assert outcome.strategy == "proxy"
    assert outcome.url == MEDIA_URL
    assert hosts == ["cdn.test", "corsproxy.io"]
    with open(outcome.path, "rb") as f:
        assert f.read() == b"tunneled"
    assert leftovers(config) == []


@pytest.mark.asyncio
async def test_everything_blocked_opens_browser(config, make_client):
    opened = []

    def handler(request):
        raise httpx.ConnectError("blocked", request=request)

    outcome = await make_orchestrator(config, make_client, handler, opened).download(
        MEDIA_URL, "Cool")

    assert outcome.strategy == "new_tab"
    assert outcome.degraded
    assert outcome.path is None
    assert opened == [MEDIA_URL]
    assert os.listdir(config.download.download_dir) == []


@pytest.mark.asyncio
async def test_oversized_download_is_discarded(config, make_client):
    config.download.max_file_size = 4
    opened = []
    orchestrator = make_orchestrator(
        config, make_client, lambda r: httpx.Response(200, content=b"way too large"), opened)

    outcome = await orchestrator.download(MEDIA_URL, "Big")

    assert outcome.degraded
    assert opened == [MEDIA_URL]
    assert os.listdir(config.download.download_dir) == []


@pytest.mark.asyncio
async def test_failing_opener_still_returns_outcome(config, make_client):
    def explode(url):
        raise RuntimeError("no browser")

    orchestrator = DownloadOrchestrator(
        config, client=make_client(lambda r: httpx.Response(500)), open_link=explode)

    outcome = await orchestrator.download(MEDIA_URL, "Cool")

    assert outcome.degraded
    assert outcome.url == MEDIA_URL


@pytest.mark.asyncio
async def test_proxy_gets_fresh_filename(config, make_client):
    def handler(request):
        if request.url.host == "cdn.test":
            return httpx.Response(403)
        return httpx.Response(200, content=b"tunneled")

    orchestrator = make_orchestrator(config, make_client, handler)
    with patch("media_grabber.downloader.random.randint", side_effect=[1, 2]):
        outcome = await orchestrator.download(MEDIA_URL, "Cool")

    assert outcome.strategy == "proxy"
    assert outcome.filename == "Cool_2.mp4"
    assert os.listdir(config.download.download_dir) == ["Cool_2.mp4"]


@pytest.mark.asyncio
async def test_browser_opened_off_the_event_loop(config, make_client):
    threads = []
    orchestrator = DownloadOrchestrator(
        config, client=make_client(lambda r: httpx.Response(500)),
        open_link=lambda url: threads.append(threading.get_ident()))

    outcome = await orchestrator.download(MEDIA_URL, "Cool")

    assert outcome.degraded
    assert len(threads) == 1
    assert threads[0] != threading.get_ident()
