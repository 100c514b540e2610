"""Download orchestrator: direct fetch, proxy tunnel, then hand off to a browser."""

import asyncio
import logging
import os
import random
import re
import tempfile
import webbrowser
from typing import Callable, Optional, Tuple

import httpx

from .config import AppConfig
from .errors import StrategiesExhausted
from .fallback import Strategy, first_success
from .fetcher import encode_target
from .models import DownloadOutcome

logger = logging.getLogger("media_grabber")

ILLEGAL_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
MAX_BASE_NAME = 50


def safe_filename(name: Optional[str], extension: str = ".mp4",
                  placeholder: str = "video") -> str:
    """Filesystem-safe name with a random suffix so repeated saves don't collide."""
    base = ILLEGAL_FILENAME_CHARS.sub("", name or placeholder)
    base = base[:MAX_BASE_NAME].strip() or placeholder
    return f"{base}_{random.randint(0, 9999)}{extension}"


class DownloadOrchestrator:
    def __init__(self, config: AppConfig, client: Optional[httpx.AsyncClient] = None,
                 open_link: Optional[Callable[[str], object]] = None):
        self.config = config
        self._client = client
        self.open_link = open_link or webbrowser.open_new_tab
        self.strategies = [
            Strategy("direct", self._save_direct),
            Strategy("proxy", self._save_via_proxy),
            Strategy("new_tab", self._open_in_browser),
        ]

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.download.timeout, connect=30),
                follow_redirects=True,
                headers={"User-Agent": self.config.fetch.user_agent},
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def make_filename(self, suggested_name: Optional[str]) -> str:
        dl = self.config.download
        return safe_filename(suggested_name, dl.extension, dl.placeholder_name)

    async def download(self, media_url: str, suggested_name: Optional[str]) -> DownloadOutcome:
        """Save media_url locally. Never raises; falls back to opening a browser tab."""
        try:
            name, outcome = await first_success(
                self.strategies, (media_url, suggested_name),
                timeout=self.config.download.attempt_timeout,
            )
        except StrategiesExhausted as e:
            # Even the browser hand-off blew up; report it as degraded anyway
            logger.error(f"All download strategies failed for {media_url}: {e}")
            return DownloadOutcome(strategy="new_tab", url=media_url,
                                   filename=self.make_filename(suggested_name))

        if outcome.degraded:
            logger.warning(f"Could not save {media_url}; opened it in a browser instead")
        else:
            logger.info(f"Saved {outcome.path} ({outcome.size:,} bytes) via {name}")
        return outcome

    async def _save_direct(self, job: Tuple[str, Optional[str]]) -> DownloadOutcome:
        media_url, suggested_name = job
        return await self._save(media_url, media_url, suggested_name, "direct")

    async def _save_via_proxy(self, job: Tuple[str, Optional[str]]) -> DownloadOutcome:
        media_url, suggested_name = job
        proxy_url = self.config.endpoints.proxy_a.format(target=encode_target(media_url))
        return await self._save(media_url, proxy_url, suggested_name, "proxy")

    async def _open_in_browser(self, job: Tuple[str, Optional[str]]) -> DownloadOutcome:
        media_url, suggested_name = job
        # Return value ignored: navigation can't be observed to fail.
        # Launchers may block, so this runs off the event loop.
        await asyncio.to_thread(self.open_link, media_url)
        return DownloadOutcome(strategy="new_tab", url=media_url,
                               filename=self.make_filename(suggested_name))

    async def _save(self, media_url: str, fetch_url: str, suggested_name: Optional[str],
                    strategy: str) -> DownloadOutcome:
        """Fetch the full body into a part file, then move it into place."""
        dest_dir = self.config.download.download_dir
        max_size = self.config.download.max_file_size
        os.makedirs(dest_dir, exist_ok=True)

        filename = self.make_filename(suggested_name)
        local_path = os.path.join(dest_dir, filename)
        fd, part_path = tempfile.mkstemp(suffix=".part", dir=dest_dir)
        size = 0

        try:
            with os.fdopen(fd, "wb") as f:
                async with self.client.stream("GET", fetch_url) as resp:
                    resp.raise_for_status()

                    content_length = resp.headers.get("content-length")
                    if content_length and int(content_length) > max_size:
                        raise ValueError(f"File too large: {content_length} bytes")

                    async for chunk in resp.aiter_bytes(chunk_size=65536):
                        size += len(chunk)
                        if size > max_size:
                            raise ValueError(f"File exceeded max size during download: {size} bytes")
                        f.write(chunk)

            os.replace(part_path, local_path)
        finally:
            if os.path.exists(part_path):
                os.remove(part_path)

        return DownloadOutcome(strategy=strategy, url=media_url, filename=filename,
                               path=local_path, size=size)
