"""Metadata fetcher: direct request, then two CORS proxies, first success wins."""

import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .config import AppConfig
from .errors import FetchFailure, StrategiesExhausted, StrategyFailed
from .fallback import Strategy, first_success

logger = logging.getLogger("media_grabber")


def encode_target(address: str) -> str:
    return quote(address, safe="")


def is_json_content_type(content_type: str) -> bool:
    ct = content_type.split(";", 1)[0].strip().lower()
    return ct == "application/json" or ct.endswith("+json")


class ResilientFetcher:
    def __init__(self, config: AppConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client
        self.strategies = [
            Strategy("direct", self._fetch_direct),
            Strategy("proxy_a", self._fetch_proxy_a),
            Strategy("proxy_b", self._fetch_proxy_b),
        ]

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.fetch.timeout, connect=15),
                follow_redirects=True,
                headers={"User-Agent": self.config.fetch.user_agent},
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def upstream_address(self, query: str) -> str:
        return self.config.endpoints.upstream_url.format(target=encode_target(query))

    async def fetch_metadata(self, query: str) -> Any:
        """Ask the extraction API about a post URL."""
        return await self.fetch_json(self.upstream_address(query))

    async def fetch_json(self, address: str) -> Any:
        """Fetch a JSON document, trying each transport in turn.

        Raises FetchFailure once all of them failed; the individual proxy
        errors are only logged.
        """
        try:
            name, data = await first_success(
                self.strategies, address, timeout=self.config.fetch.attempt_timeout,
            )
        except StrategiesExhausted as e:
            logger.error(f"All fetch strategies failed for {address}: {e}")
            raise FetchFailure() from None

        logger.info(f"Fetched {address} via {name}")
        return data

    async def _get(self, url: str) -> httpx.Response:
        resp = await self.client.get(url)
        resp.raise_for_status()
        return resp

    async def _fetch_direct(self, address: str) -> Any:
        resp = await self._get(address)
        ct = resp.headers.get("content-type", "")
        if not is_json_content_type(ct):
            raise StrategyFailed(f"Expected JSON but got content-type: {ct or 'none'}")
        return resp.json()

    async def _fetch_proxy_a(self, address: str) -> Any:
        proxy_url = self.config.endpoints.proxy_a.format(target=encode_target(address))
        resp = await self._get(proxy_url)
        return resp.json()

    async def _fetch_proxy_b(self, address: str) -> Any:
        proxy_url = self.config.endpoints.proxy_b.format(target=encode_target(address))
        resp = await self._get(proxy_url)

        try:
            envelope = resp.json()
        except ValueError:
            raise StrategyFailed("Proxy envelope is not JSON") from None

        contents = envelope.get("contents") if isinstance(envelope, dict) else None
        if not contents or not isinstance(contents, str):
            raise StrategyFailed("Proxy envelope has no contents")

        try:
            return json.loads(contents)
        except ValueError:
            raise StrategyFailed("Proxy contents are not valid JSON") from None
