"""Session controller: owns the state and runs the three user actions."""

import logging
from typing import Callable, Optional

from .ai import FAILURE_MESSAGE, CaptionGenerator
from .config import AppConfig
from .downloader import DownloadOrchestrator
from .errors import AIGenerationFailure, MediaGrabberError
from .extractor import LinkExtractor
from .fetcher import ResilientFetcher
from .models import DownloadOutcome
from .state import (
    AIFailed,
    AIStarted,
    AISucceeded,
    DownloadFinished,
    DownloadStarted,
    QueryFailed,
    QueryStarted,
    QuerySucceeded,
    SessionState,
    reduce,
)

logger = logging.getLogger("media_grabber")

UNEXPECTED_ERROR = "An unexpected error occurred. Please check the URL."


class Session:
    def __init__(self, config: AppConfig, fetcher: Optional[ResilientFetcher] = None,
                 downloader: Optional[DownloadOrchestrator] = None,
                 generator: Optional[CaptionGenerator] = None,
                 open_link: Optional[Callable[[str], object]] = None):
        self.config = config
        self.fetcher = fetcher or ResilientFetcher(config)
        self.extractor = LinkExtractor(
            max_depth=config.extraction.max_depth,
            max_nodes=config.extraction.max_nodes,
        )
        self.downloader = downloader or DownloadOrchestrator(config, open_link=open_link)
        self.generator = generator or CaptionGenerator(config)
        self.state = SessionState()

    def dispatch(self, action) -> SessionState:
        self.state = reduce(self.state, action)
        return self.state

    async def close(self):
        await self.fetcher.close()
        await self.downloader.close()
        await self.generator.close()

    async def query(self, url: str) -> SessionState:
        """Resolve a post URL into the current ExtractionResult."""
        url = (url or "").strip()
        if not url:
            return self.state

        generation = self.dispatch(QueryStarted(url)).generation
        logger.info(f"Query: {url}")

        try:
            data = await self.fetcher.fetch_metadata(url)
            logger.debug(f"API response: {data!r}")
            result = self.extractor.build_result(data)
        except MediaGrabberError as e:
            logger.warning(f"Query failed for {url}: {e}")
            return self.dispatch(QueryFailed(generation, str(e)))
        except Exception as e:
            logger.exception(f"Unexpected error resolving {url}: {e}")
            return self.dispatch(QueryFailed(generation, UNEXPECTED_ERROR))

        logger.info(f"Resolved {url} -> {result.download_url}")
        return self.dispatch(QuerySucceeded(generation, result))

    async def download(self) -> Optional[DownloadOutcome]:
        result = self.state.result
        if result is None:
            return None

        self.dispatch(DownloadStarted())
        try:
            return await self.downloader.download(result.download_url, result.title)
        finally:
            self.dispatch(DownloadFinished())

    async def generate(self, mode: str) -> SessionState:
        """Run an AI assist mode ('caption' or 'ideas') for the current result."""
        result = self.state.result
        if result is None:
            return self.state

        generation = self.dispatch(AIStarted(mode)).generation
        try:
            text = await self.generator.generate(mode, result)
        except AIGenerationFailure as e:
            logger.warning(f"AI {mode} failed: {e}")
            message = str(e) if self.config.ai.api_key else FAILURE_MESSAGE
            return self.dispatch(AIFailed(generation, message))
        except Exception as e:
            logger.exception(f"Unexpected AI error: {e}")
            return self.dispatch(AIFailed(generation, FAILURE_MESSAGE))

        return self.dispatch(AISucceeded(generation, text))
