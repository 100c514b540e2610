"""Optional caption / follow-up idea generation through the Gemini REST API."""

import logging
from typing import Optional

import httpx

from .config import AppConfig
from .errors import AIGenerationFailure
from .models import ExtractionResult

logger = logging.getLogger("media_grabber")

PROMPTS = {
    "caption": (
        'You are a social media expert. Generate a catchy, engaging caption and 15 relevant '
        'viral hashtags for a video titled "{title}" by creator "{author}". The platform is '
        'likely a short-form video site. Return the caption first, then a line break, then '
        'the hashtags.'
    ),
    "ideas": (
        'You are a creative director. Based on the video titled "{title}" by creator '
        '"{author}", suggest 5 unique and engaging follow-up video ideas or remix concepts '
        'that a creator could make next. Format as a numbered list with short descriptions.'
    ),
}

FAILURE_MESSAGE = (
    "AI feature requires a valid GEMINI_API_KEY. Please set it in the environment "
    "or config.yaml to use this feature."
)


def build_prompt(mode: str, title: str, author: str) -> str:
    if mode not in PROMPTS:
        raise AIGenerationFailure(f"Unknown AI mode: {mode}")
    return PROMPTS[mode].format(title=title, author=author)


class CaptionGenerator:
    def __init__(self, config: AppConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.ai.timeout))
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def generate(self, mode: str, result: ExtractionResult) -> str:
        return await self.generate_text(mode, result.title, result.author)

    async def generate_text(self, mode: str, title: str, author: str) -> str:
        """Single request, no retries. Raises AIGenerationFailure on any problem."""
        prompt = build_prompt(mode, title, author)

        ai = self.config.ai
        if not ai.api_key:
            raise AIGenerationFailure("API key is missing.")

        url = f"{ai.endpoint}/{ai.model}:generateContent"
        try:
            resp = await self.client.post(
                url,
                params={"key": ai.api_key},
                json={"contents": [{"parts": [{"text": prompt}]}]},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"AI generation ({mode}) failed: {e}")
            raise AIGenerationFailure("AI Generation failed. Please try again.") from e

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise AIGenerationFailure("No output from AI.")
        return text
