"""FastAPI server exposing resolve, download and AI actions to a browser front end.

Stateless: every request builds its own fetcher/downloader and tears them down.
"""

import json
import logging
import mimetypes
import os
import shutil
import tempfile
from dataclasses import replace
from functools import lru_cache

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.background import BackgroundTask

from media_grabber.ai import FAILURE_MESSAGE, PROMPTS, CaptionGenerator
from media_grabber.config import AppConfig, load_config
from media_grabber.downloader import DownloadOrchestrator
from media_grabber.errors import AIGenerationFailure, ExtractionFailure, FetchFailure
from media_grabber.extractor import LinkExtractor
from media_grabber.fetcher import ResilientFetcher

load_dotenv()

logger = logging.getLogger("media_grabber")

app = FastAPI(
    title="Media Grabber API",
    version="0.1.0",
    description="Resolve social media post links to downloadable videos.",
)

# --- Rate limiting ---
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return Response(
        content=json.dumps({"error": "Rate limit exceeded. Please slow down."}),
        status_code=429,
        media_type="application/json",
    )


# --- CORS ---
default_origins = "http://localhost:3000,http://127.0.0.1:3000"
cors_origins = os.environ.get("CORS_ORIGINS", default_origins).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return load_config(os.environ.get("MEDIA_GRABBER_CONFIG", "config.yaml"))


def _no_browser(url: str) -> bool:
    # The client opens the link itself when the outcome is degraded
    return True


# --- Models ---

class ResolveRequest(BaseModel):
    url: str
    debug: bool = False


class DownloadRequest(BaseModel):
    url: str
    title: str = ""


class AIRequest(BaseModel):
    title: str
    author: str = "Unknown"


# --- Routes ---

@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "media-grabber-api"}


@app.post("/api/resolve")
@limiter.limit("30/minute")
async def resolve(request: Request, req: ResolveRequest):
    """Fetch upstream metadata for a post URL and pick out the video link."""
    url = req.url.strip()
    if not url:
        raise HTTPException(status_code=422, detail="URL is required")

    config = get_config()
    fetcher = ResilientFetcher(config)
    extractor = LinkExtractor(config.extraction.max_depth, config.extraction.max_nodes)
    try:
        data = await fetcher.fetch_metadata(url)
        result = extractor.build_result(data)
    except FetchFailure as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ExtractionFailure as e:
        raise HTTPException(status_code=404, detail=str(e))
    finally:
        await fetcher.close()

    return result.to_dict(include_source=req.debug)


@app.post("/api/download")
@limiter.limit("10/minute")
async def download(request: Request, req: DownloadRequest):
    """Send the media back as an attachment.

    The file only lives in a per-request temp dir that is removed once the
    response has been sent. When every fetch was blocked the reply is JSON
    with ``degraded: true`` and the client opens ``url`` itself.
    """
    if not req.url.strip():
        raise HTTPException(status_code=422, detail="URL is required")

    config = get_config()
    job_dir = tempfile.mkdtemp(prefix="media_grabber_")
    job_config = replace(config, download=replace(config.download, download_dir=job_dir))
    cleanup = BackgroundTask(shutil.rmtree, job_dir, ignore_errors=True)

    orchestrator = DownloadOrchestrator(job_config, open_link=_no_browser)
    try:
        outcome = await orchestrator.download(req.url.strip(), req.title)
    except Exception:
        shutil.rmtree(job_dir, ignore_errors=True)
        raise
    finally:
        await orchestrator.close()

    if outcome.degraded:
        shutil.rmtree(job_dir, ignore_errors=True)
        return {"degraded": True, "url": outcome.url, "filename": outcome.filename}

    media_type = mimetypes.guess_type(outcome.filename)[0] or "application/octet-stream"
    return FileResponse(
        outcome.path,
        media_type=media_type,
        filename=outcome.filename,
        background=cleanup,
    )


@app.post("/api/ai/{mode}")
@limiter.limit("10/minute")
async def generate_ai(request: Request, mode: str, req: AIRequest):
    """Caption or follow-up ideas. Failures come back inline, not as HTTP errors."""
    if mode not in PROMPTS:
        raise HTTPException(status_code=404, detail=f"Unknown AI mode: {mode}")

    config = get_config()
    generator = CaptionGenerator(config)
    try:
        text = await generator.generate_text(mode, req.title, req.author)
    except AIGenerationFailure as e:
        logger.warning(f"AI {mode} failed: {e}")
        message = str(e) if config.ai.api_key else FAILURE_MESSAGE
        return {"mode": mode, "text": message, "error": True}
    finally:
        await generator.close()
    return {"mode": mode, "text": text, "error": False}
