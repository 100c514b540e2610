"""YAML config loader."""

import os
from dataclasses import dataclass, field

import yaml
from dotenv import load_dotenv


@dataclass
class EndpointConfig:
    # {target} is replaced with the URL-encoded address
    upstream_url: str = "https://tele-social.vercel.app/down?url={target}"
    proxy_a: str = "https://corsproxy.io/?{target}"
    proxy_b: str = "https://api.allorigins.win/get?url={target}"


@dataclass
class FetchConfig:
    timeout: int = 30
    attempt_timeout: float = 45.0
    user_agent: str = "MediaGrabber/1.0"


@dataclass
class DownloadConfig:
    download_dir: str = "downloads"
    timeout: int = 120
    attempt_timeout: float = 600.0
    max_file_size: int = 524288000
    extension: str = ".mp4"
    placeholder_name: str = "video"


@dataclass
class ExtractionConfig:
    max_depth: int = 32
    max_nodes: int = 10000


@dataclass
class AIConfig:
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models"
    model: str = "gemini-2.5-flash-preview-09-2025"
    api_key: str = ""
    timeout: int = 60


@dataclass
class AppConfig:
    log_dir: str = "logs"
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    ai: AIConfig = field(default_factory=AIConfig)


def _section(cls, raw):
    if not isinstance(raw, dict):
        raw = {}
    return cls(**{k: v for k, v in raw.items() if k in cls.__dataclass_fields__})


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load config from YAML, falling back to defaults when the file is absent.

    Environment variables (optionally from a .env file) override secrets and
    the download directory.
    """
    load_dotenv()

    raw = {}
    if config_path and os.path.exists(config_path):
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raw = {}

    config = AppConfig(
        log_dir=raw.get("log_dir", "logs"),
        endpoints=_section(EndpointConfig, raw.get("endpoints")),
        fetch=_section(FetchConfig, raw.get("fetch")),
        download=_section(DownloadConfig, raw.get("download")),
        extraction=_section(ExtractionConfig, raw.get("extraction")),
        ai=_section(AIConfig, raw.get("ai")),
    )

    api_key = os.environ.get("GEMINI_API_KEY")
    if api_key:
        config.ai.api_key = api_key
    download_dir = os.environ.get("DOWNLOAD_DIR")
    if download_dir:
        config.download.download_dir = download_dir

    return config
