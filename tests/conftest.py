import httpx
import pytest

from media_grabber.config import AppConfig


@pytest.fixture
def config(tmp_path):
    cfg = AppConfig(log_dir=str(tmp_path / "logs"))
    cfg.download.download_dir = str(tmp_path / "downloads")
    cfg.fetch.attempt_timeout = 5
    cfg.download.attempt_timeout = 5
    return cfg


@pytest.fixture
def make_client():
    """Build an AsyncClient whose requests are answered by `handler`."""
    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory
