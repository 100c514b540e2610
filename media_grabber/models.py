"""Data models for resolved media and download outcomes."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

DEFAULT_TITLE = "Downloaded Video"
DEFAULT_AUTHOR = "Unknown"


@dataclass(frozen=True)
class ExtractionResult:
    download_url: str
    title: str = DEFAULT_TITLE
    thumbnail: Optional[str] = None
    author: str = DEFAULT_AUTHOR
    # Raw upstream document, kept for debugging
    source: Any = field(default=None, compare=False, repr=False)

    def to_dict(self, include_source: bool = False) -> dict:
        data = asdict(self)
        if not include_source:
            data.pop("source")
        return data


@dataclass(frozen=True)
class DownloadOutcome:
    strategy: str  # direct, proxy, new_tab
    url: str
    filename: str
    path: Optional[str] = None
    size: Optional[int] = None

    @property
    def degraded(self) -> bool:
        """True when the file was handed to a browser instead of saved."""
        return self.path is None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["degraded"] = self.degraded
        return data
