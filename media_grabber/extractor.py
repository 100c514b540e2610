"""Locate the downloadable media URL inside an arbitrary upstream JSON document.

Upstream APIs differ per platform and are undocumented, so the search ranks
keys by confidence: explicit video fields first, then generic link fields,
then a depth-first walk of everything else. Subtrees that only ever hold
images or profile data are never entered.
"""

import logging
import re
from typing import Any, Optional

from .errors import ExtractionFailure
from .models import DEFAULT_AUTHOR, DEFAULT_TITLE, ExtractionResult

logger = logging.getLogger("media_grabber")

PRIORITY_KEYS = ("hd", "sd", "mp4", "video", "stream", "download_url", "download")
GENERIC_KEYS = ("url", "link", "src")
EXCLUDED_KEYS = frozenset({"thumbnail", "image", "cover", "poster", "avatars", "author"})

IMAGE_SUFFIX_RE = re.compile(r"\.(jpg|jpeg|png|webp|gif|svg|bmp|tiff)$", re.IGNORECASE)

TITLE_KEYS = ("title", "text", "caption")
THUMBNAIL_KEYS = ("thumbnail", "image", "cover")


def is_video_url(value: Any) -> bool:
    """An http(s) string that does not point at a static image."""
    if not isinstance(value, str) or not value.startswith(("http://", "https://")):
        return False
    return IMAGE_SUFFIX_RE.search(value) is None


class _Walk:
    def __init__(self, max_depth: int, max_nodes: int):
        self.max_depth = max_depth
        self.nodes_left = max_nodes
        self.seen = set()

    def search(self, value: Any, depth: int) -> Optional[str]:
        if self.nodes_left <= 0:
            return None
        self.nodes_left -= 1

        if isinstance(value, str):
            return value if is_video_url(value) else None

        if isinstance(value, dict):
            for key in PRIORITY_KEYS + GENERIC_KEYS:
                candidate = value.get(key)
                if is_video_url(candidate):
                    return candidate
            children = (
                child for key, child in value.items()
                if not (isinstance(key, str) and key.lower() in EXCLUDED_KEYS)
            )
        elif isinstance(value, (list, tuple)):
            children = iter(value)
        else:
            return None

        if depth >= self.max_depth or id(value) in self.seen:
            return None
        self.seen.add(id(value))

        for child in children:
            found = self.search(child, depth + 1)
            if found:
                return found
        return None


class LinkExtractor:
    def __init__(self, max_depth: int = 32, max_nodes: int = 10000):
        self.max_depth = max_depth
        self.max_nodes = max_nodes

    def find_download_link(self, doc: Any) -> Optional[str]:
        walk = _Walk(self.max_depth, self.max_nodes)
        found = walk.search(doc, 0)
        if found is None and walk.nodes_left <= 0:
            logger.warning(f"Link search stopped after {self.max_nodes} nodes")
        return found

    def build_result(self, doc: Any) -> ExtractionResult:
        """Derive an ExtractionResult, raising ExtractionFailure without a link."""
        download_url = self.find_download_link(doc)
        if not download_url:
            raise ExtractionFailure()

        fields = doc if isinstance(doc, dict) else {}
        return ExtractionResult(
            download_url=download_url,
            title=_first_text(fields, TITLE_KEYS) or DEFAULT_TITLE,
            thumbnail=_first_text(fields, THUMBNAIL_KEYS),
            author=_first_text(fields, ("author",)) or DEFAULT_AUTHOR,
            source=doc,
        )


def _first_text(fields: dict, keys) -> Optional[str]:
    for key in keys:
        value = fields.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def find_download_link(doc: Any) -> Optional[str]:
    return LinkExtractor().find_download_link(doc)
