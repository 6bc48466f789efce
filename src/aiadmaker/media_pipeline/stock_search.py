from __future__ import annotations

import abc
import logging
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Sequence
from urllib.parse import urlparse

import requests

from aiadmaker.timeline.model import AssetKind

from .model import MediaCandidate

logger = logging.getLogger(__name__)

MERGE_FIRST = "first"
MERGE_UNION = "union"


def _extension_from_url(url: str, default: str) -> str:
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    return suffix if suffix and len(suffix) <= 5 else default


def _split_tags(raw: Any) -> List[str]:
    if isinstance(raw, str):
        return [tag.strip() for tag in raw.split(",") if tag.strip()]
    if isinstance(raw, Iterable):
        tags: List[str] = []
        for tag in raw:
            if isinstance(tag, dict):
                tag = tag.get("title") or tag.get("name") or ""
            if str(tag).strip():
                tags.append(str(tag).strip())
        return tags
    return []


class StockMediaProvider(abc.ABC):
    name: str = "stock"

    @abc.abstractmethod
    def search(self, query: str, kind: AssetKind, limit: int) -> List[MediaCandidate]:
        raise NotImplementedError


class PexelsProvider(StockMediaProvider):
    """Pexels video and photo search."""

    name = "pexels"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.pexels.com",
        orientation: str = "portrait",
        max_width: int = 1920,
        request_timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("Pexels API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.orientation = orientation
        self.max_width = max_width
        self.request_timeout = request_timeout

    def search(self, query: str, kind: AssetKind, limit: int) -> List[MediaCandidate]:
        path = "/videos/search" if kind is AssetKind.VIDEO else "/v1/search"
        response = requests.get(
            f"{self.base_url}{path}",
            headers={"Authorization": self.api_key},
            params={"query": query, "per_page": limit, "orientation": self.orientation},
            timeout=self.request_timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if kind is AssetKind.VIDEO:
            return [c for c in (self._video_candidate(item) for item in payload.get("videos") or []) if c][:limit]
        return [c for c in (self._photo_candidate(item) for item in payload.get("photos") or []) if c][:limit]

    def _video_candidate(self, item: Dict[str, Any]) -> MediaCandidate | None:
        files = [f for f in item.get("video_files") or [] if f.get("link") and f.get("file_type", "video/mp4") == "video/mp4"]
        if not files:
            return None
        within = [f for f in files if (f.get("width") or 0) <= self.max_width]
        chosen = max(within or files, key=lambda f: f.get("width") or 0)
        return MediaCandidate(
            url=chosen["link"],
            kind=AssetKind.VIDEO,
            creator=(item.get("user") or {}).get("name", ""),
            source=self.name,
            tags=_split_tags(item.get("tags") or []),
            extension=".mp4",
        )

    def _photo_candidate(self, item: Dict[str, Any]) -> MediaCandidate | None:
        src = item.get("src") or {}
        url = src.get("large2x") or src.get("large") or src.get("original")
        if not url:
            return None
        alt = item.get("alt") or ""
        return MediaCandidate(
            url=url,
            kind=AssetKind.IMAGE,
            creator=item.get("photographer", ""),
            source=self.name,
            tags=[alt] if alt else [],
            extension=_extension_from_url(url, ".jpg"),
        )


class PixabayProvider(StockMediaProvider):
    """Pixabay video and image search."""

    name = "pixabay"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://pixabay.com/api",
        request_timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("Pixabay API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout

    def search(self, query: str, kind: AssetKind, limit: int) -> List[MediaCandidate]:
        url = f"{self.base_url}/videos/" if kind is AssetKind.VIDEO else f"{self.base_url}/"
        params: Dict[str, Any] = {
            "key": self.api_key,
            "q": query,
            # Pixabay rejects per_page below 3.
            "per_page": max(3, min(limit, 200)),
            "safesearch": "true",
        }
        if kind is AssetKind.IMAGE:
            params["image_type"] = "photo"
        response = requests.get(url, params=params, timeout=self.request_timeout)
        response.raise_for_status()
        hits = response.json().get("hits") or []
        candidates = [self._candidate(hit, kind) for hit in hits]
        return [c for c in candidates if c][:limit]

    def _candidate(self, hit: Dict[str, Any], kind: AssetKind) -> MediaCandidate | None:
        if kind is AssetKind.VIDEO:
            videos = hit.get("videos") or {}
            rendition = videos.get("large") or videos.get("medium") or videos.get("small") or {}
            url = rendition.get("url")
            default_ext = ".mp4"
        else:
            url = hit.get("largeImageURL") or hit.get("webformatURL")
            default_ext = ".jpg"
        if not url:
            return None
        return MediaCandidate(
            url=url,
            kind=kind,
            creator=hit.get("user", ""),
            source=self.name,
            tags=_split_tags(hit.get("tags", "")),
            extension=_extension_from_url(url, default_ext),
        )


class StockMediaSearch:
    """Fans a query out over providers.

    ``first`` returns the first provider's non-empty result; ``union``
    concatenates every provider's results, de-duplicated by URL.
    """

    def __init__(self, providers: Sequence[StockMediaProvider], merge: str = MERGE_FIRST) -> None:
        if merge not in (MERGE_FIRST, MERGE_UNION):
            raise ValueError(f"Unsupported merge mode '{merge}'")
        self.providers = list(providers)
        self.merge = merge

    def search(self, query: str, kind: AssetKind, limit: int) -> List[MediaCandidate]:
        merged: List[MediaCandidate] = []
        seen: set[str] = set()
        for provider in self.providers:
            try:
                results = provider.search(query, kind, limit)
            except Exception as exc:
                logger.warning("%s %s search failed for '%s': %s", provider.name, kind.value, query, exc)
                continue
            logger.info("%s returned %d %s results for '%s'", provider.name, len(results), kind.value, query)
            if not results:
                continue
            if self.merge == MERGE_FIRST:
                return results
            for candidate in results:
                if candidate.url not in seen:
                    seen.add(candidate.url)
                    merged.append(candidate)
        return merged
