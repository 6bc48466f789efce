from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Protocol, Sequence, Tuple

from aiadmaker.errors import FileIntegrityError, MediaResolutionError
from aiadmaker.timeline.model import AssetKind, VisualAsset

from .downloader import MediaDownloader
from .model import MediaCandidate
from .stock_search import StockMediaSearch

logger = logging.getLogger(__name__)

SEARCH_ORDER = (AssetKind.VIDEO, AssetKind.IMAGE)


class FallbackSource(Protocol):
    def asset(self) -> VisualAsset:
        ...


class AssetResolver:
    """Binds stock media to script segments, substituting a placeholder when nothing usable is found."""

    def __init__(
        self,
        search: StockMediaSearch,
        downloader: MediaDownloader,
        fallback: FallbackSource,
        *,
        trusted_source: str | None = "pexels",
        search_limit: int = 5,
        max_query_terms: int = 3,
    ) -> None:
        self.search = search
        self.downloader = downloader
        self.fallback = fallback
        self.trusted_source = trusted_source.lower() if trusted_source else None
        self.search_limit = search_limit
        self.max_query_terms = max_query_terms

    def resolve(self, segment_text: str, keywords: Iterable[str]) -> VisualAsset:
        keyword_list = self._normalize_keywords(keywords)
        query = self._query(segment_text, keyword_list)
        for kind in SEARCH_ORDER:
            for candidate in self._accepted(query, kind, keyword_list, self.search_limit):
                try:
                    return self.downloader.download(candidate)
                except (MediaResolutionError, FileIntegrityError) as exc:
                    logger.warning("Skipping %s candidate %s: %s", kind.value, candidate.url, exc)
        logger.warning("No stock media resolved for '%s'; using fallback asset", query)
        return self.fallback.asset()

    def resolve_many(
        self,
        requests: Sequence[Tuple[str, Iterable[str]]],
        max_workers: int = 4,
    ) -> List[VisualAsset]:
        """Resolve independent segments concurrently; results keep input order."""
        if not requests:
            return []
        workers = max(1, min(max_workers, len(requests)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="asset-resolve") as pool:
            futures = [pool.submit(self.resolve, text, keywords) for text, keywords in requests]
            return [future.result() for future in futures]

    def resolve_script(self, script_text: str, keywords: Iterable[str], limit: int) -> List[VisualAsset]:
        """Download up to ``limit`` assets for the whole script."""
        keyword_list = self._normalize_keywords(keywords)
        query = self._query(script_text, keyword_list)
        for kind in SEARCH_ORDER:
            assets: List[VisualAsset] = []
            for candidate in self._accepted(query, kind, keyword_list, limit):
                try:
                    assets.append(self.downloader.download(candidate))
                except (MediaResolutionError, FileIntegrityError) as exc:
                    logger.warning("Skipping %s candidate %s: %s", kind.value, candidate.url, exc)
                if len(assets) >= limit:
                    break
            if assets:
                return assets
        logger.warning("No stock media resolved for script query '%s'; using fallback asset", query)
        return [self.fallback.asset()]

    def is_relevant(self, candidate: MediaCandidate, keywords: Sequence[str]) -> bool:
        if self.trusted_source and candidate.source.lower() == self.trusted_source:
            return True
        tags = [tag.lower() for tag in candidate.tags]
        return any(keyword in tag for tag in tags for keyword in keywords)

    # ------------------------------------------------------------------
    def _accepted(
        self,
        query: str,
        kind: AssetKind,
        keywords: Sequence[str],
        limit: int,
    ) -> List[MediaCandidate]:
        candidates = self.search.search(query, kind, limit)
        accepted = [candidate for candidate in candidates if self.is_relevant(candidate, keywords)]
        if candidates and not accepted:
            logger.info("Filtered out all %d %s results for '%s'", len(candidates), kind.value, query)
        return accepted

    @staticmethod
    def _normalize_keywords(keywords: Iterable[str]) -> List[str]:
        return sorted({keyword.strip().lower() for keyword in keywords if keyword and keyword.strip()})

    def _query(self, text: str, keywords: Sequence[str]) -> str:
        if keywords:
            return " ".join(keywords[: self.max_query_terms])
        return " ".join(text.split()[:6])
