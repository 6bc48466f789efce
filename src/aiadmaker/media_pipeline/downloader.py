from __future__ import annotations

import logging
from pathlib import Path

import requests

from aiadmaker.errors import FileIntegrityError, MediaResolutionError
from aiadmaker.naming import unique_filename
from aiadmaker.timeline.model import VisualAsset

from .model import MediaCandidate

logger = logging.getLogger(__name__)


class MediaDownloader:
    """Streams stock media to uniquely named files in the shared asset directory."""

    def __init__(
        self,
        asset_dir: Path,
        request_timeout: float = 60.0,
        min_bytes: int = 1024,
    ) -> None:
        self._asset_dir = Path(asset_dir)
        self.request_timeout = request_timeout
        self.min_bytes = min_bytes

    @property
    def asset_dir(self) -> Path:
        return self._asset_dir

    @asset_dir.setter
    def asset_dir(self, value: Path) -> None:
        self._asset_dir = Path(value)

    def download(self, candidate: MediaCandidate) -> VisualAsset:
        self.asset_dir.mkdir(parents=True, exist_ok=True)
        target = self.asset_dir / unique_filename(candidate.kind.value, candidate.extension)
        try:
            response = requests.get(candidate.url, stream=True, timeout=self.request_timeout)
            response.raise_for_status()
            with target.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=8192):
                    handle.write(chunk)
        except (requests.RequestException, OSError) as exc:
            target.unlink(missing_ok=True)
            raise MediaResolutionError(f"Download failed for {candidate.url}: {exc}") from exc

        size = target.stat().st_size
        if size < self.min_bytes:
            target.unlink(missing_ok=True)
            raise FileIntegrityError(f"Downloaded {candidate.url} is {size} bytes; expected at least {self.min_bytes}")

        logger.info("Saved %s from %s to %s", candidate.kind.value, candidate.source or "stock", target)
        return VisualAsset(
            source_path=target,
            kind=candidate.kind,
            origin_creator=candidate.creator,
            origin_source=candidate.source,
            tags=set(candidate.tags),
        )
