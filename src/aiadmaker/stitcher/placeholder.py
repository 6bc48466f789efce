from __future__ import annotations

import logging
import threading
from pathlib import Path

from aiadmaker.timeline.model import AssetKind, VisualAsset

from .engine import RenderEngine
from .filters import build_placeholder
from .model import RenderSettings

logger = logging.getLogger(__name__)


class PlaceholderImage:
    """Fixed local fallback image, rendered once from a solid colour if it does not exist yet."""

    def __init__(
        self,
        path: Path,
        engine: RenderEngine,
        settings: RenderSettings | None = None,
        color: str = "black",
    ) -> None:
        self.path = Path(path)
        self.engine = engine
        self.settings = settings or RenderSettings()
        self.color = color
        self._lock = threading.Lock()

    def asset(self) -> VisualAsset:
        with self._lock:
            if not self.path.exists() or self.path.stat().st_size == 0:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Rendering fallback placeholder at %s", self.path)
                self.engine.run(build_placeholder(self.path, self.settings, self.color), stage="placeholder")
        return VisualAsset(
            source_path=self.path,
            kind=AssetKind.IMAGE,
            origin_creator="",
            origin_source="placeholder",
            is_fallback=True,
        )
