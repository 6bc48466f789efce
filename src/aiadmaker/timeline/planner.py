from __future__ import annotations

import logging
from typing import Sequence

from aiadmaker.errors import NoAssetsError

from .model import Segment, TimelineEntry, VisualAsset

logger = logging.getLogger(__name__)


def _equal_share(total_duration: float, count: int) -> list[tuple[float, float]]:
    per_item = total_duration / count
    bounds = [(index * per_item, (index + 1) * per_item) for index in range(count)]
    # Absorb floating-point drift so the last window ends exactly on the total.
    last_start, _ = bounds[-1]
    bounds[-1] = (last_start, total_duration)
    return bounds


class TimelinePlanner:
    """Allocates narration time to visual assets using an equal-share split."""

    def plan(self, total_duration: float, assets: Sequence[VisualAsset]) -> list[TimelineEntry]:
        if total_duration <= 0:
            raise ValueError(f"Total duration must be positive, got {total_duration}")
        if not assets:
            raise NoAssetsError("Cannot plan a timeline without assets")
        entries = [
            TimelineEntry(asset=asset, allocated_start=start, allocated_end=end)
            for asset, (start, end) in zip(assets, _equal_share(total_duration, len(assets)))
        ]
        logger.info(
            "Planned %d timeline entries over %.2fs (%.2fs each)",
            len(entries),
            total_duration,
            total_duration / len(entries),
        )
        return entries

    def assign_segments(self, total_duration: float, texts: Sequence[str]) -> list[Segment]:
        if total_duration <= 0:
            raise ValueError(f"Total duration must be positive, got {total_duration}")
        if not texts:
            return []
        return [
            Segment(index=index, text=text, start_time=start, end_time=end)
            for index, (text, (start, end)) in enumerate(zip(texts, _equal_share(total_duration, len(texts))))
        ]
