from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from aiadmaker.timeline.model import AssetKind, Segment, TimelineEntry


class MediaBinding(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    segment_index: Optional[int] = Field(default=None, alias="segmentIndex")
    path: str
    kind: AssetKind
    creator: str = ""
    source: str = ""
    start: float
    end: float
    fallback: bool = False

    @classmethod
    def from_entry(cls, entry: TimelineEntry, segment_index: Optional[int] = None) -> "MediaBinding":
        asset = entry.asset
        return cls(
            segment_index=segment_index,
            path=str(asset.source_path),
            kind=asset.kind,
            creator=asset.origin_creator,
            source=asset.origin_source,
            start=entry.allocated_start,
            end=entry.allocated_end,
            fallback=asset.is_fallback,
        )


class SegmentTiming(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    start: float
    end: float

    @classmethod
    def from_segment(cls, segment: Segment) -> "SegmentTiming":
        return cls(index=segment.index, start=segment.start_time, end=segment.end_time)


class AssetManifest(BaseModel):
    """Final record of one pipeline run. Written once after the render finishes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str
    script: str
    segments: List[str]
    audio: str
    media: List[MediaBinding]
    final_ad: str = Field(alias="finalAd")
    audio_duration: float = Field(alias="audioDuration")
    segment_timings: List[SegmentTiming] = Field(alias="segmentTimings")
    keywords: List[str] = Field(default_factory=list)
    normalized_video: Optional[str] = Field(default=None, alias="normalizedVideo")
    muxed_video: Optional[str] = Field(default=None, alias="muxedVideo")
    captions_file: Optional[str] = Field(default=None, alias="captionsFile")
    final_duration: Optional[float] = Field(default=None, alias="finalDuration")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_payload(), indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "AssetManifest":
        return cls.model_validate(json.loads(path.read_text(encoding="utf-8")))
