from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssetKind(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


class Segment(BaseModel):
    """Sentence-level slice of the narration with its time window."""

    model_config = ConfigDict(frozen=True)

    index: int
    text: str
    start_time: float = Field(default=0.0)
    end_time: float = Field(default=0.0)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class VisualAsset(BaseModel):
    source_path: Path
    kind: AssetKind
    origin_creator: str = ""
    origin_source: str = ""
    tags: set[str] = Field(default_factory=set)
    is_fallback: bool = Field(default=False, description="Local placeholder, never deleted")


class TimelineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: VisualAsset
    allocated_start: float
    allocated_end: float

    @property
    def duration(self) -> float:
        return self.allocated_end - self.allocated_start


class RenderJob(BaseModel):
    timeline: List[TimelineEntry]
    audio_path: Path
    output_path: Path
    captions: Optional[List[Segment]] = None

    @property
    def total_duration(self) -> float:
        if not self.timeline:
            return 0.0
        return self.timeline[-1].allocated_end
