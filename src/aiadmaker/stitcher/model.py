from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class RenderStage(str, Enum):
    NORMALIZE = "normalize"
    MUX = "mux"
    CAPTION = "caption"
    DONE = "done"
    FAILED = "failed"


class RenderSettings(BaseModel):
    width: int = 1080
    height: int = 1920
    fps: int = 30
    pad_color: str = "black"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    preset: str = "veryfast"
    crf: int = 20
    captions_enabled: bool = True
    caption_font_name: str = "DejaVu Sans"
    caption_font_size: int = 56
    # ASS colours are &HAABBGGRR with 00 opaque and FF transparent.
    caption_primary_colour: str = "&H00FFFFFF"
    caption_outline_colour: str = "&H00000000"
    caption_back_colour: str = "&H73000000"
    caption_margin: int = 220
    caption_max_chars: int = 120
    caption_line_chars: int = 28
    caption_fonts_dir: Optional[Path] = None


class RenderResult(BaseModel):
    output_path: Path
    normalized_path: Path
    muxed_path: Path
    completed_stages: List[RenderStage] = Field(default_factory=list)
    duration: Optional[float] = Field(default=None, description="Probed duration of the final render")
