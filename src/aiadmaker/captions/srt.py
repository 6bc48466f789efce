from __future__ import annotations

from pathlib import Path
from typing import Sequence

from aiadmaker.timeline.model import Segment


def format_timestamp(seconds: float) -> str:
    total_ms = int(round(max(seconds, 0.0) * 1000))
    ms = total_ms % 1000
    total_seconds = total_ms // 1000
    s = total_seconds % 60
    total_minutes = total_seconds // 60
    m = total_minutes % 60
    h = total_minutes // 60
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def build_srt(segments: Sequence[Segment]) -> str:
    blocks = []
    for number, segment in enumerate(segments, start=1):
        blocks.append(
            f"{number}\n"
            f"{format_timestamp(segment.start_time)} --> {format_timestamp(segment.end_time)}\n"
            f"{segment.text.strip()}\n"
        )
    return "\n".join(blocks)


def write_srt(segments: Sequence[Segment], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build_srt(segments), encoding="utf-8")
    return path
