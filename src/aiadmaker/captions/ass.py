from __future__ import annotations

from pathlib import Path

from aiadmaker.stitcher.filters import sanitize_caption_text, wrap_caption
from aiadmaker.stitcher.model import RenderSettings
from aiadmaker.timeline.model import Segment

STYLE_NAME = "Caption"
# numpad layout: 2 is bottom centre
BOTTOM_CENTRE = 2


def format_ass_time(seconds: float) -> str:
    total_cs = max(0, int(round(seconds * 100)))
    cs = total_cs % 100
    total_seconds = total_cs // 100
    s = total_seconds % 60
    total_minutes = total_seconds // 60
    m = total_minutes % 60
    h = total_minutes // 60
    return f"{h}:{m:02d}:{s:02d}.{cs:02d}"


def caption_text(segment: Segment, settings: RenderSettings) -> str:
    """Sanitized, wrapped caption text with ASS line breaks."""
    text = sanitize_caption_text(segment.text, settings.caption_max_chars)
    return wrap_caption(text, settings.caption_line_chars).replace("\n", "\\N")


def build_caption_ass(segment: Segment, settings: RenderSettings) -> str:
    """One-cue ASS script that shows ``segment`` only inside its time window.

    ``PlayResX``/``PlayResY`` match the output frame so font size and margin
    are in pixels.
    """
    header = [
        "[Script Info]",
        "ScriptType: v4.00+",
        f"PlayResX: {settings.width}",
        f"PlayResY: {settings.height}",
        "ScaledBorderAndShadow: yes",
        "WrapStyle: 2",
        "",
        "[V4+ Styles]",
        "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding",
        (
            f"Style: {STYLE_NAME}, {settings.caption_font_name}, {settings.caption_font_size}, "
            f"{settings.caption_primary_colour}, {settings.caption_primary_colour}, "
            f"{settings.caption_outline_colour}, {settings.caption_back_colour}, "
            f"-1,0,0,0, 100,100, 0, 0, 1, 3, 1, {BOTTOM_CENTRE}, 60,60,{settings.caption_margin}, 1"
        ),
        "",
        "[Events]",
        "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text",
        (
            f"Dialogue: 0,{format_ass_time(segment.start_time)},{format_ass_time(segment.end_time)},"
            f"{STYLE_NAME},,0,0,0,,{caption_text(segment, settings)}"
        ),
    ]
    return "\n".join(header) + "\n"


def write_caption_ass(segment: Segment, path: Path, settings: RenderSettings) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build_caption_ass(segment, settings), encoding="utf-8")
    return path
