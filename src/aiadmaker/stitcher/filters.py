"""ffmpeg-python graph builders for each render stage.

Builders return unexecuted output nodes; arguments are only serialized when
the engine runs them. Caption text reaches the renderer through a subtitle
script, never through the command line.
"""

from __future__ import annotations

import re
import textwrap
from pathlib import Path
from typing import Any, Sequence

import ffmpeg

from aiadmaker.timeline.model import AssetKind, TimelineEntry

from .model import RenderSettings

_QUOTE_CHARS = re.compile(r"[\"'`“”‘’«»]")
_ASS_OVERRIDE = re.compile(r"[\\%{}]")
_WHITESPACE = re.compile(r"\s+")


def _seconds(value: float) -> str:
    return f"{value:.3f}"


def sanitize_caption_text(text: str, max_chars: int = 120) -> str:
    """Strip quotes and ASS override characters, collapse newlines and cap the length."""
    cleaned = _QUOTE_CHARS.sub("", text)
    cleaned = _ASS_OVERRIDE.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if len(cleaned) <= max_chars:
        return cleaned
    cut = cleaned[: max(1, max_chars - 3)].rstrip()
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return f"{cut}..."


def wrap_caption(text: str, line_chars: int) -> str:
    return "\n".join(textwrap.wrap(text, width=line_chars)) or text


def normalized_clip(entry: TimelineEntry, settings: RenderSettings) -> Any:
    """Trim or loop one asset to its slot and letterbox it into the target frame."""
    duration = _seconds(entry.duration)
    path = str(entry.asset.source_path)
    if entry.asset.kind is AssetKind.IMAGE:
        source = ffmpeg.input(path, loop=1, t=duration)
    else:
        # Short clips repeat from their own start until the slot is filled.
        source = ffmpeg.input(path, stream_loop=-1, t=duration)
    return (
        source.video.filter(
            "scale",
            settings.width,
            settings.height,
            force_original_aspect_ratio="decrease",
        )
        .filter(
            "pad",
            settings.width,
            settings.height,
            "(ow-iw)/2",
            "(oh-ih)/2",
            color=settings.pad_color,
        )
        .filter("setsar", 1)
        .filter("fps", fps=settings.fps)
        .filter("format", "yuv420p")
        .filter("trim", duration=duration)
        .filter("setpts", "PTS-STARTPTS")
    )


def build_normalize(
    timeline: Sequence[TimelineEntry],
    output_path: Path,
    total_duration: float,
    settings: RenderSettings,
) -> Any:
    clips = [normalized_clip(entry, settings) for entry in timeline]
    joined = ffmpeg.concat(*clips, v=1, a=0)
    return ffmpeg.output(
        joined,
        str(output_path),
        t=_seconds(total_duration),
        r=settings.fps,
        vcodec=settings.video_codec,
        pix_fmt="yuv420p",
        preset=settings.preset,
        crf=settings.crf,
        an=None,
    )


def build_mux(video_path: Path, audio_path: Path, output_path: Path, settings: RenderSettings) -> Any:
    video = ffmpeg.input(str(video_path)).video
    audio = ffmpeg.input(str(audio_path)).audio
    return ffmpeg.output(
        video,
        audio,
        str(output_path),
        vcodec=settings.video_codec,
        acodec=settings.audio_codec,
        pix_fmt="yuv420p",
        preset=settings.preset,
        crf=settings.crf,
        movflags="+faststart",
        shortest=None,
        **{"b:a": settings.audio_bitrate},
    )


def build_caption(input_path: Path, subtitle_path: Path, output_path: Path, settings: RenderSettings) -> Any:
    """Burn one caption script onto the video with the libass ``subtitles`` filter.

    The script carries its own cue window, so frames outside it pass through
    untouched.
    """
    source = ffmpeg.input(str(input_path))
    options: dict[str, Any] = {}
    if settings.caption_fonts_dir:
        options["fontsdir"] = str(settings.caption_fonts_dir)
    video = source.video.filter("subtitles", str(subtitle_path), **options)
    return ffmpeg.output(
        video,
        source.audio,
        str(output_path),
        vcodec=settings.video_codec,
        acodec="copy",
        pix_fmt="yuv420p",
        preset=settings.preset,
        crf=settings.crf,
        movflags="+faststart",
    )


def build_placeholder(output_path: Path, settings: RenderSettings, color: str = "black") -> Any:
    source = ffmpeg.input(f"color=c={color}:s={settings.width}x{settings.height}:d=1", f="lavfi")
    return ffmpeg.output(source, str(output_path), vframes=1)
