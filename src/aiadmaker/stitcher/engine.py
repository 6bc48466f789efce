from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Any

import ffmpeg
from imageio_ffmpeg import get_ffmpeg_exe
from moviepy.editor import AudioFileClip, VideoFileClip

from aiadmaker.errors import RenderStageError

logger = logging.getLogger(__name__)

_STDERR_TAIL = 1500


class RenderEngine(abc.ABC):
    """Blocking boundary to the external renderer.

    ``run`` returns only once the engine has finished, and raises
    :class:`RenderStageError` if it failed.
    """

    @abc.abstractmethod
    def run(self, stream: Any, stage: str) -> None:
        raise NotImplementedError


class FfmpegRenderEngine(RenderEngine):
    def __init__(self, executable: str | None = None) -> None:
        self.executable = executable or get_ffmpeg_exe()

    def run(self, stream: Any, stage: str) -> None:
        logger.debug("ffmpeg %s args: %s", stage, " ".join(stream.get_args()))
        try:
            stream.run(
                cmd=self.executable,
                capture_stdout=True,
                capture_stderr=True,
                overwrite_output=True,
            )
        except ffmpeg.Error as exc:
            stderr = (exc.stderr or b"").decode("utf-8", errors="replace")
            logger.error("ffmpeg %s failed:\n%s", stage, stderr[-_STDERR_TAIL:])
            raise RenderStageError(stage, stderr[-_STDERR_TAIL:].strip() or exc) from exc
        except OSError as exc:
            raise RenderStageError(stage, exc) from exc


class MediaProbe:
    """Measures media durations with moviepy."""

    def audio_duration(self, path: Path) -> float:
        clip = AudioFileClip(str(path))
        try:
            return float(clip.duration)
        finally:
            clip.close()

    def video_duration(self, path: Path) -> float:
        clip = VideoFileClip(str(path), audio=False)
        try:
            return float(clip.duration)
        finally:
            clip.close()
