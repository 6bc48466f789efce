from __future__ import annotations

import abc
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from aiadmaker.timeline.model import AssetKind


class VoiceParams(BaseModel):
    """Pass-through narration settings."""

    voice_id: str = "English_CalmWoman"
    pitch: int = 0
    speed: float = 1.0
    volume: float = 1.0
    bitrate: int = 128000
    channel: str = "mono"
    sample_rate: int = 32000
    language: str = "English"
    emotion: str = "auto"


class NarrationClient(abc.ABC):
    """Text-to-speech backend that writes narration audio to disk."""

    audio_format: str = "mp3"

    @abc.abstractmethod
    def synthesize(self, text: str, voice: VoiceParams, output_audio: Path) -> Path:
        raise NotImplementedError


class MediaCandidate(BaseModel):
    """Stock search hit before download."""

    url: str
    kind: AssetKind
    creator: str = ""
    source: str = ""
    tags: List[str] = Field(default_factory=list)
    extension: str = ".mp4"
