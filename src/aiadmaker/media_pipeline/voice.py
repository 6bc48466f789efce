from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from aiadmaker.errors import AudioGenerationError
from aiadmaker.naming import unique_filename

from .model import NarrationClient, VoiceParams

logger = logging.getLogger(__name__)


@dataclass
class NarrationAsset:
    transcript_path: Path
    audio_path: Path


class NarrationManager:
    """Writes the transcript and synthesized narration for one run."""

    def __init__(
        self,
        base_dir: Path,
        client: NarrationClient,
        voice: VoiceParams | None = None,
    ) -> None:
        self._base_dir = Path(base_dir)
        self.client = client
        self.voice = voice or VoiceParams()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @base_dir.setter
    def base_dir(self, value: Path) -> None:
        self._base_dir = Path(value)

    def prepare(self, script_text: str) -> NarrationAsset:
        if not script_text.strip():
            raise AudioGenerationError("Cannot synthesize narration for an empty script")
        self.base_dir.mkdir(parents=True, exist_ok=True)

        transcript_path = self.base_dir / "transcript.txt"
        transcript_path.write_text(script_text, encoding="utf-8")

        audio_path = self.base_dir / unique_filename("narration", self.client.audio_format)
        logger.info("Synthesizing narration with voice %s", self.voice.voice_id)
        try:
            self.client.synthesize(script_text, self.voice, audio_path)
        except Exception as exc:
            logger.error("Narration synthesis failed: %s", exc)
            raise AudioGenerationError(f"Narration synthesis failed: {exc}") from exc

        if not audio_path.exists() or audio_path.stat().st_size == 0:
            raise AudioGenerationError(f"Narration audio missing or empty at {audio_path}")
        return NarrationAsset(transcript_path=transcript_path, audio_path=audio_path)
