from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .model import NarrationClient, VoiceParams

logger = logging.getLogger(__name__)


class ElevenLabsError(RuntimeError):
    """Raised when the ElevenLabs API reports an error."""


class ElevenLabsClient(NarrationClient):
    """Thin wrapper around the ElevenLabs Text-to-Speech API."""

    def __init__(
        self,
        api_key: str,
        default_voice_id: str | None = None,
        model_id: str = "eleven_turbo_v2",
        base_url: str = "https://api.elevenlabs.io",
        voice_settings: Optional[Dict[str, Any]] = None,
        request_timeout: float = 60.0,
    ) -> None:
        if not api_key:
            raise ValueError("ElevenLabs API key is required")
        self.api_key = api_key
        self.voice_id = default_voice_id
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self.voice_settings = voice_settings or {"stability": 0.3, "similarity_boost": 0.75}
        self.request_timeout = request_timeout

    def synthesize(self, text: str, voice: VoiceParams, output_audio: Path) -> Path:
        voice_id = self.voice_id or voice.voice_id
        if not voice_id:
            raise ValueError("A voice_id must be provided to synthesize narration")
        output_audio.parent.mkdir(parents=True, exist_ok=True)

        response = requests.post(
            f"{self.base_url}/v1/text-to-speech/{voice_id}",
            headers=self._headers(f"audio/{self.audio_format}"),
            params={"output_format": self._output_format(voice)},
            json=self._payload(text, voice),
            timeout=self.request_timeout,
        )
        if response.status_code >= 400:
            raise ElevenLabsError(self._format_error(response))
        output_audio.write_bytes(response.content)
        logger.info("Saved narration audio to %s", output_audio)
        return output_audio

    # ------------------------------------------------------------------
    def _payload(self, text: str, voice: VoiceParams) -> Dict[str, Any]:
        settings = dict(self.voice_settings)
        settings["speed"] = voice.speed
        return {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": settings,
        }

    def _headers(self, accept: str) -> Dict[str, str]:
        return {
            "xi-api-key": self.api_key,
            "accept": accept,
            "content-type": "application/json",
        }

    @staticmethod
    def _output_format(voice: VoiceParams) -> str:
        # ElevenLabs only offers a fixed menu of mp3 encodings.
        sample_rate = 44100 if voice.sample_rate > 24000 else 22050
        kbps = 128 if voice.bitrate >= 128000 else 64
        return f"mp3_{sample_rate}_{kbps}"

    @staticmethod
    def _format_error(response: requests.Response) -> str:
        try:
            payload = response.json()
            message = payload.get("detail") or payload
        except ValueError:
            message = response.text
        return f"{response.status_code} {message}"
