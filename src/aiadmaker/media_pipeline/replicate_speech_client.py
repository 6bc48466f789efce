from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict

import requests

from .model import NarrationClient, VoiceParams

logger = logging.getLogger(__name__)

_TERMINAL_STATES = {"succeeded", "failed", "canceled"}


class ReplicateSpeechError(RuntimeError):
    """Raised when a Replicate speech prediction fails."""


class ReplicateSpeechClient(NarrationClient):
    """Runs a text-to-speech model through the Replicate predictions API."""

    def __init__(
        self,
        api_token: str,
        model: str = "minimax/speech-02-hd",
        base_url: str = "https://api.replicate.com/v1",
        poll_interval: float = 2.0,
        request_timeout: float = 60.0,
        max_wait: float = 180.0,
        audio_format: str = "mp3",
    ) -> None:
        if not api_token:
            raise ValueError("Replicate API token is required")
        self.api_token = api_token
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.request_timeout = request_timeout
        self.max_wait = max_wait
        self.audio_format = audio_format

    def synthesize(self, text: str, voice: VoiceParams, output_audio: Path) -> Path:
        output_audio.parent.mkdir(parents=True, exist_ok=True)
        prediction = self._create_prediction(text, voice)
        if prediction.get("status") not in _TERMINAL_STATES:
            prediction = self._poll_until_complete(prediction)
        if prediction.get("status") != "succeeded":
            raise ReplicateSpeechError(f"Speech prediction {prediction.get('id')} failed: {prediction.get('error')}")

        output = prediction.get("output")
        if isinstance(output, list):
            output = output[0] if output else None
        if not output:
            raise ReplicateSpeechError("Speech prediction returned no audio URL")
        self._download(str(output), output_audio)
        return output_audio

    # Internal helpers -------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    @staticmethod
    def _input(text: str, voice: VoiceParams) -> Dict[str, Any]:
        return {
            "text": text,
            "pitch": voice.pitch,
            "speed": voice.speed,
            "volume": voice.volume,
            "bitrate": voice.bitrate,
            "channel": voice.channel,
            "emotion": voice.emotion,
            "voice_id": voice.voice_id,
            "sample_rate": voice.sample_rate,
            "language_boost": voice.language,
            "english_normalization": voice.language.lower() == "english",
        }

    def _create_prediction(self, text: str, voice: VoiceParams) -> Dict[str, Any]:
        response = requests.post(
            f"{self.base_url}/models/{self.model}/predictions",
            headers=self._headers(),
            json={"input": self._input(text, voice)},
            timeout=self.request_timeout,
        )
        if response.status_code >= 400:
            logger.error("Replicate prediction failed (%s): %s", response.status_code, response.text)
        response.raise_for_status()
        return response.json()

    def _poll_until_complete(self, prediction: Dict[str, Any]) -> Dict[str, Any]:
        poll_url = (prediction.get("urls") or {}).get("get")
        if not poll_url:
            raise ReplicateSpeechError(f"Prediction payload missing poll URL: {prediction}")
        start = time.monotonic()
        while True:
            if time.monotonic() - start > self.max_wait:
                raise TimeoutError(f"Speech prediction timed out after {self.max_wait} seconds")
            time.sleep(self.poll_interval)
            response = requests.get(poll_url, headers=self._headers(), timeout=self.request_timeout)
            response.raise_for_status()
            prediction = response.json()
            if prediction.get("status") in _TERMINAL_STATES:
                return prediction

    def _download(self, url: str, target: Path) -> None:
        response = requests.get(url, stream=True, timeout=self.request_timeout)
        response.raise_for_status()
        with target.open("wb") as handle:
            for chunk in response.iter_content(chunk_size=8192):
                handle.write(chunk)
        logger.info("Saved narration audio to %s", target)
