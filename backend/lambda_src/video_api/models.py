from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from aiadmaker.errors import InputValidationError


@dataclass(frozen=True)
class GenerateVideoRequest:
    prompt: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GenerateVideoRequest":
        if not isinstance(payload, Mapping):
            raise InputValidationError("Request body must be a JSON object")
        prompt = payload.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise InputValidationError("Prompt is required")
        return cls(prompt=prompt.strip())
