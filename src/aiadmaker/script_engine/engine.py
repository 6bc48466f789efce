from __future__ import annotations

import logging
import re

from aiadmaker.errors import InputValidationError, ScriptGenerationError

from .llm import EchoLLM, LLMClient
from .model import AdScript
from .prompts import render_script_prompt

logger = logging.getLogger(__name__)

_QUOTES = "\"'“”"


class ScriptEngine:
    def __init__(self, llm: LLMClient | None = None, max_tokens: int = 300) -> None:
        self.llm = llm or EchoLLM()
        self.max_tokens = max_tokens

    def generate_script(self, prompt: str) -> AdScript:
        if not prompt or not prompt.strip():
            raise InputValidationError("Prompt is required")
        request = render_script_prompt(prompt)
        try:
            raw = self.llm.complete(request, max_tokens=self.max_tokens)
        except Exception as exc:
            logger.error("Script generation failed: %s", exc)
            raise ScriptGenerationError(f"Script generation failed: {exc}") from exc
        logger.debug("LLM raw response: %s", raw)

        text = clean_script(raw or "")
        if not text:
            raise ScriptGenerationError("Script generator returned no text")
        return AdScript(prompt=prompt.strip(), text=text)


def clean_script(raw: str) -> str:
    candidate = raw.strip()
    if candidate.startswith("```"):
        lines = [line for line in candidate.splitlines() if not line.startswith("```")]
        candidate = "\n".join(lines)
    candidate = re.sub(r"\s+", " ", candidate).strip()
    return candidate.strip(_QUOTES).strip()
