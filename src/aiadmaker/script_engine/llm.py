from __future__ import annotations

import abc
import json
import logging
from typing import Any, Iterable

from anthropic import Anthropic

logger = logging.getLogger(__name__)


class LLMClient(abc.ABC):
    """Abstract interface for language models used in the pipeline."""

    @abc.abstractmethod
    def complete(self, prompt: str, **kwargs: Any) -> str:
        raise NotImplementedError


class EchoLLM(LLMClient):
    """Offline stub returning a fixed ad script, or a keyword list when asked for one."""

    SCRIPT = (
        "Craving something fresh? Step into our bakery for warm, flaky pastries baked every morning. "
        "Every bite is made by hand with local ingredients. Visit us today and taste the difference!"
    )
    KEYWORDS = ["bakery", "pastries", "fresh bread", "baker", "coffee shop"]

    def complete(self, prompt: str, **kwargs: Any) -> str:
        if "keywords" in prompt.lower():
            return json.dumps(self.KEYWORDS)
        return self.SCRIPT


class ClaudeLLM(LLMClient):
    """Claude wrapper using the Anthropic Messages API."""

    def __init__(
        self,
        client: Anthropic,
        model: str,
        system_prompt: str | None = None,
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> None:
        self.client = client
        self.model = model
        self.system_prompt = system_prompt or (
            "You are a copywriter for short social media video ads. "
            "You write warm, concise narration and reply with plain text unless JSON is requested."
        )
        self.max_tokens = max_tokens
        self.temperature = temperature

    def complete(self, prompt: str, **kwargs: Any) -> str:
        params: dict[str, Any] = {
            "model": self.model,
            "system": kwargs.pop("system", self.system_prompt),
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
            "temperature": kwargs.pop("temperature", self.temperature),
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": prompt,
                        }
                    ],
                }
            ],
        }
        params.update(kwargs)
        response = self.client.messages.create(**params)
        stop_reason = getattr(response, "stop_reason", None)
        if stop_reason == "max_tokens":
            logger.warning(
                "Claude response truncated by max_tokens; consider increasing limit (current=%s)",
                params.get("max_tokens"),
            )
        return _collect_text(response.content)


def _collect_text(blocks: Iterable[Any]) -> str:
    parts: list[str] = []
    for block in blocks:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text = getattr(block, "text", "")
            parts.append(text)
    return "".join(parts)
