from __future__ import annotations

import logging
import re

from aiadmaker.errors import KeywordExtractionError
from aiadmaker.script_engine.llm import LLMClient
from aiadmaker.script_engine.prompts import render_keyword_prompt
from aiadmaker.script_engine.utils import load_json_with_repair

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"[a-z][a-z'-]+")
MAX_FALLBACK_KEYWORDS = 8

STOP_WORDS = frozenset(
    """
    a about above after again all also am an and any are as at be because been before being
    below between both but by can could did do does doing down during each every few for from
    further get got had has have having he her here hers herself him himself his how i if in
    into is it its itself just let like made make me more most my myself no nor not now of off
    on once only or other our ours ourselves out over own same she should so some such than
    that the their theirs them themselves then there these they this those through to today
    too under until up us very was we were what when where which while who whom why will with
    would you your yours yourself yourselves visit try come see new best
    """.split()
)


def fallback_keywords(text: str, limit: int = MAX_FALLBACK_KEYWORDS) -> set[str]:
    """Deterministic stop-word-filtered tokenization used when the extractor is unavailable."""
    selected: list[str] = []
    for token in WORD_PATTERN.findall(text.lower()):
        token = token.strip("'-")
        if len(token) < 3 or token in STOP_WORDS or token in selected:
            continue
        selected.append(token)
        if len(selected) >= limit:
            break
    return set(selected)


def keywords_for_segment(segment_text: str, script_keywords: set[str], limit: int = 4) -> set[str]:
    """Script keywords mentioned in the sentence, else the sentence's own tokens."""
    lowered = segment_text.lower()
    mentioned = {keyword for keyword in script_keywords if keyword in lowered}
    return mentioned or fallback_keywords(segment_text, limit=limit)


class KeywordExtractor:
    """Extracts stock-media search keywords with an LLM, degrading to local tokenization."""

    def __init__(self, llm: LLMClient | None = None, max_tokens: int = 100) -> None:
        self.llm = llm
        self.max_tokens = max_tokens

    def extract(self, text: str) -> set[str]:
        if not text.strip():
            return set()
        try:
            keywords = self._extract_remote(text)
        except KeywordExtractionError as exc:
            logger.warning("Keyword extraction failed; using local tokenization: %s", exc)
            return fallback_keywords(text)
        if not keywords:
            logger.warning("Keyword extractor returned nothing; using local tokenization")
            return fallback_keywords(text)
        return keywords

    def _extract_remote(self, text: str) -> set[str]:
        if self.llm is None:
            raise KeywordExtractionError("No keyword model configured")
        try:
            raw = self.llm.complete(render_keyword_prompt(text), max_tokens=self.max_tokens)
            payload = load_json_with_repair(raw, logger=logger, repair_log_level=logging.DEBUG)
        except Exception as exc:
            raise KeywordExtractionError(str(exc)) from exc
        if isinstance(payload, dict):
            payload = payload.get("keywords", [])
        if not isinstance(payload, list):
            raise KeywordExtractionError(f"Unexpected keyword payload: {payload!r}")
        return {str(item).strip().lower() for item in payload if str(item).strip()}
