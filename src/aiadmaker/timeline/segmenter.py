from __future__ import annotations

import re
from typing import Iterable

from aiadmaker.errors import EmptyScriptError

from .model import Segment

SENTENCE_BREAK = re.compile(r"[.!?]+")


def split_script(text: str) -> list[str]:
    """Split narration text into sentences on terminal punctuation.

    Punctuation is dropped, whitespace trimmed and empty fragments discarded.
    Raises :class:`EmptyScriptError` when nothing is left.
    """
    if not text or not text.strip():
        raise EmptyScriptError("Script is empty")
    fragments = [fragment.strip() for fragment in SENTENCE_BREAK.split(text)]
    segments = [fragment for fragment in fragments if fragment]
    if not segments:
        raise EmptyScriptError("Script contains no sentences")
    return segments


def build_segments(texts: Iterable[str]) -> list[Segment]:
    return [Segment(index=index, text=text) for index, text in enumerate(texts)]
