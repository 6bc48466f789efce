from __future__ import annotations

from pydantic import BaseModel, Field


class AdScript(BaseModel):
    """Narration script generated for one ad prompt."""

    prompt: str
    text: str = Field(description="Narration read by the voice and split into caption segments")
