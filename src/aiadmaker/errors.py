from __future__ import annotations

from typing import Optional

UNKNOWN_ERROR = "UNKNOWN_ERROR"


class AdPipelineError(RuntimeError):
    """Base class for pipeline failures that carry a stable machine-readable code."""

    code: str = UNKNOWN_ERROR


class InputValidationError(AdPipelineError):
    """Raised when the prompt or script is missing or empty."""

    code = "MISSING_PROMPT"


class EmptyScriptError(InputValidationError):
    """Raised when a narration script yields no segments."""


class UpstreamGenerationError(AdPipelineError):
    """Raised when a generation service fails or times out."""


class ScriptGenerationError(UpstreamGenerationError):
    code = "SCRIPT_GENERATION_ERROR"


class AudioGenerationError(UpstreamGenerationError):
    code = "AUDIO_GENERATION_ERROR"


class KeywordExtractionError(UpstreamGenerationError):
    code = "KEYWORD_EXTRACTION_ERROR"


class MediaResolutionError(AdPipelineError):
    """Raised when no usable stock asset could be fetched for a segment."""

    code = "VIDEO_DOWNLOAD_ERROR"


class FileIntegrityError(AdPipelineError):
    """Raised when a downloaded or rendered file is missing, empty or undersized."""

    code = "VIDEO_DOWNLOAD_ERROR"


class NoAssetsError(AdPipelineError):
    code = "VIDEO_EDITING_ERROR"


class RenderStageError(AdPipelineError):
    """Raised when the rendering engine fails; the render job is abandoned."""

    code = "VIDEO_EDITING_ERROR"

    def __init__(self, stage: str, cause: Optional[str | BaseException] = None) -> None:
        self.stage = stage
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Render stage '{stage}' failed{detail}")


def error_code_for(exc: BaseException) -> str:
    if isinstance(exc, AdPipelineError):
        return exc.code
    return UNKNOWN_ERROR
