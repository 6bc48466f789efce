from __future__ import annotations

import logging
from typing import Any, Dict

from aiadmaker.errors import AdPipelineError, InputValidationError, UNKNOWN_ERROR
from aiadmaker.orchestrator import PipelineConfig, PipelineOrchestrator
from aiadmaker.ssm import hydrate_secrets
from video_api.config import ApiSettings
from video_api.http import (
    HttpRequestParser,
    bad_request,
    cors_preflight_response,
    not_found,
    ok,
    server_error,
)
from video_api.models import GenerateVideoRequest

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

GENERATE_ROUTE = "/video/generate"


class VideoApiApplication:
    """Routes API Gateway events to the ad pipeline and maps failures to error codes."""

    def __init__(
        self,
        orchestrator: PipelineOrchestrator | None = None,
        request_parser: HttpRequestParser | None = None,
        settings: ApiSettings | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._parser = request_parser or HttpRequestParser()
        self._settings = settings

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        method = str(event.get("httpMethod") or "").upper()
        path = str(event.get("path") or event.get("resource") or "")
        logger.info("Video API event received: %s %s", method, path)

        if method == "OPTIONS":
            return cors_preflight_response()
        if method != "POST" or not path.rstrip("/").endswith(GENERATE_ROUTE):
            return not_found(path)

        try:
            payload = self._parser.parse(event)
            request = GenerateVideoRequest.from_payload(payload)
        except InputValidationError as exc:
            return bad_request(exc.code, str(exc))

        try:
            result = self._ensure_orchestrator().run(request.prompt)
        except InputValidationError as exc:
            return bad_request(exc.code, str(exc))
        except AdPipelineError as exc:
            logger.error("Ad generation failed with %s: %s", exc.code, exc)
            return server_error(exc.code, str(exc))
        except Exception:
            logger.exception("Unexpected failure while generating ad")
            return server_error(UNKNOWN_ERROR, "Unexpected error while generating video")

        manifest = result.manifest
        return ok({"videoLocation": manifest.final_ad, "metadata": manifest.to_payload()})

    def _ensure_orchestrator(self) -> PipelineOrchestrator:
        if self._orchestrator:
            return self._orchestrator
        settings = self._settings or ApiSettings.from_env()
        if settings.pipeline_config_path:
            config = PipelineConfig.from_file(settings.pipeline_config_path)
        else:
            config = PipelineConfig(data_root=settings.data_root)
        config = config.model_copy(update={"data_root": settings.data_root})

        hydrate_secrets(
            settings.secret_parameters(
                anthropic_env=config.anthropic_api_key_env,
                replicate_env=config.replicate_api_token_env,
                elevenlabs_env=config.elevenlabs_api_key_env,
                pexels_env=config.pexels_api_key_env,
                pixabay_env=config.pixabay_api_key_env,
            )
        )

        self._orchestrator = PipelineOrchestrator.default(config)
        return self._orchestrator


_application: VideoApiApplication | None = None


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:  # pragma: no cover - AWS entry
    global _application
    if _application is None:
        _application = VideoApiApplication()
    return _application.handle_event(event)
