from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class ApiSettings:
    data_root: Path
    pipeline_config_path: Path | None
    anthropic_api_key_parameter: Optional[str] = None
    replicate_api_token_parameter: Optional[str] = None
    elevenlabs_api_key_parameter: Optional[str] = None
    pexels_api_key_parameter: Optional[str] = None
    pixabay_api_key_parameter: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ApiSettings":
        return cls(
            data_root=Path(os.environ.get("DATA_ROOT", "/tmp/data")),
            pipeline_config_path=Path(os.environ["PIPELINE_CONFIG_PATH"])
            if "PIPELINE_CONFIG_PATH" in os.environ
            else None,
            anthropic_api_key_parameter=os.environ.get("ANTHROPIC_API_KEY_PARAMETER"),
            replicate_api_token_parameter=os.environ.get("REPLICATE_API_TOKEN_PARAMETER"),
            elevenlabs_api_key_parameter=os.environ.get("ELEVEN_LABS_API_KEY_PARAMETER"),
            pexels_api_key_parameter=os.environ.get("PEXELS_API_KEY_PARAMETER"),
            pixabay_api_key_parameter=os.environ.get("PIXABAY_API_KEY_PARAMETER"),
        )

    def secret_parameters(
        self,
        *,
        anthropic_env: str,
        replicate_env: str,
        elevenlabs_env: str,
        pexels_env: str,
        pixabay_env: str,
    ) -> Dict[str, Optional[str]]:
        """Map the pipeline's API-key environment variables to their SSM parameters."""
        return {
            anthropic_env: self.anthropic_api_key_parameter,
            replicate_env: self.replicate_api_token_parameter,
            elevenlabs_env: self.elevenlabs_api_key_parameter,
            pexels_env: self.pexels_api_key_parameter,
            pixabay_env: self.pixabay_api_key_parameter,
        }
