from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

import boto3

_logger = logging.getLogger(__name__)
_ssm_client = None
_parameter_cache: dict[str, str] = {}


def _client():
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def get_parameter(name: str, *, decrypt: bool = True, cache: bool = True) -> str:
    """Fetch a SecureString/String parameter from SSM Parameter Store."""
    if not name:
        raise ValueError("Parameter name cannot be empty")
    if cache and name in _parameter_cache:
        return _parameter_cache[name]
    response = _client().get_parameter(Name=name, WithDecryption=decrypt)
    value: str = response["Parameter"]["Value"]
    if cache:
        _parameter_cache[name] = value
    return value


def hydrate_secrets(parameters: Mapping[str, Optional[str]]) -> list[str]:
    """Copy SSM parameters into environment variables that are still unset.

    ``parameters`` maps an environment variable name (for example
    ``PEXELS_API_KEY``) to the SSM parameter holding its value. Returns the
    variables that were populated.
    """
    populated: list[str] = []
    for env_name, parameter_name in parameters.items():
        if not parameter_name or os.getenv(env_name):
            continue
        try:
            os.environ[env_name] = get_parameter(parameter_name)
        except Exception:
            _logger.exception("Failed to load %s from SSM parameter %s", env_name, parameter_name)
            raise
        _logger.info("Loaded %s from SSM parameter %s", env_name, parameter_name)
        populated.append(env_name)
    return populated
