from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict

from aiadmaker.errors import InputValidationError


_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: Dict[str, Any] | None = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": {**_CORS_HEADERS, "Content-Type": "application/json"},
            "body": json.dumps(self.body or {}),
        }


class HttpRequestParser:
    """Extracts the JSON payload from API Gateway proxy events."""

    def parse(self, event: Dict[str, Any]) -> Dict[str, Any]:
        body = event.get("body")
        if body is None or body == "":
            raise InputValidationError("Missing request body")

        if event.get("isBase64Encoded"):  # pragma: no cover - gateway config
            body = base64.b64decode(body).decode("utf-8")

        if isinstance(body, str):
            try:
                return json.loads(body)
            except json.JSONDecodeError as exc:
                raise InputValidationError("Body must be valid JSON") from exc

        if isinstance(body, dict):
            return body

        raise InputValidationError("Unsupported body type")


def cors_preflight_response() -> Dict[str, Any]:
    return {
        "statusCode": 204,
        "headers": {
            **_CORS_HEADERS,
            "Access-Control-Allow-Methods": "POST,OPTIONS",
        },
        "body": "",
    }


def ok(body: Dict[str, Any]) -> Dict[str, Any]:
    return HttpResponse(status_code=200, body=body).to_payload()


def error(status_code: int, code: str, message: str) -> Dict[str, Any]:
    return HttpResponse(status_code=status_code, body={"code": code, "message": message}).to_payload()


def bad_request(code: str, message: str) -> Dict[str, Any]:
    return error(400, code, message)


def not_found(path: str) -> Dict[str, Any]:
    return error(404, "NOT_FOUND", f"No route for {path}")


def server_error(code: str, message: str) -> Dict[str, Any]:
    return error(500, code, message)
