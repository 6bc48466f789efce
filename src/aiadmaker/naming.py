from __future__ import annotations

import uuid
from datetime import datetime, timezone


def slugify(text: str) -> str:
    cleaned = "".join(ch.lower() if ch.isalnum() else "-" for ch in text)
    return "-".join(filter(None, cleaned.split("-")))[:60] or "ad"


def unique_token() -> str:
    """UTC timestamp plus a random suffix; unique across threads and processes."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    return f"{stamp}_{uuid.uuid4().hex[:12]}"


def unique_filename(prefix: str, extension: str) -> str:
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return f"{prefix}_{unique_token()}{extension}"
