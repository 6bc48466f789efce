from __future__ import annotations

import sys
from pathlib import Path


def pytest_configure(config) -> None:  # pragma: no cover - pytest hook
    root = Path(__file__).resolve().parents[2]
    for path in (root / "src", root / "backend" / "lambda_src"):
        if path.exists() and str(path) not in sys.path:
            sys.path.insert(0, str(path))
