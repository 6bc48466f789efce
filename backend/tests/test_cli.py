from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from aiadmaker import cli
from aiadmaker.errors import AudioGenerationError


class StubOrchestrator:
    def __init__(self, config, error: Exception | None = None) -> None:
        self.config = config
        self.error = error
        self.calls: list[tuple[str, Path | None]] = []

    def run(self, prompt, output_dir=None):
        self.calls.append((prompt, output_dir))
        if self.error:
            raise self.error
        manifest = SimpleNamespace(final_ad="/out/final_ad.mp4")
        return SimpleNamespace(manifest=manifest, manifest_path=Path("/out/manifest.json"))


def _install(monkeypatch, error: Exception | None = None) -> list[StubOrchestrator]:
    built: list[StubOrchestrator] = []

    def fake_default(config):
        orchestrator = StubOrchestrator(config, error)
        built.append(orchestrator)
        return orchestrator

    monkeypatch.setattr(cli.PipelineOrchestrator, "default", staticmethod(fake_default))
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)
    return built


def test_cli_applies_flag_overrides(monkeypatch, tmp_path, capsys):
    built = _install(monkeypatch)
    monkeypatch.setattr(
        sys,
        "argv",
        ["aiadmaker", "Bakery", "--no-captions", "--asset-mode", "script", "--output-dir", str(tmp_path)],
    )

    cli.main()

    config = built[0].config
    assert config.render.captions_enabled is False
    assert config.asset_mode == "script"
    assert built[0].calls == [("Bakery", tmp_path)]
    assert "/out/manifest.json" in capsys.readouterr().out


def test_cli_exits_with_error_code(monkeypatch, capsys):
    _install(monkeypatch, AudioGenerationError("speech service timed out"))
    monkeypatch.setattr(sys, "argv", ["aiadmaker", "Bakery"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    assert "AUDIO_GENERATION_ERROR" in capsys.readouterr().err
