from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from aiadmaker.captions.ass import write_caption_ass
from aiadmaker.errors import FileIntegrityError, NoAssetsError, RenderStageError
from aiadmaker.naming import unique_token
from aiadmaker.timeline.model import RenderJob, VisualAsset

from .engine import MediaProbe, RenderEngine
from .filters import build_caption, build_mux, build_normalize
from .model import RenderResult, RenderSettings, RenderStage

logger = logging.getLogger(__name__)

_NEXT_STAGE = {
    RenderStage.NORMALIZE: RenderStage.MUX,
    RenderStage.MUX: RenderStage.CAPTION,
    RenderStage.CAPTION: RenderStage.DONE,
}


def release_assets(assets: Iterable[VisualAsset]) -> None:
    """Delete downloaded source files. Failures are logged, never raised."""
    seen: set[Path] = set()
    for asset in assets:
        path = Path(asset.source_path)
        if asset.is_fallback or path in seen:
            continue
        seen.add(path)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete source asset %s: %s", path, exc)


@dataclass
class _RenderState:
    job: RenderJob
    token: str
    stage: RenderStage = RenderStage.NORMALIZE
    completed: List[RenderStage] = field(default_factory=list)
    normalized_path: Optional[Path] = None
    muxed_path: Optional[Path] = None
    scratch: List[Path] = field(default_factory=list)

    def work_path(self, label: str, suffix: str = ".mp4") -> Path:
        output = self.job.output_path
        return output.with_name(f"{output.stem}.{self.token}.{label}{suffix}")


class RenderPipeline:
    """Drives the renderer through normalize, mux and caption stages.

    Each stage is one blocking engine invocation; a stage starts only after the
    previous one has returned. Any failure moves the job to ``FAILED`` and
    surfaces a :class:`RenderStageError`. The job's source assets are released
    on every exit path.
    """

    def __init__(
        self,
        engine: RenderEngine,
        settings: RenderSettings | None = None,
        probe: MediaProbe | None = None,
        release_sources: bool = True,
    ) -> None:
        self.engine = engine
        self.settings = settings or RenderSettings()
        self.probe = probe
        self.release_sources = release_sources
        self._handlers: Dict[RenderStage, Callable[[_RenderState], None]] = {
            RenderStage.NORMALIZE: self._normalize,
            RenderStage.MUX: self._mux,
            RenderStage.CAPTION: self._caption,
        }

    def render(self, job: RenderJob) -> RenderResult:
        if not job.timeline:
            raise NoAssetsError("Render job has an empty timeline")
        job.output_path.parent.mkdir(parents=True, exist_ok=True)
        state = _RenderState(job=job, token=unique_token())
        try:
            while state.stage is not RenderStage.DONE:
                logger.info("Render stage %s started", state.stage.value)
                try:
                    self._handlers[state.stage](state)
                except (FileIntegrityError, OSError) as exc:
                    raise RenderStageError(state.stage.value, exc) from exc
                state.completed.append(state.stage)
                state.stage = _NEXT_STAGE[state.stage]
        except RenderStageError:
            logger.error("Render job for %s failed during %s", job.output_path.name, state.stage.value)
            state.stage = RenderStage.FAILED
            raise
        finally:
            self._discard(state.scratch)
            if self.release_sources:
                release_assets(entry.asset for entry in job.timeline)

        duration = self._probe_duration(job)
        logger.info("Render complete: %s", job.output_path)
        return RenderResult(
            output_path=job.output_path,
            normalized_path=state.normalized_path,
            muxed_path=state.muxed_path,
            completed_stages=state.completed,
            duration=duration,
        )

    # Stage handlers -------------------------------------------------------

    def _normalize(self, state: _RenderState) -> None:
        target = state.work_path("normalized")
        stream = build_normalize(state.job.timeline, target, state.job.total_duration, self.settings)
        self.engine.run(stream, RenderStage.NORMALIZE.value)
        _require_output(target)
        state.normalized_path = target

    def _mux(self, state: _RenderState) -> None:
        target = state.work_path("muxed")
        stream = build_mux(state.normalized_path, state.job.audio_path, target, self.settings)
        self.engine.run(stream, RenderStage.MUX.value)
        _require_output(target)
        state.muxed_path = target

    def _caption(self, state: _RenderState) -> None:
        segments = state.job.captions if self.settings.captions_enabled else None
        final = state.job.output_path
        if not segments:
            logger.info("Captions disabled or empty; keeping muxed output")
            shutil.copyfile(state.muxed_path, final)
            _require_output(final)
            return

        current = state.muxed_path
        for position, segment in enumerate(segments):
            is_last = position == len(segments) - 1
            target = final if is_last else state.work_path(f"caption-{segment.index}")
            if not is_last:
                state.scratch.append(target)
            script = state.work_path(f"caption-{segment.index}", suffix=".ass")
            state.scratch.append(script)
            write_caption_ass(segment, script, self.settings)
            self.engine.run(build_caption(current, script, target, self.settings), RenderStage.CAPTION.value)
            _require_output(target)
            current = target

    # ------------------------------------------------------------------

    def _probe_duration(self, job: RenderJob) -> float | None:
        if self.probe is None:
            return None
        try:
            duration = self.probe.video_duration(job.output_path)
        except Exception as exc:  # moviepy surfaces parse failures as KeyError/IndexError
            logger.warning("Could not probe final render %s: %s", job.output_path, exc)
            return None
        tolerance = 1.0 / self.settings.fps
        if abs(duration - job.total_duration) > tolerance:
            logger.warning(
                "Final render is %.3fs; narration is %.3fs (tolerance %.3fs)",
                duration,
                job.total_duration,
                tolerance,
            )
        return duration

    @staticmethod
    def _discard(paths: Iterable[Path]) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete intermediate %s: %s", path, exc)


def _require_output(path: Path) -> None:
    if not path.exists():
        raise FileIntegrityError(f"Renderer produced no file at {path}")
    if path.stat().st_size == 0:
        raise FileIntegrityError(f"Renderer produced an empty file at {path}")
