from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from anthropic import Anthropic
from pydantic import BaseModel, Field

from aiadmaker.captions.srt import write_srt
from aiadmaker.errors import AudioGenerationError, EmptyScriptError, InputValidationError, ScriptGenerationError
from aiadmaker.keywords.extractor import KeywordExtractor, keywords_for_segment
from aiadmaker.manifest import AssetManifest, MediaBinding, SegmentTiming
from aiadmaker.media_pipeline.downloader import MediaDownloader
from aiadmaker.media_pipeline.elevenlabs_client import ElevenLabsClient
from aiadmaker.media_pipeline.model import NarrationClient, VoiceParams
from aiadmaker.media_pipeline.replicate_speech_client import ReplicateSpeechClient
from aiadmaker.media_pipeline.resolver import AssetResolver
from aiadmaker.media_pipeline.stock_search import (
    MERGE_FIRST,
    PexelsProvider,
    PixabayProvider,
    StockMediaProvider,
    StockMediaSearch,
)
from aiadmaker.media_pipeline.voice import NarrationAsset, NarrationManager
from aiadmaker.naming import slugify, unique_token
from aiadmaker.script_engine.engine import ScriptEngine
from aiadmaker.script_engine.llm import ClaudeLLM, EchoLLM, LLMClient
from aiadmaker.stitcher.assembler import RenderPipeline, release_assets
from aiadmaker.stitcher.engine import FfmpegRenderEngine, MediaProbe, RenderEngine
from aiadmaker.stitcher.model import RenderResult, RenderSettings
from aiadmaker.stitcher.placeholder import PlaceholderImage
from aiadmaker.timeline.model import RenderJob, Segment, VisualAsset
from aiadmaker.timeline.planner import TimelinePlanner
from aiadmaker.timeline.segmenter import split_script

logger = logging.getLogger(__name__)

ASSET_MODE_SEGMENT = "segment"
ASSET_MODE_SCRIPT = "script"


class PipelineConfig(BaseModel):
    data_root: Path = Path("data")
    # Script generation
    llm_provider: str = "claude"
    llm_model: str = "claude-sonnet-4-5"
    anthropic_api_key_env: str = "ANTHROPIC_API_KEY"
    llm_timeout: float = 60.0
    script_max_tokens: int = 300
    keyword_max_tokens: int = 100
    # Narration
    narration_provider: str = "replicate"
    replicate_api_token_env: str = "REPLICATE_API_TOKEN"
    speech_model: str = "minimax/speech-02-hd"
    elevenlabs_api_key_env: str = "ELEVEN_LABS_API_KEY"
    elevenlabs_model_id: str = "eleven_turbo_v2"
    voice: VoiceParams = Field(default_factory=VoiceParams)
    # Stock media
    pexels_api_key_env: str = "PEXELS_API_KEY"
    pixabay_api_key_env: str = "PIXABAY_API_KEY"
    search_merge: str = MERGE_FIRST
    search_limit: int = 5
    trusted_source: Optional[str] = "pexels"
    asset_mode: str = ASSET_MODE_SEGMENT
    script_asset_limit: int = 4
    asset_workers: int = 4
    fallback_image: Optional[Path] = None
    # Rendering
    ffmpeg_executable: Optional[str] = None
    render: RenderSettings = Field(default_factory=RenderSettings)

    @classmethod
    def from_file(cls, path: Path) -> "PipelineConfig":
        text = path.read_text(encoding="utf-8")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            import yaml  # type: ignore[import-not-found]

            payload = yaml.safe_load(text)
        return cls.model_validate(payload)

    @property
    def fallback_image_path(self) -> Path:
        return self.fallback_image or self.data_root / "assets" / "fallback.png"

    def build_llm(self) -> LLMClient:
        provider = self.llm_provider.lower()
        if provider == "echo":
            return EchoLLM()
        if provider == "claude":
            api_key = os.getenv(self.anthropic_api_key_env)
            if not api_key:
                raise RuntimeError(
                    f"Missing Anthropic API key. Set {self.anthropic_api_key_env} in your environment."
                )
            client = Anthropic(api_key=api_key, timeout=self.llm_timeout, max_retries=1)
            return ClaudeLLM(client=client, model=self.llm_model, max_tokens=self.script_max_tokens)
        logger.warning("Unknown llm_provider '%s'; falling back to EchoLLM", provider)
        return EchoLLM()

    def build_narration_client(self) -> NarrationClient:
        provider = self.narration_provider.lower()
        if provider == "replicate":
            token = os.getenv(self.replicate_api_token_env)
            if not token:
                raise RuntimeError(
                    f"Missing Replicate API token. Set {self.replicate_api_token_env} in your environment."
                )
            return ReplicateSpeechClient(api_token=token, model=self.speech_model)
        if provider == "elevenlabs":
            api_key = os.getenv(self.elevenlabs_api_key_env) or os.getenv("ELEVENLABS_API_KEY")
            if not api_key:
                raise RuntimeError(
                    f"Missing ElevenLabs API key. Set {self.elevenlabs_api_key_env} in your environment."
                )
            return ElevenLabsClient(api_key=api_key, model_id=self.elevenlabs_model_id)
        raise ValueError(f"Unsupported narration_provider '{self.narration_provider}'")

    def build_stock_search(self) -> StockMediaSearch:
        providers: list[StockMediaProvider] = []
        pexels_key = os.getenv(self.pexels_api_key_env)
        if pexels_key:
            providers.append(PexelsProvider(api_key=pexels_key))
        pixabay_key = os.getenv(self.pixabay_api_key_env)
        if pixabay_key:
            providers.append(PixabayProvider(api_key=pixabay_key))
        if not providers:
            logger.warning(
                "No stock media API keys found in %s or %s; every segment will use the fallback image",
                self.pexels_api_key_env,
                self.pixabay_api_key_env,
            )
        return StockMediaSearch(providers, merge=self.search_merge)


class PipelineResult(BaseModel):
    manifest: AssetManifest
    manifest_path: Path
    run_dir: Path


@dataclass
class PipelineOrchestrator:
    config: PipelineConfig
    script_engine: ScriptEngine
    keyword_extractor: KeywordExtractor
    narration: NarrationManager
    downloader: MediaDownloader
    resolver: AssetResolver
    planner: TimelinePlanner
    render_pipeline: RenderPipeline
    probe: MediaProbe

    @classmethod
    def from_file(cls, path: Path) -> "PipelineOrchestrator":
        config = PipelineConfig.from_file(path)
        return cls.default(config)

    @classmethod
    def default(cls, config: PipelineConfig | None = None) -> "PipelineOrchestrator":
        config = config or PipelineConfig()
        data_root = config.data_root
        llm = config.build_llm()
        engine: RenderEngine = FfmpegRenderEngine(executable=config.ffmpeg_executable)
        probe = MediaProbe()
        downloader = MediaDownloader(asset_dir=data_root / "media/stock")
        placeholder = PlaceholderImage(config.fallback_image_path, engine, config.render)

        return cls(
            config=config,
            script_engine=ScriptEngine(llm=llm, max_tokens=config.script_max_tokens),
            keyword_extractor=KeywordExtractor(llm=llm, max_tokens=config.keyword_max_tokens),
            narration=NarrationManager(
                base_dir=data_root / "media/voice",
                client=config.build_narration_client(),
                voice=config.voice,
            ),
            downloader=downloader,
            resolver=AssetResolver(
                search=config.build_stock_search(),
                downloader=downloader,
                fallback=placeholder,
                trusted_source=config.trusted_source,
                search_limit=config.search_limit,
            ),
            planner=TimelinePlanner(),
            render_pipeline=RenderPipeline(engine=engine, settings=config.render, probe=probe),
            probe=probe,
        )

    def run(self, prompt: str, output_dir: Path | None = None) -> PipelineResult:
        if not prompt or not prompt.strip():
            raise InputValidationError("Prompt is required")

        logger.info("Generating ad script")
        script = self.script_engine.generate_script(prompt)
        try:
            sentences = split_script(script.text)
        except EmptyScriptError as exc:
            # the prompt was valid; the model returned nothing usable
            raise ScriptGenerationError(f"Generated script has no narration: {exc}") from exc
        logger.info("Script split into %d segments", len(sentences))

        run_dirs = self._prepare_run_environment(slugify(prompt), output_dir)

        logger.info("Synthesizing narration")
        narration = self.narration.prepare(script.text)

        logger.info("Extracting stock media keywords")
        keywords = self.keyword_extractor.extract(script.text)

        logger.info("Resolving visual assets (%s mode)", self.config.asset_mode)
        assets = self._resolve_assets(script.text, sentences, keywords)

        try:
            audio_duration = self._measure_narration(narration)
            segments = self.planner.assign_segments(audio_duration, sentences)
            timeline = self.planner.plan(audio_duration, assets)
        except Exception:
            release_assets(assets)
            raise

        export_dir = run_dirs["export_dir"]
        job = RenderJob(
            timeline=timeline,
            audio_path=narration.audio_path,
            output_path=export_dir / "final_ad.mp4",
            captions=segments if self.config.render.captions_enabled else None,
        )
        logger.info("Rendering %.2fs ad with %d visual assets", audio_duration, len(timeline))
        render = self.render_pipeline.render(job)

        captions_path = write_srt(segments, export_dir / "captions.srt")
        manifest = self._build_manifest(
            prompt=prompt,
            script_text=script.text,
            segments=segments,
            keywords=keywords,
            narration=narration,
            audio_duration=audio_duration,
            job=job,
            render=render,
            captions_path=captions_path,
        )
        manifest_path = manifest.write(run_dirs["run_dir"] / "manifest.json")
        logger.info("Wrote manifest to %s", manifest_path)
        return PipelineResult(manifest=manifest, manifest_path=manifest_path, run_dir=run_dirs["run_dir"])

    # ------------------------------------------------------------------

    def _prepare_run_environment(self, slug: str, output_dir: Path | None) -> dict[str, Path]:
        base = output_dir or self.config.data_root / "runs"
        run_dir = base / f"{slug}-{unique_token()}"
        media_dir = run_dir / "media"
        stock_dir = media_dir / "stock"
        voice_dir = media_dir / "voice"
        export_dir = run_dir / "exports"

        for path in (stock_dir, voice_dir, export_dir):
            path.mkdir(parents=True, exist_ok=True)

        # Point the collaborators at this run's directories
        self.downloader.asset_dir = stock_dir
        self.narration.base_dir = voice_dir

        return {
            "run_dir": run_dir,
            "stock_dir": stock_dir,
            "voice_dir": voice_dir,
            "export_dir": export_dir,
        }

    def _resolve_assets(self, script_text: str, sentences: list[str], keywords: set[str]) -> list[VisualAsset]:
        mode = self.config.asset_mode.lower()
        if mode == ASSET_MODE_SCRIPT:
            return self.resolver.resolve_script(script_text, keywords, limit=self.config.script_asset_limit)
        if mode != ASSET_MODE_SEGMENT:
            raise ValueError(f"Unsupported asset_mode '{self.config.asset_mode}'")
        requests = [(sentence, keywords_for_segment(sentence, keywords)) for sentence in sentences]
        return self.resolver.resolve_many(requests, max_workers=self.config.asset_workers)

    def _measure_narration(self, narration: NarrationAsset) -> float:
        try:
            duration = self.probe.audio_duration(narration.audio_path)
        except OSError as exc:
            raise AudioGenerationError(f"Could not read narration audio: {exc}") from exc
        if duration <= 0:
            raise AudioGenerationError(f"Narration audio has no duration: {narration.audio_path}")
        return duration

    def _build_manifest(
        self,
        *,
        prompt: str,
        script_text: str,
        segments: list[Segment],
        keywords: set[str],
        narration: NarrationAsset,
        audio_duration: float,
        job: RenderJob,
        render: RenderResult,
        captions_path: Path,
    ) -> AssetManifest:
        per_segment = self.config.asset_mode.lower() == ASSET_MODE_SEGMENT
        media = [
            MediaBinding.from_entry(entry, segment_index=index if per_segment else None)
            for index, entry in enumerate(job.timeline)
        ]
        return AssetManifest(
            prompt=prompt.strip(),
            script=script_text,
            segments=[segment.text for segment in segments],
            audio=str(narration.audio_path),
            media=media,
            final_ad=str(render.output_path),
            audio_duration=audio_duration,
            segment_timings=[SegmentTiming.from_segment(segment) for segment in segments],
            keywords=sorted(keywords),
            normalized_video=str(render.normalized_path),
            muxed_video=str(render.muxed_path),
            captions_file=str(captions_path),
            final_duration=render.duration,
        )
