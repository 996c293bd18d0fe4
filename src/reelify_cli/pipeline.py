from __future__ import annotations

import importlib
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from .analysis.mapper import Mapper
from .analysis.provider import AnalysisProvider
from .analysis.registry import ProviderRegistry
from .analysis.types import VisualSchema
from .config import ConfigError, ReelifyConfig, load_config_or_default
from .director.synthesizer import DirectorPolicy, MotionIR, director
from .errors import CONFIG_HINT, ErrorCategory, PipelineError, ValidationGateError
from .render.coder import coder
from .render.composition import Composition
from .render.remotion import RemotionRenderer
from .render.renderer import Renderer, RenderRequest, VideoMetadata, video_metadata
from .reproducibility import artifact_name, get_pipeline_version, new_request_id
from .schema import now_utc_iso
from .validate import validate_schema

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGES = ("analyze", "direct", "compose", "render", "publish")

HEALTH_COMPONENTS = {
    "mapper": "reelify_cli.analysis.mapper",
    "director": "reelify_cli.director.synthesizer",
    "coder": "reelify_cli.render.coder",
    "renderer": "reelify_cli.render.remotion",
}


def is_remote_ref(image_ref: str) -> bool:
    """URLs and inline data: URIs are handed to the provider without a filesystem check."""
    return "://" in image_ref or image_ref.startswith("data:")


@dataclass
class StageResult:
    name: str
    success: bool
    duration_sec: float
    attempts: int = 1
    message: str = ""


@dataclass
class PipelineResult:
    request_id: str
    output_path: Path
    video_url: str
    metadata: VideoMetadata
    motion_ir: MotionIR
    processing_time: float
    stage_results: list[StageResult] = field(default_factory=list)

    def to_response(self, include_motion_ir: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "videoUrl": self.video_url,
            "metadata": self.metadata.to_json_dict(),
            "processingTime": self.processing_time,
            "requestId": self.request_id,
        }
        if include_motion_ir:
            payload["motionIR"] = self.motion_ir.to_json_dict()
        return payload


@dataclass
class HealthReport:
    components: dict[str, bool] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return all(self.components.values())


class Pipeline:
    """Sequences analyze → direct → compose → render → publish for one request at a time.

    Instances hold configuration and collaborators only; every run builds its
    own schema, timeline and composition, so one instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        config: Optional[ReelifyConfig] = None,
        analysis_provider: Optional[AnalysisProvider] = None,
        renderer: Optional[Renderer] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ReelifyConfig()
        self.mapper = Mapper(analysis_provider)
        self.renderer = renderer or RemotionRenderer(
            self.config.render, temp_dir=self.config.paths.temp_dir
        )
        self.policy = DirectorPolicy.from_settings(self.config.director)
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config: Optional[ReelifyConfig] = None) -> "Pipeline":
        config = config or load_config_or_default()
        registry = ProviderRegistry(config)
        try:
            provider = registry.get_default_provider()
        except ConfigError as e:
            if not config.pipeline.enable_fallbacks:
                raise
            logger.warning("Analysis provider unavailable (%s); using fallback analysis.", e)
            provider = registry.get_provider("fallback")
        return cls(config, analysis_provider=provider)

    @property
    def max_attempts(self) -> int:
        settings = self.config.pipeline
        return settings.max_retries if settings.enable_fallbacks else 1

    def _run_stage(
        self,
        name: str,
        func: Callable[[], T],
        request_id: str,
        results: list[StageResult],
    ) -> T:
        start = self._clock()
        attempts = self.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                value = func()
            except ValidationGateError as e:
                results.append(StageResult(name, False, self._clock() - start, attempt, str(e)))
                raise PipelineError.wrap(e, name, request_id, attempt) from e
            except Exception as e:
                if attempt >= attempts:
                    results.append(StageResult(name, False, self._clock() - start, attempt, str(e)))
                    raise PipelineError.wrap(e, name, request_id, attempt) from e
                delay = self.config.pipeline.backoff_sec * attempt
                logger.warning(
                    "[%s] %s attempt %d/%d failed (%s); retrying in %.1fs",
                    request_id[:8],
                    name,
                    attempt,
                    attempts,
                    e,
                    delay,
                )
                self._sleep(delay)
                continue

            results.append(StageResult(name, True, self._clock() - start, attempt, "ok"))
            return value

        raise AssertionError("unreachable")

    def _analyze(self, image_path: str) -> VisualSchema:
        if not is_remote_ref(image_path) and not Path(image_path).exists():
            raise ValidationGateError("analyze", [f"image not found: {image_path}"])
        schema = self.mapper.map(image_path)
        if self.config.pipeline.enable_validation:
            result = validate_schema(schema)
            if not result.is_valid:
                raise ValidationGateError("analyze", result.errors)
        return schema

    def _direct(self, schema: VisualSchema, prompt: str, image_path: str) -> MotionIR:
        motion_ir = director(
            schema, prompt, image_path, policy=self.policy, created_at=now_utc_iso()
        )
        if self.config.pipeline.enable_validation and not motion_ir.validation.is_valid:
            raise ValidationGateError("direct", motion_ir.validation.errors)
        return motion_ir

    def _render(self, composition: Composition, image_path: str) -> Path:
        fmt = self.config.render.output_format
        output_path = self.config.paths.output_dir / artifact_name("output", f".{fmt}")
        return self.renderer.render(
            RenderRequest(
                composition=composition,
                output_path=output_path,
                image_src=image_path,
                timeout_sec=self.config.pipeline.timeout_sec,
            )
        )

    def public_url(self, video_path: Path) -> str:
        return f"{self.config.public_base_url.rstrip('/')}/api/videos/{video_path.name}"

    def run(self, image_path: str, prompt: str, request_id: Optional[str] = None) -> PipelineResult:
        """Generate a video for one request.

        Raises:
            PipelineError: On any stage failure; there is no partial result.
        """
        request_id = request_id or new_request_id()
        started = self._clock()
        results: list[StageResult] = []
        logger.info("[%s] generating video for %s", request_id[:8], image_path)

        schema = self._run_stage("analyze", lambda: self._analyze(image_path), request_id, results)
        motion_ir = self._run_stage(
            "direct", lambda: self._direct(schema, prompt, image_path), request_id, results
        )
        composition = self._run_stage("compose", lambda: coder(motion_ir), request_id, results)
        video_path = self._run_stage(
            "render", lambda: self._render(composition, image_path), request_id, results
        )
        metadata, url = self._run_stage(
            "publish",
            lambda: (video_metadata(composition, video_path), self.public_url(video_path)),
            request_id,
            results,
        )

        elapsed = self._clock() - started
        logger.info("[%s] video ready at %s (%.2fs)", request_id[:8], url, elapsed)
        return PipelineResult(
            request_id=request_id,
            output_path=video_path,
            video_url=url,
            metadata=metadata,
            motion_ir=motion_ir,
            processing_time=elapsed,
            stage_results=results,
        )

    def health_check(self) -> HealthReport:
        """Check that each component loads and constructs; does not run the pipeline."""
        report = HealthReport()
        checks: dict[str, Callable[[], Any]] = {
            "mapper": lambda: Mapper(self.mapper.provider),
            "director": lambda: DirectorPolicy.from_settings(self.config.director),
            "coder": lambda: coder,
            "renderer": lambda: self.renderer.renderer_id,
        }
        for name, module_name in HEALTH_COMPONENTS.items():
            try:
                importlib.import_module(module_name)
                checks[name]()
                report.components[name] = True
            except Exception as e:
                report.components[name] = False
                report.errors.append(f"{name}: {type(e).__name__}: {e}")
        return report

    def stats(self) -> dict[str, Any]:
        settings = self.config.pipeline
        return {
            "version": get_pipeline_version(),
            "stages": list(STAGES),
            "max_attempts": self.max_attempts,
            "backoff_sec": settings.backoff_sec,
            "timeout_sec": settings.timeout_sec,
            "validation_enabled": settings.enable_validation,
            "fallbacks_enabled": settings.enable_fallbacks,
            "analysis_provider": self.mapper.provider_id,
            "renderer": self.renderer.renderer_id,
            "renderer_available": self.renderer.check(),
        }


def generate_video(
    image_path: str,
    prompt: str,
    config: Optional[ReelifyConfig] = None,
    pipeline: Optional[Pipeline] = None,
) -> dict[str, Any]:
    """Caller-facing entry point: a result bundle or a structured error, never both."""
    request_id = new_request_id()
    try:
        pipeline = pipeline or Pipeline.from_config(config)
        return pipeline.run(image_path, prompt, request_id=request_id).to_response()
    except ConfigError as e:
        logger.error("[%s] configuration error: %s", request_id[:8], e)
        return PipelineError(
            f"Configuration error: {e}. {CONFIG_HINT}", ErrorCategory.UNKNOWN, request_id
        ).to_response()
    except PipelineError as e:
        logger.error("[%s] %s", e.request_id[:8], e)
        return e.to_response()
