from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from reelify_cli.config import PathsConfig, PipelineSettings, ReelifyConfig
from reelify_cli.errors import ErrorCategory, PipelineError, categorize_error
from reelify_cli.pipeline import Pipeline, generate_video, is_remote_ref
from reelify_cli.render.renderer import Renderer, RenderError, RenderOutcome, RenderRequest


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRenderer(Renderer):
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls = 0
        self.requests: list[RenderRequest] = []

    @property
    def renderer_id(self) -> str:
        return "fake"

    def check(self) -> bool:
        return True

    def render(self, request: RenderRequest) -> Path:
        self.calls += 1
        self.requests.append(request)
        if self.calls <= self.failures:
            raise RenderError(RenderOutcome("exit_error", request.output_path, returncode=1, message="boom"))
        request.output_path.parent.mkdir(parents=True, exist_ok=True)
        request.output_path.write_bytes(b"fake video")
        return request.output_path


@pytest.fixture
def image(tmp_path: Path) -> Path:
    path = tmp_path / "sunset.jpg"
    path.write_bytes(b"not really a jpeg")
    return path


@pytest.fixture
def config(tmp_path: Path) -> ReelifyConfig:
    return ReelifyConfig(
        public_base_url="http://videos.test/",
        paths=PathsConfig(output_dir=tmp_path / "output", temp_dir=tmp_path / "temp"),
    )


def _pipeline(config, renderer, clock=None):
    clock = clock or FakeClock()
    return Pipeline(config, renderer=renderer, sleep=clock.sleep, clock=clock)


class TestPipelineRun:
    def test_success(self, config, image):
        renderer = FakeRenderer()
        result = _pipeline(config, renderer).run(str(image), "cinematic zoom, 4 seconds")

        assert [s.name for s in result.stage_results] == ["analyze", "direct", "compose", "render", "publish"]
        assert all(s.success and s.attempts == 1 for s in result.stage_results)
        assert result.output_path.parent == config.paths.output_dir
        assert result.output_path.suffix == ".mp4"
        assert result.video_url == f"http://videos.test/api/videos/{result.output_path.name}"
        assert result.metadata.duration == 4
        assert result.metadata.file_size == len(b"fake video")
        assert result.motion_ir.timeline.metadata.created_at != "1970-01-01T00:00:00Z"
        assert renderer.requests[0].image_src == str(image)
        assert renderer.requests[0].timeout_sec == 300

    def test_uses_fallback_analysis_for_sunset(self, config, image):
        result = _pipeline(config, FakeRenderer()).run(str(image), "calm")
        assert result.motion_ir.timeline.metadata.background_color == "#ff7e5f"

    def test_response_shape(self, config, image):
        response = _pipeline(config, FakeRenderer()).run(str(image), "calm").to_response()
        assert set(response) == {"videoUrl", "metadata", "processingTime", "requestId", "motionIR"}
        assert response["metadata"]["fileSize"] == len(b"fake video")
        assert response["motionIR"]["validation"]["isValid"] is True

    def test_retry_with_linear_backoff(self, config, image):
        clock = FakeClock()
        renderer = FakeRenderer(failures=2)
        result = _pipeline(config, renderer, clock).run(str(image), "calm")

        assert renderer.calls == 3
        assert clock.sleeps == [1.0, 2.0]
        assert result.processing_time >= 3.0
        render_stage = next(s for s in result.stage_results if s.name == "render")
        assert render_stage.attempts == 3

    def test_exhausted_retries(self, config, image):
        clock = FakeClock()
        renderer = FakeRenderer(failures=5)
        with pytest.raises(PipelineError) as exc_info:
            _pipeline(config, renderer, clock).run(str(image), "calm", request_id="req-1")

        err = exc_info.value
        assert renderer.calls == 3
        assert clock.sleeps == [1.0, 2.0]
        assert err.category == ErrorCategory.RENDERING
        assert err.request_id == "req-1"
        assert "after 3 attempts" in str(err)
        assert err.to_response()["errorCode"] == "rendering"

    def test_no_retry_when_fallbacks_disabled(self, config, image):
        config.pipeline = PipelineSettings(enable_fallbacks=False)
        clock = FakeClock()
        renderer = FakeRenderer(failures=1)
        with pytest.raises(PipelineError):
            _pipeline(config, renderer, clock).run(str(image), "calm")
        assert renderer.calls == 1
        assert clock.sleeps == []

    def test_missing_image_is_not_retried(self, config, tmp_path):
        clock = FakeClock()
        renderer = FakeRenderer()
        with pytest.raises(PipelineError) as exc_info:
            _pipeline(config, renderer, clock).run(str(tmp_path / "missing.jpg"), "calm")
        assert exc_info.value.category == ErrorCategory.IMAGE_ANALYSIS
        assert "Please check if the image file exists and is valid." in str(exc_info.value)
        assert clock.sleeps == []
        assert renderer.calls == 0

    def test_data_uri_skips_file_check(self, config):
        data_uri = "data:image/png;base64," + "A" * 5000
        renderer = FakeRenderer()
        result = _pipeline(config, renderer).run(data_uri, "calm")
        assert result.stage_results[0].attempts == 1
        assert renderer.requests[0].image_src == data_uri

    def test_is_remote_ref(self):
        assert is_remote_ref("https://example.com/a.jpg")
        assert is_remote_ref("data:image/jpeg;base64,AAAA")
        assert not is_remote_ref("photos/a.jpg")

    def test_timeline_validation_gate(self, config, image):
        from reelify_cli.validate import ValidationResult

        invalid = ValidationResult.from_errors(["Timeline must have at least one asset"])
        clock = FakeClock()
        with patch("reelify_cli.director.synthesizer.validate_motion_ir", return_value=invalid):
            with pytest.raises(PipelineError) as exc_info:
                _pipeline(config, FakeRenderer(), clock).run(str(image), "calm")
        assert exc_info.value.category == ErrorCategory.MOTION_GENERATION
        assert clock.sleeps == []

    def test_validation_disabled_lets_invalid_timeline_through(self, config, image):
        from reelify_cli.validate import ValidationResult

        config.pipeline = PipelineSettings(enable_validation=False)
        invalid = ValidationResult.from_errors(["Timeline must have at least one asset"])
        with patch("reelify_cli.director.synthesizer.validate_motion_ir", return_value=invalid):
            result = _pipeline(config, FakeRenderer()).run(str(image), "calm")
        assert result.motion_ir.validation.is_valid is False

    def test_runs_are_independent(self, config, image):
        pipeline = _pipeline(config, FakeRenderer())
        first = pipeline.run(str(image), "zoom, 3 seconds")
        second = pipeline.run(str(image), "pan, 6 seconds")
        assert first.output_path != second.output_path
        assert first.motion_ir.timeline.metadata.duration == 3
        assert second.motion_ir.timeline.metadata.duration == 6


class TestGenerateVideo:
    def test_error_response(self, config, tmp_path):
        pipeline = _pipeline(config, FakeRenderer())
        response = generate_video(str(tmp_path / "missing.jpg"), "calm", pipeline=pipeline)
        assert set(response) == {"error", "errorCode", "requestId"}
        assert response["errorCode"] == "image_analysis"

    def test_success_response(self, config, image):
        response = generate_video(str(image), "calm", pipeline=_pipeline(config, FakeRenderer()))
        assert response["videoUrl"].startswith("http://videos.test/api/videos/output-")

    def test_missing_credentials_without_fallbacks_is_an_error_response(self, monkeypatch, image):
        monkeypatch.delenv("REELIFY_TEST_KEY", raising=False)
        config = ReelifyConfig.model_validate(
            {
                "default_provider": "openai",
                "providers": {"openai": {"api_key_env": "REELIFY_TEST_KEY"}},
                "pipeline": {"enable_fallbacks": False},
            }
        )
        response = generate_video(str(image), "calm", config=config)
        assert set(response) == {"error", "errorCode", "requestId"}
        assert response["errorCode"] == "unknown"
        assert "REELIFY_TEST_KEY" in response["error"]
        assert "reelify.toml" in response["error"]
        assert response["requestId"]

    def test_bad_config_file_is_an_error_response(self, monkeypatch, tmp_path, image):
        (tmp_path / "reelify.toml").write_text("default_provider = [unclosed\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        response = generate_video(str(image), "calm")
        assert set(response) == {"error", "errorCode", "requestId"}
        assert response["errorCode"] == "unknown"
        assert response["error"].startswith("Configuration error:")


class TestFromConfig:
    def test_missing_credentials_degrade_to_fallback(self, monkeypatch, tmp_path):
        monkeypatch.delenv("REELIFY_TEST_KEY", raising=False)
        config = ReelifyConfig.model_validate(
            {"default_provider": "openai", "providers": {"openai": {"api_key_env": "REELIFY_TEST_KEY"}}}
        )
        pipeline = Pipeline.from_config(config)
        assert pipeline.mapper.provider_id == "fallback"

    def test_missing_credentials_raise_without_fallbacks(self, monkeypatch):
        from reelify_cli.config import ConfigError

        monkeypatch.delenv("REELIFY_TEST_KEY", raising=False)
        config = ReelifyConfig.model_validate(
            {
                "default_provider": "openai",
                "providers": {"openai": {"api_key_env": "REELIFY_TEST_KEY"}},
                "pipeline": {"enable_fallbacks": False},
            }
        )
        with pytest.raises(ConfigError):
            Pipeline.from_config(config)


class TestHealthAndStats:
    def test_health_check(self, config):
        report = _pipeline(config, FakeRenderer()).health_check()
        assert report.components == {"mapper": True, "director": True, "coder": True, "renderer": True}
        assert report.errors == []
        assert report.healthy

    def test_broken_component_is_reported(self, config):
        with patch.dict(
            "reelify_cli.pipeline.HEALTH_COMPONENTS", {"coder": "reelify_cli.render.no_such_module"}
        ):
            report = _pipeline(config, FakeRenderer()).health_check()
        assert report.healthy is False
        assert report.components["coder"] is False
        assert report.components["mapper"] is True
        assert len(report.errors) == 1
        assert report.errors[0].startswith("coder: ModuleNotFoundError")

    def test_stats(self, config):
        stats = _pipeline(config, FakeRenderer()).stats()
        assert stats["stages"] == ["analyze", "direct", "compose", "render", "publish"]
        assert stats["max_attempts"] == 3
        assert stats["analysis_provider"] == "fallback"
        assert stats["renderer"] == "fake"
        assert stats["validation_enabled"] is True


class TestCategorizeError:
    def test_stage_wins(self):
        assert categorize_error("anything", "compose") == ErrorCategory.COMPOSITION

    def test_keywords_in_order(self):
        assert categorize_error("Mapper returned garbage") == ErrorCategory.IMAGE_ANALYSIS
        assert categorize_error("motion timeline broken") == ErrorCategory.MOTION_GENERATION
        assert categorize_error("composition id clash") == ErrorCategory.COMPOSITION
        assert categorize_error("render timeout") == ErrorCategory.RENDERING

    def test_unknown(self):
        assert categorize_error("disk full", "publish") == ErrorCategory.UNKNOWN
