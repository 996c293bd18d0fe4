from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CONFIG_FILENAME = "reelify.toml"


class OpenAIProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    api_key_env: str = "OPENAI_API_KEY"
    base_url: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: int = Field(default=1000, ge=1)


class ProvidersConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    openai: Optional[OpenAIProviderConfig] = None


class PipelineSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enable_validation: bool = True
    enable_fallbacks: bool = True
    max_retries: int = Field(default=3, ge=1)
    timeout_sec: float = Field(default=300.0, gt=0.0)
    backoff_sec: float = Field(default=1.0, ge=0.0)


class RenderSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    codec: Literal["h264", "h265", "vp9"] = "h264"
    crf: int = Field(default=18, ge=0, le=51)
    pixel_format: Literal["yuv420p", "yuv444p"] = "yuv420p"
    concurrency: int = Field(default=4, ge=1)
    output_format: Literal["mp4", "webm", "gif"] = "mp4"
    command: list[str] = Field(default_factory=lambda: ["npx", "remotion", "render"])
    entry_point: str = "src/index.ts"
    bake_frames: bool = False

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("render.command cannot be empty")
        return v


class DirectorSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_duration: float = Field(default=5.0, gt=0.0)
    max_duration: float = Field(default=30.0, gt=0.0)
    fade_duration: float = Field(default=0.5, ge=0.0)
    movement_start: float = Field(default=0.5, ge=0.0)
    width: int = Field(default=1920, ge=1)
    height: int = Field(default=1080, ge=1)
    fps: int = Field(default=30, ge=1)


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    output_dir: Path = Path("output")
    temp_dir: Path = Path("temp")


class ReelifyConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_provider: str = "fallback"
    public_base_url: str = "http://localhost:3000"
    providers: ProvidersConfig = ProvidersConfig()
    pipeline: PipelineSettings = PipelineSettings()
    render: RenderSettings = RenderSettings()
    director: DirectorSettings = DirectorSettings()
    paths: PathsConfig = PathsConfig()

    @field_validator("default_provider")
    @classmethod
    def validate_default_provider(cls, v: str) -> str:
        if not v:
            raise ValueError("default_provider cannot be empty")
        return v

    @model_validator(mode="after")
    def check_default_provider_exists(self) -> "ReelifyConfig":
        provider_names = self.available_providers()
        if self.default_provider not in provider_names:
            raise ValueError(
                f"default_provider '{self.default_provider}' is not configured. "
                f"Available providers: {sorted(provider_names)}"
            )
        return self

    def available_providers(self) -> set[str]:
        names = {"fallback"}
        if self.providers.openai is not None:
            names.add("openai")
        return names


class ConfigError(Exception):
    def __init__(self, message: str, path: Optional[Path] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        if path:
            loc = f"{path}"
            if line:
                loc += f":{line}"
            message = f"{loc}: {message}"
        super().__init__(message)


def load_config(config_path: Path) -> ReelifyConfig:
    if not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}\n"
            f"Copy reelify.toml.example to {CONFIG_FILENAME}",
            path=config_path,
        )

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore

    try:
        text = config_path.read_text(encoding="utf-8")
        data = tomllib.loads(text)
    except Exception as e:
        raise ConfigError(f"Failed to parse TOML: {e}", path=config_path) from e

    try:
        return ReelifyConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}", path=config_path) from e


def find_config(start_dir: Optional[Path] = None) -> Path:
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()
    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        current = current.parent

    return start_dir / CONFIG_FILENAME


def load_config_or_default(config_path: Optional[Path] = None) -> ReelifyConfig:
    if config_path is None:
        config_path = find_config()
        if not config_path.exists():
            return ReelifyConfig()
    return load_config(config_path)
