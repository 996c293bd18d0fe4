from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

from ..schema import MotionModel
from .composition import Composition

RenderStatus = Literal["ok", "spawn_error", "exit_error", "timeout", "empty_output"]


@dataclass(frozen=True)
class RenderOutcome:
    """Tagged result of one renderer process run."""

    status: RenderStatus
    output_path: Path
    returncode: Optional[int] = None
    message: str = ""
    log_tail: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class RenderError(RuntimeError):
    """Raised when the renderer does not produce a usable video."""

    def __init__(self, outcome: RenderOutcome):
        self.outcome = outcome
        detail = f"render {outcome.status}: {outcome.message}"
        if outcome.log_tail:
            detail += "\n" + "\n".join(outcome.log_tail[-5:])
        super().__init__(detail)


class RendererNotFoundError(RuntimeError):
    """Raised when the renderer launcher is not installed."""

    def __init__(self, binary: str):
        super().__init__(f"Renderer launcher '{binary}' not found on PATH")


class VideoMetadata(MotionModel):
    duration: float
    width: int
    height: int
    fps: int
    file_size: int


@dataclass(frozen=True)
class RenderRequest:
    composition: Composition
    output_path: Path
    image_src: Optional[str] = None
    timeout_sec: float = 300.0


class Renderer(ABC):
    """Turns a Composition into a video file."""

    @property
    @abstractmethod
    def renderer_id(self) -> str: ...

    @abstractmethod
    def check(self) -> bool:
        """Return True when the renderer's external tooling is available."""

    @abstractmethod
    def render(self, request: RenderRequest) -> Path:
        """Render and return the output path, raising RenderError on failure."""


def video_metadata(composition: Composition, video_path: Path) -> VideoMetadata:
    meta = composition.metadata
    return VideoMetadata(
        duration=meta.duration,
        width=meta.width,
        height=meta.height,
        fps=meta.fps,
        file_size=video_path.stat().st_size,
    )
