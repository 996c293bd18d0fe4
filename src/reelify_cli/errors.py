from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    IMAGE_ANALYSIS = "image_analysis"
    MOTION_GENERATION = "motion_generation"
    COMPOSITION = "composition"
    RENDERING = "rendering"
    UNKNOWN = "unknown"


STAGE_CATEGORIES: dict[str, ErrorCategory] = {
    "analyze": ErrorCategory.IMAGE_ANALYSIS,
    "direct": ErrorCategory.MOTION_GENERATION,
    "compose": ErrorCategory.COMPOSITION,
    "render": ErrorCategory.RENDERING,
}

# Consulted in order when the failing stage has no category of its own.
KEYWORD_CATEGORIES: list[tuple[tuple[str, ...], ErrorCategory]] = [
    (("mapper", "schema", "image analysis", "analyze"), ErrorCategory.IMAGE_ANALYSIS),
    (("director", "motion", "timeline"), ErrorCategory.MOTION_GENERATION),
    (("coder", "composition"), ErrorCategory.COMPOSITION),
    (("render", "remotion", "ffmpeg", "timeout"), ErrorCategory.RENDERING),
]

CATEGORY_HINTS: dict[ErrorCategory, str] = {
    ErrorCategory.IMAGE_ANALYSIS: "Please check if the image file exists and is valid.",
    ErrorCategory.MOTION_GENERATION: "Please try rephrasing the prompt.",
    ErrorCategory.COMPOSITION: "The animation could not be turned into a renderable composition.",
    ErrorCategory.RENDERING: "Please check that the renderer is installed and has enough resources.",
    ErrorCategory.UNKNOWN: "Please try again.",
}

CONFIG_HINT = "Please check reelify.toml and the analysis provider credentials."


def categorize_error(message: str, stage: Optional[str] = None) -> ErrorCategory:
    if stage in STAGE_CATEGORIES:
        return STAGE_CATEGORIES[stage]
    lowered = message.lower()
    for keywords, category in KEYWORD_CATEGORIES:
        if any(k in lowered for k in keywords):
            return category
    return ErrorCategory.UNKNOWN


class ValidationGateError(Exception):
    """Deterministic input-shape failure; retrying would reproduce it."""

    def __init__(self, stage: str, errors: list[str]):
        self.stage = stage
        self.errors = errors
        super().__init__(f"{stage} validation failed: " + "; ".join(errors))


class PipelineError(Exception):
    """The single failure a caller of the pipeline sees."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        request_id: str,
        stage: Optional[str] = None,
    ):
        self.category = category
        self.request_id = request_id
        self.stage = stage
        super().__init__(message)

    @classmethod
    def wrap(
        cls, exc: BaseException, stage: str, request_id: str, attempts: int = 1
    ) -> "PipelineError":
        raw = str(exc) or type(exc).__name__
        category = categorize_error(raw, stage)
        tries = "attempt" if attempts == 1 else "attempts"
        message = (
            f"{stage} stage failed after {attempts} {tries}: {raw}. "
            f"{CATEGORY_HINTS[category]}"
        )
        return cls(message, category, request_id, stage=stage)

    def to_response(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "errorCode": self.category.value,
            "requestId": self.request_id,
        }
