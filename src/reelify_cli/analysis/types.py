from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class Elements(BaseModel):
    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)


class Scene(BaseModel):
    emotion: str = "calm"
    lighting: str = "natural"
    colors: list[str] = Field(default_factory=lambda: ["#000000", "#ffffff"])
    depth_layers: list[str] = Field(default_factory=list)


class SceneComposition(BaseModel):
    focus: str = "center"
    perspective: str = "eye-level"
    style: str = "photographic"


class FocalPoint(BaseModel):
    x: float = 0.5
    y: float = 0.5
    weight: float = 1.0
    label: Optional[str] = None


class VisualAnalysis(BaseModel):
    dominant_colors: list[str] = Field(default_factory=list)
    contrast_ratio: float = 0.5
    complexity_score: float = 0.5
    focal_points: list[FocalPoint] = Field(default_factory=list)
    segmentation: list[dict[str, Any]] = Field(default_factory=list)


class VisualSchema(BaseModel):
    """Normalized description of an image's visual content."""

    elements: Elements = Field(default_factory=Elements)
    scene: Scene = Field(default_factory=Scene)
    composition: SceneComposition = Field(default_factory=SceneComposition)
    visual_analysis: VisualAnalysis = Field(default_factory=VisualAnalysis)
