from __future__ import annotations

import copy
from typing import Any, Callable

from ..provider import AnalysisProvider

BASE_SCHEMA: dict[str, Any] = {
    "elements": {
        "primary": ["main subject"],
        "secondary": ["background details"],
    },
    "scene": {
        "emotion": "calm",
        "lighting": "natural",
        "colors": ["#2c3e50", "#ecf0f1", "#3498db"],
        "depth_layers": ["foreground", "background"],
    },
    "composition": {
        "focus": "center",
        "perspective": "eye-level",
        "style": "photographic",
    },
    "visual_analysis": {
        "dominant_colors": ["#2c3e50", "#ecf0f1", "#3498db"],
        "contrast_ratio": 0.5,
        "complexity_score": 0.3,
        "focal_points": [{"x": 0.5, "y": 0.5, "weight": 1.0, "label": "center"}],
        "segmentation": [],
    },
}


def _portrait(schema: dict[str, Any]) -> None:
    schema["composition"]["perspective"] = "close-up"
    schema["elements"]["primary"].insert(0, "person")
    schema["visual_analysis"]["focal_points"] = [
        {"x": 0.5, "y": 0.4, "weight": 1.0, "label": "face"}
    ]


def _landscape(schema: dict[str, Any]) -> None:
    schema["composition"]["perspective"] = "wide"
    schema["scene"]["depth_layers"] = ["foreground", "midground", "background"]


def _night(schema: dict[str, Any]) -> None:
    palette = ["#0b0c10", "#1f2833", "#45a29e"]
    schema["scene"]["emotion"] = "mysterious"
    schema["scene"]["lighting"] = "low-key"
    schema["scene"]["colors"] = palette
    schema["visual_analysis"]["dominant_colors"] = list(palette)
    schema["visual_analysis"]["contrast_ratio"] = 0.7


def _sunset(schema: dict[str, Any]) -> None:
    palette = ["#ff7e5f", "#feb47b", "#6a0572"]
    schema["scene"]["lighting"] = "golden hour"
    schema["scene"]["colors"] = palette
    schema["visual_analysis"]["dominant_colors"] = list(palette)


# Applied in order; every matching rule contributes.
SUBSTRING_RULES: list[tuple[tuple[str, ...], Callable[[dict[str, Any]], None]]] = [
    (("portrait",), _portrait),
    (("landscape",), _landscape),
    (("night", "dark"), _night),
    (("sunset",), _sunset),
]


def fallback_schema(image_ref: str) -> dict[str, Any]:
    """Deterministic stand-in for a real analysis, varied by the image reference."""
    schema = copy.deepcopy(BASE_SCHEMA)
    ref = (image_ref or "").lower()
    for needles, apply in SUBSTRING_RULES:
        if any(n in ref for n in needles):
            apply(schema)
    return schema


class FallbackAnalysisProvider(AnalysisProvider):
    @property
    def provider_id(self) -> str:
        return "fallback"

    def analyze(self, image_ref: str) -> dict[str, Any]:
        return fallback_schema(image_ref)
