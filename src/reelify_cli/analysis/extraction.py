"""Defensive extraction of a visual schema from loosely shaped analysis output.

Vision models rarely agree on field names. Each schema field owns an ordered
list of strategies; each strategy returns a value or ``None`` and the first
non-empty result wins. When every strategy misses, the field default applies.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional

from .types import VisualSchema

Strategy = Callable[[Mapping[str, Any]], Optional[Any]]

_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")


def path(*keys: str) -> Strategy:
    """Strategy reading a nested key path."""

    def _get(data: Mapping[str, Any]) -> Optional[Any]:
        node: Any = data
        for key in keys:
            if not isinstance(node, Mapping) or key not in node:
                return None
            node = node[key]
        return node

    _get.__name__ = "path:" + ".".join(keys)
    return _get


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def extract(data: Mapping[str, Any], strategies: list[Strategy], default: Any) -> Any:
    for strategy in strategies:
        value = strategy(data)
        if not _is_empty(value):
            return value
    return default


def _as_str_list(value: Any) -> Optional[list[str]]:
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
        return [p for p in parts if p] or None
    if isinstance(value, list):
        out = []
        for item in value:
            if isinstance(item, str):
                out.append(item)
            elif isinstance(item, Mapping):
                name = item.get("name") or item.get("label") or item.get("hex")
                if isinstance(name, str):
                    out.append(name)
        return out or None
    return None


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        words = _as_str_list(value)
        return ", ".join(words) if words else None
    return None


def _as_unit_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _normalize_color(value: str) -> str:
    v = value.strip()
    if _HEX_COLOR.match(v):
        return ("#" + v.lstrip("#")).lower()
    return v


FIELD_STRATEGIES: dict[str, list[Strategy]] = {
    "elements.primary": [
        path("elements", "primary"),
        path("primary_elements"),
        path("primary"),
        path("subjects"),
        path("main_subjects"),
        path("objects"),
    ],
    "elements.secondary": [
        path("elements", "secondary"),
        path("secondary_elements"),
        path("secondary"),
        path("supporting_elements"),
        path("background_elements"),
    ],
    "scene.emotion": [
        path("scene", "emotion"),
        path("scene", "mood"),
        path("emotion"),
        path("mood"),
        path("atmosphere"),
    ],
    "scene.lighting": [
        path("scene", "lighting"),
        path("lighting"),
        path("light"),
    ],
    "scene.colors": [
        path("scene", "colors"),
        path("scene", "color_palette"),
        path("colors"),
        path("color_palette"),
        path("palette"),
    ],
    "scene.depth_layers": [
        path("scene", "depth_layers"),
        path("scene", "layers"),
        path("depth_layers"),
        path("layers"),
    ],
    "composition.focus": [
        path("composition", "focus"),
        path("composition", "focal_point"),
        path("focus"),
        path("focal_point"),
    ],
    "composition.perspective": [
        path("composition", "perspective"),
        path("composition", "camera_angle"),
        path("perspective"),
        path("camera_angle"),
    ],
    "composition.style": [
        path("composition", "style"),
        path("style"),
        path("photography_style"),
    ],
    "visual_analysis.dominant_colors": [
        path("visual_analysis", "dominant_colors"),
        path("dominant_colors"),
        path("visual_analysis", "colors"),
    ],
    "visual_analysis.contrast_ratio": [
        path("visual_analysis", "contrast_ratio"),
        path("contrast_ratio"),
        path("contrast"),
    ],
    "visual_analysis.complexity_score": [
        path("visual_analysis", "complexity_score"),
        path("complexity_score"),
        path("complexity"),
    ],
    "visual_analysis.focal_points": [
        path("visual_analysis", "focal_points"),
        path("focal_points"),
    ],
    "visual_analysis.segmentation": [
        path("visual_analysis", "segmentation"),
        path("segmentation"),
        path("segments"),
    ],
}


def _field(data: Mapping[str, Any], name: str, coerce: Callable[[Any], Any]) -> Any:
    coerced = [lambda d, s=s: coerce(s(d)) for s in FIELD_STRATEGIES[name]]
    return extract(data, coerced, None)


def _number(data: Mapping[str, Any], name: str, default: float) -> float:
    value = _field(data, name, _as_unit_float)
    return default if value is None else value


def _focal_points(value: Any) -> Optional[list[dict[str, Any]]]:
    if not isinstance(value, list):
        return None
    points = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        x = _as_unit_float(item.get("x"))
        y = _as_unit_float(item.get("y"))
        if x is None or y is None:
            continue
        point: dict[str, Any] = {"x": x, "y": y}
        weight = _as_unit_float(item.get("weight"))
        if weight is not None:
            point["weight"] = weight
        label = item.get("label")
        if isinstance(label, str):
            point["label"] = label
        points.append(point)
    return points or None


def _segments(value: Any) -> Optional[list[dict[str, Any]]]:
    if not isinstance(value, list):
        return None
    out: list[dict[str, Any]] = []
    for item in value:
        if isinstance(item, Mapping):
            out.append(dict(item))
        elif isinstance(item, str):
            out.append({"label": item})
    return out or None


def normalize_schema(raw: Mapping[str, Any]) -> VisualSchema:
    """Build a VisualSchema from any analysis payload, filling documented defaults."""
    defaults = VisualSchema()
    primary = _field(raw, "elements.primary", _as_str_list)
    secondary = _field(raw, "elements.secondary", _as_str_list)
    colors = _field(raw, "scene.colors", _as_str_list)
    colors = [_normalize_color(c) for c in colors] if colors else defaults.scene.colors
    dominant = _field(raw, "visual_analysis.dominant_colors", _as_str_list)
    dominant = [_normalize_color(c) for c in dominant] if dominant else list(colors)

    return VisualSchema.model_validate(
        {
            "elements": {
                "primary": primary or ["subject"],
                "secondary": secondary or [],
            },
            "scene": {
                "emotion": _field(raw, "scene.emotion", _as_text) or defaults.scene.emotion,
                "lighting": _field(raw, "scene.lighting", _as_text) or defaults.scene.lighting,
                "colors": colors,
                "depth_layers": _field(raw, "scene.depth_layers", _as_str_list) or [],
            },
            "composition": {
                "focus": _field(raw, "composition.focus", _as_text)
                or defaults.composition.focus,
                "perspective": _field(raw, "composition.perspective", _as_text)
                or defaults.composition.perspective,
                "style": _field(raw, "composition.style", _as_text)
                or defaults.composition.style,
            },
            "visual_analysis": {
                "dominant_colors": dominant,
                "contrast_ratio": _number(
                    raw, "visual_analysis.contrast_ratio", defaults.visual_analysis.contrast_ratio
                ),
                "complexity_score": _number(
                    raw,
                    "visual_analysis.complexity_score",
                    defaults.visual_analysis.complexity_score,
                ),
                "focal_points": _field(raw, "visual_analysis.focal_points", _focal_points) or [],
                "segmentation": _field(raw, "visual_analysis.segmentation", _segments) or [],
            },
        }
    )


def extract_json_block(text: str) -> Optional[dict[str, Any]]:
    """Return the first JSON object embedded in free text, if any."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)
    return None
