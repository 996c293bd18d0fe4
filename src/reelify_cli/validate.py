from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Union

from pydantic import BaseModel, Field

from .schema import MotionModel, Timeline

# Float slack when comparing accumulated times (e.g. 4.5 + 0.5) to the duration.
TIME_EPSILON = 1e-9


class ValidationResult(MotionModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=errors)


def validate_motion_ir(timeline: Timeline) -> ValidationResult:
    """Check a timeline's structural invariants.

    Every violation is reported; nothing is corrected and nothing raises.
    """
    errors: list[str] = []
    total = timeline.metadata.duration

    if not timeline.assets:
        errors.append("Timeline must have at least one asset")
    if not timeline.tracks:
        errors.append("Timeline must have at least one track")

    for ti, track in enumerate(timeline.tracks):
        for li, layer in enumerate(track.layers):
            end = layer.start_time + layer.duration
            if end > total + TIME_EPSILON:
                errors.append(
                    f"Layer '{layer.id}' in track '{track.id}' ends at {end:g}s, "
                    f"beyond timeline duration {total:g}s"
                )
            for ki, kf in enumerate(layer.keyframes):
                if kf.time < 0 or kf.time > total + TIME_EPSILON:
                    errors.append(
                        f"Keyframe {ki} in layer {li} of track {ti} has invalid time {kf.time:g}s"
                    )

    return ValidationResult.from_errors(errors)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def validate_schema(schema: Union[BaseModel, Mapping[str, Any]]) -> ValidationResult:
    """Check the shape of a visual schema produced by the analysis stage."""
    data = schema.model_dump() if isinstance(schema, BaseModel) else schema
    errors: list[str] = []

    if not isinstance(data, Mapping):
        return ValidationResult.from_errors(["Schema must be a mapping"])

    elements = _section(data, "elements")
    if not _is_sequence(elements.get("primary")):
        errors.append("elements.primary must be a list")

    scene = _section(data, "scene")
    if not scene.get("emotion"):
        errors.append("scene.emotion is required")
    colors = scene.get("colors")
    if not _is_sequence(colors) or not colors:
        errors.append("scene.colors must be a non-empty list")

    composition = _section(data, "composition")
    if not composition.get("focus"):
        errors.append("composition.focus is required")

    analysis = _section(data, "visual_analysis")
    dominant = analysis.get("dominant_colors")
    if not _is_sequence(dominant) or not dominant:
        errors.append("visual_analysis.dominant_colors must be a non-empty list")

    return ValidationResult.from_errors(errors)
