from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..analysis.types import VisualSchema
from ..config import DirectorSettings
from ..schema import (
    Asset,
    Camera,
    CameraMovement,
    Effect,
    Keyframe,
    KeyframeProperties,
    Layer,
    MotionModel,
    Timeline,
    Track,
    Vec2,
    Vec3,
    create_basic_timeline,
)
from ..validate import ValidationResult, validate_motion_ir
from .creative import CreativeDirection, analyze_prompt, extract_duration

logger = logging.getLogger(__name__)

# Used when the caller does not stamp the timeline, keeping output reproducible.
EPOCH_CREATED_AT = "1970-01-01T00:00:00Z"

MAIN_ASSET_ID = "main-image"
PLACEHOLDER_SRC = "placeholder.jpg"


def _default_movement_targets() -> dict[str, Vec3]:
    return {
        "pan": Vec3(x=100, y=0, z=0),
        "zoom": Vec3(x=0, y=0, z=-200),
        "dolly": Vec3(x=0, y=0, z=150),
        # Quarter orbit around the target at radius 150.
        "orbit": Vec3(x=150, y=0, z=150),
    }


@dataclass(frozen=True)
class DirectorPolicy:
    default_duration: float = 5
    max_duration: float = 30
    fade_duration: float = 0.5
    movement_start: float = 0.5
    width: int = 1920
    height: int = 1080
    fps: int = 30
    zoom_scale: float = 1.2
    zoom_end_fraction: float = 0.7
    pan_offset: float = 100
    pan_end_fraction: float = 0.6
    parallax_offset: float = 20
    secondary_opacity: float = 0.7
    mysterious_overlay_opacity: float = 0.8
    movement_targets: dict[str, Vec3] = field(default_factory=_default_movement_targets)

    @classmethod
    def from_settings(cls, settings: DirectorSettings) -> "DirectorPolicy":
        return cls(
            default_duration=settings.default_duration,
            max_duration=settings.max_duration,
            fade_duration=settings.fade_duration,
            movement_start=settings.movement_start,
            width=settings.width,
            height=settings.height,
            fps=settings.fps,
        )


class MotionIR(MotionModel):
    timeline: Timeline
    validation: ValidationResult
    direction: CreativeDirection


def _camera(direction: CreativeDirection, schema: VisualSchema, duration: float, policy: DirectorPolicy) -> Camera:
    camera = Camera()
    if direction.style == "cinematic" or len(schema.scene.depth_layers) > 2:
        camera.type = "2.5D"

    if direction.movement != "static":
        camera.movements.append(
            CameraMovement(
                type=direction.movement,
                from_=Vec3(),
                to=policy.movement_targets.get(direction.movement, Vec3()).model_copy(),
                start_time=policy.movement_start,
                duration=max(duration - policy.movement_start, 0.0),
                easing="easeInOut" if direction.style == "cinematic" else "linear",
            )
        )
    return camera


def _main_layer(
    asset_id: str, duration: float, direction: CreativeDirection, policy: DirectorPolicy
) -> Layer:
    # Fades never run past either end of the timeline.
    fade = min(policy.fade_duration, duration)
    layer = Layer(
        id="main-image-layer",
        name="Main Image",
        type="image",
        asset_id=asset_id,
        track_index=0,
        start_time=0,
        duration=duration,
        effects=[
            Effect(
                id="fade-in",
                type="fade",
                parameters={"type": "in", "duration": fade},
                start_time=0,
                duration=fade,
            ),
            Effect(
                id="fade-out",
                type="fade",
                parameters={"type": "out", "duration": fade},
                start_time=max(duration - fade, 0.0),
                duration=fade,
            ),
        ],
    )

    if direction.movement == "zoom":
        layer.keyframes = [
            Keyframe(time=0, properties=KeyframeProperties(scale=Vec2(x=1, y=1), opacity=1)),
            Keyframe(
                time=duration * policy.zoom_end_fraction,
                properties=KeyframeProperties(
                    scale=Vec2(x=policy.zoom_scale, y=policy.zoom_scale), opacity=1
                ),
            ),
        ]
    elif direction.movement == "pan":
        layer.keyframes = [
            Keyframe(time=0, properties=KeyframeProperties(position=Vec2(x=0, y=0), opacity=1)),
            Keyframe(
                time=duration * policy.pan_end_fraction,
                properties=KeyframeProperties(
                    position=Vec2(x=policy.pan_offset, y=0), opacity=1
                ),
            ),
        ]

    if direction.mood == "mysterious":
        layer.effects.append(
            Effect(
                id="dark-overlay",
                type="opacity",
                parameters={"opacity": policy.mysterious_overlay_opacity},
                start_time=0,
                duration=duration,
            )
        )
    return layer


def _secondary_layer(duration: float, policy: DirectorPolicy) -> Layer:
    opacity = policy.secondary_opacity
    return Layer(
        id="secondary-elements-layer",
        name="Secondary Elements",
        type="composition",
        track_index=0,
        start_time=0,
        duration=duration,
        keyframes=[
            Keyframe(time=0, properties=KeyframeProperties(position=Vec2(x=0, y=0), opacity=opacity)),
            Keyframe(
                time=duration,
                properties=KeyframeProperties(
                    position=Vec2(x=policy.parallax_offset, y=0), opacity=opacity
                ),
            ),
        ],
    )


def _global_effects(direction: CreativeDirection, duration: float) -> list[Effect]:
    effects: list[Effect] = []
    if direction.style == "cinematic":
        effects.append(
            Effect(
                id="film-grain",
                type="filmGrain",
                parameters={"intensity": 0.1, "opacity": 0.3},
                start_time=0,
                duration=duration,
            )
        )

    if direction.mood == "uplifting":
        effects.append(
            Effect(
                id="warm-color-grade",
                type="colorGrade",
                parameters={"temperature": 0.2, "saturation": 0.1},
                start_time=0,
                duration=duration,
            )
        )
    elif direction.mood == "mysterious":
        effects.append(
            Effect(
                id="cool-color-grade",
                type="colorGrade",
                parameters={"temperature": -0.2, "saturation": -0.1, "contrast": 0.1},
                start_time=0,
                duration=duration,
            )
        )
    return effects


def director(
    schema: VisualSchema,
    prompt: str,
    asset_ref: Optional[str] = None,
    policy: Optional[DirectorPolicy] = None,
    created_at: Optional[str] = None,
) -> MotionIR:
    """Synthesize a Motion-IR timeline from a visual schema and a prompt.

    Pure: no I/O, no clock, no randomness. Validation problems are attached to
    the result rather than raised; the caller decides whether they are fatal.
    """
    policy = policy or DirectorPolicy()
    duration = extract_duration(prompt, policy.max_duration) or policy.default_duration

    timeline = create_basic_timeline(
        duration=duration,
        width=policy.width,
        height=policy.height,
        fps=policy.fps,
        created_at=created_at or EPOCH_CREATED_AT,
    )

    image_asset = Asset(
        id=MAIN_ASSET_ID,
        type="image",
        src=asset_ref or PLACEHOLDER_SRC,
        metadata={
            "originalWidth": policy.width,
            "originalHeight": policy.height,
            "dominantColors": list(schema.scene.colors),
        },
    )
    timeline.assets.append(image_asset)

    direction = analyze_prompt(prompt)
    timeline.camera = _camera(direction, schema, duration, policy)

    track = Track(id="video-track-1", name="Main Video Track", index=0, type="video")
    track.layers.append(_main_layer(image_asset.id, duration, direction, policy))
    if schema.elements.secondary:
        track.layers.append(_secondary_layer(duration, policy))
    timeline.tracks.append(track)

    timeline.global_effects = _global_effects(direction, duration)

    if schema.scene.colors:
        timeline.metadata.background_color = schema.scene.colors[0]

    validation = validate_motion_ir(timeline)
    if not validation.is_valid:
        logger.warning("Motion-IR validation warnings: %s", validation.errors)

    return MotionIR(timeline=timeline, validation=validation, direction=direction)
