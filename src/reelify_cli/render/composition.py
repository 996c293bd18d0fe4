from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import Field

from ..schema import (
    Camera,
    CameraMovement,
    CameraType,
    Effect,
    Keyframe,
    KeyframeProperties,
    MotionModel,
    ParamValue,
    Vec2,
    Vec3,
)
from .easing import apply_easing, lerp


class LayerStyle(MotionModel):
    """Transform and appearance of a layer at one instant; unset fields mean 'at rest'."""

    position_x: Optional[float] = None
    position_y: Optional[float] = None
    position_z: Optional[float] = None
    scale_x: Optional[float] = None
    scale_y: Optional[float] = None
    rotation_x: Optional[float] = None
    rotation_y: Optional[float] = None
    rotation_z: Optional[float] = None
    opacity: Optional[float] = None
    filter: Optional[str] = None
    color: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class EffectStyle(MotionModel):
    effect_id: str
    type: str
    progress: float
    opacity: Optional[float] = None
    blur: Optional[float] = None
    temperature: Optional[float] = None
    saturation: Optional[float] = None
    contrast: Optional[float] = None
    grain_intensity: Optional[float] = None
    grain_opacity: Optional[float] = None
    parameters: dict[str, ParamValue] = Field(default_factory=dict)


class CameraState(MotionModel):
    type: CameraType
    position: Vec3
    target: Vec3
    fov: Optional[float] = None


def _lerp_vec(a: Vec2, b: Vec2, t: float) -> Vec2:
    z = lerp(a.z, b.z, t) if a.z is not None and b.z is not None else None
    return Vec2(x=lerp(a.x, b.x, t), y=lerp(a.y, b.y, t), z=z)


def _lerp_rotation(a: Vec2, b: Vec2, t: float) -> Vec2:
    return Vec2(
        x=lerp(a.x, b.x, t),
        y=lerp(a.y, b.y, t),
        z=lerp(a.z or 0.0, b.z or 0.0, t),
    )


def interpolate_properties(
    start: KeyframeProperties, end: KeyframeProperties, t: float
) -> KeyframeProperties:
    """Interpolate numeric sub-properties present on both ends; others hold ``start``."""
    out = start.model_copy()
    if start.position is not None and end.position is not None:
        out.position = _lerp_vec(start.position, end.position, t)
    if start.scale is not None and end.scale is not None:
        out.scale = _lerp_vec(start.scale, end.scale, t)
    if start.rotation is not None and end.rotation is not None:
        out.rotation = _lerp_rotation(start.rotation, end.rotation, t)
    if start.opacity is not None and end.opacity is not None:
        out.opacity = lerp(start.opacity, end.opacity, t)
    return out


def properties_to_style(props: KeyframeProperties) -> LayerStyle:
    style = LayerStyle(opacity=props.opacity, filter=props.filter, color=props.color)
    if props.position is not None:
        style.position_x = props.position.x
        style.position_y = props.position.y
        style.position_z = props.position.z
    if props.scale is not None:
        style.scale_x = props.scale.x
        style.scale_y = props.scale.y
    if props.rotation is not None:
        style.rotation_x = props.rotation.x
        style.rotation_y = props.rotation.y
        style.rotation_z = props.rotation.z or 0.0
    return style


def keyframe_style(keyframes: list[Keyframe], t: float) -> LayerStyle:
    """Style at time ``t`` from a layer's keyframes.

    The bracketing pair is the last keyframe at or before ``t`` and the first
    one after it; the earlier keyframe's easing shapes the interpolation.
    Before the first keyframe the style is empty; past the last it holds.
    """
    ordered = sorted(keyframes, key=lambda kf: kf.time)
    current: Optional[Keyframe] = None
    upcoming: Optional[Keyframe] = None
    for kf in ordered:
        if kf.time <= t:
            current = kf
        else:
            upcoming = kf
            break

    if current is None:
        return LayerStyle()
    if upcoming is None:
        return properties_to_style(current.properties)

    progress = (t - current.time) / (upcoming.time - current.time)
    eased = apply_easing(progress, current.easing)
    return properties_to_style(interpolate_properties(current.properties, upcoming.properties, eased))


def _number(value: Any, default: Optional[float] = None) -> Optional[float]:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def effect_style(effect: Effect, t: float) -> Optional[EffectStyle]:
    """Contribution of an effect at ``t``; None outside its active window."""
    if not effect.is_active(t):
        return None

    if effect.duration > 0:
        progress = (t - effect.start_time) / effect.duration
    else:
        progress = 1.0
    progress = max(0.0, min(1.0, progress))

    params = effect.parameters
    style = EffectStyle(
        effect_id=effect.id, type=effect.type, progress=progress, parameters=dict(params)
    )

    if effect.type == "fade":
        if params.get("type") == "in":
            style.opacity = progress
        elif params.get("type") == "out":
            style.opacity = 1 - progress
    elif effect.type == "blur":
        style.blur = _number(params.get("intensity"), 5.0)
    elif effect.type == "opacity":
        style.opacity = _number(params.get("opacity"))
    elif effect.type == "colorGrade":
        style.temperature = _number(params.get("temperature"), 0.0)
        style.saturation = _number(params.get("saturation"), 0.0)
        style.contrast = _number(params.get("contrast"), 0.0)
    elif effect.type == "filmGrain":
        style.grain_intensity = _number(params.get("intensity"), 0.1)
        style.grain_opacity = _number(params.get("opacity"), 0.3)
    return style


def _movement_offset(movement: CameraMovement, t: float) -> Vec3:
    start, end = movement.from_, movement.to
    if t <= movement.start_time:
        p = 0.0
    elif movement.duration <= 0 or t >= movement.start_time + movement.duration:
        p = 1.0
    else:
        p = apply_easing((t - movement.start_time) / movement.duration, movement.easing)

    if movement.type == "orbit":
        theta = p * math.pi / 2
        return Vec3(
            x=start.x + (end.x - start.x) * math.sin(theta),
            y=lerp(start.y, end.y, p),
            z=start.z + (end.z - start.z) * (1 - math.cos(theta)),
        )
    return Vec3(x=lerp(start.x, end.x, p), y=lerp(start.y, end.y, p), z=lerp(start.z, end.z, p))


def camera_at(camera: Camera, t: float) -> CameraState:
    x, y, z = camera.position.x, camera.position.y, camera.position.z
    for movement in camera.movements:
        offset = _movement_offset(movement, t)
        x, y, z = x + offset.x, y + offset.y, z + offset.z
    return CameraState(
        type=camera.type,
        position=Vec3(x=x, y=y, z=z),
        target=camera.target.model_copy(),
        fov=camera.fov,
    )


class CompositionLayer(MotionModel):
    id: str
    name: str
    type: str
    asset_src: Optional[str] = None
    start_time: float
    duration: float
    keyframes: list[Keyframe] = Field(default_factory=list)
    effects: list[Effect] = Field(default_factory=list)
    blend_mode: str = "normal"
    visible: bool = True

    def is_active(self, t: float) -> bool:
        return self.start_time <= t <= self.start_time + self.duration

    def style_at(self, t: float) -> LayerStyle:
        return keyframe_style(self.keyframes, t)

    def effects_at(self, t: float) -> list[EffectStyle]:
        return [s for s in (effect_style(e, t) for e in self.effects) if s is not None]


class CompositionTrack(MotionModel):
    id: str
    name: str
    index: int
    type: str
    visible: bool = True
    layers: list[CompositionLayer] = Field(default_factory=list)


class CompositionMetadata(MotionModel):
    width: int
    height: int
    fps: int
    duration: float
    duration_in_frames: int
    background_color: str = "#000000"


class LayerSample(MotionModel):
    layer_id: str
    track_id: str
    style: LayerStyle
    effects: list[EffectStyle] = Field(default_factory=list)


class FrameSample(MotionModel):
    frame: int
    time: float
    camera: CameraState
    layers: list[LayerSample] = Field(default_factory=list)
    global_effects: list[EffectStyle] = Field(default_factory=list)


class Composition(MotionModel):
    """Renderer-facing scene: tracks of layers whose look is a function of time."""

    composition_id: str
    metadata: CompositionMetadata
    tracks: list[CompositionTrack] = Field(default_factory=list)
    camera: Camera = Field(default_factory=Camera)
    global_effects: list[Effect] = Field(default_factory=list)

    def sample(self, t: float) -> FrameSample:
        layers: list[LayerSample] = []
        for track in sorted(self.tracks, key=lambda tr: tr.index):
            if not track.visible:
                continue
            for layer in track.layers:
                if not layer.visible or not layer.is_active(t):
                    continue
                layers.append(
                    LayerSample(
                        layer_id=layer.id,
                        track_id=track.id,
                        style=layer.style_at(t),
                        effects=layer.effects_at(t),
                    )
                )
        global_effects = [
            s for s in (effect_style(e, t) for e in self.global_effects) if s is not None
        ]
        return FrameSample(
            frame=int(round(t * self.metadata.fps)),
            time=t,
            camera=camera_at(self.camera, t),
            layers=layers,
            global_effects=global_effects,
        )

    def bake(self) -> list[FrameSample]:
        fps = self.metadata.fps
        return [self.sample(i / fps) for i in range(self.metadata.duration_in_frames)]

    def to_render_props(self, image_src: Optional[str] = None, bake: bool = False) -> dict[str, Any]:
        props: dict[str, Any] = {"composition": self.to_json_dict()}
        if image_src is not None:
            props["imageSrc"] = image_src
        if bake:
            props["frames"] = [f.to_json_dict() for f in self.bake()]
        return props
