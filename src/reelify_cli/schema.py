from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AssetType = Literal["image", "video", "audio", "text"]
EffectType = Literal[
    "zoom",
    "pan",
    "opacity",
    "slide",
    "fade",
    "blur",
    "colorGrade",
    "filmGrain",
    "cursor",
    "animation",
]
LayerType = Literal["image", "text", "shape", "composition"]
TrackType = Literal["video", "audio", "effect"]
BlendMode = Literal["normal", "multiply", "screen", "overlay"]
CameraType = Literal["2D", "2.5D", "3D"]
MovementType = Literal["static", "pan", "zoom", "dolly", "orbit", "tracking"]
Easing = Literal["linear", "easeIn", "easeOut", "easeInOut", "spring"]

ParamValue = Union[bool, int, float, str]

MOTION_IR_VERSION = "1.0"


class MotionModel(BaseModel):
    """Base for Motion-IR models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Vec2(MotionModel):
    x: float = 0.0
    y: float = 0.0
    z: Optional[float] = None


class Vec3(MotionModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Asset(MotionModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: AssetType
    src: str
    metadata: Optional[dict[str, Any]] = None


class KeyframeProperties(MotionModel):
    position: Optional[Vec2] = None
    scale: Optional[Vec2] = None
    rotation: Optional[Vec2] = None
    opacity: Optional[float] = None
    color: Optional[str] = None
    filter: Optional[str] = None


class Keyframe(MotionModel):
    time: float
    properties: KeyframeProperties = Field(default_factory=KeyframeProperties)
    easing: Optional[Easing] = None


class Effect(MotionModel):
    id: str
    type: EffectType
    parameters: dict[str, ParamValue] = Field(default_factory=dict)
    start_time: float = 0.0
    duration: float = 0.0

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def is_active(self, t: float) -> bool:
        return self.start_time <= t <= self.end_time


class Layer(MotionModel):
    id: str
    name: str
    type: LayerType
    asset_id: Optional[str] = None
    track_index: int = 0
    start_time: float = 0.0
    duration: float = 0.0
    keyframes: list[Keyframe] = Field(default_factory=list)
    effects: list[Effect] = Field(default_factory=list)
    blend_mode: Optional[BlendMode] = None
    visible: bool = True

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class Track(MotionModel):
    id: str
    name: str
    index: int
    type: TrackType = "video"
    layers: list[Layer] = Field(default_factory=list)
    locked: bool = False
    visible: bool = True


class CameraMovement(MotionModel):
    type: MovementType
    from_: Vec3 = Field(default_factory=Vec3, alias="from")
    to: Vec3 = Field(default_factory=Vec3)
    start_time: float = 0.0
    duration: float = 0.0
    easing: Easing = "linear"


class Camera(MotionModel):
    type: CameraType = "2D"
    position: Vec3 = Field(default_factory=Vec3)
    target: Vec3 = Field(default_factory=Vec3)
    fov: Optional[float] = None
    movements: list[CameraMovement] = Field(default_factory=list)


class TimelineMetadata(MotionModel):
    project_name: str = "Motion-IR Generated Video"
    created_at: str
    duration: float
    fps: int
    width: int
    height: int
    background_color: Optional[str] = None


class Timeline(MotionModel):
    version: Literal["1.0"] = MOTION_IR_VERSION
    metadata: TimelineMetadata
    assets: list[Asset] = Field(default_factory=list)
    tracks: list[Track] = Field(default_factory=list)
    camera: Camera = Field(default_factory=Camera)
    global_effects: list[Effect] = Field(default_factory=list)

    def iter_layers(self) -> Iterator[tuple[Track, Layer]]:
        for track in sorted(self.tracks, key=lambda tr: tr.index):
            for layer in track.layers:
                yield track, layer

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        return None


def now_utc_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat().replace("+00:00", "Z")


def create_basic_timeline(
    duration: float = 5,
    width: int = 1920,
    height: int = 1080,
    fps: int = 30,
    created_at: Optional[str] = None,
) -> Timeline:
    """Return an empty timeline skeleton.

    The skeleton has no assets or tracks; callers populate it before use and
    validation reports both as missing until they do.
    """
    return Timeline(
        metadata=TimelineMetadata(
            created_at=created_at or now_utc_iso(),
            duration=duration,
            fps=fps,
            width=width,
            height=height,
            background_color="#000000",
        ),
    )
