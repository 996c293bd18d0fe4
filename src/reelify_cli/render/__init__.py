from .coder import coder, composition_id_for
from .composition import Composition, FrameSample, LayerStyle, effect_style, keyframe_style
from .remotion import RemotionRenderer
from .renderer import (
    Renderer,
    RenderError,
    RendererNotFoundError,
    RenderOutcome,
    RenderRequest,
    VideoMetadata,
)

__all__ = [
    "Composition",
    "FrameSample",
    "LayerStyle",
    "RemotionRenderer",
    "RenderError",
    "RenderOutcome",
    "RenderRequest",
    "Renderer",
    "RendererNotFoundError",
    "VideoMetadata",
    "coder",
    "composition_id_for",
    "effect_style",
    "keyframe_style",
]
