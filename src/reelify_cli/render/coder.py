from __future__ import annotations

import hashlib
import json

from ..director.synthesizer import MotionIR
from ..schema import Layer, Timeline, Track
from .composition import Composition, CompositionLayer, CompositionMetadata, CompositionTrack

COMPOSITION_ID_PREFIX = "motion-"


def composition_id_for(timeline: Timeline) -> str:
    """Identifier derived from the timeline content; identical timelines share it."""
    canonical = json.dumps(
        timeline.to_json_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    return COMPOSITION_ID_PREFIX + hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def _layer(timeline: Timeline, layer: Layer) -> CompositionLayer:
    asset = timeline.get_asset(layer.asset_id) if layer.asset_id else None
    return CompositionLayer(
        id=layer.id,
        name=layer.name,
        type=layer.type,
        asset_src=asset.src if asset is not None else None,
        start_time=layer.start_time,
        duration=layer.duration,
        keyframes=sorted((kf.model_copy(deep=True) for kf in layer.keyframes), key=lambda kf: kf.time),
        effects=[e.model_copy(deep=True) for e in layer.effects],
        blend_mode=layer.blend_mode or "normal",
        visible=layer.visible,
    )


def _track(timeline: Timeline, track: Track) -> CompositionTrack:
    return CompositionTrack(
        id=track.id,
        name=track.name,
        index=track.index,
        type=track.type,
        visible=track.visible,
        layers=[_layer(timeline, layer) for layer in track.layers],
    )


def coder(motion_ir: MotionIR) -> Composition:
    """Translate a Motion-IR timeline into a declarative, time-parameterized composition.

    The timeline is read, never modified.
    """
    timeline = motion_ir.timeline
    meta = timeline.metadata
    return Composition(
        composition_id=composition_id_for(timeline),
        metadata=CompositionMetadata(
            width=meta.width,
            height=meta.height,
            fps=meta.fps,
            duration=meta.duration,
            duration_in_frames=max(int(round(meta.duration * meta.fps)), 1),
            background_color=meta.background_color or "#000000",
        ),
        tracks=[_track(timeline, t) for t in sorted(timeline.tracks, key=lambda tr: tr.index)],
        camera=timeline.camera.model_copy(deep=True),
        global_effects=[e.model_copy(deep=True) for e in timeline.global_effects],
    )
