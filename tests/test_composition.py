from __future__ import annotations

import math

import pytest

from reelify_cli.analysis.extraction import normalize_schema
from reelify_cli.analysis.providers.fallback import fallback_schema
from reelify_cli.director import director
from reelify_cli.render.coder import coder, composition_id_for
from reelify_cli.render.composition import camera_at, effect_style, keyframe_style
from reelify_cli.render.easing import EASINGS, apply_easing
from reelify_cli.schema import Camera, CameraMovement, Effect, Keyframe, KeyframeProperties, Vec2, Vec3


def _fade_keyframes(easing=None):
    return [
        Keyframe(time=0, properties=KeyframeProperties(opacity=0), easing=easing),
        Keyframe(time=1, properties=KeyframeProperties(opacity=1)),
    ]


@pytest.fixture
def motion_ir():
    schema = normalize_schema(fallback_schema("photo.jpg"))
    return director(schema, "cinematic zoom, 4 seconds", "photo.jpg")


class TestEasing:
    @pytest.mark.parametrize("name", sorted(EASINGS))
    def test_endpoints(self, name):
        assert apply_easing(0.0, name) == pytest.approx(0.0)
        assert apply_easing(1.0, name) == pytest.approx(1.0)

    def test_known_midpoints(self):
        assert apply_easing(0.5, "linear") == 0.5
        assert apply_easing(0.5, "easeIn") == 0.25
        assert apply_easing(0.5, "easeOut") == 0.75
        assert apply_easing(0.25, "easeInOut") == pytest.approx(0.125)
        assert apply_easing(0.75, "easeInOut") == pytest.approx(0.875)
        assert apply_easing(0.5, "spring") == pytest.approx(0.875)

    def test_unknown_name_is_linear(self):
        assert apply_easing(0.3, "bounce") == 0.3
        assert apply_easing(0.3, None) == 0.3


class TestKeyframeStyle:
    def test_linear_midpoint(self):
        assert keyframe_style(_fade_keyframes(), 0.5).opacity == pytest.approx(0.5)

    def test_holds_after_last(self):
        assert keyframe_style(_fade_keyframes(), 1.5).opacity == 1

    def test_empty_before_first(self):
        assert keyframe_style(_fade_keyframes(), -1).is_empty()

    def test_exact_keyframe_time(self):
        assert keyframe_style(_fade_keyframes(), 1.0).opacity == 1
        assert keyframe_style(_fade_keyframes(), 0.0).opacity == 0

    def test_earlier_keyframe_easing_applies(self):
        assert keyframe_style(_fade_keyframes("easeIn"), 0.5).opacity == pytest.approx(0.25)

    def test_unsorted_input(self):
        keyframes = list(reversed(_fade_keyframes()))
        assert keyframe_style(keyframes, 0.25).opacity == pytest.approx(0.25)

    def test_scale_and_position(self):
        keyframes = [
            Keyframe(time=0, properties=KeyframeProperties(scale=Vec2(x=1, y=1), position=Vec2(x=0, y=0))),
            Keyframe(time=2, properties=KeyframeProperties(scale=Vec2(x=2, y=3), position=Vec2(x=100, y=-50))),
        ]
        style = keyframe_style(keyframes, 1)
        assert (style.scale_x, style.scale_y) == (1.5, 2.0)
        assert (style.position_x, style.position_y) == (50, -25)

    def test_property_missing_on_one_end_holds(self):
        keyframes = [
            Keyframe(time=0, properties=KeyframeProperties(opacity=0.2)),
            Keyframe(time=1, properties=KeyframeProperties(scale=Vec2(x=2, y=2))),
        ]
        style = keyframe_style(keyframes, 0.5)
        assert style.opacity == 0.2
        assert style.scale_x is None


class TestEffectStyle:
    def test_fade_in_progress(self):
        effect = Effect(id="f", type="fade", parameters={"type": "in"}, start_time=0, duration=0.5)
        assert effect_style(effect, 0.25).opacity == pytest.approx(0.5)

    def test_fade_out(self):
        effect = Effect(id="f", type="fade", parameters={"type": "out"}, start_time=4.5, duration=0.5)
        assert effect_style(effect, 5.0).opacity == pytest.approx(0.0)

    def test_outside_window(self):
        effect = Effect(id="f", type="fade", parameters={"type": "in"}, start_time=1, duration=1)
        assert effect_style(effect, 0.5) is None
        assert effect_style(effect, 2.5) is None

    def test_blur_default_intensity(self):
        effect = Effect(id="b", type="blur", start_time=0, duration=1)
        assert effect_style(effect, 0.5).blur == 5.0

    def test_color_grade(self):
        effect = Effect(
            id="g", type="colorGrade", parameters={"temperature": -0.2, "saturation": -0.1}, duration=5
        )
        style = effect_style(effect, 2)
        assert (style.temperature, style.saturation, style.contrast) == (-0.2, -0.1, 0.0)


class TestCamera:
    def test_static_camera(self):
        state = camera_at(Camera(), 3)
        assert (state.position.x, state.position.y, state.position.z) == (0, 0, 0)

    def test_pan_progress(self):
        camera = Camera(
            movements=[CameraMovement(type="pan", to=Vec3(x=100), start_time=0.5, duration=4.5)]
        )
        assert camera_at(camera, 0).position.x == 0
        assert camera_at(camera, 2.75).position.x == pytest.approx(50)
        assert camera_at(camera, 10).position.x == 100

    def test_orbit_follows_arc(self):
        camera = Camera(
            movements=[CameraMovement(type="orbit", to=Vec3(x=150, z=150), start_time=0, duration=2)]
        )
        mid = camera_at(camera, 1).position
        assert mid.x == pytest.approx(150 * math.sin(math.pi / 4))
        assert mid.z == pytest.approx(150 * (1 - math.cos(math.pi / 4)))
        end = camera_at(camera, 2).position
        assert (end.x, end.z) == (pytest.approx(150), pytest.approx(150))


class TestCoder:
    def test_metadata(self, motion_ir):
        composition = coder(motion_ir)
        assert composition.metadata.duration_in_frames == 120
        assert composition.metadata.fps == 30
        assert composition.metadata.background_color == motion_ir.timeline.metadata.background_color
        assert composition.tracks[0].layers[0].asset_src == "photo.jpg"

    def test_id_is_stable_and_content_derived(self, motion_ir):
        assert coder(motion_ir).composition_id == coder(motion_ir).composition_id
        assert composition_id_for(motion_ir.timeline).startswith("motion-")
        other = motion_ir.timeline.model_copy(deep=True)
        other.metadata.duration = 9
        assert composition_id_for(other) != composition_id_for(motion_ir.timeline)

    def test_timeline_is_not_modified(self, motion_ir):
        before = motion_ir.timeline.to_json_dict()
        coder(motion_ir)
        assert motion_ir.timeline.to_json_dict() == before

    def test_sample_mid_zoom(self, motion_ir):
        # Zoom keyframes run from t=0 to 0.7 * duration.
        sample = coder(motion_ir).sample(1.4)
        main = sample.layers[0]
        assert main.layer_id == "main-image-layer"
        assert main.style.scale_x == pytest.approx(1.1)
        assert [e.effect_id for e in sample.global_effects] == ["film-grain"]
        assert sample.frame == 42

    def test_fade_in_at_start(self, motion_ir):
        main = coder(motion_ir).sample(0.25).layers[0]
        fade = next(e for e in main.effects if e.effect_id == "fade-in")
        assert fade.opacity == pytest.approx(0.5)

    def test_bake_frame_count(self, motion_ir):
        frames = coder(motion_ir).bake()
        assert len(frames) == 120
        assert frames[0].frame == 0
        assert frames[-1].frame == 119

    def test_render_props(self, motion_ir):
        composition = coder(motion_ir)
        props = composition.to_render_props(image_src="photo.jpg")
        assert props["imageSrc"] == "photo.jpg"
        assert props["composition"]["compositionId"] == composition.composition_id
        assert props["composition"]["metadata"]["durationInFrames"] == 120
        assert "frames" not in props
        assert len(composition.to_render_props(bake=True)["frames"]) == 120
