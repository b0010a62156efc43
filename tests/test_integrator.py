"""Unit tests for the path tracing integrator.

Tests cover:
- Background gradient
- ray_color terminal conditions (miss, absorption, depth exhaustion)
- resolve_color gamma and clamping
- Render target management
- Whole-image rendering: background-only images, determinism, parallel vs
  serial equivalence and progress reporting
- The fast_math reproducibility warning
"""

import logging

import numpy as np
import pytest
import taichi as ti


def _trace(origin, direction, max_depth, seed=0):
    """Run ray_color for one ray and return the color as a NumPy array."""
    from weekend_tracer.core.integrator import ray_color
    from weekend_tracer.core.rng import seed_rng

    ox, oy, oz = origin
    dx, dy, dz = direction
    result = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel():
        rng = seed_rng(ti.u32(seed), ti.u32(0))
        color, rng = ray_color(
            ti.math.vec3(ox, oy, oz), ti.math.vec3(dx, dy, dz), max_depth, rng
        )
        result[None] = color

    test_kernel()
    return result[None].to_numpy()


def _expected_background(width, height, bottom=(1.0, 1.0, 1.0), top=(0.5, 0.7, 1.0)):
    """Pixel-center background image for the pinhole_camera fixture."""
    cols = (np.arange(width) + 0.5) / width
    rows = (height - 1 - np.arange(height) + 0.5) / height
    s, t = np.meshgrid(cols, rows)
    directions = np.stack([-2.0 + 4.0 * s, -1.0 + 2.0 * t, -np.ones_like(s)], axis=-1)
    unit = directions / np.linalg.norm(directions, axis=-1, keepdims=True)
    blend = 0.5 * (unit[..., 1:2] + 1.0)
    color = (1.0 - blend) * np.array(bottom) + blend * np.array(top)
    return np.clip(np.sqrt(color), 0.0, 1.0)


class TestBackground:
    """Tests for background_color and setup_background."""

    @pytest.mark.parametrize(
        "direction,expected",
        [
            ((0.0, 1.0, 0.0), (0.5, 0.7, 1.0)),
            ((0.0, -3.0, 0.0), (1.0, 1.0, 1.0)),
            ((1.0, 0.0, 0.0), (0.75, 0.85, 1.0)),
        ],
    )
    def test_gradient(self, direction, expected):
        from weekend_tracer.core.integrator import background_color

        dx, dy, dz = direction
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = background_color(ti.math.vec3(dx, dy, dz))

        test_kernel()
        assert np.allclose(result[None].to_numpy(), expected, atol=1e-6)

    def test_custom_colors(self):
        from weekend_tracer.core.integrator import setup_background

        setup_background((0.0, 0.0, 0.0), (0.2, 0.4, 0.6))
        color = _trace((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 5)
        assert np.allclose(color, (0.2, 0.4, 0.6), atol=1e-6)


class TestRayColor:
    """Tests for ray_color."""

    def test_zero_depth_is_black(self):
        """With no bounces left the estimate is black, even for a miss."""
        assert np.allclose(_trace((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 0), 0.0)

    def test_empty_scene_returns_background(self):
        color = _trace((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 1)
        assert np.allclose(color, (0.75, 0.85, 1.0), atol=1e-6)

    def test_unknown_material_absorbs(self):
        from weekend_tracer.scene.intersection import add_sphere

        add_sphere(ti.math.vec3(0.0, 0.0, -2.0), 0.5, 99)
        assert np.allclose(_trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 10), 0.0)

    def test_enclosed_path_exhausts_depth(self):
        """A ray trapped inside a diffuse sphere never escapes."""
        from weekend_tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, 0.0), 10.0, (1.0, 1.0, 1.0))
        assert np.allclose(_trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 8), 0.0)

    def test_mirror_bounce_attenuates_background(self):
        """One perfect mirror bounce returns albedo * background."""
        from weekend_tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5), 0.0)
        color = _trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), 5)
        assert np.allclose(color, (0.25, 0.35, 0.5), atol=1e-4)

    def test_depth_one_hit_is_black(self):
        """A hit consumes the only bounce, so nothing reaches the background."""
        from weekend_tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5), 0.0)
        assert np.allclose(_trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), 1), 0.0)

    def test_glass_does_not_darken(self):
        """A ray through a glass sphere keeps full energy."""
        from weekend_tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -3.0), 1.0, 1.5)
        color = _trace((0.2, 0.0, 0.0), (0.0, 0.0, -1.0), 50)
        # Both background stops have a blue channel of 1
        assert abs(color[2] - 1.0) < 1e-4


class TestResolveColor:
    """Tests for resolve_color."""

    def test_gamma_and_clamp(self):
        from weekend_tracer.core.integrator import resolve_color

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = resolve_color(ti.math.vec3(1.0, 16.0, 0.0), 4)

        test_kernel()
        assert np.allclose(result[None].to_numpy(), (0.5, 1.0, 0.0), atol=1e-6)


class TestRenderTarget:
    """Tests for render target management."""

    def test_framebuffer_before_setup_raises(self):
        from weekend_tracer.core.integrator import get_framebuffer_numpy

        with pytest.raises(RuntimeError, match="Render target not set up"):
            get_framebuffer_numpy()

    @pytest.mark.parametrize("width,height", [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_invalid_dimensions(self, width, height):
        from weekend_tracer.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(width, height)

    def test_setup_clears_to_black(self):
        from weekend_tracer.core.integrator import (
            get_framebuffer_numpy,
            get_image_dimensions,
            setup_render_target,
        )

        setup_render_target(12, 7)
        assert get_image_dimensions() == (12, 7)
        image = get_framebuffer_numpy()
        assert image.shape == (7, 12, 3)
        assert image.dtype == np.float32
        assert np.all(image == 0.0)

    def test_render_rows_range_checked(self):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_rows, setup_render_target

        settings = RenderSettings(width=8, height=4)
        setup_render_target(8, 4)
        with pytest.raises(ValueError, match="Row range"):
            render_rows(settings, 2, 5)


class TestRenderImage:
    """Tests for render_image."""

    def test_empty_scene_matches_background(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image

        settings = RenderSettings(width=16, height=8, samples_per_pixel=1, jitter=False)
        image = render_image(settings)
        assert np.allclose(image, _expected_background(16, 8), atol=1e-5)

    def test_empty_scene_sample_count_invariant(self, pinhole_camera):
        """Without jitter and geometry every sample is identical."""
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image

        one = render_image(RenderSettings(width=16, height=8, samples_per_pixel=1, jitter=False))
        many = render_image(RenderSettings(width=16, height=8, samples_per_pixel=8, jitter=False))
        assert np.allclose(one, many, atol=1e-6)

    def test_black_background_depth_one_is_black(self, pinhole_camera):
        """With one bounce every hit is absorbed and every miss sees black."""
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.preview.export import framebuffer_to_uint8
        from weekend_tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.5, 0.5, 0.5))
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        settings = RenderSettings(
            width=32,
            height=16,
            samples_per_pixel=1,
            max_depth=1,
            seed=7,
            background_bottom=(0.0, 0.0, 0.0),
            background_top=(0.0, 0.0, 0.0),
        )

        assert np.all(framebuffer_to_uint8(render_image(settings)) == 0)

    def test_same_seed_reproduces_diffuse_bounces(self, pinhole_camera):
        """Two diffuse bounces make the image depend on the random stream."""
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.preview.export import framebuffer_to_uint8
        from weekend_tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.5, 0.5, 0.5))
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        base = dict(width=32, height=16, samples_per_pixel=1, max_depth=2, jitter=False)

        first = framebuffer_to_uint8(render_image(RenderSettings(**base, seed=7)))
        second = framebuffer_to_uint8(render_image(RenderSettings(**base, seed=7)))
        other = framebuffer_to_uint8(render_image(RenderSettings(**base, seed=8)))
        assert np.array_equal(first, second)
        assert not np.array_equal(first, other)

    def test_repeated_renders_identical(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.scene.presets import create_demo_scene

        create_demo_scene(aspect_ratio=2.0)
        settings = RenderSettings(width=32, height=16, samples_per_pixel=4, max_depth=8, seed=3)
        assert np.array_equal(render_image(settings), render_image(settings))

    def test_parallel_and_serial_identical(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.scene.presets import create_demo_scene

        create_demo_scene(aspect_ratio=2.0)
        base = dict(width=24, height=12, samples_per_pixel=4, max_depth=8, seed=11)
        parallel = render_image(RenderSettings(**base, parallel=True))
        serial = render_image(RenderSettings(**base, parallel=False))
        assert np.array_equal(parallel, serial)

    def test_parallel_and_serial_identical_on_random_scene(self):
        """Glass, metal and many diffuse spheres give the same image on one thread."""
        from weekend_tracer.camera.thin_lens import setup_camera
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.scene.presets import create_random_scene

        base = dict(width=48, height=30, samples_per_pixel=4, max_depth=10, seed=3)
        _, camera = create_random_scene(seed=3, aspect_ratio=48 / 30)
        setup_camera(camera)
        parallel = render_image(RenderSettings(**base, parallel=True))
        serial = render_image(RenderSettings(**base, parallel=False))
        assert np.array_equal(parallel, serial)

    def test_batch_size_does_not_change_image(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.scene.presets import create_demo_scene

        create_demo_scene(aspect_ratio=2.0)
        base = dict(width=24, height=12, samples_per_pixel=2, max_depth=8, seed=5)
        single_rows = render_image(RenderSettings(**base, rows_per_batch=1))
        one_batch = render_image(RenderSettings(**base, rows_per_batch=16))
        assert np.array_equal(single_rows, one_batch)

    def test_different_seeds_differ(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.scene.presets import create_demo_scene

        create_demo_scene(aspect_ratio=2.0)
        base = dict(width=24, height=12, samples_per_pixel=2, max_depth=8)
        a = render_image(RenderSettings(**base, seed=1))
        b = render_image(RenderSettings(**base, seed=2))
        assert not np.array_equal(a, b)

    def test_progress_callback(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image

        calls = []
        settings = RenderSettings(width=8, height=40, samples_per_pixel=1, rows_per_batch=16)
        render_image(settings, callback=lambda done, total: calls.append((done, total)))
        assert calls == [(16, 40), (32, 40), (40, 40)]

    def test_output_in_unit_range(self, pinhole_camera):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import render_image
        from weekend_tracer.scene.presets import create_demo_scene

        create_demo_scene(aspect_ratio=2.0)
        image = render_image(RenderSettings(width=24, height=12, samples_per_pixel=4))
        assert np.all(np.isfinite(image))
        assert image.min() >= 0.0
        assert image.max() <= 1.0


class TestFastMath:
    """Tests for the fast_math reproducibility check."""

    def test_disabled_in_test_session(self):
        from weekend_tracer.core.integrator import fast_math_enabled

        assert fast_math_enabled() is False

    def test_no_warning_without_fast_math(self, caplog):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core.integrator import prepare_render

        with caplog.at_level(logging.WARNING, logger="weekend_tracer.core.integrator"):
            prepare_render(RenderSettings(width=4, height=4))
        assert "fast_math" not in caplog.text

    def test_warns_with_fast_math(self, monkeypatch, caplog):
        from weekend_tracer.config import RenderSettings
        from weekend_tracer.core import integrator

        monkeypatch.setattr(integrator, "fast_math_enabled", lambda: True)
        with caplog.at_level(logging.WARNING, logger="weekend_tracer.core.integrator"):
            integrator.prepare_render(RenderSettings(width=4, height=4))
        assert "fast_math=False" in caplog.text
