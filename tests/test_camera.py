"""Unit tests for the thin-lens camera.

Tests cover:
- Camera basis and viewport computation
- Primary ray directions for a pinhole camera
- Depth of field: lens sampling and convergence on the focus plane
- Parameter validation and serialization
"""

import math

import numpy as np
import pytest
import taichi as ti


def _sample_rays(s, t, n=1, seed=0):
    """Generate n camera rays through (s, t) and return (origins, directions)."""
    from weekend_tracer.camera.thin_lens import get_ray
    from weekend_tracer.core.rng import seed_rng

    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

    @ti.kernel
    def test_kernel():
        for i in range(n):
            rng = seed_rng(ti.u32(seed), ti.cast(i, ti.u32))
            o, d, rng = get_ray(s, t, rng)
            origins[i] = o
            directions[i] = d

    test_kernel()
    return origins.to_numpy(), directions.to_numpy()


class TestCameraSetup:
    """Tests for setup_camera and get_camera_info."""

    def test_pinhole_basis(self, pinhole_camera):
        from weekend_tracer.camera.thin_lens import get_camera_info

        info = get_camera_info()
        assert np.allclose(info["origin"], (0.0, 0.0, 0.0))
        assert np.allclose(info["u"], (1.0, 0.0, 0.0), atol=1e-6)
        assert np.allclose(info["v"], (0.0, 1.0, 0.0), atol=1e-6)
        assert np.allclose(info["w"], (0.0, 0.0, 1.0), atol=1e-6)

    def test_pinhole_viewport(self, pinhole_camera):
        """A 90 degree, 2:1 camera has a 4 x 2 viewport one unit away."""
        from weekend_tracer.camera.thin_lens import get_camera_info

        info = get_camera_info()
        assert np.allclose(info["horizontal"], (4.0, 0.0, 0.0), atol=1e-5)
        assert np.allclose(info["vertical"], (0.0, 2.0, 0.0), atol=1e-5)
        assert np.allclose(info["lower_left"], (-2.0, -1.0, -1.0), atol=1e-5)
        assert info["lens_radius"] == 0.0

    def test_viewport_scales_with_focus_distance(self):
        from weekend_tracer.camera.thin_lens import ThinLensCamera, get_camera_info, setup_camera

        setup_camera(
            ThinLensCamera(
                lookfrom=(0.0, 0.0, 0.0),
                lookat=(0.0, 0.0, -1.0),
                vup=(0.0, 1.0, 0.0),
                vfov=90.0,
                aspect_ratio=1.0,
                aperture=0.5,
                focus_distance=3.0,
            )
        )
        info = get_camera_info()
        assert np.allclose(info["horizontal"], (6.0, 0.0, 0.0), atol=1e-5)
        assert np.allclose(info["lower_left"], (-3.0, -3.0, -3.0), atol=1e-5)
        assert abs(info["lens_radius"] - 0.25) < 1e-6


class TestPrimaryRays:
    """Tests for get_ray."""

    def test_center_ray_looks_forward(self, pinhole_camera):
        origins, directions = _sample_rays(0.5, 0.5)
        assert np.allclose(origins[0], (0.0, 0.0, 0.0), atol=1e-6)
        assert np.allclose(directions[0], (0.0, 0.0, -1.0), atol=1e-6)

    def test_corner_rays(self, pinhole_camera):
        """s = 0, t = 0 is the bottom-left corner and s = 1, t = 1 the top-right."""
        _, bottom_left = _sample_rays(0.0, 0.0)
        _, top_right = _sample_rays(1.0, 1.0)
        assert np.allclose(bottom_left[0], np.array([-2.0, -1.0, -1.0]) / math.sqrt(6.0), atol=1e-5)
        assert np.allclose(top_right[0], np.array([2.0, 1.0, -1.0]) / math.sqrt(6.0), atol=1e-5)

    def test_directions_are_unit_length(self, pinhole_camera):
        _, directions = _sample_rays(0.13, 0.87, n=16)
        assert np.allclose(np.linalg.norm(directions, axis=1), 1.0, atol=1e-5)


class TestDepthOfField:
    """Tests for thin-lens sampling."""

    @pytest.fixture
    def lens_camera(self):
        from weekend_tracer.camera.thin_lens import ThinLensCamera, setup_camera

        camera = ThinLensCamera(
            lookfrom=(13.0, 2.0, 3.0),
            lookat=(0.0, 0.0, 0.0),
            vup=(0.0, 1.0, 0.0),
            vfov=30.0,
            aspect_ratio=1.5,
            aperture=0.4,
            focus_distance=10.0,
        )
        setup_camera(camera)
        return camera

    def test_origins_within_lens(self, lens_camera):
        origins, _ = _sample_rays(0.3, 0.6, n=1024)
        offsets = origins - np.array(lens_camera.lookfrom)
        distances = np.linalg.norm(offsets, axis=1)
        assert distances.max() <= lens_camera.lens_radius + 1e-4
        assert distances.max() > 0.0

    def test_origins_lie_in_lens_plane(self, lens_camera):
        """Lens offsets are perpendicular to the view direction."""
        from weekend_tracer.camera.thin_lens import get_camera_info

        origins, _ = _sample_rays(0.3, 0.6, n=256)
        w = np.array(get_camera_info()["w"])
        offsets = origins - np.array(lens_camera.lookfrom)
        assert np.allclose(offsets @ w, 0.0, atol=1e-4)

    def test_rays_converge_on_focus_plane(self, lens_camera):
        """Every ray through the same (s, t) hits the same point in focus."""
        from weekend_tracer.camera.thin_lens import get_camera_info

        s, t = 0.3, 0.6
        origins, directions = _sample_rays(s, t, n=256)
        info = get_camera_info()
        target = (
            np.array(info["lower_left"])
            + s * np.array(info["horizontal"])
            + t * np.array(info["vertical"])
        )
        to_target = target - origins
        expected = to_target / np.linalg.norm(to_target, axis=1, keepdims=True)
        assert np.allclose(directions, expected, atol=1e-4)


class TestCameraValidation:
    """Tests for validate_camera and serialization."""

    BASE = dict(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=1.0,
    )

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"vfov": 0.0}, "vfov"),
            ({"vfov": 180.0}, "vfov"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"aperture": -0.1}, "aperture"),
            ({"focus_distance": 0.0}, "focus_distance"),
            ({"lookat": (0.0, 0.0, 0.0)}, "lookfrom and lookat"),
            ({"vup": (0.0, 0.0, 2.0)}, "vup"),
        ],
    )
    def test_invalid_parameters(self, overrides, message):
        from weekend_tracer.camera.thin_lens import ThinLensCamera, setup_camera

        camera = ThinLensCamera(**{**self.BASE, **overrides})
        with pytest.raises(ValueError, match=message):
            setup_camera(camera)

    def test_dict_round_trip(self):
        from weekend_tracer.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera(**self.BASE, aperture=0.1, focus_distance=10.0)
        restored = ThinLensCamera.from_dict(camera.to_dict())
        assert restored == camera

    def test_from_dict_defaults(self):
        from weekend_tracer.camera.thin_lens import ThinLensCamera

        camera = ThinLensCamera.from_dict(
            {"lookfrom": [0, 0, 1], "lookat": [0, 0, 0], "vfov": 45, "aspect_ratio": 1.5}
        )
        assert camera.vup == (0.0, 1.0, 0.0)
        assert camera.aperture == 0.0
        assert camera.focus_distance == 1.0
