"""Thin-lens camera model with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The image plane is placed at ``focus_distance`` in front of the camera. Each
primary ray starts at a random point on a lens disk of radius aperture / 2
centered on lookfrom and passes through the image-plane point for (s, t).
Points at exactly the focus distance therefore stay sharp while everything
else blurs in proportion to the lens radius. With aperture 0 the camera is a
pinhole.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from weekend_tracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=30.0,
    ...     aspect_ratio=16.0 / 10.0,
    ...     aperture=0.1,
    ...     focus_distance=10.0,
    ... )
    >>> setup_camera(camera)
    >>> # Inside a kernel:
    >>> # origin, direction, rng = get_ray(s, t, rng)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from weekend_tracer.core.ray import normalize, vec3
from weekend_tracer.core.rng import random_in_unit_disk

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction used to orient the camera (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_distance: Distance from lookfrom to the plane of perfect focus.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_distance: float = 1.0

    @property
    def lens_radius(self) -> float:
        return self.aperture / 2.0

    def to_dict(self) -> dict:
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
            "aperture": self.aperture,
            "focus_distance": self.focus_distance,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ThinLensCamera":
        return cls(
            lookfrom=tuple(data["lookfrom"]),
            lookat=tuple(data["lookat"]),
            vup=tuple(data.get("vup", (0.0, 1.0, 0.0))),
            vfov=float(data["vfov"]),
            aspect_ratio=float(data["aspect_ratio"]),
            aperture=float(data.get("aperture", 0.0)),
            focus_distance=float(data.get("focus_distance", 1.0)),
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward

# Image plane at focus_distance
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())


def validate_camera(camera: ThinLensCamera) -> None:
    """Check camera parameters.

    Raises:
        ValueError: If any parameter is out of range or the view basis is
            degenerate.
    """
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov must be in (0, 180) degrees, got {camera.vfov}")
    if not camera.aspect_ratio > 0.0:
        raise ValueError(f"aspect_ratio must be positive, got {camera.aspect_ratio}")
    if not camera.aperture >= 0.0:
        raise ValueError(f"aperture must be non-negative, got {camera.aperture}")
    if not camera.focus_distance > 0.0:
        raise ValueError(f"focus_distance must be positive, got {camera.focus_distance}")

    view = np.asarray(camera.lookfrom, dtype=np.float64) - np.asarray(
        camera.lookat, dtype=np.float64
    )
    if np.linalg.norm(view) < 1e-8:
        raise ValueError("lookfrom and lookat must be different points")

    side = np.cross(np.asarray(camera.vup, dtype=np.float64), view)
    if np.linalg.norm(side) < 1e-8:
        raise ValueError("vup must not be parallel to the view direction")


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Validate the camera and write its state into the camera fields.

    Must be called before rendering. The basis is computed in double precision
    with NumPy and stored as f32.

    Raises:
        ValueError: If the camera parameters are invalid.
    """
    validate_camera(camera)

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)

    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)

    v = np.cross(w, u)

    horizontal = camera.focus_distance * viewport_width * u
    vertical = camera.focus_distance * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - camera.focus_distance * w

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.lens_radius


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, rng: ti.u32):
    """Generate a primary ray through normalized image coordinates (s, t).

    Coordinates run from the left (s = 0) to the right (s = 1) edge and from
    the bottom (t = 0) to the top (t = 1) edge of the image plane.

    A lens sample is drawn on every call, even for a pinhole camera, so the
    number of random draws per ray does not depend on the aperture.

    Args:
        s: Horizontal image-plane coordinate.
        t: Vertical image-plane coordinate.
        rng: The random stream state.

    Returns:
        A tuple (origin, direction, rng) with a unit direction.
    """
    disk, state = random_in_unit_disk(rng)
    rd = _lens_radius[None] * disk
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    direction = normalize(target - origin)

    return origin, direction, state


# =============================================================================
# Utility Functions
# =============================================================================


def _to_tuple(value) -> tuple[float, float, float]:
    return (float(value[0]), float(value[1]), float(value[2]))


def get_camera_info() -> dict:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left as
        float triples and lens_radius as a float.
    """
    return {
        "origin": _to_tuple(_camera_origin[None]),
        "u": _to_tuple(_camera_u[None]),
        "v": _to_tuple(_camera_v[None]),
        "w": _to_tuple(_camera_w[None]),
        "horizontal": _to_tuple(_viewport_horizontal[None]),
        "vertical": _to_tuple(_viewport_vertical[None]),
        "lower_left": _to_tuple(_lower_left_corner[None]),
        "lens_radius": float(_lens_radius[None]),
    }
