"""Sphere primitive with ray-sphere intersection.

The intersection solves |P(t) - center|^2 = radius^2 for the ray
P(t) = origin + t * direction. Roots are computed with the numerically stable
form of the quadratic formula so that nearly tangent rays and distant spheres
(such as a huge ground sphere) do not suffer from catastrophic cancellation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from weekend_tracer.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import make_ray, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (strictly positive).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: 1 if the ray intersected the sphere inside (t_min, t_max), else 0.
        t: The ray parameter of the intersection.
        point: The intersection point.
        normal: Unit surface normal, oriented against the incoming ray.
        front_face: 1 if the ray arrived from outside the sphere (the outward
            normal was kept), 0 if it arrived from inside (the normal was flipped).

    All fields except ``hit`` are only meaningful when ``hit == 1``.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def _sphere_roots(oc: vec3, direction: vec3, radius: ti.f32):
    """Solve |oc + t * direction| = radius for t.

    With half_b = dot(oc, direction) the roots are (-half_b +/- sqrt(disc)) / a.
    The root of larger magnitude is taken as q / a, where q adds two terms of
    the same sign, and the other one as c / q from the product of the roots.

    Returns:
        Tuple of (has_roots, near, far) with near <= far.
    """
    a = tm.dot(direction, direction)
    half_b = tm.dot(oc, direction)
    c = tm.dot(oc, oc) - radius * radius
    disc = half_b * half_b - a * c

    has_roots = 0
    near = 0.0
    far = 0.0
    if disc >= 0.0:
        has_roots = 1
        root = ti.sqrt(disc)
        q = -half_b - ti.select(half_b >= 0.0, root, -root)
        r0 = -half_b / a
        r1 = r0
        # q is zero only for a tangent ray starting on the sphere
        if q != 0.0:
            r0 = q / a
            r1 = c / q
        near = ti.min(r0, r1)
        far = ti.max(r0, r1)

    return has_roots, near, far


@ti.func
def _face_normal(direction: vec3, outward_normal: vec3):
    """Orient a normal against the ray.

    Returns:
        Tuple of (normal, front_face).
    """
    normal = outward_normal
    front_face = 1
    if tm.dot(direction, outward_normal) > 0.0:
        normal = -outward_normal
        front_face = 0
    return normal, front_face


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a sphere.

    Returns the smallest root lying strictly inside (t_min, t_max). The
    direction does not need to be unit length; t is measured in units of the
    direction vector.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (non-zero).
        sphere: The sphere to test.
        t_min: Exclusive lower bound for a valid hit. A small positive value
            suppresses self-intersection of rays leaving a surface.
        t_max: Exclusive upper bound for a valid hit.

    Returns:
        A HitRecord; check its ``hit`` field.
    """
    has_roots, near, far = _sphere_roots(ray_origin - sphere.center, ray_direction, sphere.radius)

    did_hit = 0
    hit_t = near
    if has_roots == 1:
        if t_min < near < t_max:
            did_hit = 1
        elif t_min < far < t_max:
            did_hit = 1
            hit_t = far

    hit_point = ray_at(make_ray(ray_origin, ray_direction), hit_t)
    hit_normal, is_front_face = _face_normal(
        ray_direction, (hit_point - sphere.center) / sphere.radius
    )

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a kernel."""
    return Sphere(center=center, radius=radius)
