"""Per-task random number streams for Monte Carlo sampling.

Taichi's built-in ``ti.random`` draws from per-thread generator states, so the
value a pixel receives depends on which worker thread happens to run it. To
keep renders reproducible regardless of scheduling, every pixel task owns its
own 32-bit PCG stream seeded from the global render seed and the pixel index.

The stream state is a plain ``ti.u32`` that is threaded through every function
that consumes randomness: each call returns the sampled value together with the
advanced state.

Example:
    >>> @ti.kernel
    ... def sample() -> ti.f32:
    ...     rng = seed_rng(ti.u32(42), ti.u32(0))
    ...     x, rng = random_float(rng)
    ...     return x
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# LCG step and output permutation constants (PCG-RXS-M-XS 32-bit)
PCG_MULTIPLIER = 747796405
PCG_INCREMENT = 1442695041
PCG_OUTPUT_MULTIPLIER = 277803737

# 2^-24: maps the top 24 bits of a u32 onto [0, 1)
_INV_2_POW_24 = 1.0 / 16777216.0

# Upper bound on rejection sampling attempts
MAX_REJECTION_ATTEMPTS = 64


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit integer with the PCG output permutation."""
    state = value * ti.u32(PCG_MULTIPLIER) + ti.u32(PCG_INCREMENT)
    word = ((state >> ((state >> ti.u32(28)) + ti.u32(4))) ^ state) * ti.u32(
        PCG_OUTPUT_MULTIPLIER
    )
    return (word >> ti.u32(22)) ^ word


@ti.func
def seed_rng(seed: ti.u32, task_index: ti.u32) -> ti.u32:
    """Derive an independent stream state for one task.

    Args:
        seed: The global render seed.
        task_index: Index of the task (the flattened pixel index).

    Returns:
        The initial stream state for the task.
    """
    return pcg_hash(task_index ^ pcg_hash(seed))


@ti.func
def random_float(rng: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        rng: The current stream state.

    Returns:
        A tuple (value, rng) with the sample and the advanced state.
    """
    state = pcg_hash(rng)
    value = ti.cast(state >> ti.u32(8), ti.f32) * _INV_2_POW_24
    return value, state


@ti.func
def random_in_unit_sphere(rng: ti.u32):
    """Generate a random point inside the unit sphere by rejection sampling.

    Returns:
        A tuple (point, rng) where point has length < 1.
    """
    state = rng
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            x, state = random_float(state)
            y, state = random_float(state)
            z, state = random_float(state)
            p = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 2.0 * z - 1.0)
            if tm.dot(p, p) < 1.0:
                found = True
    if not found:
        p = vec3(0.0, 0.0, 0.0)
    return p, state


@ti.func
def random_unit_vector(rng: ti.u32):
    """Generate a random unit vector, uniform on the sphere.

    Returns:
        A tuple (direction, rng).
    """
    p, state = random_in_unit_sphere(rng)
    direction = vec3(0.0, 1.0, 0.0)
    # Points too close to the centre carry no direction information
    if tm.dot(p, p) > 1e-12:
        direction = p / tm.length(p)
    return direction, state


@ti.func
def random_in_unit_disk(rng: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for lens sampling in the thin-lens camera.

    Returns:
        A tuple (point, rng) where point is (x, y, 0) with x^2 + y^2 < 1.
    """
    state = rng
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            x, state = random_float(state)
            y, state = random_float(state)
            p = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 0.0)
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    if not found:
        p = vec3(0.0, 0.0, 0.0)
    return p, state
