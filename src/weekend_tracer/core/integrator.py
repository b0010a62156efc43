"""Path tracing integrator and framebuffer builder.

This module implements the color estimator and the per-pixel sampling loop.

The estimator follows a ray through the scene. At every hit the material of
the hit sphere decides whether the ray is absorbed or scattered and by how
much it is attenuated. A ray that escapes picks up the background gradient,
scaled by the product of all attenuations along the path. A path that is
absorbed or runs out of bounces contributes black.

The sampler renders the image in batches of rows. For every pixel it averages
``samples_per_pixel`` estimates, applies gamma 2 (square root), clamps to
[0, 1] and writes the result into the framebuffer exactly once. Each pixel
seeds its own random stream from the render seed and its index, so the image
does not depend on thread scheduling or batch size. It is also independent of
the parallel flag as long as Taichi is initialized with fast_math=False.

Key features:
    - Closed material dispatch (Lambertian, Metal, Dielectric)
    - Iterative estimator with a running attenuation product
    - Parallel and serial kernels sharing the same pixel code
    - Row-batch progress reporting

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, fast_math=False)
    >>> from weekend_tracer.camera.thin_lens import setup_camera
    >>> from weekend_tracer.config import RenderSettings
    >>> from weekend_tracer.core.integrator import render_image, get_framebuffer_numpy
    >>> from weekend_tracer.scene.presets import create_demo_scene
    >>>
    >>> scene, camera = create_demo_scene()
    >>> setup_camera(camera)
    >>> render_image(RenderSettings(width=200, height=100, samples_per_pixel=10))
    >>> image = get_framebuffer_numpy()  # (100, 200, 3) float32
"""

import logging
import time
from collections.abc import Callable

import numpy as np
import taichi as ti
import taichi.math as tm
from taichi.lang import impl

from weekend_tracer.camera.thin_lens import get_ray
from weekend_tracer.config import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, RenderSettings
from weekend_tracer.core.ray import normalize
from weekend_tracer.core.rng import random_float, seed_rng
from weekend_tracer.materials.dielectric import (
    get_dielectric_ior,
    scatter_dielectric,
)
from weekend_tracer.materials.lambertian import (
    get_lambertian_albedo,
    scatter_lambertian,
)
from weekend_tracer.materials.metal import (
    get_metal_albedo,
    get_metal_fuzz,
    scatter_metal,
)
from weekend_tracer.scene.intersection import intersect_scene
from weekend_tracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Called after each row batch with (rows_completed, total_rows)
ProgressCallback = Callable[[int, int], None]

# =============================================================================
# Rendering Constants
# =============================================================================

# Intersection interval. T_MIN suppresses self-intersection of rays that start
# exactly on a surface.
T_MIN = 0.001
T_MAX = 1e10

# =============================================================================
# Background
# =============================================================================

_background_bottom = ti.Vector.field(3, dtype=ti.f32, shape=())
_background_top = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_background(
    bottom: tuple[float, float, float],
    top: tuple[float, float, float],
) -> None:
    """Set the two color stops of the background gradient."""
    _background_bottom[None] = [bottom[0], bottom[1], bottom[2]]
    _background_top[None] = [top[0], top[1], top[2]]


@ti.func
def background_color(direction: vec3) -> vec3:
    """Background gradient for an escaped ray.

    Blends linearly from the bottom color (straight down) to the top color
    (straight up) by the vertical component of the unit direction.
    """
    unit_direction = normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * _background_bottom[None] + t * _background_top[None]


# =============================================================================
# Render Target (Framebuffer)
# =============================================================================

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Resolved colors, row-major with row 0 at the top of the image
_framebuffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image dimensions and clear the framebuffer.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If the dimensions are not positive or exceed the maximum.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Reset the framebuffer to black."""
    _framebuffer.fill(0.0)


def reset_render_target() -> None:
    """Forget the active render target."""
    _render_target_initialized[None] = 0
    _image_width[None] = 0
    _image_height[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_framebuffer_numpy() -> np.ndarray:
    """Get the active framebuffer region as a NumPy array.

    Returns:
        Float32 array of shape (height, width, 3) with values in [0, 1], row 0
        at the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    return _framebuffer.to_numpy()[:height, :width, :].astype(np.float32)


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    rng: ti.u32,
):
    """Scatter a ray off the material with the given id.

    Args:
        material_id: The unified material id of the hit sphere.
        incident_direction: The incoming ray direction.
        normal: The unit surface normal, facing the incoming ray.
        front_face: 1 if the ray hit the outside of the sphere, 0 otherwise.
        rng: The random stream state.

    Returns:
        A tuple of (did_scatter, scattered_direction, attenuation, rng).
        did_scatter is 0 when the ray is absorbed, including for an unknown
        material id.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    state = rng
    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        scattered_direction, attenuation, state = scatter_lambertian(albedo, normal, state)
        did_scatter = 1

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        scattered_direction, attenuation, did_scatter, state = scatter_metal(
            albedo, fuzz, incident_direction, normal, state
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index)
        scattered_direction, attenuation, state = scatter_dielectric(
            ior, incident_direction, normal, front_face, state
        )
        did_scatter = 1

    return did_scatter, scattered_direction, attenuation, state


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def ray_color(origin: vec3, direction: vec3, max_depth: ti.i32, rng: ti.u32):
    """Estimate the color carried back along a ray.

    Iterative form of color(ray, depth): each bounce multiplies a running
    attenuation, a miss ends the path with attenuation * background, and
    absorption or running out of depth ends it with black. A max_depth of 0
    or less returns black without touching the scene.

    Scattered rays start exactly at the hit point; T_MIN keeps them from
    hitting the surface they leave.

    Args:
        origin: The ray origin.
        direction: The ray direction (non-zero).
        max_depth: Maximum number of surface interactions.
        rng: The random stream state.

    Returns:
        A tuple of (color, rng).
    """
    ray_origin = origin
    ray_direction = direction
    state = rng

    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    # Cleared when the path ends (Taichi has no break in this position)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            hit_record = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if hit_record.hit == 0:
                color = throughput * background_color(ray_direction)
                active = 0
            else:
                did_scatter, scattered_direction, attenuation, state = scatter_material(
                    hit_record.material_id,
                    ray_direction,
                    hit_record.normal,
                    hit_record.front_face,
                    state,
                )

                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = hit_record.point
                    ray_direction = scattered_direction

    return color, state


@ti.func
def resolve_color(color_sum: vec3, samples_per_pixel: ti.i32) -> vec3:
    """Average accumulated samples, apply gamma 2 and clamp to [0, 1]."""
    average = color_sum / ti.cast(samples_per_pixel, ti.f32)
    return tm.clamp(ti.sqrt(average), 0.0, 1.0)


@ti.func
def _render_pixel(
    row: ti.i32,
    col: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    jitter: ti.i32,
) -> vec3:
    """Render one framebuffer cell.

    Row 0 is the top of the image, so the image-plane coordinate t runs from
    (height - 1 + jy) / height for row 0 down to jy / height for the last row.
    """
    rng = seed_rng(seed, ti.cast(row * width + col, ti.u32))
    color_sum = vec3(0.0, 0.0, 0.0)

    for _ in range(samples_per_pixel):
        jx = 0.5
        jy = 0.5
        if jitter != 0:
            jx, rng = random_float(rng)
            jy, rng = random_float(rng)

        s = (ti.cast(col, ti.f32) + jx) / ti.cast(width, ti.f32)
        t = (ti.cast(height - 1 - row, ti.f32) + jy) / ti.cast(height, ti.f32)

        origin, direction, rng = get_ray(s, t, rng)
        sample, rng = ray_color(origin, direction, max_depth, rng)

        # Drop NaN/Inf samples from degenerate numerics
        for c in ti.static(range(3)):
            if tm.isnan(sample[c]) or tm.isinf(sample[c]):
                sample[c] = 0.0

        color_sum += sample

    return resolve_color(color_sum, samples_per_pixel)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows_parallel(
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    jitter: ti.i32,
):
    """Render rows [row_start, row_end) with pixels spread across threads."""
    for row, col in ti.ndrange((row_start, row_end), (0, width)):
        _framebuffer[row, col] = _render_pixel(
            row, col, width, height, samples_per_pixel, max_depth, seed, jitter
        )


@ti.kernel
def _render_rows_serial(
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    jitter: ti.i32,
):
    """Render rows [row_start, row_end) one pixel at a time."""
    ti.loop_config(serialize=True)
    for row, col in ti.ndrange((row_start, row_end), (0, width)):
        _framebuffer[row, col] = _render_pixel(
            row, col, width, height, samples_per_pixel, max_depth, seed, jitter
        )


# =============================================================================
# Public Rendering API
# =============================================================================


def render_rows(settings: RenderSettings, row_start: int, row_end: int) -> None:
    """Render a range of framebuffer rows.

    The render target, background and camera must already be set up.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If the row range is outside the image.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Row range [{row_start}, {row_end}) is outside [0, {height})")
    if row_start == row_end:
        return

    kernel = _render_rows_parallel if settings.parallel else _render_rows_serial
    kernel(
        row_start,
        row_end,
        width,
        height,
        settings.samples_per_pixel,
        settings.max_depth,
        settings.seed,
        1 if settings.jitter else 0,
    )


def iter_row_batches(settings: RenderSettings):
    """Yield (row_start, row_end) for each batch of rows, top to bottom."""
    for row_start in range(0, settings.height, settings.rows_per_batch):
        yield row_start, min(row_start + settings.rows_per_batch, settings.height)


def fast_math_enabled() -> bool:
    """Check whether the active Taichi runtime was initialized with fast_math."""
    return bool(impl.current_cfg().fast_math)


def prepare_render(settings: RenderSettings) -> None:
    """Set up the framebuffer and background for settings.

    Logs a warning when Taichi runs with fast_math, under which the parallel
    and serial kernels may compile to different float code and produce
    different images for the same seed.
    """
    if fast_math_enabled():
        logger.warning(
            "Taichi was initialized with fast_math=True; parallel and serial renders "
            "may differ. Use ti.init(..., fast_math=False) for reproducible images."
        )
    setup_render_target(settings.width, settings.height)
    setup_background(settings.background_bottom, settings.background_top)


def render_image(
    settings: RenderSettings,
    callback: ProgressCallback | None = None,
) -> np.ndarray:
    """Render the whole image into the framebuffer.

    The camera must have been set up with setup_camera() and the scene built
    beforehand. Every framebuffer cell is written exactly once.

    Args:
        settings: Image and sampling parameters.
        callback: Optional function called after each row batch with
            (rows_completed, total_rows).

    Returns:
        The framebuffer as a float32 array of shape (height, width, 3).
    """
    prepare_render(settings)

    logger.info(
        "Rendering %dx%d, %d spp, max depth %d, seed %d",
        settings.width,
        settings.height,
        settings.samples_per_pixel,
        settings.max_depth,
        settings.seed,
    )
    start = time.perf_counter()

    for row_start, row_end in iter_row_batches(settings):
        render_rows(settings, row_start, row_end)
        logger.debug("Rendered rows %d-%d of %d", row_start, row_end, settings.height)
        if callback is not None:
            callback(row_end, settings.height)

    image = get_framebuffer_numpy()
    logger.info("Render finished in %.2fs", time.perf_counter() - start)
    return image
