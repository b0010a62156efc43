"""Preview module for image output.

Components:
    export: 8-bit quantization, PNG export via Pillow and ASCII PPM export

Example:
    >>> from weekend_tracer.preview import save_image
    >>> save_image(renderer.get_image_numpy(), "output.png")
"""

from weekend_tracer.preview.export import (
    compute_rmse,
    framebuffer_to_uint8,
    save_image,
    save_png,
    write_ppm,
)

__all__ = [
    "framebuffer_to_uint8",
    "save_png",
    "write_ppm",
    "save_image",
    "compute_rmse",
]
