"""Image export utilities for rendered framebuffers.

The framebuffer already holds gamma-corrected colors in [0, 1], row 0 at the
top. Export quantizes each channel to 8 bits with floor(256 * clamp(c, 0,
0.999)) and writes rows top to bottom.

Supported formats:
    - PNG and anything else Pillow infers from the file extension
    - ASCII PPM (P3)

Example:
    >>> from weekend_tracer.preview.export import save_png, write_ppm
    >>> image = renderer.get_image_numpy()
    >>> save_png(image, "spheres.png")
    >>> write_ppm(image, "spheres")  # writes spheres.ppm
"""

from __future__ import annotations

import logging
import os

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Largest channel value before quantization, keeps 256 * c below 256
MAX_CHANNEL_VALUE = 0.999


def framebuffer_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Quantize a [0, 1] float image to 8 bits per channel.

    Args:
        image: Float image array of shape (H, W, 3).

    Returns:
        uint8 array of shape (H, W, 3).

    Raises:
        ValueError: If the array is not (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    clamped = np.clip(np.nan_to_num(image.astype(np.float64)), 0.0, MAX_CHANNEL_VALUE)
    return np.floor(256.0 * clamped).astype(np.uint8)


def save_png(image: npt.NDArray[np.floating], filepath: str | os.PathLike) -> None:
    """Save a framebuffer as an 8-bit image via Pillow.

    The format follows the file extension, so despite the name any format
    Pillow can write is accepted.

    Args:
        image: Float image array of shape (H, W, 3) with values in [0, 1].
        filepath: Output file path.
    """
    pil_image = PILImage.fromarray(framebuffer_to_uint8(image))
    pil_image.save(filepath)
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], filepath)


def write_ppm(image: npt.NDArray[np.floating], filepath: str | os.PathLike) -> str:
    """Write a framebuffer as an ASCII PPM (P3) file.

    The header is "P3", then "width height", then "255", followed by one
    "r g b" line per pixel, rows top to bottom. A path without an extension
    gets ".ppm" appended.

    Args:
        image: Float image array of shape (H, W, 3) with values in [0, 1].
        filepath: Output file path.

    Returns:
        The path actually written.

    Raises:
        ValueError: If the path has an extension other than ".ppm".
    """
    path = os.fspath(filepath)
    root, ext = os.path.splitext(path)
    if not ext:
        path = root + ".ppm"
    elif ext.lower() != ".ppm":
        raise ValueError(f"PPM output must use the .ppm extension, got {ext!r}")

    pixels = framebuffer_to_uint8(image)
    height, width = pixels.shape[:2]

    with open(path, "w", encoding="ascii") as f:
        f.write(f"P3\n{width} {height}\n255\n")
        for r, g, b in pixels.reshape(-1, 3):
            f.write(f"{r} {g} {b}\n")

    logger.info("Saved %dx%d image to %s", width, height, path)
    return path


def save_image(image: npt.NDArray[np.floating], filepath: str | os.PathLike) -> str:
    """Save a framebuffer, choosing the writer from the file extension.

    ".ppm" or no extension writes ASCII PPM; anything else goes to Pillow.

    Returns:
        The path actually written.
    """
    path = os.fspath(filepath)
    ext = os.path.splitext(path)[1].lower()
    if ext in ("", ".ppm"):
        return write_ppm(image, path)
    save_png(image, path)
    return path


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
