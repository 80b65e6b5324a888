"""
Compositor
==========
Blends an image watermark onto a picture at a fixed opacity.

Technical Notes:
- out = src * (1 - a) + wm * a, with a = opacity * watermark_alpha / 255
- Only the watermark's box is touched; the rest of the image is copied as is
- The box may hang off the image (fallback placement); it is clipped
- DPI metadata of the source is kept on the result
"""

from typing import Tuple

import numpy as np
from PIL import Image

from .brightness import brightness_map
from .placement import Placement, find_best_position, prepare_watermark


def _validate_opacity(opacity: float) -> float:
    opacity = float(opacity)
    if not 0.0 <= opacity <= 1.0:
        raise ValueError(f"Opacity must be between 0 and 1, got {opacity}")
    return opacity


def composite(
        image: Image.Image,
        watermark: Image.Image,
        position: Tuple[int, int],
        opacity: float
) -> Image.Image:
    """
    Draw ``watermark`` over ``image`` with its top-left corner at ``position``.

    Args:
        image: The base picture. Not modified.
        watermark: The watermark. Not modified.
        position: (x, y) of the watermark's top-left corner. May be negative.
        opacity: Global watermark opacity in [0, 1].

    Returns:
        A new image (RGBA if the base is RGBA, RGB otherwise).
    """
    opacity = _validate_opacity(opacity)

    mode = "RGBA" if image.mode == "RGBA" else "RGB"
    base = image if image.mode == mode else image.convert(mode)
    result = np.array(base, dtype=np.uint8)

    x, y = position
    wm_width, wm_height = watermark.size
    image_width, image_height = base.size

    # Intersection of the watermark box with the image
    left = max(0, x)
    top = max(0, y)
    right = min(image_width, x + wm_width)
    bottom = min(image_height, y + wm_height)

    if right > left and bottom > top:
        overlay = watermark if watermark.mode == "RGBA" else watermark.convert("RGBA")
        wm_pixels = np.asarray(overlay, dtype=np.uint8)[
            top - y:bottom - y, left - x:right - x
        ]

        alpha = wm_pixels[:, :, 3:4].astype(np.float64) * (opacity / 255.0)
        region = result[top:bottom, left:right]

        src_rgb = region[:, :, :3].astype(np.float64)
        blended = src_rgb * (1.0 - alpha) + wm_pixels[:, :, :3] * alpha
        region[:, :, :3] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)

        if mode == "RGBA":
            # Standard "over" for the alpha channel
            src_alpha = region[:, :, 3:4].astype(np.float64)
            out_alpha = alpha * 255.0 + src_alpha * (1.0 - alpha)
            region[:, :, 3:4] = np.clip(np.rint(out_alpha), 0, 255).astype(np.uint8)

    output = Image.fromarray(result)

    dpi = image.info.get("dpi")
    if dpi is not None:
        output.info["dpi"] = dpi

    return output


def apply_watermark(
        image: Image.Image,
        watermark: Image.Image,
        opacity: float
) -> Tuple[Image.Image, Placement]:
    """
    Shrink (if needed), place and blend a watermark onto an image.

    The shared ``watermark`` is never modified; a shrunk copy only lives
    for the duration of this call.

    Returns:
        Tuple of (watermarked image, placement used).
    """
    opacity = _validate_opacity(opacity)

    to_draw = prepare_watermark(watermark, image.size)
    try:
        grid = brightness_map(image)
        placement = find_best_position(grid, to_draw.size)

        result = composite(image, to_draw, placement.position, opacity)
    finally:
        if to_draw is not watermark:
            to_draw.close()

    return result, placement
