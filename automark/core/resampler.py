"""
Resampler
=========
Aspect-preserving downscale into a bounding box.

Policy: images are never enlarged. An image that already fits is returned
as a same-size copy.
"""

from typing import Tuple

from PIL import Image


def target_size(
        width: int,
        height: int,
        max_width: int,
        max_height: int
) -> Tuple[int, int]:
    """
    Compute the output size for an image of ``width`` x ``height``.

    Args:
        width: Source width in pixels.
        height: Source height in pixels.
        max_width: Maximum output width.
        max_height: Maximum output height.

    Returns:
        (new_width, new_height), never smaller than 1x1.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {width}x{height}")

    if width <= max_width and height <= max_height:
        return width, height

    max_width = max(0, max_width)
    max_height = max(0, max_height)

    # ratio = min(max_width / width, max_height / height), floored exactly
    # with integers so the limiting side lands on its maximum
    if max_width * height <= max_height * width:
        new_width = max_width
        new_height = height * max_width // width
    else:
        new_width = width * max_height // height
        new_height = max_height

    return max(1, new_width), max(1, new_height)


def fit_within(image: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """
    Scale an image to fit inside ``max_width`` x ``max_height``.

    Uses bicubic reconstruction. The returned image is always a new object;
    the source is left untouched.
    """
    size = target_size(image.width, image.height, max_width, max_height)

    if size == image.size:
        result = image.copy()
    else:
        result = image.resize(size, Image.Resampling.BICUBIC)

    dpi = image.info.get("dpi")
    if dpi is not None:
        result.info["dpi"] = dpi

    return result
