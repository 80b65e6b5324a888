"""
Watermark Placer
================
Chooses where a watermark goes on an image.

Algorithm:
1. Build 9 candidate top-left corners on a 3x3 grid
   (left/center/right x top/middle/bottom). The near margin is a tenth of
   the image dimension; the far position keeps the same margin to the edge.
2. Drop candidates whose box leaves the image.
3. Score the rest by brightness variance and keep the calmest region.
   Ties go to the first candidate in grid order.
4. If nothing fits, use the bottom-right candidate anyway.

Watermarks larger than half of either image dimension are first shrunk to
at most 30% of each dimension.
"""

from typing import List, NamedTuple, Tuple, Union

import numpy as np
from PIL import Image

from .brightness import brightness_map
from .resampler import fit_within
from .scoring import region_variance

# Oversize rule: shrink when wider/taller than this share of the image...
SHRINK_THRESHOLD = 0.5
# ...down to at most this share of each dimension
SHRINK_TARGET = 0.3

MARGIN_DIVISOR = 10


class Candidate(NamedTuple):
    """A possible top-left corner for the watermark."""
    name: str
    x: int
    y: int
    width: int
    height: int


class Placement(NamedTuple):
    """Result of a placement search."""
    x: int
    y: int
    score: float
    candidate: str
    fallback: bool = False

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y


def candidate_positions(
        image_size: Tuple[int, int],
        watermark_size: Tuple[int, int]
) -> List[Candidate]:
    """
    The 9 candidate positions, in tie-break order.

    Order: top-left, top-center, top-right, mid-left, mid-center, mid-right,
    bottom-left, bottom-center, bottom-right.
    """
    image_width, image_height = image_size
    wm_width, wm_height = watermark_size

    left_x = image_width // MARGIN_DIVISOR
    center_x = (image_width - wm_width) // 2
    right_x = image_width - wm_width - left_x

    top_y = image_height // MARGIN_DIVISOR
    center_y = (image_height - wm_height) // 2
    bottom_y = image_height - wm_height - top_y

    columns = (("left", left_x), ("center", center_x), ("right", right_x))
    rows = (("top", top_y), ("mid", center_y), ("bottom", bottom_y))

    return [
        Candidate(f"{row_name}-{col_name}", x, y, wm_width, wm_height)
        for row_name, y in rows
        for col_name, x in columns
    ]


def fits(candidate: Candidate, image_size: Tuple[int, int]) -> bool:
    """True if the candidate box lies entirely inside the image."""
    image_width, image_height = image_size
    return (
        candidate.x >= 0
        and candidate.y >= 0
        and candidate.x + candidate.width <= image_width
        and candidate.y + candidate.height <= image_height
    )


def find_best_position(
        image: Union[Image.Image, np.ndarray],
        watermark_size: Tuple[int, int]
) -> Placement:
    """
    Find the calmest in-bounds position for a watermark.

    Args:
        image: The target image, or its precomputed brightness grid.
        watermark_size: (width, height) of the watermark as it will be drawn.

    Returns:
        The winning Placement. When no candidate fits, the bottom-right
        candidate is returned with ``fallback=True``.
    """
    grid = image if isinstance(image, np.ndarray) else brightness_map(image)
    grid_height, grid_width = grid.shape
    image_size = (grid_width, grid_height)

    candidates = candidate_positions(image_size, watermark_size)

    best = None
    for candidate in candidates:
        if not fits(candidate, image_size):
            continue

        score = region_variance(
            grid, candidate.x, candidate.y, candidate.width, candidate.height
        )
        # Strict comparison keeps the first of equal scores
        if best is None or score < best.score:
            best = Placement(candidate.x, candidate.y, score, candidate.name)

    if best is None:
        corner = candidates[-1]
        return Placement(corner.x, corner.y, float("inf"), corner.name, fallback=True)

    return best


def needs_shrink(
        watermark_size: Tuple[int, int],
        image_size: Tuple[int, int]
) -> bool:
    """True if the watermark covers more than half of either dimension."""
    wm_width, wm_height = watermark_size
    image_width, image_height = image_size
    return (
        wm_width > image_width * SHRINK_THRESHOLD
        or wm_height > image_height * SHRINK_THRESHOLD
    )


def prepare_watermark(
        watermark: Image.Image,
        image_size: Tuple[int, int]
) -> Image.Image:
    """
    Return the watermark to draw on an image of ``image_size``.

    Oversized watermarks come back as a shrunk private copy; otherwise the
    shared watermark itself is returned. Callers must not mutate the result.
    """
    if not needs_shrink(watermark.size, image_size):
        return watermark

    image_width, image_height = image_size
    return fit_within(
        watermark,
        int(image_width * SHRINK_TARGET),
        int(image_height * SHRINK_TARGET)
    )
