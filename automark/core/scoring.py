"""
Placement Scorer
================
Scores how "busy" a region of a brightness grid is.

The score is the variance of luminance over the region. Every other row
and every other column is sampled, which keeps scoring cheap on large
images at a small cost in accuracy.
"""

import sys

import numpy as np

SAMPLE_STEP = 2

# Returned for regions with no samples so they never win a comparison
MAX_SCORE = sys.float_info.max


def region_variance(
        grid: np.ndarray,
        x: int,
        y: int,
        width: int,
        height: int
) -> float:
    """
    Variance of the sampled luminance values inside a region.

    Args:
        grid: Brightness grid of shape (height, width), indexed [y, x].
        x: Left edge of the region.
        y: Top edge of the region.
        width: Region width.
        height: Region height.

    Returns:
        E[v^2] - E[v]^2 over the sampled points, or MAX_SCORE when the region
        contains no samples.

    Raises:
        ValueError: If the region is not inside the grid.
    """
    grid_height, grid_width = grid.shape
    if width < 0 or height < 0:
        raise ValueError(f"Invalid region size: {width}x{height}")
    if x < 0 or y < 0 or x + width > grid_width or y + height > grid_height:
        raise ValueError(
            f"Region ({x}, {y}, {width}, {height}) is outside "
            f"the {grid_width}x{grid_height} grid"
        )

    samples = grid[y:y + height:SAMPLE_STEP, x:x + width:SAMPLE_STEP]
    count = samples.size
    if count == 0:
        return MAX_SCORE

    mean = float(samples.sum()) / count
    square_mean = float(np.square(samples).sum()) / count

    return max(0.0, square_mean - mean * mean)
