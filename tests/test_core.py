"""
Tests for the core image logic.

Run with: python -m pytest tests/test_core.py -v
"""

import shutil
import sys
import tempfile
import tracemalloc
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from automark.core.brightness import PixelView, brightness_map, luma_weights
from automark.core.codec import (
    decode, encode, ensure_output_dirs, format_for, is_supported,
    list_images
)
from automark.core.compositor import apply_watermark, composite
from automark.core.errors import DecodeError
from automark.core.placement import (
    candidate_positions, find_best_position, fits, needs_shrink,
    prepare_watermark
)
from automark.core.resampler import fit_within, target_size
from automark.core.scoring import MAX_SCORE, region_variance


def create_test_image(width: int = 800, height: int = 600) -> Image.Image:
    """Create an RGB image with a smooth gradient."""
    xs = np.linspace(0, 255, width, dtype=np.float64)
    ys = np.linspace(0, 255, height, dtype=np.float64)
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[:, :, 0] = xs[np.newaxis, :].astype(np.uint8)
    arr[:, :, 1] = ys[:, np.newaxis].astype(np.uint8)
    arr[:, :, 2] = 128
    return Image.fromarray(arr)


def solid_image(width: int, height: int, color=(0, 0, 0), mode: str = "RGB") -> Image.Image:
    return Image.new(mode, (width, height), color)


def noise_image(width: int, height: int, seed: int = 7) -> Image.Image:
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return Image.fromarray(arr)


# ===== Resampler =====

def test_small_image_is_not_upscaled():
    for size in [(1, 1), (400, 300), (1280, 720), (1280, 10), (5, 720)]:
        image = create_test_image(*size)
        result = fit_within(image, 1280, 720)
        assert result.size == size
        assert result is not image


def test_shrink_preserves_aspect_and_fits_tightly():
    sizes = [(2000, 1000), (1000, 2000), (1920, 1080), (4000, 3000), (1281, 720), (3001, 17)]
    for width, height in sizes:
        new_width, new_height = target_size(width, height, 1280, 720)

        assert new_width <= 1280 and new_height <= 720
        assert new_width == 1280 or new_height == 720

        # Rounding error of at most one pixel on either axis
        assert abs(new_width / new_height - width / height) <= (
            width / height) * (1 / new_width + 1 / new_height) + 1e-9


def test_shrink_known_size():
    image = create_test_image(2000, 1000)
    result = fit_within(image, 1280, 720)
    assert result.size == (1280, 640)


def test_extreme_ratio_never_collapses_to_zero():
    assert target_size(10000, 1, 100, 100) == (100, 1)
    assert target_size(50, 50, 0, 0) == (1, 1)


def test_target_size_rejects_empty_image():
    with pytest.raises(ValueError):
        target_size(0, 10, 100, 100)


def test_resample_quality_close_to_reference():
    """Bicubic output should look like a high-quality reference downscale."""
    image = create_test_image(1600, 1200)
    result = fit_within(image, 400, 400)
    reference = image.resize(result.size, Image.Resampling.LANCZOS)

    diff = np.abs(
        np.asarray(result, dtype=np.int16) - np.asarray(reference, dtype=np.int16)
    )
    assert diff.mean() < 2.0


def test_resample_keeps_dpi():
    image = create_test_image(2000, 1000)
    image.info["dpi"] = (300, 300)
    assert fit_within(image, 1280, 720).info["dpi"] == (300, 300)
    assert fit_within(image, 4000, 4000).info["dpi"] == (300, 300)


# ===== Brightness map =====

def test_brightness_of_solid_color():
    grid = brightness_map(solid_image(30, 20, (10, 20, 30)))

    assert grid.shape == (20, 30)
    assert grid.dtype == np.float64
    assert np.allclose(grid, 0.299 * 10 + 0.587 * 20 + 0.114 * 30)


def test_brightness_map_is_read_only():
    grid = brightness_map(solid_image(4, 4, (255, 255, 255)))
    with pytest.raises(ValueError):
        grid[0, 0] = 1.0


def test_brightness_handles_bgr_order_and_stride_padding():
    image = noise_image(7, 5)
    rgb = np.asarray(image)

    # BGR rows padded to a 4-byte boundary with junk bytes
    row_bytes = 7 * 3
    stride = 24
    raw = np.full((5, stride), 255, dtype=np.uint8)
    raw[:, :row_bytes] = rgb[:, :, ::-1].reshape(5, row_bytes)

    view = PixelView(memoryview(raw.tobytes()), width=7, height=5, stride=stride, bands="BGR")

    assert np.allclose(brightness_map(view), brightness_map(image))


def test_brightness_ignores_alpha_channel():
    rgba = solid_image(6, 6, (50, 100, 150, 0), mode="RGBA")
    rgb = solid_image(6, 6, (50, 100, 150))
    assert np.allclose(brightness_map(rgba), brightness_map(rgb))


def test_brightness_converts_other_modes():
    gray = Image.new("L", (8, 8), 100)
    assert np.allclose(brightness_map(gray), 100.0)


def test_luma_weights_follow_band_order():
    assert np.allclose(luma_weights("RGB"), [0.299, 0.587, 0.114])
    assert np.allclose(luma_weights("BGRA"), [0.114, 0.587, 0.299, 0.0])


def test_brightness_map_allocates_only_the_grid():
    width, height = 1000, 800
    view = PixelView(memoryview(bytes(width * height * 4)), width=width, height=height,
                     stride=width * 4, bands="RGBA")
    grid_bytes = width * height * 8

    tracemalloc.start()
    try:
        grid = brightness_map(view)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    assert grid.nbytes == grid_bytes
    # No second full-size float buffer next to the grid
    assert peak < grid_bytes * 1.5


def test_pixel_view_bounds_checks():
    with pytest.raises(ValueError):
        PixelView(memoryview(bytes(10)), width=2, height=2, stride=6, bands="RGB")
    with pytest.raises(ValueError):
        PixelView(memoryview(bytes(100)), width=4, height=2, stride=8, bands="RGB")
    with pytest.raises(ValueError):
        PixelView(memoryview(bytes(100)), width=2, height=2, stride=6, bands="XYZ")


def test_pixel_view_is_read_only():
    view = PixelView(bytearray(12), width=2, height=2, stride=6)
    assert view.buffer.readonly


# ===== Placement scorer =====

def test_uniform_region_scores_zero():
    grid = brightness_map(solid_image(64, 64, (90, 90, 90)))
    assert region_variance(grid, 5, 5, 40, 30) == pytest.approx(0.0, abs=1e-9)


def test_variance_uses_every_other_pixel():
    grid = np.zeros((4, 4))
    grid[0, 0], grid[0, 2], grid[2, 0], grid[2, 2] = 0, 10, 20, 30
    # Odd rows/columns are never sampled
    grid[1, :] = 1000
    grid[:, 3] = 1000

    # mean 15, E[x^2] 350 -> 125
    assert region_variance(grid, 0, 0, 4, 4) == pytest.approx(125.0)


def test_empty_region_scores_maximum():
    grid = np.zeros((10, 10))
    assert region_variance(grid, 3, 3, 0, 5) == MAX_SCORE


def test_region_outside_grid_is_rejected():
    grid = np.zeros((10, 10))
    with pytest.raises(ValueError):
        region_variance(grid, 5, 5, 6, 2)
    with pytest.raises(ValueError):
        region_variance(grid, -1, 0, 2, 2)


# ===== Watermark placer =====

def test_candidate_grid_order_and_coordinates():
    candidates = candidate_positions((1000, 1000), (100, 100))

    assert [c.name for c in candidates] == [
        "top-left", "top-center", "top-right",
        "mid-left", "mid-center", "mid-right",
        "bottom-left", "bottom-center", "bottom-right",
    ]
    assert [(c.x, c.y) for c in candidates] == [
        (100, 100), (450, 100), (800, 100),
        (100, 450), (450, 450), (800, 450),
        (100, 800), (450, 800), (800, 800),
    ]


def test_uniform_image_ties_go_to_top_left():
    placement = find_best_position(solid_image(1000, 1000), (100, 100))

    assert placement.position == (100, 100)
    assert placement.candidate == "top-left"
    assert placement.score == pytest.approx(0.0, abs=1e-9)
    assert not placement.fallback


def test_calmest_region_wins():
    image = noise_image(1000, 1000)
    # Flat patch covering only the bottom-right candidate
    image.paste((40, 40, 40), (800, 800, 900, 900))

    placement = find_best_position(image, (100, 100))
    assert placement.position == (800, 800)
    assert placement.candidate == "bottom-right"


def test_placement_stays_inside_image():
    for image_size, wm_size in [
        ((640, 480), (120, 60)),
        ((300, 900), (100, 400)),
        ((1280, 720), (383, 216)),
        ((33, 21), (10, 10)),
    ]:
        image = noise_image(*image_size)
        placement = find_best_position(image, wm_size)
        assert not placement.fallback
        x, y = placement.position
        assert x >= 0 and y >= 0
        assert x + wm_size[0] <= image_size[0]
        assert y + wm_size[1] <= image_size[1]


def test_oversized_watermark_falls_back_to_bottom_right():
    placement = find_best_position(solid_image(1000, 1000), (1200, 1200))

    # right_x = 1000 - 1200 - 100
    assert placement.position == (-300, -300)
    assert placement.candidate == "bottom-right"
    assert placement.fallback


def test_fits():
    candidates = candidate_positions((100, 100), (95, 10))
    assert [fits(c, (100, 100)) for c in candidates][:3] == [False, True, False]


def test_needs_shrink_threshold():
    assert not needs_shrink((500, 500), (1000, 1000))
    assert needs_shrink((501, 10), (1000, 1000))
    assert needs_shrink((10, 501), (1000, 1000))


def test_prepare_watermark_shrinks_private_copy():
    watermark = solid_image(600, 100, (255, 0, 0, 255), mode="RGBA")

    prepared = prepare_watermark(watermark, (1000, 1000))

    assert prepared is not watermark
    assert prepared.size == (300, 50)
    assert watermark.size == (600, 100)


def test_prepare_watermark_keeps_small_watermark():
    watermark = solid_image(100, 100, mode="RGBA")
    assert prepare_watermark(watermark, (1000, 1000)) is watermark


# ===== Compositor =====

def test_zero_opacity_reproduces_source():
    image = create_test_image(200, 150)
    watermark = solid_image(50, 40, (255, 255, 255, 255), mode="RGBA")

    result = composite(image, watermark, (20, 30), 0.0)

    assert np.array_equal(np.asarray(result), np.asarray(image))


def test_full_opacity_replaces_opaque_pixels():
    image = create_test_image(200, 150)
    watermark = solid_image(50, 40, (255, 0, 0, 255), mode="RGBA")
    # Transparent hole in the watermark
    watermark.paste((0, 0, 0, 0), (0, 0, 10, 10))

    result = np.asarray(composite(image, watermark, (20, 30), 1.0))
    source = np.asarray(image)

    assert np.all(result[40:70, 30:70] == [255, 0, 0])
    assert np.array_equal(result[30:40, 20:30], source[30:40, 20:30])

    outside = np.ones(source.shape[:2], dtype=bool)
    outside[30:70, 20:70] = False
    assert np.array_equal(result[outside], source[outside])


def test_half_opacity_blends():
    image = solid_image(20, 20, (0, 0, 0))
    watermark = solid_image(10, 10, (255, 255, 255), mode="RGB")

    result = np.asarray(composite(image, watermark, (5, 5), 0.5))

    assert np.all(np.abs(result[5:15, 5:15].astype(int) - 128) <= 1)
    assert np.all(result[0:5, :] == 0)


def test_composite_clips_negative_position():
    image = solid_image(50, 50, (0, 0, 0))
    watermark = solid_image(80, 80, (255, 255, 255, 255), mode="RGBA")

    result = np.asarray(composite(image, watermark, (-40, -40), 1.0))

    assert result.shape == (50, 50, 3)
    assert np.all(result[:40, :40] == 255)
    assert np.all(result[40:, 40:] == 0)


def test_composite_keeps_dpi_and_mode():
    image = solid_image(40, 40, (10, 10, 10, 255), mode="RGBA")
    image.info["dpi"] = (72, 72)
    watermark = solid_image(10, 10, (200, 200, 200, 255), mode="RGBA")

    result = composite(image, watermark, (0, 0), 0.5)

    assert result.mode == "RGBA"
    assert result.info["dpi"] == (72, 72)


def test_composite_rejects_bad_opacity():
    image = solid_image(10, 10)
    watermark = solid_image(2, 2)
    with pytest.raises(ValueError):
        composite(image, watermark, (0, 0), 1.5)
    with pytest.raises(ValueError):
        composite(image, watermark, (0, 0), -0.1)


def test_apply_watermark_on_black_image():
    image = solid_image(1000, 1000)
    watermark = solid_image(100, 100, (255, 255, 255, 255), mode="RGBA")

    result, placement = apply_watermark(image, watermark, 1.0)

    assert placement.position == (100, 100)
    pixels = np.asarray(result)
    assert np.all(pixels[100:200, 100:200] == 255)
    assert np.all(pixels[0:100, :] == 0)


def test_apply_watermark_leaves_shared_watermark_untouched():
    image = solid_image(400, 300)
    watermark = solid_image(350, 50, (255, 255, 255, 255), mode="RGBA")
    before = np.asarray(watermark).copy()

    result, placement = apply_watermark(image, watermark, 0.5)

    assert watermark.size == (350, 50)
    assert np.array_equal(np.asarray(watermark), before)
    # Shrunk to fit 120x90: ratio min(120/350, 90/50)
    x, y = placement.position
    assert 0 <= x and x + 120 <= 400
    assert result.size == (400, 300)


# ===== Codec =====

def test_format_by_extension():
    assert format_for("a.png") == "PNG"
    assert format_for("a.BMP") == "BMP"
    assert format_for("a.gif") == "GIF"
    assert format_for("a.jpg") == "JPEG"
    assert format_for("a.jpeg") == "JPEG"
    assert format_for("a.tiff") == "JPEG"


def test_supported_extensions_are_case_insensitive():
    for name in ["a.jpg", "b.JPEG", "c.Png", "d.bmp", "e.GIF"]:
        assert is_supported(name)
    for name in ["f.tif", "g.webp", "h", "i.txt"]:
        assert not is_supported(name)


def test_decode_rejects_garbage():
    with pytest.raises(DecodeError):
        decode(b"definitely not an image")


def test_decode_normalises_palette_images():
    image = solid_image(8, 8, (10, 200, 30)).convert("P")
    decoded = decode(encode(image, "GIF"))
    assert decoded.mode in ("RGB", "RGBA")
    assert decoded.size == (8, 8)


def test_jpeg_encoding_flattens_alpha_onto_white():
    image = solid_image(16, 16, (0, 0, 0, 0), mode="RGBA")
    decoded = decode(encode(image, "JPEG"))

    assert decoded.mode == "RGB"
    assert np.asarray(decoded).min() >= 250


def test_list_images_is_filtered_sorted_and_flat():
    folder = Path(tempfile.mkdtemp())
    try:
        for name in ["b.PNG", "a.jpg", "notes.txt", "c.gif"]:
            (folder / name).write_bytes(b"x")
        (folder / "sub").mkdir()
        (folder / "sub" / "d.jpg").write_bytes(b"x")

        assert [p.name for p in list_images(folder)] == ["a.jpg", "b.PNG", "c.gif"]
    finally:
        shutil.rmtree(folder, ignore_errors=True)


def test_ensure_output_dirs_is_idempotent():
    folder = Path(tempfile.mkdtemp())
    try:
        first = ensure_output_dirs(folder)
        second = ensure_output_dirs(folder)

        assert first == second == (folder / "resize", folder / "watermarked")
        assert all(p.is_dir() for p in first)
    finally:
        shutil.rmtree(folder, ignore_errors=True)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
