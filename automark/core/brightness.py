"""
Brightness Map
==============
Turns a decoded pixel buffer into a grid of luminance values.

Technical Notes:
- Reads the raw channel bytes through numpy; no per-pixel objects
- Row stride may be wider than width * bytes_per_pixel (padding is skipped)
- Channel order comes from the view's band names, so BGR/BGRA buffers map
  to the same luminance as RGB/RGBA
- Luminance = 0.299*R + 0.587*G + 0.114*B, accumulated directly into the
  output grid (the only full-size allocation for a PixelView source)
- Pillow images are viewed through ``Image.tobytes()``; Pillow exposes no
  buffer over its per-row pixel storage, so that one byte export is unavoidable
"""

from dataclasses import dataclass
from typing import Union

import numpy as np
from PIL import Image

# Rec. 601 luma weights
LUMA_WEIGHTS = (("R", 0.299), ("G", 0.587), ("B", 0.114))


@dataclass(frozen=True)
class PixelView:
    """
    Read-only, bounds-checked view over an interleaved 8-bit pixel buffer.

    Attributes:
        buffer: The borrowed bytes. Held as a read-only memoryview.
        width: Pixels per row.
        height: Number of rows.
        stride: Bytes per row, including any alignment padding.
        bands: Channel order of one pixel, e.g. "RGB", "BGR", "RGBA".
    """
    buffer: memoryview
    width: int
    height: int
    stride: int
    bands: str = "RGB"

    def __post_init__(self):
        view = memoryview(self.buffer).cast("B")
        if not view.readonly:
            view = view.toreadonly()
        object.__setattr__(self, "buffer", view)

        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid buffer size: {self.width}x{self.height}")

        if not {"R", "G", "B"}.issubset(self.bands):
            raise ValueError(f"Pixel bands must include R, G and B: {self.bands!r}")

        row_bytes = self.width * self.bytes_per_pixel
        if self.stride < row_bytes:
            raise ValueError(
                f"Stride {self.stride} is smaller than row size {row_bytes}"
            )

        # The last row does not need its trailing padding
        required = self.stride * (self.height - 1) + row_bytes
        if len(view) < required:
            raise ValueError(
                f"Buffer too small: {len(view)} bytes, need {required}"
            )

    @property
    def bytes_per_pixel(self) -> int:
        return len(self.bands)

    @property
    def size(self):
        return self.width, self.height

    def channel_index(self, band: str) -> int:
        """Byte offset of ``band`` inside one pixel."""
        return self.bands.index(band)

    def rows(self) -> np.ndarray:
        """
        The buffer as a (height, width, bytes_per_pixel) uint8 array.

        The array shares memory with the buffer and is read-only.
        """
        row_bytes = self.width * self.bytes_per_pixel
        flat = np.frombuffer(self.buffer, dtype=np.uint8)

        # Pad the flat view so every row is ``stride`` long, then drop padding
        padded = np.lib.stride_tricks.as_strided(
            flat,
            shape=(self.height, row_bytes),
            strides=(self.stride, 1),
            writeable=False
        )
        return padded.reshape(self.height, self.width, self.bytes_per_pixel)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelView":
        """
        View the pixel bytes of a Pillow image (one ``tobytes()`` export).

        Modes other than RGB / RGBA are converted to RGB first.
        """
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGB")

        bands = "".join(image.getbands())
        data = image.tobytes()
        return cls(
            buffer=memoryview(data),
            width=image.width,
            height=image.height,
            stride=image.width * len(bands),
            bands=bands
        )


def luma_weights(bands: str) -> np.ndarray:
    """Per-band weight vector for ``bands``; bands other than R, G, B weigh 0."""
    weights = dict(LUMA_WEIGHTS)
    return np.array([weights.get(band, 0.0) for band in bands], dtype=np.float64)


def brightness_map(source: Union[PixelView, Image.Image]) -> np.ndarray:
    """
    Build the luminance grid for an image or pixel view.

    Args:
        source: A PixelView, or a Pillow image to view.

    Returns:
        Read-only float64 array of shape (height, width), indexed [y, x].
    """
    view = source if isinstance(source, PixelView) else PixelView.from_image(source)
    pixels = view.rows()

    grid = np.empty((view.height, view.width), dtype=np.float64)
    # Weighted channel sum written straight into the output grid
    np.einsum(
        "ijk,k->ij", pixels, luma_weights(view.bands),
        out=grid, dtype=np.float64, casting="safe"
    )

    grid.flags.writeable = False
    return grid
