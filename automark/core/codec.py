"""
Image Codec & Filesystem
========================
Pillow-backed decode/encode plus the small amount of folder handling the
batch pipeline needs.

Technical Notes:
- Output format is chosen by destination extension:
  .png -> PNG, .bmp -> BMP, .gif -> GIF, anything else -> JPEG
- JPEG has no alpha channel, so RGBA is flattened onto white (quality 95)
- Palette / grayscale / CMYK inputs are normalised to RGB (RGBA when the
  file carries transparency) so the rest of the core sees two modes only
"""

import io
from pathlib import Path
from typing import List, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError

SUPPORTED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".gif")

RESIZE_FOLDER = "resize"
WATERMARKED_FOLDER = "watermarked"

JPEG_QUALITY = 95

_FORMATS_BY_EXTENSION = {
    ".png": "PNG",
    ".bmp": "BMP",
    ".gif": "GIF",
}


def is_supported(path: Union[str, Path]) -> bool:
    """Case-insensitive check against the supported extension list."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def list_images(folder: Union[str, Path]) -> List[Path]:
    """
    List supported image files directly inside ``folder``.

    Not recursive. Sorted by file name so batch order is reproducible.
    """
    folder = Path(folder)
    files = [p for p in folder.iterdir() if p.is_file() and is_supported(p)]
    return sorted(files, key=lambda p: p.name)


def ensure_output_dirs(folder: Union[str, Path]) -> Tuple[Path, Path]:
    """
    Create the ``resize`` and ``watermarked`` folders under ``folder``.

    Returns:
        Tuple of (resize_dir, watermarked_dir).
    """
    folder = Path(folder)
    resize_dir = folder / RESIZE_FOLDER
    watermarked_dir = folder / WATERMARKED_FOLDER

    resize_dir.mkdir(exist_ok=True)
    watermarked_dir.mkdir(exist_ok=True)

    return resize_dir, watermarked_dir


def _normalise_mode(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image

    has_alpha = (
        image.mode in ("LA", "PA", "La", "RGBa")
        or "transparency" in image.info
    )
    converted = image.convert("RGBA" if has_alpha else "RGB")

    dpi = image.info.get("dpi")
    if dpi is not None:
        converted.info["dpi"] = dpi

    image.close()
    return converted


def decode(data: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded RGB or RGBA image.

    Raises:
        DecodeError: If the data is not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e

    return _normalise_mode(image)


def load_image(path: Union[str, Path]) -> Image.Image:
    """
    Read and decode an image file.

    Raises:
        OSError: If the file cannot be read.
        DecodeError: If the file is not a readable image.
    """
    path = Path(path)
    try:
        return decode(path.read_bytes())
    except DecodeError as e:
        raise DecodeError(f"{path.name}: {e}") from e


def format_for(path: Union[str, Path]) -> str:
    """Pillow format name for a destination path."""
    return _FORMATS_BY_EXTENSION.get(Path(path).suffix.lower(), "JPEG")


def encode(image: Image.Image, fmt: str) -> bytes:
    """
    Encode an image into ``fmt`` (a Pillow format name).

    Raises:
        EncodeError: If Pillow cannot write the image in that format.
    """
    params = {}
    dpi = image.info.get("dpi")
    if dpi is not None:
        params["dpi"] = dpi

    to_save = image
    if fmt == "JPEG":
        params["quality"] = JPEG_QUALITY
        if image.mode == "RGBA":
            # Flatten onto white
            to_save = Image.new("RGB", image.size, (255, 255, 255))
            to_save.paste(image, mask=image.split()[3])
        elif image.mode != "RGB":
            to_save = image.convert("RGB")

    buffer = io.BytesIO()
    try:
        to_save.save(buffer, format=fmt, **params)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Cannot encode image as {fmt}: {e}") from e
    finally:
        if to_save is not image:
            to_save.close()

    return buffer.getvalue()


def save_image(image: Image.Image, path: Union[str, Path]) -> Path:
    """Encode ``image`` by the extension of ``path`` and write it."""
    path = Path(path)
    path.write_bytes(encode(image, format_for(path)))
    return path
