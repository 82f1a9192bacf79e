"""Image loading and saving between files, Pillow images and rasters."""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from autostereo.raster import ArrayRaster, Raster, as_array

# Integer greyscale modes holding 16-bit samples (16-bit PNGs decode to these)
WIDE_GREY_MODES = frozenset({"I", "I;16", "I;16L", "I;16B", "I;16N"})

# Modes every output format handled here can encode (JPEG after the RGB step)
PORTABLE_MODES = frozenset({"1", "L", "LA", "P", "RGB", "RGBA"})


def raster_from_image(img: Image.Image) -> ArrayRaster:
    """Wrap a Pillow image; the image's mode is kept as the colour model.

    16-bit greyscale is reduced to 8 bits by its high byte rather than
    clipped, so depth maps keep their ordering.
    """
    if img.mode in WIDE_GREY_MODES:
        wide = np.clip(np.array(img, dtype=np.int64), 0, 0xFFFF)
        return ArrayRaster((wide >> 8).astype(np.uint8), color_model="L")
    mode = img.mode
    rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    return ArrayRaster(rgba, color_model=mode)


def load_raster(path: str | Path) -> ArrayRaster:
    """Decode an image file (PNG, JPEG, GIF, ...) into a raster."""
    with Image.open(path) as img:
        img.load()
        return raster_from_image(img)


def raster_to_image(raster: Raster) -> Image.Image:
    """Pillow image in the raster's colour model."""
    img = Image.fromarray(np.ascontiguousarray(as_array(raster)))
    if raster.color_model != "RGBA":
        img = img.convert(raster.color_model)
    return img


def save_raster(raster: Raster, path: str | Path) -> None:
    """Encode *raster* to *path*; the format follows the file suffix.

    Colour models the format may not write (CMYK, YCbCr, ...) are saved as
    RGBA, or RGB for JPEG.
    """
    img = raster_to_image(raster)
    if img.mode not in PORTABLE_MODES:
        img = img.convert("RGBA")
    if Path(path).suffix.lower() in {".jpg", ".jpeg"} and img.mode in {"RGBA", "P", "LA"}:
        img = img.convert("RGB")
    img.save(path)


def resize_raster(raster: Raster, width: int, height: int) -> ArrayRaster:
    """Resample *raster* to ``width x height`` (Lanczos)."""
    img = Image.fromarray(np.ascontiguousarray(as_array(raster)))
    img = img.resize((width, height), Image.LANCZOS)
    return ArrayRaster(np.array(img, dtype=np.uint8), raster.color_model)
