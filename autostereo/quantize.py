"""Palette quantisation by horizontal (1-D) error diffusion.

Each row is scanned left to right.  The difference between the colour a
pixel *should* have had (its true colour plus the error carried so far)
and the palette colour actually emitted is pushed onto the next pixel, so
a sustained bias is corrected within a few pixels instead of being lost.
Arithmetic happens on premultiplied channels; the remainder is reset at
the start of every row.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from autostereo.color_utils import premultiply
from autostereo.errors import MissingInput
from autostereo.palette import Palette
from autostereo.raster import OwnedRaster, Raster, as_array, require_raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorRemainder:
    """Rounding error carried to the next pixel of a row.

    ``a`` is the alpha of the last emitted colour; it is never added to the
    next pixel, whose own alpha always wins.
    """

    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 0

    def add_to(self, premultiplied: np.ndarray) -> np.ndarray:
        """Carry this error into a premultiplied pixel (alpha untouched)."""
        adjusted = np.array(premultiplied, dtype=np.int64)
        adjusted[:3] += (self.r, self.g, self.b)
        return adjusted

    @classmethod
    def between(cls, adjusted: np.ndarray, chosen: np.ndarray) -> ColorRemainder:
        r, g, b = (int(v) for v in adjusted[:3] - chosen[:3])
        return cls(r, g, b, int(chosen[3]))

    @property
    def is_zero(self) -> bool:
        return self.r == 0 and self.g == 0 and self.b == 0


def clamp_to_alpha(adjusted: np.ndarray) -> np.ndarray:
    """Clamp R, G, B into ``[0, alpha]``, a valid premultiplied colour."""
    out = adjusted.copy()
    out[:3] = np.clip(adjusted[:3], 0, adjusted[3])
    return out


def quantize_row(
    pixels: np.ndarray,
    palette: Palette,
) -> tuple[np.ndarray, list[ColorRemainder]]:
    """Quantise one (W, 4) uint8 row.

    Returns:
        The (W, 4) uint8 output row and the remainder left after each column.
    """
    out = np.empty((len(pixels), 4), dtype=np.uint8)
    remainders: list[ColorRemainder] = []
    remainder = ColorRemainder()
    for x, true_color in enumerate(premultiply(pixels)):
        adjusted = remainder.add_to(true_color)
        i = palette.nearest_index_premultiplied(clamp_to_alpha(adjusted))
        out[x] = palette.colors[i]
        remainder = ColorRemainder.between(adjusted, palette.premultiplied(i))
        remainders.append(remainder)
    return out, remainders


def quantize_to_palette(
    image: Raster | None,
    palette: Palette | None,
    workers: int = 1,
) -> OwnedRaster:
    """Reduce *image* to the colours of *palette* with error diffusion.

    Columns of a row are strictly ordered; rows are independent and run
    on a thread pool when ``workers > 1``.

    Raises:
        MissingInput: the image is absent or empty, or no palette is given.
    """
    image = require_raster(image, "image")
    if palette is None:
        raise MissingInput("palette")
    pixels = as_array(image)

    result = OwnedRaster(image.width, image.height, image.color_model)
    logger.info(
        "Quantising %dx%d image to %d colours (%s metric)",
        image.width, image.height, len(palette), palette.metric,
    )
    t0 = time.perf_counter()

    def run_one(y: int) -> None:
        row, _ = quantize_row(pixels[y], palette)
        result.set_row(y, row)

    rows = range(image.height)
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as ex:
            list(ex.map(run_one, rows))
    else:
        for y in rows:
            run_one(y)

    logger.debug("Rows quantised  (%.3f s)", time.perf_counter() - t0)
    return result.freeze()
