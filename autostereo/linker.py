"""Per-row pixel linking: depth row -> background column indices -> pixels.

Each output column either links to a column further left (its source
index), in which case it repeats whatever that column shows, or has no
valid link and takes a fresh background column.  The leading run of
unlinked columns is seeded by spreading the background across it.
"""

from __future__ import annotations

import logging

import numpy as np

from autostereo.config import StereogramConfig
from autostereo.depth import depth_row, offset_for_depth
from autostereo.errors import DegenerateRow, IndexOutOfRange
from autostereo.raster import Raster

logger = logging.getLogger(__name__)


def _row_pixels(raster: Raster, y: int) -> np.ndarray:
    row = getattr(raster, "row", None)
    if row is not None:
        return row(y)
    return np.array([raster.at(x, y) for x in range(raster.width)], dtype=np.uint8)


def background_row_for(y: int, depth_height: int, background_height: int) -> int:
    """Nearest background row for output row *y* (truncating)."""
    return y * background_height // depth_height


def source_indices(depth_pixels: np.ndarray, config: StereogramConfig) -> np.ndarray:
    """Column each output pixel links to; negative means no link."""
    offsets = offset_for_depth(depth_row(depth_pixels, config), config)
    return np.arange(len(depth_pixels), dtype=np.int64) - offsets


def initial_width(sources: np.ndarray) -> int:
    """Length of the leading run of unlinked (negative) columns."""
    linked = np.flatnonzero(sources >= 0)
    return int(linked[0]) if linked.size else len(sources)


def background_indices(
    sources: np.ndarray,
    background_width: int,
    cross_eyed: bool,
    y: int = 0,
) -> np.ndarray:
    """Resolve source links into background column indices.

    Raises:
        DegenerateRow: column 0 already links inside the row.
    """
    width = len(sources)
    strip = initial_width(sources)
    if strip == 0 and width > 0:
        raise DegenerateRow(y)

    indices = np.zeros(width, dtype=np.int64)
    if strip:
        step = background_width // strip
        indices[:strip] = np.arange(strip, dtype=np.int64) * step

    # A source already used for one right-eye column is not reused by a
    # second one in parallel viewing; that pair would read as two depths.
    used = np.zeros(width, dtype=bool)
    for x in range(strip, width):
        si = sources[x]
        if si < 0 or (used[si] and not cross_eyed):
            indices[x] = indices[x - 1] + 1
        else:
            indices[x] = indices[si]
            used[si] = True
    return indices


def clamp_indices(
    indices: np.ndarray,
    background_width: int,
    y: int = 0,
    strict: bool = False,
) -> np.ndarray:
    """Pin indices past the background's right edge to its last column."""
    over = indices >= background_width
    if not over.any():
        return indices
    if strict:
        raise IndexOutOfRange(y, int(indices.max()), background_width)
    logger.warning(
        "Row %d: %d column(s) ran past background width %d, clamped",
        y, int(over.sum()), background_width,
    )
    return np.minimum(indices, background_width - 1)


def link_row(
    depth_map: Raster,
    background: Raster,
    config: StereogramConfig,
    y: int,
) -> np.ndarray:
    """Build output row *y* as a (W, 4) uint8 array.

    Raises:
        DegenerateRow: the row has no left strip to seed.
        IndexOutOfRange: with ``config.strict_bounds`` only.
    """
    bg_y = background_row_for(y, depth_map.height, background.height)
    sources = source_indices(_row_pixels(depth_map, y), config)
    indices = background_indices(sources, background.width, config.cross_eyed, y)
    indices = clamp_indices(indices, background.width, y, config.strict_bounds)
    return _row_pixels(background, bg_y)[indices]
