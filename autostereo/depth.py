"""Depth sampling and depth-to-disparity mapping.

Depth-map pixels are widened to the 16-bit scale (``v * 0x101``) so the
averaging and alpha folding round the same way whatever the source depth.
"""

from __future__ import annotations

import numpy as np

from autostereo.config import StereogramConfig
from autostereo.raster import Raster

CHANNEL_MAX = 0xFFFF
_WIDEN = 0x101  # 0xFF -> 0xFFFF


def _depth_from_channels(r, g, b, a, depth_max: int):
    rgb = (r + g + b) // 3                    # [0, 0xFFFF]
    rgba = rgb * a // CHANNEL_MAX             # [0, 0xFFFF]
    return rgba * depth_max // CHANNEL_MAX    # [0, depth_max]


def invert_depth(depth, depth_max: int):
    """Mirror *depth* within ``[0, depth_max]``; applying it twice is a no-op."""
    return depth_max - depth


def depth_at(depth_map: Raster, x: int, y: int, config: StereogramConfig) -> int:
    """Normalised depth of one depth-map pixel, in ``[0, config.depth_max]``.

    Transparent pixels contribute nothing, so they sit at depth zero before
    any inversion.
    """
    r, g, b, a = (c * _WIDEN for c in depth_map.at(x, y))
    depth = _depth_from_channels(r, g, b, a, config.depth_max)
    if config.invert_depth:
        return invert_depth(depth, config.depth_max)
    return depth


def depth_row(pixels: np.ndarray, config: StereogramConfig) -> np.ndarray:
    """Vectorised :func:`depth_at` over a (W, 4) uint8 row."""
    wide = pixels.astype(np.int64) * _WIDEN
    depth = _depth_from_channels(
        wide[:, 0], wide[:, 1], wide[:, 2], wide[:, 3], config.depth_max,
    )
    if config.invert_depth:
        return invert_depth(depth, config.depth_max)
    return depth


def offset_for_depth(depth, config: StereogramConfig):
    """Horizontal pixel disparity for *depth* (scalar or int array).

    Cross-eyed viewing widens the separation as depth grows; parallel
    viewing narrows it.  Scaling truncates toward zero.
    """
    scaled = depth * config.separation_range // config.depth_max
    if config.cross_eyed:
        return config.separation_min + scaled
    return config.separation_max - scaled
