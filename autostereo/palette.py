"""Palettes: an ordered, immutable colour set with a nearest-colour lookup."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from functools import lru_cache

import numpy as np

from autostereo.color_utils import METRICS, metric_space, nearest_index, premultiply
from autostereo.raster import RGBA, Raster, as_array

LOOKUP_CACHE_SIZE = 1 << 16


class Palette:
    """Non-empty ordered set of RGBA colours.

    Args:
        colors: Iterable of ``(r, g, b)`` or ``(r, g, b, a)`` 0-255 tuples.
            Three-channel entries are opaque.
        metric: ``"rgb"`` (squared distance over premultiplied RGBA) or
            ``"lab"`` (CIELAB distance of the colour composited over black).
    """

    def __init__(self, colors: Iterable[Sequence[int]], metric: str = "rgb") -> None:
        rows = [tuple(int(c) for c in color) for color in colors]
        if not rows:
            msg = "Palette needs at least one colour"
            raise ValueError(msg)
        if metric not in METRICS:
            msg = f"Unknown metric '{metric}'. Available: {', '.join(METRICS)}"
            raise ValueError(msg)
        if any(len(row) not in (3, 4) for row in rows):
            msg = "Palette colours must have 3 or 4 channels"
            raise ValueError(msg)
        rgba = np.array(
            [row if len(row) == 4 else (*row, 255) for row in rows], dtype=np.int64,
        )
        if rgba.min() < 0 or rgba.max() > 255:
            msg = "Palette channels must lie in [0, 255]"
            raise ValueError(msg)

        self._colors = rgba.astype(np.uint8)
        self._colors.flags.writeable = False
        self._premultiplied = premultiply(self._colors)
        self._points = metric_space(self._premultiplied, metric)
        self._metric = metric
        # Keyed by premultiplied RGBA; diffused rows revisit the same colours
        self._lookup = lru_cache(maxsize=LOOKUP_CACHE_SIZE)(self._nearest_uncached)

    @property
    def metric(self) -> str:
        return self._metric

    @property
    def colors(self) -> np.ndarray:
        """Read-only (N, 4) uint8 straight-alpha colours."""
        return self._colors

    def __len__(self) -> int:
        return len(self._colors)

    def __getitem__(self, i: int) -> RGBA:
        r, g, b, a = self._colors[i]
        return int(r), int(g), int(b), int(a)

    def __contains__(self, color: object) -> bool:
        rgba = tuple(color)  # type: ignore[arg-type]
        if len(rgba) == 3:
            rgba = (*rgba, 255)
        return any(rgba == self[i] for i in range(len(self)))

    def __repr__(self) -> str:
        return f"Palette({len(self)} colours, metric={self._metric!r})"

    def premultiplied(self, i: int) -> np.ndarray:
        """Premultiplied int64 RGBA of entry *i*."""
        return self._premultiplied[i]

    def nearest_index_premultiplied(self, color: np.ndarray) -> int:
        """Index of the entry nearest a premultiplied (4,) colour."""
        return self._lookup(tuple(int(c) for c in np.asarray(color).reshape(4)))

    def _nearest_uncached(self, color: tuple[int, int, int, int]) -> int:
        query = metric_space(np.array(color, dtype=np.int64).reshape(1, 4), self._metric)
        return nearest_index(self._points, query[0])

    def nearest(self, color: Sequence[int]) -> RGBA:
        """Palette colour closest to a straight-alpha RGBA colour."""
        rgba = tuple(color) if len(color) == 4 else (*color, 255)
        i = self.nearest_index_premultiplied(premultiply(np.array(rgba)))
        return self[i]


# -- Builders ----------------------------------------------------------

def _hex_to_rgb(hex_str: str) -> tuple[int, int, int]:
    h = hex_str.strip().lstrip("#")
    if len(h) != 6:
        msg = f"Expected #RRGGBB, got '{hex_str}'"
        raise ValueError(msg)
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def palette_from_hex(hex_colors: Iterable[str], metric: str = "rgb") -> Palette:
    """Palette from strings like ``"#FF7F11"``."""
    return Palette([_hex_to_rgb(h) for h in hex_colors], metric=metric)


def generate_random_palette(
    num_colors: int, seed: int | None = None, metric: str = "rgb",
) -> Palette:
    """*num_colors* uniformly random opaque colours."""
    rng = np.random.default_rng(seed)
    return Palette(rng.integers(0, 256, size=(num_colors, 3)), metric=metric)


def generate_grayscale_palette(num_colors: int, metric: str = "rgb") -> Palette:
    """Evenly spaced grays from black to white."""
    levels = np.linspace(0, 255, num_colors).round().astype(np.int64)
    return Palette([(v, v, v) for v in levels], metric=metric)


def extract_palette_from_image(
    image: Raster,
    num_colors: int,
    seed: int | None = None,
    metric: str = "rgb",
) -> Palette:
    """Sample up to *num_colors* distinct opaque colours from *image*.

    Returns fewer colours when the image has fewer distinct ones.
    """
    rng = np.random.default_rng(seed)
    pixels = as_array(image).reshape(-1, 4)[:, :3]
    distinct = np.unique(pixels, axis=0)
    if len(distinct) > num_colors:
        idx = np.sort(rng.choice(len(distinct), size=num_colors, replace=False))
        distinct = distinct[idx]
    return Palette(distinct, metric=metric)
