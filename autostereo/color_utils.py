"""Colour-space conversion and palette distance computation."""

from __future__ import annotations

import numpy as np
from skimage.color import rgb2lab

METRICS = ("rgb", "lab")


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) uint8-range RGB → (N, 3) float64 CIELAB."""
    return rgb2lab(rgb.astype(np.float64).reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def premultiply(rgba: np.ndarray) -> np.ndarray:
    """Scale R, G, B by alpha: (..., 4) uint8 straight → int64 premultiplied."""
    arr = np.asarray(rgba, dtype=np.int64)
    out = arr.copy()
    out[..., :3] = arr[..., :3] * arr[..., 3:4] // 255
    return out


def metric_space(premultiplied: np.ndarray, metric: str) -> np.ndarray:
    """Project (N, 4) premultiplied colours into the space *metric* compares in.

    ``"rgb"`` keeps all four channels; ``"lab"`` converts the colour as
    composited over black and drops alpha.
    """
    if metric == "rgb":
        return premultiplied.astype(np.float64)
    if metric == "lab":
        return rgb_to_lab(np.clip(premultiplied[:, :3], 0, 255))
    msg = f"Unknown metric '{metric}'. Available: {', '.join(METRICS)}"
    raise ValueError(msg)


def nearest_index(points: np.ndarray, query: np.ndarray) -> int:
    """Index of the row of *points* closest to *query* (first on ties)."""
    diff = points - query
    return int(np.argmin(np.sum(diff ** 2, axis=1)))
