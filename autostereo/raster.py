"""Raster abstraction shared by the synthesis and quantization pipelines.

A raster is a width x height grid of 8-bit straight-alpha RGBA pixels
plus the Pillow mode ("colour model") it should be encoded with.  Two
implementations exist:

- :class:`ArrayRaster` - read-only view over a numpy array, used for inputs.
- :class:`OwnedRaster` - output buffer filled one row at a time and frozen
  once every row has been written.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from autostereo.errors import MissingInput

RGBA = tuple[int, int, int, int]


@runtime_checkable
class Raster(Protocol):
    """Read capability every pipeline stage relies on."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def color_model(self) -> str: ...

    def at(self, x: int, y: int) -> RGBA: ...


def _to_rgba(pixels: np.ndarray) -> np.ndarray:
    """Normalise (H, W), (H, W, 3) or (H, W, 4) uint8 data to (H, W, 4)."""
    arr = np.asarray(pixels)
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, np.newaxis], 3, axis=2)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        msg = f"Expected (H, W), (H, W, 3) or (H, W, 4) pixels, got {arr.shape}"
        raise ValueError(msg)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr.astype(np.uint8), alpha], axis=2)
    return np.ascontiguousarray(arr, dtype=np.uint8)


def _check_bounds(x: int, y: int, width: int, height: int) -> None:
    if not (0 <= x < width and 0 <= y < height):
        msg = f"Pixel ({x}, {y}) outside {width}x{height} raster"
        raise IndexError(msg)


class ArrayRaster:
    """Immutable raster backed by an (H, W, 4) uint8 array."""

    def __init__(self, pixels: np.ndarray, color_model: str = "RGBA") -> None:
        arr = _to_rgba(pixels).copy()
        arr.flags.writeable = False
        self._pixels = arr
        self._color_model = color_model

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def color_model(self) -> str:
        return self._color_model

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (H, W, 4) uint8 view."""
        return self._pixels

    def at(self, x: int, y: int) -> RGBA:
        _check_bounds(x, y, self.width, self.height)
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def row(self, y: int) -> np.ndarray:
        """Read-only (W, 4) view of row *y*."""
        if not 0 <= y < self.height:
            msg = f"Row {y} outside raster of height {self.height}"
            raise IndexError(msg)
        return self._pixels[y]

    def __repr__(self) -> str:
        return f"ArrayRaster({self.width}x{self.height}, {self._color_model!r})"


class OwnedRaster:
    """Output raster allocated up front and filled row by row.

    Pixels are only readable after :meth:`freeze`; each row is written by
    exactly one producer, so rows may be filled from worker threads.
    """

    def __init__(self, width: int, height: int, color_model: str = "RGBA") -> None:
        self._pixels = np.zeros((height, width, 4), dtype=np.uint8)
        self._filled = np.zeros(height, dtype=bool)
        self._color_model = color_model
        self._frozen = False

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def color_model(self) -> str:
        return self._color_model

    @property
    def pixels(self) -> np.ndarray:
        self._require_frozen()
        return self._pixels

    def set_row(self, y: int, row: np.ndarray) -> None:
        if self._frozen:
            msg = "Cannot write to a frozen raster"
            raise RuntimeError(msg)
        if not 0 <= y < self.height:
            msg = f"Row {y} outside raster of height {self.height}"
            raise IndexError(msg)
        self._pixels[y] = row
        self._filled[y] = True

    def freeze(self) -> OwnedRaster:
        """Seal the raster; every row must have been written."""
        missing = np.flatnonzero(~self._filled)
        if missing.size:
            msg = f"{missing.size} row(s) never written, first is {missing[0]}"
            raise RuntimeError(msg)
        self._pixels.flags.writeable = False
        self._frozen = True
        return self

    def at(self, x: int, y: int) -> RGBA:
        self._require_frozen()
        _check_bounds(x, y, self.width, self.height)
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def row(self, y: int) -> np.ndarray:
        self._require_frozen()
        return self._pixels[y]

    def _require_frozen(self) -> None:
        if not self._frozen:
            msg = "Raster is still being built"
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "building"
        return f"OwnedRaster({self.width}x{self.height}, {self._color_model!r}, {state})"


def as_array(raster: Raster) -> np.ndarray:
    """Return the (H, W, 4) uint8 pixels of any :class:`Raster`."""
    pixels = getattr(raster, "pixels", None)
    if isinstance(pixels, np.ndarray):
        return pixels
    out = np.empty((raster.height, raster.width, 4), dtype=np.uint8)
    for y in range(raster.height):
        for x in range(raster.width):
            out[y, x] = raster.at(x, y)
    return out


def require_raster(raster: Raster | None, name: str) -> Raster:
    """Reject absent or zero-area rasters before any row work starts."""
    if raster is None or raster.width == 0 or raster.height == 0:
        raise MissingInput(name)
    return raster
