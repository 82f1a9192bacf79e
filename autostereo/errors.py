"""Exceptions raised by the synthesis and quantization pipelines."""

from __future__ import annotations


class GenError(Exception):
    """Base class for every failure of a generation run."""


class MissingInput(GenError):
    """A required raster or palette was not supplied, or has zero area."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No {name} provided")
        self.name = name


class InvalidConfig(GenError):
    """Separation bounds or depth scale are inconsistent."""


class DegenerateRow(GenError):
    """The first column of a row already links to a valid source pixel.

    The left strip seeded from the background then has zero width and the
    background cannot be spread across it.
    """

    def __init__(self, y: int) -> None:
        super().__init__(
            f"Row {y}: column 0 links inside the image; separation range "
            "leaves no left strip to seed from the background"
        )
        self.y = y


class IndexOutOfRange(GenError):
    """A background column index fell past the background's right edge."""

    def __init__(self, y: int, index: int, width: int) -> None:
        super().__init__(
            f"Row {y}: background index {index} outside width {width}"
        )
        self.y = y
        self.index = index
        self.width = width
