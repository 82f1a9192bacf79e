"""
Autostereo
==========

Turn a greyscale depth map and a background texture into a single-image
autostereogram ("magic eye" picture), and reduce images to a fixed
palette with horizontal error diffusion.

- **Synthesis**: per-row disparity linking, parallel or cross-eyed viewing
- **Quantisation**: 1-D error diffusion against any :class:`Palette`
"""

__version__ = "1.0.0"

from autostereo.assembler import synthesize_autostereogram
from autostereo.config import DEPTH_MAX, StereogramConfig
from autostereo.depth import depth_at, invert_depth, offset_for_depth
from autostereo.errors import (
    DegenerateRow,
    GenError,
    IndexOutOfRange,
    InvalidConfig,
    MissingInput,
)
from autostereo.image_io import load_raster, raster_from_image, save_raster
from autostereo.palette import (
    Palette,
    extract_palette_from_image,
    generate_grayscale_palette,
    generate_random_palette,
    palette_from_hex,
)
from autostereo.quantize import ColorRemainder, quantize_to_palette
from autostereo.raster import ArrayRaster, OwnedRaster, Raster

__all__ = [
    "DEPTH_MAX",
    "ArrayRaster",
    "ColorRemainder",
    "DegenerateRow",
    "GenError",
    "IndexOutOfRange",
    "InvalidConfig",
    "MissingInput",
    "OwnedRaster",
    "Palette",
    "Raster",
    "StereogramConfig",
    "depth_at",
    "extract_palette_from_image",
    "generate_grayscale_palette",
    "generate_random_palette",
    "invert_depth",
    "load_raster",
    "offset_for_depth",
    "palette_from_hex",
    "quantize_to_palette",
    "raster_from_image",
    "save_raster",
    "synthesize_autostereogram",
]
