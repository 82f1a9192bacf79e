"""Autostereogram synthesis: run the row linker over every depth-map row."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from autostereo.config import StereogramConfig
from autostereo.linker import link_row
from autostereo.raster import ArrayRaster, OwnedRaster, Raster, as_array, require_raster

logger = logging.getLogger(__name__)


def _materialise(raster: Raster) -> Raster:
    if isinstance(raster, (ArrayRaster, OwnedRaster)):
        return raster
    return ArrayRaster(as_array(raster), raster.color_model)


def synthesize_autostereogram(
    depth_map: Raster | None,
    background: Raster | None,
    config: StereogramConfig,
    color_model: str | None = None,
    workers: int = 1,
) -> OwnedRaster:
    """Create an autostereogram from a depth map and a background texture.

    Rows are independent, so ``workers > 1`` computes them on a thread
    pool with an identical result.

    Args:
        depth_map:   Grayscale depth raster; bright pixels are deep.
        background:  Texture raster repeated across the output.
        config:      Separation bounds and viewing mode.
        color_model: Pillow mode of the output (defaults to the background's).
        workers:     Number of threads computing rows.

    Returns:
        A frozen raster with the depth map's size.

    Raises:
        MissingInput: either raster is absent or empty.
        DegenerateRow: a row has no left strip to seed.
        IndexOutOfRange: with ``config.strict_bounds`` only.
    """
    depth_map = _materialise(require_raster(depth_map, "depth map"))
    background = _materialise(require_raster(background, "background image"))

    result = OwnedRaster(
        depth_map.width, depth_map.height, color_model or background.color_model,
    )
    logger.info(
        "Synthesising %dx%d autostereogram (separation %d-%d, %s)",
        depth_map.width, depth_map.height,
        config.separation_min, config.separation_max,
        "cross-eyed" if config.cross_eyed else "parallel",
    )
    t0 = time.perf_counter()

    def run_one(y: int) -> None:
        result.set_row(y, link_row(depth_map, background, config, y))

    rows = range(depth_map.height)
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as ex:
            # list() re-raises the first row failure
            list(ex.map(run_one, rows))
    else:
        for y in rows:
            run_one(y)

    logger.debug("Rows linked  (%.3f s)", time.perf_counter() - t0)
    return result.freeze()
