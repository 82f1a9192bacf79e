"""Tests for autostereogram synthesis."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from autostereo.assembler import synthesize_autostereogram
from autostereo.cli import app
from autostereo.config import DEPTH_MAX, StereogramConfig
from autostereo.depth import depth_at, depth_row, invert_depth, offset_for_depth
from autostereo.errors import DegenerateRow, IndexOutOfRange, InvalidConfig, MissingInput
from autostereo.image_io import load_raster, raster_from_image, save_raster
from autostereo.linker import (
    background_indices,
    background_row_for,
    initial_width,
    source_indices,
)
from autostereo.raster import ArrayRaster, OwnedRaster

BLACK = 0
WHITE = 255

# -- Fixtures ----------------------------------------------------------


def depth_raster(rows: list[list[int]], alpha: int = 255) -> ArrayRaster:
    """Grey depth map from rows of 0-255 levels."""
    arr = np.array(rows, dtype=np.uint8)
    rgba = np.stack([arr, arr, arr, np.full_like(arr, alpha)], axis=2)
    return ArrayRaster(rgba)


def gradient_raster(width: int, height: int = 1) -> ArrayRaster:
    """Background whose red channel encodes the column (x * 20)."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, :, 0] = (np.arange(width) * 20).astype(np.uint8)
    arr[:, :, 1] = (np.arange(height) * 50).astype(np.uint8)[:, np.newaxis]
    arr[:, :, 3] = 255
    return ArrayRaster(arr)


def columns_of(result: OwnedRaster, y: int = 0) -> list[int]:
    """Recover background columns from a gradient_raster-based output."""
    return [int(v) // 20 for v in result.pixels[y, :, 0]]


class PixelGrid:
    """Minimal Raster implementation that only offers at()."""

    def __init__(self, pixels: np.ndarray, color_model: str = "RGBA") -> None:
        self._pixels = pixels
        self.color_model = color_model

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    def at(self, x: int, y: int) -> tuple[int, int, int, int]:
        return tuple(int(c) for c in self._pixels[y, x])


@pytest.fixture
def parallel() -> StereogramConfig:
    return StereogramConfig(separation_min=0, separation_max=4)


@pytest.fixture
def cross() -> StereogramConfig:
    return StereogramConfig(separation_min=0, separation_max=4, cross_eyed=True)


# -- Config ------------------------------------------------------------

class TestConfig:
    def test_defaults(self) -> None:
        cfg = StereogramConfig()
        assert cfg.depth_max == DEPTH_MAX == 3000
        assert not cfg.cross_eyed
        assert not cfg.invert_depth

    def test_for_width(self) -> None:
        cfg = StereogramConfig.for_width(140)
        assert cfg.separation_min == 10
        assert cfg.separation_max == 14

    def test_for_width_overrides(self) -> None:
        cfg = StereogramConfig.for_width(140, separation_max=30, cross_eyed=True)
        assert cfg.separation_min == 10
        assert cfg.separation_max == 30
        assert cfg.cross_eyed

    def test_max_below_min(self) -> None:
        with pytest.raises(InvalidConfig):
            StereogramConfig(separation_min=5, separation_max=4)

    def test_negative_min(self) -> None:
        with pytest.raises(InvalidConfig):
            StereogramConfig(separation_min=-1, separation_max=4)

    def test_zero_depth_max(self) -> None:
        with pytest.raises(InvalidConfig):
            StereogramConfig(depth_max=0)

    def test_frozen(self) -> None:
        cfg = StereogramConfig()
        with pytest.raises(AttributeError):
            cfg.separation_max = 10  # type: ignore[misc]


# -- Raster ------------------------------------------------------------

class TestRaster:
    def test_rgb_input_gets_opaque_alpha(self) -> None:
        r = ArrayRaster(np.zeros((2, 3, 3), dtype=np.uint8))
        assert (r.width, r.height) == (3, 2)
        assert r.at(2, 1) == (0, 0, 0, 255)

    def test_input_is_read_only(self) -> None:
        src = np.zeros((1, 1, 4), dtype=np.uint8)
        r = ArrayRaster(src)
        src[0, 0] = 9
        assert r.at(0, 0) == (0, 0, 0, 0)
        with pytest.raises(ValueError):
            r.pixels[0, 0, 0] = 1

    def test_out_of_range(self) -> None:
        r = ArrayRaster(np.zeros((2, 2, 4), dtype=np.uint8))
        with pytest.raises(IndexError):
            r.at(2, 0)
        with pytest.raises(IndexError):
            r.at(-1, 0)

    def test_owned_unreadable_until_frozen(self) -> None:
        out = OwnedRaster(2, 1)
        out.set_row(0, np.full((2, 4), 7, dtype=np.uint8))
        with pytest.raises(RuntimeError):
            out.at(0, 0)
        out.freeze()
        assert out.at(1, 0) == (7, 7, 7, 7)
        with pytest.raises(RuntimeError):
            out.set_row(0, np.zeros((2, 4), dtype=np.uint8))

    def test_freeze_requires_every_row(self) -> None:
        out = OwnedRaster(2, 2)
        out.set_row(0, np.zeros((2, 4), dtype=np.uint8))
        with pytest.raises(RuntimeError):
            out.freeze()


# -- Depth sampling & offsets ------------------------------------------

class TestDepth:
    def test_white_and_black(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[WHITE, BLACK, 128]])
        assert depth_at(dm, 0, 0, parallel) == DEPTH_MAX
        assert depth_at(dm, 1, 0, parallel) == 0
        assert depth_at(dm, 2, 0, parallel) == 1505

    def test_transparent_is_zero_depth(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[WHITE]], alpha=0)
        assert depth_at(dm, 0, 0, parallel) == 0

    def test_invert_flag(self) -> None:
        cfg = StereogramConfig(invert_depth=True)
        dm = depth_raster([[WHITE, BLACK]])
        assert depth_at(dm, 0, 0, cfg) == 0
        assert depth_at(dm, 1, 0, cfg) == DEPTH_MAX

    def test_invert_twice_is_identity(self) -> None:
        for d in range(0, DEPTH_MAX + 1, 37):
            assert invert_depth(invert_depth(d, DEPTH_MAX), DEPTH_MAX) == d

    def test_row_matches_pixelwise(self) -> None:
        rng = np.random.default_rng(7)
        pixels = rng.integers(0, 256, size=(1, 25, 4), dtype=np.uint8)
        dm = ArrayRaster(pixels)
        for cfg in (StereogramConfig(), StereogramConfig(invert_depth=True)):
            row = depth_row(dm.row(0), cfg)
            assert [int(v) for v in row] == [depth_at(dm, x, 0, cfg) for x in range(25)]

    def test_offset_monotonic_cross_eyed(self) -> None:
        cfg = StereogramConfig(separation_min=3, separation_max=17, cross_eyed=True)
        offsets = [offset_for_depth(d, cfg) for d in range(0, DEPTH_MAX + 1, 11)]
        assert offsets == sorted(offsets)

    def test_offset_monotonic_parallel(self) -> None:
        cfg = StereogramConfig(separation_min=3, separation_max=17)
        offsets = [offset_for_depth(d, cfg) for d in range(0, DEPTH_MAX + 1, 11)]
        assert offsets == sorted(offsets, reverse=True)

    def test_offset_boundaries(self) -> None:
        cross = StereogramConfig(separation_min=3, separation_max=17, cross_eyed=True)
        par = StereogramConfig(separation_min=3, separation_max=17)
        assert offset_for_depth(0, cross) == 3
        assert offset_for_depth(DEPTH_MAX, cross) == 17
        assert offset_for_depth(0, par) == 17
        assert offset_for_depth(DEPTH_MAX, par) == 3


# -- Row linking -------------------------------------------------------

class TestRowLinker:
    def test_source_indices(self) -> None:
        cfg = StereogramConfig(separation_min=1, separation_max=2)
        row = depth_raster([[BLACK, BLACK, BLACK, WHITE, BLACK]]).row(0)
        assert source_indices(row, cfg).tolist() == [-2, -1, 0, 2, 2]

    def test_initial_width(self) -> None:
        assert initial_width(np.array([-3, -1, 0, -1])) == 2
        assert initial_width(np.array([-1, -1])) == 2
        assert initial_width(np.array([0, -1])) == 0

    def test_collision_advances_in_parallel_mode(self) -> None:
        idx = background_indices(np.array([-2, -1, 0, 2, 2]), 8, cross_eyed=False)
        assert idx.tolist() == [0, 4, 0, 0, 1]

    def test_collision_reuses_in_cross_eyed_mode(self) -> None:
        idx = background_indices(np.array([-2, -1, 0, 2, 2]), 8, cross_eyed=True)
        assert idx.tolist() == [0, 4, 0, 0, 0]

    def test_unlinked_column_after_strip_advances(self) -> None:
        idx = background_indices(np.array([-1, 0, -1]), 4, cross_eyed=False)
        assert idx.tolist() == [0, 0, 1]

    def test_degenerate_row(self) -> None:
        with pytest.raises(DegenerateRow) as exc:
            background_indices(np.array([0, 1, 2]), 8, cross_eyed=False, y=5)
        assert exc.value.y == 5

    def test_background_row_mapping(self) -> None:
        assert [background_row_for(y, 4, 2) for y in range(4)] == [0, 0, 1, 1]
        assert [background_row_for(y, 2, 6) for y in range(2)] == [0, 3]


# -- Synthesis ---------------------------------------------------------

class TestSynthesize:
    def test_parallel_flat_far_plane(self, parallel: StereogramConfig) -> None:
        # black = depth 0 -> offset 4 in parallel mode; white would give offset 0
        # and a degenerate row (see test_parallel_white_is_degenerate, DESIGN.md)
        dm = depth_raster([[BLACK] * 10])
        out = synthesize_autostereogram(dm, gradient_raster(10), parallel)
        assert columns_of(out) == [0, 2, 4, 6, 0, 2, 4, 6, 0, 2]

    def test_parallel_white_is_degenerate(self, parallel: StereogramConfig) -> None:
        # white = depth max -> offset 0, column 0 links to itself
        dm = depth_raster([[WHITE] * 10])
        with pytest.raises(DegenerateRow):
            synthesize_autostereogram(dm, gradient_raster(10), parallel)

    def test_cross_eyed_flips_direction(self, cross: StereogramConfig) -> None:
        white = depth_raster([[WHITE] * 10])
        out = synthesize_autostereogram(white, gradient_raster(10), cross)
        assert columns_of(out) == [0, 2, 4, 6, 0, 2, 4, 6, 0, 2]

        black = depth_raster([[BLACK] * 10])
        with pytest.raises(DegenerateRow):
            synthesize_autostereogram(black, gradient_raster(10), cross)

    def test_depth_step_shortens_repeat(self) -> None:
        cfg = StereogramConfig(separation_min=2, separation_max=4)
        dm = depth_raster([[BLACK] * 6 + [WHITE] * 6])
        out = synthesize_autostereogram(dm, gradient_raster(12), cfg)
        # strip 0-3 seeded with step 3, then period 4 until the raised
        # plane where the period drops to 2
        assert columns_of(out) == [0, 3, 6, 9, 0, 3, 0, 3, 0, 3, 0, 3]

    def test_clamps_past_right_edge(self, caplog: pytest.LogCaptureFixture) -> None:
        cfg = StereogramConfig(separation_min=1, separation_max=3)
        dm = depth_raster([[BLACK, WHITE, BLACK, BLACK]])
        with caplog.at_level(logging.WARNING, logger="autostereo.linker"):
            out = synthesize_autostereogram(dm, gradient_raster(2), cfg)
        assert columns_of(out) == [0, 0, 1, 1]
        assert "clamped" in caplog.text

    def test_strict_bounds_raises(self) -> None:
        cfg = StereogramConfig(separation_min=1, separation_max=3, strict_bounds=True)
        dm = depth_raster([[BLACK, WHITE, BLACK, BLACK]])
        with pytest.raises(IndexOutOfRange) as exc:
            synthesize_autostereogram(dm, gradient_raster(2), cfg)
        assert exc.value.index == 2
        assert exc.value.width == 2

    def test_background_rows_follow_height_ratio(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[BLACK] * 6] * 4)
        out = synthesize_autostereogram(dm, gradient_raster(6, height=2), parallel)
        assert out.pixels[:, 0, 1].tolist() == [0, 0, 50, 50]

    def test_row_failure_aborts(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[BLACK] * 6, [WHITE] * 6, [BLACK] * 6])
        with pytest.raises(DegenerateRow) as exc:
            synthesize_autostereogram(dm, gradient_raster(6), parallel)
        assert exc.value.y == 1

    def test_missing_inputs(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[BLACK] * 4])
        with pytest.raises(MissingInput):
            synthesize_autostereogram(None, gradient_raster(4), parallel)
        with pytest.raises(MissingInput):
            synthesize_autostereogram(dm, None, parallel)
        with pytest.raises(MissingInput):
            synthesize_autostereogram(dm, ArrayRaster(np.zeros((0, 0, 4), np.uint8)), parallel)

    def test_output_shape_and_model(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[BLACK] * 7] * 3)
        bg = ArrayRaster(gradient_raster(20, 5).pixels, color_model="RGB")
        out = synthesize_autostereogram(dm, bg, parallel)
        assert (out.width, out.height) == (7, 3)
        assert out.color_model == "RGB"
        assert synthesize_autostereogram(dm, bg, parallel, color_model="L").color_model == "L"
        assert not out.pixels.flags.writeable

    def test_threaded_matches_serial(self) -> None:
        rng = np.random.default_rng(3)
        dm = ArrayRaster(rng.integers(0, 256, size=(6, 32, 4), dtype=np.uint8))
        bg = ArrayRaster(rng.integers(0, 256, size=(5, 40, 4), dtype=np.uint8))
        cfg = StereogramConfig(separation_min=4, separation_max=8)
        serial = synthesize_autostereogram(dm, bg, cfg)
        threaded = synthesize_autostereogram(dm, bg, cfg, workers=4)
        np.testing.assert_array_equal(serial.pixels, threaded.pixels)

    def test_accepts_any_raster(self, parallel: StereogramConfig) -> None:
        dm = depth_raster([[BLACK] * 10])
        grid = PixelGrid(np.array(gradient_raster(10).pixels))
        out = synthesize_autostereogram(PixelGrid(np.array(dm.pixels)), grid, parallel)
        assert columns_of(out) == [0, 2, 4, 6, 0, 2, 4, 6, 0, 2]


# -- Image I/O & CLI ---------------------------------------------------

class TestImageIO:
    def test_round_trip(self, tmp_path: Path) -> None:
        arr = np.random.default_rng(1).integers(0, 256, (6, 10, 3), dtype=np.uint8)
        src = tmp_path / "in.png"
        Image.fromarray(arr).save(src)
        r = load_raster(src)
        assert (r.width, r.height) == (10, 6)
        assert r.color_model == "RGB"
        out = tmp_path / "out.png"
        save_raster(r, out)
        with Image.open(out) as img:
            assert img.mode == "RGB"
            np.testing.assert_array_equal(np.array(img), arr)

    def test_from_greyscale_image(self) -> None:
        img = Image.new("L", (3, 2), 200)
        r = raster_from_image(img)
        assert r.color_model == "L"
        assert r.at(1, 1) == (200, 200, 200, 255)

    def test_sixteen_bit_depth_keeps_levels(self, tmp_path: Path) -> None:
        levels = np.array([[0, 1000, 20000, 40000, 65535]], dtype=np.uint16)
        src = tmp_path / "depth16.png"
        Image.fromarray(levels).save(src)
        dm = load_raster(src)
        cfg = StereogramConfig()
        depths = [depth_at(dm, x, 0, cfg) for x in range(5)]
        assert depths == sorted(set(depths))
        assert depths[0] == 0
        assert depths[-1] == DEPTH_MAX

    def test_cmyk_background_saves_as_rgba(self, tmp_path: Path) -> None:
        bg_path = tmp_path / "bg.jpg"
        Image.new("CMYK", (30, 8), (0, 128, 255, 0)).save(bg_path)
        bg = load_raster(bg_path)
        assert bg.color_model == "CMYK"
        out = synthesize_autostereogram(
            depth_raster([[BLACK] * 40] * 8), bg, StereogramConfig.for_width(40),
        )
        dest = tmp_path / "out.png"
        save_raster(out, dest)
        with Image.open(dest) as img:
            assert img.mode == "RGBA"
            assert img.size == (40, 8)


class TestCli:
    def test_generate_writes_png(self, tmp_path: Path) -> None:
        depth = tmp_path / "depth.png"
        bg = tmp_path / "bg.png"
        out = tmp_path / "out" / "stereo.png"
        Image.new("L", (40, 8), 0).save(depth)
        Image.fromarray(
            np.random.default_rng(2).integers(0, 256, (8, 30, 3), dtype=np.uint8),
        ).save(bg)

        result = CliRunner().invoke(
            app, ["generate", "-d", str(depth), "-b", str(bg), "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        with Image.open(out) as img:
            assert img.size == (40, 8)

    def test_generate_with_cmyk_background(self, tmp_path: Path) -> None:
        depth = tmp_path / "depth.png"
        bg = tmp_path / "bg.jpg"
        out = tmp_path / "stereo.png"
        Image.new("L", (40, 8), 0).save(depth)
        Image.new("CMYK", (30, 8), (40, 0, 200, 10)).save(bg)

        result = CliRunner().invoke(
            app, ["generate", "-d", str(depth), "-b", str(bg), "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        assert out.exists()

    def test_generate_reports_degenerate(self, tmp_path: Path) -> None:
        depth = tmp_path / "depth.png"
        bg = tmp_path / "bg.png"
        Image.new("L", (40, 8), 255).save(depth)
        Image.new("RGB", (30, 8), (10, 20, 30)).save(bg)

        result = CliRunner().invoke(
            app,
            ["generate", "-d", str(depth), "-b", str(bg),
             "-o", str(tmp_path / "x.png"), "--separation-min", "0"],
        )
        assert result.exit_code == 1
        assert not (tmp_path / "x.png").exists()
