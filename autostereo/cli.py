"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from autostereo.assembler import synthesize_autostereogram
from autostereo.config import StereogramConfig
from autostereo.errors import GenError
from autostereo.image_io import load_raster, resize_raster, save_raster
from autostereo.palette import (
    extract_palette_from_image,
    generate_random_palette,
    palette_from_hex,
)
from autostereo.quantize import quantize_to_palette

app = typer.Typer(
    name="autostereo",
    help="Generate autostereograms and palette-reduced images.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

# Defaults come from StereogramConfig - single source of truth
_DEFAULTS = StereogramConfig()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _fail(err: GenError) -> typer.Exit:
    console.print(f"[bold red]✗[/bold red] {err}")
    return typer.Exit(1)


# -- generate command --------------------------------------------------

@app.command()
def generate(
    depth: Path = typer.Option(
        Path("depth.png"), "--depth", "-d", help="Greyscale depth map (white = high)",
    ),
    background: Path = typer.Option(
        Path("background.jpg"), "--background", "-b", help="Background texture image",
    ),
    output: Path = typer.Option(
        Path("output.png"), "--output", "-o", help="Output file name",
    ),
    cross_eyed: bool = typer.Option(
        _DEFAULTS.cross_eyed, "--cross-eyed", "-c",
        help="Create an image designed for cross-eyed viewing",
    ),
    invert_depth: bool = typer.Option(
        _DEFAULTS.invert_depth, "--invert-depth", "-i", help="Invert the depth map",
    ),
    separation_min: int | None = typer.Option(
        None, "--separation-min", help="Minimum eye separation (default: width/14)",
    ),
    separation_max: int | None = typer.Option(
        None, "--separation-max", help="Maximum eye separation (default: width/10)",
    ),
    width: int | None = typer.Option(
        None, "--width", "-w", help="Resize the depth map to this width first",
    ),
    strict: bool = typer.Option(
        _DEFAULTS.strict_bounds, "--strict/--clamp",
        help="Fail instead of clamping background indices past the edge",
    ),
    workers: int = typer.Option(1, "--workers", "-j", help="Rows computed in parallel"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Build an autostereogram from a DEPTH map and a BACKGROUND texture."""
    _setup_logging(verbose)
    logger = logging.getLogger("autostereo")

    bg = load_raster(background)
    dm = load_raster(depth)
    if width is not None and width != dm.width:
        height = max(1, round(dm.height * width / dm.width))
        dm = resize_raster(dm, width, height)
        logger.info("Depth map resized to %dx%d", width, height)

    try:
        cfg = StereogramConfig.for_width(
            dm.width,
            separation_min=separation_min,
            separation_max=separation_max,
            cross_eyed=cross_eyed,
            invert_depth=invert_depth,
            strict_bounds=strict,
        )
        console.print(Panel.fit(
            f"[bold]AUTOSTEREOGRAM[/bold]\n"
            f"Depth: {depth.name} {dm.width}x{dm.height}  |  "
            f"Background: {background.name} {bg.width}x{bg.height}\n"
            f"Separation: {cfg.separation_min}-{cfg.separation_max}  |  "
            f"Viewing: {'cross-eyed' if cfg.cross_eyed else 'parallel'}",
            border_style="cyan",
        ))
        t0 = time.perf_counter()
        result = synthesize_autostereogram(dm, bg, cfg, workers=workers)
    except GenError as err:
        raise _fail(err) from err

    output.parent.mkdir(parents=True, exist_ok=True)
    save_raster(result, output)
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{result.width}x{result.height}  time={time.perf_counter() - t0:.1f}s[/dim]"
    )


# -- palette command ---------------------------------------------------

@app.command()
def palette(
    image: Path = typer.Argument(..., help="Image to reduce"),
    output: Path = typer.Option(Path("output.png"), "--output", "-o"),
    size: int = typer.Option(100, "--size", "-s", help="Palette size"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed (None = random)"),
    from_hex: str | None = typer.Option(
        None, "--from-hex",
        help="Comma-separated hex colours, e.g. '#000000,#FF0000'",
    ),
    from_image: bool = typer.Option(
        False, "--from-image", help="Sample the palette from the image itself",
    ),
    metric: str = typer.Option("rgb", "--metric", help="'rgb' or 'lab'"),
    workers: int = typer.Option(1, "--workers", "-j"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Reduce IMAGE to a fixed palette with error diffusion."""
    _setup_logging(verbose)
    logger = logging.getLogger("autostereo")

    img = load_raster(image)
    try:
        if from_hex:
            pal = palette_from_hex(from_hex.split(","), metric=metric)
        elif from_image:
            pal = extract_palette_from_image(img, size, seed=seed, metric=metric)
        else:
            pal = generate_random_palette(size, seed=seed, metric=metric)
    except ValueError as err:
        console.print(f"[bold red]✗[/bold red] {err}")
        raise typer.Exit(1) from err
    logger.info("Palette: %d colours (seed=%s)", len(pal), seed)

    try:
        result = quantize_to_palette(img, pal, workers=workers)
    except GenError as err:
        raise _fail(err) from err

    output.parent.mkdir(parents=True, exist_ok=True)
    save_raster(result, output)
    console.print(f"[green]✓[/green] Saved to {output}")


if __name__ == "__main__":
    app()
