"""Command-line interface for scancrop."""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from dotenv import load_dotenv

from scancrop import __version__
from scancrop.detection.detector import detect_corners
from scancrop.editing.corners import CornerSet, init_default
from scancrop.errors import DegenerateGeometry, ImageLoadFailed
from scancrop.pipeline import Pipeline
from scancrop.preprocessing.loader import STANDARD_EXTENSIONS, HEIC_EXTENSIONS, load_image
from scancrop.utils.debug import save_debug_image
from scancrop.utils.settings import load_config
from scancrop.warp.perspective import WARP_METHODS, warp

# Load SCANCROP_* overrides from .env
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)

logger = logging.getLogger(__name__)


def _parse_corners(value: str) -> List[List[float]]:
    """Parse ``"x,y x,y x,y x,y"`` or a JSON list of four [x, y] pairs."""
    text = value.strip()
    try:
        if text.startswith('['):
            points = [[float(x), float(y)] for x, y in json.loads(text)]
        else:
            points = []
            for pair in text.replace(';', ' ').split():
                x, y = pair.split(',')
                points.append([float(x), float(y)])
    except (ValueError, TypeError) as e:
        raise click.BadParameter(f"Could not parse corners {value!r}: {e}") from e

    if len(points) != 4:
        raise click.BadParameter(f"Expected 4 corners, got {len(points)}")
    return points


@click.group()
@click.version_option(version=__version__)
@click.option(
    '--config',
    'config_path',
    type=click.Path(exists=True, dir_okay=False),
    help='JSON settings file (defaults to ./scancrop.json if present)'
)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """scancrop - detect document corners and correct perspective."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(Path(config_path) if config_path else None)
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--json', 'as_json', is_flag=True, help='Print corners as JSON')
@click.pass_context
def detect(ctx: click.Context, image_path: str, as_json: bool) -> None:
    """Detect document corners in IMAGE_PATH.

    Falls back to the default inset rectangle when nothing is found.
    """
    config = ctx.obj['config']
    try:
        image, _ = load_image(image_path)
    except ImageLoadFailed as e:
        raise click.ClickException(str(e)) from e

    height, width = image.shape[:2]
    corners = detect_corners(image, config)
    detected = corners is not None
    if corners is None:
        corners = init_default(width, height, config.default_inset_ratio)

    if as_json:
        click.echo(json.dumps({
            'image': image_path,
            'width': width,
            'height': height,
            'detected': detected,
            'corners': corners.to_list(),
        }))
        return

    click.echo(f"{image_path}: {width}x{height} ({'detected' if detected else 'default inset'})")
    for name, (x, y) in zip(('TL', 'TR', 'BR', 'BL'), corners):
        click.echo(f"  {name}: ({x:.1f}, {y:.1f})")


@main.command(name='warp')
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--corners', 'corners_text', required=True, help='Four corners: "x,y x,y x,y x,y" (TL TR BR BL)')
@click.option('--output', '-o', 'output_path', type=click.Path(dir_okay=False), required=True, help='Output image path')
@click.option('--method', type=click.Choice(WARP_METHODS), default=None, help='Warp method')
@click.option('--brightness', type=float, default=100.0, show_default=True, help='Brightness percentage')
@click.option('--contrast', type=float, default=100.0, show_default=True, help='Contrast percentage')
@click.option('--sort', 'sort_points', is_flag=True, help='Sort corners into TL, TR, BR, BL order first')
@click.pass_context
def warp_command(
    ctx: click.Context,
    image_path: str,
    corners_text: str,
    output_path: str,
    method: Optional[str],
    brightness: float,
    contrast: float,
    sort_points: bool,
) -> None:
    """Warp the quadrilateral given by --corners in IMAGE_PATH to a rectangle."""
    config = ctx.obj['config']
    points = _parse_corners(corners_text)

    try:
        image, _ = load_image(image_path)
    except ImageLoadFailed as e:
        raise click.ClickException(str(e)) from e

    height, width = image.shape[:2]
    corners = CornerSet.from_points(points, width, height, sort=sort_points)

    try:
        result = warp(
            image,
            corners,
            method=method or config.warp_method,
            brightness=brightness,
            contrast=contrast,
        )
    except DegenerateGeometry as e:
        raise click.ClickException(f"Cannot warp: {e}") from e

    written = save_debug_image(result, output_path, "Warped output", quality=config.jpeg_quality)
    click.echo(f"Saved {written} ({result.shape[1]}x{result.shape[0]})")


@main.command()
@click.argument('input_paths', nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    '--output',
    '-o',
    'output_dir',
    type=click.Path(),
    default='./output',
    help='Output directory for cropped images'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Save corner overlays and intermediate images'
)
@click.option(
    '--batch',
    is_flag=True,
    help='Process all images in directory'
)
@click.option(
    '--filter',
    'filter_pattern',
    type=str,
    help='Glob pattern to filter files (e.g., "*.jpg")'
)
@click.pass_context
def autocrop(
    ctx: click.Context,
    input_paths: tuple,
    output_dir: str,
    debug: bool,
    batch: bool,
    filter_pattern: Optional[str],
) -> None:
    """Detect and perspective-correct documents in images.

    INPUT_PATHS: One or more image files or directories to process
    """
    config = ctx.obj['config']
    verbose = ctx.obj['verbose']

    input_files: List[Path] = []

    for input_path_str in input_paths:
        input_path = Path(input_path_str)

        if input_path.is_file():
            input_files.append(input_path)
        elif input_path.is_dir():
            if not batch:
                logger.error(f"Directory provided but --batch not specified: {input_path}")
                sys.exit(1)
            if filter_pattern:
                pattern_files = sorted(input_path.glob(filter_pattern))
                input_files.extend(pattern_files)
                logger.info(f"Found {len(pattern_files)} files matching {filter_pattern}")
            else:
                extensions = STANDARD_EXTENSIONS + HEIC_EXTENSIONS
                input_files.extend(
                    sorted(p for p in input_path.iterdir() if p.suffix.lower() in extensions)
                )

    if not input_files:
        logger.error("No input files found")
        sys.exit(1)

    logger.info(f"Processing {len(input_files)} file(s)")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    debug_dir = None
    if debug:
        debug_dir = Path('./debug')
        debug_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Debug output will be saved to: {debug_dir}")

    pipeline = Pipeline(config)
    extension = '.png' if config.output_format.lower() == 'png' else '.jpg'

    processed = 0
    cropped = 0
    for input_file in input_files:
        try:
            file_debug_dir = debug_dir / input_file.stem if debug_dir else None

            result = pipeline.process(
                str(input_file),
                debug_output_dir=str(file_debug_dir) if file_debug_dir else None,
            )

            output_file_path = output_path / f"{input_file.stem}_cropped{extension}"
            save_debug_image(
                result.output_image,
                output_file_path,
                "Final output",
                quality=config.jpeg_quality
            )

            processed += 1
            if result.cropped:
                cropped += 1
            logger.info(
                f"Saved: {output_file_path.name} "
                f"({'cropped' if result.cropped else 'unchanged'}, {result.processing_time:.3f}s)"
            )

        except Exception as e:
            logger.error(f"Error processing {input_file}: {e}", exc_info=verbose)
            continue

    logger.info(f"COMPLETE: Processed {processed}/{len(input_files)} file(s), {cropped} cropped")
    logger.info(f"Output directory: {output_path.absolute()}")


if __name__ == '__main__':
    main()
