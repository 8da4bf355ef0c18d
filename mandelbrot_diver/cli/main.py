"""
Command-line interface for escape-time computation.

Runs the escape-time engine in-process and reports a summary of the
result; nothing is written to disk.
"""

import click
import sys
from typing import Optional
import logging

import numpy as np

from .. import __version__
from ..api import METHODS, METHOD_BASIC, METHOD_PERTURBATION, EscapeTimeRequest, MandelbrotModel
from ..core.math_functions import DID_NOT_ESCAPE
from ..core.precision import decimal_places_for_width, format_coordinate
from ..core.presets import ZOOM_PRESETS
from ..acceleration.numba_backend import is_numba_available

logger = logging.getLogger(__name__)

# Characters for the ASCII preview, from fast escape to slow escape
PREVIEW_RAMP = " .:-=+*%@"
PREVIEW_INSIDE = "#"


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, verbose, quiet):
    """
    Mandelbrot Diver - escape-time data for deep Mandelbrot zooms.

    Shallow regions are iterated in double precision; deep zooms use an
    arbitrary-precision reference orbit with perturbation and rebasing.
    """
    # Setup logging
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Mandelbrot Diver v{__version__}")
        click.echo(f"Python: {sys.version}")
        click.echo(f"Numba acceleration: {'Available' if is_numba_available() else 'Not available'}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


def render_preview(grid: np.ndarray) -> str:
    """
    Render an escape-time grid as ASCII art.

    Escape times are log-scaled onto PREVIEW_RAMP; points that did not
    escape are drawn as PREVIEW_INSIDE.
    """
    escaped = grid != DID_NOT_ESCAPE
    levels = np.zeros(grid.shape, dtype=np.int64)
    if np.any(escaped):
        logs = np.log1p(grid[escaped].astype(np.float64))
        low, high = logs.min(), logs.max()
        span = high - low if high > low else 1.0
        levels[escaped] = np.round((logs - low) / span * (len(PREVIEW_RAMP) - 1)).astype(np.int64)

    lines = []
    for row in range(grid.shape[0]):
        chars = [PREVIEW_RAMP[levels[row, col]] if escaped[row, col] else PREVIEW_INSIDE
                 for col in range(grid.shape[1])]
        lines.append(''.join(chars))
    return '\n'.join(lines)


def _build_request(preset: Optional[str], center_x: Optional[str], center_y: Optional[str],
                   width: Optional[float], columns: int, rows: int,
                   max_iter: Optional[int], method: str, use_numba: bool) -> EscapeTimeRequest:
    overrides = {
        'center_x': center_x,
        'center_y': center_y,
        'width': width,
        'max_iterations': max_iter,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    if preset:
        request = EscapeTimeRequest.from_preset(preset, columns, rows, method=method,
                                                use_numba=use_numba, **overrides)
    else:
        request = EscapeTimeRequest(num_samples_x=columns, num_samples_y=rows, method=method,
                                    use_numba=use_numba, **overrides)
    request.validate()
    return request


@main.command()
@click.option('--preset', type=click.Choice(sorted(ZOOM_PRESETS)), help='Zoom preset to start from')
@click.option('--center-x', '-x', type=str, help='Real part of the centre (decimal string)')
@click.option('--center-y', '-y', type=str, help='Imaginary part of the centre (decimal string)')
@click.option('--width', '-w', type=float, help='Region width in model coordinates')
@click.option('--columns', type=int, default=80, show_default=True, help='Sample points per row')
@click.option('--rows', type=int, default=40, show_default=True, help='Sample points per column')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.option('--method', type=click.Choice(METHODS), default='auto', show_default=True,
              help='Escape-time method')
@click.option('--no-numba', is_flag=True, help='Disable Numba acceleration')
@click.option('--preview', is_flag=True, help='Print an ASCII preview of the grid')
@click.pass_context
def compute(ctx, preset, center_x, center_y, width, columns, rows, max_iter, method, no_numba, preview):
    """
    Compute escape times for a region and print a summary.
    """
    try:
        request = _build_request(preset, center_x, center_y, width, columns, rows,
                                 max_iter, method, not no_numba and is_numba_available())

        model = MandelbrotModel(request)
        result = model.run()
        grid = result.grid

        escaped = grid[grid != DID_NOT_ESCAPE]
        click.echo(f"Centre: {format_coordinate(request.center_x)} + {format_coordinate(request.center_y)}i")
        click.echo(f"Width: {request.width:g} ({columns}x{rows} samples, max {request.max_iterations} iterations)")
        click.echo(f"Method: {result.method}")
        if result.reference_orbit_length is not None:
            click.echo(f"Reference orbit: {result.reference_orbit_length} entries, "
                       f"{decimal_places_for_width(request.width)} decimal places")
        click.echo(f"Escaped: {escaped.size}/{grid.size}")
        if escaped.size:
            click.echo(f"Iterations: min {escaped.min()}, max {escaped.max()}")
        click.echo(f"Time: {result.elapsed_seconds:.2f}s")

        if preview:
            click.echo("")
            click.echo(render_preview(grid))

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command()
@click.option('--preset', type=click.Choice(sorted(ZOOM_PRESETS)), help='Zoom preset to start from')
@click.option('--center-x', '-x', type=str, help='Real part of the centre (decimal string)')
@click.option('--center-y', '-y', type=str, help='Imaginary part of the centre (decimal string)')
@click.option('--width', '-w', type=float, help='Region width in model coordinates')
@click.option('--columns', type=int, default=16, show_default=True, help='Sample points per row')
@click.option('--rows', type=int, default=16, show_default=True, help='Sample points per column')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.pass_context
def compare(ctx, preset, center_x, center_y, width, columns, rows, max_iter):
    """
    Run the basic and perturbation methods on the same region and compare.
    """
    try:
        grids = {}
        for method in (METHOD_BASIC, METHOD_PERTURBATION):
            request = _build_request(preset, center_x, center_y, width, columns, rows,
                                     max_iter, method, False)
            result = MandelbrotModel(request).run()
            grids[result.method] = result.grid
            click.echo(f"{result.method}: {result.elapsed_seconds:.2f}s")

        if len(grids) < 2:
            click.echo("Perturbation unavailable for this region; nothing to compare")
            return

        basic = grids[METHOD_BASIC]
        perturbation = grids[METHOD_PERTURBATION]
        sentinel_mismatch = int(np.sum((basic == DID_NOT_ESCAPE) != (perturbation == DID_NOT_ESCAPE)))
        both = (basic != DID_NOT_ESCAPE) & (perturbation != DID_NOT_ESCAPE)
        max_diff = int(np.max(np.abs(basic[both] - perturbation[both]))) if np.any(both) else 0

        click.echo(f"Sentinel mismatches: {sentinel_mismatch}")
        click.echo(f"Max iteration difference: {max_diff}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command()
def presets():
    """
    List available zoom presets.
    """
    for name, preset in sorted(ZOOM_PRESETS.items()):
        click.echo(f"{name}: centre ({preset.center_x}, {preset.center_y}), "
                   f"width {preset.width:g}, max {preset.max_iterations} iterations")
        if preset.description:
            click.echo(f"    {preset.description}")


if __name__ == '__main__':
    main()
