"""
Arbitrary precision mathematics for deep Mandelbrot zooms.

This module provides the precision policy that maps a region width to an
mpmath context, plus a direct arbitrary-precision escape-time iterator that
serves as ground truth when checking the double-precision engines.
"""

import math
import numpy as np
from typing import Callable, Optional, Union
import logging

from mpmath.ctx_mp import MPContext

from .errors import InvalidRequestError

logger = logging.getLogger(__name__)

# Decimal digits added on top of the digits needed to resolve the width
SAFETY_DIGITS = 20
MIN_DECIMAL_PLACES = 30

# Maps a region width to the mpmath context used for reference orbits
PrecisionPolicy = Callable[[float], MPContext]

Number = Union[str, int, float]


def decimal_places_for_width(width: float) -> int:
    """
    Number of decimal digits needed to iterate a reference point at a given width.

    Args:
        width: Region width in model coordinates

    Returns:
        Decimal places for arbitrary-precision arithmetic
    """
    if width <= 0 or not math.isfinite(width):
        raise ValueError(f"width must be positive and finite, got {width}")

    digits_needed = max(0, math.ceil(-math.log10(width)))
    return max(MIN_DECIMAL_PLACES, digits_needed + SAFETY_DIGITS)


def context_from_width(width: float) -> MPContext:
    """
    Default precision policy: a private mpmath context sized for ``width``.

    A fresh context is returned so that the global ``mpmath.mp`` settings are
    never modified.
    """
    ctx = MPContext()
    ctx.dps = decimal_places_for_width(width)
    logger.debug(f"Precision context for width {width:g}: {ctx.dps} decimal places")
    return ctx


def to_mpf(ctx: MPContext, value):
    """
    Convert a coordinate into ``ctx`` without passing through a lower precision.

    Floats (and values already in ``ctx``) convert exactly; anything else is
    parsed from its decimal text.
    """
    if isinstance(value, (float, ctx.mpf)):
        return ctx.mpf(value)
    return ctx.mpf(str(value))


def format_coordinate(value: Number, digits: int = 20) -> str:
    """Format a centre coordinate for display without widening it past ``digits``."""
    ctx = MPContext()
    ctx.dps = max(digits, 15)
    return ctx.nstr(ctx.mpf(str(value)), n=digits)


class HighPrecisionIterator:
    """Direct arbitrary-precision escape-time iteration of single points.

    Far too slow for whole images, but free of the approximations made by
    the float64 engines, so it is used to validate them.
    """

    def __init__(self, max_iterations: int, context: Optional[MPContext] = None):
        """
        Initialize high-precision iterator.

        Args:
            max_iterations: Iteration cap
            context: mpmath context to iterate in (defaults to 50 digits)
        """
        if max_iterations <= 0:
            raise InvalidRequestError("max_iterations must be positive")

        if context is None:
            context = MPContext()
            context.dps = 50

        self.max_iterations = max_iterations
        self.ctx = context
        self.escape_radius_sq = self.ctx.mpf(4)

    def escape_time(self, cx: Number, cy: Number) -> int:
        """
        Compute the escape time of a single point.

        Args:
            cx, cy: Point coordinates; strings keep their full precision

        Returns:
            Iteration count, or -1 if the point did not escape
        """
        ctx = self.ctx
        cx = to_mpf(ctx, cx)
        cy = to_mpf(ctx, cy)

        n = 0
        x_sq = ctx.zero
        y_sq = ctx.zero
        xy = ctx.zero
        while n < self.max_iterations and x_sq + y_sq < self.escape_radius_sq:
            n += 1
            x = x_sq - y_sq + cx
            y = 2 * xy + cy
            x_sq = x * x
            y_sq = y * y
            xy = x * y

        if x_sq + y_sq < self.escape_radius_sq:
            return -1
        return n

    def escape_time_grid(self, center_x: str, center_y: str,
                         dcx: np.ndarray, dcy: np.ndarray) -> np.ndarray:
        """
        Compute escape times for float64 offsets around a high-precision centre.

        Offsets are converted to mpmath exactly, so each point is the same
        one a perturbation engine would iterate.

        Args:
            center_x, center_y: Centre coordinates as decimal strings
            dcx: Column offsets, shape (nx,)
            dcy: Row offsets, shape (ny,)

        Returns:
            int64 array of shape (ny, nx)
        """
        ctx = self.ctx
        base_x = to_mpf(ctx, center_x)
        base_y = to_mpf(ctx, center_y)
        out = np.empty((len(dcy), len(dcx)), dtype=np.int64)

        logger.info(f"Starting high-precision escape-time grid: {len(dcx)}x{len(dcy)}")
        for row, oy in enumerate(dcy):
            for col, ox in enumerate(dcx):
                out[row, col] = self.escape_time(base_x + ctx.mpf(float(ox)),
                                                 base_y + ctx.mpf(float(oy)))
        return out
