"""
Core mathematical functions for escape-time iteration.

This module defines the sampled region of the complex plane and the basic
double-precision escape-time engine used for shallow zooms, together with
the grid-filling loop shared by every per-pixel engine.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union
import logging

from mpmath.ctx_mp import MPContext

from .errors import ComputationCancelled, InvalidRequestError

logger = logging.getLogger(__name__)

# Value stored for points that did not escape before the iteration cap
DID_NOT_ESCAPE = -1

# Squared escape radius for sample points
ESCAPE_RADIUS_SQ = 4.0

ProgressCallback = Callable[[float], None]


def normalize_coordinate(value: Union[str, int, float]) -> str:
    """
    Convert a centre coordinate to exact decimal text.

    Strings keep every digit the caller supplied; floats use their shortest
    round-tripping representation.

    Raises:
        InvalidRequestError: If the value is not a finite number
    """
    if isinstance(value, float):
        text = repr(float(value))
    else:
        text = str(value).strip()

    # Must parse both as a double and in arbitrary precision; mpmath alone
    # also accepts forms such as '1/3' and '0x10'
    parser = MPContext()
    try:
        approximate = float(text)
        parsed = parser.mpf(text)
    except (ValueError, TypeError) as e:
        raise InvalidRequestError(f"Invalid centre coordinate {value!r}: {e}") from e
    if not parser.isfinite(parsed) or not math.isfinite(approximate):
        raise InvalidRequestError(f"Centre coordinate must be finite, got {value!r}")
    return text


@dataclass(frozen=True)
class Region:
    """Rectangular region of the complex plane around a high-precision centre.

    Attributes:
        center_x, center_y: Centre coordinates as exact decimal strings
        width, height: Extent of the region in model coordinates
    """

    center_x: str
    center_y: str
    width: float
    height: float

    def __post_init__(self):
        object.__setattr__(self, 'center_x', normalize_coordinate(self.center_x))
        object.__setattr__(self, 'center_y', normalize_coordinate(self.center_y))
        object.__setattr__(self, 'width', float(self.width))
        object.__setattr__(self, 'height', float(self.height))
        self.validate()

    def validate(self) -> None:
        for name in ('width', 'height'):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidRequestError(f"{name} must be positive and finite, got {value}")

    def center_float(self) -> Tuple[float, float]:
        """Centre rounded to double precision."""
        return float(self.center_x), float(self.center_y)

    def column_offsets(self, num_samples_x: int) -> np.ndarray:
        """Real-axis offsets from the centre, sampled at pixel centres."""
        return -self.width / 2 + (np.arange(num_samples_x) + 0.5) * self.width / num_samples_x

    def row_offsets(self, num_samples_y: int) -> np.ndarray:
        """Imaginary-axis offsets from the centre; row 0 is the top edge."""
        return self.height / 2 - (np.arange(num_samples_y) + 0.5) * self.height / num_samples_y

    def column_coordinates(self, num_samples_x: int) -> np.ndarray:
        """Absolute real coordinates of each column, in double precision."""
        cx, _ = self.center_float()
        return (cx - self.width / 2) + (np.arange(num_samples_x) + 0.5) * self.width / num_samples_x

    def row_coordinates(self, num_samples_y: int) -> np.ndarray:
        """Absolute imaginary coordinates of each row, in double precision."""
        _, cy = self.center_float()
        return (cy + self.height / 2) - (np.arange(num_samples_y) + 0.5) * self.height / num_samples_y


@dataclass(frozen=True)
class SampleGrid:
    """Number of sample points along each axis of a region."""

    num_samples_x: int
    num_samples_y: int

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        for name in ('num_samples_x', 'num_samples_y'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise InvalidRequestError(f"{name} must be a positive integer, got {value!r}")

    @property
    def shape(self) -> Tuple[int, int]:
        """Shape of the escape-time grid: (rows, columns)."""
        return (int(self.num_samples_y), int(self.num_samples_x))


def fill_escape_grid(xs: List[float], ys: List[float],
                     point_escape_time: Callable[[float, float], int],
                     cancel_event=None,
                     progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
    """
    Evaluate a per-point escape-time function over a grid.

    Args:
        xs: Per-column real inputs
        ys: Per-row imaginary inputs
        point_escape_time: Function mapping (x, y) to an escape time
        cancel_event: Optional object with ``is_set()``, checked between cells
        progress_callback: Optional callable receiving the completed fraction per row

    Returns:
        int64 array of shape (len(ys), len(xs))

    Raises:
        ComputationCancelled: If ``cancel_event`` becomes set
    """
    height = len(ys)
    out = np.empty((height, len(xs)), dtype=np.int64)

    for row, y in enumerate(ys):
        if row % 100 == 0:
            logger.debug(f"Processing row {row}/{height}")

        for col, x in enumerate(xs):
            if cancel_event is not None and cancel_event.is_set():
                raise ComputationCancelled(f"Cancelled at row {row}, column {col}")
            out[row, col] = point_escape_time(x, y)

        if progress_callback is not None:
            progress_callback((row + 1) / height)

    return out


class BasicEscapeEngine:
    """Per-pixel escape time using plain double-precision iteration."""

    def __init__(self, max_iterations: int):
        """
        Initialize the engine.

        Args:
            max_iterations: Iteration cap
        """
        if max_iterations <= 0:
            raise InvalidRequestError("max_iterations must be positive")
        self.max_iterations = max_iterations

    def escape_time(self, cx: float, cy: float) -> int:
        """
        Iterate z <- z^2 + c from z = 0 for a single point.

        Returns:
            Iteration at which |z|^2 reached the escape radius, or DID_NOT_ESCAPE
        """
        max_iterations = self.max_iterations
        n = 0
        x_sq = 0.0
        y_sq = 0.0
        xy = 0.0
        while n < max_iterations and x_sq + y_sq < ESCAPE_RADIUS_SQ:
            n += 1
            x = x_sq - y_sq + cx
            y = 2 * xy + cy
            x_sq = x * x
            y_sq = y * y
            xy = x * y

        if x_sq + y_sq < ESCAPE_RADIUS_SQ:
            return DID_NOT_ESCAPE
        return n

    def compute(self, region: Region, grid: SampleGrid, cancel_event=None,
                progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Compute the escape-time grid for a region.

        Args:
            region: Region to sample
            grid: Number of sample points along each axis
            cancel_event: Optional cancellation flag checked between cells
            progress_callback: Optional per-row progress callback

        Returns:
            int64 array of shape (num_samples_y, num_samples_x)
        """
        logger.info(f"Starting basic escape-time computation: "
                    f"{grid.num_samples_x}x{grid.num_samples_y}, max_iterations={self.max_iterations}")

        xs = region.column_coordinates(grid.num_samples_x).tolist()
        ys = region.row_coordinates(grid.num_samples_y).tolist()
        out = fill_escape_grid(xs, ys, self.escape_time, cancel_event, progress_callback)

        logger.info("Basic escape-time computation complete")
        return out
