"""
Numba JIT compilation backend for high-performance escape-time computation.

This module provides JIT-compiled versions of the basic and perturbation
escape-time loops. The kernels perform exactly the same float64 operations
in the same order as the pure-Python engines, so both produce identical
grids; the accelerated versions just run whole rows at once.
"""

import numpy as np
from typing import Optional
import logging

from ..core.errors import ComputationCancelled
from ..core.math_functions import DID_NOT_ESCAPE, ESCAPE_RADIUS_SQ, ProgressCallback, Region, SampleGrid
from ..core.reference_orbit import ReferenceOrbit

logger = logging.getLogger(__name__)

# Check for Numba availability
try:
    import numba
    NUMBA_AVAILABLE = True
except ImportError:
    NUMBA_AVAILABLE = False
    logger.info("Numba not available - JIT acceleration disabled")


def basic_kernel(xs, ys, max_iterations):
    """
    Basic escape-time kernel over a block of points.

    Args:
        xs: Real coordinates of each column
        ys: Imaginary coordinates of each row
        max_iterations: Iteration cap

    Returns:
        int64 array of shape (len(ys), len(xs))
    """
    out = np.empty((ys.shape[0], xs.shape[0]), dtype=np.int64)

    for row in range(ys.shape[0]):
        cy = ys[row]
        for col in range(xs.shape[0]):
            cx = xs[col]

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
                out[row, col] = DID_NOT_ESCAPE
            else:
                out[row, col] = n

    return out


def perturbation_kernel(dcxs, dcys, x_orbit, y_orbit, max_iterations):
    """
    Perturbation escape-time kernel with rebasing over a block of offsets.

    Args:
        dcxs: Real offsets of each column from the reference point
        dcys: Imaginary offsets of each row from the reference point
        x_orbit, y_orbit: Contiguous reference orbit, at least two entries
        max_iterations: Iteration cap

    Returns:
        int64 array of shape (len(dcys), len(dcxs))
    """
    length = x_orbit.shape[0]
    out = np.empty((dcys.shape[0], dcxs.shape[0]), dtype=np.int64)

    for row in range(dcys.shape[0]):
        dcy = dcys[row]
        for col in range(dcxs.shape[0]):
            dcx = dcxs[col]

            n = 0
            dx = 0.0
            dy = 0.0
            x_ref = x_orbit[0]
            y_ref = y_orbit[0]
            position = 1
            x = 0.0
            y = 0.0
            dx_sq = 0.0
            dy_sq = 0.0
            z_mod_sq = 0.0

            while n < max_iterations and z_mod_sq < ESCAPE_RADIUS_SQ:
                n += 1

                if z_mod_sq < dx_sq + dy_sq or position >= length:
                    dx = x
                    dy = y
                    dx_sq = dx * dx
                    dy_sq = dy * dy
                    x_ref = x_orbit[0]
                    y_ref = y_orbit[0]
                    position = 1

                dx_old = dx
                dx = 2 * (dx * x_ref - dy * y_ref) + dx_sq - dy_sq + dcx
                dy = 2 * (dx_old * y_ref + dy * x_ref + dx_old * dy) + dcy

                x_ref = x_orbit[position]
                y_ref = y_orbit[position]
                position += 1

                x = x_ref + dx
                y = y_ref + dy

                z_mod_sq = x * x + y * y
                dx_sq = dx * dx
                dy_sq = dy * dy

            if z_mod_sq < ESCAPE_RADIUS_SQ:
                out[row, col] = DID_NOT_ESCAPE
            else:
                out[row, col] = n

    return out


class NumbaAccelerator:
    """Numba-accelerated escape-time backend."""

    def __init__(self):
        """Initialize Numba accelerator and compile the kernels."""
        self.available = NUMBA_AVAILABLE
        if not self.available:
            logger.warning("Numba not available - acceleration disabled")
            return

        self._basic = numba.njit(cache=True)(basic_kernel)
        self._perturbation = numba.njit(cache=True)(perturbation_kernel)
        logger.info(f"Numba acceleration enabled: {numba.__version__}")

    def basic_escape_time(self, region: Region, grid: SampleGrid, max_iterations: int,
                          cancel_event=None,
                          progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Accelerated basic escape-time grid.

        Returns:
            int64 array of shape (num_samples_y, num_samples_x)
        """
        if not self.available:
            raise RuntimeError("Numba not available")

        xs = region.column_coordinates(grid.num_samples_x)
        ys = region.row_coordinates(grid.num_samples_y)
        return self._run_rows(self._basic, xs, ys, (max_iterations,), cancel_event, progress_callback)

    def perturbation_escape_time(self, region: Region, grid: SampleGrid, orbit: ReferenceOrbit,
                                 max_iterations: int, cancel_event=None,
                                 progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Accelerated perturbation escape-time grid.

        Returns:
            int64 array of shape (num_samples_y, num_samples_x)
        """
        if not self.available:
            raise RuntimeError("Numba not available")
        if len(orbit) < 2:
            raise ValueError(f"Reference orbit too short for perturbation: {len(orbit)} entries")

        dcxs = region.column_offsets(grid.num_samples_x)
        dcys = region.row_offsets(grid.num_samples_y)
        extra = (orbit.x_values.to_array(), orbit.y_values.to_array(), max_iterations)
        return self._run_rows(self._perturbation, dcxs, dcys, extra, cancel_event, progress_callback)

    @staticmethod
    def _run_rows(kernel, xs: np.ndarray, ys: np.ndarray, extra: tuple,
                  cancel_event, progress_callback) -> np.ndarray:
        """Run a kernel one row at a time so cancellation and progress stay responsive."""
        height = ys.shape[0]
        out = np.empty((height, xs.shape[0]), dtype=np.int64)

        for row in range(height):
            if cancel_event is not None and cancel_event.is_set():
                raise ComputationCancelled(f"Cancelled at row {row}")
            out[row:row + 1] = kernel(xs, ys[row:row + 1], *extra)
            if progress_callback is not None:
                progress_callback((row + 1) / height)

        return out


# Global accelerator instance
_numba_accelerator = None


def get_numba_accelerator() -> NumbaAccelerator:
    """Get the global Numba accelerator instance."""
    global _numba_accelerator
    if _numba_accelerator is None:
        _numba_accelerator = NumbaAccelerator()
    return _numba_accelerator


def is_numba_available() -> bool:
    """Check if Numba acceleration is available."""
    return NUMBA_AVAILABLE
