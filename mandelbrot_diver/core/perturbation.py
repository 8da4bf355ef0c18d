"""
Perturbation escape-time engine with Zhuoran's rebasing.

Each pixel c = C + dc is iterated as a float64 delta dz_n = z_n - Z_n from
the reference orbit Z_n of the region centre:

    dz_{n+1} = 2 * Z_n * dz_n + dz_n^2 + dc

Because dc and dz are small, float64 suffices even when C itself needs far
more digits. Whenever the true orbit z = Z + dz becomes smaller than the
delta, or the reference orbit runs out, the delta is rebased onto the start
of the reference orbit (dz := z), which avoids the glitches a single fixed
reference would otherwise produce.

See https://fractalforums.org/fractal-mathematics-and-new-theories/28/another-solution-to-perturbation-glitches/4360
"""

import numpy as np
from typing import Optional
import logging

from .errors import InvalidRequestError
from .math_functions import (
    DID_NOT_ESCAPE, ESCAPE_RADIUS_SQ, ProgressCallback, Region, SampleGrid, fill_escape_grid,
)
from .reference_orbit import ReferenceOrbit

logger = logging.getLogger(__name__)


class PerturbationEscapeEngine:
    """Per-pixel escape time by delta iteration against a reference orbit."""

    def __init__(self, orbit: ReferenceOrbit, max_iterations: int):
        """
        Initialize the engine.

        Args:
            orbit: Reference orbit anchored at the region centre; needs at least two entries
            max_iterations: Iteration cap
        """
        if max_iterations <= 0:
            raise InvalidRequestError("max_iterations must be positive")
        if len(orbit) < 2:
            raise ValueError(f"Reference orbit too short for perturbation: {len(orbit)} entries")
        self.orbit = orbit
        self.max_iterations = max_iterations

    def escape_time(self, dcx: float, dcy: float) -> int:
        """
        Escape time of the point at offset (dcx, dcy) from the reference point.

        Returns:
            Iteration at which |z|^2 reached the escape radius, or DID_NOT_ESCAPE
        """
        x_refs, y_refs = self.orbit.cursors()
        max_iterations = self.max_iterations

        n = 0
        dx = 0.0
        dy = 0.0
        x_ref = x_refs.next()
        y_ref = y_refs.next()
        x = 0.0
        y = 0.0
        dx_sq = 0.0
        dy_sq = 0.0
        z_mod_sq = 0.0

        while n < max_iterations and z_mod_sq < ESCAPE_RADIUS_SQ:
            n += 1

            # Rebase onto the start of the orbit, keeping the true value z
            if z_mod_sq < dx_sq + dy_sq or not x_refs.has_next():
                x_refs.reset()
                y_refs.reset()
                dx = x
                dy = y
                dx_sq = dx * dx
                dy_sq = dy * dy
                x_ref = x_refs.next()
                y_ref = y_refs.next()

            dx_old = dx
            dx = 2 * (dx * x_ref - dy * y_ref) + dx_sq - dy_sq + dcx
            dy = 2 * (dx_old * y_ref + dy * x_ref + dx_old * dy) + dcy

            x_ref = x_refs.next()
            y_ref = y_refs.next()

            x = x_ref + dx
            y = y_ref + dy

            z_mod_sq = x * x + y * y
            dx_sq = dx * dx
            dy_sq = dy * dy

        if z_mod_sq < ESCAPE_RADIUS_SQ:
            return DID_NOT_ESCAPE
        return n

    def compute(self, region: Region, grid: SampleGrid, cancel_event=None,
                progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Compute the escape-time grid for a region centred on the reference point.

        Args:
            region: Region whose centre anchored the reference orbit
            grid: Number of sample points along each axis
            cancel_event: Optional cancellation flag checked between cells
            progress_callback: Optional per-row progress callback

        Returns:
            int64 array of shape (num_samples_y, num_samples_x)
        """
        logger.info(f"Starting perturbation escape-time computation: "
                    f"{grid.num_samples_x}x{grid.num_samples_y}, max_iterations={self.max_iterations}, "
                    f"reference length={len(self.orbit)}")

        dcx = region.column_offsets(grid.num_samples_x).tolist()
        dcy = region.row_offsets(grid.num_samples_y).tolist()
        out = fill_escape_grid(dcx, dcy, self.escape_time, cancel_event, progress_callback)

        logger.info("Perturbation escape-time computation complete")
        return out
