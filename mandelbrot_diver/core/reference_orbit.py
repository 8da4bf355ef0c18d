"""
Reference orbit computation for deep zoom rendering.

The reference orbit Z_n of the region centre is computed with mpmath at
whatever precision the centre needs, then stored as float64 so the
perturbation engine can reuse it cheaply for every pixel.
"""

from typing import Optional, Tuple
import logging

from .math_functions import Region
from .errors import InvalidRequestError
from .orbit_buffer import OrbitCursor, SequentialOrbitBuffer
from .precision import PrecisionPolicy, context_from_width, to_mpf

logger = logging.getLogger(__name__)

# Squared escape radius for the reference point. Larger than the sample
# radius so the orbit extends past the iteration where nearby pixels escape.
REF_ESCAPE_RADIUS_SQ = 16


class ReferenceOrbit:
    """Float64 orbit of a single point, one entry per iteration starting at 0+0i.

    Immutable once constructed: both buffers are frozen and readers obtain
    their own cursors through ``cursors()``.
    """

    def __init__(self, x_values: SequentialOrbitBuffer, y_values: SequentialOrbitBuffer,
                 escaped: bool = False):
        """
        Wrap completed orbit buffers.

        Args:
            x_values: Real parts of Z_n
            y_values: Imaginary parts of Z_n
            escaped: Whether the reference point exceeded the reference escape radius
        """
        if len(x_values) != len(y_values):
            raise ValueError(
                f"Orbit components differ in length: {len(x_values)} != {len(y_values)}"
            )
        x_values.freeze()
        y_values.freeze()
        self.x_values = x_values
        self.y_values = y_values
        self.escaped = escaped

    def __len__(self) -> int:
        return len(self.x_values)

    def cursors(self) -> Tuple[OrbitCursor, OrbitCursor]:
        """Fresh (real, imaginary) cursors positioned at iteration 0."""
        return self.x_values.cursor(), self.y_values.cursor()


class ReferenceOrbitComputer:
    """Iterates one point at arbitrary precision to produce a ReferenceOrbit."""

    def __init__(self, max_iterations: int, precision_policy: Optional[PrecisionPolicy] = None):
        """
        Initialize the computer.

        Args:
            max_iterations: Iteration cap; bounds the orbit length
            precision_policy: Maps region width to an mpmath context
        """
        if max_iterations <= 0:
            raise InvalidRequestError("max_iterations must be positive")
        self.max_iterations = max_iterations
        self.precision_policy = precision_policy or context_from_width

    def compute(self, region: Region) -> ReferenceOrbit:
        """
        Compute the orbit of the region centre.

        Each buffer entry n holds Z_n, recorded before the update, so entry 0
        is always 0+0i. Iteration stops at the cap or once |Z|^2 >= 16.

        Args:
            region: Region whose centre anchors the orbit

        Returns:
            ReferenceOrbit with at most ``max_iterations`` entries
        """
        ctx = self.precision_policy(region.width)
        cx = to_mpf(ctx, region.center_x)
        cy = to_mpf(ctx, region.center_y)
        limit = ctx.mpf(REF_ESCAPE_RADIUS_SQ)

        logger.info(f"Computing reference orbit at {ctx.dps} decimal places, "
                    f"max_iterations={self.max_iterations}")

        x_values = SequentialOrbitBuffer.for_iterations(self.max_iterations)
        y_values = SequentialOrbitBuffer.for_iterations(self.max_iterations)

        x = ctx.zero
        y = ctx.zero
        x_sq = ctx.zero
        y_sq = ctx.zero
        xy = ctx.zero
        n = 0
        while n < self.max_iterations and x_sq + y_sq < limit:
            x_values.add(float(x))
            y_values.add(float(y))
            n += 1
            x = x_sq - y_sq + cx
            y = 2 * xy + cy
            x_sq = x * x
            y_sq = y * y
            xy = x * y

        escaped = x_sq + y_sq >= limit
        logger.info(f"Reference orbit complete: length={n}, escaped={escaped}")
        return ReferenceOrbit(x_values, y_values, escaped=bool(escaped))
