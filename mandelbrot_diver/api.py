"""
Main API classes for escape-time computation.

This module provides the high-level interface: a validated request
describing the region, sample grid and iteration cap, and the model that
selects between the basic and perturbation engines to fulfil it.
"""

import math
import numpy as np
from typing import Optional, Dict, Any
from dataclasses import dataclass, asdict
import logging
import time

from .core.errors import InvalidRequestError
from .core.math_functions import BasicEscapeEngine, ProgressCallback, Region, SampleGrid, normalize_coordinate
from .core.perturbation import PerturbationEscapeEngine
from .core.precision import PrecisionPolicy, context_from_width
from .core.presets import get_preset
from .core.reference_orbit import REF_ESCAPE_RADIUS_SQ, ReferenceOrbit, ReferenceOrbitComputer
from .acceleration.numba_backend import get_numba_accelerator, is_numba_available

logger = logging.getLogger(__name__)

# Regions wider than this are computed directly in double precision
BASIC_METHOD_CUTOFF = 0.01

METHOD_AUTO = 'auto'
METHOD_BASIC = 'basic'
METHOD_PERTURBATION = 'perturbation'
METHODS = (METHOD_AUTO, METHOD_BASIC, METHOD_PERTURBATION)


@dataclass
class EscapeTimeRequest:
    """Configuration for one escape-time computation."""

    # Region
    center_x: str = '-0.75'
    center_y: str = '0'
    width: float = 3.5

    # Sample grid
    num_samples_x: int = 640
    num_samples_y: int = 480

    # Iteration
    max_iterations: int = 1000

    # Engine selection
    method: str = METHOD_AUTO
    use_numba: bool = False

    @property
    def height(self) -> float:
        """Region height, keeping sample points square."""
        return self.width * self.num_samples_y / self.num_samples_x

    def validate(self):
        """Validate configuration parameters."""
        normalize_coordinate(self.center_x)
        normalize_coordinate(self.center_y)

        if isinstance(self.width, bool) or not isinstance(self.width, (int, float)):
            raise InvalidRequestError(f"width must be a number, got {self.width!r}")
        if not math.isfinite(self.width) or self.width <= 0:
            raise InvalidRequestError(f"width must be positive and finite, got {self.width}")

        SampleGrid(self.num_samples_x, self.num_samples_y)

        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, (int, np.integer)):
            raise InvalidRequestError(f"max_iterations must be an integer, got {self.max_iterations!r}")
        if self.max_iterations <= 0:
            raise InvalidRequestError("max_iterations must be positive")

        if self.method not in METHODS:
            raise InvalidRequestError(f"method must be one of {', '.join(METHODS)}, got {self.method!r}")

    def region(self) -> Region:
        return Region(self.center_x, self.center_y, self.width, self.height)

    def sample_grid(self) -> SampleGrid:
        return SampleGrid(self.num_samples_x, self.num_samples_y)

    def to_dict(self) -> Dict[str, Any]:
        """Convert request to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EscapeTimeRequest':
        """Create request from dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_preset(cls, name: str, num_samples_x: int, num_samples_y: int,
                    **overrides) -> 'EscapeTimeRequest':
        """Create a request for a named zoom preset."""
        params = get_preset(name).to_dict()
        params.update(overrides)
        return cls(num_samples_x=num_samples_x, num_samples_y=num_samples_y, **params)

    @classmethod
    def from_image(cls, image_width: int, image_height: int, samples_per_pixel: float = 1.0,
                   **kwargs) -> 'EscapeTimeRequest':
        """
        Create a request sized for an image.

        The number of sample points along each axis is
        ``round(sqrt(samples_per_pixel) * image_dimension)``.

        Args:
            image_width, image_height: Output image size in pixels
            samples_per_pixel: Average number of sample points per pixel
            **kwargs: Remaining request fields
        """
        if image_width <= 0 or image_height <= 0:
            raise InvalidRequestError("Image width and height must be positive")
        if samples_per_pixel <= 0:
            raise InvalidRequestError("samples_per_pixel must be positive")

        scale = math.sqrt(samples_per_pixel)
        return cls(num_samples_x=int(round(scale * image_width)),
                   num_samples_y=int(round(scale * image_height)),
                   **kwargs)


@dataclass
class EscapeTimeResult:
    """Escape-time grid together with how it was computed."""

    grid: np.ndarray
    method: str
    reference_orbit_length: Optional[int]
    elapsed_seconds: float


class MandelbrotModel:
    """Generates escape-time data for the Mandelbrot set."""

    def __init__(self, request: EscapeTimeRequest,
                 precision_policy: Optional[PrecisionPolicy] = None):
        """
        Initialize the model.

        Args:
            request: Validated and captured on construction; later changes to it are ignored
            precision_policy: Maps region width to an mpmath context for reference orbits
        """
        request.validate()
        self.request = request
        self.region = request.region()
        self.grid = request.sample_grid()
        self.max_iterations = int(request.max_iterations)
        self.method = request.method
        self.precision_policy = precision_policy or context_from_width

        self.accelerator = None
        if request.use_numba:
            if is_numba_available():
                self.accelerator = get_numba_accelerator()
            else:
                logger.warning("Numba requested but not available, using pure Python engines")

    def select_method(self) -> str:
        """
        Choose the escape-time method for this request.

        Returns:
            METHOD_BASIC or METHOD_PERTURBATION
        """
        if self.method != METHOD_AUTO:
            return self.method

        if self.region.width > BASIC_METHOD_CUTOFF:
            return METHOD_BASIC

        # A reference orbit anchored outside the reference radius is degenerate
        x, y = self.region.center_float()
        if x * x + y * y > REF_ESCAPE_RADIUS_SQ:
            return METHOD_BASIC

        return METHOD_PERTURBATION

    def escape_time(self, cancel_event=None,
                    progress_callback: Optional[ProgressCallback] = None) -> np.ndarray:
        """
        Compute the escape-time grid.

        Returns:
            int64 array of shape (num_samples_y, num_samples_x) holding the
            escape iteration of each sample point, or DID_NOT_ESCAPE
        """
        return self.run(cancel_event, progress_callback).grid

    def run(self, cancel_event=None,
            progress_callback: Optional[ProgressCallback] = None) -> EscapeTimeResult:
        """
        Compute the escape-time grid and report the method used.

        Args:
            cancel_event: Optional object with ``is_set()``, checked between cells
            progress_callback: Optional callable receiving the completed fraction

        Returns:
            EscapeTimeResult
        """
        start_time = time.time()
        method = self.select_method()
        orbit = None

        if method == METHOD_PERTURBATION:
            orbit = ReferenceOrbitComputer(self.max_iterations, self.precision_policy).compute(self.region)
            if len(orbit) < 2:
                logger.warning(f"Reference orbit has {len(orbit)} entries, falling back to basic method")
                method = METHOD_BASIC

        logger.info(f"Computing {self.grid.num_samples_x}x{self.grid.num_samples_y} escape times "
                    f"with {method} method, width={self.region.width:g}")

        if method == METHOD_PERTURBATION:
            grid = self._perturbation(orbit, cancel_event, progress_callback)
        else:
            grid = self._basic(cancel_event, progress_callback)

        elapsed = time.time() - start_time
        logger.info(f"Escape-time computation complete: {elapsed:.2f}s")

        return EscapeTimeResult(
            grid=grid,
            method=method,
            reference_orbit_length=len(orbit) if orbit is not None else None,
            elapsed_seconds=elapsed,
        )

    def _basic(self, cancel_event, progress_callback) -> np.ndarray:
        max_iterations = self.max_iterations
        if self.accelerator is not None:
            return self.accelerator.basic_escape_time(self.region, self.grid, max_iterations,
                                                      cancel_event, progress_callback)
        engine = BasicEscapeEngine(max_iterations)
        return engine.compute(self.region, self.grid, cancel_event, progress_callback)

    def _perturbation(self, orbit: ReferenceOrbit, cancel_event, progress_callback) -> np.ndarray:
        max_iterations = self.max_iterations
        if self.accelerator is not None:
            return self.accelerator.perturbation_escape_time(self.region, self.grid, orbit, max_iterations,
                                                             cancel_event, progress_callback)
        engine = PerturbationEscapeEngine(orbit, max_iterations)
        return engine.compute(self.region, self.grid, cancel_event, progress_callback)


def escape_time(request: EscapeTimeRequest,
                precision_policy: Optional[PrecisionPolicy] = None) -> np.ndarray:
    """Convenience wrapper: compute the escape-time grid for a request."""
    return MandelbrotModel(request, precision_policy).escape_time()
