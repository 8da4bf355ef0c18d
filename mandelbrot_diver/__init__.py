"""
Escape-time engine for deep Mandelbrot set zooms.

This library computes, for every sample point of a region of the complex
plane, how many iterations of z <- z^2 + c it takes to escape. Shallow
regions are iterated directly in double precision; deep zooms use a single
arbitrary-precision reference orbit and per-pixel float64 perturbation with
rebasing.

Key Features:
- Double-precision basic engine for shallow zooms
- mpmath reference orbits with perturbation and rebasing for deep zooms
- Segmented append-only orbit storage with independent cursors
- Optional Numba JIT acceleration with identical results
- Named zoom presets and a command-line interface

Example usage:
    >>> from mandelbrot_diver import EscapeTimeRequest, MandelbrotModel
    >>> request = EscapeTimeRequest(center_x='-1', center_y='0', width=1e-10,
    ...                             num_samples_x=4, num_samples_y=4, max_iterations=1000)
    >>> grid = MandelbrotModel(request).escape_time()
"""

__version__ = "1.0.0"

from mandelbrot_diver.core.errors import (
    ComputationCancelled, InvalidRequestError, OrbitBufferFrozenError, SequenceExhaustedError,
)
from mandelbrot_diver.core.math_functions import DID_NOT_ESCAPE, BasicEscapeEngine, Region, SampleGrid
from mandelbrot_diver.core.orbit_buffer import OrbitCursor, SequentialOrbitBuffer
from mandelbrot_diver.core.perturbation import PerturbationEscapeEngine
from mandelbrot_diver.core.precision import HighPrecisionIterator, context_from_width
from mandelbrot_diver.core.presets import ZOOM_PRESETS, ZoomPreset
from mandelbrot_diver.core.reference_orbit import ReferenceOrbit, ReferenceOrbitComputer

# Main API classes
from mandelbrot_diver.api import EscapeTimeRequest, EscapeTimeResult, MandelbrotModel, escape_time

__all__ = [
    "MandelbrotModel",
    "EscapeTimeRequest",
    "EscapeTimeResult",
    "escape_time",
    "DID_NOT_ESCAPE",
    "Region",
    "SampleGrid",
    "BasicEscapeEngine",
    "PerturbationEscapeEngine",
    "ReferenceOrbit",
    "ReferenceOrbitComputer",
    "SequentialOrbitBuffer",
    "OrbitCursor",
    "HighPrecisionIterator",
    "context_from_width",
    "ZoomPreset",
    "ZOOM_PRESETS",
    "InvalidRequestError",
    "SequenceExhaustedError",
    "OrbitBufferFrozenError",
    "ComputationCancelled",
]
