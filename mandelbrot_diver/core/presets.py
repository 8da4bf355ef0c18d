"""
Named zoom locations.

A preset fixes the region centre, width and iteration cap; the sample grid
is still chosen by the caller.
"""

from dataclasses import dataclass
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoomPreset:
    """A zoom location meant for use as a preset."""

    name: str
    center_x: str
    center_y: str
    width: float
    max_iterations: int
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to request keyword arguments."""
        return {
            'center_x': self.center_x,
            'center_y': self.center_y,
            'width': self.width,
            'max_iterations': self.max_iterations,
        }


ZOOM_PRESETS: Dict[str, ZoomPreset] = {
    preset.name: preset for preset in (
        ZoomPreset('full_set', '-0.75', '0', 3.5, 1000,
                   "The whole Mandelbrot set"),
        ZoomPreset('seahorse_valley', '-0.743643887037151', '0.131825904205330', 0.005, 2000,
                   "Seahorse valley between the cardioid and the period-2 bulb"),
        ZoomPreset('seahorse_deep',
                   '-0.743643887037158704752191506114774',
                   '0.131825904205311970493132056385139',
                   1e-20, 10000,
                   "Deep zoom into seahorse valley; needs the perturbation engine"),
        ZoomPreset('elephant_valley', '0.285', '0.01', 0.02, 1000,
                   "Elephant valley on the right of the main cardioid"),
        ZoomPreset('cardioid_cusp', '0.25', '0', 1e-4, 2000,
                   "Parabolic cusp of the main cardioid"),
        ZoomPreset('period2_bulb', '-1', '0', 1e-10, 1000,
                   "Deep inside the period-2 bulb"),
    )
}


def get_preset(name: str) -> ZoomPreset:
    """
    Look up a zoom preset by name.

    Raises:
        ValueError: If no preset has that name
    """
    preset = ZOOM_PRESETS.get(name.lower())
    if preset is None:
        available = ', '.join(ZOOM_PRESETS)
        raise ValueError(f"Unknown zoom preset '{name}'. Available: {available}")
    return preset
