import numpy as np
import pytest

pytest.importorskip("numba")

from mandelbrot_diver.acceleration.numba_backend import get_numba_accelerator
from mandelbrot_diver.api import EscapeTimeRequest, MandelbrotModel
from mandelbrot_diver.core.math_functions import BasicEscapeEngine, Region, SampleGrid
from mandelbrot_diver.core.perturbation import PerturbationEscapeEngine
from mandelbrot_diver.core.reference_orbit import ReferenceOrbitComputer


def test_basic_kernel_matches_python_engine():
    region = Region('-0.5', '0', 3.0, 2.0)
    sample_grid = SampleGrid(15, 10)
    expected = BasicEscapeEngine(100).compute(region, sample_grid)
    actual = get_numba_accelerator().basic_escape_time(region, sample_grid, 100)
    np.testing.assert_array_equal(actual, expected)


@pytest.mark.parametrize("center,width,cap", [
    (('-1', '0'), 1e-3, 200),
    (('0.26', '0'), 1e-9, 200),
    (('-0.75', '0.1'), 1e-3, 300),
])
def test_perturbation_kernel_matches_python_engine(center, width, cap):
    region = Region(center[0], center[1], width, width)
    sample_grid = SampleGrid(6, 6)
    orbit = ReferenceOrbitComputer(cap).compute(region)

    expected = PerturbationEscapeEngine(orbit, cap).compute(region, sample_grid)
    actual = get_numba_accelerator().perturbation_escape_time(region, sample_grid, orbit, cap)
    np.testing.assert_array_equal(actual, expected)


def test_model_uses_accelerator():
    request = EscapeTimeRequest(center_x='-1', center_y='0', width=1e-8, num_samples_x=4,
                                num_samples_y=4, max_iterations=100, use_numba=True)
    model = MandelbrotModel(request)
    assert model.accelerator is not None

    progress = []
    accelerated = model.escape_time(progress_callback=progress.append)
    assert progress == [0.25, 0.5, 0.75, 1.0]

    request.use_numba = False
    np.testing.assert_array_equal(accelerated, MandelbrotModel(request).escape_time())
