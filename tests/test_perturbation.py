import numpy as np
import pytest

from mandelbrot_diver.core.math_functions import DID_NOT_ESCAPE, BasicEscapeEngine, Region, SampleGrid
from mandelbrot_diver.core.orbit_buffer import SequentialOrbitBuffer
from mandelbrot_diver.core.perturbation import PerturbationEscapeEngine
from mandelbrot_diver.core.precision import HighPrecisionIterator, context_from_width
from mandelbrot_diver.core.reference_orbit import ReferenceOrbit, ReferenceOrbitComputer


def _manual_orbit(xs, ys):
    x_values = SequentialOrbitBuffer(2)
    y_values = SequentialOrbitBuffer(2)
    for x, y in zip(xs, ys):
        x_values.add(x)
        y_values.add(y)
    return ReferenceOrbit(x_values, y_values)


def _ground_truth(region, sample_grid, cap):
    truth = HighPrecisionIterator(cap, context_from_width(region.width))
    return truth.escape_time_grid(region.center_x, region.center_y,
                                  region.column_offsets(sample_grid.num_samples_x),
                                  region.row_offsets(sample_grid.num_samples_y))


def _assert_close(grid, expected):
    assert grid.shape == expected.shape
    np.testing.assert_array_equal(grid == DID_NOT_ESCAPE, expected == DID_NOT_ESCAPE)
    escaped = expected != DID_NOT_ESCAPE
    assert np.all(np.abs(grid[escaped] - expected[escaped]) <= 1)


def test_rebase_when_reference_is_exhausted():
    # Reference at c = 0 is all zeros; rebasing turns the delta into the full orbit of 0.5
    orbit = _manual_orbit([0.0, 0.0, 0.0], [0.0, 0.0, 0.0])
    engine = PerturbationEscapeEngine(orbit, 100)
    assert engine.escape_time(0.5, 0.0) == 5
    assert engine.escape_time(0.0, 0.0) == DID_NOT_ESCAPE


def test_rebase_when_delta_dominates():
    # Reference at c = -1 alternates 0, -1; the pixel at c = 0.5 has |z| < |dz| after one step
    orbit = ReferenceOrbitComputer(10).compute(Region('-1', '0', 1e-3, 1e-3))
    engine = PerturbationEscapeEngine(orbit, 100)
    assert engine.escape_time(1.5, 0.0) == BasicEscapeEngine(100).escape_time(0.5, 0.0) == 5


def test_repeated_calls_reuse_orbit():
    orbit = ReferenceOrbitComputer(100).compute(Region('-1', '0', 1e-3, 1e-3))
    engine = PerturbationEscapeEngine(orbit, 100)
    first = engine.escape_time(1.5, 0.1)
    assert engine.escape_time(1.5, 0.1) == first
    assert first == BasicEscapeEngine(100).escape_time(0.5, 0.1)


def test_short_orbit_rejected():
    with pytest.raises(ValueError):
        PerturbationEscapeEngine(_manual_orbit([0.0], [0.0]), 10)


def test_agrees_with_basic_engine_at_cutoff():
    region = Region('0.35', '0', 0.01, 0.01)
    sample_grid = SampleGrid(5, 5)
    cap = 500

    orbit = ReferenceOrbitComputer(cap).compute(region)
    perturbed = PerturbationEscapeEngine(orbit, cap).compute(region, sample_grid)
    basic = BasicEscapeEngine(cap).compute(region, sample_grid)

    _assert_close(perturbed, basic)
    assert np.all(basic != DID_NOT_ESCAPE)


def test_deep_zoom_inside_period_two_bulb():
    region = Region('-1', '0', 1e-10, 1e-10)
    sample_grid = SampleGrid(4, 4)
    cap = 1000

    orbit = ReferenceOrbitComputer(cap).compute(region)
    grid = PerturbationEscapeEngine(orbit, cap).compute(region, sample_grid)

    _assert_close(grid, _ground_truth(region, sample_grid, cap))


def test_deep_zoom_with_escaping_reference():
    region = Region('0.26', '0', 1e-9, 1e-9)
    sample_grid = SampleGrid(3, 3)
    cap = 200

    orbit = ReferenceOrbitComputer(cap).compute(region)
    assert orbit.escaped
    grid = PerturbationEscapeEngine(orbit, cap).compute(region, sample_grid)

    expected = _ground_truth(region, sample_grid, cap)
    _assert_close(grid, expected)
    assert np.all(grid != DID_NOT_ESCAPE)


def test_deep_zoom_at_cardioid_cusp():
    region = Region('0.25', '0', 1e-4, 1e-4)
    sample_grid = SampleGrid(3, 3)
    cap = 1500

    orbit = ReferenceOrbitComputer(cap).compute(region)
    grid = PerturbationEscapeEngine(orbit, cap).compute(region, sample_grid)

    _assert_close(grid, _ground_truth(region, sample_grid, cap))
    assert grid[1, 1] == DID_NOT_ESCAPE
    assert grid[1, 2] != DID_NOT_ESCAPE


@pytest.mark.parametrize("center_x, center_y, width", [
    ('0.25', '0', 1e-4),
    ('-0.743643887037158704752191506114774', '0.131825904205311970493132056385139', 1e-20),
    ('-1.7499', '0', 1e-6),
])
def test_monotonic_in_iteration_cap(center_x, center_y, width):
    # The orbit length follows the cap, so exhaustion rebases happen at different steps
    region = Region(center_x, center_y, width, width)
    sample_grid = SampleGrid(4, 4)

    grids = []
    for cap in (200, 400, 800, 1600):
        orbit = ReferenceOrbitComputer(cap).compute(region)
        grids.append(PerturbationEscapeEngine(orbit, cap).compute(region, sample_grid))

    for low, high in zip(grids, grids[1:]):
        escaped = low != DID_NOT_ESCAPE
        np.testing.assert_array_equal(low[escaped], high[escaped])
