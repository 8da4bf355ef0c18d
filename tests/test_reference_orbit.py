import numpy as np
import pytest

from mandelbrot_diver.core.errors import InvalidRequestError
from mandelbrot_diver.core.math_functions import Region
from mandelbrot_diver.core.orbit_buffer import SequentialOrbitBuffer
from mandelbrot_diver.core.precision import context_from_width
from mandelbrot_diver.core.reference_orbit import REF_ESCAPE_RADIUS_SQ, ReferenceOrbit, ReferenceOrbitComputer


def _orbit(center_x, center_y, max_iterations, width=1e-6):
    region = Region(center_x, center_y, width, width)
    return ReferenceOrbitComputer(max_iterations).compute(region)


def test_orbit_starts_at_zero_then_c():
    orbit = _orbit('-0.1', '0.65', 50)
    xs = orbit.x_values.to_array()
    ys = orbit.y_values.to_array()
    assert (xs[0], ys[0]) == (0.0, 0.0)
    assert (xs[1], ys[1]) == (-0.1, 0.65)


def test_bounded_point_fills_the_cap():
    orbit = _orbit('-1', '0', 25)
    assert len(orbit) == 25
    assert not orbit.escaped
    np.testing.assert_array_equal(orbit.x_values.to_array(), [0.0, -1.0] * 12 + [0.0])
    np.testing.assert_array_equal(orbit.y_values.to_array(), np.zeros(25))


def test_escaping_point_stops_at_reference_radius():
    # 0, 0.5, 0.75, 1.0625, 1.62890625, 3.15... then 10.44 exceeds radius 4
    orbit = _orbit('0.5', '0', 100)
    assert len(orbit) == 6
    assert orbit.escaped
    assert orbit.x_values.to_array()[4] == 1.62890625


@pytest.mark.parametrize("center", [('0.3', '0.5'), ('-0.75', '0.1'), ('0.26', '0'), ('-2', '0'), ('1', '1')])
@pytest.mark.parametrize("max_iterations", [1, 7, 300])
def test_orbit_length_bound(center, max_iterations):
    orbit = _orbit(*center, max_iterations)
    xs = orbit.x_values.to_array()
    ys = orbit.y_values.to_array()

    assert 1 <= len(orbit) <= max_iterations
    assert np.all(xs * xs + ys * ys < REF_ESCAPE_RADIUS_SQ)
    if len(orbit) < max_iterations:
        assert orbit.escaped


def test_orbit_is_frozen_and_shared_by_cursors():
    orbit = _orbit('-1', '0', 10)
    assert orbit.x_values.frozen and orbit.y_values.frozen

    first_x, _ = orbit.cursors()
    second_x, _ = orbit.cursors()
    first_x.next()
    first_x.next()
    assert second_x.next() == 0.0
    assert first_x.next() == 0.0


def test_precision_policy_receives_width():
    widths = []

    def policy(width):
        widths.append(width)
        return context_from_width(width)

    region = Region('-1', '0', 1e-12, 1e-12)
    ReferenceOrbitComputer(10, precision_policy=policy).compute(region)
    assert widths == [1e-12]


def test_high_precision_centre_survives_parsing():
    # z2 = c^2 + c; with c = -1 + 1e-30 the offset only shows at high precision
    region = Region('-1.000000000000000000000000000001', '0', 1e-30, 1e-30)
    orbit = ReferenceOrbitComputer(3).compute(region)
    xs = orbit.x_values.to_array()
    assert xs[1] == -1.0
    assert xs[2] == -1e-30


def test_mismatched_components_rejected():
    xs = SequentialOrbitBuffer(4)
    ys = SequentialOrbitBuffer(4)
    xs.add(0.0)
    with pytest.raises(ValueError):
        ReferenceOrbit(xs, ys)


def test_invalid_cap():
    with pytest.raises(InvalidRequestError):
        ReferenceOrbitComputer(0)
    with pytest.raises(InvalidRequestError):
        ReferenceOrbitComputer(-5)
