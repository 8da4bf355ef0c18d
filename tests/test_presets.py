import pytest

from mandelbrot_diver.api import EscapeTimeRequest
from mandelbrot_diver.core.presets import ZOOM_PRESETS, get_preset


@pytest.mark.parametrize("name", sorted(ZOOM_PRESETS))
def test_presets_make_valid_requests(name):
    request = EscapeTimeRequest.from_preset(name, 4, 3)
    request.validate()
    assert request.max_iterations == ZOOM_PRESETS[name].max_iterations


def test_lookup_is_case_insensitive():
    assert get_preset('Full_Set') is ZOOM_PRESETS['full_set']


def test_unknown_preset():
    with pytest.raises(ValueError, match="Available"):
        get_preset('nowhere')
