import pytest
from nmorph.core import ConfigurationError, DetectionOptions, FilterOptions


def test_defaults_validate():
    opts = DetectionOptions()
    opts.validate()
    assert opts.filters.use_kuwahara and opts.filters.use_canny
    assert not opts.filters.add_border


@pytest.mark.parametrize("kw", [
    dict(threshold=None),
    dict(min_size=10, max_size=10),
    dict(min_circ=0.5, max_circ=0.5),
    dict(max_size=float("nan")),
    dict(scale=0.0),
    dict(filters=FilterOptions(kuwahara_radius=0)),
    dict(filters=FilterOptions(canny_low_threshold=200.0, canny_high_threshold=100.0)),
])
def test_invalid_options(kw):
    with pytest.raises(ConfigurationError):
        DetectionOptions(**kw).validate()


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError, match="Minimum circularity"):
        DetectionOptions(min_circ=0.9, max_circ=0.1).validate()


def test_derived_copies_leave_original_alone():
    opts = DetectionOptions(min_size=700, max_circ=0.7)
    bordered = opts.with_filters(add_border=True, border_width=6)
    opened = opts.opened(4096)
    assert not opts.filters.add_border
    assert bordered.filters.border_width == 6 and bordered.min_size == 700
    assert (opened.min_size, opened.max_size, opened.min_circ, opened.max_circ) == (50, 4096.0, 0.0, 1.0)
    assert not opened.filters.use_canny
    assert opts.filters.use_canny and opts.max_circ == 0.7
