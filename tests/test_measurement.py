import math

import numpy as np
import pytest
from nmorph.core import (ComponentCreationError, Measurement, MissingMeasurementError, StatsMap,
                         circularity, feret_diameter)


def test_statsmap_add_and_get():
    s = StatsMap()
    s.add(Measurement.AREA, 12)
    assert s.get(Measurement.AREA) == 12.0
    assert s["area"] == 12.0
    assert Measurement.AREA in s
    assert Measurement.PERIMETER not in s
    assert s.as_dict() == {"area": 12.0}


def test_statsmap_missing_value_is_an_error():
    s = StatsMap({Measurement.AREA: 1.0})
    with pytest.raises(MissingMeasurementError) as err:
        s.get(Measurement.FERET)
    assert isinstance(err.value, ComponentCreationError)
    assert isinstance(err.value, KeyError)
    assert "feret" in str(err.value)


def test_statsmap_copy_is_independent():
    s = StatsMap({Measurement.AREA: 1.0})
    c = s.copy()
    c.add(Measurement.AREA, 2.0)
    assert s[Measurement.AREA] == 1.0
    assert len(c) == 1


def test_circularity_limits():
    assert circularity(10.0, 0.0) == 0.0
    # a perfect circle would exceed 1 with a short traced perimeter
    assert circularity(100.0, 30.0) == 1.0
    assert circularity(math.pi, 2 * math.pi) == pytest.approx(1.0)
    assert circularity(100.0, 40.0) == pytest.approx(4 * math.pi * 100 / 1600)


def test_feret_diameter():
    square = np.array([[0, 0], [3, 0], [3, 4], [0, 4]])
    assert feret_diameter(square) == pytest.approx(5.0)
    assert feret_diameter(np.array([[1, 1]])) == 0.0
