import numpy as np
import pytest
from nmorph.addons import BooleanMask


def _blob(w=20, h=15):
    m = BooleanMask(w, h)
    for x, y in [(5, 5), (6, 5), (6, 6), (7, 8), (10, 3)]:
        m.set(x, y)
    return m


def test_new_mask_is_false_and_sized():
    m = BooleanMask(7, 3)
    assert (m.width, m.height) == (7, 3)
    assert m.count() == 0
    assert m.to_array().shape == (3, 7)
    assert m.set_true().count() == 21
    assert m.set_false().count() == 0


def test_get_set_bounds_checked():
    m = BooleanMask(4, 3)
    m.set(3, 2)
    assert m.get(3, 2) and not m.get(2, 2)
    for x, y in [(4, 0), (0, 3), (-1, 0)]:
        with pytest.raises(IndexError):
            m.get(x, y)
        with pytest.raises(IndexError):
            m.set(x, y, True)


def test_offset_zero_is_identity():
    m = _blob()
    assert m.offset(0, 0) == m
    assert m.offset(0, 0) is not m


def test_offset_moves_columns_and_rows():
    m = BooleanMask(5, 5)
    m.set(1, 2)
    moved = m.offset(2, -1)
    assert moved.get(3, 1)
    assert moved.count() == 1


def test_offset_round_trip_inside_grid():
    m = _blob()
    assert m.offset(3, -2).offset(-3, 2) == m


def test_offset_is_lossy_at_the_edge():
    m = _blob()
    back = m.offset(12, 0).offset(-12, 0)
    assert back != m
    assert back.count() == 4
    assert not back.get(10, 3)  # pushed past x = 19 and dropped
    assert m.offset(20, 0).count() == 0
    assert m.offset(0, -15).count() == 0


def test_and_is_commutative_and_cellwise():
    a = _blob()
    b = BooleanMask(20, 15)
    b.set(6, 6)
    b.set(0, 0)
    assert a.and_(b) == b.and_(a)
    assert (a & b).count() == 1
    assert (a & b).get(6, 6)
    assert a.overlap(b) == 1


def test_and_sized_to_argument():
    a = BooleanMask(4, 4).set_true()
    b = BooleanMask(6, 2).set_true()
    r = a.and_(b)
    assert (r.width, r.height) == (6, 2)
    assert r.count() == 8


def test_from_array():
    arr = np.zeros((3, 5), np.uint8)
    arr[1, 4] = 255
    m = BooleanMask.from_array(arr)
    assert (m.width, m.height) == (5, 3)
    assert m.get(4, 1)
    with pytest.raises(ValueError):
        BooleanMask.from_array(np.zeros(4))
