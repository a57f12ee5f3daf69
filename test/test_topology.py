from pyc1.topology import *
from pyc1 import geometry
from pyc1.bspline import make_knots
from pyc1.errors import IndexOutOfRange
import pytest

def _flipped_pair(p=3, n=4):
    # the second patch is rotated so that its side 3 meets side 2 of the
    # first patch with opposite orientation
    kv = make_knots(p, 0.0, 1.0, n)
    geo1 = geometry.unit_square()
    geo2 = geometry.bilinear_patch((1,1), (1,0), (2,1), (2,0))
    return MultiPatch([((kv, kv), geo1), ((kv, kv), geo2)])

def test_side_corner_helpers():
    assert along_axis(1) == 0 and along_axis(3) == 1
    assert normal_axis(1) == 1 and normal_axis(4) == 0
    assert is_upper_side(2) and is_upper_side(4)
    assert not is_upper_side(1)
    assert side_corners(3) == (1, 2)
    assert side_corners(2) == (2, 4)
    assert corner_sides(4) == (2, 4)
    assert corner_index(2) == (0, 1)
    assert corner_param(3) == (0.0, 1.0)
    for c in range(1, 5):
        iv, iu = corner_index(c)
        assert corner_of(iu, iv) == c
    with pytest.raises(IndexOutOfRange):
        along_axis(5)
    with pytest.raises(IndexOutOfRange):
        corner_index(0)

def test_side_jacobian():
    geo = geometry.identity([(0.0, 1.0), (0.0, 2.0)])
    t = np.linspace(0, 1, 3)
    X, T, N = side_jacobian(geo, 2, t)
    assert np.allclose(X, np.column_stack((2*np.ones(3), t)))
    assert np.allclose(T, [(0, 1)] * 3)
    assert np.allclose(N, [(-2, 0)] * 3)      # inward
    X, T, N = side_jacobian(geo, 3, t)
    assert np.allclose(X, np.column_stack((2*t, np.zeros(3))))
    assert np.allclose(T, [(2, 0)] * 3)
    assert np.allclose(N, [(0, 1)] * 3)
    grid = side_grid(4, t)
    assert np.allclose(grid[0], [1.0]) and np.allclose(grid[1], t)

def test_single_patch():
    mp = grid_multipatch(1, 1)
    assert mp.numpatches == 1
    assert mp.interfaces == []
    assert mp.boundaries == [(0, s) for s in range(1, 5)]
    assert mp.vertices == [[(0, c)] for c in range(1, 5)]
    assert len(mp.geos) == 1 and mp.geos[0] is mp.geo(0)
    assert mp.is_connected()

def test_two_patches():
    mp = grid_multipatch(2, 1)
    assert mp.interfaces == [Interface(0, 2, 1, 1, False)]
    assert len(mp.boundaries) == 6
    assert (0, 2) not in mp.boundaries
    assert len(mp.vertices) == 6
    assert [(0, 2), (1, 1)] in mp.vertices
    assert [(0, 4), (1, 3)] in mp.vertices
    assert mp.interface_at(1, 1) == mp.interfaces[0]
    assert mp.interface_at(1, 2) is None
    assert np.allclose(mp.corner_point(1, 4), (2, 1))

def test_four_patches():
    mp = grid_multipatch(2, 2)
    assert len(mp.interfaces) == 4
    assert len(mp.boundaries) == 8
    assert len(mp.vertices) == 9
    assert [(0, 4), (1, 3), (2, 2), (3, 1)] in mp.vertices
    sub = mp.sub_multipatch([0, 1])
    assert sub.interfaces == [Interface(0, 2, 1, 1, False)]

def test_flipped_interface():
    mp = _flipped_pair()
    assert mp.interfaces == [Interface(0, 2, 1, 3, True)]
    # corners are matched according to the orientation
    assert [(0, 2), (1, 2)] in mp.vertices
    assert [(0, 4), (1, 1)] in mp.vertices

def test_set_topology():
    mp = grid_multipatch(2, 1)
    # interfaces are normalized to patch1 < patch2
    mp.set_topology([(1, 1, 0, 2, False)])
    assert mp.interfaces == [Interface(0, 2, 1, 1, False)]
    with pytest.raises(IndexOutOfRange):
        mp.set_topology([(0, 2, 5, 1, False)])
    with pytest.raises(IndexOutOfRange):
        mp.set_topology([(0, 7, 1, 1, False)])
    with pytest.raises(IndexOutOfRange):
        mp.geo(2)

def test_disconnected():
    kv = make_knots(2, 0.0, 1.0, 2)
    mp = MultiPatch([((kv, kv), geometry.unit_square()),
                     ((kv, kv), geometry.identity([(0.0, 1.0), (3.0, 4.0)]))])
    assert mp.interfaces == []
    assert not mp.is_connected()

def test_geo_degree():
    mp = grid_multipatch(1, 1, geo_degree=3)
    geo = mp.geo(0)
    assert geo.kvs[0].p == 3
    assert np.allclose(geo.eval(0.5, 0.25), (0.5, 0.25))
