from pyc1.knotspaces import *
from pyc1.bspline import make_knots
from pyc1.errors import IncompatibleInterface, InvalidRegularity
import pytest

def test_continuity():
    assert continuity(make_knots(3, 0.0, 1.0, 4)) == 2
    assert continuity(make_knots(3, 0.0, 1.0, 4, mult=2)) == 1
    assert continuity(make_knots(3, 0.0, 1.0, 1)) is None

def test_plus_minus_maximal_smoothness():
    kv = make_knots(3, 0.0, 1.0, 4)
    kv_plus, kv_minus = plus_minus_space(kv, kv, 2)
    assert kv_plus == kv
    assert kv_minus.p == 2
    assert continuity(kv_minus) == 1
    assert kv_minus.numdofs == 6

def test_plus_minus_reduced_smoothness():
    kv = make_knots(3, 0.0, 1.0, 4, mult=2)
    kv_plus, kv_minus = plus_minus_space(kv, kv, 1)
    assert kv_plus.p == 3 and continuity(kv_plus) == 2
    assert kv_minus.p == 2 and continuity(kv_minus) == 1
    # single knots cannot carry an S(p, r+1) plus space with r = 1
    with pytest.raises(InvalidRegularity):
        plus_minus_space(make_knots(3, 0.0, 1.0, 4), None, 1)

def test_plus_minus_errors():
    kv = make_knots(3, 0.0, 1.0, 4)
    with pytest.raises(IncompatibleInterface):
        plus_minus_space(kv, make_knots(2, 0.0, 1.0, 4), 1)
    with pytest.raises(IncompatibleInterface):
        plus_minus_space(kv, make_knots(3, 0.0, 1.0, 5), 2)
    with pytest.raises(IncompatibleInterface):
        plus_minus_space(kv, make_knots(3, 0.0, 1.0, 4, mult=2), 2)
    with pytest.raises(InvalidRegularity):
        plus_minus_space(kv, kv, 3)

def test_plus_minus_too_small():
    # 5 plus functions cannot hold the three functions of both vertices
    kv = make_knots(3, 0.0, 1.0, 2)
    with pytest.raises(ValueError):
        plus_minus_space(kv, kv, 2)
    kv_plus, kv_minus = plus_minus_space(make_knots(3, 0.0, 1.0, 3), None, 2)
    assert (kv_plus.numdofs, kv_minus.numdofs) == (6, 5)

def test_gluing_data_space():
    kv = make_knots(3, 0.0, 1.0, 4)
    kv_gd = gluing_data_space(kv)
    assert kv_gd.p == 3
    assert continuity(kv_gd) == 1
    assert np.allclose(kv_gd.mesh, kv.mesh)
    kv_gd = gluing_data_space(kv, p_tilde=4, r_tilde=3)
    assert kv_gd.p == 4 and continuity(kv_gd) == 3
    # without interior knots, only the degree matters
    kv_gd = gluing_data_space(make_knots(2, 0.0, 1.0, 1))
    assert kv_gd.numdofs == 4
    with pytest.raises(IncompatibleInterface):
        gluing_data_space(kv, make_knots(3, 0.0, 1.0, 3))
    with pytest.raises(InvalidRegularity):
        gluing_data_space(kv, p_tilde=3, r_tilde=3)

def test_local_edge_space():
    kv = make_knots(3, 0.0, 1.0, 4)
    kv_plus, kv_minus = plus_minus_space(kv, kv, 2)
    kv_gd = gluing_data_space(kv)
    kv_edge = local_edge_space(kv_plus, kv_minus, kv_gd)
    assert kv_edge.p == 5
    assert continuity(kv_edge) == 1
    # boundary variant
    kv_edge = local_edge_space(kv_plus, kv_minus)
    assert kv_edge.p == 3
    assert continuity(kv_edge) == 1
    assert np.allclose(kv_edge.mesh, kv.mesh)

def test_local_vertex_space():
    kvs = 2 * (make_knots(3, 0.0, 1.0, 4),)
    kvs_v = local_vertex_space(kvs, 2)
    for kv in kvs_v:
        assert kv.p == 5
        assert continuity(kv) == 1
    # lower gluing data regularity reduces the continuity further
    kvs_v = local_vertex_space(kvs, 2, p_tilde=3, r_tilde=0)
    assert continuity(kvs_v[0]) == 0

def test_boundary_spaces():
    kv = make_knots(3, 0.0, 1.0, 4)
    kv_geo = boundary_geo_space(kv, 2)
    assert kv_geo.p == 3 and continuity(kv_geo) == 1
    kv2 = make_knots(3, 0.0, 1.0, 4, mult=2)
    assert boundary_geo_space(kv2, 1) == kv2
    kvs = boundary_vertex_space((kv, kv), 2)
    assert all(k == kv_geo for k in kvs)

def test_inner_space():
    kv = make_knots(3, 0.0, 1.0, 4)
    kv_inner, _ = inner_space((kv, kv), 2)
    assert kv_inner.numdofs == kv.numdofs + 2
    assert np.array_equal(kv_inner.interior_multiplicities(), [2, 1, 2])
    # for lower smoothness, the space is unchanged
    kv2 = make_knots(3, 0.0, 1.0, 4, mult=2)
    assert inner_space((kv2, kv2), 1)[0] == kv2
    # a single interior knot is repeated only once
    kv1 = make_knots(3, 0.0, 1.0, 2)
    assert np.array_equal(inner_space((kv1, kv1), 2)[0].interior_multiplicities(), [2])
    with pytest.raises(InvalidRegularity):
        inner_space((kv, kv), 3)
