from pyc1.c1basis import *
from pyc1.bspline import make_knots
from pyc1.errors import IndexOutOfRange
import pytest

def _filled_basis(owner=True):
    kv = make_knots(3, 0.0, 1.0, 4)
    kv5 = make_knots(5, 0.0, 1.0, 4, mult=4)
    basis = C1Basis(0, (kv, kv))
    basis.set_inner_basis((kv, kv))
    for s in range(1, 5):
        basis.set_basis_plus(kv, s)
        basis.set_basis_minus(kv.degree_decrease(1), s)
        basis.set_basis_geo(kv, s)
        basis.set_edge_basis((kv, kv5) if s <= 2 else (kv5, kv), s)
        basis.set_kind_of_edge(False, s, owner=owner or s != 2)
    for c in range(1, 5):
        basis.set_vertex_basis((kv, kv), c)
        basis.set_kind_of_vertex(-1, c, owner=owner or c != 4)
    return basis

def test_component_indices():
    assert component_of_side(1) == 1
    assert component_of_side(4) == 4
    assert component_of_corner(1) == 5
    assert component_of_corner(4) == 8
    with pytest.raises(IndexOutOfRange):
        component_of_side(0)
    with pytest.raises(IndexOutOfRange):
        component_of_corner(5)

def test_function_counts():
    kv = make_knots(3, 0.0, 1.0, 4)     # 7 dofs
    assert num_interior_functions((kv, kv)) == 9
    assert num_interior_functions((make_knots(3, 0.0, 1.0, 1),) * 2) == 0
    assert list(plus_indices(kv)) == [3]
    assert list(minus_indices(kv)) == [2, 3, 4]
    assert num_edge_functions(kv, kv) == 4
    # the remaining plus and minus functions belong to the vertices
    assert list(plus_vertex_indices(kv)) == [0, 1, 2]
    assert list(plus_vertex_indices(kv, upper=True)) == [4, 5, 6]
    assert list(minus_vertex_indices(kv, upper=True)) == [5, 6]

def test_layout():
    # plus space with 7 and minus space with 6 functions: 1 + 2 edge functions per side
    basis = _filled_basis()
    assert not basis.initialized
    basis.init()
    assert basis.initialized
    assert basis.num_functions(0) == 9
    for s in range(1, 5):
        assert basis.num_functions(component_of_side(s)) == 3
    for c in range(1, 5):
        assert basis.num_functions(component_of_corner(c)) == NUM_VERTEX_FUNCTIONS
    assert basis.size_rows() == 9 + 4*3 + 4*6
    # the columns are the stacked component spaces
    n_edge = 7 * make_knots(5, 0.0, 1.0, 4, mult=4).numdofs
    assert basis.size_cols() == 49 + 4 * n_edge + 4 * 49
    assert basis.col_begin(1) == 49
    assert basis.col_end(1) == 49 + n_edge
    assert basis.row_begin(5) == 9 + 12
    for c in range(NUM_COMPONENTS - 1):
        assert basis.row_end(c) == basis.row_begin(c + 1)
        assert basis.col_end(c) == basis.col_begin(c + 1)
    assert basis.max_degree() == 5

def test_non_owner_components():
    basis = _filled_basis(owner=False)
    basis.init()
    assert basis.num_functions(component_of_side(2)) == 0
    assert basis.num_functions(component_of_corner(4)) == 0
    assert not basis.is_edge_owner(2)
    assert basis.is_edge_owner(1)
    # the coefficients are still present
    assert basis.col_end(8) > basis.col_begin(8)

def test_set_num_functions():
    basis = _filled_basis()
    basis.set_num_functions(0, 2)
    basis.init()
    assert basis.num_functions(0) == 2
    with pytest.raises(ValueError):
        _filled_basis().set_num_functions(1, -1)
    with pytest.raises(IndexOutOfRange):
        _filled_basis().set_num_functions(9, 1)

def test_accessors():
    basis = _filled_basis()
    basis.init()
    kv = make_knots(3, 0.0, 1.0, 4)
    assert basis.get_inner_basis() == (kv, kv)
    assert basis.get_basis(0) == (kv, kv)
    assert basis.get_basis(3) == basis.get_edge_basis(3)
    assert basis.get_basis(6) == basis.get_vertex_basis(2)
    assert basis.get_basis_plus(1) == kv
    assert basis.get_basis_minus(1).p == 2
    assert basis.get_basis_gluing_data(1) is None
    assert basis.get_basis_geo(2) == kv
    assert basis.is_vertex_owner(4)
    assert not _filled_basis(owner=False).is_vertex_owner(4)
    assert not basis.is_interface(3)
    assert basis.kind_of_vertex(1) == -1
    with pytest.raises(IndexOutOfRange):
        basis.get_edge_basis(5)
    with pytest.raises(IndexOutOfRange):
        basis.row_begin(9)

def test_state_errors():
    basis = _filled_basis()
    with pytest.raises(RuntimeError):
        basis.size_rows()
    basis.init()
    with pytest.raises(RuntimeError):
        basis.set_inner_basis(basis.kvs)
    with pytest.raises(RuntimeError):
        basis.init()
    # incomplete setup
    with pytest.raises(ValueError):
        C1Basis(0, basis.kvs).init()
    with pytest.raises(ValueError):
        _filled_basis().set_kind_of_vertex(2, 1)

def test_collocation_derivs():
    basis = _filled_basis()
    basis.init()
    grid = (np.linspace(0, 1, 3), np.linspace(0, 1, 4))
    D = basis.collocation_derivs(grid, derivs=2)
    assert len(D) == 3
    assert [len(Dk) for Dk in D] == [1, 2, 3]
    for Dk in D:
        for X in Dk:
            assert X.shape == (12, basis.size_cols())
    # every component space is a partition of unity
    ones = np.ones(basis.size_cols())
    assert np.allclose(D[0][0].dot(ones), NUM_COMPONENTS)
    assert np.allclose(D[1][0].dot(ones), 0.0)

def test_set_kind_errors():
    basis = _filled_basis()
    with pytest.raises(IndexOutOfRange):
        basis.set_kind_of_edge(True, 5)
    with pytest.raises(IndexOutOfRange):
        basis.set_kind_of_vertex(0, 0)
    with pytest.raises(ValueError):
        basis.set_kind_of_vertex(2, 1)
    # the failed calls leave the basis unchanged
    assert not any(basis.is_interface(s) for s in range(1, 5))
    assert all(basis.kind_of_vertex(c) == -1 for c in range(1, 5))
    basis.set_kind_of_edge(True, 4, owner=False)
    assert basis.is_interface(4) and not basis.is_edge_owner(4)
    basis.set_kind_of_vertex(1, 3, owner=False)
    assert basis.kind_of_vertex(3) == 1 and not basis.is_vertex_owner(3)
