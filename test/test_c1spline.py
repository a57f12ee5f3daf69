from pyc1.c1spline import *
from pyc1.c1edge import gluing_data, transversal_step
from pyc1.c1vertex import taylor_jets, corner_jacobian, parametric_jets, end_fit
from pyc1.topology import grid_multipatch, MultiPatch
from pyc1.bspline import make_knots, KnotVector, BSplineFunc
from pyc1.errors import InvalidRegularity
from pyc1 import geometry, norms, approx
import pytest

def test_sparse_builder():
    B = SparseBuilder((3, 4), capacity=1)
    B.add([0, 1], [1, 2], [1.0, 2.0])
    B.add([2], [3], [1e-14], tol=1e-12)     # dropped
    B.add_dense([0, 2], [0, 1], np.array([[1.0, 2.0], [3.0, 4.0]]))
    A = B.tocsr()
    assert A.shape == (3, 4)
    assert np.allclose(A.toarray(), [[1, 3, 0, 0], [0, 0, 2, 0], [3, 4, 0, 0]])
    with pytest.raises(IndexError):
        B.add([3], [0], [1.0])

def test_single_patch():
    mp = grid_multipatch(1, 1, p=3, n=4)
    S = ApproxC1Spline(mp, discrete_regularity=2)
    assert S.state == SplineState.COMPRESSED
    # 25 interior, 4 x 3 edge and 4 x 6 vertex functions
    assert S.shape[0] == 61
    assert S.num_dofs == 61
    assert len(S.patch_rows(0, 0)) == 25
    for s in range(1, 5):
        assert len(S.edge_rows(0, s)) == 3
    for c in range(1, 5):
        assert len(S.vertex_rows(0, c)) == 6
    assert S.shape[1] == S.bases[0].size_cols()
    assert S.matrix.shape == S.shape
    assert S.bases[0].kind_of_vertex(1) == -1
    assert not S.bases[0].is_interface(2)

def test_interior_functions():
    mp = grid_multipatch(2, 1)
    S = ApproxC1Spline(mp)
    M = S.matrix.tocsr()
    for patch in range(mp.numpatches):
        rows = S.patch_rows(patch, 0)
        cols = S.patch_cols(patch, 0)
        B = M[rows.start:rows.stop]
        # every interior function is a single interior B-spline
        assert np.all(np.diff(B.indptr) == 1)
        assert np.allclose(B.data, 1.0)
        assert np.all((B.indices >= cols.start) & (B.indices < cols.stop))

def test_no_zero_rows():
    for (n_x, n_y) in ((1, 1), (2, 1), (2, 2)):
        S = ApproxC1Spline(grid_multipatch(n_x, n_y))
        M = S.matrix.tocsr()
        assert np.all(np.diff(M.indptr) > 0)

def test_two_patches():
    mp = grid_multipatch(2, 1)
    S = ApproxC1Spline(mp)
    # the interface functions are owned by the first patch
    assert len(S.edge_rows(0, 2)) > 0
    assert len(S.edge_rows(1, 1)) == 0
    assert S.bases[0].is_interface(2) and S.bases[1].is_interface(1)
    # the interface edge space has degree p + p_tilde - 1
    assert S.bases[0].get_edge_basis(2)[0].p == 5
    assert S.bases[0].get_basis_gluing_data(2).p == 3
    # vertex kinds: boundary corners and interface-boundary vertices
    assert S.bases[0].kind_of_vertex(1) == -1
    assert S.bases[0].kind_of_vertex(2) == 1
    assert S.bases[1].kind_of_vertex(1) == 1
    assert len(S.vertex_rows(0, 2)) == 6
    assert len(S.vertex_rows(1, 1)) == 0
    assert S.shape[0] == sum(b.size_rows() for b in S.bases)
    assert S.shape[0] == S.row_shifts[-1]

def test_four_patches():
    mp = grid_multipatch(2, 2)
    S = ApproxC1Spline(mp)
    # the central vertex is an internal vertex, owned by patch 0
    assert S.bases[0].kind_of_vertex(4) == 0
    assert S.bases[3].kind_of_vertex(1) == 0
    assert len(S.vertex_rows(0, 4)) == 6
    for patch, corner in ((1, 3), (2, 2), (3, 1)):
        assert len(S.vertex_rows(patch, corner)) == 0
    assert len(mp.vertices) == 9
    num_vertex_rows = sum(len(S.vertex_rows(p, c)) for p in range(4) for c in range(1, 5))
    assert num_vertex_rows == 9 * 6

def test_deterministic():
    mp = grid_multipatch(2, 1)
    M1 = ApproxC1Spline(mp).matrix
    M2 = ApproxC1Spline(mp).matrix
    assert M1.shape == M2.shape
    assert abs(M1 - M2).max() == 0.0

def test_functions_are_c1():
    # on affine rectangular patches, the functions are exactly C1
    mp = grid_multipatch(2, 1)
    S = ApproxC1Spline(mp)
    mb = S.mapped_basis()
    for k in range(mb.global_dofs):
        funcs = mb.single_function(k)
        assert np.all(norms.interface_jump(mp, funcs) < 1e-8)

def test_function_continuity():
    mp = grid_multipatch(2, 1)
    mb = ApproxC1Spline(mp).mapped_basis()
    t = np.linspace(0.0, 1.0, 7)
    for k in range(mb.global_dofs):
        f0, f1 = mb.single_function(k)
        assert np.allclose(f0.grid_eval((t, np.array([1.0]))),
                           f1.grid_eval((t, np.array([0.0]))))

def test_invalid_regularity():
    mp = grid_multipatch(1, 1, p=3)
    with pytest.raises(InvalidRegularity):
        ApproxC1Spline(mp, discrete_regularity=3)
    with pytest.raises(InvalidRegularity):
        ApproxC1Spline(mp, discrete_regularity=0)
    # InvalidRegularity is a ValueError
    with pytest.raises(ValueError):
        ApproxC1Spline(grid_multipatch(1, 1, p=2), discrete_regularity=2)

def test_lower_regularity():
    mp = grid_multipatch(2, 1, p=3, n=4, mult=2)
    S = ApproxC1Spline(mp, discrete_regularity=1)
    assert S.state == SplineState.COMPRESSED
    M = S.matrix.tocsr()
    assert np.all(np.diff(M.indptr) > 0)

def test_state():
    mp = grid_multipatch(1, 1)
    S = ApproxC1Spline(mp)
    S.init()
    assert S.state == SplineState.SIZED
    with pytest.raises(RuntimeError):
        S.matrix
    S.compute()
    assert S.state == SplineState.COMPRESSED
    with pytest.raises(RuntimeError):
        S.compute()

def test_flipped_interface():
    kv = make_knots(3, 0.0, 1.0, 4)
    geo1 = geometry.unit_square()
    geo2 = geometry.bilinear_patch((1,1), (1,0), (2,1), (2,0))
    mp = MultiPatch([((kv, kv), geo1), ((kv, kv), geo2)])
    assert mp.interfaces[0].flip
    S = ApproxC1Spline(mp)
    M = S.matrix.tocsr()
    assert np.all(np.diff(M.indptr) > 0)
    # functions are continuous across the reversed interface
    mb = S.mapped_basis()
    t = np.linspace(0.0, 1.0, 5)
    for k in S.edge_rows(0, 2):
        f0, f1 = mb.single_function(k)
        # side 2 of patch 0 at v = t meets side 3 of patch 1 at u = 1 - t
        v0 = f0.grid_eval((t, np.array([1.0])))[:, 0]
        v1 = f1.grid_eval((np.array([0.0]), 1.0 - t))[0, :]
        assert np.allclose(v0, v1)
    assert np.all(norms.interface_jump(mp, mb.single_function(S.edge_rows(0, 2)[0])) < 1e-8)

def test_gluing_data():
    kv_gd = make_knots(3, 0.0, 1.0, 4, mult=2)
    # identity square: F_s is orthogonal to the side
    geo = geometry.unit_square()
    alpha, beta = gluing_data(geo, 2, kv_gd)
    assert np.allclose(alpha, alpha[0])
    assert np.allclose(beta, 0.0)
    # parallelogram: constant, nonzero beta
    geo = geometry.bilinear_patch((0,0), (1,0), (0.5,1), (1.5,1))
    alpha, beta = gluing_data(geo, 3, kv_gd)
    assert np.allclose(alpha, alpha[0]) and abs(alpha[0]) > 0
    assert np.allclose(beta, 0.5)

def test_transversal_step():
    assert np.isclose(transversal_step(make_knots(3, 0.0, 1.0, 4)), 0.25 / 3)
    assert np.isclose(transversal_step(make_knots(2, 0.0, 2.0, 5), upper=True), 0.2)
    kv = KnotVector(np.array([0, 0, 0, 0, 0.1, 0.5, 1, 1, 1, 1.0]), 3)
    assert np.isclose(transversal_step(kv), 0.1 / 3)
    assert np.isclose(transversal_step(kv, upper=True), 0.5 / 3)

def test_vertex_helpers():
    val, grad, hess = taylor_jets(0.5)
    assert np.allclose(val, [1, 0, 0, 0, 0, 0])
    assert np.allclose(grad[1], [2, 0]) and np.allclose(grad[2], [0, 2])
    assert np.allclose(hess[3], [[8, 0], [0, 0]])
    assert np.allclose(hess[4], [[0, 4], [4, 0]])
    # F(u, v) = (u + 2 u v, 3 v) at the corner (1, 0)
    geo = geometry.bilinear_patch((0,0), (1,0), (0,3), (3,3))
    J, H = corner_jacobian(geo, 2)
    assert np.allclose(J, [[1, 2], [0, 3]])
    assert np.allclose(H[0], [[0, 2], [2, 0]]) and np.allclose(H[1], 0.0)
    D1, D2 = parametric_jets(grad, hess, J, H)
    # m = X: m(F)_u = 2, m(F)_v = 4, m(F)_uv = 4
    assert np.allclose(D1[1], [2, 4])
    assert np.allclose(D2[1], [[0, 4], [4, 0]])
    # the three end B-splines of a cubic space sum up to 1 to second order
    kv = make_knots(3, 0.0, 1.0, 4)
    assert np.allclose(end_fit(kv, 0.0, [0, 1, 2], np.array([1.0, 0.0, 0.0])), 1.0)
    assert np.allclose(end_fit(kv, 1.0, [4, 5, 6], np.array([1.0, 0.0, 0.0])), 1.0)

def _row_patches(S, M, k):
    cols = M[k].indices
    return set(np.searchsorted(S.col_shifts, cols, side='right') - 1)

def test_locality():
    mp = grid_multipatch(2, 2)
    S = ApproxC1Spline(mp)
    M = S.matrix.tocsr()
    for intf in mp.interfaces:
        for k in S.edge_rows(intf.patch1, intf.side1):
            assert _row_patches(S, M, k) <= {intf.patch1, intf.patch2}
    for (patch, side) in mp.boundaries:
        for k in S.edge_rows(patch, side):
            assert _row_patches(S, M, k) == {patch}
    for group in mp.vertices:
        patch, corner = group[0]
        for k in S.vertex_rows(patch, corner):
            assert _row_patches(S, M, k) <= {p for (p, _) in group}

def test_vertex_classification_two_patches():
    S = ApproxC1Spline(grid_multipatch(2, 1))
    kinds = [S.bases[p].kind_of_vertex(c) for p in range(2) for c in range(1, 5)]
    assert 0 not in kinds
    assert kinds.count(-1) == 4
    # fewer global functions than local coefficients
    assert S.shape[0] < S.shape[1]

def _fit_residual(mp, S, f, num=13):
    # least squares fit of f in the C1 space from point values on every patch
    mb = S.mapped_basis()
    grid = 2 * (np.linspace(0.0, 1.0, num),)
    rows, rhs = [], []
    for p in range(mp.numpatches):
        rows.append(mb.grid_derivs(p, grid)[0][0].toarray())
        x = mp.geo(p).grid_eval(grid)
        rhs.append(np.broadcast_to(f(x[..., 0], x[..., 1]), x.shape[:2]).ravel())
    A, b = np.vstack(rows), np.concatenate(rhs)
    c = np.linalg.lstsq(A, b, rcond=None)[0]
    return abs(A.dot(c) - b).max()

def _bilinear_two_patch(n=4):
    kv = make_knots(3, 0.0, 1.0, n)
    geo1 = geometry.bilinear_patch((0,0), (1,0), (0,1), (1.2,1.1))
    geo2 = geometry.bilinear_patch((1,0), (2,0), (1.2,1.1), (2,1))
    return MultiPatch([((kv, kv), geo1), ((kv, kv), geo2)])

def _curved_patch(x0):
    # image of [x0, x0+1] x [0, 1] under (x + 0.3 y^2, y + 0.3 x y)
    kv = make_knots(2, 0.0, 1.0, 1)
    t = kv.greville()
    Y, X = np.meshgrid(t, t + x0, indexing='ij')
    vals = np.stack((X + 0.3 * Y**2, Y + 0.3 * X * Y), axis=-1)
    return BSplineFunc((kv, kv), approx.interpolate((kv, kv), vals))

def _curved_two_patch(n=4):
    kv = make_knots(3, 0.0, 1.0, n)
    return MultiPatch([((kv, kv), _curved_patch(0.0)), ((kv, kv), _curved_patch(1.0))])

def test_reproduction():
    linears = (lambda x, y: 1.0, lambda x, y: x, lambda x, y: 2*x - 3*y + 0.5)
    for mp in (grid_multipatch(1, 1), grid_multipatch(2, 2), _bilinear_two_patch()):
        S = ApproxC1Spline(mp)
        for f in linears:
            assert _fit_residual(mp, S, f) < 1e-10
    # quadratics on affine patches
    mp = grid_multipatch(2, 2, size=0.5)
    S = ApproxC1Spline(mp)
    assert _fit_residual(mp, S, lambda x, y: x**2 - x*y + 3*y**2) < 1e-10

def test_vertex_functions_are_c1():
    mp = grid_multipatch(2, 2)
    S = ApproxC1Spline(mp)
    mb = S.mapped_basis()
    for group in mp.vertices:
        for k in S.vertex_rows(*group[0]):
            assert np.all(norms.interface_jump(mp, mb.single_function(k)) < 1e-8)

def test_bilinear_interface():
    # the gluing data of bilinear patches are linear and represented exactly
    mp = _bilinear_two_patch()
    assert len(mp.interfaces) == 1
    S = ApproxC1Spline(mp)
    mb = S.mapped_basis()
    for k in range(mb.global_dofs):
        assert norms.interface_jump(mp, mb.single_function(k))[0] < 1e-8

def test_curved_interface():
    jumps = []
    for n in (4, 8):
        mp = _curved_two_patch(n)
        assert len(mp.interfaces) == 1
        S = ApproxC1Spline(mp)
        mb = S.mapped_basis()
        jumps.append(max(norms.interface_jump(mp, mb.single_function(k))[0]
                         for k in range(mb.global_dofs)))
    # only approximately C1, improving under refinement
    assert jumps[0] > 1e-12
    assert jumps[1] < jumps[0]

def test_curved_locality():
    mp = _curved_two_patch(8)
    S = ApproxC1Spline(mp)
    mb = S.mapped_basis()
    t = np.linspace(0.0, 0.5, 6)
    # interface 0:2 - 1:1 at u = 1 of patch 0 and u = 0 of patch 1
    for k in S.edge_rows(0, 2):
        f0, f1 = mb.single_function(k)
        assert np.allclose(f0.grid_eval((np.linspace(0, 1, 5), t)), 0.0)
        assert np.allclose(f1.grid_eval((np.linspace(0, 1, 5), 1.0 - t)), 0.0)
    # vertex at (u, v) = (1, 0) of patch 0
    for k in S.vertex_rows(0, 2):
        f0, f1 = mb.single_function(k)
        assert np.allclose(f0.grid_eval((np.linspace(0, 1, 5), t)), 0.0)
        assert np.allclose(f0.grid_eval((1.0 - t, np.linspace(0, 1, 5))), 0.0)
        assert np.allclose(f1.grid_eval((1.0 - t, np.linspace(0, 1, 5))), 0.0)
