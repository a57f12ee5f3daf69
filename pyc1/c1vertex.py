"""Vertex functions of the approximate C1 space.

Each vertex group (the patch corners meeting at one point) carries six
functions, one for each of the Taylor monomials

    1, X, Y, X^2, X Y, Y^2,     X = (x - x_0) / h,  Y = (y - y_0) / h

of the physical coordinates around the vertex `x_0`. The vertex functions
take over the plus and minus functions which the edge functions leave out at
the ends of every side: the three plus functions and the two minus functions
closest to the vertex.

On each patch of the group, the vertex function of a monomial `m` is
determined by the second order jet of `m` at the corner. Along each of the
two sides at the corner it has

- the trace `A`, the combination of the three end plus functions with the
  same derivatives of order 0, 1, 2 at the corner as `m`,
- the transversal derivative `B`: on a boundary side, the combination of the
  two end minus functions matching the transversal derivative of `m` and its
  derivative along the side; on an interface, `B = beta A' + alpha g` with
  the interpolated gluing data and `g` the combination of the end minus
  functions matching the derivative of `m` in the common transversal
  direction `d`,

and these are written into the edge component of the side exactly like the
edge functions. Both edge parts contain the same bilinear corner part

    K = sum_{k,l=0,1} K_kl N_k(u) M_l(v)

in the transversal B-splines `N_k`, `M_l` of the two sides closest to the
corner, which is subtracted once in the vertex component.
"""
import numpy as np

from . import approx
from . import bspline
from .topology import corner_index, corner_sides, along_axis, normal_axis, is_upper_side
from .c1basis import (component_of_corner, plus_vertex_indices, minus_vertex_indices,
        NUM_VERTEX_FUNCTIONS)
from .c1edge import (DROP_TOL, _check_planar, gluing_data, transversal_step,
        write_edge_part)

def taylor_jets(scale):
    """Values, gradients and Hessians of the six scaled Taylor monomials at
    the vertex.

    Returns:
        arrays of shape `(6,)`, `(6, 2)` and `(6, 2, 2)`
    """
    val = np.zeros(NUM_VERTEX_FUNCTIONS)
    grad = np.zeros((NUM_VERTEX_FUNCTIONS, 2))
    hess = np.zeros((NUM_VERTEX_FUNCTIONS, 2, 2))
    val[0] = 1.0
    grad[1, 0] = grad[2, 1] = 1.0 / scale
    hess[3, 0, 0] = hess[5, 1, 1] = 2.0 / scale**2
    hess[4, 0, 1] = hess[4, 1, 0] = 1.0 / scale**2
    return val, grad, hess

def corner_jacobian(geo, corner):
    """First and second derivatives of a planar geometry map at a corner.

    Returns a pair `(J, H)` where `J[:, i]` is the derivative in the
    parameter direction `i` (0 = `u`, 1 = `v`) and `H[:, i, j]` the second
    derivative in the directions `i` and `j`.
    """
    iv, iu = corner_index(corner)
    (v0, v1), (u0, u1) = geo.support
    grid = (np.array([v1 if iv else v0]), np.array([u1 if iu else u0]))
    J = geo.grid_jacobian(grid)[0, 0]
    h = geo.grid_hessian(grid)[0, 0]        # (d_uu, d_uv, d_vv) per component
    return J, h[:, [[0, 1], [1, 2]]]

def parametric_jets(grad, hess, J, H):
    """Chain rule for the first and second parametric derivatives of `m(F)`.

    Returns arrays `D1` with shape `(6, 2)` and `D2` with shape `(6, 2, 2)`.
    """
    D1 = grad.dot(J)
    D2 = np.einsum('mab,ai,bj->mij', hess, J, J) + np.einsum('ma,aij->mij', grad, H)
    return D1, D2

def _rot(a):
    return np.array([-a[1], a[0]])

def end_fit(kv, t, indices, jet):
    """Coefficients of the B-splines `indices` of `kv` whose combination has
    the derivatives `jet[k]`, `k = 0, ..., len(indices)-1`, at `t`.

    `jet` may have additional trailing axes.
    """
    D = bspline.collocation_derivs(kv, np.array([t]), derivs=len(indices) - 1)
    M = np.array([Dk.toarray()[0, list(indices)] for Dk in D])
    return np.linalg.solve(M, jet)


class ApproxC1Vertex:
    """Builds the six functions of one vertex group.

    Args:
        mp (:class:`.MultiPatch`): the multi-patch geometry
        bases: the list of initialized :class:`.C1Basis` containers
        corners: list of pairs `(patch, corner)` which form the vertex
        row_shifts: global row offset per patch
        col_shifts: global column offset per patch

    The functions are owned by the first corner of the (sorted) group. After
    construction, `parts` maps each `(patch, corner)` to a dict with the
    edge parts `(A, B)` per adjacent side and the coefficients `K` of the
    corner part in the vertex space, an array of shape `(n_v, n_u, 6)`.
    """
    def __init__(self, mp, bases, corners, row_shifts, col_shifts, tol=DROP_TOL):
        self.mp = mp
        self.bases = bases
        self.corners = sorted(corners)
        self.row_shifts = row_shifts
        self.col_shifts = col_shifts
        self.tol = tol
        self.owner = self.corners[0]
        self.scale = self._scale()
        self.parts = {}
        for (patch, corner) in self.corners:
            self.parts[(patch, corner)] = self._compute(patch, corner)

    def _scale(self):
        # characteristic mesh size near the vertex
        h = 0.0
        for (patch, _) in self.corners:
            geo = self.mp.geo(patch)
            bb = np.array(geo.bounding_box())
            diam = np.linalg.norm(bb[:, 1] - bb[:, 0])
            h = max(h, diam * max(kv.meshsize_avg() / (kv.support()[1] - kv.support()[0])
                                  for kv in self.mp.kvs(patch)))
        return h if h > 0 else 1.0

    def _compute(self, patch, corner):
        geo = self.mp.geo(patch)
        _check_planar(geo, 'vertex %s' % (self.corners,))
        val, grad, hess = taylor_jets(self.scale)
        J, H = corner_jacobian(geo, corner)
        D1, D2 = parametric_jets(grad, hess, J, H)
        jets = (val, grad, hess, J, H, D1, D2)
        result = {}
        for side in corner_sides(corner):
            result[side] = self._edge_part(patch, corner, side, jets)
        result['K'] = self._corner_part(patch, corner, val, D1, D2)
        return result

    def _edge_part(self, patch, corner, side, jets):
        val, grad, hess, J, H, D1, D2 = jets
        basis = self.bases[patch]
        iv, iu = corner_index(corner)
        upper = bool(iv if along_axis(side) == 0 else iu)
        ti, ni = 1 - along_axis(side), 1 - normal_axis(side)    # parameter directions
        sigma = -1.0 if is_upper_side(side) else 1.0

        kv_plus = basis.get_basis_plus(side)
        kv_minus = basis.get_basis_minus(side)
        kv_edge = basis.get_edge_basis(side)[along_axis(side)]
        t_c = kv_plus.support()[1] if upper else kv_plus.support()[0]
        ip = list(plus_vertex_indices(kv_plus, upper))
        im = list(minus_vertex_indices(kv_minus, upper))

        # trace: match value, first and second derivative along the side
        c_plus = end_fit(kv_plus, t_c, ip, np.array([val, D1[:, ti], D2[:, ti, ti]]))
        if basis.is_interface(side):
            # derivative in the direction d = rot(T) / |T|^2 and its derivative along the side
            T, dT = J[:, ti], H[:, ti, ti]
            TT = T.dot(T)
            d = _rot(T) / TT
            dd = (_rot(dT) * TT - 2 * _rot(T) * T.dot(dT)) / TT**2
            g = grad.dot(d)
            dg = hess.dot(T).dot(d) + grad.dot(dd)
            c_minus = end_fit(kv_minus, t_c, im, np.array([g, dg]))
        else:
            c_minus = end_fit(kv_minus, t_c, im,
                    np.array([sigma * D1[:, ni], sigma * D2[:, ni, ti]]))

        nodes = kv_edge.greville()
        Dp = bspline.collocation_derivs(kv_plus, nodes, derivs=1)
        A = Dp[0][:, ip].dot(c_plus)
        b = bspline.collocation(kv_minus, nodes)[:, im].dot(c_minus)
        if basis.is_interface(side):
            # gluing data in the parametrization of this patch
            kv_gd = basis.get_basis_gluing_data(side)
            alpha, beta = gluing_data(self.mp.geo(patch), side, kv_gd)
            C_gd = bspline.collocation(kv_gd, nodes)
            dA = Dp[1][:, ip].dot(c_plus)
            B = C_gd.dot(beta)[:, None] * dA + C_gd.dot(alpha)[:, None] * b
        else:
            B = b
        return approx.interpolate(kv_edge, A), approx.interpolate(kv_edge, B)

    def _corner_part(self, patch, corner, val, D1, D2):
        basis = self.bases[patch]
        iv, iu = corner_index(corner)
        side_u, side_v = corner_sides(corner)
        kv_gu, kv_gv = basis.get_basis_geo(side_u), basis.get_basis_geo(side_v)
        su = (-1.0 if iu else 1.0) * transversal_step(kv_gu, upper=bool(iu))
        sv = (-1.0 if iv else 1.0) * transversal_step(kv_gv, upper=bool(iv))

        K = np.empty((2, 2, NUM_VERTEX_FUNCTIONS))
        for k in range(2):
            for l in range(2):
                K[k, l] = (val + k * su * D1[:, 0] + l * sv * D1[:, 1]
                           + k * l * su * sv * D2[:, 0, 1])

        # the two B-splines closest to the corner, first the outer one
        nu, nv = kv_gu.numdofs, kv_gv.numdofs
        iku = [nu - 1, nu - 2] if iu else [0, 1]
        ikv = [nv - 1, nv - 2] if iv else [0, 1]
        kvs = basis.get_vertex_basis(corner)
        Mv = bspline.collocation(kv_gv, kvs[0].greville())[:, ikv].toarray()
        Nu = bspline.collocation(kv_gu, kvs[1].greville())[:, iku].toarray()
        return approx.interpolate(kvs, np.einsum('jl,ik,klm->jim', Mv, Nu, K))

    def save_basis_vertex(self, builder):
        """Write the vertex functions into the matrix builder."""
        owner_patch, owner_corner = self.owner
        owner = self.bases[owner_patch]
        comp = component_of_corner(owner_corner)
        assert owner.num_functions(comp) == NUM_VERTEX_FUNCTIONS, \
            'number of vertex functions does not match the reserved rows'
        rows = self.row_shifts[owner_patch] + owner.row_begin(comp) + np.arange(NUM_VERTEX_FUNCTIONS)
        for (patch, corner), part in sorted(self.parts.items()):
            basis = self.bases[patch]
            col_shift = self.col_shifts[patch]
            for side in corner_sides(corner):
                A, B = part[side]
                write_edge_part(builder, rows, basis, col_shift, side, A, B, tol=self.tol)
            K = part['K']
            col0 = col_shift + basis.col_begin(component_of_corner(corner))
            cols = col0 + np.arange(K.shape[0] * K.shape[1])
            builder.add_dense(rows, cols, -K.reshape((-1, NUM_VERTEX_FUNCTIONS)).T, tol=self.tol)
