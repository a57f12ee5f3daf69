"""Edge functions of the approximate C1 space.

An edge function `f` is determined along a patch side by its trace `A(t)`
and its transversal derivative `B(t)`, both univariate splines in the local
edge space. It is represented on each adjacent patch in the tensor product
edge basis (edge space along the side, geometry space across it) by the two
rows of coefficients closest to the side::

    c_0 = A,    c_1 = A + (h/p) B

where `h` is the length of the first knot span and `p` the degree of the
transversal space. Thus `f = A` and `d_s f = B` on the side, with `s`
pointing into the patch.

On an interface with common side parameter `t`, let `T = dF/dt` be the
tangent and `F_s` the inward transversal derivative of the geometry map of
side `S`. The gluing data

    alpha_S = det[T, F_s],      beta_S = (F_s . T) / |T|^2

decompose `F_s = alpha_S d + beta_S T` with the common transversal vector
`d = rot(T) / |T|^2`. A function whose transversal derivatives satisfy
`B_S = alpha_S g + beta_S A'` on both sides has the same gradient on both
sides of the interface. The gluing data are replaced by their interpolants in
the gluing data space, which makes the functions only approximately C1 but
keeps all products in the local edge space.
"""
import numpy as np

from . import bspline
from . import approx
from .topology import along_axis, normal_axis, is_upper_side, side_jacobian
from .c1basis import plus_indices, minus_indices, component_of_side

DROP_TOL = 1e-12

def _check_planar(geo, what):
    if geo.dim != 2:
        raise NotImplementedError('%s: only planar geometries are supported (geometry has dimension %s)'
                % (what, geo.dim))

def gluing_data(geo, side, kv_gd, flip=False):
    """Interpolate the gluing data `(alpha, beta)` of one side of an interface.

    Args:
        geo: the geometry map of the patch
        side (int): the side of the patch which lies on the interface
        kv_gd (:class:`.KnotVector`): the gluing data space, parametrized
            in the common interface parameter
        flip (bool): whether the side parameter of this patch runs opposite
            to the common interface parameter

    Returns:
        a pair of coefficient vectors with respect to `kv_gd`
    """
    t = kv_gd.greville()
    if flip:
        lo, hi = geo.support[along_axis(side)]
        _, T, N = side_jacobian(geo, side, lo + hi - t)
        T = -T
    else:
        _, T, N = side_jacobian(geo, side, t)
    alpha = T[:, 0] * N[:, 1] - T[:, 1] * N[:, 0]
    beta = np.sum(N * T, axis=1) / np.sum(T * T, axis=1)
    return approx.interpolate(kv_gd, alpha), approx.interpolate(kv_gd, beta)

def transversal_step(kv, upper=False):
    """The ratio `h/p` of the length of the first (or, if `upper`, the last)
    knot span and the degree of `kv`."""
    p = kv.p
    if upper:
        return (kv.kv[-1] - kv.kv[-p-2]) / p
    return (kv.kv[p+1] - kv.kv[0]) / p

def write_edge_part(builder, rows, basis, col_shift, side, A, B, tol=DROP_TOL):
    """Write functions into the edge component of one side of a patch.

    `A` and `B` are arrays of shape `(n_edge, len(rows))` with the
    coefficients of the traces and the inward transversal derivatives in the
    edge space of `side`, in the parametrization of the patch.
    """
    kvs = basis.get_edge_basis(side)
    a, nrm = along_axis(side), normal_axis(side)
    kv_geo = kvs[nrm]
    upper = is_upper_side(side)
    step = transversal_step(kv_geo, upper)
    k0, k1 = (kv_geo.numdofs - 1, kv_geo.numdofs - 2) if upper else (0, 1)

    shape = tuple(kv.numdofs for kv in kvs)
    n_edge = shape[a]
    col0 = col_shift + basis.col_begin(component_of_side(side))
    for k, M in ((k0, A), (k1, A + step * B)):
        idx = [None, None]
        idx[a] = np.arange(n_edge)
        idx[nrm] = np.full(n_edge, k)
        cols = col0 + np.ravel_multi_index(idx, shape)
        builder.add_dense(rows, cols, M.T, tol=tol)


class ApproxC1Edge:
    """Builds the edge functions of a single interface or boundary side and
    writes them into the global transformation matrix.

    Args:
        mp (:class:`.MultiPatch`): the multi-patch geometry
        bases: the list of initialized :class:`.C1Basis` containers
        row_shifts: global row offset per patch
        col_shifts: global column offset per patch

    After calling either :meth:`interface` or :meth:`boundary`, the
    attribute `sides` contains one tuple `(patch, side, flip, A, B)` per
    adjacent patch, where `A` and `B` are arrays of shape
    `(n_edge, num_functions)` holding the coefficients of the traces and
    the transversal derivatives in the edge space (common parametrization).
    """
    def __init__(self, mp, bases, row_shifts, col_shifts, tol=DROP_TOL):
        self.mp = mp
        self.bases = bases
        self.row_shifts = row_shifts
        self.col_shifts = col_shifts
        self.tol = tol
        self.owner = None
        self.sides = []

    def _edge_data(self, basis, side):
        kv_plus = basis.get_basis_plus(side)
        kv_minus = basis.get_basis_minus(side)
        kv_edge = basis.get_edge_basis(side)[along_axis(side)]
        nodes = kv_edge.greville()
        ip, im = list(plus_indices(kv_plus)), list(minus_indices(kv_minus))
        Dp = bspline.collocation_derivs(kv_plus, nodes, derivs=1)
        b_plus = Dp[0][:, ip].toarray()
        db_plus = Dp[1][:, ip].toarray()
        b_minus = bspline.collocation(kv_minus, nodes)[:, im].toarray()
        return kv_edge, nodes, b_plus, db_plus, b_minus

    def interface(self, intf):
        """Compute the edge functions of the interface `intf`.

        The trace of the `i`-th plus function is the plus basis function
        `b_i^+` and its transversal derivatives are `beta_S (b_i^+)'`; the
        minus functions have vanishing trace and transversal derivatives
        `alpha_S b_j^-`.
        """
        what = 'interface %d:%d - %d:%d' % (intf.patch1, intf.side1, intf.patch2, intf.side2)
        basis1 = self.bases[intf.patch1]
        kv_gd = basis1.get_basis_gluing_data(intf.side1)
        kv_edge, nodes, b_plus, db_plus, b_minus = self._edge_data(basis1, intf.side1)
        C_gd = bspline.collocation(kv_gd, nodes)

        self.owner = (intf.patch1, intf.side1)
        self.sides = []
        A = approx.interpolate(kv_edge, np.hstack((b_plus, np.zeros_like(b_minus))))
        for (patch, side, flip) in ((intf.patch1, intf.side1, False),
                                    (intf.patch2, intf.side2, intf.flip)):
            geo = self.mp.geo(patch)
            _check_planar(geo, what)
            alpha, beta = gluing_data(geo, side, kv_gd, flip=flip)
            alpha, beta = C_gd.dot(alpha), C_gd.dot(beta)
            B = approx.interpolate(kv_edge, np.hstack((beta[:, None] * db_plus,
                                                       alpha[:, None] * b_minus)))
            self.sides.append((patch, side, flip, A, B))

    def boundary(self, patch, side):
        """Compute the edge functions of a boundary side.

        Plus functions have trace `b_i^+` and vanishing transversal
        derivative; minus functions have vanishing trace and transversal
        derivative `b_j^-`.
        """
        _check_planar(self.mp.geo(patch), 'boundary %d:%d' % (patch, side))
        basis = self.bases[patch]
        kv_edge, nodes, b_plus, db_plus, b_minus = self._edge_data(basis, side)
        A = approx.interpolate(kv_edge, np.hstack((b_plus, np.zeros_like(b_minus))))
        B = approx.interpolate(kv_edge, np.hstack((np.zeros_like(b_plus), b_minus)))
        self.owner = (patch, side)
        self.sides = [(patch, side, False, A, B)]

    @property
    def num_functions(self):
        if not self.sides:
            return 0
        return self.sides[0][3].shape[1]

    def _save(self, builder):
        assert self.owner is not None, 'no edge functions computed'
        owner_patch, owner_side = self.owner
        owner = self.bases[owner_patch]
        comp = component_of_side(owner_side)
        assert owner.num_functions(comp) == self.num_functions, \
            'number of edge functions does not match the reserved rows'
        rows = self.row_shifts[owner_patch] + owner.row_begin(comp) + np.arange(self.num_functions)
        for (patch, side, flip, A, B) in self.sides:
            if flip:
                A, B = A[::-1], B[::-1]
            write_edge_part(builder, rows, self.bases[patch], self.col_shifts[patch],
                    side, A, B, tol=self.tol)

    def save_basis_interface(self, builder):
        """Write the interface functions into the matrix builder."""
        self._save(builder)

    def save_basis_boundary(self, builder):
        """Write the boundary edge functions into the matrix builder."""
        self._save(builder)
