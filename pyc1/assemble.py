# -*- coding: utf-8 -*-
"""Assembling the biharmonic problem on multi-patch geometries.

The problem

    Delta^2 u = f  in Omega,    u = g1,  d_n u = g2  on the boundary

is discretized in a global basis which is given through a sparse matrix with
respect to local tensor product spaces (see :class:`.MappedBasis`). Two
kinds of bases are supported:

- the approximate C1 basis (:meth:`.ApproxC1Spline.mapped_basis`), for which
  the Galerkin form `(Delta u, Delta v)` is conforming up to the
  approximation of the gluing data;
- the C0 basis (:class:`C0Basis`) which identifies matching dofs across
  interfaces; the missing C1 coupling is then added weakly by symmetric
  Nitsche terms on the interfaces.

The first boundary condition is imposed strongly (see
:func:`compute_dirichlet_bcs`), the second one weakly by symmetric Nitsche
terms.

.. autofunction:: assemble_biharmonic
.. autofunction:: compute_dirichlet_bcs
.. autoclass:: C0Basis
.. autoclass:: RestrictedLinearSystem
"""
import numpy as np
import scipy.sparse
import scipy.linalg

from . import bspline
from . import utils
from .quadrature import make_tensor_quadrature, make_iterated_quadrature
from .mapped import MappedBasis
from .topology import along_axis, normal_axis, is_upper_side, side_grid, side_jacobian

DEFAULT_PENALTY = 4.0

################################################################################
# Bases
################################################################################

class TensorBasis:
    """A tensor product B-spline basis with the local space interface of
    :class:`.C1Basis` (used by :class:`C0Basis`)."""
    def __init__(self, patch, kvs):
        self.patch = patch
        self.kvs = tuple(kvs)

    def size_cols(self):
        return bspline.numdofs(self.kvs)

    def max_degree(self):
        return max(kv.p for kv in self.kvs)

    def collocation_derivs(self, gridaxes, derivs=0):
        return bspline.collocation_derivs_tp(self.kvs, gridaxes, derivs=derivs)


def side_dofs(kvs, side, layer=0):
    """Raveled indices of the dofs in the `layer`-th row of dofs parallel to
    a side, ordered by increasing side parameter."""
    shape = tuple(kv.numdofs for kv in kvs)
    a, nrm = along_axis(side), normal_axis(side)
    k = shape[nrm] - 1 - layer if is_upper_side(side) else layer
    idx = [None, None]
    idx[a] = np.arange(shape[a])
    idx[nrm] = np.full(shape[a], k)
    return np.ravel_multi_index(idx, shape)


class C0Basis(MappedBasis):
    """Continuous multi-patch basis obtained by identifying matching dofs on
    the interfaces of a :class:`.MultiPatch`.

    The discretization bases of the two sides of each interface must
    coincide (up to the orientation given by `flip`). Dofs which are
    identified through one or several interfaces (e.g., at vertices) form
    one global dof; the global dofs are numbered by their first local dof.
    """
    def __init__(self, mp):
        import networkx as nx
        bases = [TensorBasis(p, kvs) for p, kvs in enumerate(mp.multi_basis)]
        sizes = [b.size_cols() for b in bases]
        ofs = np.concatenate(([0], np.cumsum(sizes)))

        G = nx.Graph()
        G.add_nodes_from(range(ofs[-1]))
        for intf in mp.interfaces:
            dofs1 = side_dofs(mp.kvs(intf.patch1), intf.side1) + ofs[intf.patch1]
            dofs2 = side_dofs(mp.kvs(intf.patch2), intf.side2) + ofs[intf.patch2]
            if intf.flip:
                dofs2 = dofs2[::-1]
            if len(dofs1) != len(dofs2):
                raise ValueError('non-matching interface %d:%d - %d:%d'
                        % (intf.patch1, intf.side1, intf.patch2, intf.side2))
            G.add_edges_from(zip(dofs1, dofs2))
        components = sorted(min(c) for c in nx.connected_components(G))
        glob = {first: k for k, first in enumerate(components)}
        J = np.empty(ofs[-1], dtype=int)
        for comp in nx.connected_components(G):
            J[list(comp)] = glob[min(comp)]
        M = scipy.sparse.coo_matrix((np.ones(ofs[-1]), (np.arange(ofs[-1]), J)),
                                    shape=(ofs[-1], len(components))).tocsr()
        MappedBasis.__init__(self, bases, M)

################################################################################
# Pullback of derivatives
################################################################################

def _scale(d, X):
    # multiply each row (or each entry) of X by d
    if scipy.sparse.issparse(X):
        return scipy.sparse.diags(d).dot(X)
    return d * X

def physical_derivatives(D_u, D_v, D_uu, D_uv, D_vv, jac, geo_hess):
    """Transform parametric first and second derivatives into physical ones.

    The derivatives may be given as arrays of values (one per point) or as
    sparse matrices (one row per point). `jac` has shape `(n, 2, 2)` with
    `jac[k, i, j] = d F_i / d xi_j` where `xi = (u, v)`, and `geo_hess` has
    shape `(n, 2, 3)` containing the second derivatives `(uu, uv, vv)` of
    both components of the geometry map.

    Returns:
        a tuple `(D_x, D_y, D_xx, D_xy, D_yy)`
    """
    G = np.swapaxes(utils.inverses(jac), -1, -2)       # J^{-T}
    D_x = _scale(G[:, 0, 0], D_u) + _scale(G[:, 0, 1], D_v)
    D_y = _scale(G[:, 1, 0], D_u) + _scale(G[:, 1, 1], D_v)
    # parametric Hessian minus the curvature of the geometry map
    M_uu = D_uu - _scale(geo_hess[:, 0, 0], D_x) - _scale(geo_hess[:, 1, 0], D_y)
    M_uv = D_uv - _scale(geo_hess[:, 0, 1], D_x) - _scale(geo_hess[:, 1, 1], D_y)
    M_vv = D_vv - _scale(geo_hess[:, 0, 2], D_x) - _scale(geo_hess[:, 1, 2], D_y)

    def congruence(i, j):
        return (_scale(G[:, i, 0] * G[:, j, 0], M_uu)
              + _scale(G[:, i, 0] * G[:, j, 1] + G[:, i, 1] * G[:, j, 0], M_uv)
              + _scale(G[:, i, 1] * G[:, j, 1], M_vv))
    return D_x, D_y, congruence(0, 0), congruence(0, 1), congruence(1, 1)

def _geometry_data(geo, grid):
    X = geo.grid_eval(grid).reshape((-1, geo.dim))
    jac = geo.grid_jacobian(grid).reshape((-1, geo.dim, geo.sdim))
    hess = geo.grid_hessian(grid).reshape((-1, geo.dim, 3))
    return X, jac, hess

def basis_derivatives(basis, patch, geo, grid):
    """Evaluate all global functions and their physical derivatives on a tensor grid.

    Returns:
        a tuple `(X, jac, D0, D_x, D_y, Lap)` of the points, the Jacobians of
        the geometry map and sparse matrices of shape `(num_points,
        global_dofs)` containing values, first derivatives and Laplacians
    """
    D = basis.grid_derivs(patch, grid, derivs=2)
    X, jac, hess = _geometry_data(geo, grid)
    D_v, D_u = D[1]
    D_vv, D_uv, D_uu = D[2]
    D_x, D_y, D_xx, D_xy, D_yy = physical_derivatives(D_u, D_v, D_uu, D_uv, D_vv, jac, hess)
    return X, jac, D[0][0], D_x, D_y, (D_xx + D_yy).tocsr()

def _outward_normal(T, N):
    # unit normal perpendicular to T pointing away from the inward direction N
    n = np.column_stack((T[:, 1], -T[:, 0])) / np.linalg.norm(T, axis=1)[:, None]
    sign = np.where(np.sum(n * N, axis=1) > 0, -1.0, 1.0)
    return n * sign[:, None]

def num_quadrature_points(basis, patch):
    return basis.bases[patch].max_degree() + 1

def side_quadrature(kvs, side, nqp):
    """Gauss nodes and weights along a side in its parameter."""
    kv = kvs[along_axis(side)]
    return make_iterated_quadrature(kv.mesh, nqp)

def side_operators(basis, mp, patch, side, t):
    """Evaluate all global functions along a side at the side parameters `t`.

    Returns:
        a tuple `(X, ds, D0, D_n, Lap)`: the points, the length element
        `|dF/dt|`, and sparse matrices of shape `(len(t), global_dofs)`
        containing values, outward normal derivatives and Laplacians
    """
    geo = mp.geo(patch)
    grid = side_grid(side, t, geo.support)
    X, jac, D0, D_x, D_y, Lap = basis_derivatives(basis, patch, geo, grid)
    _, T, N = side_jacobian(geo, side, t)
    n = _outward_normal(T, N)
    D_n = (_scale(n[:, 0], D_x) + _scale(n[:, 1], D_y)).tocsr()
    return X, np.linalg.norm(T, axis=1), D0, D_n, Lap

def side_meshsize(mp, patch, side):
    """Physical length of a side divided by its number of knot spans."""
    kv = mp.kvs(patch)[along_axis(side)]
    t, w = make_iterated_quadrature(kv.mesh, 3)
    _, T, _ = side_jacobian(mp.geo(patch), side, t)
    return np.sum(w * np.linalg.norm(T, axis=1)) / kv.numspans

def _eval_physical(f, X):
    """Evaluate a function of the physical coordinates at the points `X`."""
    values = f(*(X[:, i] for i in range(X.shape[1])))
    return np.asarray(utils._ensure_grid_shape(values, (X[:, 0],)), dtype=float)

################################################################################
# Assembling
################################################################################

def assemble_biharmonic(basis, mp, f, g2=None, penalty=DEFAULT_PENALTY,
                        interfaces=False, verbose=False):
    r"""Assemble the stiffness matrix and load vector of the biharmonic problem.

    Args:
        basis (:class:`.MappedBasis`): the global basis
        mp (:class:`.MultiPatch`): the multi-patch geometry
        f: source function `f(x, y)` in physical coordinates
        g2: the prescribed normal derivative `g2(x, y)` on the boundary;
            if `None`, no boundary terms are added
        penalty (float): Nitsche penalty factor; the actual penalty is
            `penalty * (p+1)^2 / h` with the local mesh size `h`
        interfaces (bool): whether to add the symmetric Nitsche terms which
            couple the normal derivatives across interfaces
        verbose (bool): show a progress bar

    Returns:
        a pair `(A, rhs)` of a CSR matrix and a vector. If `interfaces` is
        True, an array containing the penalty parameter of each
        interface is returned as a third element.

    The bilinear form is

    .. math::
        a(u,v) = \sum_k \int_{\Omega_k} \Delta u \Delta v
            - \int_{\Gamma} (\Delta u\, \partial_n v + \partial_n u\, \Delta v)
            + \int_{\Gamma} \frac{\mu}{h} \partial_n u\, \partial_n v,

    where `Gamma` denotes the boundary and, for the interface terms, `Delta`
    is replaced by the average and `d_n` by the jump across the interface.
    """
    N = basis.global_dofs
    A = scipy.sparse.csr_matrix((N, N))
    rhs = np.zeros(N)
    pbar = utils.progress_bar(verbose)

    for patch in pbar(range(mp.numpatches), desc='patches'):
        geo = mp.geo(patch)
        kvs = basis.bases[patch].kvs
        nqp = num_quadrature_points(basis, patch)
        grid, weights = make_tensor_quadrature([kv.mesh for kv in kvs], nqp)
        X, jac, D0, _, _, Lap = basis_derivatives(basis, patch, geo, grid)
        w = np.outer(weights[0], weights[1]).ravel() * np.abs(utils.determinants(jac))
        A = A + Lap.T.dot(_scale(w, Lap))
        rhs += D0.T.dot(w * _eval_physical(f, X))

    if g2 is not None:
        for (patch, side) in mp.boundaries:
            nqp = num_quadrature_points(basis, patch)
            t, wt = side_quadrature(mp.kvs(patch), side, nqp)
            X, ds, _, D_n, Lap = side_operators(basis, mp, patch, side, t)
            w = wt * ds
            p = max(kv.p for kv in mp.kvs(patch))
            mu = penalty * (p + 1)**2 / side_meshsize(mp, patch, side)
            sym = Lap.T.dot(_scale(w, D_n))
            A = A - sym - sym.T + mu * D_n.T.dot(_scale(w, D_n))
            gvals = w * _eval_physical(g2, X)
            rhs += -Lap.T.dot(gvals) + mu * D_n.T.dot(gvals)

    penalties = []
    if interfaces:
        for intf in mp.interfaces:
            A_intf, mu = _interface_terms(basis, mp, intf, penalty)
            A = A + A_intf
            penalties.append(mu)

    A = A.tocsr()
    if interfaces:
        return A, rhs, np.array(penalties)
    return A, rhs

def _interface_terms(basis, mp, intf, penalty):
    nqp = max(num_quadrature_points(basis, intf.patch1), num_quadrature_points(basis, intf.patch2))
    t, wt = side_quadrature(mp.kvs(intf.patch1), intf.side1, nqp)
    t2 = t
    if intf.flip:
        lo, hi = mp.geo(intf.patch2).support[along_axis(intf.side2)]
        t2 = lo + hi - t
    _, ds, _, Dn1, Lap1 = side_operators(basis, mp, intf.patch1, intf.side1, t)
    _, _, _, Dn2, Lap2 = side_operators(basis, mp, intf.patch2, intf.side2, t2)
    w = wt * ds
    jump = (Dn1 + Dn2).tocsr()        # outward normals of both patches
    avg = (0.5 * (Lap1 + Lap2)).tocsr()
    p = max(kv.p for kv in tuple(mp.kvs(intf.patch1)) + tuple(mp.kvs(intf.patch2)))
    h = 0.5 * (side_meshsize(mp, intf.patch1, intf.side1) + side_meshsize(mp, intf.patch2, intf.side2))
    mu = penalty * (p + 1)**2 / h
    sym = avg.T.dot(_scale(w, jump))
    return -sym - sym.T + mu * jump.T.dot(_scale(w, jump)), mu

################################################################################
# Boundary conditions
################################################################################

def compute_dirichlet_bcs(basis, mp, g1, tol=1e-10):
    """Compute indices and values for the boundary condition `u = g1`.

    The global functions which do not vanish on the boundary are determined,
    and their coefficients are computed by an L2 projection of `g1` onto
    their traces (in the least squares sense, since traces may be linearly
    dependent).

    Returns:
        A pair `(indices, values)` suitable for passing to
        :class:`RestrictedLinearSystem`.
    """
    rows, gvals, weights = [], [], []
    for (patch, side) in mp.boundaries:
        nqp = num_quadrature_points(basis, patch)
        t, wt = side_quadrature(mp.kvs(patch), side, nqp)
        geo = mp.geo(patch)
        grid = side_grid(side, t, geo.support)
        D0 = basis.grid_derivs(patch, grid, derivs=0)[0][0]
        X, T, _ = side_jacobian(geo, side, t)
        rows.append(D0)
        gvals.append(_eval_physical(g1, X))
        weights.append(wt * np.linalg.norm(T, axis=1))
    if not rows:
        return np.zeros(0, dtype=int), np.zeros(0)
    B = scipy.sparse.vstack(rows).tocsc()
    w = np.concatenate(weights)
    g = np.concatenate(gvals)

    M = B.T.dot(_scale(w, B)).tocsr()
    d = np.sqrt(np.abs(M.diagonal()))
    indices = np.nonzero(d > tol * max(d.max(), 1.0))[0]
    M_bd = M[indices][:, indices].toarray()
    b_bd = B[:, indices].T.dot(w * g)
    values = scipy.linalg.lstsq(M_bd, b_bd)[0]
    return indices, values


class RestrictedLinearSystem:
    """Represents a linear system with some of its dofs eliminated.

    Args:
        A: the full matrix
        b: the right-hand side (may be 0)
        bcs: a pair of arrays `(indices, values)` which contain the
            indices and values, respectively, of dofs to be eliminated
            from the system

    Once constructed, the restricted linear system can be accessed through
    the following attributes:

    Attributes:
        A: the restricted matrix
        b: the restricted and updated right-hand side
    """
    def __init__(self, A, b, bcs):
        indices, values = bcs
        indices = np.asarray(indices, dtype=int)
        if np.isscalar(b):
            b = np.broadcast_to(b, A.shape[0])
        if np.isscalar(values):
            values = np.broadcast_to(values, indices.shape[0])
        order = np.argsort(indices)
        indices, values = indices[order], np.asarray(values, dtype=float)[order]
        self.values = values

        I = scipy.sparse.eye(A.shape[1], format='csr')
        # compute mask which contains non-eliminated dofs
        mask = np.ones(A.shape[1], dtype=bool)
        mask[list(indices)] = False

        self.R_free = I[mask]
        self.R_elim = I[np.logical_not(mask)]

        self.A = self.restrict_matrix(A)
        self.b = self.restrict(b - A.dot(self.R_elim.T.dot(values)))

    def restrict(self, u):
        """Given a vector `u` containing all dofs, return its restriction to the free dofs."""
        return self.R_free.dot(u)

    def restrict_matrix(self, B):
        """Given a matrix `B` which operates on all dofs, return its restriction to the free dofs."""
        if not scipy.sparse.issparse(B):
            # the code below only works for sparse matrices
            B = scipy.sparse.csr_matrix(B)
        return self.R_free.dot(B).dot(self.R_free.T).tocsr()

    def extend(self, u):
        """Given a vector `u` containing only the free dofs, pad it with zeros to all dofs."""
        return self.R_free.T.dot(u)

    def complete(self, u):
        """Given a solution `u` of the restricted linear system, complete it
        with the values of the eliminated dofs to a solution of the original
        system.
        """
        return self.extend(u) + self.R_elim.T.dot(self.values)
