"""Error norms of multi-patch functions.

All functions take a :class:`.MultiPatch` and a list `funcs` containing one
scalar function per patch in the parameter domain (e.g., as returned by
:meth:`.MappedBasis.function`; any object with `grid_eval`, `grid_jacobian`
and `grid_hessian` works). Exact solutions and their derivatives are
functions of the physical coordinates `(x, y)`.

The integrals are computed patchwise with an iterated Gauss rule with `p+1`
nodes per knot span.
"""
import numpy as np

from . import utils
from .quadrature import make_tensor_quadrature
from .assemble import (physical_derivatives, side_quadrature, _outward_normal,
        _eval_physical, _geometry_data)
from .topology import along_axis, side_grid, side_jacobian

def _num_quadrature_points(mp, func, patch):
    mb = getattr(func, 'mapped_basis', None)
    if mb is not None:
        return mb.bases[patch].max_degree() + 1
    return max(kv.p for kv in mp.kvs(patch)) + 1

def _physical_data(mp, func, patch, grid):
    """Points, jacobians and physical derivatives `(u, grad, hess)` of a function on a grid."""
    geo = mp.geo(patch)
    X, jac, geo_hess = _geometry_data(geo, grid)
    u = func.grid_eval(grid).ravel()
    du = func.grid_jacobian(grid).reshape((-1, 2))
    ddu = func.grid_hessian(grid).reshape((-1, 3))
    # parametric derivatives in XY order: (d_u, d_v), (d_uu, d_uv, d_vv)
    D_x, D_y, D_xx, D_xy, D_yy = physical_derivatives(du[:, 0], du[:, 1],
            ddu[:, 0], ddu[:, 1], ddu[:, 2], jac, geo_hess)
    return X, jac, u, np.column_stack((D_x, D_y)), np.column_stack((D_xx, D_xy, D_yy))

def _integrate_error(mp, funcs, error_density):
    total = 0.0
    for patch in range(mp.numpatches):
        func = funcs[patch]
        nqp = _num_quadrature_points(mp, func, patch)
        grid, weights = make_tensor_quadrature([kv.mesh for kv in mp.kvs(patch)], nqp)
        X, jac, u, grad, hess = _physical_data(mp, func, patch, grid)
        w = np.outer(weights[0], weights[1]).ravel() * np.abs(utils.determinants(jac))
        total += np.sum(w * error_density(X, u, grad, hess))
    return np.sqrt(total)

def l2_error(mp, funcs, exact):
    """L2 norm of the difference between `funcs` and the function `exact(x, y)`."""
    def density(X, u, grad, hess):
        return (u - _eval_physical(exact, X))**2
    return _integrate_error(mp, funcs, density)

def h1_seminorm_error(mp, funcs, grad_exact):
    """H1 seminorm of the error; `grad_exact(x, y)` returns the tuple `(u_x, u_y)`."""
    def density(X, u, grad, hess):
        return np.sum((grad - _eval_physical(grad_exact, X))**2, axis=-1)
    return _integrate_error(mp, funcs, density)

def h2_seminorm_error(mp, funcs, hess_exact):
    """H2 seminorm of the error; `hess_exact(x, y)` returns the tuple
    `(u_xx, u_xy, u_yy)`. The mixed derivative is counted twice."""
    def density(X, u, grad, hess):
        e = hess - _eval_physical(hess_exact, X)
        return e[:, 0]**2 + 2 * e[:, 1]**2 + e[:, 2]**2
    return _integrate_error(mp, funcs, density)

def _normal_derivative(mp, func, patch, side, t):
    grid = side_grid(side, t, mp.geo(patch).support)
    _, _, _, grad, _ = _physical_data(mp, func, patch, grid)
    _, T, N = side_jacobian(mp.geo(patch), side, t)
    n = _outward_normal(T, N)
    return np.sum(grad * n, axis=1), np.linalg.norm(T, axis=1)

def interface_jump(mp, funcs):
    """L2 norm of the jump of the normal derivative across each interface.

    Returns:
        an array with one entry per interface of `mp`, in the order of
        `mp.interfaces`
    """
    jumps = []
    for intf in mp.interfaces:
        nqp = max(_num_quadrature_points(mp, funcs[intf.patch1], intf.patch1),
                  _num_quadrature_points(mp, funcs[intf.patch2], intf.patch2))
        t, wt = side_quadrature(mp.kvs(intf.patch1), intf.side1, nqp)
        t2 = t
        if intf.flip:
            lo, hi = mp.geo(intf.patch2).support[along_axis(intf.side2)]
            t2 = lo + hi - t
        dn1, ds = _normal_derivative(mp, funcs[intf.patch1], intf.patch1, intf.side1, t)
        dn2, _ = _normal_derivative(mp, funcs[intf.patch2], intf.patch2, intf.side2, t2)
        # outward normals are opposite, so the derivatives cancel for C1 functions
        jumps.append(np.sqrt(np.sum(wt * ds * (dn1 + dn2)**2)))
    return np.array(jumps)
