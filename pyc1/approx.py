# -*- coding: utf-8 -*-
"""Methods for approximating functions in spline spaces."""

from . import bspline
from . import utils

import numpy as np
import scipy.sparse.linalg

def _make_solver(B):
    """Return a LinearOperator that acts as the inverse of the sparse matrix `B`."""
    solve = scipy.sparse.linalg.factorized(B.tocsc())
    def matmat(X):
        X = np.asarray(X)
        if X.ndim == 1:
            return solve(X)
        return np.column_stack([solve(X[:, j]) for j in range(X.shape[1])])
    return scipy.sparse.linalg.LinearOperator(B.shape, matvec=solve, matmat=matmat,
            dtype=B.dtype)

def interpolate(kvs, f, geo=None, nodes=None):
    """Perform interpolation in a spline space.

    Returns the coefficients for the interpolant of the function `f` in the
    tensor product B-spline basis `kvs`.

    By default, `f` is assumed to be defined in the parameter domain. If a
    geometry is passed in `geo`, interpolation is instead done in physical
    coordinates.

    `nodes` should be a tensor grid (i.e., a sequence of one-dimensional
    arrays) in the parameter domain specifying the interpolation nodes. If not
    specified, the Gréville abscissae are used.

    It is possible to pass an array of function values for `f` instead of a
    function; they should have the proper shape and correspond to the function
    values at the `nodes`. In this case, `geo` is ignored.
    """
    if isinstance(kvs, bspline.KnotVector):
        kvs = (kvs,)
    if nodes is None:
        nodes = [kv.greville() for kv in kvs]

    # evaluate f at interpolation nodes?
    if isinstance(f, np.ndarray):
        # check that leading dimensions match the number of dofs
        if np.shape(f)[:len(kvs)] != tuple(kv.numdofs for kv in kvs):
            raise ValueError('array f has wrong shape')
        rhs = f
    else:
        if geo is not None:
            rhs = utils.grid_eval_transformed(f, nodes, geo)
        else:
            rhs = utils.grid_eval(f, nodes)

    Cinvs = [_make_solver(bspline.collocation(kvs[i], nodes[i]))
                for i in range(len(kvs))]
    return utils.apply_tprod(Cinvs, np.asarray(rhs, dtype=float))
