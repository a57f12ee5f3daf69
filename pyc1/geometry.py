"""Functions for creating and manipulating tensor product B-spline patches.

All geometries are :class:`.BSplineFunc` instances mapping the unit square
(or a given box) into the plane.
"""
import numpy as np

from . import bspline
from .bspline import BSplineFunc

import functools

def line_segment(x0, x1, intervals=1):
    """Return a :class:`.BSplineFunc` which describes the line between the
    vectors `x0` and `x1`, parametrized over (0,1).

    If specified, `intervals` is the number of intervals in the underlying
    linear spline space. By default, the minimal spline space with 2 dofs is
    used.
    """
    if np.isscalar(x0): x0 = [x0]
    if np.isscalar(x1): x1 = [x1]
    assert len(x0) == len(x1), 'Vectors must have same dimension'
    # produce 1D arrays
    x0 = np.array(x0, dtype=float).ravel()
    x1 = np.array(x1, dtype=float).ravel()
    # interpolate linearly
    S = np.linspace(0.0, 1.0, intervals+1).reshape((intervals+1, 1))
    coeffs = (1-S) * x0 + S * x1
    return BSplineFunc(bspline.make_knots(1, 0.0, 1.0, intervals), coeffs)

def tensor_product(G1, G2, *Gs):
    r"""Compute the tensor product of two or more :class:`.BSplineFunc` functions.
    This means that given two input functions

    .. math:: G_1(y), G_2(x),

    it returns a new function

    .. math:: G(x,y) = G_2(x) \times G_1(y),

    where :math:`\times` means that vectors are joined together.
    """
    if Gs != ():
        return tensor_product(G1, tensor_product(G2, *Gs))
    if G1.is_scalar():
        G1 = G1.as_vector()
    if G2.is_scalar():
        G2 = G2.as_vector()
    assert G1.is_vector() and G2.is_vector(), 'only implemented for scalar- or vector-valued functions'

    Gs = (G1, G2)
    Cs = tuple(G.coeffs for G in Gs)
    SD1, SD2 = (np.atleast_1d(C.shape[:G.sdim]) for (C,G) in zip(Cs,Gs))
    VD1, VD2 = (np.atleast_1d(C.shape[G.sdim:]) for (C,G) in zip(Cs,Gs))
    shape1 = np.concatenate((SD1, np.ones_like(SD2), VD1))
    shape2 = np.concatenate((np.ones_like(SD1), SD2, VD2))
    target_shape1 = np.concatenate((SD1, SD2, VD1))
    target_shape2 = np.concatenate((SD1, SD2, VD2))
    C1 = np.broadcast_to(np.reshape(Cs[0], shape1), target_shape1)
    C2 = np.broadcast_to(np.reshape(Cs[1], shape2), target_shape2)
    # NB: coefficients are in XY order, but coordinate axes in YX order!
    C = np.concatenate((C2,C1), axis=-1)
    return BSplineFunc(G1.kvs + G2.kvs, C)

def unit_square(num_intervals=1):
    """Unit square with given number of intervals per direction.

    Returns:
        :class:`.BSplineFunc` 2D geometry
    """
    return functools.reduce(tensor_product,
            2 * (line_segment(0.0, 1.0, intervals=num_intervals),))

def identity(extents):
    """Identity mapping (using bilinear splines) from the unit square onto the
    box given by `extents` as a list of `(min,max)` pairs in YX order.

    Returns:
        :class:`.BSplineFunc` geometry
    """
    return functools.reduce(tensor_product,
            (line_segment(ex[0], ex[1]) for ex in extents))

def bilinear_patch(P00, P10, P01, P11):
    """Bilinear patch with the given corner points.

    The corners are given in the corner order `(u,v) = (0,0), (1,0), (0,1), (1,1)`.

    Returns:
        :class:`.BSplineFunc` 2D geometry
    """
    kv = bspline.make_knots(1, 0.0, 1.0, 1)
    coeffs = np.array([[P00, P10], [P01, P11]], dtype=float)    # axis 0 is v
    return BSplineFunc((kv, kv), coeffs)

def perturbed_square(num_intervals=5, noise=0.02, seed=None):
    """Randomly perturbed unit square.

    Unit square with given number of intervals per direction;
    the interior control points are perturbed randomly according to the
    given noise level while the boundary stays straight.

    Returns:
        :class:`.BSplineFunc` 2D geometry
    """
    return unit_square(num_intervals).perturb(noise, seed=seed)

def corners(geo, ravel=False):
    """Return an array containing the locations of the 2^d corners of the given
    geometry."""
    vtx = geo.grid_eval(geo.support)
    if ravel:
        return vtx.reshape((-1,geo.dim))
    return vtx
