from pyc1.approx import *
from pyc1 import bspline, geometry
import numpy as np

def _test_approx(approx_fun, extra_dims):
    kvs = [bspline.make_knots(p, 0.0, 1.0, 8+p) for p in range(3,5)]
    N = [kv.numdofs for kv in kvs]
    coeffs = np.random.random_sample(N + extra_dims)
    func = geometry.BSplineFunc(kvs, coeffs)
    result = approx_fun(kvs, func)
    assert np.allclose(coeffs, result)

    # try also with direct function call
    def f(X, Y):
        return func.grid_eval([np.squeeze(w) for w in (Y,X)])
    result = approx_fun(kvs, f)
    assert np.allclose(coeffs, result)

def test_interpolate():
    _test_approx(interpolate, [])    # scalar-valued

def test_interpolate_vector():
    _test_approx(interpolate, [3])   # vector-valued

def test_interpolate_matrix():
    _test_approx(interpolate, [2,2]) # matrix-valued

def test_interpolate_array():
    # values at the Gréville nodes, with trailing axes
    kvs = 2 * (bspline.make_knots(3, 0.0, 1.0, 4),)
    nodes = [kv.greville() for kv in kvs]
    Y, X = np.meshgrid(nodes[0], nodes[1], indexing='ij')
    vals = np.stack((np.ones_like(X), X, Y*X), axis=-1)
    C = interpolate(kvs, vals)
    assert C.shape == (7, 7, 3)
    f = geometry.BSplineFunc(kvs, C[..., 2])
    assert np.allclose(f.grid_eval(nodes), Y*X)

def test_interpolate_wrong_shape():
    kvs = 2 * (bspline.make_knots(3, 0.0, 1.0, 4),)
    import pytest
    with pytest.raises(ValueError):
        interpolate(kvs, np.zeros((6, 7)))

def test_interpolate_geo():
    # interpolation in physical coordinates of a function which is linear
    # on an affine geometry
    geo = geometry.bilinear_patch((0,0), (2,0), (0.5,1), (2.5,1))
    kvs = 2 * (bspline.make_knots(2, 0.0, 1.0, 3),)
    C = interpolate(kvs, lambda x, y: x + 2*y, geo=geo)
    u = geometry.BSplineFunc(kvs, C)
    grid = 2 * (np.linspace(0, 1, 6),)
    XY = geo.grid_eval(grid)
    assert np.allclose(u.grid_eval(grid), XY[..., 0] + 2*XY[..., 1])

def test_interpolate_1d():
    kv = bspline.make_knots(3, 0.0, 1.0, 6)
    C = interpolate(kv, lambda x: x**3)
    x = np.linspace(0, 1, 20)
    assert np.allclose(bspline.collocation(kv, x).dot(C), x**3)
