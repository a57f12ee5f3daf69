from pyc1.utils import *
import numpy as np
from numpy.random import rand

def test_apply_tprod():
    A, B = rand(3, 4), rand(5, 6)
    X = rand(4, 6)
    Y = apply_tprod((A, B), X)
    assert np.allclose(Y, A.dot(X).dot(B.T))
    # sparse operators and trailing axes
    X = rand(4, 6, 2)
    Y = apply_tprod((scipy.sparse.csr_matrix(A), B), X)
    for k in range(2):
        assert np.allclose(Y[..., k], A.dot(X[..., k]).dot(B.T))
    # None is the identity
    Y = apply_tprod((None, B), X[..., 0])
    assert np.allclose(Y, X[..., 0].dot(B.T))

def test_grid_eval():
    grid = (np.linspace(0, 1, 3), np.linspace(0, 1, 4))
    F = grid_eval(lambda x, y: x + 10*y, grid)
    assert F.shape == (3, 4)
    assert np.allclose(F[2, 1], 1.0/3 + 10)
    # functions which ignore some of their arguments are broadcast
    F = grid_eval(lambda x, y: 2.0 * np.ones_like(x), grid)
    assert F.shape == (3, 4)
    # vector-valued functions returning tuples
    F = grid_eval(lambda x, y: (x, y), grid)
    assert F.shape == (3, 4, 2)

def test_multi_kron():
    As = [rand(2, 3), rand(3, 2), rand(2, 2)]
    X = multi_kron_sparse([scipy.sparse.csr_matrix(A) for A in As])
    assert np.allclose(X.toarray(), np.kron(As[0], np.kron(As[1], As[2])))

def test_inverses_determinants():
    X = rand(5, 2, 2) + 2 * np.eye(2)
    Xi = inverses(X)
    assert np.allclose(np.matmul(X, Xi), np.eye(2))
    assert np.allclose(determinants(X), X[:,0,0]*X[:,1,1] - X[:,0,1]*X[:,1,0])

def test_progress_bar():
    pbar = progress_bar(False)
    assert list(pbar(range(3), desc='test')) == [0, 1, 2]
    with pbar(total=3) as p:
        p.update()
