import numpy as np
import scipy.sparse

def _modek_tensordot_sparse(B, X, k):
    # This does the same as the np.tensordot() operation used in
    # `apply_tprod`, but works for sparse matrices and LinearOperators.
    nk = X.shape[k]
    assert nk == B.shape[1]

    # bring the k-th axis to the front
    Xk = np.rollaxis(X, k, 0)
    shp = Xk.shape

    # matricize and apply operator B
    Xk = Xk.reshape((nk, -1))
    Yk = B.dot(Xk)
    if Yk.shape[0] != nk:   # size changed?
        shp = (Yk.shape[0],) + shp[1:]
    # reshape back, new axis is in first position
    return np.reshape(Yk, shp)

def apply_tprod(ops, A):
    """Apply multi-way tensor product of operators to tensor `A`.

    Args:
        ops (seq): a list of matrices, sparse matrices, or LinearOperators
        A (tensor): the tensor to apply the multi-way tensor product to
    Returns:
        a new tensor with the same number of axes as `A` that is the result of
        applying the tensor product operator ``ops[0] x ... x ops[-1]`` to `A`.

    The initial dimensions of `A` must match the sizes of the
    operators, but `A` is allowed to have an arbitrary number of
    trailing dimensions. ``None`` is a valid operator and is
    treated like the identity.
    """
    n = len(ops)
    for i in reversed(range(n)):
        if ops[i] is not None:
            if isinstance(ops[i], np.ndarray):
                A = np.tensordot(ops[i], A, axes=([1],[n-1]))
            else:
                A = _modek_tensordot_sparse(ops[i], A, n-1)
        else:   # None means identity
            A = np.rollaxis(A, n-1, 0)   # bring this axis to the front
    return A

def _broadcast_to_grid(X, grid_shape):
    num_dims = len(grid_shape)
    # input might be a single scalar; make sure it's an array
    X = np.asanyarray(X)
    # if the field X is not scalar, we need include the extra dimensions
    target_shape = grid_shape + X.shape[num_dims:]
    if X.shape != target_shape:
        X = np.broadcast_to(X, target_shape)
    return X

def _ensure_grid_shape(values, grid):
    """Convert tuples of arrays into higher-dimensional arrays and make sure
    the array conforms to the grid size."""
    grid_shape = tuple(len(g) for g in grid)

    # if values is a tuple, interpret as vector-valued function
    if isinstance(values, tuple):
        values = np.stack(tuple(_broadcast_to_grid(v, grid_shape) for v in values),
                axis=-1)

    # If values came from a function which uses only some of its arguments,
    # values may have the wrong shape. In that case, broadcast it to the full
    # mesh extent.
    return _broadcast_to_grid(values, grid_shape)

def grid_eval(f, grid):
    """Evaluate function `f` over the tensor grid `grid`."""
    if hasattr(f, 'grid_eval'):
        return f.grid_eval(grid)
    else:
        mesh = list(np.meshgrid(*grid, sparse=True, indexing='ij'))
        mesh.reverse() # convert order ZYX into XYZ
        values = f(*mesh)
        return _ensure_grid_shape(values, grid)

def grid_eval_transformed(f, grid, geo):
    """Transform the tensor grid `grid` by the geometry transform `geo` and
    evaluate `f` on the resulting grid.
    """
    trf_grid = grid_eval(geo, grid) # array of size shape(grid) x dim
    # extract coordinate components
    X = tuple(trf_grid[..., i] for i in range(trf_grid.shape[-1]))
    # evaluate the function
    vals = f(*X)
    return _ensure_grid_shape(vals, grid)

def multi_kron_sparse(As, format='csr'):
    """Compute the (sparse) Kronecker product of a sequence of sparse matrices."""
    if len(As) == 1:
        return As[0].asformat(format, copy=True)
    else:
        return scipy.sparse.kron(As[0], multi_kron_sparse(As[1:], format=format), format=format)

def determinants(X):
    """Compute the determinants of an ndarray of square matrices.

    Args:
        X (ndarray): array of square matrices; the matrices are stored
            in the last two axes
    """
    return np.linalg.det(X)

def inverses(X):
    """Compute the inverses of an ndarray of square matrices (stored in the last two axes)."""
    return np.linalg.inv(X)


def _noop(self, *args, **kwargs): pass
class _DummyPbar:
    """No-op stand-in for tqdm."""
    def __init__(self, *args, **kwags):
        if len(args) > 0:
            self.r = args[0]
    def __iter__(self):
        return iter(self.r)
    def __enter__(self):
        return self
    __exit__ = _noop
    update   = _noop
    close    = _noop
    set_postfix = _noop

def progress_bar(enable=True):
    if enable:
        import tqdm
        return tqdm.tqdm
    else:
        return _DummyPbar
