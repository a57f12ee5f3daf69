"""Global basis functions represented through the component spaces of each patch.

.. autoclass:: MappedBasis
    :members:

.. autoclass:: MappedFunc
    :members:
"""
import numpy as np
import scipy.sparse

from .bspline import _BaseSplineFunc


class MappedBasis:
    """A global basis given by a sparse coefficient matrix with respect to
    the local component spaces of each patch.

    Args:
        bases: list of initialized :class:`.C1Basis` containers
        matrix: sparse matrix of shape `(sum of local coefficients, number
            of global functions)`; column `k` contains the local
            coefficients of the `k`-th global function
    """
    def __init__(self, bases, matrix):
        self.bases = bases
        self.matrix = scipy.sparse.csr_matrix(matrix)
        sizes = [basis.size_cols() for basis in bases]
        self.offsets = np.concatenate(([0], np.cumsum(sizes)))
        assert self.matrix.shape[0] == self.offsets[-1], 'matrix does not match the local spaces'

    @property
    def numpatches(self):
        return len(self.bases)

    @property
    def global_dofs(self):
        """Number of global functions."""
        return self.matrix.shape[1]

    def local_size(self, patch):
        return self.bases[patch].size_cols()

    def local_matrix(self, patch):
        """The rows of the coefficient matrix which belong to the given patch."""
        return self.matrix[self.offsets[patch]:self.offsets[patch+1]]

    def active_functions(self, patch):
        """Indices of the global functions which do not vanish on the given patch."""
        M = self.local_matrix(patch).tocsc()
        return np.nonzero(np.diff(M.indptr))[0]

    def grid_derivs(self, patch, gridaxes, derivs=0):
        """Derivatives of all global functions on a tensor grid of the patch.

        Returns a list of `derivs+1` lists of sparse matrices of shape
        `(num_points, global_dofs)`, in the order of
        :func:`.bspline.collocation_derivs_tp`.
        """
        D = self.bases[patch].collocation_derivs(gridaxes, derivs=derivs)
        M = self.local_matrix(patch)
        return [[(Dk.dot(M)).tocsr() for Dk in D[k]] for k in range(derivs + 1)]

    def grid_eval(self, patch, coeffs, gridaxes):
        """Evaluate the function with the global coefficients `coeffs` on a
        tensor grid of the patch."""
        return self.patch_function(patch, coeffs).grid_eval(gridaxes)

    def patch_function(self, patch, coeffs):
        """Restriction of the function with global coefficients `coeffs` to a patch."""
        return MappedFunc(self, patch, coeffs)

    def function(self, coeffs):
        """List of the patch restrictions of the function with global coefficients `coeffs`."""
        return [self.patch_function(p, coeffs) for p in range(self.numpatches)]

    def single_function(self, k):
        """The `k`-th global basis function as a list of patch functions."""
        if not 0 <= k < self.global_dofs:
            raise IndexError('invalid function index %d' % k)
        e = np.zeros(self.global_dofs)
        e[k] = 1.0
        return self.function(e)


class MappedFunc(_BaseSplineFunc):
    """A scalar function on one patch, given by global coefficients with
    respect to a :class:`MappedBasis`.

    Supports the evaluation interface of :class:`.BSplineFunc`
    (:meth:`grid_eval`, :meth:`grid_jacobian`, :meth:`grid_hessian`).
    """
    def __init__(self, mapped_basis, patch, coeffs):
        self.mapped_basis = mapped_basis
        self.patch = patch
        coeffs = np.asarray(coeffs, dtype=float)
        assert coeffs.shape == (mapped_basis.global_dofs,), 'wrong length of coefficient vector'
        self.coeffs = coeffs
        self.local_coeffs = mapped_basis.local_matrix(patch).dot(coeffs)
        self.kvs = mapped_basis.bases[patch].kvs
        self.sdim = 2
        self.dim = 1

    def output_shape(self):
        return ()

    @property
    def support(self):
        return tuple(kv.support() for kv in self.kvs)

    def _derivs(self, gridaxes, derivs):
        gridaxes = tuple(np.ravel(ax) for ax in gridaxes)
        assert len(gridaxes) == self.sdim, "Input has wrong dimension"
        shape = tuple(len(ax) for ax in gridaxes)
        D = self.mapped_basis.bases[self.patch].collocation_derivs(gridaxes, derivs=derivs)
        return [[Dk.dot(self.local_coeffs).reshape(shape) for Dk in D[k]]
                for k in range(derivs + 1)]

    def grid_eval(self, gridaxes):
        return self._derivs(gridaxes, 0)[0][0]

    def grid_jacobian(self, gridaxes):
        """Gradient `(d_x, d_y)` on a tensor grid."""
        D = self._derivs(gridaxes, 1)
        d_y, d_x = D[1]
        return np.stack((d_x, d_y), axis=-1)

    def grid_hessian(self, gridaxes):
        """Hessian components `(d_xx, d_xy, d_yy)` on a tensor grid."""
        D = self._derivs(gridaxes, 2)
        d_yy, d_xy, d_xx = D[2]
        return np.stack((d_xx, d_xy, d_yy), axis=-1)
