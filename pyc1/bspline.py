# -*- coding: utf-8 -*-
"""Functions and classes for B-spline basis functions.

Besides evaluation and interpolation, :class:`KnotVector` provides the knot
manipulations which are needed to derive the spline spaces of the
approximate C1 construction: degree elevation, increase and decrease of the
degree at the ends, change of the interior knot multiplicities, and
reflection of the parameter interval.
"""

import numpy as np
import scipy.sparse

from .utils import apply_tprod

def _parse_bdspec(bdspec, dim):
    if bdspec == 'left':
        bd = ((dim - 1, 0),)
    elif bdspec == 'right':
        bd = ((dim - 1, 1),)
    elif bdspec == 'bottom':
        bd = ((dim - 2, 0),)
    elif bdspec == 'top':
        bd = ((dim - 2, 1),)
    else:
        bd = bdspec
        if not all((side in (0,1) for _, side in bd)):
            raise ValueError('invalid bdspec ' + str(bd))
        if any((ax < 0 or ax >= dim for ax, _ in bd)):
            raise ValueError('invalid bdspec %s for space of dimension %d'
                % (bdspec, dim))
    return bd


def multi_indices(N, k=0):
    assert N>0 and k>=0, "N must be positive and k non-negative."
    if N==1:
        yield (k,)
    else:
        for i in range(k,-1,-1):
            for j in multi_indices(N-1,k-i):
                yield (i,) + j

class KnotVector:
    """Represents an open B-spline knot vector together with a spline degree.

    Args:
        knots (ndarray): the 1D knot vector. Should be an open knot vector,
            i.e., the first and last knot should be repeated `p+1` times.
            Interior knots may be single or repeated up to `p` times.
        p (int): the spline degree.

    This class is commonly used to represent the B-spline basis
    over the given knot vector with the given spline degree.
    The B-splines are normalized in the sense that they satisfy a
    partition of unity property.

    Tensor product B-spline bases are typically represented simply as tuples of
    the univariate knot spans. E.g., ``(kv1, kv2)`` would represent the tensor
    product basis formed from the two B-spline bases over the
    :class:`KnotVector` instances ``kv1`` and ``kv2``.

    All methods which modify the knots (:meth:`degree_elevate`,
    :meth:`increase_multiplicity`, ...) return a new knot vector and leave
    the original one untouched.

    Attributes:
        kv (ndarray): vector of knots
        p (int): spline degree
    """

    def __init__(self, knots, p):
        """Construct an open B-spline knot vector with given `knots` and degree `p`."""
        self.kv = np.asarray(knots, dtype=float)
        # sanity check: knots should be monotonically increasing
        assert np.all(self.kv[1:] - self.kv[:-1] >= 0), 'knots should be increasing'
        self.p = p
        self._mesh = None    # knots with duplicates removed (on demand)
        self._knots_to_mesh = None   # knot indices to mesh indices (on demand)

    @classmethod
    def from_mesh(cls, mesh, mult, p):
        """Construct a knot vector from its unique knots and their multiplicities."""
        return cls(np.repeat(np.asarray(mesh, dtype=float), mult), p)

    def __str__(self):
        return '<KnotVector p=%d sz=%d>' % (self.p, self.kv.size)

    def __repr__(self):
        return 'KnotVector(%s, %s)' % (repr(self.kv), repr(self.p))

    def __eq__(self, other):
        if not isinstance(other, KnotVector):
            return NotImplemented
        if self.p == other.p and len(self.kv) == len(other.kv):
            if np.allclose(self.kv, other.kv, atol=1e-8, rtol=1e-8):
                return True
        return False

    def __ne__(self, other):
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    __hash__ = None

    @property
    def numdofs(self):
        """Number of basis functions in a B-spline basis defined over this knot vector"""
        return self.kv.size - self.p - 1

    @property
    def numspans(self):
        """Number of nontrivial intervals in the knot vector"""
        return self.mesh.size - 1

    def copy(self):
        """Return a copy of this knot vector."""
        return KnotVector(self.kv.copy(), self.p)

    def support(self, j=None):
        """Support of the knot vector or, if `j` is passed, of the j-th B-spline"""
        if j is None:
            return (self.kv[0], self.kv[-1])
        else:
            return (self.kv[j], self.kv[j+self.p+1])

    def _ensure_mesh(self):
        """Make sure that the _mesh and _knots_to_mesh arrays are set up"""
        if self._knots_to_mesh is None:
            self._mesh, self._knots_to_mesh = np.unique(self.kv, return_inverse=True)

    @property
    def mesh(self):
        """Return the mesh, i.e., the vector of unique knots in the knot vector."""
        self._ensure_mesh()
        return self._mesh

    def multiplicities(self):
        """Return the multiplicity of each knot in :attr:`mesh`."""
        self._ensure_mesh()
        return np.bincount(np.ravel(self._knots_to_mesh), minlength=self._mesh.size)

    def interior_multiplicities(self):
        """Return the multiplicities of the interior knots (may be empty)."""
        return self.multiplicities()[1:-1]

    def has_interior_knots(self):
        return self.mesh.size > 2

    def greville(self):
        """Compute Gréville abscissae for this knot vector"""
        p = self.p
        if p == 0:
            return (self.kv[1:] + self.kv[:-1]) / 2     # cell middle points
        else:
            # running averages over p knots
            g = (np.convolve(self.kv, np.ones(p) / p))[p:-p]
            # due to rounding errors, some points may not be contained in the
            # support interval; clamp them manually to avoid problems later on
            return np.clip(g, self.kv[0], self.kv[-1])

    def refine(self, new_knots=None, mult=1):
        """Return the refinement of this knot vector by inserting `new_knots`,
        or performing uniform refinement if none are given."""
        if new_knots is None:
            mesh = self.mesh
            new_knots = (mesh[1:] + mesh[:-1]) / 2
            if mult>1:
                new_knots = np.hstack(mult*[new_knots,])
        kvnew = np.sort(np.concatenate((self.kv, new_knots)))
        return KnotVector(kvnew, self.p)

    def insert_knot(self, u, mult=1):
        """Return a new knot vector with the knot `u` inserted `mult` times."""
        return self.refine(np.repeat(float(u), mult))

    def meshsize_avg(self):
        """Compute average length of the knot spans of this knot vector"""
        nspans = self.numspans
        support = abs(self.kv[-1] - self.kv[0])
        return support / nspans

    def reflect(self):
        """Return the knot vector obtained by the parameter reflection `t -> a + b - t`."""
        a, b = self.support()
        return KnotVector(a + b - self.kv[::-1], self.p)

    # Knot algebra
    #
    # Everything below works on the pair (mesh, multiplicities). Degree
    # elevation raises all multiplicities and thus keeps the smoothness,
    # while degree increase/decrease only touches the end knots and thus
    # changes the smoothness at the interior knots.

    def degree_elevate(self, t=1):
        """Raise the degree by `t`, keeping the smoothness at interior knots."""
        if t == 0:
            return self.copy()
        return KnotVector.from_mesh(self.mesh, self.multiplicities() + t, self.p + t)

    def degree_increase(self, t=1):
        """Raise the degree by `t`, changing only the end multiplicities."""
        if t == 0:
            return self.copy()
        mult = self.multiplicities()
        mult[0] += t
        mult[-1] += t
        return KnotVector.from_mesh(self.mesh, mult, self.p + t)

    def degree_decrease(self, t=1):
        """Lower the degree by `t`, changing only the end multiplicities."""
        if t > self.p:
            raise ValueError('cannot decrease degree %d by %d' % (self.p, t))
        if t == 0:
            return self.copy()
        mult = self.multiplicities()
        mult[0] -= t
        mult[-1] -= t
        mult[1:-1] = np.minimum(mult[1:-1], self.p - t + 1)
        return KnotVector.from_mesh(self.mesh, mult, self.p - t)

    def increase_multiplicity(self, t=1):
        """Increase the multiplicity of all interior knots by `t`."""
        mult = self.multiplicities()
        mult[1:-1] += t
        if np.any(mult[1:-1] > self.p + 1):
            raise ValueError('interior knot multiplicity would exceed p+1 = %d' % (self.p + 1))
        return KnotVector.from_mesh(self.mesh, mult, self.p)

    def reduce_multiplicity(self, t=1):
        """Reduce the multiplicity of all interior knots by `t`.

        Knots whose multiplicity drops to zero are removed.
        """
        mult = self.multiplicities()
        mult[1:-1] = np.maximum(mult[1:-1] - t, 0)
        keep = mult > 0
        return KnotVector.from_mesh(self.mesh[keep], mult[keep], self.p)

def make_knots(p, a, b, n, mult=1):
    """Create an open knot vector of degree `p` over an interval `(a,b)` with `n` knot spans.

    This automatically repeats the first and last knots `p+1` times in order
    to create an open knot vector. Interior knots are single by default, i.e., have
    maximum continuity.

    Args:
        p (int): the spline degree
        a (float): the starting point of the interval
        b (float): the end point of the interval
        n (int): the number of knot spans to divide the interval into
        mult (int): the multiplicity of interior knots

    Returns:
        :class:`KnotVector`: the new knot vector
    """
    kv = np.concatenate(
            (np.repeat(a, p+1),
             np.repeat(np.linspace(a, b, n+1)[1:-1], mult),
             np.repeat(b, p+1)))
    return KnotVector(kv, p)

def numdofs(kvs):
    """Convenience function which returns the number of dofs in a single knot vector
    or in a tensor product space represented by a tuple of knot vectors.
    """
    if isinstance(kvs, KnotVector):
        return kvs.numdofs
    else:
        return int(np.prod([kv.numdofs for kv in kvs]))

################################################################################

def findspans(kv, p, u):
    """Index `i` of the knot span `kv[i] <= u < kv[i+1]` for every point in `u`."""
    idx = np.searchsorted(kv, u, side='right') - 1
    return np.clip(idx, p, kv.size - p - 2)

def active_ev(knotvec, u):
    """Evaluate all active B-spline basis functions at the points `u`.

    Returns an array of shape (p+1, u.size) if `u` is an array."""
    if np.isscalar(u):
        return active_ev(knotvec, np.array([u]))[:, 0]
    else:
        return active_deriv(knotvec, u, 0)[0, :]

def active_deriv(knotvec, u, numderiv):
    """Evaluate all active B-spline basis functions and their derivatives
    up to `numderiv` at the points `u`.

    Returns an array with shape (numderiv+1, p+1) if `u` is scalar or
    an array with shape (numderiv+1, p+1, u.size) otherwise.
    """
    if np.isscalar(u):
        return active_deriv(knotvec, np.array([u], dtype=float), numderiv)[:, :, 0]
    u = np.asarray(u, dtype=float).ravel()
    kv, p = knotvec.kv, knotvec.p
    n = u.size
    span = findspans(kv, p, u)

    # NDU: upper triangle holds the basis functions of degree j in column j,
    # strictly lower triangle the knot differences (vectorized over points)
    NDU   = np.empty((p+1, p+1, n))
    left  = np.empty((p, n))
    right = np.empty((p, n))

    NDU[0, 0] = 1.0
    for j in range(1, p+1):
        left[j-1]  = u - kv[span+1-j]
        right[j-1] = kv[span+j] - u
        saved = np.zeros(n)
        for r in range(j):
            NDU[j, r] = right[r] + left[j-r-1]
            temp = NDU[r, j-1] / NDU[j, r]
            NDU[r, j] = saved + right[r] * temp
            saved = left[j-r-1] * temp
        NDU[j, j] = saved

    result = np.zeros((numderiv+1, p+1, n))
    result[0] = NDU[:, p]

    # derivatives of order > p vanish
    maxderiv = min(numderiv, p)
    for r in range(p+1):    # loop over basis functions
        a1 = np.zeros((p+1, n))
        a2 = np.zeros((p+1, n))
        a1[0] = 1.0
        fac = p         # fac = fac(p) / fac(p-k)

        for k in range(1, maxderiv+1):
            rk = r - k
            pk = p - k
            d = np.zeros(n)

            if r >= k:
                a2[0] = a1[0] / NDU[pk+1, rk]
                d = a2[0] * NDU[rk, pk]

            j1 = 1 if rk >= -1 else -rk
            j2 = k-1 if r-1 <= pk else p - r

            for j in range(j1, j2+1):
                a2[j] = (a1[j] - a1[j-1]) / NDU[pk+1, rk+j]
                d = d + a2[j] * NDU[rk+j, pk]

            if r <= pk:
                a2[k] = -a1[k-1] / NDU[pk+1, r]
                d = d + a2[k] * NDU[r, pk]

            result[k, r] = d * fac
            fac *= pk

            (a1, a2) = (a2, a1)

    return result

################################################################################

def collocation(kv, nodes):
    """Compute collocation matrix for B-spline basis at the given interpolation nodes.

    Args:
        kv (:class:`KnotVector`): the B-spline knot vector
        nodes (array): array of nodes at which to evaluate the B-splines

    Returns:
        A Scipy CSR matrix with shape `(len(nodes), kv.numdofs)` whose entry at
        `(i,j)` is the value of the `j`-th B-spline evaluated at `nodes[i]`.
    """
    nodes = np.ascontiguousarray(nodes, dtype=float).ravel()
    indices, values = collocation_info(kv, nodes)
    m, n = nodes.size, kv.numdofs       # collocation matrix size

    # compute I, J indices:
    # I: p + 1 entries per row
    I = np.repeat(np.arange(m), kv.p + 1)
    # J: arange(indices[k], indices[k] + p + 1) per row
    J = (indices[:, None] + np.arange(kv.p + 1)[None, :]).ravel()

    return scipy.sparse.coo_matrix((values.ravel(), (I,J)), shape=(m,n)).tocsr()

def collocation_info(kv, nodes):
    """Return two arrays: one containing the index of the first active B-spline
    per evaluation node, and one containing, per node, the coefficient vector
    of length `p+1` for the linear combination of basis functions which yields
    the point evaluation at that node.

    Corresponds to a row-wise representation of the collocation matrix (see
    :func:`collocation`).
    """
    nodes = np.ascontiguousarray(nodes, dtype=float).ravel()
    values = active_ev(kv, nodes) # (p+1) x n
    indices = findspans(kv.kv, kv.p, nodes) - kv.p
    return indices, np.asarray(values.T)

def collocation_derivs(kv, nodes, derivs=1):
    """Compute collocation matrix and derivative collocation matrices for B-spline
    basis at the given interpolation nodes.

    Returns a list of derivs+1 sparse CSR matrices with shape (nodes.size, kv.numdofs)."""
    nodes = np.ascontiguousarray(nodes, dtype=float).ravel()
    m = nodes.size
    n = kv.numdofs
    p = kv.p
    indices, values = collocation_derivs_info(kv, nodes, derivs)

    I = np.repeat(np.arange(m), p + 1)
    J = (indices[:, None] + np.arange(p + 1)[None, :]).ravel()

    return [scipy.sparse.coo_matrix((values[d].ravel(), (I,J)), shape=(m,n)).tocsr()
            for d in range(derivs + 1)]

def collocation_derivs_tp(kvs, gridaxes, derivs=1):
    """Compute collocation matrix and derivative collocation matrices for Tensor product B-spline
    basis at the given grid.

    Returns a list of derivs+1 lists containing collocation matrices for
    derivatives of order k as sparse CSR matrices with shape (m,n), where m is
    the number of grid points and n the overall number of basis functions
    related to kvs. The k-th list contains one matrix per multi-index of
    order k as generated by :func:`multi_indices`; in 2D, these are the
    derivatives `(d_yy, d_xy, d_xx)` for k=2 (zyx order).
    """
    dim = len(kvs)
    assert len(gridaxes) == dim, "Input has wrong dimension."
    Colloc = [collocation_derivs(kvs[d], gridaxes[d], derivs=derivs) for d in range(dim)]
    D = [[] for k in range(derivs+1)]
    for k in range(derivs+1):
        for ind in multi_indices(dim, k):
            C = Colloc[0][ind[0]]
            for d in range(1, dim):
                C = scipy.sparse.kron(C, Colloc[d][ind[d]])
            D[k].append(C.tocsr())
    return D

def collocation_derivs_info(kv, nodes, derivs=1):
    """Similar to :func:`collocation_info`, but the second array also contains
    coefficients for computing derivatives up to order `derivs`.  It has shape
    `(derivs + 1) x len(nodes) x (p + 1)`.
    """
    nodes = np.ascontiguousarray(nodes, dtype=float).ravel()
    values = active_deriv(kv, nodes, derivs)    # (derivs+1) x (p+1) x n
    indices = findspans(kv.kv, kv.p, nodes) - kv.p
    return indices, np.asarray(values).swapaxes(-2, -1) # (derivs+1) x n x (p+1)

################################################################################

class _BaseGeoFunc:
    def __call__(self, *x):
        return self.eval(*x)

    def is_scalar(self):
        """Returns True if the function is scalar-valued."""
        return len(self.output_shape()) == 0

    def is_vector(self):
        """Returns True if the function is vector-valued."""
        return len(self.output_shape()) == 1

    def bounding_box(self, grid=1):
        """Compute a bounding box for the image of this geometry.

        By default, only the corners are taken into account. By choosing
        `grid > 1`, a finer grid can be used (for non-convex geometries).

        Returns:
            a tuple of `(lower,upper)` limits per dimension (in XY order)
        """
        supp = self.support
        grid = [np.linspace(s[0], s[1], grid+1) for s in supp]
        X = self.grid_eval(grid)
        X = X.reshape((-1, self.dim))
        return tuple((X[:, d].min(), X[:, d].max()) for d in range(self.dim))

class _BaseSplineFunc(_BaseGeoFunc):
    def eval(self, *x):
        """Evaluate the function at a single point of the parameter domain.

        Args:
            *x: the point at which to evaluate the function, in xyz order
        """
        def as_array(t):
            if np.isscalar(t):
                return np.asarray([t], dtype=float)
            else:
                return np.asanyarray(t, dtype=float)
        coords = tuple(reversed(x))     # XYZ->ZYX order
        singletons = tuple(i for i in range(self.sdim) if np.isscalar(coords[i]))
        coords = tuple(as_array(t) for t in reversed(x))
        y = self.grid_eval(coords).squeeze(axis=singletons)
        if y.shape == ():
            y = y.item()
        return y

class BSplineFunc(_BaseSplineFunc):
    """Any function that is given in terms of a tensor product B-spline basis with coefficients.

    Arguments:
        kvs (seq): tuple of `d` :class:`KnotVector`.
        coeffs (ndarray): coefficient array

    `kvs` represents a tensor product B-spline basis, where the *i*-th
    :class:`KnotVector` describes the B-spline basis in the *i*-th
    coordinate direction.

    `coeffs` is the array of coefficients with respect to this tensor product basis.
    The length of its first `d` axes must match the number of degrees of freedom
    in the corresponding :class:`KnotVector`.
    Trailing axes, if any, determine the output dimension of the function.
    If there are no trailing dimensions or only a single one of length 1,
    the function is scalar-valued.

    For convenience, if `coeffs` is a vector, it is reshaped to the proper
    size for the tensor product basis. The result is a scalar-valued function.

    Attributes:
        kvs (seq): the knot vectors representing the tensor product basis
        coeffs (ndarray): the coefficients for the function or geometry
        sdim (int): dimension of the parameter domain
        dim (int): dimension of the output of the function
    """
    def __init__(self, kvs, coeffs):
        if isinstance(kvs, KnotVector):
            kvs = (kvs,)
        self.kvs = tuple(kvs)
        self.sdim = len(kvs)    # source dimension

        N = tuple(kv.numdofs for kv in kvs)
        coeffs = np.asanyarray(coeffs, dtype=float)
        if coeffs.ndim == 1 and self.sdim > 1:
            assert coeffs.shape[0] == np.prod(N), "Wrong length of coefficient vector"
            coeffs = coeffs.reshape(N)
        assert N == coeffs.shape[:self.sdim], "Wrong shape of coefficients"
        self.coeffs = coeffs

        # determine target dimension
        dim = coeffs.shape[self.sdim:]
        if len(dim) == 0:
            dim = 1
        elif len(dim) == 1:
            dim = dim[0]
        self.dim = dim

    def output_shape(self):
        return self.coeffs.shape[self.sdim:]

    def grid_eval(self, gridaxes):
        """Evaluate the function on a tensor product grid.

        Args:
            gridaxes (seq): list of 1D vectors describing the tensor product grid.

        .. note::

            The gridaxes should be given in reverse order, i.e.,
            the x axis last.

        Returns:
            ndarray: array of function values; shape corresponds to input grid.
        """
        assert len(gridaxes) == self.sdim, "Input has wrong dimension"
        gridaxes = tuple(np.ravel(ax) for ax in gridaxes)
        colloc = [collocation(self.kvs[i], gridaxes[i]) for i in range(self.sdim)]
        return apply_tprod(colloc, self.coeffs)

    def grid_jacobian(self, gridaxes):
        """Evaluate the Jacobian on a tensor product grid.

        Args:
            gridaxes (seq): list of 1D vectors describing the tensor product grid.

        .. note::

            The gridaxes should be given in reverse order, i.e.,
            the x axis last.

        Returns:
            ndarray: array of Jacobians (:attr:`dim` × :attr:`sdim`); shape
            corresponds to input grid.  For scalar functions, the output is a
            vector of length :attr:`sdim` (the gradient) per grid point.
        """
        assert len(gridaxes) == self.sdim, "Input has wrong dimension"
        gridaxes = tuple(np.ravel(ax) for ax in gridaxes)
        colloc = [collocation_derivs(self.kvs[i], gridaxes[i], derivs=1) for i in range(self.sdim)]

        grad_components = []
        for i in reversed(range(self.sdim)):  # x-component is the last one
            ops = [colloc[j][1 if j==i else 0] for j in range(self.sdim)] # deriv. in i-th direction
            grad_components.append(apply_tprod(ops, self.coeffs))   # shape: shape(grid) x self.dim
        return np.stack(grad_components, axis=-1)   # shape: shape(grid) x self.dim x self.sdim

    def grid_hessian(self, gridaxes):
        """Evaluate the Hessian matrix of a scalar or vector function on a tensor product grid.

        Args:
            gridaxes (seq): list of 1D vectors describing the tensor product grid.

        .. note::

            The gridaxes should be given in reverse order, i.e.,
            the x axis last.

        Returns:
            ndarray: array of the components of the Hessian; symmetric part
            only, linearized. I.e., in 2D, it contains per grid point a
            3-component vector corresponding to the derivatives `(d_xx, d_xy,
            d_yy)`. If the input function is vector-valued, one such Hessian
            vector is computed per component of the function.
        """
        assert np.isscalar(self.dim), 'Hessian only implemented for scalar and vector functions'
        assert len(gridaxes) == self.sdim, "Input has wrong dimension"
        gridaxes = tuple(np.ravel(ax) for ax in gridaxes)
        colloc = [collocation_derivs(self.kvs[i], gridaxes[i], derivs=2) for i in range(self.sdim)]

        d = self.sdim
        n_hess = ((d+1)*d) // 2         # number of components in symmetric part of Hessian
        N = tuple(len(g) for g in gridaxes)     # shape of tensor grid

        # determine size of output array
        if self.dim == 1:
            out_shape = N + (n_hess,)
        else:
            out_shape = N + (self.dim, n_hess)
        hess = np.empty(out_shape, dtype=self.coeffs.dtype)

        i_hess = 0
        for i in reversed(range(self.sdim)):  # x-component is the last one
            for j in reversed(range(i+1)):
                # compute vector of derivative indices
                D = self.sdim * [0]
                D[i] += 1
                D[j] += 1
                ops = [colloc[k][D[k]] for k in range(self.sdim)] # derivatives in directions i,j

                if self.dim == 1:   # scalar function
                    hess[..., i_hess] = apply_tprod(ops, self.coeffs) # D_i D_j (self)
                else:               # vector function
                    for k in range(self.dim):
                        hess[..., k, i_hess] = apply_tprod(ops, self.coeffs[..., k])    # D_i D_j (self[k])
                i_hess += 1
        return hess   # shape: shape(grid) x self.dim x n_hess

    def boundary(self, bdspec):
        """Return one side of the boundary as a :class:`BSplineFunc`.

        Args:
            bdspec: the side of the boundary to return, either a string like
                `'left'` or a sequence of `(axis, side)` pairs

        Returns:
            :class:`BSplineFunc`: representation of the boundary side;
            has :attr:`sdim` reduced by 1 and the same :attr:`dim` as this function
        """
        bdspec = _parse_bdspec(bdspec, self.sdim)
        axis, sides = tuple(ax for ax, _ in bdspec), tuple(-idx for _, idx in bdspec)

        assert all([0 <= ax < self.sdim for ax in axis]), 'Invalid axis'
        slices = self.sdim * [slice(None)]
        for ax, idx in zip(axis, sides):
            slices[ax] = idx
        coeffs = self.coeffs[tuple(slices)]
        kvs = list(self.kvs)
        for ax in sorted(axis, reverse=True):
            del kvs[ax]
        return BSplineFunc(kvs, coeffs)

    @property
    def support(self):
        """Return a sequence of pairs `(lower,upper)`, one per source dimension,
        which describe the extent of the support in the parameter space."""
        return tuple(kv.support() for kv in self.kvs)

    def copy(self):
        """Return a copy of this geometry."""
        return BSplineFunc(
                tuple(kv.copy() for kv in self.kvs),
                self.coeffs.copy())

    def perturb(self, noise, seed=None):
        """Create a copy of this function where all interior coefficients are
        randomly perturbed by noise of the given magnitude.

        The outermost control points are left in place so that the boundary
        of a patch stays matched to its neighbors.
        """
        rng = np.random.RandomState(seed)
        delta = 2*noise*(rng.random_sample(self.coeffs.shape) - 0.5)
        inner = tuple(slice(1, -1) for _ in range(self.sdim))
        coeffs = self.coeffs.copy()
        coeffs[inner] += delta[inner]
        return BSplineFunc(self.kvs, coeffs)

    def as_vector(self):
        """Convert a scalar function to a 1D vector function."""
        if self.is_vector():
            return self
        else:
            assert self.is_scalar()
            return BSplineFunc(self.kvs, self.coeffs[..., np.newaxis])
