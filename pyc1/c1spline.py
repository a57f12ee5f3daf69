"""Construction of the global approximate C1 transformation matrix.

.. autoclass:: ApproxC1Spline
    :members:

The transformation matrix has one row per global C1 function and one column
per coefficient of the component spaces (interior, edges, vertices) of all
patches, ordered patch by patch and, within a patch, in component order (see
:mod:`pyc1.c1basis`).
"""
import enum

import numpy as np
import scipy.sparse

from . import knotspaces
from . import utils
from .c1basis import C1Basis, component_of_side, component_of_corner
from .c1edge import ApproxC1Edge
from .c1vertex import ApproxC1Vertex
from .errors import InvalidRegularity
from .topology import along_axis, normal_axis


class SplineState(enum.Enum):
    UNINITIALIZED = 0
    SIZED = 1
    INTERIOR_FILLED = 2
    BOUNDARY_FILLED = 3
    COMPRESSED = 4


class SparseBuilder:
    """Collects the entries of a sparse matrix in coordinate format.

    The index and value arrays are preallocated with `capacity` entries and
    grow geometrically when more entries are added.
    """
    def __init__(self, shape, capacity=0):
        self.shape = tuple(shape)
        capacity = max(int(capacity), 16)
        self._I = np.empty(capacity, dtype=np.int64)
        self._J = np.empty(capacity, dtype=np.int64)
        self._V = np.empty(capacity, dtype=float)
        self.nnz = 0

    def _reserve(self, n):
        cap = self._V.size
        if self.nnz + n <= cap:
            return
        while cap < self.nnz + n:
            cap *= 2
        self._I = np.resize(self._I, cap)
        self._J = np.resize(self._J, cap)
        self._V = np.resize(self._V, cap)

    def add(self, I, J, V, tol=0.0):
        """Add the entries `(I[k], J[k], V[k])`; entries with `|V| <= tol` are dropped
        unless `tol` is 0."""
        I, J, V = (np.ravel(X) for X in (I, J, V))
        assert I.shape == J.shape == V.shape
        if tol > 0:
            keep = np.abs(V) > tol
            I, J, V = I[keep], J[keep], V[keep]
        if I.size and (I.min() < 0 or I.max() >= self.shape[0] or
                       J.min() < 0 or J.max() >= self.shape[1]):
            raise IndexError('matrix entry out of range %s' % (self.shape,))
        n = V.size
        self._reserve(n)
        self._I[self.nnz:self.nnz+n] = I
        self._J[self.nnz:self.nnz+n] = J
        self._V[self.nnz:self.nnz+n] = V
        self.nnz += n

    def add_dense(self, rows, cols, block, tol=0.0):
        """Add a dense block with the given row and column indices."""
        block = np.asarray(block)
        assert block.shape == (len(rows), len(cols))
        I, J = np.meshgrid(rows, cols, indexing='ij')
        self.add(I, J, block, tol=tol)

    def tocsr(self):
        n = self.nnz
        A = scipy.sparse.coo_matrix((self._V[:n], (self._I[:n], self._J[:n])), shape=self.shape)
        return A.tocsr()


class ApproxC1Spline:
    """Approximate C1 basis on a planar multi-patch geometry.

    Args:
        mp (:class:`.MultiPatch`): the multi-patch geometry with one tensor
            product discretization basis per patch
        discrete_regularity (int): the regularity `r` of the spline spaces
            across interfaces; must satisfy `1 <= r <= p-1`
        p_tilde (int): degree of the gluing data space
        r_tilde (int): regularity of the gluing data space (default:
            `p_tilde - 2`)
        info (bool): if True, print the component spaces and dimensions
        tol (float): coefficients with smaller absolute value are dropped

    The constructor computes the spaces and the transformation matrix,
    which is then available as :attr:`matrix`. Calling :meth:`init` resets
    the object; :meth:`compute` must then be called again.
    """
    def __init__(self, mp, discrete_regularity=2, p_tilde=knotspaces.DEFAULT_P_TILDE,
                 r_tilde=None, info=False, tol=1e-12):
        self.mp = mp
        self.r = discrete_regularity
        self.p_tilde = p_tilde
        self.r_tilde = knotspaces.default_r_tilde(p_tilde) if r_tilde is None else r_tilde
        self.info = info
        self.tol = tol
        self.state = SplineState.UNINITIALIZED
        self._matrix = None
        self.init()
        self.compute()

    ## initialization of the spaces

    def init(self):
        """Set up the component spaces of all patches and the matrix layout."""
        self.state = SplineState.UNINITIALIZED
        self._matrix = None
        mp, r = self.mp, self.r
        for patch, kvs in enumerate(mp.multi_basis):
            for kv in kvs:
                if not 1 <= r <= kv.p - 1:
                    raise InvalidRegularity('patch %d: discrete regularity r=%d not in range [1, %d] for degree p=%d'
                            % (patch, r, kv.p - 1, kv.p))

        self.bases = [C1Basis(patch, kvs, geo) for patch, (kvs, geo) in enumerate(mp.patches)]
        for patch, basis in enumerate(self.bases):
            basis.set_inner_basis(knotspaces.inner_space(mp.kvs(patch), r,
                                  what='interior of patch %d' % patch))
        for intf in mp.interfaces:
            self._init_interface(intf)
        for (patch, side) in mp.boundaries:
            self._init_boundary(patch, side)
        for group in mp.vertices:
            self._init_vertex(group)
        for basis in self.bases:
            basis.init()

        rows = [basis.size_rows() for basis in self.bases]
        cols = [basis.size_cols() for basis in self.bases]
        self.row_shifts = np.concatenate(([0], np.cumsum(rows)))
        self.col_shifts = np.concatenate(([0], np.cumsum(cols)))
        self.shape = (int(self.row_shifts[-1]), int(self.col_shifts[-1]))

        if self.info:
            for basis in self.bases:
                basis.print_spaces()
            for patch, (nr, nc) in enumerate(zip(rows, cols)):
                print('Patch %d: %d functions, %d coefficients' % (patch, nr, nc))
            print('Dimension of the approximate C1 space: %d' % self.shape[0])
        self.state = SplineState.SIZED

    def _init_interface(self, intf):
        what = 'interface %d:%d - %d:%d' % (intf.patch1, intf.side1, intf.patch2, intf.side2)
        kvs1, kvs2 = self.mp.kvs(intf.patch1), self.mp.kvs(intf.patch2)
        kv1 = kvs1[along_axis(intf.side1)]
        kv2 = kvs2[along_axis(intf.side2)]
        if intf.flip:
            kv2 = kv2.reflect()     # parametrize along the side of patch1

        kv_plus, kv_minus = knotspaces.plus_minus_space(kv1, kv2, self.r, what)
        kv_gd = knotspaces.gluing_data_space(kv1, kv2, self.p_tilde, self.r_tilde, what)
        kv_edge = knotspaces.local_edge_space(kv_plus, kv_minus, kv_gd)

        for (patch, side, refl, owner) in ((intf.patch1, intf.side1, False, True),
                                           (intf.patch2, intf.side2, intf.flip, False)):
            kvs = self.mp.kvs(patch)
            basis = self.bases[patch]
            f = (lambda kv: kv.reflect()) if refl else (lambda kv: kv)
            kv_geo = kvs[normal_axis(side)]
            basis.set_basis_plus(f(kv_plus), side)
            basis.set_basis_minus(f(kv_minus), side)
            basis.set_basis_gluing_data(f(kv_gd), side)
            basis.set_basis_geo(kv_geo, side)
            basis.set_edge_basis(self._edge_kvs(side, f(kv_edge), kv_geo), side)
            basis.set_kind_of_edge(True, side, owner=owner)

    def _init_boundary(self, patch, side):
        what = 'boundary %d:%d' % (patch, side)
        kvs = self.mp.kvs(patch)
        basis = self.bases[patch]
        kv_plus, kv_minus = knotspaces.plus_minus_space(kvs[along_axis(side)], None, self.r, what)
        kv_geo = knotspaces.boundary_geo_space(kvs[normal_axis(side)], self.r, what)
        kv_edge = knotspaces.local_edge_space(kv_plus, kv_minus)
        basis.set_basis_plus(kv_plus, side)
        basis.set_basis_minus(kv_minus, side)
        basis.set_basis_geo(kv_geo, side)
        basis.set_edge_basis(self._edge_kvs(side, kv_edge, kv_geo), side)
        basis.set_kind_of_edge(False, side, owner=True)

    @staticmethod
    def _edge_kvs(side, kv_edge, kv_geo):
        kvs = [None, None]
        kvs[along_axis(side)] = kv_edge
        kvs[normal_axis(side)] = kv_geo
        return tuple(kvs)

    def _init_vertex(self, group):
        what = 'vertex %s' % (group,)
        if len(group) == 1:
            (patch, corner), = group
            kvs = knotspaces.boundary_vertex_space(self.mp.kvs(patch), self.r, what)
            self.bases[patch].set_vertex_basis(kvs, corner)
            self.bases[patch].set_kind_of_vertex(-1, corner, owner=True)
            return

        sub_mp = self.mp.sub_multipatch([patch for (patch, _) in group])
        kind = 0 if len(group) == len(sub_mp.interfaces) else 1
        for k, (patch, corner) in enumerate(group):
            kvs = knotspaces.local_vertex_space(self.mp.kvs(patch), self.r,
                                                self.p_tilde, self.r_tilde, what)
            self.bases[patch].set_vertex_basis(kvs, corner)
            self.bases[patch].set_kind_of_vertex(kind, corner, owner=(k == 0))

    ## computation of the transformation matrix

    def _check_state(self, expected):
        if self.state != expected:
            raise RuntimeError('invalid state %s (expected %s)' % (self.state.name, expected.name))

    def compute(self):
        """Compute the transformation matrix.

        The interior functions are placed first, followed by the interface,
        boundary and vertex functions.
        """
        self._check_state(SplineState.SIZED)
        builder = SparseBuilder(self.shape, capacity=7 * self.shape[0])
        pbar = utils.progress_bar(self.info)

        for patch, basis in enumerate(self.bases):
            self._fill_interior(builder, patch, basis)
        self.state = SplineState.INTERIOR_FILLED

        edge = ApproxC1Edge(self.mp, self.bases, self.row_shifts, self.col_shifts, tol=self.tol)
        for intf in pbar(self.mp.interfaces, desc='interfaces'):
            edge.interface(intf)
            edge.save_basis_interface(builder)
        for (patch, side) in pbar(self.mp.boundaries, desc='boundaries'):
            edge.boundary(patch, side)
            edge.save_basis_boundary(builder)
        self.state = SplineState.BOUNDARY_FILLED

        for group in pbar(self.mp.vertices, desc='vertices'):
            vertex = ApproxC1Vertex(self.mp, self.bases, group,
                                    self.row_shifts, self.col_shifts, tol=self.tol)
            vertex.save_basis_vertex(builder)

        self._matrix = builder.tocsr()
        self.state = SplineState.COMPRESSED
        if self.info:
            print('Transformation matrix: %d x %d, %d nonzeros' % (self.shape + (self._matrix.nnz,)))

    def _fill_interior(self, builder, patch, basis):
        n_v, n_u = (kv.numdofs for kv in basis.get_inner_basis())
        jj, ii = np.meshgrid(np.arange(2, n_v - 2), np.arange(2, n_u - 2), indexing='ij')
        cols = self.col_shifts[patch] + basis.col_begin(0) + (jj * n_u + ii).ravel()
        rows = self.row_shifts[patch] + basis.row_begin(0) + np.arange(cols.size)
        assert rows.size == basis.num_functions(0)
        builder.add(rows, cols, np.ones(cols.size))

    ## accessors

    @property
    def matrix(self):
        """The transformation matrix (CSR) with one row per global function."""
        self._check_state(SplineState.COMPRESSED)
        return self._matrix

    @property
    def multi_basis(self):
        """The discretization bases of the patches."""
        return self.mp.multi_basis

    @property
    def num_dofs(self):
        return self.shape[0]

    def mapped_basis(self):
        """Return the :class:`.MappedBasis` which represents the global functions
        in terms of the component spaces of each patch."""
        from .mapped import MappedBasis
        return MappedBasis(self.bases, self.matrix.T.tocsr())

    def patch_rows(self, patch, component=None):
        """Global row range of the functions of a patch or of one of its components."""
        basis = self.bases[patch]
        shift = self.row_shifts[patch]
        if component is None:
            return range(shift, shift + basis.size_rows())
        return range(shift + basis.row_begin(component), shift + basis.row_end(component))

    def edge_rows(self, patch, side):
        return self.patch_rows(patch, component_of_side(side))

    def vertex_rows(self, patch, corner):
        return self.patch_rows(patch, component_of_corner(corner))

    def patch_cols(self, patch, component=None):
        """Global column range of the coefficients of a patch or of one of its components."""
        basis = self.bases[patch]
        shift = self.col_shifts[patch]
        if component is None:
            return range(shift, shift + basis.size_cols())
        return range(shift + basis.col_begin(component), shift + basis.col_end(component))

    def __repr__(self):
        return '<ApproxC1Spline: %d patches, %d functions, r=%d>' % (
                self.mp.numpatches, self.shape[0] if self.state != SplineState.UNINITIALIZED else 0, self.r)
