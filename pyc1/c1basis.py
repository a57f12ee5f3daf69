"""Per-patch container for the component spaces of an approximate C1 basis.

Each patch carries nine component spaces, all of them tensor product
B-spline bases over the parameter domain of the patch:

======  ===========================  ==================================
index   component                    functions
======  ===========================  ==================================
0       interior                     `(n_u - 4) * (n_v - 4)`
1..4    edge at side 1..4            `(n_plus - 6) + (n_minus - 4)`
5..8    vertex at corner 1..4        6
======  ===========================  ==================================

An edge or vertex function couples several patches; its coefficients are
stored in the component spaces of all patches it touches, but the function
itself (the row of the transformation matrix) is owned by a single patch:
the first patch of an interface and the first patch of a vertex group.
Non-owning components contribute no rows.

The *rows* of the container are its functions and the *columns* are the
coefficients of all nine component spaces, stacked in component order.
"""
import numpy as np
import scipy.sparse

from . import bspline
from .errors import IndexOutOfRange, check_side, check_corner

NUM_COMPONENTS = 9
NUM_VERTEX_FUNCTIONS = 6

def plus_indices(kv_plus):
    """Indices of the plus space functions which generate edge functions."""
    return range(3, kv_plus.numdofs - 3)

def minus_indices(kv_minus):
    """Indices of the minus space functions which generate edge functions."""
    return range(2, kv_minus.numdofs - 2)

def plus_vertex_indices(kv_plus, upper=False):
    """Indices of the three plus space functions at one end of a side, which
    are taken over by the vertex functions."""
    n = kv_plus.numdofs
    return range(n - 3, n) if upper else range(0, 3)

def minus_vertex_indices(kv_minus, upper=False):
    """Indices of the two minus space functions at one end of a side."""
    n = kv_minus.numdofs
    return range(n - 2, n) if upper else range(0, 2)

def num_interior_functions(kvs):
    return int(np.prod([max(kv.numdofs - 4, 0) for kv in kvs]))

def num_edge_functions(kv_plus, kv_minus):
    return len(plus_indices(kv_plus)) + len(minus_indices(kv_minus))

def component_of_side(side):
    return check_side(side)

def component_of_corner(corner):
    return 4 + check_corner(corner)


class C1Basis:
    """The component spaces and the row/column layout of one patch.

    Args:
        patch (int): index of the patch in the multi-patch
        kvs: the discretization basis of the patch (tuple of two
            :class:`.KnotVector`, YX order)
        geo: the geometry map of the patch (optional)

    The setters may only be called before :meth:`init`, which freezes the
    layout; afterwards only the accessors may be used.
    """
    def __init__(self, patch, kvs, geo=None):
        self.patch = patch
        self.kvs = tuple(kvs)
        self.geo = geo
        self._num_functions = {}
        self._inner = None
        self._edge = 4 * [None]
        self._vertex = 4 * [None]
        self._plus = 4 * [None]
        self._minus = 4 * [None]
        self._geo = 4 * [None]
        self._gluing_data = 4 * [None]
        self._kind_of_edge = 4 * [None]
        self._edge_owner = 4 * [False]
        self._kind_of_vertex = 4 * [None]
        self._vertex_owner = 4 * [False]
        self._rows = None
        self._cols = None

    def _check_mutable(self):
        if self._rows is not None:
            raise RuntimeError('C1Basis of patch %d is already initialized' % self.patch)

    def _check_initialized(self):
        if self._rows is None:
            raise RuntimeError('C1Basis of patch %d is not initialized' % self.patch)

    # setters (initialization phase only)

    def set_inner_basis(self, kvs):
        self._check_mutable()
        self._inner = tuple(kvs)

    def set_basis_plus(self, kv, side):
        self._check_mutable()
        self._plus[check_side(side) - 1] = kv

    def set_basis_minus(self, kv, side):
        self._check_mutable()
        self._minus[check_side(side) - 1] = kv

    def set_basis_geo(self, kv, side):
        self._check_mutable()
        self._geo[check_side(side) - 1] = kv

    def set_basis_gluing_data(self, kv, side):
        self._check_mutable()
        self._gluing_data[check_side(side) - 1] = kv

    def set_edge_basis(self, kvs, side):
        self._check_mutable()
        self._edge[check_side(side) - 1] = tuple(kvs)

    def set_vertex_basis(self, kvs, corner):
        self._check_mutable()
        self._vertex[check_corner(corner) - 1] = tuple(kvs)

    def set_kind_of_edge(self, is_interface, side, owner=True):
        """Mark a side as interface or boundary side; `owner` determines
        whether the edge functions are counted in this patch."""
        self._check_mutable()
        s = check_side(side) - 1
        self._kind_of_edge[s] = bool(is_interface)
        self._edge_owner[s] = bool(owner)

    def set_kind_of_vertex(self, kind, corner, owner=True):
        """Set the vertex kind: -1 (boundary), 0 (internal) or 1 (interface-boundary)."""
        self._check_mutable()
        if kind not in (-1, 0, 1):
            raise ValueError('invalid vertex kind %s' % (kind,))
        c = check_corner(corner) - 1
        self._kind_of_vertex[c] = kind
        self._vertex_owner[c] = bool(owner)

    def set_num_functions(self, c, n):
        """Override the number of functions of component `c`."""
        self._check_mutable()
        if n < 0:
            raise ValueError('number of functions must be non-negative')
        self._num_functions[self._check_component(c)] = int(n)

    def init(self):
        """Compute and freeze the row and column extents of all nine components."""
        self._check_mutable()
        if self._inner is None:
            raise ValueError('patch %d: interior basis was not set' % self.patch)
        for s in range(4):
            if self._edge[s] is None or self._plus[s] is None or self._minus[s] is None:
                raise ValueError('patch %d: edge space of side %d was not set' % (self.patch, s + 1))
        for c in range(4):
            if self._vertex[c] is None or self._kind_of_vertex[c] is None:
                raise ValueError('patch %d: vertex space of corner %d was not set' % (self.patch, c + 1))

        rows = np.zeros(NUM_COMPONENTS, dtype=int)
        cols = np.zeros(NUM_COMPONENTS, dtype=int)
        rows[0] = num_interior_functions(self._inner)
        cols[0] = bspline.numdofs(self._inner)
        for s in range(4):
            if self._edge_owner[s]:
                rows[1 + s] = num_edge_functions(self._plus[s], self._minus[s])
            cols[1 + s] = bspline.numdofs(self._edge[s])
        for c in range(4):
            if self._vertex_owner[c]:
                rows[5 + c] = NUM_VERTEX_FUNCTIONS
            cols[5 + c] = bspline.numdofs(self._vertex[c])
        for c, n in self._num_functions.items():
            rows[c] = n

        self._rows = rows
        self._cols = cols
        self._row_ofs = np.concatenate(([0], np.cumsum(rows)))
        self._col_ofs = np.concatenate(([0], np.cumsum(cols)))

    @property
    def initialized(self):
        return self._rows is not None

    # layout

    def _check_component(self, c):
        if not 0 <= c < NUM_COMPONENTS:
            raise IndexOutOfRange('invalid component index %s (expected 0..8)' % (c,))
        return c

    def size_rows(self):
        """Number of functions of this patch."""
        self._check_initialized()
        return int(self._row_ofs[-1])

    def size_cols(self):
        """Number of coefficients of all component spaces of this patch."""
        self._check_initialized()
        return int(self._col_ofs[-1])

    def row_begin(self, c):
        self._check_initialized()
        return int(self._row_ofs[self._check_component(c)])

    def row_end(self, c):
        self._check_initialized()
        return int(self._row_ofs[self._check_component(c) + 1])

    def col_begin(self, c):
        self._check_initialized()
        return int(self._col_ofs[self._check_component(c)])

    def col_end(self, c):
        self._check_initialized()
        return int(self._col_ofs[self._check_component(c) + 1])

    def num_functions(self, c):
        return self.row_end(c) - self.row_begin(c)

    # accessors

    def get_inner_basis(self):
        return self._inner

    def get_edge_basis(self, side):
        return self._edge[check_side(side) - 1]

    def get_vertex_basis(self, corner):
        return self._vertex[check_corner(corner) - 1]

    def get_basis(self, c):
        """Component space by component index (0 = interior, 1..4 edges, 5..8 vertices)."""
        self._check_component(c)
        if c == 0:
            return self._inner
        elif c <= 4:
            return self._edge[c - 1]
        else:
            return self._vertex[c - 5]

    def get_basis_plus(self, side):
        return self._plus[check_side(side) - 1]

    def get_basis_minus(self, side):
        return self._minus[check_side(side) - 1]

    def get_basis_geo(self, side):
        return self._geo[check_side(side) - 1]

    def get_basis_gluing_data(self, side):
        return self._gluing_data[check_side(side) - 1]

    def is_interface(self, side):
        return self._kind_of_edge[check_side(side) - 1]

    def kind_of_vertex(self, corner):
        return self._kind_of_vertex[check_corner(corner) - 1]

    def is_edge_owner(self, side):
        return self._edge_owner[check_side(side) - 1]

    def is_vertex_owner(self, corner):
        return self._vertex_owner[check_corner(corner) - 1]

    # evaluation

    def max_degree(self):
        """Maximal degree over all component spaces."""
        self._check_initialized()
        return max(kv.p for c in range(NUM_COMPONENTS) for kv in self.get_basis(c))

    def collocation_derivs(self, gridaxes, derivs=0):
        """Collocation matrices of all component spaces, stacked horizontally.

        Returns a list of `derivs+1` lists as :func:`.bspline.collocation_derivs_tp`;
        each matrix has shape `(num_points, self.size_cols())`.
        """
        self._check_initialized()
        D_comp = [bspline.collocation_derivs_tp(self.get_basis(c), gridaxes, derivs=derivs)
                  for c in range(NUM_COMPONENTS)]
        return [[scipy.sparse.hstack([D[k][i] for D in D_comp], format='csr')
                 for i in range(len(D_comp[0][k]))]
                for k in range(derivs + 1)]

    def print_spaces(self):
        """Print the knot vectors of all component spaces."""
        def fmt(kv):
            return 'p=%d %s' % (kv.p, np.array2string(kv.kv, precision=4, max_line_width=200))
        print('Patch %d:' % self.patch)
        print('  interior:   %s x %s' % tuple(fmt(kv) for kv in self._inner))
        for s in range(4):
            kind = 'interface' if self._kind_of_edge[s] else 'boundary'
            print('  side %d (%s):' % (s + 1, kind))
            print('    plus:     %s' % fmt(self._plus[s]))
            print('    minus:    %s' % fmt(self._minus[s]))
            print('    geo:      %s' % fmt(self._geo[s]))
            if self._gluing_data[s] is not None:
                print('    gluing:   %s' % fmt(self._gluing_data[s]))
            print('    edge:     %s x %s' % tuple(fmt(kv) for kv in self._edge[s]))
        for c in range(4):
            print('  corner %d (kind %d): %s x %s' % ((c + 1, self._kind_of_vertex[c]) +
                  tuple(fmt(kv) for kv in self._vertex[c])))
        if self._rows is not None:
            print('  rows per component: %s' % list(self._rows))
            print('  cols per component: %s' % list(self._cols))
