"""Multi-patch geometries and their topology.

A :class:`MultiPatch` is an ordered list of planar patches together with the
interfaces between them, the remaining boundary sides and the vertex groups
(corners of different patches which meet at the same point).

Side and corner numbering follows the convention

::

        3 ----- 4              side 1: u = 0     corner 1: (u,v) = (0,0)
        |       |              side 2: u = 1     corner 2: (u,v) = (1,0)
      1 |       | 2            side 3: v = 0     corner 3: (u,v) = (0,1)
        |       |              side 4: v = 1     corner 4: (u,v) = (1,1)
        1 ----- 2
            3  (bottom side)

where `u` is the x coordinate of the parameter domain (array axis 1) and `v`
the y coordinate (array axis 0).
"""
import collections
import itertools

import numpy as np
import scipy.spatial

from . import geometry
from .bspline import make_knots
from .errors import IndexOutOfRange, check_side, check_corner

Interface = collections.namedtuple('Interface', ['patch1', 'side1', 'patch2', 'side2', 'flip'])
Interface.__doc__ = """Two patch sides which are glued together.

`flip` is `True` if the along-side parameters of the two sides run in
opposite directions. Interfaces are always stored with `patch1 < patch2`.
"""

_SIDE_BDSPEC = {1: (1, 0), 2: (1, 1), 3: (0, 0), 4: (0, 1)}
_SIDE_CORNERS = {1: (1, 3), 2: (2, 4), 3: (1, 2), 4: (3, 4)}
_CORNER_SIDES = {1: (1, 3), 2: (2, 3), 3: (1, 4), 4: (2, 4)}

def side_to_bdspec(side):
    """Convert a side index into an `(axis, index)` pair for array slicing."""
    return _SIDE_BDSPEC[check_side(side)]

def along_axis(side):
    """Array axis which runs along the given side."""
    return 1 if check_side(side) > 2 else 0

def normal_axis(side):
    """Array axis which is transversal to the given side."""
    return 1 - along_axis(side)

def is_upper_side(side):
    """True for the sides at parameter value 1 (sides 2 and 4)."""
    return check_side(side) % 2 == 0

def side_corners(side):
    """The two corners of a side, ordered by increasing along-side parameter."""
    return _SIDE_CORNERS[check_side(side)]

def corner_sides(corner):
    """The two sides meeting at a corner; first the `u`-side, then the `v`-side."""
    return _CORNER_SIDES[check_corner(corner)]

def corner_index(corner):
    """Array index `(iv, iu)` (each 0 or 1) of a corner."""
    c = check_corner(corner) - 1
    return (c // 2, c % 2)

def corner_param(corner):
    """Parameter coordinates `(u, v)` of a corner of the unit square."""
    iv, iu = corner_index(corner)
    return (float(iu), float(iv))

def corner_of(iu, iv):
    return 1 + iu + 2 * iv


def side_grid(side, t, support=((0.0, 1.0), (0.0, 1.0))):
    """Tensor grid (YX order) for the points `t` along the given side."""
    a, n = along_axis(side), normal_axis(side)
    grid = [None, None]
    grid[a] = np.asarray(t, dtype=float)
    grid[n] = np.array([support[n][1] if is_upper_side(side) else support[n][0]])
    return tuple(grid)

def side_jacobian(geo, side, t):
    """Evaluate a planar geometry along one of its sides.

    Returns a triple `(X, T, N)` of arrays with shape `(len(t), dim)`: the
    points, the derivative along the side (with respect to the side
    parameter `t`) and the derivative in the inward transversal direction.
    """
    grid = side_grid(side, t, geo.support)
    X = geo.grid_eval(grid).reshape((-1, geo.dim))
    jac = geo.grid_jacobian(grid).reshape((-1, geo.dim, geo.sdim))
    # jac[..., 0] is the derivative in x (=u) direction, jac[..., 1] in y (=v)
    u_deriv, v_deriv = jac[..., 0], jac[..., 1]
    if along_axis(side) == 0:       # sides 1 and 2: along v, normal u
        T, N = v_deriv, u_deriv
    else:
        T, N = u_deriv, v_deriv
    if is_upper_side(side):
        N = -N
    return X, T, N


def _bb_rect(G):
    # geo bounding box as a Rectangle
    bb = G.bounding_box(grid=4)
    return scipy.spatial.Rectangle(
        tuple(bb_i[0] for bb_i in bb),
        tuple(bb_i[1] for bb_i in bb))

def _check_curve_match(G1, G2, grid=5):
    # check if the two boundary curves match, possibly with reversed direction
    if G1.dim != G2.dim:
        return False, None
    t = np.linspace(0.0, 1.0, grid)
    X1 = G1.grid_eval((t,))
    for flip in (False, True):
        X2 = G2.grid_eval((np.ascontiguousarray(t[::-1]) if flip else t,))
        if np.allclose(X1, X2, atol=1e-10):
            return True, flip
    return False, None

def detect_interfaces(patches):
    """Automatically detect matching sides between patches.

    Args:
        patches: a list of patches in the form `(kvs, geo)`

    Returns:
        a list of :class:`Interface` tuples, sorted by patch and side
    """
    interfaces = []
    bbs = [_bb_rect(geo) for (_, geo) in patches]
    diams = [bb.max_distance_rectangle(bb) for bb in bbs]

    for p1 in range(len(patches)):
        for p2 in range(p1 + 1, len(patches)):
            mindist = bbs[p1].min_distance_rectangle(bbs[p2])
            maxdiam = max(diams[p1], diams[p2])
            if mindist > 1e-10 * maxdiam:    # bounding boxes do not touch
                continue
            G1, G2 = patches[p1][1], patches[p2][1]
            for s1, s2 in itertools.product(range(1, 5), repeat=2):
                bd1 = G1.boundary((side_to_bdspec(s1),))
                bd2 = G2.boundary((side_to_bdspec(s2),))
                match, flip = _check_curve_match(bd1, bd2)
                if match:
                    interfaces.append(Interface(p1, s1, p2, s2, flip))
    return interfaces


# Data structures:
#
# - patches is a list of tuples (kvs, geo):
#   - kvs is the tensor product discretization basis of the patch
#     (in YX order, i.e., kvs[0] belongs to the v direction)
#   - geo is the geometry map of the patch
#
# - interfaces is a list of Interface tuples (patch1, side1, patch2, side2, flip)
#   with patch1 < patch2.
#
# - boundaries is a list of pairs (patch, side) of sides which are not part
#   of any interface.
#
# - vertices is a list of vertex groups. Each group is a sorted list of
#   pairs (patch, corner) of patch corners which are topologically
#   identified through interfaces. A corner which is not part of any
#   interface forms a group of its own.
#

class MultiPatch:
    """A planar multi-patch geometry with its topology.

    Args:
        patches: a list of pairs `(kvs, geo)` where `kvs` is the tensor
            product discretization basis (tuple of two :class:`.KnotVector`,
            YX order) and `geo` a :class:`.BSplineFunc` geometry map
        interfaces: optionally, a list of :class:`Interface` tuples or
            5-tuples; if not given, interfaces are detected from the geometry
    """
    def __init__(self, patches, interfaces=None):
        self.patches = [(tuple(kvs), geo) for (kvs, geo) in patches]
        if interfaces is None:
            self.compute_topology()
        else:
            self.set_topology(interfaces)

    def compute_topology(self):
        """Detect the interfaces from the geometry and derive boundaries and vertices."""
        self.set_topology(detect_interfaces(self.patches))

    def set_topology(self, interfaces):
        intfs = []
        for intf in interfaces:
            intf = Interface(*intf)
            self._check_patch(intf.patch1)
            self._check_patch(intf.patch2)
            check_side(intf.side1)
            check_side(intf.side2)
            if intf.patch1 > intf.patch2:
                intf = Interface(intf.patch2, intf.side2, intf.patch1, intf.side1, intf.flip)
            intfs.append(Interface(int(intf.patch1), int(intf.side1),
                                   int(intf.patch2), int(intf.side2), bool(intf.flip)))
        self.interfaces = sorted(intfs)

        glued = set()
        for intf in self.interfaces:
            glued.add((intf.patch1, intf.side1))
            glued.add((intf.patch2, intf.side2))
        self.boundaries = [(p, s) for p in range(self.numpatches) for s in range(1, 5)
                           if (p, s) not in glued]
        self.vertices = self._compute_vertices()

    def _compute_vertices(self):
        import networkx as nx
        corner_graph = nx.Graph()
        corner_graph.add_nodes_from((p, c) for p in range(self.numpatches) for c in range(1, 5))
        for intf in self.interfaces:
            c1 = side_corners(intf.side1)
            c2 = side_corners(intf.side2)
            if intf.flip:
                c2 = c2[::-1]
            for a, b in zip(c1, c2):
                corner_graph.add_edge((intf.patch1, a), (intf.patch2, b))
        groups = [sorted(comp) for comp in nx.connected_components(corner_graph)]
        return sorted(groups)

    def _check_patch(self, p):
        if not 0 <= p < self.numpatches:
            raise IndexOutOfRange('invalid patch index %s (have %d patches)' % (p, self.numpatches))
        return p

    @property
    def numpatches(self):
        return len(self.patches)

    @property
    def geos(self):
        return [geo for (_, geo) in self.patches]

    @property
    def multi_basis(self):
        """The list of tensor product discretization bases, one per patch."""
        return [kvs for (kvs, _) in self.patches]

    def kvs(self, p):
        return self.patches[self._check_patch(p)][0]

    def geo(self, p):
        return self.patches[self._check_patch(p)][1]

    def interface_at(self, patch, side):
        """Return the :class:`Interface` containing the given patch side, or `None`."""
        for intf in self.interfaces:
            if (intf.patch1, intf.side1) == (patch, side) or (intf.patch2, intf.side2) == (patch, side):
                return intf
        return None

    def is_connected(self):
        import networkx as nx
        patch_graph = nx.Graph()
        patch_graph.add_nodes_from(range(self.numpatches))
        patch_graph.add_edges_from((intf.patch1, intf.patch2) for intf in self.interfaces)
        return nx.is_connected(patch_graph)

    def sub_multipatch(self, patch_indices):
        """Create a new :class:`MultiPatch` from the given patches (in the given
        order) and recompute its topology from the geometry."""
        return MultiPatch([self.patches[self._check_patch(p)] for p in patch_indices])

    def corner_point(self, patch, corner):
        """Physical location of a patch corner."""
        u, v = corner_param(corner)
        return self.geo(patch).grid_eval((np.array([v]), np.array([u])))[0, 0]

    def __repr__(self):
        return '<MultiPatch: %d patches, %d interfaces, %d boundaries, %d vertices>' % (
                self.numpatches, len(self.interfaces), len(self.boundaries), len(self.vertices))


def grid_multipatch(n_x, n_y, p=3, n=4, mult=1, size=1.0, geo_degree=1):
    """Multi-patch geometry of `n_x × n_y` square patches of edge length `size`.

    Each patch is discretized by the tensor product of two knot vectors of
    degree `p` with `n` uniform intervals and interior multiplicity `mult`.
    If `geo_degree > 1`, the (still affine) patch geometries are represented
    with degree `geo_degree` splines.
    """
    kv = make_knots(p, 0.0, 1.0, n, mult=mult)
    patches = []
    for j in range(n_y):
        for i in range(n_x):
            geo = geometry.identity([(j*size, (j+1)*size), (i*size, (i+1)*size)])
            if geo_degree > 1:
                geo = _elevate_geo(geo, geo_degree)
            patches.append(((kv, kv), geo))
    return MultiPatch(patches)

def _elevate_geo(geo, degree):
    from .approx import interpolate
    kv = make_knots(degree, 0.0, 1.0, 1)
    kvs = (kv, kv)
    return geometry.BSplineFunc(kvs, interpolate(kvs, geo))
