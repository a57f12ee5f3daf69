"""Knot vectors of the auxiliary spline spaces of the approximate C1 construction.

Given the discretization knot vectors along an interface (or a boundary
side) and the target regularity `r`, the functions in this module compute

- the *plus space* `S(p, r+1)`, which carries the traces of the edge functions,
- the *minus space* `S(p-1, r)`, which carries their transversal derivatives,
- the *gluing data space* `S(p_tilde, r_tilde)`, in which the gluing data
  `alpha` and `beta` are approximated,
- the *local edge space*, which is large enough to represent products of
  plus/minus functions with gluing data exactly,
- the *local vertex space* in which the vertex functions are represented.

All functions are pure; they never modify their arguments.
Incompatible input raises :class:`.IncompatibleInterface`, and regularities
which cannot be realized raise :class:`.InvalidRegularity`. Plus and minus
spaces with fewer than 6 and 4 functions raise :class:`ValueError`.
"""
import numpy as np

from .bspline import KnotVector
from .errors import IncompatibleInterface, InvalidRegularity

DEFAULT_P_TILDE = 3

def default_r_tilde(p_tilde):
    return p_tilde - 2

def continuity(kv):
    """Smoothness `p - m` at the interior knots, where `m` is the largest interior
    multiplicity, or `None` if `kv` has no interior knots."""
    mult = kv.interior_multiplicities()
    if mult.size == 0:
        return None
    return kv.p - int(mult.max())

def check_regularity(p, r, what='space'):
    if not 0 <= r <= p - 1:
        raise InvalidRegularity('%s: regularity r=%d not in range [0, %d] for degree p=%d'
                % (what, r, p - 1, p))

def check_compatible(kv1, kv2, what='interface'):
    """Make sure that both knot vectors describe the same spline space."""
    if kv1.p != kv2.p:
        raise IncompatibleInterface('%s: degrees differ (%d != %d)' % (what, kv1.p, kv2.p))
    if kv1.mesh.shape != kv2.mesh.shape or not np.allclose(kv1.mesh, kv2.mesh, atol=1e-12):
        raise IncompatibleInterface('%s: unique break points differ (%s != %s)'
                % (what, kv1.mesh, kv2.mesh))
    if not np.array_equal(kv1.multiplicities(), kv2.multiplicities()):
        raise IncompatibleInterface('%s: knot multiplicities differ (%s != %s)'
                % (what, kv1.multiplicities(), kv2.multiplicities()))

def reduce_continuity(kv, t=1, what='space'):
    """Raise the multiplicity of all interior knots by `t`."""
    if t <= 0 or not kv.has_interior_knots():
        return kv.copy()
    if kv.interior_multiplicities().max() + t > kv.p:
        raise InvalidRegularity('%s: cannot reduce continuity C^%d of degree %d spline space by %d'
                % (what, continuity(kv), kv.p, t))
    return kv.increase_multiplicity(t)

def _raise_continuity(kv, what):
    mult = kv.interior_multiplicities()
    if mult.size and mult.min() < 2:
        raise InvalidRegularity('%s: interior knots of multiplicity 1 cannot be reduced '
                '(knot vector has continuity C^%d, degree %d)' % (what, continuity(kv), kv.p))
    return kv.reduce_multiplicity(1)

def plus_minus_space(kv1, kv2, r, what='interface'):
    """Compute the plus space `S(p, r+1)` and the minus space `S(p-1, r)`.

    Args:
        kv1, kv2: the discretization knot vectors along the two sides of an
            interface, parametrized in the same direction. For a boundary
            side, pass `kv2=None`.
        r (int): the target regularity

    Returns:
        a pair `(kv_plus, kv_minus)` of :class:`.KnotVector`
    """
    if kv2 is None:
        kv2 = kv1
    else:
        check_compatible(kv1, kv2, what)
    p = max(kv1.p, kv2.p)
    check_regularity(p, r, what)

    kv_plus = kv2.copy()
    kv_minus = kv2.degree_decrease(1)
    if p - r != 1:
        kv_plus = _raise_continuity(kv_plus, what + ' (plus space)')
        kv_minus = _raise_continuity(kv_minus, what + ' (minus space)')
    # three plus and two minus functions at each end belong to the vertices
    if kv_plus.numdofs < 6 or kv_minus.numdofs < 4:
        raise ValueError('%s: plus and minus spaces with %d and %d functions are too small '
                '(at least 6 and 4 are required)' % (what, kv_plus.numdofs, kv_minus.numdofs))
    return kv_plus, kv_minus

def gluing_data_space(kv1, kv2=None, p_tilde=DEFAULT_P_TILDE, r_tilde=None, what='interface'):
    """Compute the gluing data space `S(p_tilde, r_tilde)` over the break
    points of `kv1` (which must coincide with those of `kv2`, if given)."""
    if r_tilde is None:
        r_tilde = default_r_tilde(p_tilde)
    if kv2 is not None:
        if kv1.mesh.shape != kv2.mesh.shape or not np.allclose(kv1.mesh, kv2.mesh, atol=1e-12):
            raise IncompatibleInterface('%s: unique break points differ (%s != %s)'
                    % (what, kv1.mesh, kv2.mesh))
    check_regularity(p_tilde, r_tilde, what + ' (gluing data)')
    kv = KnotVector(kv1.mesh.copy(), 0).degree_increase(p_tilde)
    if kv.has_interior_knots():
        kv = kv.increase_multiplicity(p_tilde - r_tilde - 1)
    return kv

def local_edge_space(kv_plus, kv_minus, kv_gd=None):
    """Compute the local edge space.

    Two-sided variant (interfaces, `kv_gd` given): degree
    `max(p_plus + p_gd - 1, p_minus + p_gd)` and continuity
    `min(r_plus, r_minus, r_gd)`. One-sided variant (boundaries): degree
    `max(p_plus, p_minus)` and continuity `min(r_plus, r_minus)`.
    """
    if kv_gd is not None:
        p = max(kv_plus.p + kv_gd.p - 1, kv_minus.p + kv_gd.p)
        spaces = (kv_plus, kv_minus, kv_gd)
    else:
        p = max(kv_plus.p, kv_minus.p)
        spaces = (kv_plus, kv_minus)
    kv = KnotVector(kv_plus.mesh.copy(), 0).degree_increase(p)
    if kv.has_interior_knots():
        r = min(continuity(s) for s in spaces)
        kv = kv.increase_multiplicity(p - r - 1)
    return kv

def local_vertex_space(kvs, r, p_tilde=DEFAULT_P_TILDE, r_tilde=None, what='vertex'):
    """Compute the tensor product vertex space for an internal or an
    interface-boundary vertex.

    The degree is elevated by `p_tilde - 1` in both directions (keeping the
    smoothness), then the continuity is reduced by one and, if
    `r_tilde < r - 1`, further by `r - r_tilde - 1`.
    """
    if r_tilde is None:
        r_tilde = default_r_tilde(p_tilde)
    result = []
    for kv in kvs:
        check_regularity(kv.p, r, what)
        kv_v = kv.degree_elevate(p_tilde - 1)
        kv_v = reduce_continuity(kv_v, 1, what)
        if r_tilde < r - 1:
            kv_v = reduce_continuity(kv_v, r - r_tilde - 1, what)
        result.append(kv_v)
    return tuple(result)

def boundary_geo_space(kv, r, what='boundary'):
    """Transversal space of a boundary edge: continuity reduced by one if `p - r == 1`."""
    check_regularity(kv.p, r, what)
    if kv.p - r == 1:
        return reduce_continuity(kv, 1, what)
    return kv.copy()

def boundary_vertex_space(kvs, r, what='boundary vertex'):
    """Vertex space of a boundary vertex (a corner which belongs to a single patch)."""
    return tuple(boundary_geo_space(kv, r, what) for kv in kvs)

def inner_space(kvs, r, what='interior'):
    """Interior space of a patch.

    For maximal smoothness (`p - r == 1`), the first and the last interior
    knot are repeated once more in each direction.
    """
    result = []
    for kv in kvs:
        check_regularity(kv.p, r, what)
        if kv.p - r == 1 and kv.has_interior_knots():
            mesh = kv.mesh
            kv = kv.insert_knot(mesh[1])
            if not np.isclose(mesh[-2], mesh[1]):
                kv = kv.insert_knot(mesh[-2])
        else:
            kv = kv.copy()
        result.append(kv)
    return tuple(result)
