"""Exceptions raised while constructing approximate C1 spline spaces."""

class IncompatibleInterface(ValueError):
    """The two sides of an interface do not carry matching spline spaces
    (different break points, degrees or knot multiplicities)."""
    pass

class InvalidRegularity(ValueError):
    """The requested regularity cannot be realized with the given degree
    or knot multiplicities."""
    pass

class IndexOutOfRange(IndexError):
    """A side, corner, component or patch index is out of range."""
    pass


def check_side(side):
    if not 1 <= side <= 4:
        raise IndexOutOfRange('invalid side index %s (expected 1..4)' % (side,))
    return side

def check_corner(corner):
    if not 1 <= corner <= 4:
        raise IndexOutOfRange('invalid corner index %s (expected 1..4)' % (corner,))
    return corner
