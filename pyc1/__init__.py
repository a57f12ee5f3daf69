"""pyc1

Approximate C1 spline bases on planar multi-patch geometries and their use
for fourth order (biharmonic) problems in Isogeometric Analysis.
"""

__version__ = '0.1.0'
