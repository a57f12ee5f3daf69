"""Solving the biharmonic equation on multi-patch geometries.

Two discretization methods are available:

- :attr:`Method.ARGYRIS` uses the approximate C1 basis
  (:class:`.ApproxC1Spline`),
- :attr:`Method.NITSCHE` uses a C0 basis (:class:`.C0Basis`) and couples
  the normal derivatives across interfaces weakly by Nitsche's method.

Both are driven through the same interface, :class:`Biharmonic`::

    bh = Biharmonic('argyris', mp)
    bh.init()
    bh.assemble(g1, g2, f)
    bh.solve()
    bh.error(u_exact, grad_exact, hess_exact)
    print(bh.value_l2(), bh.value_h2())

.. autoclass:: Method
.. autoclass:: Biharmonic
    :members:
"""
import enum

import numpy as np
import scipy.sparse.linalg

from . import assemble as asm
from . import norms
from .c1spline import ApproxC1Spline
from .knotspaces import DEFAULT_P_TILDE


class Method(enum.Enum):
    ARGYRIS = 'argyris'
    NITSCHE = 'nitsche'


def _init_argyris(bh):
    bh.spline = ApproxC1Spline(bh.mp, discrete_regularity=bh.discrete_regularity,
            p_tilde=bh.p_tilde, r_tilde=bh.r_tilde, info=bh.info)
    return bh.spline.mapped_basis()

def _init_nitsche(bh):
    return asm.C0Basis(bh.mp)

def _assemble_argyris(bh, f, g2):
    A, rhs = asm.assemble_biharmonic(bh.basis, bh.mp, f, g2=g2, penalty=bh.penalty,
            verbose=bh.info)
    return A, rhs, None

def _assemble_nitsche(bh, f, g2):
    return asm.assemble_biharmonic(bh.basis, bh.mp, f, g2=g2, penalty=bh.penalty,
            interfaces=True, verbose=bh.info)

_METHODS = {
    Method.ARGYRIS: (_init_argyris, _assemble_argyris),
    Method.NITSCHE: (_init_nitsche, _assemble_nitsche),
}


class Biharmonic:
    """Discretization and solution of `Delta^2 u = f` with the boundary
    conditions `u = g1` and `d_n u = g2`.

    Args:
        method: a :class:`Method` or its name (`'argyris'` or `'nitsche'`)
        mp (:class:`.MultiPatch`): the multi-patch geometry with its
            discretization bases
        discrete_regularity (int): regularity `r` of the approximate C1
            basis (Argyris method only)
        p_tilde (int): degree of the gluing data spaces (Argyris method only)
        r_tilde (int): regularity of the gluing data spaces; defaults to
            `p_tilde - 2` (Argyris method only)
        penalty (float): Nitsche penalty factor, used for the normal
            derivative boundary condition and (Nitsche method) on the
            interfaces
        info (bool): print diagnostic information and show progress bars
    """
    def __init__(self, method, mp, discrete_regularity=2, p_tilde=DEFAULT_P_TILDE,
                 r_tilde=None, penalty=asm.DEFAULT_PENALTY, info=False):
        self.method = Method(method)
        self.mp = mp
        self.discrete_regularity = discrete_regularity
        self.p_tilde = p_tilde
        self.r_tilde = r_tilde
        self.penalty = penalty
        self.info = info
        self.spline = None
        self.basis = None
        self._A = self._rhs = None
        self._system = None
        self._penalties = None
        self.solution = None
        self._errors = None

    def _require(self, attr, what):
        if getattr(self, attr) is None:
            raise RuntimeError('%s: call %s first' % (self.method.value, what))

    def init(self):
        """Construct the discrete basis."""
        init_func, _ = _METHODS[self.method]
        self.basis = init_func(self)
        if self.info:
            print('%s: %d global dofs' % (self.method.value, self.basis.global_dofs))
        return self

    def assemble(self, g1, g2, f):
        """Assemble the linear system.

        Args:
            g1: the boundary values `u = g1(x, y)`
            g2: the normal derivative `d_n u = g2(x, y)` on the boundary
            f: the source function `f(x, y)`
        """
        self._require('basis', 'init()')
        _, assemble_func = _METHODS[self.method]
        A, rhs, penalties = assemble_func(self, f, g2)
        self._A, self._rhs, self._penalties = A, rhs, penalties
        bcs = asm.compute_dirichlet_bcs(self.basis, self.mp, g1)
        self._system = asm.RestrictedLinearSystem(A, rhs, bcs)
        self.solution = None
        self._errors = None

    def num_dofs(self):
        """Number of free unknowns of the linear system."""
        self._require('_system', 'assemble()')
        return self._system.A.shape[0]

    def matrix(self):
        """The assembled matrix, with the boundary dofs eliminated."""
        self._require('_system', 'assemble()')
        return self._system.A

    def rhs(self):
        """The assembled right-hand side, with the boundary dofs eliminated."""
        self._require('_system', 'assemble()')
        return self._system.b

    def solve(self):
        """Solve the linear system and return the vector of free unknowns."""
        self._require('_system', 'assemble()')
        u = scipy.sparse.linalg.spsolve(self._system.A.tocsc(), self._system.b)
        self.solution = self._system.complete(u)
        return u

    def construct_solution(self, u=None):
        """Return the discrete solution as a list of patch functions.

        If `u` (a vector of free unknowns) is given, it is used instead of
        the result of :meth:`solve`.
        """
        if u is not None:
            self._require('_system', 'assemble()')
            self.solution = self._system.complete(u)
        self._require('solution', 'solve()')
        return self.basis.function(self.solution)

    def error(self, exact, grad, hess):
        """Compute the errors of the discrete solution.

        Args:
            exact: the exact solution `u(x, y)`
            grad: its gradient `(u_x, u_y)`
            hess: its Hessian `(u_xx, u_xy, u_yy)`
        """
        funcs = self.construct_solution()
        self._errors = {
            'l2': norms.l2_error(self.mp, funcs, exact),
            'h1': norms.h1_seminorm_error(self.mp, funcs, grad),
            'h2': norms.h2_seminorm_error(self.mp, funcs, hess),
            'jump': norms.interface_jump(self.mp, funcs),
        }
        return self._errors

    def _error(self, key):
        self._require('_errors', 'error()')
        return self._errors[key]

    def value_l2(self):
        return self._error('l2')

    def value_h1(self):
        return self._error('h1')

    def value_h2(self):
        return self._error('h2')

    def value_jump(self):
        """Per-interface L2 norms of the jump of the normal derivative."""
        return self._error('jump')

    def value_jump_sum(self):
        """Combined jump norm over all interfaces."""
        return np.sqrt(np.sum(self._error('jump')**2))

    def value_penalty(self):
        """Penalty parameters of the interfaces (Nitsche method only)."""
        if self.method is not Method.NITSCHE:
            raise NotImplementedError('penalty values are only defined for the Nitsche method')
        self._require('_penalties', 'assemble()')
        return self._penalties

    def __repr__(self):
        return 'Biharmonic(%s, %d patches)' % (self.method.value, self.mp.numpatches)
