"""Solvers subpackage for qcdops.

- :func:`invert`: solve through a registered backend, timed and reported
- :class:`SystemSolverResults`: iteration count, residual and timing of a solve
- :func:`cg`: Conjugate Gradient for Hermitian positive-definite systems

"""

from qcdops.solvers.api import invert
from qcdops.solvers.cg import cg
from qcdops.solvers.results import SystemSolverResults

__all__ = [
    "SystemSolverResults",
    "cg",
    "invert",
]
