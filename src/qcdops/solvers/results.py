"""Outcome of a linear solve."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SystemSolverResults:
    """Information about a finished solve.

    Attributes
    ----------
    n_count : int
        Number of iterations performed.
    converged : bool
        Whether the solver reached the requested tolerance.
    resid : float
        Final relative residual norm :math:`\\|r\\| / \\|b\\|`.
    seconds : float
        Wall-clock time of the solve, filled in by :func:`qcdops.solvers.invert`.
    backend : str
        Name of the backend that ran the solve.

    """

    n_count: int
    converged: bool
    resid: float
    seconds: float = 0.0
    backend: str = "native"


__all__ = ["SystemSolverResults"]
