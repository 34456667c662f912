"""High-level solver entry point.

:func:`invert` dispatches a solve to a registered backend, times it and
reports the outcome in one log line, in the manner of the Chroma system
solvers.

Example
-------
>>> import torch
>>> from qcdops.solvers import invert
>>> b = torch.ones(16, dtype=torch.complex128)
>>> x, res = invert(b, A_apply=lambda v: 4.0 * v, tol=1e-12)
>>> res.n_count, res.converged
(1, True)

"""

from __future__ import annotations

import logging
import time
from typing import Any

import torch

import qcdops.backends.native  # noqa: F401  # registers Backend.NATIVE
from qcdops.backends import Backend, registry
from qcdops.solvers.results import SystemSolverResults

logger = logging.getLogger(__name__)


def invert(
    b: torch.Tensor,
    backend: Backend | str = Backend.NATIVE,
    **solver_args: Any,
) -> tuple[torch.Tensor, SystemSolverResults]:
    """Solve a linear system with the selected backend.

    Parameters
    ----------
    b : torch.Tensor
        Right-hand side.
    backend : Backend or str
        Backend to use, ``"native"`` or ``"quda"``. The QUDA backend must
        have been registered by importing :mod:`qcdops.backends.quda`.
    **solver_args
        Passed to the backend: ``A_apply``, ``x0``, ``tol``, ``maxiter`` for
        the native backend; see :func:`qcdops.backends.quda.quda_invert` for
        QUDA.

    Returns
    -------
    tuple[torch.Tensor, SystemSolverResults]
        Solution and convergence information including the wall-clock time.

    Raises
    ------
    ValueError
        If ``backend`` names no known backend.
    BackendNotAvailableError
        If the backend is known but not registered.

    """
    backend = Backend.parse(backend)
    solver_fn = registry.get(backend)

    start = time.perf_counter()
    x, res = solver_fn(b, **solver_args)
    res.seconds = time.perf_counter() - start

    report = logger.info if res.converged else logger.warning
    report(
        "%s_SOLVER: n_count = %d, resid = %.6e, converged = %s, time = %.3f s",
        backend.name,
        res.n_count,
        res.resid,
        res.converged,
        res.seconds,
    )
    return x, res


__all__ = ["invert"]
