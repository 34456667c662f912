"""Conjugate Gradient solver for Hermitian positive-definite systems.

Solves :math:`A x = b` for a Hermitian positive-definite :math:`A` given
only as a function applying it to a tensor. The recurrence is the standard
Hestenes-Stiefel one:

.. math::

    \\alpha_k &= \\frac{(r_k, r_k)}{(p_k, A p_k)} \\\\
    x_{k+1} &= x_k + \\alpha_k p_k \\\\
    r_{k+1} &= r_k - \\alpha_k A p_k \\\\
    \\beta_k &= \\frac{(r_{k+1}, r_{k+1})}{(r_k, r_k)} \\\\
    p_{k+1} &= r_{k+1} + \\beta_k p_k

iterated until :math:`\\|r_k\\| / \\|b\\| < \\text{tol}`. On the lattice this is
the solver for the normal equation :math:`M^\\dagger M x = M^\\dagger b` of a
Dirac operator :math:`M`.

Example
-------
>>> import torch
>>> b = torch.randn(100, dtype=torch.complex128)
>>> x, res = cg(lambda v: 2.0 * v, b, tol=1e-10)
>>> res.converged
True

"""

from __future__ import annotations

import logging
from collections.abc import Callable

import torch

from qcdops.solvers.results import SystemSolverResults

logger = logging.getLogger(__name__)


def _norm2(v: torch.Tensor) -> torch.Tensor:
    flat = v.flatten()
    return torch.vdot(flat, flat).real


def cg(
    A_apply: Callable[[torch.Tensor], torch.Tensor],
    b: torch.Tensor,
    x0: torch.Tensor | None = None,
    tol: float = 1e-10,
    maxiter: int = 1000,
) -> tuple[torch.Tensor, SystemSolverResults]:
    """Solve :math:`A x = b` by Conjugate Gradient.

    Parameters
    ----------
    A_apply : Callable[[torch.Tensor], torch.Tensor]
        Applies :math:`A`; must preserve shape and dtype.
    b : torch.Tensor
        Right-hand side.
    x0 : torch.Tensor, optional
        Initial guess. Zero if omitted.
    tol : float
        Target relative residual.
    maxiter : int
        Maximum number of iterations.

    Returns
    -------
    tuple[torch.Tensor, SystemSolverResults]
        Solution and convergence information. ``seconds`` is left at zero.

    """
    b_norm = torch.sqrt(_norm2(b)).item()
    if b_norm < 1e-15:
        return torch.zeros_like(b), SystemSolverResults(n_count=0, converged=True, resid=0.0)

    if x0 is None:
        x = torch.zeros_like(b)
        r = b.clone()
    else:
        x = x0.clone()
        r = b - A_apply(x)

    p = r.clone()
    rr = _norm2(r)
    resid = torch.sqrt(rr).item() / b_norm
    n_count = 0

    while resid >= tol and n_count < maxiter:
        Ap = A_apply(p)
        pAp = torch.vdot(p.flatten(), Ap.flatten()).real
        if pAp.abs() < 1e-30:
            logger.warning("CG breakdown after %d iterations: (p, Ap) = %g", n_count, pAp.item())
            break

        alpha = rr / pAp
        x = x + alpha * p
        r = r - alpha * Ap
        rr_new = _norm2(r)
        p = r + (rr_new / rr) * p
        rr = rr_new

        n_count += 1
        resid = torch.sqrt(rr).item() / b_norm
        logger.debug("CG iter %d: resid = %.6e", n_count, resid)

    return x, SystemSolverResults(n_count=n_count, converged=resid < tol, resid=resid)


__all__ = ["cg"]
