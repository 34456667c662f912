"""Native torch backend.

Registers :func:`native_invert` for :attr:`Backend.NATIVE` on import.

"""

from __future__ import annotations

from collections.abc import Callable

import torch

from qcdops.backends import Backend, registry
from qcdops.solvers.cg import cg
from qcdops.solvers.results import SystemSolverResults


def native_invert(
    b: torch.Tensor,
    A_apply: Callable[[torch.Tensor], torch.Tensor],
    x0: torch.Tensor | None = None,
    tol: float = 1e-10,
    maxiter: int = 1000,
) -> tuple[torch.Tensor, SystemSolverResults]:
    """Solve the Hermitian positive-definite system ``A_apply(x) = b`` by CG."""
    x, res = cg(A_apply, b, x0=x0, tol=tol, maxiter=maxiter)
    res.backend = "native"
    return x, res


registry.register(Backend.NATIVE, native_invert)

__all__ = ["native_invert"]
