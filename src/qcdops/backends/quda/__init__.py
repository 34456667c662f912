"""QUDA backend for qcdops solvers.

QUDA (https://github.com/lattice/quda) solves lattice Dirac equations on
GPUs. This package wraps its Wilson inverter, reached through the
``quda_torch_op`` extension, which must be installed separately::

    pip install -e path/to/quda_torch_op --no-build-isolation

The backend is registered with the backend registry when this module is
imported; importing it without ``quda_torch_op`` raises
:class:`ImportError`.

"""

from __future__ import annotations

import logging
import time

import torch

from qcdops.backends import Backend, registry
from qcdops.solvers.results import SystemSolverResults

# Import quda_torch_op to verify it's available and trigger operator registration
import quda_torch_op

logger = logging.getLogger(__name__)

GIB = float(1 << 30)


def _gib(t: torch.Tensor) -> float:
    return t.numel() * t.element_size() / GIB


def quda_invert(
    b: torch.Tensor,
    gauge: torch.Tensor,
    dims: tuple[int, int, int, int],
    kappa: float,
    tol: float = 1e-10,
    maxiter: int = 1000,
    equation: str = "MdagM",
    t_boundary: int = -1,
) -> tuple[torch.Tensor, SystemSolverResults]:
    """Solve the Wilson equation with QUDA.

    Parameters
    ----------
    b : torch.Tensor
        Source spinor in site layout ``[V, 4, 3]``.
    gauge : torch.Tensor
        Gauge links ``[4, V, 3, 3]``.
    dims : tuple[int, int, int, int]
        Lattice extent ``(X, Y, Z, T)``.
    kappa : float
        Hopping parameter.
    tol : float
        Target relative residual.
    maxiter : int
        Maximum number of iterations.
    equation : str
        ``"M"`` or ``"MdagM"``.
    t_boundary : int
        Fermion boundary condition in time, -1 antiperiodic, +1 periodic.

    Returns
    -------
    tuple[torch.Tensor, SystemSolverResults]
        Solution and convergence information.

    Raises
    ------
    ValueError
        If ``equation`` is unknown.
    RuntimeError
        If ``quda_torch_op`` was built without QUDA support.

    Notes
    -----
    QUDA is initialized on the default GPU on first use. Tensors are passed
    on the CPU; QUDA moves them to the device and back internally.

    """
    if equation not in ("M", "MdagM"):
        msg = f"Unsupported equation type: {equation}. Use 'M' or 'MdagM'."
        raise ValueError(msg)

    if not quda_torch_op.quda_is_available():
        msg = (
            "QUDA is not available. Ensure quda_torch_op was built with QUDA support. "
            "Set QUDA_HOME and MPI_HOME environment variables and rebuild."
        )
        raise RuntimeError(msg)

    if not quda_torch_op.quda_is_initialized():
        quda_torch_op.quda_init(-1)

    gauge_data = gauge.to(dtype=b.dtype).contiguous().cpu()
    spinor_data = b.contiguous().cpu()
    dims_tensor = torch.tensor(list(dims), dtype=torch.int64)

    start = time.perf_counter()
    solution, converged, iters, residual = quda_torch_op.wilson_invert(
        gauge_data,
        spinor_data,
        dims_tensor,
        kappa,
        tol,
        maxiter,
        equation,
        t_boundary,
    )
    secs = time.perf_counter() - start

    logger.info("Cuda Space Required")
    logger.info("\t Spinor: %.4f GiB", 2 * _gib(spinor_data))
    logger.info("\t Gauge : %.4f GiB", _gib(gauge_data))
    logger.info("QUDA_WILSON_SOLVER: time = %.3f s, iters = %d", secs, iters)

    return solution, SystemSolverResults(
        n_count=int(iters),
        converged=bool(converged),
        resid=float(residual),
        backend="quda",
    )


# Register QUDA backend on import
registry.register(Backend.QUDA, quda_invert)

__all__ = [
    "quda_invert",
]
