"""Backend abstraction layer for qcdops linear solvers.

This module provides a backend registry that dispatches
:func:`qcdops.solvers.invert` to different implementations (the native
torch solvers or a QUDA inverter on the GPU).

Example
-------
>>> import qcdops.solvers  # registers the native backend
>>> from qcdops.backends import Backend, registry
>>> registry.is_available(Backend.NATIVE)
True
>>> invert_fn = registry.get(Backend.NATIVE)

"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class Backend(Enum):
    """Available backend implementations for solvers.

    Attributes
    ----------
    NATIVE : auto
        Torch implementation in :mod:`qcdops.solvers` (always available).
    QUDA : auto
        QUDA inverter (requires the ``quda_torch_op`` extension).

    """

    NATIVE = auto()
    QUDA = auto()

    @classmethod
    def parse(cls, value: Backend | str) -> Backend:
        """Return the backend named by ``value`` (case-insensitive).

        Raises
        ------
        ValueError
            If no backend has that name.

        """
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            names = ", ".join(b.name.lower() for b in cls)
            msg = f"Unknown backend '{value}'. Use one of: {names}."
            raise ValueError(msg) from None


class BackendNotAvailableError(Exception):
    """Raised when a requested backend is not available.

    Parameters
    ----------
    backend : Backend
        The backend that was requested but not available.

    """

    def __init__(self, backend: Backend) -> None:
        self.backend = backend
        msg = f"Backend '{backend.name.lower()}' is not available."
        if backend is Backend.QUDA:
            msg += " Import qcdops.backends.quda first; it needs the quda_torch_op extension."
        super().__init__(msg)


class BackendRegistry:
    """Registry for backend solver implementations.

    Every registered function is called as ``fn(b, **solver_args)`` and
    returns the solution together with a
    :class:`~qcdops.solvers.SystemSolverResults`.

    Example
    -------
    >>> registry = BackendRegistry()
    >>> registry.register(Backend.NATIVE, my_invert_fn)
    >>> registry.is_available(Backend.NATIVE)
    True

    """

    def __init__(self) -> None:
        self._solvers: dict[Backend, Callable[..., Any]] = {}

    def register(self, backend: Backend | str, solver_fn: Callable[..., Any]) -> None:
        """Register a solver function for a backend."""
        backend = Backend.parse(backend)
        logger.debug("Registered %s backend: %r", backend.name.lower(), solver_fn)
        self._solvers[backend] = solver_fn

    def get(self, backend: Backend | str) -> Callable[..., Any]:
        """Get the solver function for a backend, given as a member or a name.

        Raises
        ------
        BackendNotAvailableError
            If the requested backend is not registered.

        """
        backend = Backend.parse(backend)
        if backend not in self._solvers:
            raise BackendNotAvailableError(backend)
        return self._solvers[backend]

    def is_available(self, backend: Backend | str) -> bool:
        """Check if a backend is registered."""
        return Backend.parse(backend) in self._solvers

    def names(self) -> list[str]:
        """Names of the registered backends."""
        return [b.name.lower() for b in self._solvers]


# Module-level registry instance
registry = BackendRegistry()

__all__ = [
    "Backend",
    "BackendNotAvailableError",
    "BackendRegistry",
    "registry",
]
