"""Global configuration for qcdops.

This module provides global configuration settings for the qcdops library,
including the data type used for momentum-projected operator values and
whether elemental operator files are cross-checked before use.

The default dtype is :obj:`torch.complex128`, matching the double precision
complex numbers in which operator files store their values. A group
operator is the weighted sum

.. math::

    O_G(t) = \\sum_k c_k \\, O_{e_k}(t)

of elemental operators :math:`O_{e_k}`, so accumulating in lower precision
loses digits relative to the files.

Example
-------
>>> import qcdops as qo
>>> print(qo.config.DEFAULT_DTYPE)
torch.complex128

>>> # Skip the consistency checks for all subsequent runs
>>> qo.config.CHECK_CONSISTENCY = False

"""

from typing import Any

import torch


class QcdOpsConfig:
    """Global configuration class for qcdops.

    Attributes
    ----------
    DEFAULT_DTYPE : torch.dtype
        Complex data type of operator time sequences.
        Defaults to :obj:`torch.complex128`.

    DEFAULT_DEVICE : torch.device
        Device operator time sequences are allocated on.
        Defaults to CPU.

    CHECK_CONSISTENCY : bool
        Whether :func:`qcdops.make_meson_ops` cross-checks all elemental
        operator files before combining them, unless the run input says
        otherwise. Defaults to True.

    Notes
    -----
    The consistency check re-opens every source and sink file once, which
    dominates the run time for large datasets. Turning it off is only safe
    for inputs produced by a single, known-good pipeline.

    """

    def __init__(self) -> None:
        """Initialize the configuration with default values."""
        self.DEFAULT_DTYPE: Any = torch.complex128
        self.DEFAULT_DEVICE: Any = torch.device("cpu")
        self.CHECK_CONSISTENCY: bool = True

    def reset(self) -> None:
        """Reset configuration to default values.

        Example
        -------
        >>> import qcdops as qo
        >>> qo.config.DEFAULT_DTYPE = torch.complex64
        >>> qo.config.reset()
        >>> print(qo.config.DEFAULT_DTYPE)
        torch.complex128

        """
        self.DEFAULT_DTYPE = torch.complex128
        self.DEFAULT_DEVICE = torch.device("cpu")
        self.CHECK_CONSISTENCY = True

    def __repr__(self) -> str:
        """Return a string representation of the configuration."""
        return (
            f"QcdOpsConfig(\n"
            f"    DEFAULT_DTYPE={self.DEFAULT_DTYPE},\n"
            f"    DEFAULT_DEVICE={self.DEFAULT_DEVICE},\n"
            f"    CHECK_CONSISTENCY={self.CHECK_CONSISTENCY}\n"
            f")"
        )


# Global configuration instance
config = QcdOpsConfig()
