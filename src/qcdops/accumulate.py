"""Accumulation of elemental operators into group operators.

A group operator is built term by term:

.. math::

    O_G[i, j, m](t) = \\sum_k c_k \\, O_{e_k}[i, j, m](t)

for every dilution pair :math:`(i, j)`, momentum index :math:`m` and time
:math:`t`. :func:`initialize_shape` fixes the layout of the accumulator from
the first operand; :func:`accumulate` adds one weighted operand. Terms are
added in the order given, so repeated runs produce identical bits.

Example
-------
>>> out = MesonOperator(id="pion")
>>> initialize_shape(out, first)
>>> accumulate(out, first, 2.0 + 0.0j)
>>> accumulate(out, second, -1.0 + 0.0j)

"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import torch

from qcdops.coefficients import Term
from qcdops.errors import DataInconsistencyError, ShapeMismatchError
from qcdops.keys import OperatorKey
from qcdops.operators import Dilution, MesonOperator, MomentumProjection, TimeSlice

logger = logging.getLogger(__name__)


def initialize_shape(out: MesonOperator, first: MesonOperator) -> None:
    """Copy metadata and allocate a zeroed layout matching ``first``.

    Copies seeds, dilution schemes, smearing, ``mom2_max``, ``decay_dir``
    and provenance strings. The operator ``id`` of ``out`` is kept. Every
    time slice, dilution cell and momentum projection of ``first`` gets a
    counterpart in ``out`` with the same ``t0`` and momentum and a zero time
    sequence of the same length, dtype and device.

    Parameters
    ----------
    out : MesonOperator
        Accumulator, modified in place.
    first : MesonOperator
        First operand of the combination.

    """
    out.mom2_max = first.mom2_max
    out.decay_dir = first.decay_dir
    out.seed_l = first.seed_l
    out.seed_r = first.seed_r
    out.dilution_l = first.dilution_l
    out.dilution_r = first.dilution_r
    out.config_info = first.config_info
    out.quark_sources_l = first.quark_sources_l
    out.quark_sources_r = first.quark_sources_r
    out.quark_smearing = first.quark_smearing
    out.link_smearing = first.link_smearing

    out.time_slices = [
        TimeSlice(
            dilutions=[
                [
                    Dilution(
                        [MomentumProjection(proj.mom, torch.zeros_like(proj.op)) for proj in dil.mom_projs]
                    )
                    for dil in row
                ]
                for row in ts.dilutions
            ],
            t0=ts.t0,
        )
        for ts in first.time_slices
    ]


def check_congruent(out: MesonOperator, operand: MesonOperator) -> None:
    """Check that ``operand`` has the layout of ``out``.

    Compares the number of time slices, the dilution table dimensions, the
    number of momentum projections per cell, their momenta, and the length
    of every time sequence.

    Raises
    ------
    ShapeMismatchError
        Naming the first cell that differs.

    """
    if len(out.time_slices) != len(operand.time_slices):
        msg = f"Operand has {len(operand.time_slices)} time slices, accumulator {len(out.time_slices)}"
        raise ShapeMismatchError(msg)

    for k, (ts_out, ts_in) in enumerate(zip(out.time_slices, operand.time_slices)):
        if ts_out.shape != ts_in.shape or any(len(row) != ts_out.shape[1] for row in ts_in.dilutions):
            msg = f"Time slice {k}: dilution table {ts_in.shape} differs from accumulator {ts_out.shape}"
            raise ShapeMismatchError(msg)
        for i, (row_out, row_in) in enumerate(zip(ts_out.dilutions, ts_in.dilutions)):
            for j, (dil_out, dil_in) in enumerate(zip(row_out, row_in)):
                if len(dil_out.mom_projs) != len(dil_in.mom_projs):
                    msg = (
                        f"Time slice {k}, dilution ({i}, {j}): {len(dil_in.mom_projs)} momenta, "
                        f"accumulator has {len(dil_out.mom_projs)}"
                    )
                    raise ShapeMismatchError(msg)
                for m, (p_out, p_in) in enumerate(zip(dil_out.mom_projs, dil_in.mom_projs)):
                    if p_out.mom != p_in.mom or p_out.op.shape != p_in.op.shape:
                        msg = (
                            f"Time slice {k}, dilution ({i}, {j}), momentum {m}: "
                            f"{p_in.mom} x {tuple(p_in.op.shape)} differs from accumulator "
                            f"{p_out.mom} x {tuple(p_out.op.shape)}"
                        )
                        raise ShapeMismatchError(msg)


def accumulate(out: MesonOperator, operand: MesonOperator, coeff: complex) -> None:
    """Add ``coeff * operand`` to ``out`` in place.

    Parameters
    ----------
    out : MesonOperator
        Accumulator prepared by :func:`initialize_shape`.
    operand : MesonOperator
        Elemental operator with the same layout.
    coeff : complex
        Weight of the operand.

    Raises
    ------
    ShapeMismatchError
        If the layouts differ; ``out`` is left unchanged.

    """
    check_congruent(out, operand)
    for ts_out, ts_in in zip(out.time_slices, operand.time_slices):
        for row_out, row_in in zip(ts_out.dilutions, ts_in.dilutions):
            for dil_out, dil_in in zip(row_out, row_in):
                for p_out, p_in in zip(dil_out.mom_projs, dil_in.mom_projs):
                    p_out.op += p_in.op * coeff


def combine(
    name: str,
    terms: Sequence[Term],
    fetch: Callable[[OperatorKey], MesonOperator],
) -> MesonOperator:
    """Build one group operator from its terms.

    Parameters
    ----------
    name : str
        Operator id of the result.
    terms : Sequence[Term]
        Terms in manifest order.
    fetch : Callable[[OperatorKey], MesonOperator]
        Returns the elemental operand of a key.

    Returns
    -------
    MesonOperator
        The weighted sum of all operands.

    Raises
    ------
    DataInconsistencyError
        If ``terms`` is empty, or (as :class:`ShapeMismatchError`) if the
        operands do not share one layout.

    """
    if not terms:
        msg = f"Group operator '{name}' has no terms"
        raise DataInconsistencyError(msg)

    out = MesonOperator(id=name)
    for m, term in enumerate(terms):
        operand = fetch(term.key)
        if m == 0:
            logger.debug("init. group meson op %s", name)
            initialize_shape(out, operand)
        logger.debug("Adding elemental %s to group meson op %s", term.key, name)
        accumulate(out, operand, term.coeff)
    return out


__all__ = [
    "accumulate",
    "check_congruent",
    "combine",
    "initialize_shape",
]
