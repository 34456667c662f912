"""Cross-file consistency checks for elemental operator data.

Group operators are only meaningful if all of their elemental operators
were computed on the same gauge configurations with the same quark
sources. :func:`check_consistency` compares the header sections of every
source and sink file against the first operator's files:

1. every operator lists the same number of configurations;
2. every configuration lists the same number of dilution timeslices;
3. ``Config_info`` agrees across operators and between source and sink;
4. ``QuarkSources`` (the dilution scheme) agrees between source and sink
   and across operators, and ``QuarkSinks`` agrees across operators;
5. ``Op_Info`` is the same in every source and sink file of one operator.

Any disagreement raises :class:`~qcdops.errors.DataInconsistencyError`
naming the operator, configuration and timeslice.

"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Sequence

from qcdops.errors import DataInconsistencyError
from qcdops.io.lime import read_file_xml
from qcdops.io.xmldoc import has, subtree_string
from qcdops.keys import ElementalOperatorFileSet
from qcdops.registry import SINK, SOURCE, _Side

logger = logging.getLogger(__name__)


class _Headers:
    """File XML of operator files, each parsed once per check."""

    def __init__(self) -> None:
        self._parsed: dict[str, ET.Element] = {}

    def _root(self, filename: str) -> ET.Element:
        if filename not in self._parsed:
            self._parsed[filename] = read_file_xml(filename)
        return self._parsed[filename]

    def section(self, filename: str, side: _Side, section: str) -> str:
        return subtree_string(self._root(filename), side.path(section))

    def optional_section(self, filename: str, side: _Side, section: str) -> str:
        root = self._root(filename)
        if not has(root, side.path(section)):
            return ""
        return subtree_string(root, side.path(section))


def check_consistency(file_sets: Sequence[ElementalOperatorFileSet]) -> None:
    """Verify that all elemental operator files belong together.

    Parameters
    ----------
    file_sets : Sequence[ElementalOperatorFileSet]
        Files of every elemental operator, in input order.

    Raises
    ------
    DataInconsistencyError
        On the first mismatch found.

    """
    if not file_sets or not file_sets[0].cfgs or not file_sets[0].cfgs[0]:
        msg = "No elemental operator files to check"
        raise DataInconsistencyError(msg)

    headers = _Headers()
    first = file_sets[0]
    nbins = first.num_configs
    nt = len(first.cfgs[0])
    prop_info = headers.optional_section(first.first_source, SOURCE, "QuarkSinks")

    for i, file_set in enumerate(file_sets):
        if file_set.num_configs != nbins:
            msg = (
                f"Inconsistent (with first op) number of configs: "
                f"{file_set.num_configs} instead of {nbins}"
            )
            raise DataInconsistencyError(msg, op=i)
        if not file_set.cfgs[0]:
            raise DataInconsistencyError("Inconsistent number of time dilution files", op=i, cfg=0)

        op_info = headers.section(file_set.first_source, SOURCE, "Op_Info")

        for n in range(nbins):
            if len(file_set.cfgs[n]) != nt:
                raise DataInconsistencyError("Inconsistent number of time dilution files", op=i, cfg=n)

            cfg_info = headers.section(first.cfgs[n][0].src_file, SOURCE, "Config_info")
            curr_cfg_info = headers.section(file_set.cfgs[n][0].src_file, SOURCE, "Config_info")
            if curr_cfg_info != cfg_info:
                raise DataInconsistencyError("Configs do not match for all ops", op=i, cfg=n)

            for t0 in range(nt):
                src = file_set.cfgs[n][t0].src_file
                snk = file_set.cfgs[n][t0].snk_file

                if headers.optional_section(snk, SINK, "QuarkSinks") != prop_info:
                    raise DataInconsistencyError("Propagator parameters do not match", op=i, cfg=n, t0=t0)

                if headers.section(snk, SINK, "Config_info") != cfg_info:
                    raise DataInconsistencyError("Sink cfgInfo is inconsistent", op=i, cfg=n, t0=t0)
                if headers.section(src, SOURCE, "Config_info") != cfg_info:
                    raise DataInconsistencyError("Source cfgInfo is inconsistent", op=i, cfg=n, t0=t0)

                first_dil = headers.section(first.cfgs[0][t0].src_file, SOURCE, "QuarkSources")
                if headers.section(snk, SINK, "QuarkSources") != first_dil:
                    raise DataInconsistencyError(
                        "Dilution scheme does not match (sink)", op=i, cfg=n, t0=t0
                    )
                if headers.section(src, SOURCE, "QuarkSources") != first_dil:
                    raise DataInconsistencyError(
                        "Dilution scheme does not match (source)", op=i, cfg=n, t0=t0
                    )

                if headers.section(src, SOURCE, "Op_Info") != op_info:
                    raise DataInconsistencyError("Src Op not the same", op=i, cfg=n, t0=t0)
                if headers.section(snk, SINK, "Op_Info") != op_info:
                    raise DataInconsistencyError("Snk Op not the same", op=i, cfg=n, t0=t0)

        logger.debug("Elemental op %d consistent", i)

    logger.info("Consistency checks passed for %d elemental ops", len(file_sets))


__all__ = [
    "check_consistency",
]
