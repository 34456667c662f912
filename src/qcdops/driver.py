"""Construction of group-theoretical meson operators.

:func:`make_meson_ops` is the library form of the ``make_meson_ops``
program. For every configuration, group operator and dilution timeslice it
combines the elemental source and sink operators named by the coefficient
manifests and writes the results to LIME files

.. code-block:: text

    {SourceOpOutputPath}{name}_t{t0}_src.lime
    {SinkOpOutputPath}{name}_t{t0}_snk.lime

where ``t0`` is the time coordinate stored in the combined operator.

Example
-------
>>> from qcdops import make_meson_ops, read_input
>>> result = make_meson_ops(read_input("make_ops.ini.xml"))
>>> result.write_xml("make_ops.out.xml")

"""

from __future__ import annotations

import copy
import functools
import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from qcdops.accumulate import combine
from qcdops.coefficients import GroupMesonOperatorSpec, read_coeff_files
from qcdops.config import config
from qcdops.errors import DataInconsistencyError
from qcdops.io.lime import write_qio_file
from qcdops.io.xmldoc import parse_xml, sub_element, to_string
from qcdops.operators import MesonOperator
from qcdops.params import MakeMesonOpsInput
from qcdops.registry import ElementalOperatorRegistry
from qcdops.validate import check_consistency

logger = logging.getLogger(__name__)


@dataclass
class MakeMesonOpsResult:
    """Outcome of :func:`make_meson_ops`.

    Attributes
    ----------
    operators : list[GroupMesonOperatorSpec]
        Group operators read from the coefficient manifests.
    source_files, sink_files : list[str]
        Files written, in the order they were produced.
    xml : ET.Element
        The run record: root ``MakeMesonOps`` with the ``Input`` echo and
        the ``GroupMesonOperators`` list.

    """

    operators: list[GroupMesonOperatorSpec] = field(default_factory=list)
    source_files: list[str] = field(default_factory=list)
    sink_files: list[str] = field(default_factory=list)
    xml: ET.Element = field(default_factory=lambda: ET.Element("MakeMesonOps"))

    def write_xml(self, path: str | Path) -> None:
        """Write the run record to ``path``."""
        Path(path).write_text(to_string(self.xml))


def _file_xml(root_tag: str, group_op: GroupMesonOperatorSpec, op: MesonOperator) -> ET.Element:
    root = ET.Element(root_tag)
    group_op.to_xml(root, "OpInfo")
    if op.config_info:
        cfg_info = parse_xml(op.config_info)
        cfg_info.tag = "Config_info"
        root.append(cfg_info)
    else:
        sub_element(root, "Config_info")
    return root


def _record_xml(root_tag: str, op: MesonOperator) -> ET.Element:
    root = ET.Element(root_tag)
    op.write_header(root, "OpInfo")
    return root


def write_group_operator(
    filename: str,
    file_tag: str,
    record_tag: str,
    group_op: GroupMesonOperatorSpec,
    op: MesonOperator,
) -> None:
    """Write a combined operator to a LIME file.

    Parameters
    ----------
    filename : str
        Output file.
    file_tag : str
        Root of the file XML, ``SourceGroupMesonOperator`` or
        ``SinkGroupMesonOperator``.
    record_tag : str
        Root of the record XML, ``CreationOperator`` or
        ``AnnihilationOperator``.
    group_op : GroupMesonOperatorSpec
        Definition of the operator, echoed into the file XML.
    op : MesonOperator
        The combined operator.

    """
    write_qio_file(
        filename,
        _file_xml(file_tag, group_op, op),
        _record_xml(record_tag, op),
        op.to_binary(),
    )


def make_meson_ops(
    inp: MakeMesonOpsInput,
    check: bool | None = None,
) -> MakeMesonOpsResult:
    """Build and write all group operators of a run.

    Parameters
    ----------
    inp : MakeMesonOpsInput
        Run description, see :func:`qcdops.read_input`.
    check : bool, optional
        Whether to cross-check the elemental operator files first.
        Overrides ``inp.param.check_consistency``, which in turn overrides
        :data:`qcdops.config.CHECK_CONSISTENCY`.

    Returns
    -------
    MakeMesonOpsResult
        Files written and the run record.

    Raises
    ------
    DataInconsistencyError
        If the number of output paths differs from the number of
        configurations, or the elemental operators disagree.
    OperatorNotFoundError
        If a manifest names an operator no elemental file provides.
    ManifestParseError
        If a coefficient manifest is malformed.
    OSError
        If a file cannot be read or written.

    """
    result = MakeMesonOpsResult()
    if inp.xml is not None:
        result.xml.append(_echo(inp.xml))

    logger.info("Reading Coeff Files")
    final_ops = read_coeff_files(inp.input_files.coeff_files)
    result.operators = final_ops

    elem_op_files = inp.input_files.elem_op_files
    nbins = elem_op_files[0].num_configs
    nt0 = len(elem_op_files[0].cfgs[0]) if nbins else 0

    if len(inp.output_info.cfg_paths) != nbins:
        msg = (
            f"Number of output config paths ({len(inp.output_info.cfg_paths)}) "
            f"not equal to that of input ({nbins})"
        )
        raise DataInconsistencyError(msg)

    if check is None:
        check = inp.param.check_consistency
    if check is None:
        check = config.CHECK_CONSISTENCY

    if check:
        logger.info("Performing Sanity checks")
        check_consistency(elem_op_files)
    else:
        logger.warning("Skipping consistency checks - not checking for dilution sanity")

    logger.info("Writing to xml")
    ops_xml = sub_element(result.xml, "GroupMesonOperators")
    for group_op in final_ops:
        group_op.to_xml(ops_xml, "elem")

    logger.info("MAKE_MESON_OPS: construct meson operators")
    registry = ElementalOperatorRegistry(elem_op_files)

    for i in range(nbins):
        logger.info("Forming Ops: Bin %d", i)
        paths = inp.output_info.cfg_paths[i]

        for group_op in final_ops:
            for t0 in range(nt0):
                start = time.perf_counter()
                logger.info("Making Source Meson Op: %s t0 = %d", group_op.name, t0)
                source = combine(
                    group_op.name,
                    group_op.terms,
                    functools.partial(registry.get_source_operator, cfg=i, t0=t0),
                )
                logger.info("Source op constructed: %.3f secs", time.perf_counter() - start)

                start = time.perf_counter()
                filename = f"{paths.src_path}{group_op.name}_t{source.time_slices[0].t0}_src.lime"
                logger.info("Source Filename = %s", filename)
                write_group_operator(filename, "SourceGroupMesonOperator", "CreationOperator", group_op, source)
                result.source_files.append(filename)
                logger.info("Source Op Written : time = %.3f sec", time.perf_counter() - start)

                start = time.perf_counter()
                logger.info("Making Sink Meson Op: %s t0 = %d", group_op.name, t0)
                sink = combine(
                    group_op.name,
                    group_op.terms,
                    functools.partial(registry.get_sink_operator, cfg=i, t0=t0),
                )
                filename = f"{paths.snk_path}{group_op.name}_t{sink.time_slices[0].t0}_snk.lime"
                logger.info("Sink Filename = %s", filename)
                write_group_operator(filename, "SinkGroupMesonOperator", "AnnihilationOperator", group_op, sink)
                result.sink_files.append(filename)
                logger.info("Sink Op Written : time = %.3f sec", time.perf_counter() - start)

    logger.info(
        "MAKE_MESON_OPS: wrote %d source and %d sink files",
        len(result.source_files),
        len(result.sink_files),
    )
    return result


def _echo(root: ET.Element) -> ET.Element:
    echo = ET.Element("Input")
    echo.append(copy.deepcopy(root))
    return echo


__all__ = [
    "MakeMesonOpsResult",
    "make_meson_ops",
    "write_group_operator",
]
