"""Run description of :func:`qcdops.make_meson_ops`.

The driver is configured by an XML document of the form

.. code-block:: xml

    <MakeMesonOps>
      <Param>
        <version>1</version>
        <Layout>8 8 8 16</Layout>
        <Decay_dir>3</Decay_dir>
        <CheckConsistency>true</CheckConsistency>   <!-- optional -->
      </Param>
      <InputFiles>
        <CoeffFiles><elem>ops.coeff</elem></CoeffFiles>
        <ElementalOpFiles>
          <elem>
            <Configs>
              <elem>
                <DilutionTimeSlices>
                  <elem>
                    <CreationOperatorFile>src.lime</CreationOperatorFile>
                    <AnnihilationOperatorFile>snk.lime</AnnihilationOperatorFile>
                  </elem>
                </DilutionTimeSlices>
              </elem>
            </Configs>
          </elem>
        </ElementalOpFiles>
      </InputFiles>
      <OutputInfo>
        <CfgOutputPaths>
          <elem>
            <SourceOpOutputPath>out/</SourceOpOutputPath>
            <SinkOpOutputPath>out/</SinkOpOutputPath>
          </elem>
        </CfgOutputPaths>
      </OutputInfo>
    </MakeMesonOps>

Output paths are prefixes: file names are appended to them verbatim, so a
directory needs its trailing separator.

"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from qcdops.errors import DataInconsistencyError, InputError, UnsupportedVersionError
from qcdops.io.xmldoc import parse_xml, read_bool, read_elems, read_int, read_int_list, read_text, select
from qcdops.keys import ElementalOperatorFileSet, TimeFiles

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (1,)


@dataclass(frozen=True)
class Param:
    """Program parameters.

    Attributes
    ----------
    version : int
        Version of the ``Param`` section; only 1 is understood.
    layout : tuple[int, ...]
        Lattice extent in every direction.
    decay_dir : int
        Time direction, an index into ``layout``.
    check_consistency : bool or None
        Whether to cross-check the elemental operator files. ``None`` leaves
        the decision to :data:`qcdops.config.CHECK_CONSISTENCY`.

    """

    version: int = 1
    layout: tuple[int, ...] = ()
    decay_dir: int = 3
    check_consistency: bool | None = None

    @property
    def nt(self) -> int:
        """Extent of the lattice in the decay direction."""
        return self.layout[self.decay_dir]


@dataclass(frozen=True)
class InputFiles:
    """Coefficient manifests and elemental operator files."""

    coeff_files: tuple[str, ...] = ()
    elem_op_files: tuple[ElementalOperatorFileSet, ...] = ()


@dataclass(frozen=True)
class OutputPaths:
    """Output prefixes of one configuration."""

    src_path: str
    snk_path: str


@dataclass(frozen=True)
class OutputInfo:
    """One :class:`OutputPaths` per configuration."""

    cfg_paths: tuple[OutputPaths, ...] = ()


@dataclass(frozen=True)
class MakeMesonOpsInput:
    """Complete run description.

    Attributes
    ----------
    param : Param
    input_files : InputFiles
    output_info : OutputInfo
    xml : ET.Element or None
        The document the description was read from; echoed into the output.

    """

    param: Param
    input_files: InputFiles
    output_info: OutputInfo
    xml: ET.Element | None = field(default=None, compare=False, repr=False)


def _read_param(node: ET.Element) -> Param:
    version = read_int(node, "version")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError("Param", version)
    layout = tuple(read_int_list(node, "Layout"))
    decay_dir = read_int(node, "Decay_dir")
    if not 0 <= decay_dir < len(layout):
        msg = f"Decay_dir {decay_dir} out of range for a {len(layout)}-dimensional layout"
        raise InputError(msg)

    check: bool | None = None
    if node.find("CheckConsistency") is not None:
        check = read_bool(node, "CheckConsistency", default=True)
    return Param(version=version, layout=layout, decay_dir=decay_dir, check_consistency=check)


def _read_elem_op_files(node: ET.Element) -> ElementalOperatorFileSet:
    cfgs = []
    for cfg in read_elems(node, "Configs"):
        cfgs.append(
            tuple(
                TimeFiles(
                    src_file=read_text(tf, "CreationOperatorFile"),
                    snk_file=read_text(tf, "AnnihilationOperatorFile"),
                )
                for tf in read_elems(cfg, "DilutionTimeSlices")
            )
        )
    return ElementalOperatorFileSet(tuple(cfgs))


def _read_input_files(node: ET.Element) -> InputFiles:
    coeff_files = tuple(read_text(elem, ".") for elem in read_elems(node, "CoeffFiles"))
    elem_op_files = tuple(_read_elem_op_files(elem) for elem in read_elems(node, "ElementalOpFiles"))
    if not elem_op_files:
        raise InputError("InputFiles/ElementalOpFiles lists no elemental operators")
    return InputFiles(coeff_files=coeff_files, elem_op_files=elem_op_files)


def _read_output_info(node: ET.Element) -> OutputInfo:
    return OutputInfo(
        cfg_paths=tuple(
            OutputPaths(
                src_path=read_text(elem, "SourceOpOutputPath"),
                snk_path=read_text(elem, "SinkOpOutputPath"),
            )
            for elem in read_elems(node, "CfgOutputPaths")
        )
    )


def read_input(source: str | Path | ET.Element) -> MakeMesonOpsInput:
    """Read a run description.

    Parameters
    ----------
    source : str, Path or ET.Element
        Path of the input XML file, or its already parsed root element.

    Returns
    -------
    MakeMesonOpsInput
        The run description.

    Raises
    ------
    InputError
        If the document is not well-formed, a required element is missing or
        holds a bad value, or the ``Param`` version is unsupported.
    OSError
        If the file cannot be read.

    """
    if isinstance(source, ET.Element):
        root = source
    else:
        text = Path(source).read_bytes()
        try:
            root = parse_xml(text)
        except ET.ParseError as exc:
            msg = f"Error reading make_ops data from {source}: {exc}"
            raise InputError(msg) from exc

    try:
        inp = MakeMesonOpsInput(
            param=_read_param(select(root, "/MakeMesonOps/Param")),
            input_files=_read_input_files(select(root, "/MakeMesonOps/InputFiles")),
            output_info=_read_output_info(select(root, "/MakeMesonOps/OutputInfo")),
            xml=root,
        )
    except DataInconsistencyError as exc:
        msg = f"Error reading make_ops data: {exc}"
        raise InputError(msg) from exc

    logger.debug(
        "Read input: layout %s, decay_dir %d, %d coefficient files, %d elemental ops",
        inp.param.layout,
        inp.param.decay_dir,
        len(inp.input_files.coeff_files),
        len(inp.input_files.elem_op_files),
    )
    return inp


__all__ = [
    "InputFiles",
    "MakeMesonOpsInput",
    "OutputInfo",
    "OutputPaths",
    "Param",
    "read_input",
]
