"""Shared fixtures: small elemental operator datasets on disk."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
import torch

from qcdops.config import config
from qcdops.io.lime import write_qio_file
from qcdops.io.xmldoc import sub_element
from qcdops.keys import OperatorKey
from qcdops.operators import Dilution, MesonOperator, MomentumProjection, TimeSlice

SEED_L = (11, 12, 13, 14)
SEED_R = (21, 22, 23, 24)


def make_operator(
    values: Sequence[complex],
    t0: int = 0,
    mom: tuple[int, ...] = (0, 0, 0),
    shape: tuple[int, int] = (1, 1),
) -> MesonOperator:
    """An operator with one time slice whose every cell holds ``values``."""
    rows, cols = shape
    dilutions = [
        [
            Dilution([MomentumProjection(mom, torch.tensor(list(values), dtype=torch.complex128))])
            for _ in range(cols)
        ]
        for _ in range(rows)
    ]
    return MesonOperator(
        id="elemental",
        mom2_max=sum(p * p for p in mom),
        decay_dir=3,
        seed_l=SEED_L,
        seed_r=SEED_R,
        time_slices=[TimeSlice(dilutions, t0=t0)],
    )


def _file_xml(root_tag: str, key: OperatorKey, cfg_info: str, dilution: str, sinks: str) -> ET.Element:
    root = ET.Element(root_tag)
    key.to_xml(root, "Op_Info")
    sources = sub_element(root, "QuarkSources")
    for quark in ("Quark_l", "Quark_r"):
        dil = sub_element(sub_element(sub_element(sources, quark), "TimeSlice"), "Dilutions")
        sub_element(sub_element(dil, "elem"), "DilutionType", dilution)
    sub_element(sub_element(root, "QuarkSinks"), "Propagator", sinks)
    sub_element(sub_element(root, "Config_info"), "cfg", cfg_info)
    smearing = sub_element(sub_element(root, "Params"), "LinkSmearing")
    sub_element(smearing, "LinkSmearingType", "NONE")
    return root


def _record_xml(root_tag: str, op: MesonOperator) -> ET.Element:
    root = ET.Element(root_tag)
    sub_element(root, "id", op.id)
    sub_element(root, "mom2_max", op.mom2_max)
    sub_element(root, "decay_dir", op.decay_dir)
    for tag, seed in (("seed_l", op.seed_l), ("seed_r", op.seed_r)):
        node = sub_element(root, tag)
        for word in seed:
            sub_element(node, "elem", word)
    for tag in ("dilution_l", "dilution_r"):
        sub_element(sub_element(sub_element(root, tag), "elem"), "DilutionType", "TIME")
    return root


def write_elemental(
    path: Path,
    key: OperatorKey,
    op: MesonOperator,
    sink: bool = False,
    cfg_info: str = "cfg_1000",
    dilution: str = "TIME",
    sinks: str = "prop_a",
) -> str:
    """Write an elemental source (or sink) operator file and return its name."""
    if sink:
        file_root, record_root = "SinkMesonOperator", "MesonAnnihilationOperator"
    else:
        file_root, record_root = "SourceMesonOperator", "MesonCreationOperator"
    write_qio_file(
        path,
        _file_xml(file_root, key, cfg_info, dilution, sinks),
        _record_xml(record_root, op),
        op.to_binary(),
    )
    return str(path)


KEY_A = OperatorKey(spin_l=1, displacement_l=0, spin_r=1, displacement_r=0)
KEY_B = OperatorKey(spin_l=2, displacement_l=0, spin_r=1, displacement_r=0)


def write_input_xml(
    path: Path,
    coeff_files: Sequence[str],
    elem_ops: Sequence[Sequence[Sequence[tuple[str, str]]]],
    out_paths: Sequence[tuple[str, str]],
    check: bool | None = None,
) -> Path:
    """Write a ``MakeMesonOps`` input document.

    ``elem_ops[op][cfg][t0]`` is a ``(source file, sink file)`` pair.

    """
    root = ET.Element("MakeMesonOps")
    param = sub_element(root, "Param")
    sub_element(param, "version", 1)
    sub_element(param, "Layout", [2, 2, 2, 4])
    sub_element(param, "Decay_dir", 3)
    if check is not None:
        sub_element(param, "CheckConsistency", check)

    inputs = sub_element(root, "InputFiles")
    coeffs = sub_element(inputs, "CoeffFiles")
    for name in coeff_files:
        sub_element(coeffs, "elem", name)
    elems = sub_element(inputs, "ElementalOpFiles")
    for cfgs in elem_ops:
        configs = sub_element(sub_element(elems, "elem"), "Configs")
        for slices in cfgs:
            tslices = sub_element(sub_element(configs, "elem"), "DilutionTimeSlices")
            for src, snk in slices:
                tf = sub_element(tslices, "elem")
                sub_element(tf, "CreationOperatorFile", src)
                sub_element(tf, "AnnihilationOperatorFile", snk)

    cfg_paths = sub_element(sub_element(root, "OutputInfo"), "CfgOutputPaths")
    for src_path, snk_path in out_paths:
        elem = sub_element(cfg_paths, "elem")
        sub_element(elem, "SourceOpOutputPath", src_path)
        sub_element(elem, "SinkOpOutputPath", snk_path)

    ET.ElementTree(root).write(path)
    return path


@pytest.fixture(autouse=True)
def _reset_config() -> None:
    config.reset()


@pytest.fixture
def two_op_dataset(tmp_path: Path) -> Callable[..., Path]:
    """Build the two-operator dataset and return a writer for its input XML.

    Operators ``KEY_A`` and ``KEY_B`` each hold four time points of
    ``1 + 0i`` on one configuration and one dilution timeslice. The manifest
    defines ``pion = 2 * A - 1 * B``.

    """
    data = tmp_path / "data"
    data.mkdir()
    out = tmp_path / "out"
    out.mkdir()

    files = []
    for name, key in (("a", KEY_A), ("b", KEY_B)):
        op = make_operator([1.0 + 0.0j] * 4)
        src = write_elemental(data / f"{name}_src.lime", key, op)
        snk = write_elemental(data / f"{name}_snk.lime", key, op, sink=True)
        files.append([[(src, snk)]])

    coeff = tmp_path / "ops.coeff"
    coeff.write_text("1\n2 pion\n1 1 0 0 (2,0)\n2 1 0 0 (-1,0)\n")

    def write(**overrides: object) -> Path:
        kwargs: dict = {
            "coeff_files": [str(coeff)],
            "elem_ops": files,
            "out_paths": [(f"{out}/", f"{out}/")],
        }
        kwargs.update(overrides)
        return write_input_xml(tmp_path / "input.xml", **kwargs)

    return write
