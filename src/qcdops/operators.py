"""Meson operator records and their file encodings.

A meson operator, elemental or group-theoretical, is stored as a header of
provenance metadata plus a nested table of momentum-projected time
sequences:

.. code-block:: text

    MesonOperator
    └── time_slices[k]                  TimeSlice (t0)
        └── dilutions[i][j]             Dilution (left i, right j)
            └── mom_projs[m]            MomentumProjection (mom, op[t])

Each ``op`` is a 1-D complex tensor with one value per time coordinate
:math:`t` along the decay direction.

The binary payload stores, in order, ``seed_l``, ``seed_r``, ``mom2_max``,
``decay_dir`` and the time slices; each time slice stores its dilution
table followed by ``t0``, each dilution its momentum projections, and each
momentum projection its momentum vector followed by the time sequence.

Example
-------
>>> import torch
>>> from qcdops.operators import Dilution, MesonOperator, MomentumProjection, TimeSlice
>>> proj = MomentumProjection((0, 0, 0), torch.ones(4, dtype=torch.complex128))
>>> op = MesonOperator(time_slices=[TimeSlice([[Dilution([proj])]], t0=0)])
>>> data = op.to_binary()
>>> MesonOperator.from_binary(data).time_slices[0].dilutions[0][0].mom_projs[0].mom
(0, 0, 0)

"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

import torch

from qcdops.config import config
from qcdops.errors import DataInconsistencyError
from qcdops.io.binary import SEED_WORDS, BinaryReader, BinaryWriter
from qcdops.io.xmldoc import (
    GroupXML,
    has,
    read_elems,
    read_group,
    read_int,
    read_text,
    sub_element,
)

Seed = tuple[int, ...]

ZERO_SEED: Seed = (0,) * SEED_WORDS


def _to_tensor(values: object) -> torch.Tensor:
    return torch.as_tensor(values).to(dtype=config.DEFAULT_DTYPE, device=config.DEFAULT_DEVICE)


@dataclass
class MomentumProjection:
    """Momentum-projected operator.

    Attributes
    ----------
    mom : tuple[int, ...]
        The :math:`N_d - 1` integer momentum components.
    op : torch.Tensor
        Complex values, one per time coordinate.

    """

    mom: tuple[int, ...]
    op: torch.Tensor

    def __post_init__(self) -> None:
        self.mom = tuple(int(p) for p in self.mom)


@dataclass
class Dilution:
    """Momentum projections of one (left, right) dilution pair."""

    mom_projs: list[MomentumProjection] = field(default_factory=list)


@dataclass
class TimeSlice:
    """Dilution table of the operator at source time ``t0``.

    Attributes
    ----------
    dilutions : list[list[Dilution]]
        Table indexed by left and right quark dilution index. Every row
        has the same length.
    t0 : int
        Time coordinate the timeslice corresponds to.

    """

    dilutions: list[list[Dilution]] = field(default_factory=list)
    t0: int = 0

    @property
    def shape(self) -> tuple[int, int]:
        """Dimensions ``(Ni, Nj)`` of the dilution table."""
        if not self.dilutions:
            return (0, 0)
        return (len(self.dilutions), len(self.dilutions[0]))


@dataclass
class MesonOperator:
    """A meson operator with its provenance.

    Used both for elemental operators read from disk and for the group
    operators accumulated from them.

    Attributes
    ----------
    id : str
        Tag used in analysis codes; the operator name for group operators.
    mom2_max : int
        Maximum :math:`|\\vec{p}|^2` of the momentum projections.
    decay_dir : int
        Time direction.
    seed_l, seed_r : tuple[int, ...]
        Random-number seeds identifying the left and right quark sources.
    dilution_l, dilution_r : GroupXML
        Dilution schemes of the left and right quark.
    quark_smearing : GroupXML
        Quark source smearing.
    link_smearing : GroupXML
        Gauge link smearing.
    quark_sources_l, quark_sources_r : str
        Serialized descriptions of the quark sources used.
    config_info : str
        Serialized description of the gauge configuration.
    time_slices : list[TimeSlice]
        Operator data.

    """

    id: str = ""
    mom2_max: int = 0
    decay_dir: int = 0
    seed_l: Seed = ZERO_SEED
    seed_r: Seed = ZERO_SEED
    dilution_l: GroupXML = field(default_factory=GroupXML)
    dilution_r: GroupXML = field(default_factory=GroupXML)
    quark_smearing: GroupXML = field(default_factory=GroupXML)
    link_smearing: GroupXML = field(default_factory=GroupXML)
    quark_sources_l: str = ""
    quark_sources_r: str = ""
    config_info: str = ""
    time_slices: list[TimeSlice] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Binary payload
    # ------------------------------------------------------------------

    def write_binary(self, writer: BinaryWriter) -> None:
        """Append the binary payload of this operator to ``writer``."""
        writer.write_seed(self.seed_l)
        writer.write_seed(self.seed_r)
        writer.write_int(self.mom2_max)
        writer.write_int(self.decay_dir)
        writer.write_int(len(self.time_slices))
        for ts in self.time_slices:
            rows, cols = ts.shape
            writer.write_shape2(rows, cols)
            for row in ts.dilutions:
                for dil in row:
                    writer.write_int(len(dil.mom_projs))
                    for proj in dil.mom_projs:
                        writer.write_ints(proj.mom)
                        writer.write_complex_array(proj.op.detach().cpu().numpy())
            writer.write_int(ts.t0)

    def to_binary(self) -> bytes:
        """Binary payload of this operator."""
        writer = BinaryWriter()
        self.write_binary(writer)
        return writer.getvalue()

    def read_binary(self, reader: BinaryReader) -> None:
        """Fill seeds, ``mom2_max``, ``decay_dir`` and time slices from ``reader``."""
        self.seed_l = reader.read_seed()
        self.seed_r = reader.read_seed()
        self.mom2_max = reader.read_int()
        self.decay_dir = reader.read_int()
        time_slices = []
        for _ in range(reader.read_length()):
            rows, cols = reader.read_shape2()
            dilutions = []
            for _i in range(rows):
                row = []
                for _j in range(cols):
                    projs = []
                    for _m in range(reader.read_length()):
                        mom = tuple(reader.read_ints())
                        projs.append(MomentumProjection(mom, _to_tensor(reader.read_complex_array())))
                    row.append(Dilution(projs))
                dilutions.append(row)
            time_slices.append(TimeSlice(dilutions, t0=reader.read_int()))
        self.time_slices = time_slices

    @classmethod
    def from_binary(cls, data: bytes, name: str = "<buffer>") -> MesonOperator:
        """Build an operator holding only what the binary payload stores."""
        op = cls()
        op.read_binary(BinaryReader(data, name))
        return op

    # ------------------------------------------------------------------
    # XML header
    # ------------------------------------------------------------------

    def read_header(self, node: ET.Element) -> None:
        """Fill the header fields from a record XML element.

        Reads ``id``, ``mom2_max``, ``decay_dir``, both seeds, both dilution
        schemes and the quark smearing.

        """
        self.id = read_text(node, "id")
        self.mom2_max = read_int(node, "mom2_max")
        self.decay_dir = read_int(node, "decay_dir")
        self.seed_l = read_seed(node, "seed_l")
        self.seed_r = read_seed(node, "seed_r")
        self.dilution_l = read_group(node, "dilution_l/elem", "DilutionType")
        self.dilution_r = read_group(node, "dilution_r/elem", "DilutionType")
        if has(node, "QuarkSmearing"):
            self.quark_smearing = read_group(node, "QuarkSmearing", "wvf_kind")

    def write_header(self, parent: ET.Element, tag: str = "OpInfo") -> ET.Element:
        """Append the header of this operator below ``parent``."""
        node = sub_element(parent, tag)
        sub_element(node, "version", 1)
        sub_element(node, "id", self.id)
        sub_element(node, "mom2_max", self.mom2_max)
        sub_element(node, "decay_dir", self.decay_dir)
        write_seed(node, "seed_l", self.seed_l)
        write_seed(node, "seed_r", self.seed_r)
        self.dilution_l.append_to(node, "dilution_l")
        self.dilution_r.append_to(node, "dilution_r")
        sub_element(sub_element(node, "QuarkSources_l"), "TimeSlices", self.quark_sources_l)
        sub_element(sub_element(node, "QuarkSources_r"), "TimeSlices", self.quark_sources_r)
        self.link_smearing.append_to(node)
        self.quark_smearing.append_to(node)
        return node


def read_seed(node: ET.Element, path: str) -> Seed:
    """Read a seed stored as ``elem`` words."""
    words = tuple(int(read_text(elem, ".")) for elem in read_elems(node, path))
    if len(words) != SEED_WORDS:
        msg = f"Seed '{path}' has {len(words)} words, expected {SEED_WORDS}"
        raise DataInconsistencyError(msg)
    return words


def write_seed(parent: ET.Element, tag: str, seed: Seed) -> None:
    """Write a seed as ``elem`` words."""
    node = sub_element(parent, tag)
    for word in seed:
        sub_element(node, "elem", word)


__all__ = [
    "Dilution",
    "MesonOperator",
    "MomentumProjection",
    "Seed",
    "TimeSlice",
    "read_seed",
    "write_seed",
]
