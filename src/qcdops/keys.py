"""Identity of two-quark elemental operators.

An elemental meson operator is fixed by the spin and displacement of each of
its two quarks. :class:`OperatorKey` carries these four integers and is
ordered lexicographically by

.. math::

    (\\text{displacement}_l, \\text{spin}_l, \\text{displacement}_r, \\text{spin}_r)

The same structural relation defines equality, so a key can be used directly
in a :obj:`dict` or sorted container.

Example
-------
>>> from qcdops.keys import OperatorKey
>>> a = OperatorKey(spin_l=1, displacement_l=0, spin_r=1, displacement_r=0)
>>> b = OperatorKey(spin_l=2, displacement_l=0, spin_r=1, displacement_r=0)
>>> a < b
True

"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from qcdops.errors import DataInconsistencyError
from qcdops.io.xmldoc import find_required, read_int, sub_element


@dataclass(frozen=True, order=True, init=False)
class OperatorKey:
    """Key of an elemental two-quark operator.

    Field order matters: it defines the total order of keys.

    Attributes
    ----------
    displacement_l : int
        Displacement of the left quark (signed, 1-based direction).
    spin_l : int
        1-based spin index of the left quark.
    displacement_r : int
        Displacement of the right quark.
    spin_r : int
        1-based spin index of the right quark.

    """

    displacement_l: int
    spin_l: int
    displacement_r: int
    spin_r: int

    def __init__(
        self,
        spin_l: int,
        displacement_l: int,
        spin_r: int,
        displacement_r: int,
    ) -> None:
        object.__setattr__(self, "displacement_l", int(displacement_l))
        object.__setattr__(self, "spin_l", int(spin_l))
        object.__setattr__(self, "displacement_r", int(displacement_r))
        object.__setattr__(self, "spin_r", int(spin_r))

    @classmethod
    def from_xml(cls, node: ET.Element) -> OperatorKey:
        """Build a key from an ``Op_Info`` element.

        The element holds ``Quarks/elem`` children, left quark first, each
        with ``Spin`` and ``Displacement``.

        """
        quarks = find_required(node, "Quarks").findall("elem")
        if len(quarks) != 2:
            msg = f"Op_Info must describe exactly two quarks, found {len(quarks)}"
            raise DataInconsistencyError(msg)
        left, right = quarks
        return cls(
            spin_l=read_int(left, "Spin"),
            displacement_l=read_int(left, "Displacement"),
            spin_r=read_int(right, "Spin"),
            displacement_r=read_int(right, "Displacement"),
        )

    def to_xml(self, parent: ET.Element, tag: str = "Op_Info") -> ET.Element:
        """Append this key below ``parent`` in ``Op_Info`` form."""
        node = sub_element(parent, tag)
        quarks = sub_element(node, "Quarks")
        for spin, displacement in (
            (self.spin_l, self.displacement_l),
            (self.spin_r, self.displacement_r),
        ):
            elem = sub_element(quarks, "elem")
            sub_element(elem, "Spin", spin)
            sub_element(elem, "Displacement", displacement)
        return node

    def __str__(self) -> str:
        return (
            f"(spin_l={self.spin_l}, disp_l={self.displacement_l}, "
            f"spin_r={self.spin_r}, disp_r={self.displacement_r})"
        )


@dataclass(frozen=True)
class TimeFiles:
    """Source and sink files of one dilution timeslice."""

    src_file: str
    snk_file: str


@dataclass(frozen=True)
class ElementalOperatorFileSet:
    """All files of one elemental operator.

    ``cfgs[cfg][t0]`` gives the :class:`TimeFiles` of configuration ``cfg``
    and dilution timeslice ``t0``.

    """

    cfgs: tuple[tuple[TimeFiles, ...], ...] = field(default_factory=tuple)

    @property
    def num_configs(self) -> int:
        """Number of configurations."""
        return len(self.cfgs)

    def time_files(self, cfg: int, t0: int) -> TimeFiles:
        """Return the files for configuration ``cfg`` and timeslice ``t0``.

        Raises
        ------
        IndexError
            If either index is out of range.

        """
        if not 0 <= cfg < len(self.cfgs):
            msg = f"configuration index {cfg} out of range [0, {len(self.cfgs)})"
            raise IndexError(msg)
        slices = self.cfgs[cfg]
        if not 0 <= t0 < len(slices):
            msg = f"timeslice index {t0} out of range [0, {len(slices)})"
            raise IndexError(msg)
        return slices[t0]

    @property
    def first_source(self) -> str:
        """Source file of the first configuration's first timeslice."""
        return self.time_files(0, 0).src_file


__all__ = [
    "ElementalOperatorFileSet",
    "OperatorKey",
    "TimeFiles",
]
