"""Coefficient manifests describing group-theoretical meson operators.

A group operator is a linear combination of elemental operators,

.. math::

    O_G = \\sum_k c_k \\, O(s^{(k)}_l, d^{(k)}_l; s^{(k)}_r, d^{(k)}_r)

with complex coefficients :math:`c_k`. Manifests list such combinations in a
flat whitespace-separated text format::

    <nops>
    <nterms> <name>
    <spin_l> <spin_r> <disp_l> <disp_r> (<re>,<im>)
    ...

The complex literal needs its parentheses and comma; whitespace inside it
is allowed. Several manifests are read in order and their operators
concatenated.

Example
-------
>>> ops = parse_coefficients("1\\n2 pion\\n1 1 0 0 (2,0)\\n2 1 0 0 (-1,0)\\n")
>>> ops[0].name, len(ops[0].terms), ops[0].terms[1].coeff
('pion', 2, (-1+0j))

"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from qcdops.errors import ManifestParseError
from qcdops.io.xmldoc import sub_element
from qcdops.keys import OperatorKey

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"\([^()]*\)|[^\s()]+")
_COMPLEX = re.compile(r"\(\s*([^,\s]+)\s*,\s*([^,\s]+)\s*\)")


@dataclass(frozen=True)
class Term:
    """One elemental operator and its weight."""

    key: OperatorKey
    coeff: complex


@dataclass
class GroupMesonOperatorSpec:
    """Name and terms of a group-theoretical meson operator.

    Terms keep the order in which they appear in the manifest; accumulation
    follows that order so output is reproducible bit for bit.

    """

    name: str
    terms: list[Term] = field(default_factory=list)

    def to_xml(self, parent: ET.Element, tag: str = "OpInfo") -> ET.Element:
        """Append the operator definition below ``parent``."""
        node = sub_element(parent, tag)
        sub_element(node, "Name", self.name)
        terms = sub_element(node, "Terms")
        for term in self.terms:
            elem = sub_element(terms, "elem")
            term.key.to_xml(elem, "ElementalOperator")
            sub_element(elem, "Coefficient", complex(term.coeff))
        return node


class _Tokens:
    def __init__(self, text: str, source: str) -> None:
        self._tokens = _TOKEN.findall(text)
        self._pos = 0
        self.source = source

    def _next(self, what: str) -> str:
        if self._pos >= len(self._tokens):
            raise ManifestParseError(self.source, self._pos, f"unexpected end of file, expected {what}")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def integer(self, what: str) -> int:
        token = self._next(what)
        try:
            return int(token)
        except ValueError:
            raise ManifestParseError(
                self.source, self._pos - 1, f"expected {what}, found '{token}'"
            ) from None

    def word(self, what: str) -> str:
        return self._next(what)

    @property
    def last(self) -> int:
        return self._pos - 1

    def coefficient(self, what: str) -> complex:
        token = self._next(what)
        match = _COMPLEX.fullmatch(token)
        if match is None:
            raise ManifestParseError(
                self.source, self._pos - 1, f"expected {what} as (re,im), found '{token}'"
            )
        try:
            return complex(float(match.group(1)), float(match.group(2)))
        except ValueError:
            raise ManifestParseError(
                self.source, self._pos - 1, f"bad number in {what} '{token}'"
            ) from None


def parse_coefficients(text: str, source: str = "<string>") -> list[GroupMesonOperatorSpec]:
    """Parse the operators of one manifest.

    Parameters
    ----------
    text : str
        Manifest contents.
    source : str
        Name used in error messages.

    Returns
    -------
    list[GroupMesonOperatorSpec]
        The operators in file order.

    Raises
    ------
    ManifestParseError
        If the text does not follow the manifest format.

    """
    tokens = _Tokens(text, source)
    nops = tokens.integer("operator count")
    if nops < 0:
        raise ManifestParseError(source, tokens.last, f"negative operator count {nops}")

    ops = []
    for _ in range(nops):
        nterms = tokens.integer("term count")
        if nterms < 0:
            raise ManifestParseError(source, tokens.last, f"negative term count {nterms}")
        name = tokens.word("operator name")
        terms = []
        for _m in range(nterms):
            spin_l = tokens.integer("left spin")
            spin_r = tokens.integer("right spin")
            disp_l = tokens.integer("left displacement")
            disp_r = tokens.integer("right displacement")
            coeff = tokens.coefficient("coefficient")
            key = OperatorKey(spin_l=spin_l, displacement_l=disp_l, spin_r=spin_r, displacement_r=disp_r)
            terms.append(Term(key, coeff))
        ops.append(GroupMesonOperatorSpec(name, terms))
    return ops


def read_coeff_files(paths: Iterable[str | Path]) -> list[GroupMesonOperatorSpec]:
    """Read and concatenate the operators of several manifests."""
    ops: list[GroupMesonOperatorSpec] = []
    for path in paths:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestParseError(str(path), 0, f"not UTF-8 text: {exc}") from exc
        file_ops = parse_coefficients(text, source=str(path))
        ops.extend(file_ops)
        logger.info("Nops = %d (after %s)", len(ops), path)
    return ops


__all__ = [
    "GroupMesonOperatorSpec",
    "Term",
    "parse_coefficients",
    "read_coeff_files",
]
