"""XML helpers for QDP-style metadata documents.

Operator files carry their metadata as small XML documents. Values follow
the QDP conventions: integers and floats as text, integer arrays as
whitespace-separated text, arrays of structures as repeated ``elem``
children, and complex numbers as ``re``/``im`` pairs.

Paths are written the way the operator files are addressed, either absolute
(``/SourceMesonOperator/Op_Info``, whose first component must name the root
element) or relative to a given element (``Quarks/elem``).

Example
-------
>>> root = parse_xml("<A><B><n>3</n></B></A>")
>>> read_int(select(root, "/A/B"), "n")
3
>>> subtree_string(root, "/A/B")
'<B><n>3</n></B>'

"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass

from qcdops.errors import DataInconsistencyError, MissingElementError

_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


@dataclass(frozen=True)
class GroupXML:
    """An opaque XML group, kept as serialized text.

    Chroma passes smearing and dilution descriptors around without
    interpreting them; only their XML text and the value of the element
    naming their kind are kept.

    Attributes
    ----------
    xml : str
        Serialized XML of the group, empty if the group is absent.
    id : str
        Text of the identifying child element (e.g. ``LinkSmearingType``).
    path : str
        Path the group was read from.

    """

    xml: str = ""
    id: str = ""
    path: str = ""

    def append_to(self, parent: ET.Element, tag: str | None = None) -> None:
        """Append the group below ``parent``.

        If ``tag`` is given, the group is wrapped in a new element of that name.

        """
        target = parent if tag is None else ET.SubElement(parent, tag)
        if self.xml:
            target.append(ET.fromstring(self.xml))


def parse_xml(text: str | bytes) -> ET.Element:
    """Parse an XML document and return its root element."""
    return ET.fromstring(text)


def to_string(root: ET.Element, indent: bool = True) -> str:
    """Serialize ``root`` with an XML declaration."""
    if indent:
        root = copy.deepcopy(root)
        ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0"?>\n{body}\n'


def _resolve(node: ET.Element, path: str) -> ET.Element | None:
    if path.startswith("/"):
        parts = [p for p in path.split("/") if p]
        if not parts or parts[0] != node.tag:
            return None
        rest = "/".join(parts[1:])
        return node if not rest else node.find(rest)
    return node.find(path)


def select(node: ET.Element, path: str) -> ET.Element:
    """Return the element at ``path``.

    Raises
    ------
    MissingElementError
        If no element matches.

    """
    found = _resolve(node, path)
    if found is None:
        raise MissingElementError(path)
    return found


def find_required(node: ET.Element, path: str) -> ET.Element:
    """Alias of :func:`select` for relative lookups."""
    return select(node, path)


def has(node: ET.Element, path: str) -> bool:
    """Whether an element exists at ``path``."""
    return _resolve(node, path) is not None


def read_text(node: ET.Element, path: str) -> str:
    """Text content at ``path`` with surrounding whitespace removed."""
    return (select(node, path).text or "").strip()


def read_int(node: ET.Element, path: str) -> int:
    """Integer value at ``path``."""
    text = read_text(node, path)
    try:
        return int(text)
    except ValueError:
        msg = f"Expected an integer at '{path}', found '{text}'"
        raise DataInconsistencyError(msg) from None


def read_int_list(node: ET.Element, path: str) -> list[int]:
    """Whitespace-separated integers at ``path``."""
    text = read_text(node, path)
    try:
        return [int(x) for x in text.split()]
    except ValueError:
        msg = f"Expected integers at '{path}', found '{text}'"
        raise DataInconsistencyError(msg) from None


def read_bool(node: ET.Element, path: str, default: bool) -> bool:
    """Boolean value at ``path``, or ``default`` if absent."""
    if not has(node, path):
        return default
    text = read_text(node, path).lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    msg = f"Expected a boolean at '{path}', found '{text}'"
    raise DataInconsistencyError(msg)


def read_elems(node: ET.Element, path: str) -> list[ET.Element]:
    """The ``elem`` children of the array at ``path``."""
    return select(node, path).findall("elem")


def subtree_string(node: ET.Element, path: str) -> str:
    """Serialized text of the element at ``path``.

    This is the form in which provenance sections (configuration info,
    quark sources) are compared and carried along. The tail text of the
    element is not part of the result.

    """
    elem = copy.copy(select(node, path))
    elem.tail = None
    return ET.tostring(elem, encoding="unicode")


def read_group(node: ET.Element, path: str, id_tag: str) -> GroupXML:
    """Read an opaque XML group.

    Parameters
    ----------
    node : ET.Element
        Element to start from.
    path : str
        Path of the group element.
    id_tag : str
        Name of the child naming the group kind.

    Returns
    -------
    GroupXML
        The serialized group together with its kind.

    """
    elem = select(node, path)
    return GroupXML(
        xml=subtree_string(node, path),
        id=read_text(elem, id_tag),
        path=path,
    )


def _format(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Sequence) and not isinstance(value, str):
        return " ".join(_format(v) for v in value)
    return str(value)


def sub_element(parent: ET.Element, tag: str, value: object = None) -> ET.Element:
    """Append a child ``tag`` to ``parent``, optionally holding ``value``.

    Complex values are written as ``re``/``im`` children, sequences as
    whitespace-separated text.

    """
    elem = ET.SubElement(parent, tag)
    if isinstance(value, complex):
        sub_element(elem, "re", value.real)
        sub_element(elem, "im", value.imag)
    elif value is not None:
        elem.text = _format(value)
    return elem


__all__ = [
    "GroupXML",
    "find_required",
    "has",
    "parse_xml",
    "read_bool",
    "read_elems",
    "read_group",
    "read_int",
    "read_int_list",
    "read_text",
    "select",
    "sub_element",
    "subtree_string",
    "to_string",
]
