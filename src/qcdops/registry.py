"""Registry of elemental operator files.

The registry maps each :class:`~qcdops.keys.OperatorKey` to the files
holding that elemental operator for every configuration and dilution
timeslice, and reads operators from those files on request.

Keys are not taken from the run input: each operator's key is read from
the ``Op_Info`` section of its first source file, so the registry always
describes what is actually on disk.

Example
-------
>>> registry = ElementalOperatorRegistry(file_sets)
>>> key = OperatorKey(spin_l=1, displacement_l=0, spin_r=1, displacement_r=0)
>>> source = registry.get_source_operator(key, cfg=0, t0=0)

"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from qcdops.errors import DataInconsistencyError, DuplicateOperatorError, OperatorNotFoundError
from qcdops.io.binary import BinaryReader
from qcdops.io.lime import read_file_xml, read_qio_file
from qcdops.io.xmldoc import read_group, select, subtree_string
from qcdops.keys import ElementalOperatorFileSet, OperatorKey
from qcdops.operators import MesonOperator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Side:
    """Names of the XML sections of one side (source or sink) of a file pair."""

    label: str
    file_root: str
    record_root: str

    def path(self, section: str) -> str:
        return f"/{self.file_root}/{section}"


SOURCE = _Side("Source", "SourceMesonOperator", "MesonCreationOperator")
SINK = _Side("Sink", "SinkMesonOperator", "MesonAnnihilationOperator")


def read_operator_key(filename: str, side: _Side = SOURCE) -> OperatorKey:
    """Read the key of the elemental operator stored in ``filename``."""
    file_xml = read_file_xml(filename)
    return OperatorKey.from_xml(select(file_xml, side.path("Op_Info")))


def read_elemental_operator(filename: str, side: _Side) -> MesonOperator:
    """Read an elemental operator file.

    Parameters
    ----------
    filename : str
        File to read.
    side : _Side
        :data:`SOURCE` or :data:`SINK`; selects the XML section names.

    Returns
    -------
    MesonOperator
        The operator with header, provenance and data filled in.

    Raises
    ------
    DataInconsistencyError
        If a required section is missing or the file does not hold exactly
        one time slice.

    """
    doc = read_qio_file(filename)
    file_xml = doc.file_xml

    op = MesonOperator()
    op.quark_sources_l = subtree_string(file_xml, side.path("QuarkSources/Quark_l/TimeSlice/Dilutions"))
    op.quark_sources_r = subtree_string(file_xml, side.path("QuarkSources/Quark_r/TimeSlice/Dilutions"))
    op.read_binary(BinaryReader(doc.binary, filename))
    op.link_smearing = read_group(file_xml, side.path("Params/LinkSmearing"), "LinkSmearingType")
    op.read_header(select(doc.record_xml, f"/{side.record_root}"))
    op.config_info = subtree_string(file_xml, side.path("Config_info"))

    if len(op.time_slices) != 1:
        msg = (
            f"Each elemental op file must contain a single timeslice, "
            f"{filename} has Nt = {len(op.time_slices)}"
        )
        raise DataInconsistencyError(msg)
    return op


class ElementalOperatorRegistry:
    """Associative map from operator key to elemental operator files.

    Parameters
    ----------
    file_sets : Sequence[ElementalOperatorFileSet]
        One entry per elemental operator, in input order.

    Raises
    ------
    DuplicateOperatorError
        If two entries hold the same operator. The registry is not created.

    Notes
    -----
    Operators are read from disk on every request; nothing is cached. The
    driver fetches each (key, configuration, timeslice) at most once per
    group operator, so a cache would only add memory pressure.

    """

    def __init__(self, file_sets: Sequence[ElementalOperatorFileSet]) -> None:
        entries: dict[OperatorKey, ElementalOperatorFileSet] = {}
        for i, file_set in enumerate(file_sets):
            if not file_set.cfgs or not file_set.cfgs[0]:
                raise DataInconsistencyError("Elemental op lists no files", op=i)
            key = read_operator_key(file_set.first_source)
            if key in entries:
                raise DuplicateOperatorError(i, key)
            entries[key] = file_set
            logger.debug("Registered elemental op %d: %s", i, key)
        self._entries = entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> Iterator[OperatorKey]:
        """Registered keys in sorted order."""
        return iter(sorted(self._entries))

    def file_set(self, key: OperatorKey) -> ElementalOperatorFileSet:
        """Files registered for ``key``.

        Raises
        ------
        OperatorNotFoundError
            If ``key`` is not registered.

        """
        try:
            return self._entries[key]
        except KeyError:
            raise OperatorNotFoundError(key) from None

    def _filename(self, key: OperatorKey, cfg: int, t0: int, side: _Side) -> str:
        try:
            files = self.file_set(key).time_files(cfg, t0)
        except IndexError as exc:
            raise OperatorNotFoundError(key, f"has no {side.label.lower()} file ({exc})") from None
        return files.src_file if side is SOURCE else files.snk_file

    def get_source_operator(self, key: OperatorKey, cfg: int, t0: int) -> MesonOperator:
        """Read the source (creation) operator of ``key``.

        Parameters
        ----------
        key : OperatorKey
            Elemental operator to read.
        cfg : int
            Configuration index.
        t0 : int
            Dilution timeslice index.

        Returns
        -------
        MesonOperator
            Fully populated elemental operator with a single time slice.

        Raises
        ------
        OperatorNotFoundError
            If ``key`` is unknown or has no file for ``(cfg, t0)``.
        DataInconsistencyError
            If the file is malformed.

        """
        filename = self._filename(key, cfg, t0, SOURCE)
        logger.debug("Reading source op %s from %s", key, filename)
        return read_elemental_operator(filename, SOURCE)

    def get_sink_operator(self, key: OperatorKey, cfg: int, t0: int) -> MesonOperator:
        """Read the sink (annihilation) operator of ``key``.

        Same as :meth:`get_source_operator`, reading the sink file and its
        ``SinkMesonOperator`` sections.

        """
        filename = self._filename(key, cfg, t0, SINK)
        logger.debug("Reading sink op %s from %s", key, filename)
        return read_elemental_operator(filename, SINK)


__all__ = [
    "SINK",
    "SOURCE",
    "ElementalOperatorRegistry",
    "read_elemental_operator",
    "read_operator_key",
]
