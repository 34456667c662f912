"""LIME container files holding an XML header and a binary record.

A LIME file is a sequence of records, each with a 144-byte big-endian
header (magic, version, message-begin/end flags, payload length and a
128-byte type string) followed by the payload padded to a multiple of 8
bytes. See https://usqcd-software.github.io/c-lime/lime_1p2.pdf.

Operator files are written the way QIO writes a single-record file:

- message 1: ``scidac-file-xml`` holding the file XML
- message 2: ``scidac-record-xml`` holding the record XML, followed by
  ``scidac-binary-data`` holding the payload

Example
-------
>>> import xml.etree.ElementTree as ET
>>> write_qio_file("op.lime", ET.Element("File"), ET.Element("Record"), b"\\x00" * 4)
>>> doc = read_qio_file("op.lime")
>>> doc.file_xml.tag, len(doc.binary)
('File', 4)

"""

from __future__ import annotations

import struct
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from qcdops.errors import DataInconsistencyError
from qcdops.io.xmldoc import parse_xml, to_string

LIME_MAGIC = 0x456789AB
LIME_VERSION = 1
LIME_HEADER_BYTES = 144
LIME_HEADER_FORMAT = ">IHHQ128s"
LIME_MB_BIT = 15
LIME_ME_BIT = 14

FILE_XML = "scidac-file-xml"
RECORD_XML = "scidac-record-xml"
BINARY_DATA = "scidac-binary-data"


@dataclass(frozen=True)
class LimeRecord:
    """LIME record header."""

    index: int
    offset: int
    version: int
    flags: int
    size: int
    type_name: str

    @property
    def data_offset(self) -> int:
        return self.offset + LIME_HEADER_BYTES

    @property
    def is_begin_message(self) -> bool:
        return bool(self.flags & (1 << LIME_MB_BIT))

    @property
    def is_end_message(self) -> bool:
        return bool(self.flags & (1 << LIME_ME_BIT))


@dataclass(frozen=True)
class QIOFile:
    """Contents of a single-record operator file.

    Attributes
    ----------
    path : str
        File the contents were read from.
    file_xml : ET.Element
        Root of the file XML.
    record_xml : ET.Element
        Root of the record XML.
    binary : bytes
        Binary payload of the record.

    """

    path: str
    file_xml: ET.Element
    record_xml: ET.Element
    binary: bytes


def _pad(nbytes: int) -> int:
    return (-nbytes) & 7


def iter_lime_records(path: str | Path) -> Iterator[LimeRecord]:
    """Yield the record headers of a LIME file."""
    p = Path(path)
    with p.open("rb") as f:
        offset = 0
        idx = 0
        while True:
            hdr = f.read(LIME_HEADER_BYTES)
            if not hdr:
                return
            if len(hdr) < LIME_HEADER_BYTES:
                msg = f"Truncated LIME header at offset {offset} in {p}"
                raise DataInconsistencyError(msg)
            magic, version, flags, nbytes, raw_type = struct.unpack(LIME_HEADER_FORMAT, hdr)
            if magic != LIME_MAGIC:
                msg = f"Bad LIME magic {magic:#x} at offset {offset} in {p} (expected {LIME_MAGIC:#x})"
                raise DataInconsistencyError(msg)
            rec = LimeRecord(
                index=idx,
                offset=offset,
                version=int(version),
                flags=int(flags),
                size=int(nbytes),
                type_name=raw_type.split(b"\x00", 1)[0].decode("ascii", "replace"),
            )
            yield rec
            f.seek(rec.size + _pad(rec.size), 1)
            offset = f.tell()
            idx += 1


def read_lime_record_data(path: str | Path, rec: LimeRecord) -> bytes:
    """Read the payload of one record."""
    p = Path(path)
    with p.open("rb") as f:
        f.seek(rec.data_offset)
        data = f.read(rec.size)
    if len(data) != rec.size:
        msg = f"Truncated LIME record {rec.index} ({rec.type_name}) in {p}"
        raise DataInconsistencyError(msg)
    return data


def write_lime(path: str | Path, messages: Sequence[Sequence[tuple[str, bytes]]]) -> None:
    """Write a LIME file.

    Parameters
    ----------
    path : str or Path
        Output file, overwritten if it exists.
    messages : sequence of sequences of (type, payload)
        Records grouped into messages. The first record of each message
        gets the message-begin flag, the last the message-end flag.

    """
    with Path(path).open("wb") as f:
        for message in messages:
            last = len(message) - 1
            for i, (type_name, payload) in enumerate(message):
                flags = 0
                if i == 0:
                    flags |= 1 << LIME_MB_BIT
                if i == last:
                    flags |= 1 << LIME_ME_BIT
                header = struct.pack(
                    LIME_HEADER_FORMAT,
                    LIME_MAGIC,
                    LIME_VERSION,
                    flags,
                    len(payload),
                    type_name.encode("ascii"),
                )
                f.write(header)
                f.write(payload)
                f.write(b"\x00" * _pad(len(payload)))


def write_qio_file(
    path: str | Path,
    file_xml: ET.Element,
    record_xml: ET.Element,
    binary: bytes,
) -> None:
    """Write a single-record file: file XML, then record XML and payload."""
    write_lime(
        path,
        [
            [(FILE_XML, to_string(file_xml).encode())],
            [
                (RECORD_XML, to_string(record_xml).encode()),
                (BINARY_DATA, binary),
            ],
        ],
    )


def _first_of_type(records: list[LimeRecord], type_name: str, path: str | Path) -> LimeRecord:
    for rec in records:
        if rec.type_name == type_name:
            return rec
    msg = f"No '{type_name}' record in {path}"
    raise DataInconsistencyError(msg)


def _parse_header(data: bytes, path: str | Path) -> ET.Element:
    try:
        return parse_xml(data)
    except ET.ParseError as exc:
        msg = f"Malformed XML in {path}: {exc}"
        raise DataInconsistencyError(msg) from exc


def read_file_xml(path: str | Path) -> ET.Element:
    """Read only the file XML of an operator file.

    The binary record is not touched, which keeps header-only inspections
    cheap.

    """
    for rec in iter_lime_records(path):
        if rec.type_name == FILE_XML:
            return _parse_header(read_lime_record_data(path, rec), path)
    msg = f"No '{FILE_XML}' record in {path}"
    raise DataInconsistencyError(msg)


def read_qio_file(path: str | Path) -> QIOFile:
    """Read the file XML, record XML and binary payload of an operator file."""
    records = list(iter_lime_records(path))
    file_rec = _first_of_type(records, FILE_XML, path)
    record_rec = _first_of_type(records, RECORD_XML, path)
    binary_rec = _first_of_type(records, BINARY_DATA, path)
    return QIOFile(
        path=str(path),
        file_xml=_parse_header(read_lime_record_data(path, file_rec), path),
        record_xml=_parse_header(read_lime_record_data(path, record_rec), path),
        binary=read_lime_record_data(path, binary_rec),
    )


__all__ = [
    "BINARY_DATA",
    "FILE_XML",
    "LIME_MAGIC",
    "RECORD_XML",
    "LimeRecord",
    "QIOFile",
    "iter_lime_records",
    "read_file_xml",
    "read_lime_record_data",
    "read_qio_file",
    "write_lime",
    "write_qio_file",
]
