"""I/O subpackage for qcdops.

This subpackage provides the file formats operator data are exchanged in:

- :mod:`qcdops.io.lime`: LIME containers with an XML header and binary record
- :mod:`qcdops.io.binary`: big-endian binary payload buffers
- :mod:`qcdops.io.xmldoc`: QDP-style XML metadata helpers

"""

from qcdops.io.binary import BinaryReader, BinaryWriter
from qcdops.io.lime import QIOFile, read_file_xml, read_qio_file, write_qio_file
from qcdops.io.xmldoc import GroupXML

__all__ = [
    "BinaryReader",
    "BinaryWriter",
    "GroupXML",
    "QIOFile",
    "read_file_xml",
    "read_qio_file",
    "write_qio_file",
]
