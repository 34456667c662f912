"""Big-endian binary buffers in the QDP layout.

Binary payloads are flat big-endian byte streams:

- ``int``: signed 32-bit integer
- sequences: an ``int`` length followed by the elements
- 2-D tables: ``int`` rows, ``int`` columns, then the elements row-major
- complex numbers: real and imaginary part as 64-bit floats
- seeds: four ``int`` words

Example
-------
>>> w = BinaryWriter()
>>> w.write_int(7)
>>> w.write_ints([1, 2, 3])
>>> r = BinaryReader(w.getvalue())
>>> r.read_int(), r.read_ints()
(7, [1, 2, 3])

"""

from __future__ import annotations

import struct
from collections.abc import Sequence

import numpy as np

from qcdops.errors import DataInconsistencyError

INT_FORMAT = ">i"
INT_BYTES = 4
COMPLEX_DTYPE = np.dtype(">c16")
SEED_WORDS = 4


class BinaryWriter:
    """Accumulates a binary payload in memory."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_int(self, value: int) -> None:
        """Write one 32-bit integer."""
        self._buffer += struct.pack(INT_FORMAT, int(value))

    def write_ints(self, values: Sequence[int]) -> None:
        """Write a length-prefixed integer sequence."""
        self.write_int(len(values))
        self._buffer += struct.pack(f">{len(values)}i", *(int(v) for v in values))

    def write_seed(self, seed: Sequence[int]) -> None:
        """Write a random-number seed as four integer words."""
        if len(seed) != SEED_WORDS:
            msg = f"A seed has {SEED_WORDS} words, got {len(seed)}"
            raise ValueError(msg)
        for word in seed:
            self.write_int(word)

    def write_complex_array(self, values: np.ndarray) -> None:
        """Write a length-prefixed sequence of complex doubles."""
        data = np.ascontiguousarray(values, dtype=COMPLEX_DTYPE)
        self.write_int(data.size)
        self._buffer += data.tobytes()

    def write_shape2(self, rows: int, cols: int) -> None:
        """Write the dimensions of a 2-D table."""
        self.write_int(rows)
        self.write_int(cols)

    def getvalue(self) -> bytes:
        """The payload written so far."""
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


class BinaryReader:
    """Reads a binary payload front to back.

    Parameters
    ----------
    data : bytes
        The payload.
    name : str
        Label used in error messages, usually the file name.

    Raises
    ------
    DataInconsistencyError
        From any ``read_*`` method if the payload ends early or holds a
        negative length.

    """

    def __init__(self, data: bytes, name: str = "<buffer>") -> None:
        self._data = memoryview(data)
        self._offset = 0
        self.name = name

    def _take(self, nbytes: int) -> memoryview:
        end = self._offset + nbytes
        if end > len(self._data):
            msg = (
                f"Truncated binary payload in {self.name}: need {nbytes} bytes "
                f"at offset {self._offset}, {len(self._data) - self._offset} left"
            )
            raise DataInconsistencyError(msg)
        chunk = self._data[self._offset : end]
        self._offset = end
        return chunk

    def read_int(self) -> int:
        """Read one 32-bit integer."""
        (value,) = struct.unpack(INT_FORMAT, self._take(INT_BYTES))
        return int(value)

    def read_length(self) -> int:
        """Read a sequence length."""
        n = self.read_int()
        if n < 0:
            msg = f"Negative sequence length {n} in {self.name}"
            raise DataInconsistencyError(msg)
        return n

    def read_ints(self) -> list[int]:
        """Read a length-prefixed integer sequence."""
        n = self.read_length()
        return list(struct.unpack(f">{n}i", self._take(n * INT_BYTES)))

    def read_seed(self) -> tuple[int, ...]:
        """Read a four-word seed."""
        return tuple(self.read_int() for _ in range(SEED_WORDS))

    def read_complex_array(self) -> np.ndarray:
        """Read a length-prefixed sequence of complex doubles."""
        n = self.read_length()
        raw = self._take(n * COMPLEX_DTYPE.itemsize)
        return np.frombuffer(raw, dtype=COMPLEX_DTYPE).astype(np.complex128)

    def read_shape2(self) -> tuple[int, int]:
        """Read the dimensions of a 2-D table."""
        rows = self.read_length()
        cols = self.read_length()
        return rows, cols

    @property
    def remaining(self) -> int:
        """Number of unread bytes."""
        return len(self._data) - self._offset


__all__ = [
    "BinaryReader",
    "BinaryWriter",
]
