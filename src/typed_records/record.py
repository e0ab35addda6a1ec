"""Byte-level access to record memory.

All reads and writes of raw record memory go through ``RecordBuffer``.
Offsets are relative to the start of the record the buffer was created for;
``at()`` derives the buffer of a nested record or array element.
"""

from __future__ import annotations

import struct
from typing import Any


class RecordBuffer:
    """Flat byte view over the memory of one record."""

    def __init__(self, record: Any, byte_order: str = "=") -> None:
        if isinstance(record, RecordBuffer):
            view = record._view
        else:
            view = memoryview(record)
            if view.ndim != 1 or view.format != "B":
                view = view.cast("B")
        self._view = view
        self.byte_order = byte_order

    @property
    def readonly(self) -> bool:
        """Return whether the underlying memory can be written."""
        return self._view.readonly

    def __len__(self) -> int:
        return self._view.nbytes

    def at(self, offset: int) -> RecordBuffer:
        """Return a buffer for the nested record starting at ``offset``."""
        if offset < 0 or offset > len(self):
            raise ValueError(f"Offset {offset} outside record of {len(self)} bytes")
        sub = RecordBuffer.__new__(RecordBuffer)
        sub._view = self._view[offset:]
        sub.byte_order = self.byte_order
        return sub

    def unpack(self, fmt: str, offset: int) -> Any:
        """Read a single ``struct``-formatted value at ``offset``."""
        return struct.unpack_from(self.byte_order + fmt, self._view, offset)[0]

    def pack(self, fmt: str, offset: int, value: Any) -> None:
        """Write a single ``struct``-formatted value at ``offset``."""
        struct.pack_into(self.byte_order + fmt, self._view, offset, value)

    def read_bytes(self, offset: int, length: int) -> bytes:
        """Read up to ``length`` bytes at ``offset``, stopping at the end of the record."""
        if offset < 0 or offset > len(self):
            raise ValueError(f"Offset {offset} outside record of {len(self)} bytes")
        return self._view[offset:offset + length].tobytes()

    def write_bytes(self, offset: int, data: bytes) -> None:
        """Write ``data`` at ``offset``; the whole range must lie inside the record."""
        end = offset + len(data)
        if offset < 0 or end > len(self):
            raise ValueError(
                f"Range [{offset}, {end}) outside record of {len(self)} bytes"
            )
        self._view[offset:end] = data

    def clear(self, offset: int, length: int) -> None:
        """Zero ``length`` bytes at ``offset``."""
        self.write_bytes(offset, bytes(length))

    def tobytes(self) -> bytes:
        """Return a copy of the record's bytes."""
        return self._view.tobytes()
