# SPDX-License-Identifier: GPL-3.0-or-later OR LicenseRef-Commercial
"""Stream adapters handed to a serialization engine.

The engine only ever sees these two small capability objects. Each one is bound
to a single buffer and forwards every call to it, so capacity, raw storage and
cursor stay private to the buffer.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .buffer import FixedBuffer, GrowableBuffer


@runtime_checkable
class Writer(Protocol):
    """Push-style byte sink used while serializing."""

    def write_byte(self, value: int) -> None: ...

    def write_bytes(self, data) -> int: ...


@runtime_checkable
class Reader(Protocol):
    """Pull-style byte source used while deserializing."""

    def read_byte(self) -> int: ...

    def read_bytes(self, size: int) -> bytes: ...


class OutputStream:
    """Writer over a GrowableBuffer; growth happens inside the buffer."""

    __slots__ = ("_buffer",)

    def __init__(self, buffer: GrowableBuffer):
        self._buffer = buffer

    def write_byte(self, value: int) -> None:
        self._buffer.write_byte(value)

    def write_bytes(self, data) -> int:
        return self._buffer.write_bytes(data)


class InputStream:
    """Reader over a FixedBuffer.

    Reading past the end raises ReadOverflowError and leaves the buffer FAILED;
    there are no short reads.
    """

    __slots__ = ("_buffer",)

    def __init__(self, buffer: FixedBuffer):
        self._buffer = buffer

    def read_byte(self) -> int:
        return self._buffer.read_byte()

    def read_bytes(self, size: int) -> bytes:
        return self._buffer.read_bytes(size)
