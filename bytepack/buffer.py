# SPDX-License-Identifier: GPL-3.0-or-later OR LicenseRef-Commercial
"""Byte buffers with a position cursor for write and read sessions.

Key pieces:
  - GrowableBuffer: owned storage that doubles on demand while a serializer
    pushes bytes into it, then finalizes to an exact-length ``bytes``.
  - FixedBuffer: borrowed, zero-copy view over caller bytes that a
    deserializer pulls from with strict bounds checking.
  - BufferState: session state shared by both, so misuse of a finished or
    broken buffer fails loudly instead of touching stale storage.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CAPACITY = 16_384
GROWTH_FACTOR = 2
MAX_CAPACITY = sys.maxsize


class AllocationFailure(MemoryError):
    """Raised when buffer storage cannot be obtained or grown."""


class CapacityExceeded(AllocationFailure):
    """Raised when growth would need more than the buffer's capacity ceiling."""

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(f"requested buffer capacity {requested} exceeds limit {limit}")


class ReadOverflowError(OverflowError):
    """Raised when a read asks for more bytes than the buffer has left."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"read overflow: requested {requested} bytes, {available} available")


class BufferStateError(ValueError):
    """Raised when a finalized, invalidated or failed buffer is used again."""


class BufferState(str, Enum):
    """Lifecycle of a buffer session.

    Write sessions go EMPTY -> GROWING -> FINALIZED, or INVALID when storage
    could not be grown. Read sessions go READY -> READING -> EXHAUSTED, or
    FAILED when a read overflows.
    """

    EMPTY = "empty"
    GROWING = "growing"
    FINALIZED = "finalized"
    INVALID = "invalid"
    READY = "ready"
    READING = "reading"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


_TERMINAL_STATES = frozenset(
    {BufferState.FINALIZED, BufferState.INVALID, BufferState.FAILED}
)


class Buffer:
    """Contiguous byte storage paired with a position cursor.

    Subclasses decide who owns the storage. The base class keeps the cursor,
    the capacity and the session state, and releases storage when used as a
    context manager.
    """

    def __init__(self, storage, capacity: int, state: BufferState):
        self._storage = storage
        self._capacity = capacity
        self._pos = 0
        self._state = state
        self._released = False

    @property
    def position(self) -> int:
        """Offset of the next read or write."""
        return self._pos

    @property
    def capacity(self) -> int:
        """Total storage size in bytes."""
        return self._capacity

    @property
    def state(self) -> BufferState:
        return self._state

    @property
    def released(self) -> bool:
        return self._released

    def _check_usable(self) -> None:
        if self._state in _TERMINAL_STATES:
            raise BufferStateError(f"buffer is {self._state.value}")
        if self._released:
            raise BufferStateError("buffer has been released")

    def release(self) -> None:  # pragma: no cover - base hook
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(position={self._pos}, "
            f"capacity={self._capacity}, state={self._state.value})"
        )


class GrowableBuffer(Buffer):
    """Write-session buffer with exclusively owned, doubling storage.

    Bytes past ``position`` are never handed out; ``finalize_write`` returns
    exactly the written prefix and drops the working storage.
    """

    def __init__(
        self,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_capacity: int = MAX_CAPACITY,
    ):
        if not isinstance(initial_capacity, int) or initial_capacity < 0:
            raise ValueError("initial_capacity must be a non-negative int")
        if not isinstance(max_capacity, int) or not 0 < max_capacity <= MAX_CAPACITY:
            raise ValueError(f"max_capacity must be an int in 1..{MAX_CAPACITY}")
        if initial_capacity > max_capacity:
            raise CapacityExceeded(initial_capacity, max_capacity)
        try:
            storage = bytearray(initial_capacity)
        except MemoryError as error:
            raise AllocationFailure(
                f"cannot allocate buffer of {initial_capacity} bytes"
            ) from error
        super().__init__(storage, initial_capacity, BufferState.EMPTY)
        self.max_capacity = max_capacity
        self.initial_capacity = initial_capacity
        self.growths = 0

    @classmethod
    def create(
        cls,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_capacity: int = MAX_CAPACITY,
    ) -> GrowableBuffer:
        return cls(initial_capacity, max_capacity)

    def ensure_capacity(self, additional: int) -> None:
        """Grow storage so that ``additional`` more bytes fit after the cursor.

        Capacity doubles until it covers the request, clamped to
        ``max_capacity``. Storage is swapped in one step, so on failure the
        buffer is invalidated and released instead of left half-grown.

        Raises:
            CapacityExceeded: If the request cannot fit under ``max_capacity``.
            AllocationFailure: If the larger storage cannot be allocated.
        """
        self._check_usable()
        if additional < 0:
            raise ValueError("additional must be non-negative")
        required = self._pos + additional
        if required <= self._capacity:
            return
        if required > self.max_capacity:
            self._invalidate()
            raise CapacityExceeded(required, self.max_capacity)

        new_capacity = self._capacity or 1
        doublings = 0
        while new_capacity < required:
            new_capacity *= GROWTH_FACTOR
            doublings += 1
        new_capacity = min(new_capacity, self.max_capacity)

        try:
            storage = bytearray(new_capacity)
            with memoryview(self._storage) as view:
                storage[: self._pos] = view[: self._pos]
        except MemoryError as error:
            self._invalidate()
            raise AllocationFailure(
                f"cannot grow buffer from {self._capacity} to {new_capacity} bytes"
            ) from error

        logger.debug("buffer grown from %d to %d bytes", self._capacity, new_capacity)
        self._storage = storage
        self._capacity = new_capacity
        self.growths += doublings

    def write_byte(self, value: int) -> None:
        """Store a single byte at the cursor and advance it."""
        if not 0 <= value <= 0xFF:
            raise ValueError("byte must be in range(0, 256)")
        self.ensure_capacity(1)
        self._storage[self._pos] = value
        self._pos += 1
        self._state = BufferState.GROWING

    def write_bytes(self, data) -> int:
        """Copy a bytes-like object in at the cursor and return its length."""
        with memoryview(data) as view:
            length = view.nbytes
            self.ensure_capacity(length)
            self._storage[self._pos : self._pos + length] = view
        self._pos += length
        self._state = BufferState.GROWING
        return length

    def finalize_write(self) -> bytes:
        """Return the first ``position`` bytes and release the working storage."""
        self._check_usable()
        with memoryview(self._storage) as view:
            result = bytes(view[: self._pos])
        self._state = BufferState.FINALIZED
        self.release()
        logger.debug(
            "buffer finalized at %d bytes (capacity %d)", len(result), self._capacity
        )
        return result

    def release(self) -> None:
        """Drop the storage; an unfinalized buffer becomes INVALID."""
        if self._released:
            return
        if self._state is not BufferState.FINALIZED:
            self._state = BufferState.INVALID
        self._storage = bytearray()
        self._released = True

    def _invalidate(self) -> None:
        logger.debug("buffer invalidated at capacity %d", self._capacity)
        self.release()


class FixedBuffer(Buffer):
    """Read-session buffer borrowing the caller's bytes without copying.

    Capacity is the length of the borrowed data and never changes. Releasing
    the buffer only drops the view; the source object is left untouched.
    """

    def __init__(self, data: bytes | bytearray):
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError(
                f"FixedBuffer requires bytes or bytearray, got {type(data).__name__}"
            )
        view = memoryview(data)
        super().__init__(view, view.nbytes, BufferState.READY)

    @classmethod
    def wrap(cls, data: bytes | bytearray) -> FixedBuffer:
        return cls(data)

    @property
    def remaining(self) -> int:
        """Bytes left unread."""
        return self._capacity - self._pos

    def _advance(self, size: int) -> int:
        """Check that ``size`` bytes are available and move the cursor past them.

        Returns the start offset of the consumed range.
        """
        self._check_usable()
        if size < 0:
            raise ValueError("size must be non-negative")
        if self._pos + size > self._capacity:
            available = self.remaining
            self._state = BufferState.FAILED
            raise ReadOverflowError(size, available)
        start = self._pos
        self._pos += size
        self._state = (
            BufferState.EXHAUSTED if self._pos == self._capacity else BufferState.READING
        )
        return start

    def read_byte(self) -> int:
        start = self._advance(1)
        return self._storage[start]

    def read_bytes(self, size: int) -> bytes:
        start = self._advance(size)
        return bytes(self._storage[start : start + size])

    def release(self) -> None:
        if self._released:
            return
        self._storage.release()
        self._released = True
